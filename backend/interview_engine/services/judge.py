"""
Client for a Judge0-compatible code execution service.

Each test case is submitted on its own, then polled until the judge reports
a terminal status, the attempt budget runs out, or the per-test-case
deadline passes. A failing test case never stops the ones after it.
"""
from __future__ import annotations

import base64
import binascii
import logging
import re
import time
from dataclasses import asdict, dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Optional, Sequence

import httpx

from interview_engine.core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE_ID = 63  # JavaScript (Node.js)

LANGUAGE_IDS: dict[str, int] = {
    "javascript": 63,
    "js": 63,
    "node": 63,
    "python": 71,
    "python3": 71,
    "py": 71,
    "java": 62,
    "cpp": 54,
    "c++": 54,
    "c": 50,
}

STATUS_DESCRIPTIONS: dict[int, str] = {
    1: "In Queue",
    2: "Processing",
    3: "Accepted",
    4: "Wrong Answer",
    5: "Time Limit Exceeded",
    6: "Compilation Error",
    7: "Runtime Error (SIGSEGV)",
    8: "Runtime Error (SIGXFSZ)",
    9: "Runtime Error (SIGFPE)",
    10: "Runtime Error (SIGABRT)",
    11: "Runtime Error (NZEC)",
    12: "Runtime Error (Other)",
    13: "Internal Error",
    14: "Exec Format Error",
}

STATUS_ACCEPTED = 3
STATUS_WRONG_ANSWER = 4
STATUS_COMPILATION_ERROR = 6

PASSED = "PASSED"
WRONG_ANSWER = "WRONG_ANSWER"
COMPILATION_ERROR = "COMPILATION_ERROR"
RUNTIME_ERROR = "RUNTIME_ERROR"
ERROR = "ERROR"

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")
_SAFE_CONTROL_CHARS = {"\n", "\r", "\t"}


class JudgeError(Exception):
    """Transport or protocol failure talking to the judge."""


class JudgeTimeoutError(JudgeError):
    pass


def resolve_language_id(language: str | None) -> int:
    key = (language or "").strip().lower()
    language_id = LANGUAGE_IDS.get(key)
    if language_id is None:
        logger.warning("Unknown language %r; falling back to JavaScript", language)
        return DEFAULT_LANGUAGE_ID
    return language_id


def decode_source(code: str) -> str:
    """
    Best effort: returns the decoded text when `code` looks like base64 of
    printable UTF-8, otherwise returns `code` unchanged.
    """
    if not code:
        return code or ""

    compact = "".join(code.split())
    if len(compact) % 4 != 0 or not _BASE64_RE.match(compact):
        return code

    try:
        decoded = base64.b64decode(compact, validate=True).decode("utf-8", errors="strict")
    except (binascii.Error, ValueError):
        return code

    if not decoded:
        return code
    if all(ch.isprintable() or ch in _SAFE_CONTROL_CHARS for ch in decoded):
        return decoded
    return code


def _b64encode(text: str) -> str:
    return base64.b64encode((text or "").encode("utf-8")).decode("ascii")


def _b64decode(value: Any) -> str:
    if not value:
        return ""
    try:
        return base64.b64decode(value).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError, TypeError):
        return str(value)


def _time_ms(value: Any) -> int:
    if value in (None, ""):
        return 0
    try:
        return int(round(float(value) * 1000))
    except (TypeError, ValueError):
        return 0


def _memory_kb(value: Any) -> int:
    if value in (None, ""):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def round_score(passed: int, total: int) -> Decimal:
    if total <= 0:
        return Decimal("0.00")
    raw = Decimal(100 * passed) / Decimal(total)
    return raw.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


@dataclass
class TestCaseResult:
    index: int
    status: str
    expected_output: str
    stdout: str = ""
    stderr: str = ""
    judge_status_id: Optional[int] = None
    judge_status: Optional[str] = None
    execution_time_ms: int = 0
    memory_kb: int = 0
    feedback: str = ""

    @property
    def passed(self) -> bool:
        return self.status == PASSED

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["passed"] = self.passed
        return data


@dataclass
class EvaluationResult:
    score: Decimal
    test_cases_passed: int
    total_test_cases: int
    execution_time_ms: int
    memory_used_kb: int
    feedback: str
    test_case_results: list[TestCaseResult] = field(default_factory=list)
    output: str = ""
    error: str = ""

    def breakdown(self) -> list[dict[str, Any]]:
        return [tc.to_dict() for tc in self.test_case_results]


def classify(index: int, expected: str, payload: dict[str, Any]) -> TestCaseResult:
    """Turn a terminal judge payload into a test case verdict."""
    status = payload.get("status") or {}
    status_id = int(status["id"])
    description = status.get("description") or STATUS_DESCRIPTIONS.get(status_id, "Unknown")

    stdout = _b64decode(payload.get("stdout"))
    stderr = _b64decode(payload.get("stderr"))
    compile_output = _b64decode(payload.get("compile_output"))

    result = TestCaseResult(
        index=index,
        status=ERROR,
        expected_output=expected,
        stdout=stdout,
        stderr=stderr,
        judge_status_id=status_id,
        judge_status=description,
        execution_time_ms=_time_ms(payload.get("time")),
        memory_kb=_memory_kb(payload.get("memory")),
    )

    if status_id == STATUS_ACCEPTED and stdout.strip() == (expected or "").strip():
        result.status = PASSED
        result.feedback = f"Test Case {index}: PASSED"
    elif status_id in (STATUS_ACCEPTED, STATUS_WRONG_ANSWER):
        result.status = WRONG_ANSWER
        result.feedback = (
            f'Test Case {index}: FAILED - Expected: "{(expected or "").strip()}", Got: "{stdout.strip()}"'
        )
    elif status_id == STATUS_COMPILATION_ERROR:
        result.status = COMPILATION_ERROR
        result.feedback = f"Test Case {index}: Compilation Error - {(compile_output or description).strip()}"
    else:
        result.status = RUNTIME_ERROR
        result.feedback = f"Test Case {index}: Runtime Error - {(stderr or description).strip()}"

    return result


def _error_result(index: int, expected: str, exc: Exception) -> TestCaseResult:
    return TestCaseResult(
        index=index,
        status=ERROR,
        expected_output=expected,
        feedback=f"Test Case {index}: ERROR - {exc}",
    )


class JudgeClient:
    def __init__(
        self,
        base_url: str,
        *,
        auth_token: str = "",
        http_client: Optional[httpx.Client] = None,
        poll_interval: float = 1.0,
        max_poll_attempts: int = 15,
        request_timeout: float = 10.0,
        test_case_timeout: float = 20.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token
        self.http = http_client or httpx.Client(timeout=request_timeout)
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts
        self.request_timeout = request_timeout
        self.test_case_timeout = test_case_timeout
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_settings(cls, http_client: Optional[httpx.Client] = None) -> "JudgeClient":
        return cls(
            settings.JUDGE_BASE_URL,
            auth_token=settings.JUDGE_AUTH_TOKEN,
            http_client=http_client,
            poll_interval=settings.JUDGE_POLL_INTERVAL_SECONDS,
            max_poll_attempts=settings.JUDGE_MAX_POLL_ATTEMPTS,
            request_timeout=settings.JUDGE_REQUEST_TIMEOUT_SECONDS,
            test_case_timeout=settings.JUDGE_TEST_CASE_TIMEOUT_SECONDS,
        )

    def close(self) -> None:
        self.http.close()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["X-Auth-Token"] = self.auth_token
        return headers

    # -------------------------
    # Wire protocol
    # -------------------------
    def submit(self, source: str, language_id: int, stdin: str) -> str:
        body = {
            "source_code": _b64encode(source),
            "language_id": language_id,
            "stdin": _b64encode(stdin),
        }
        try:
            response = self.http.post(
                f"{self.base_url}/submissions",
                params={"base64_encoded": "true", "wait": "false"},
                json=body,
                headers=self._headers(),
                timeout=self.request_timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise JudgeError(f"Judge submission failed: {exc}") from exc
        except ValueError as exc:
            raise JudgeError("Judge returned an invalid submission response") from exc

        token = payload.get("token") if isinstance(payload, dict) else None
        if not token:
            raise JudgeError("Judge response did not include a submission token")
        return str(token)

    def fetch(self, token: str) -> dict[str, Any]:
        try:
            response = self.http.get(
                f"{self.base_url}/submissions/{token}",
                params={"base64_encoded": "true"},
                headers=self._headers(),
                timeout=self.request_timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise JudgeError(f"Judge status request failed: {exc}") from exc
        except ValueError as exc:
            raise JudgeError("Judge returned an invalid status response") from exc

        if not isinstance(payload, dict) or not isinstance(payload.get("status"), dict):
            raise JudgeError("Judge status response is missing 'status'")
        return payload

    def wait_for_result(self, token: str) -> dict[str, Any]:
        deadline = self._clock() + self.test_case_timeout
        for _ in range(self.max_poll_attempts):
            self._sleep(self.poll_interval)
            if self._clock() > deadline:
                break
            payload = self.fetch(token)
            try:
                status_id = int(payload["status"]["id"])
            except (KeyError, TypeError, ValueError) as exc:
                raise JudgeError("Judge status id is not a number") from exc
            if status_id > 2:
                return payload
        raise JudgeTimeoutError("Timed out waiting for judge result")

    # -------------------------
    # Evaluation
    # -------------------------
    def run_test_case(self, index: int, source: str, language_id: int, stdin: str, expected: str) -> TestCaseResult:
        try:
            token = self.submit(source, language_id, stdin)
            payload = self.wait_for_result(token)
            return classify(index, expected, payload)
        except (JudgeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Judge test case %s failed: %s", index, exc)
            return _error_result(index, expected, exc)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Judge test case %s failed unexpectedly", index)
            return _error_result(index, expected, exc)

    def evaluate(self, code: str, language: str, test_cases: Sequence[tuple[str, str]]) -> EvaluationResult:
        source = decode_source(code)
        language_id = resolve_language_id(language)

        results: list[TestCaseResult] = []
        for i, (stdin, expected) in enumerate(test_cases, start=1):
            results.append(self.run_test_case(i, source, language_id, stdin, expected))

        total = len(results)
        passed = sum(1 for r in results if r.passed)

        output = ""
        error = ""
        for r in results:
            if r.stdout:
                output = r.stdout
            if r.stderr:
                error = r.stderr

        return EvaluationResult(
            score=round_score(passed, total),
            test_cases_passed=passed,
            total_test_cases=total,
            execution_time_ms=(sum(r.execution_time_ms for r in results) // total) if total else 0,
            memory_used_kb=(sum(r.memory_kb for r in results) // total) if total else 0,
            feedback="\n".join(r.feedback for r in results),
            test_case_results=results,
            output=output,
            error=error,
        )
