from __future__ import annotations

import base64
import json
from decimal import Decimal

import httpx

from interview_engine.services import judge as judge_module
from interview_engine.services.judge import (
    COMPILATION_ERROR,
    ERROR,
    PASSED,
    RUNTIME_ERROR,
    WRONG_ANSWER,
    JudgeClient,
    decode_source,
    resolve_language_id,
    round_score,
)

CASES = [("1 2", "3"), ("2 2", "4"), ("5 5", "10")]


def _b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def test_all_matching_outputs_score_100(judge_client_factory, fake_judge):
    client = judge_client_factory(fake_judge)

    result = client.evaluate("print('SOLVED')", "python", CASES)

    assert result.score == Decimal("100.00")
    assert result.test_cases_passed == result.total_test_cases == 3
    assert result.feedback.splitlines() == [
        "Test Case 1: PASSED",
        "Test Case 2: PASSED",
        "Test Case 3: PASSED",
    ]
    assert result.execution_time_ms == 10
    assert result.memory_used_kb == 1024
    assert result.output == "10\n"


def test_wire_protocol_uses_base64_and_language_id(judge_client_factory, fake_judge):
    client = judge_client_factory(fake_judge)

    client.evaluate("SOLVED", "cpp", CASES[:1])

    post, get = fake_judge.requests[0], fake_judge.requests[1]
    assert post.method == "POST"
    assert post.url.params["base64_encoded"] == "true"
    assert post.url.params["wait"] == "false"
    body = json.loads(post.content)
    assert body["language_id"] == 54
    assert body["source_code"] == _b64("SOLVED")
    assert body["stdin"] == _b64("1 2")
    assert get.method == "GET"
    assert get.url.path == "/submissions/tok-1"
    assert get.url.params["base64_encoded"] == "true"


def test_base64_source_is_decoded_before_submission(judge_client_factory, fake_judge):
    client = judge_client_factory(fake_judge)

    result = client.evaluate(_b64("# SOLVED\nprint(sum(map(int, input().split())))"), "python", CASES)

    assert result.score == Decimal("100.00")
    assert fake_judge.submissions["tok-1"]["source"].startswith("# SOLVED\n")


def test_timeout_on_second_case_only_fails_that_case(judge_client_factory):
    class SlowSecondCase:
        def __init__(self):
            self.tokens = {}

        def __call__(self, request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                body = json.loads(request.content)
                token = f"t{len(self.tokens) + 1}"
                self.tokens[token] = base64.b64decode(body["stdin"]).decode()
                return httpx.Response(201, json={"token": token})
            token = request.url.path.rsplit("/", 1)[-1]
            stdin = self.tokens[token]
            if stdin == "2 2":
                return httpx.Response(200, json={"status": {"id": 1, "description": "In Queue"}})
            total = sum(int(p) for p in stdin.split())
            return httpx.Response(
                200,
                json={"status": {"id": 3, "description": "Accepted"}, "stdout": _b64(f"{total}\n"), "time": "0.02", "memory": 2048},
            )

    client = judge_client_factory(SlowSecondCase())

    result = client.evaluate("anything", "python", CASES)

    assert result.test_cases_passed == 2
    assert result.score == Decimal("66.67")
    lines = result.feedback.splitlines()
    assert lines[0] == "Test Case 1: PASSED"
    assert lines[1].startswith("Test Case 2: ERROR - ")
    assert "Timed out" in lines[1]
    assert lines[2] == "Test Case 3: PASSED"
    assert [r.status for r in result.test_case_results] == [PASSED, ERROR, PASSED]
    # averaged over all three cases, the timed-out one contributes zero
    assert result.execution_time_ms == 13
    assert result.memory_used_kb == 1365


def test_wall_clock_deadline_ends_polling():
    ticks = iter(range(0, 1000, 10))
    polls = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(201, json={"token": "slow"})
        polls.append(request)
        return httpx.Response(200, json={"status": {"id": 2, "description": "Processing"}})

    client = JudgeClient(
        "http://judge.test",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        max_poll_attempts=100,
        test_case_timeout=25,
        sleep=lambda _s: None,
        clock=lambda: next(ticks),
    )

    result = client.evaluate("x", "python", CASES[:1])

    assert result.test_case_results[0].status == ERROR
    assert len(polls) == 2


def test_wrong_answer_feedback_shows_expected_and_actual(judge_client_factory, fake_judge):
    client = judge_client_factory(fake_judge)

    result = client.evaluate("print(0)", "python", CASES[:1])

    assert result.score == Decimal("0.00")
    assert result.test_case_results[0].status == WRONG_ANSWER
    assert result.feedback == 'Test Case 1: FAILED - Expected: "3", Got: "0"'


def test_compilation_and_runtime_errors_are_classified(judge_client_factory, fake_judge_cls):
    def responder(source, stdin):
        if stdin == "1 2":
            return {"status_id": 6, "compile_output": "main.cpp:1: error: expected ';'"}
        if stdin == "2 2":
            return {"status_id": 11, "stderr": "Traceback: ZeroDivisionError"}
        return {"status_id": 4, "stdout": "11\n"}

    client = judge_client_factory(fake_judge_cls(responder))

    result = client.evaluate("x", "java", CASES)

    statuses = [r.status for r in result.test_case_results]
    assert statuses == [COMPILATION_ERROR, RUNTIME_ERROR, WRONG_ANSWER]
    lines = result.feedback.splitlines()
    assert lines[0] == "Test Case 1: Compilation Error - main.cpp:1: error: expected ';'"
    assert lines[1] == "Test Case 2: Runtime Error - Traceback: ZeroDivisionError"
    assert lines[2] == 'Test Case 3: FAILED - Expected: "10", Got: "11"'
    assert result.error == "Traceback: ZeroDivisionError"


def test_transport_failure_degrades_every_case_to_error(judge_client_factory):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = judge_client_factory(handler)

    result = client.evaluate("x", "python", CASES)

    assert result.test_cases_passed == 0
    assert result.score == Decimal("0.00")
    assert all(r.status == ERROR for r in result.test_case_results)
    assert all(line.startswith(f"Test Case {i}: ERROR - ") for i, line in enumerate(result.feedback.splitlines(), start=1))


def test_unexpected_client_failure_stays_inside_each_case(caplog):
    client = JudgeClient(
        "http://judge.test",
        http_client=httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(201))),
        poll_interval=0,
        sleep=lambda _seconds: None,
    )
    client.close()

    result = client.evaluate("x", "python", CASES)

    assert result.total_test_cases == 3
    assert result.test_cases_passed == 0
    assert result.score == Decimal("0.00")
    assert [r.status for r in result.test_case_results] == [ERROR, ERROR, ERROR]
    assert any(r.levelname == "ERROR" and "failed unexpectedly" in r.getMessage() for r in caplog.records)


def test_missing_token_is_an_error(judge_client_factory):
    client = judge_client_factory(lambda request: httpx.Response(201, json={}))

    result = client.evaluate("x", "python", CASES[:1])

    assert result.test_case_results[0].status == ERROR
    assert "token" in result.feedback


def test_zero_test_cases_scores_zero(judge_client_factory, fake_judge):
    result = judge_client_factory(fake_judge).evaluate("SOLVED", "python", [])

    assert result.score == Decimal("0.00")
    assert result.total_test_cases == 0
    assert result.feedback == ""
    assert fake_judge.requests == []


def test_language_map_and_fallback(caplog):
    assert resolve_language_id("JavaScript") == 63
    assert resolve_language_id("py") == 71
    assert resolve_language_id("java") == 62
    assert resolve_language_id("c++") == 54
    assert resolve_language_id("c") == 50
    assert resolve_language_id("cobol") == judge_module.DEFAULT_LANGUAGE_ID
    assert "Unknown language" in caplog.text


def test_decode_source_is_best_effort():
    plain = "def solve():\n    return 42\n"
    assert decode_source(_b64(plain)) == plain
    # not base64 at all
    assert decode_source(plain) == plain
    # valid base64 alphabet but decodes to non-printable bytes
    assert decode_source("test") == "test"
    # bad padding
    assert decode_source("abc") == "abc"
    # binary payload
    binary = base64.b64encode(b"\x00\x01\x02\xff").decode()
    assert decode_source(binary) == binary
    assert decode_source("") == ""


def test_round_score_half_up():
    assert round_score(2, 3) == Decimal("66.67")
    assert round_score(1, 3) == Decimal("33.33")
    assert round_score(1, 8) == Decimal("12.50")
    assert round_score(0, 0) == Decimal("0.00")
