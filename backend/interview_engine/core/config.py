# interview_engine/core/config.py
import os
from urllib.parse import quote_plus

from dotenv import load_dotenv


def str_to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def merge_unique(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in items:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


class Settings:
    def __init__(self) -> None:
        # Only load .env for local/dev. In prod, env vars come from the service config.
        self.ENV = os.getenv("ENV", "dev").strip().lower()  # dev | prod
        if self.ENV != "prod":
            load_dotenv()

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

        # ----------------------------
        # Database
        # ----------------------------
        # DATABASE_URL wins when set (local sqlite, tests); otherwise build the postgres URL.
        self.DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
        self.DB_HOST = os.getenv("DB_HOST", "")
        self.DB_PORT = os.getenv("DB_PORT", "5432")
        self.DB_NAME = os.getenv("DB_NAME", "")
        self.DB_APP_USER = os.getenv("DB_APP_USER", "")
        self.DB_APP_PASSWORD = os.getenv("DB_APP_PASSWORD", "")
        self.DB_MIGRATOR_USER = os.getenv("DB_MIGRATOR_USER", "")
        self.DB_MIGRATOR_PASSWORD = os.getenv("DB_MIGRATOR_PASSWORD", "")
        self.DB_SSLMODE = os.getenv("DB_SSLMODE", "require").strip().lower()

        # ----------------------------
        # CORS
        # ----------------------------
        dev_defaults = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]

        cors_from_env = parse_csv(os.getenv("CORS_ORIGINS"))
        if self.ENV == "prod":
            self.CORS_ORIGINS = merge_unique(cors_from_env)
        else:
            self.CORS_ORIGINS = merge_unique(cors_from_env + dev_defaults)

        # ----------------------------
        # Auth / JWT
        # ----------------------------
        self.JWT_SECRET = os.getenv("JWT_SECRET", "")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

        if self.ENV == "prod":
            self.FRONTEND_BASE_URL = os.getenv("FRONTEND_BASE_URL", "").strip().rstrip("/")
        else:
            self.FRONTEND_BASE_URL = os.getenv("FRONTEND_BASE_URL", "http://localhost:3000").strip().rstrip("/")

        # ----------------------------
        # Email delivery / notifications
        # ----------------------------
        self.EMAIL_PROVIDER = os.getenv("EMAIL_PROVIDER", "resend").strip().lower()
        self.EMAIL_ENABLED = str_to_bool(os.getenv("EMAIL_ENABLED"), default=False)
        self.FROM_EMAIL = os.getenv("FROM_EMAIL", "")
        self.RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
        self.AWS_REGION = os.getenv("AWS_REGION", "")

        self.NOTIFICATIONS_SQS_QUEUE_URL = os.getenv("NOTIFICATIONS_SQS_QUEUE_URL", "")
        self.NOTIFICATION_QUEUE_MAXSIZE = int(os.getenv("NOTIFICATION_QUEUE_MAXSIZE", "1000"))
        # Celery rate limit string for the email task, e.g. "10/s"; empty disables it.
        self.NOTIFICATION_TASK_RATE_LIMIT = os.getenv("NOTIFICATION_TASK_RATE_LIMIT", "10/s").strip()
        self.EXPIRE_SWEEP_INTERVAL_SECONDS = int(os.getenv("EXPIRE_SWEEP_INTERVAL_SECONDS", "300"))

        # ----------------------------
        # Judge (Judge0-compatible execution service)
        # ----------------------------
        self.JUDGE_BASE_URL = os.getenv("JUDGE_BASE_URL", "http://localhost:2358").strip().rstrip("/")
        self.JUDGE_AUTH_TOKEN = os.getenv("JUDGE_AUTH_TOKEN", "")
        self.JUDGE_POLL_INTERVAL_SECONDS = float(os.getenv("JUDGE_POLL_INTERVAL_SECONDS", "1.0"))
        self.JUDGE_MAX_POLL_ATTEMPTS = int(os.getenv("JUDGE_MAX_POLL_ATTEMPTS", "15"))
        self.JUDGE_REQUEST_TIMEOUT_SECONDS = float(os.getenv("JUDGE_REQUEST_TIMEOUT_SECONDS", "10"))
        self.JUDGE_TEST_CASE_TIMEOUT_SECONDS = float(os.getenv("JUDGE_TEST_CASE_TIMEOUT_SECONDS", "20"))

        # ----------------------------
        # Bulk assignment
        # ----------------------------
        self.BULK_ASSIGN_MAX_WORKERS = int(os.getenv("BULK_ASSIGN_MAX_WORKERS", "8"))

        # ----------------------------
        # Rate limiting
        # ----------------------------
        self.RATE_LIMIT_ENABLED = str_to_bool(os.getenv("RATE_LIMIT_ENABLED", "false"))
        self.RATE_LIMIT_DEFAULT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_DEFAULT_MAX_REQUESTS", "100"))
        self.RATE_LIMIT_DEFAULT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_DEFAULT_WINDOW_SECONDS", "900"))
        self.CODE_RATE_LIMIT_MAX_REQUESTS = int(os.getenv("CODE_RATE_LIMIT_MAX_REQUESTS", "20"))
        self.CODE_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("CODE_RATE_LIMIT_WINDOW_SECONDS", "60"))

        # Final: fail fast in prod
        self._validate_prod()

    def _validate_prod(self) -> None:
        if self.ENV != "prod":
            return

        missing: list[str] = []

        if not self.JWT_SECRET:
            missing.append("JWT_SECRET")
        if not self.DATABASE_URL:
            if not self.DB_HOST:
                missing.append("DB_HOST")
            if not self.DB_NAME:
                missing.append("DB_NAME")
            if not self.DB_APP_USER:
                missing.append("DB_APP_USER")
            if not self.DB_APP_PASSWORD:
                missing.append("DB_APP_PASSWORD")
            if self.DB_SSLMODE != "require":
                raise RuntimeError("DB_SSLMODE must be 'require' in prod")

        if not self.FRONTEND_BASE_URL:
            missing.append("FRONTEND_BASE_URL")
        if not self.CORS_ORIGINS:
            missing.append("CORS_ORIGINS")

        cors_joined = ",".join(self.CORS_ORIGINS)
        if "localhost" in cors_joined or "127.0.0.1" in cors_joined:
            raise RuntimeError("CORS_ORIGINS contains localhost/dev origins in prod")

        if "localhost" in self.JUDGE_BASE_URL or "127.0.0.1" in self.JUDGE_BASE_URL:
            raise RuntimeError("JUDGE_BASE_URL points at localhost in prod")

        if missing:
            raise RuntimeError(f"Missing required prod env vars: {', '.join(missing)}")

    def _build_database_url(self, user: str, password: str) -> str:
        encoded_password = quote_plus(password)
        return (
            f"postgresql+psycopg2://{user}:{encoded_password}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            f"?sslmode={self.DB_SSLMODE}"
        )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return self._build_database_url(self.DB_APP_USER, self.DB_APP_PASSWORD)

    @property
    def migrations_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return self._build_database_url(self.DB_MIGRATOR_USER, self.DB_MIGRATOR_PASSWORD)


settings = Settings()


def require_jwt_secret() -> None:
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set")
