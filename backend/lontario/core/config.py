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
        self.ENV = os.getenv("ENV", "dev").strip().lower()  # dev | prod
        if self.ENV != "prod":
            # Local files never influence prod.
            load_dotenv()

        # ----------------------------
        # Database
        # ----------------------------
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
        # CORS / URLs
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

        # Interview links are built from FRONTEND_BASE_URL; prod must set it explicitly.
        if self.ENV == "prod":
            self.FRONTEND_BASE_URL = os.getenv("FRONTEND_BASE_URL", "").strip().rstrip("/")
        else:
            self.FRONTEND_BASE_URL = os.getenv("FRONTEND_BASE_URL", "http://localhost:3000").strip().rstrip("/")

        self.COMPANY_NAME = os.getenv("COMPANY_NAME", "Lontario").strip() or "Lontario"

        # Base URL the dashboard client talks to.
        self.API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000").strip().rstrip("/")
        self.API_TIMEOUT_SECONDS = float(os.getenv("API_TIMEOUT_SECONDS", "15"))

        # ----------------------------
        # AI (OpenAI)
        # ----------------------------
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
        self.OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-2024-08-06")
        self.AI_OPENAI_MAX_RETRIES = max(1, int(os.getenv("AI_OPENAI_MAX_RETRIES", "3")))
        self.AI_OPENAI_TIMEOUT_SECONDS = float(os.getenv("AI_OPENAI_TIMEOUT_SECONDS", "60"))
        self.AI_SCORING_TEMPERATURE = float(os.getenv("AI_SCORING_TEMPERATURE", "0.5"))
        self.AI_QUESTIONS_TEMPERATURE = float(os.getenv("AI_QUESTIONS_TEMPERATURE", "0.7"))
        self.AI_RESUME_PROMPT_CHARS = int(os.getenv("AI_RESUME_PROMPT_CHARS", "2000"))
        self.SCORING_MIN_TEXT_CHARS = int(os.getenv("SCORING_MIN_TEXT_CHARS", "50"))
        self.AI_RATE_LIMIT = os.getenv("AI_RATE_LIMIT", "20/minute").strip() or "20/minute"

        # ----------------------------
        # GitHub
        # ----------------------------
        self.GITHUB_TOKEN = os.getenv("GITHUB_TOKEN", "")
        self.GITHUB_API_BASE_URL = os.getenv("GITHUB_API_BASE_URL", "https://api.github.com").strip().rstrip("/")
        self.GITHUB_TIMEOUT_SECONDS = float(os.getenv("GITHUB_TIMEOUT_SECONDS", "10"))

        # ----------------------------
        # Interviews
        # ----------------------------
        self.INTERVIEW_EXPIRY_HOURS = int(os.getenv("INTERVIEW_EXPIRY_HOURS", "24"))
        self.INTERVIEW_MISSED_AFTER_HOURS = int(os.getenv("INTERVIEW_MISSED_AFTER_HOURS", "2"))
        self.INTERVIEW_ABANDONED_AFTER_HOURS = int(os.getenv("INTERVIEW_ABANDONED_AFTER_HOURS", "2"))
        self.CRON_SECRET = os.getenv("CRON_SECRET", "")

        # ----------------------------
        # Email delivery
        # ----------------------------
        self.EMAIL_PROVIDER = os.getenv("EMAIL_PROVIDER", "resend").strip().lower()
        self.EMAIL_ENABLED = str_to_bool(os.getenv("EMAIL_ENABLED"), default=False)

        self.FROM_EMAIL = os.getenv("FROM_EMAIL", "")
        self.RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
        self.AWS_REGION = os.getenv("AWS_REGION", "")

        # SMTP (only relevant if EMAIL_PROVIDER=gmail/smtp)
        self.SMTP_HOST = os.getenv("SMTP_HOST", "")
        self.SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
        self.SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
        self.SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
        self.SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL", "")
        self.SMTP_USE_TLS = str_to_bool(os.getenv("SMTP_USE_TLS", "true"), default=True)
        self.SMTP_USE_SSL = str_to_bool(os.getenv("SMTP_USE_SSL", "false"), default=False)

        # ----------------------------
        # Background work / rate limiting
        # ----------------------------
        self.CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "").strip()
        self.ENABLE_RATE_LIMITING = str_to_bool(os.getenv("ENABLE_RATE_LIMITING", "false"))

        self._validate_prod()

    def _validate_prod(self) -> None:
        if self.ENV != "prod":
            return

        missing: list[str] = []

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
        if not self.OPENAI_API_KEY:
            missing.append("OPENAI_API_KEY")
        if not self.CRON_SECRET:
            missing.append("CRON_SECRET")

        if not self.CORS_ORIGINS:
            missing.append("CORS_ORIGINS")

        cors_joined = ",".join(self.CORS_ORIGINS)
        if "localhost" in cors_joined or "127.0.0.1" in cors_joined:
            raise RuntimeError("CORS_ORIGINS contains localhost/dev origins in prod")

        if self.FRONTEND_BASE_URL and not self.FRONTEND_BASE_URL.startswith("https://"):
            raise RuntimeError("FRONTEND_BASE_URL should be https://... in prod")

        if missing:
            raise RuntimeError(f"Missing required prod env vars: {', '.join(missing)}")

    @property
    def is_prod(self) -> bool:
        return self.ENV == "prod"

    @property
    def ai_configured(self) -> bool:
        return bool(self.OPENAI_API_KEY)

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
