import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _get_env_var(name: str, default: str | None = None, *, strip: bool = True) -> str | None:
    """
    Fetch an environment variable with optional whitespace trimming.

    Args:
        name: Environment variable to look up.
        default: Value to return when the env var is unset or empty.
        strip: Whether to strip leading/trailing whitespace (default: True).

    Returns:
        The normalized string value or the provided default when empty.
    """
    value = os.environ.get(name)
    if value is None:
        return default

    if strip:
        value = value.strip()

    return value or default


def _get_int_env_var(name: str, default: int) -> int:
    value = _get_env_var(name)
    if value is None:
        return default
    return int(value)


def _get_bool_env_var(name: str, default: str) -> bool:
    return (_get_env_var(name, default) or default).lower() in {"1", "true", "yes"}


def _split_origins(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


_default_cors_origins = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173"


class Config:
    """Configuration class for the application"""

    # Environment Detection
    APP_ENV = os.environ.get("APP_ENV", "development")  # development, staging, production
    IS_PRODUCTION = APP_ENV == "production"
    IS_STAGING = APP_ENV == "staging"
    IS_DEVELOPMENT = APP_ENV == "development"
    IS_TESTING = APP_ENV in {"testing", "test"} or os.environ.get("TESTING", "").lower() in {
        "1",
        "true",
        "yes",
    }

    APP_VERSION = os.environ.get("APP_VERSION", "0.1.0")
    LOG_LEVEL = _get_env_var("LOG_LEVEL", "INFO").upper()

    # ==================== Usage Store ====================

    # Table identity doubles as the Redis key namespace
    USAGE_TABLE_NAME = _get_env_var("USAGE_TABLE_NAME", "usage")
    USAGE_STORE_BACKEND = _get_env_var("USAGE_STORE_BACKEND", "redis").lower()  # redis, memory

    # ==================== Model Provider ====================

    MODEL_ID = _get_env_var("MODEL_ID", "meta.llama3-8b-instruct-v1:0")
    AWS_REGION = _get_env_var("AWS_REGION", "us-east-1")
    SYSTEM_PROMPT = _get_env_var("SYSTEM_PROMPT", "You are a helpful bot.", strip=False)

    # ==================== Quota ====================

    THROTTLE_MONTHLY_LIMIT_USER = _get_int_env_var("THROTTLE_MONTHLY_LIMIT_USER", 10)
    THROTTLE_MONTHLY_LIMIT_GLOBAL = _get_int_env_var("THROTTLE_MONTHLY_LIMIT_GLOBAL", 100)

    # ==================== Auth ====================

    SHARED_TOKEN_SECRET = _get_env_var("SHARED_TOKEN_SECRET", strip=False)

    # ==================== HTTP ====================

    CORS_ALLOWED_ORIGINS = _split_origins(
        _get_env_var("CORS_ALLOWED_ORIGINS", _default_cors_origins)
    )

    # ==================== Monitoring & Observability Configuration ====================

    # Sentry Configuration
    SENTRY_DSN = os.environ.get("SENTRY_DSN")
    SENTRY_ENABLED = _get_bool_env_var("SENTRY_ENABLED", "true")
    SENTRY_ENVIRONMENT = os.environ.get("SENTRY_ENVIRONMENT", APP_ENV)
    SENTRY_TRACES_SAMPLE_RATE = float(os.environ.get("SENTRY_TRACES_SAMPLE_RATE", "0.1"))
    SENTRY_RELEASE = os.environ.get("SENTRY_RELEASE", APP_VERSION)

    # Prometheus Configuration
    PROMETHEUS_ENABLED = _get_bool_env_var("PROMETHEUS_ENABLED", "true")

    @classmethod
    def validate_critical_env_vars(cls) -> tuple[bool, list[str]]:
        """
        Validate that all critical environment variables are set.

        Returns:
            tuple: (is_valid, missing_vars)
                - is_valid: bool indicating if all critical vars are present
                - missing_vars: list of missing variable names
        """
        critical_vars = {
            "SHARED_TOKEN_SECRET": cls.SHARED_TOKEN_SECRET,
            "MODEL_ID": cls.MODEL_ID,
            "USAGE_TABLE_NAME": cls.USAGE_TABLE_NAME,
        }

        missing = [name for name, value in critical_vars.items() if not value]
        is_valid = len(missing) == 0

        return is_valid, missing
