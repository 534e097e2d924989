import os
from typing import List, Optional


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value or default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (ValueError, TypeError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (ValueError, TypeError):
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    """Runtime settings.

    Every property reads the environment on access so a test can patch
    ``os.environ`` without rebuilding anything.
    """

    @property
    def openai_api_key(self) -> Optional[str]:
        return _env_str("OPENAI_API_KEY")

    @property
    def openai_model(self) -> str:
        return _env_str("OPENAI_MODEL", "gpt-4o-mini") or "gpt-4o-mini"

    @property
    def openai_base_url(self) -> str:
        url = _env_str("OPENAI_BASE_URL", "https://api.openai.com/v1") or "https://api.openai.com/v1"
        return url.rstrip("/")

    @property
    def ai_timeout_seconds(self) -> float:
        return _env_float("ASSESSMENT_AI_TIMEOUT_SECONDS", 20.0)

    @property
    def ai_temperature(self) -> float:
        return _env_float("ASSESSMENT_AI_TEMPERATURE", 0.2)

    @property
    def ai_max_tokens(self) -> int:
        return _env_int("ASSESSMENT_AI_MAX_TOKENS", 800)

    @property
    def assessment_rate_limit(self) -> str:
        return _env_str("ASSESSMENT_RATE_LIMIT", "20/minute") or "20/minute"

    @property
    def cors_origins(self) -> List[str]:
        raw = _env_str("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173") or ""
        return [o.strip() for o in raw.split(",") if o.strip()]

    @property
    def demo_user_email(self) -> Optional[str]:
        # set to an empty string to disable demo seeding
        return (os.getenv("DEMO_USER_EMAIL", "demo@example.com") or "").strip() or None

    @property
    def demo_user_password(self) -> Optional[str]:
        return os.getenv("DEMO_USER_PASSWORD", "demo123") or None

    @property
    def demo_patient_id(self) -> str:
        return _env_str("DEMO_PATIENT_ID", "demo-patient-id") or "demo-patient-id"

    @property
    def demo_mode(self) -> bool:
        return not self.openai_api_key


settings = Settings()
