import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_DEFAULT_MAX_TOKENS = 1024
_DEFAULT_MAX_RETRIES = 2


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer, using %d", name, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    model: str | None
    api_key: str | None
    max_tokens: int = _DEFAULT_MAX_TOKENS
    max_retries: int = _DEFAULT_MAX_RETRIES
    frontend_url: str = "http://localhost:3000"
    log_level: str = "INFO"

    def missing(self) -> list[str]:
        """Names of required variables that are not set."""
        missing = []
        if not self.api_key:
            missing.append("ANTHROPIC_API_KEY")
        if not self.model:
            missing.append("LLM_MODEL")
        return missing


def load_settings() -> Settings:
    return Settings(
        model=os.getenv("LLM_MODEL") or None,
        api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        max_tokens=_int_env("LLM_MAX_TOKENS", _DEFAULT_MAX_TOKENS),
        max_retries=_int_env("LLM_MAX_RETRIES", _DEFAULT_MAX_RETRIES),
        frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3000"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def get_settings() -> Settings:
    """FastAPI dependency. Re-reads the environment on every request."""
    return load_settings()
