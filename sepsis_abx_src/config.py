"""Configuration management for SEPSIS-ABX."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent

# Load environment variables from .env file
env_path = PROJECT_ROOT / ".env"
if env_path.exists():
    load_dotenv(env_path)
else:
    # Fall back to template for defaults
    template_path = PROJECT_ROOT / ".env.template"
    if template_path.exists():
        load_dotenv(template_path)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Config:
    """Application configuration."""

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Reject unrecognised enum categories instead of defaulting them
    STRICT_ENUMS: bool = _env_flag("SEPSIS_ABX_STRICT_ENUMS")

    # API settings
    API_KEY: str = os.getenv("SEPSIS_ABX_API_KEY", "")
    API_HOST: str = os.getenv("API_HOST", "127.0.0.1")
    API_PORT: int = int(os.getenv("API_PORT", "5000"))
    DEBUG: bool = _env_flag("FLASK_DEBUG")

    @classmethod
    def is_api_key_configured(cls) -> bool:
        """Check if the API requires a key."""
        return bool(cls.API_KEY)


config = Config()
