"""
Configuration management for the WhatsApp relay.

Loads environment variables from variables.env / .env and provides typed
access to process-level settings.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# variables.env takes precedence, .env is the fallback
_BASE_DIR = Path(__file__).parent
for env_file in ("variables.env", ".env"):
    env_path = _BASE_DIR / env_file
    if env_path.exists():
        load_dotenv(env_path)


class Config:
    """Process-level configuration for the relay server."""

    # Server
    PORT = int(os.getenv("PORT", "3000"))
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # WhatsApp Cloud API
    WHATSAPP_ACCESS_TOKEN = os.getenv("WHATSAPP_ACCESS_TOKEN", "")
    WHATSAPP_VERIFY_TOKEN = os.getenv("WHATSAPP_VERIFY_TOKEN", "")
    WHATSAPP_PHONE_NUMBER_ID = os.getenv("WHATSAPP_PHONE_NUMBER_ID", "")

    # Gemini
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
    STT_BACKEND = os.getenv("STT_BACKEND", "gemini")

    @classmethod
    def missing(cls) -> list[str]:
        """Names of required settings that are not set."""
        required = [
            "WHATSAPP_ACCESS_TOKEN",
            "WHATSAPP_VERIFY_TOKEN",
            "WHATSAPP_PHONE_NUMBER_ID",
        ]
        if cls.STT_BACKEND == "gemini":
            required.append("GEMINI_API_KEY")
        return [key for key in required if not getattr(cls, key)]

    @classmethod
    def validate(cls) -> bool:
        """Validate that required configuration is set."""
        missing = cls.missing()
        if missing:
            logger.warning(
                f"Missing required environment variables: {', '.join(missing)}"
            )
            return False
        return True
