"""
Infrastructure configuration system.

Immutable settings bundle read from the environment once, then injected
into the sender, media client and STT backend.
"""

import os
from dataclasses import dataclass
from typing import Literal, Optional

from services.stt import GeminiSTTBackend, STTBackend, StubSTTBackend
from services.stt.gemini import DEFAULT_GEMINI_MODEL
from transport.whatsapp.dispatcher import DEFAULT_INTER_CHUNK_DELAY, MessageDispatcher
from transport.whatsapp.media import WhatsAppMediaClient
from transport.whatsapp.sender import DEFAULT_API_VERSION, WhatsAppSender


STTBackendType = Literal["gemini", "stub"]
STT_BACKENDS = ("gemini", "stub")


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else None


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


@dataclass(frozen=True)
class InfraConfig:
    """Infrastructure configuration from environment."""

    # WhatsApp Cloud API
    whatsapp_access_token: str
    whatsapp_verify_token: str
    whatsapp_phone_number_id: str
    whatsapp_app_secret: Optional[str]
    whatsapp_api_version: str

    # STT
    stt_backend: STTBackendType
    gemini_api_key: str
    gemini_model: str

    # Outbound delivery
    chunk_delay_seconds: float = DEFAULT_INTER_CHUNK_DELAY
    send_timeout_seconds: Optional[float] = None
    max_chunks: Optional[int] = None

    def __post_init__(self):
        if self.stt_backend not in STT_BACKENDS:
            raise ValueError(
                f"Unknown STT_BACKEND {self.stt_backend!r}; expected one of {', '.join(STT_BACKENDS)}"
            )
        if self.max_chunks is not None and self.max_chunks < 1:
            raise ValueError(f"MESSAGE_MAX_CHUNKS must be positive, got {self.max_chunks}")

    @classmethod
    def from_env(cls) -> "InfraConfig":
        """Load configuration from environment variables."""
        return cls(
            whatsapp_access_token=os.getenv("WHATSAPP_ACCESS_TOKEN", ""),
            whatsapp_verify_token=os.getenv("WHATSAPP_VERIFY_TOKEN", ""),
            whatsapp_phone_number_id=os.getenv("WHATSAPP_PHONE_NUMBER_ID", ""),
            whatsapp_app_secret=os.getenv("WHATSAPP_APP_SECRET") or None,
            whatsapp_api_version=os.getenv("WHATSAPP_API_VERSION", DEFAULT_API_VERSION),
            stt_backend=os.getenv("STT_BACKEND", "gemini"),  # type: ignore
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            chunk_delay_seconds=float(
                os.getenv("MESSAGE_CHUNK_DELAY_SECONDS", str(DEFAULT_INTER_CHUNK_DELAY))
            ),
            send_timeout_seconds=_optional_float("MESSAGE_SEND_TIMEOUT_SECONDS"),
            max_chunks=_optional_int("MESSAGE_MAX_CHUNKS"),
        )

    def create_sender(self) -> WhatsAppSender:
        """Create the single-message sender."""
        return WhatsAppSender(
            access_token=self.whatsapp_access_token,
            phone_number_id=self.whatsapp_phone_number_id,
            api_version=self.whatsapp_api_version,
        )

    def create_dispatcher(self, sender: Optional[WhatsAppSender] = None) -> MessageDispatcher:
        """Create the long-message dispatcher around a sender."""
        return MessageDispatcher(
            send_one=sender or self.create_sender(),
            inter_chunk_delay=self.chunk_delay_seconds,
            send_timeout=self.send_timeout_seconds,
            max_chunks=self.max_chunks,
        )

    def create_media_client(self) -> WhatsAppMediaClient:
        """Create the media downloader."""
        return WhatsAppMediaClient(
            access_token=self.whatsapp_access_token,
            api_version=self.whatsapp_api_version,
        )

    def create_stt_backend(self) -> STTBackend:
        """Create STT backend instance based on configuration."""
        if self.stt_backend == "stub":
            return StubSTTBackend()
        elif self.stt_backend == "gemini":
            return GeminiSTTBackend(api_key=self.gemini_api_key, model_name=self.gemini_model)
        raise ValueError(f"Unknown STT backend: {self.stt_backend}")


def get_config() -> InfraConfig:
    """Get infrastructure configuration from the current environment."""
    return InfraConfig.from_env()
