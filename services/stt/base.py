"""
Speech-to-Text (STT) abstract interface.

Role: Audio → text transformation only.

Rules:
- Pure transformation (no state mutation)
- Failure → explicit status, never a crash
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any, Literal


STTStatus = Literal["success", "recoverable_error", "fatal_error"]


@dataclass
class STTRequest:
    """Speech-to-Text request."""

    audio_data: bytes  # Raw audio bytes
    mime_type: str = "audio/ogg; codecs=opus"
    message_id: Optional[str] = None


@dataclass
class STTResponse:
    """Speech-to-Text response."""

    status: STTStatus
    text: Optional[str] = None
    error_type: Optional[str] = None  # invalid_audio | backend_unavailable
    metadata: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.status == "success" and bool(self.text)


class STTBackend(ABC):
    """
    Abstract STT boundary.
    The webhook depends ONLY on this interface.
    """

    @abstractmethod
    async def transcribe(self, request: STTRequest) -> STTResponse:
        """
        Transcribe audio to text.

        Args:
            request: STTRequest with audio data

        Returns:
            STTResponse with text or explicit error status
        """
        raise NotImplementedError
