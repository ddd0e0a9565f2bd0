"""
Speech-to-Text service exports.

Clean interface for the webhook to import STT components.
"""

from .base import STTBackend, STTRequest, STTResponse, STTStatus
from .gemini import GeminiSTTBackend
from .stub import StubSTTBackend

__all__ = [
    "STTBackend",
    "STTRequest",
    "STTResponse",
    "STTStatus",
    "GeminiSTTBackend",
    "StubSTTBackend",
]
