"""
Stub STT backend for testing and offline development.

Deterministic, fast, and never fails silently.
"""

from .base import STTBackend, STTRequest, STTResponse


class StubSTTBackend(STTBackend):
    """
    Deterministic fake STT for testing and CI.

    Converts audio to a fixed response based on audio length.
    """

    async def transcribe(self, request: STTRequest) -> STTResponse:
        audio_len = len(request.audio_data)

        if audio_len == 0:
            return STTResponse(
                status="recoverable_error",
                error_type="invalid_audio",
                metadata={
                    "backend": "stub_stt",
                    "message_id": request.message_id,
                }
            )

        word_count = max(1, audio_len // 100)
        text = " ".join(f"word_{i}" for i in range(word_count))

        return STTResponse(
            status="success",
            text=text,
            metadata={
                "backend": "stub_stt",
                "message_id": request.message_id,
                "audio_length": audio_len,
            }
        )
