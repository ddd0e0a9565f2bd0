"""
Gemini STT backend.

Sends the audio inline (base64 handled by the SDK) together with a short
instruction and returns the model's plain-text answer.

Requires: pip install google-genai
"""

import logging
from typing import Optional

from google import genai
from google.genai import types

from .base import STTBackend, STTRequest, STTResponse

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
TRANSCRIBE_INSTRUCTION = "please transcribe this audio file"


class GeminiSTTBackend(STTBackend):
    """Remote transcription through the Gemini generate_content API."""

    def __init__(
        self,
        api_key: str,
        model_name: str = DEFAULT_GEMINI_MODEL,
        temperature: float = 0.2,
        top_p: float = 0.95,
        top_k: int = 64,
        max_output_tokens: int = 10000,
        client: Optional[genai.Client] = None,
    ):
        """
        Args:
            api_key: Gemini API key
            model_name: Multimodal model to use
            client: Pre-built client (tests); created lazily otherwise
        """
        self.api_key = api_key
        self.model_name = model_name
        self.generation_config = types.GenerateContentConfig(
            temperature=temperature,
            top_p=top_p,
            top_k=top_k,
            max_output_tokens=max_output_tokens,
            response_mime_type="text/plain",
        )
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def transcribe(self, request: STTRequest) -> STTResponse:
        metadata = {
            "backend": "gemini",
            "model": self.model_name,
            "message_id": request.message_id,
        }

        if not request.audio_data:
            return STTResponse(
                status="recoverable_error",
                error_type="invalid_audio",
                metadata=metadata,
            )

        try:
            logger.info(
                "Sending audio buffer to Gemini for transcription...",
                extra={"audio_length": len(request.audio_data), "mime_type": request.mime_type},
            )
            response = await self._get_client().aio.models.generate_content(
                model=self.model_name,
                contents=[
                    types.Content(
                        role="user",
                        parts=[
                            types.Part.from_bytes(
                                data=request.audio_data,
                                mime_type=request.mime_type,
                            ),
                            types.Part.from_text(text=TRANSCRIBE_INSTRUCTION),
                        ],
                    )
                ],
                config=self.generation_config,
            )
            text = (response.text or "").strip()

        except Exception as e:
            logger.error(f"Gemini transcription failed: {e}", exc_info=True)
            return STTResponse(
                status="fatal_error",
                error_type="backend_unavailable",
                metadata={**metadata, "error": str(e)},
            )

        if not text:
            return STTResponse(
                status="recoverable_error",
                error_type="invalid_audio",
                metadata=metadata,
            )

        logger.info(f"Gemini transcription: {len(text)} chars", extra=metadata)
        return STTResponse(status="success", text=text, metadata=metadata)
