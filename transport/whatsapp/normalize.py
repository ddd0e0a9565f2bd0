"""
WhatsApp Input Normalization

PURE CONVERSION - NO MODEL CALLS

Converts WhatsApp message formats into canonical NormalizedMessage.
- TEXT: Extract body, no enrichment
- AUDIO: Preserve media id and mime type only, no STT
"""

from datetime import datetime
from typing import Optional

from .schemas import DEFAULT_AUDIO_MIME_TYPE, NormalizedMessage, WhatsAppWebhookPayload

BUSINESS_ACCOUNT_OBJECT = "whatsapp_business_account"


class NormalizationError(Exception):
    """Input normalization failed."""
    pass


class UnsupportedMessageType(NormalizationError):
    """Message type the relay does not answer (image, sticker, ...)."""

    def __init__(self, message_type: Optional[str]):
        self.message_type = message_type
        super().__init__(f"Unsupported message type: {message_type}")


def extract_message(payload: dict | WhatsAppWebhookPayload) -> Optional[dict]:
    """
    Return the first message of a business-account webhook, or None.

    Status updates and payloads from other objects carry no message.
    """
    if isinstance(payload, WhatsAppWebhookPayload):
        payload = payload.model_dump()

    if not isinstance(payload, dict) or payload.get("object") != BUSINESS_ACCOUNT_OBJECT:
        return None

    try:
        messages = payload["entry"][0]["changes"][0]["value"].get("messages") or []
    except (KeyError, IndexError, TypeError, AttributeError):
        return None

    return messages[0] if messages else None


def normalize_message(
    payload: dict | WhatsAppWebhookPayload,
) -> NormalizedMessage:
    """
    Convert WhatsApp webhook message into NormalizedMessage.

    Handles:
    - Text messages
    - Audio messages (media id only)

    Args:
        payload: Raw WhatsApp webhook payload

    Returns:
        NormalizedMessage

    Raises:
        UnsupportedMessageType: Message type other than text/audio
        NormalizationError: Invalid or missing message
    """
    message = extract_message(payload)
    if message is None:
        raise NormalizationError("No messages in payload")

    try:
        sender_id = message["from"]
        message_id = message["id"]
        timestamp = int(message["timestamp"])
    except (KeyError, ValueError, TypeError) as e:
        raise NormalizationError(f"Invalid payload structure: {e}")

    message_type = message.get("type")

    if message_type == "text":
        return _normalize_text_message(message, sender_id, message_id, timestamp)

    elif message_type == "audio":
        return _normalize_audio_message(message, sender_id, message_id, timestamp)

    else:
        raise UnsupportedMessageType(message_type)


def _normalize_text_message(
    message: dict,
    sender_id: str,
    message_id: str,
    timestamp: int,
) -> NormalizedMessage:
    try:
        text_body = message["text"]["body"]
    except (KeyError, TypeError):
        raise NormalizationError("Text message missing 'text.body'")

    return NormalizedMessage(
        input_text=text_body,
        sender_id=sender_id,
        message_id=message_id,
        timestamp=datetime.fromtimestamp(timestamp),
        input_type="text",
    )


def _normalize_audio_message(
    message: dict,
    sender_id: str,
    message_id: str,
    timestamp: int,
) -> NormalizedMessage:
    """
    Normalize audio message.

    Transcription happens later, after the media is downloaded.
    """
    audio = message.get("audio")
    if not isinstance(audio, dict):
        raise NormalizationError("Audio message missing 'audio' object")

    audio_id = audio.get("id")
    if not audio_id:
        raise NormalizationError("Audio message missing ID")

    return NormalizedMessage(
        input_text="",
        sender_id=sender_id,
        message_id=message_id,
        timestamp=datetime.fromtimestamp(timestamp),
        input_type="audio",
        media_id=audio_id,
        mime_type=audio.get("mime_type") or DEFAULT_AUDIO_MIME_TYPE,
    )
