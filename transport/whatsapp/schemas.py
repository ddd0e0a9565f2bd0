"""
WhatsApp Transport Layer - Pydantic Schemas

PURE DATA MODELS - NO LOGIC
Only defines the contract between WhatsApp and the relay.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_AUDIO_MIME_TYPE = "audio/ogg; codecs=opus"


# ============================================================================
# NORMALIZED MESSAGE (THE CONTRACT)
# ============================================================================

class NormalizedMessage(BaseModel):
    """
    Canonical inbound message the relay works with.

    Text messages carry input_text. Audio messages carry media_id and
    mime_type, and an empty input_text until transcribed.
    """

    model_config = ConfigDict(frozen=True)

    input_text: str = Field(
        ...,
        description="Message content. Empty for audio."
    )
    sender_id: str = Field(..., description="WhatsApp phone number of the sender")
    message_id: str = Field(..., description="Unique WhatsApp message ID")
    timestamp: datetime = Field(..., description="Message timestamp")
    transport: Literal["whatsapp"] = Field(
        "whatsapp",
        description="Always 'whatsapp' - identifies transport layer"
    )
    input_type: Literal["text", "audio"] = Field(
        ...,
        description="Content modality: text or audio"
    )
    media_id: Optional[str] = Field(
        None,
        description="Graph API media id (audio). None for text."
    )
    mime_type: Optional[str] = Field(
        None,
        description="Declared audio mime type. None for text."
    )


# ============================================================================
# WHATSAPP WEBHOOK PAYLOAD SCHEMAS (INPUT)
# ============================================================================

class WhatsAppWebhookPayload(BaseModel):
    """
    Full WhatsApp webhook payload.

    ref: https://developers.facebook.com/docs/whatsapp/cloud-api/webhooks/payload-example
    """

    model_config = ConfigDict(extra="allow")  # WhatsApp may add fields

    object: str = Field(..., description="Always 'whatsapp_business_account'")
    entry: list[dict] = Field(..., description="Webhook entries")


# ============================================================================
# WHATSAPP API RESPONSES
# ============================================================================

class WhatsAppMessageResponse(BaseModel):
    """Response from WhatsApp Cloud API when sending a message."""

    model_config = ConfigDict(extra="allow")

    messaging_product: str = Field(default="whatsapp")
    contacts: list[dict[str, str]] = Field(default_factory=list)
    messages: list[dict[str, str]] = Field(default_factory=list)

    @property
    def message_id(self) -> Optional[str]:
        if not self.messages:
            return None
        return self.messages[0].get("id")


class MediaInfo(BaseModel):
    """Response from GET /{media_id}."""

    model_config = ConfigDict(extra="allow")

    url: str
    mime_type: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class MediaContent:
    """Downloaded media kept in memory."""

    data: bytes
    mime_type: str = DEFAULT_AUDIO_MIME_TYPE
