"""WhatsApp Transport Layer - Module Exports

The FastAPI router lives in transport.whatsapp.webhook and is imported
from there, since it depends on infra.
"""

from .dispatcher import (
    MAX_MESSAGE_LENGTH,
    PREFIX_RESERVATION,
    DeliveryResult,
    MessageChunk,
    MessageDispatcher,
    plan_delivery,
    render_payload,
)
from .media import MediaContent, WhatsAppMediaClient, WhatsAppMediaError
from .normalize import (
    NormalizationError,
    UnsupportedMessageType,
    extract_message,
    normalize_message,
)
from .schemas import (
    NormalizedMessage,
    WhatsAppMessageResponse,
    WhatsAppWebhookPayload,
)
from .security import compute_signature, verify_signature, verify_webhook_challenge
from .sender import WhatsAppSender, WhatsAppSenderError

__all__ = [
    # Dispatcher
    "MAX_MESSAGE_LENGTH",
    "PREFIX_RESERVATION",
    "MessageDispatcher",
    "MessageChunk",
    "DeliveryResult",
    "plan_delivery",
    "render_payload",
    # Schemas
    "NormalizedMessage",
    "WhatsAppWebhookPayload",
    "WhatsAppMessageResponse",
    "MediaContent",
    # Normalization
    "normalize_message",
    "extract_message",
    "NormalizationError",
    "UnsupportedMessageType",
    # Security
    "compute_signature",
    "verify_signature",
    "verify_webhook_challenge",
    # Sender / media
    "WhatsAppSender",
    "WhatsAppSenderError",
    "WhatsAppMediaClient",
    "WhatsAppMediaError",
]
