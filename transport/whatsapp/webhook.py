"""
WhatsApp Webhook Receiver

FastAPI router for the Meta webhook:
- GET  /webhook  subscription handshake
- POST /webhook  inbound messages → reply via MessageDispatcher

The webhook is acknowledged first; replies are built and delivered in a
background task so long multi-part replies never hold up the response.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse

from infra.bootstrap import InfraBootstrap, bootstrap_infrastructure
from services.stt import STTBackend, STTRequest

from .dispatcher import DeliveryResult, MessageDispatcher
from .media import WhatsAppMediaClient, WhatsAppMediaError
from .normalize import NormalizationError, UnsupportedMessageType, extract_message, normalize_message
from .schemas import NormalizedMessage
from .security import verify_signature, verify_webhook_challenge

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WhatsApp Transport"])

AUDIO_FAILURE_REPLY = "Sorry, I couldn't process your audio right now."


def get_infra() -> InfraBootstrap:
    """Dependency: process-wide infrastructure (overridden in tests)."""
    return bootstrap_infrastructure()


# ============================================================================
# WEBHOOK CHALLENGE (Setup only)
# ============================================================================

@router.get("/webhook", response_class=PlainTextResponse)
async def whatsapp_webhook_challenge(
    hub_mode: Optional[str] = Query(None, alias="hub.mode"),
    hub_verify_token: Optional[str] = Query(None, alias="hub.verify_token"),
    hub_challenge: Optional[str] = Query(None, alias="hub.challenge"),
    infra: InfraBootstrap = Depends(get_infra),
) -> str:
    """
    Verify webhook subscription challenge from Meta.

    Returns:
        The challenge string (plain text)

    Raises:
        HTTPException(400): mode or token missing
        HTTPException(403): Invalid mode or token
    """
    logger.info("Webhook verification requested")
    challenge = verify_webhook_challenge(
        hub_mode,
        hub_challenge,
        hub_verify_token,
        expected_token=infra.config.whatsapp_verify_token,
    )
    logger.info("WEBHOOK_VERIFIED")
    return challenge


# ============================================================================
# WEBHOOK RECEIVER (Message processing)
# ============================================================================

@router.post("/webhook")
async def whatsapp_webhook_receiver(
    request: Request,
    background_tasks: BackgroundTasks,
    infra: InfraBootstrap = Depends(get_infra),
) -> dict[str, str]:
    """
    Receive WhatsApp messages via webhook.

    Flow:
    1. Parse raw payload
    2. Verify signature when an app secret is configured
    3. Normalize text/audio message
    4. Schedule reply delivery, acknowledge with 200

    Raises:
        HTTPException(422): Invalid JSON
        HTTPException(401/403): Missing or invalid signature
        HTTPException(404): Not a WhatsApp message event
        HTTPException(400): Malformed message
    """
    body = await request.body()
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Invalid JSON payload"
        )

    await verify_signature(request, body, infra.config.whatsapp_app_secret)

    if extract_message(payload) is None:
        logger.debug("Webhook event without a message")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No message")

    try:
        normalized = normalize_message(payload)
    except UnsupportedMessageType as e:
        logger.info(f"Ignoring {e.message_type} message")
        return {"status": "ignored"}
    except NormalizationError as e:
        logger.warning(f"Normalization failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Normalization failed: {str(e)}"
        )

    logger.info(
        f"Received {normalized.input_type} message from {normalized.sender_id}",
        extra={
            "sender_id": normalized.sender_id,
            "message_id": normalized.message_id,
            "input_type": normalized.input_type,
        }
    )

    background_tasks.add_task(
        process_message,
        normalized,
        infra.get_dispatcher(),
        infra.get_media_client(),
        infra.get_stt_backend(),
    )
    return {"status": "ok"}


# ============================================================================
# REPLY PIPELINE
# ============================================================================

async def process_message(
    message: NormalizedMessage,
    dispatcher: MessageDispatcher,
    media_client: WhatsAppMediaClient,
    stt_backend: STTBackend,
) -> Optional[DeliveryResult]:
    """
    Build the reply for one inbound message and deliver it.

    Runs as a background task: failures are logged, never raised.
    """
    try:
        if message.input_type == "audio":
            reply = await build_audio_reply(message, media_client, stt_backend)
        else:
            reply = f"You said: {message.input_text}"

        result = await dispatcher.deliver(message.sender_id, reply)
    except Exception as e:
        logger.error(
            f"Unexpected error handling message {message.message_id}: {e}",
            exc_info=True,
            extra={"sender_id": message.sender_id, "message_id": message.message_id},
        )
        return None

    if result.ok:
        logger.info(
            f"Reply delivered to {message.sender_id}",
            extra={
                "sender_id": message.sender_id,
                "message_id": message.message_id,
                "status": result.status,
                "total_chunks": result.total_chunks,
            }
        )
    else:
        logger.error(
            f"Reply to {message.sender_id} not delivered: {result.error}",
            extra={
                "sender_id": message.sender_id,
                "message_id": message.message_id,
                "status": result.status,
                "chunks_sent": result.chunks_sent,
                "total_chunks": result.total_chunks,
            }
        )
    return result


async def build_audio_reply(
    message: NormalizedMessage,
    media_client: WhatsAppMediaClient,
    stt_backend: STTBackend,
) -> str:
    """Download and transcribe a voice note; apology text on any failure."""
    logger.info(f"Received audio message with ID: {message.media_id} from {message.sender_id}")

    try:
        media = await media_client.fetch(message.media_id, message.mime_type)
    except WhatsAppMediaError as e:
        logger.error(f"Error processing audio: {e}", extra={"media_id": message.media_id})
        return AUDIO_FAILURE_REPLY

    response = await stt_backend.transcribe(
        STTRequest(
            audio_data=media.data,
            mime_type=media.mime_type,
            message_id=message.message_id,
        )
    )
    if not response.ok:
        logger.error(
            f"Transcription failed: {response.error_type}",
            extra={"media_id": message.media_id, "status": response.status},
        )
        return AUDIO_FAILURE_REPLY

    return f"Transcription: {response.text}"
