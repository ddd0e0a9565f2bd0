"""
WhatsApp Message Sender

Sends one text message through the WhatsApp Cloud API.
No splitting. No retries. Long replies go through MessageDispatcher.
"""

import logging
from typing import Optional

import httpx

from .schemas import WhatsAppMessageResponse

logger = logging.getLogger(__name__)

GRAPH_API_BASE_URL = "https://graph.facebook.com"
DEFAULT_API_VERSION = "v19.0"


class WhatsAppSenderError(Exception):
    """Failed to send a message to WhatsApp."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class WhatsAppSender:
    """
    Single-message send primitive.

    Credentials are injected at construction. Calling the instance is the
    same as send_text, so it can be handed to MessageDispatcher directly.
    """

    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        api_version: str = DEFAULT_API_VERSION,
        base_url: str = GRAPH_API_BASE_URL,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.access_token = access_token
        self.phone_number_id = phone_number_id
        self.api_version = api_version
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{self.api_version}/{self.phone_number_id}/messages"

    async def __call__(self, recipient: str, body: str) -> WhatsAppMessageResponse:
        return await self.send_text(recipient, body)

    async def send_text(self, recipient: str, body: str) -> WhatsAppMessageResponse:
        """
        Send a text message.

        Args:
            recipient: WhatsApp phone number
            body: Message text, at most 4096 characters

        Returns:
            WhatsAppMessageResponse from Meta API

        Raises:
            WhatsAppSenderError: Missing credentials, HTTP error or non-2xx reply
        """
        if not self.access_token:
            raise WhatsAppSenderError("WHATSAPP_ACCESS_TOKEN not configured")
        if not self.phone_number_id:
            raise WhatsAppSenderError("WHATSAPP_PHONE_NUMBER_ID not configured")

        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": recipient,
            "type": "text",
            "text": {"body": body},
        }
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

        logger.debug(f"Sending message to {recipient} ({len(body)} chars)")

        try:
            if self._client is not None:
                response = await self._client.post(
                    self.endpoint, json=payload, headers=headers, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        self.endpoint, json=payload, headers=headers, timeout=self.timeout
                    )
        except httpx.RequestError as e:
            logger.error(
                f"HTTP request failed: {e}",
                exc_info=True,
                extra={"recipient": recipient, "error": str(e)},
            )
            raise WhatsAppSenderError(f"HTTP request failed: {e}")

        if not response.is_success:
            error_text = response.text
            logger.error(
                f"WhatsApp API error: {response.status_code} - {error_text}",
                extra={
                    "recipient": recipient,
                    "status_code": response.status_code,
                    "error_body": error_text,
                },
            )
            raise WhatsAppSenderError(
                f"WhatsApp API returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            result = WhatsAppMessageResponse(**response.json())
        except ValueError:
            result = WhatsAppMessageResponse()

        logger.info(
            "Message sent successfully.",
            extra={"recipient": recipient, "response_id": result.message_id},
        )
        return result
