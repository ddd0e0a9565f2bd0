"""
WhatsApp Media Download

Resolves a media id to its download URL and pulls the bytes into memory.
Nothing is written to disk.
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from .schemas import DEFAULT_AUDIO_MIME_TYPE, MediaContent, MediaInfo
from .sender import DEFAULT_API_VERSION, GRAPH_API_BASE_URL

logger = logging.getLogger(__name__)


class WhatsAppMediaError(Exception):
    """Failed to resolve or download media."""
    pass


class WhatsAppMediaClient:
    """Two-step Graph API media fetch: metadata, then content."""

    def __init__(
        self,
        access_token: str,
        api_version: str = DEFAULT_API_VERSION,
        base_url: str = GRAPH_API_BASE_URL,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.access_token = access_token
        self.api_version = api_version
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def fetch(self, media_id: str, mime_type: Optional[str] = None) -> MediaContent:
        """
        Download media by id.

        Args:
            media_id: Graph API media id from the webhook
            mime_type: Mime type declared in the webhook, if any

        Returns:
            MediaContent with raw bytes

        Raises:
            WhatsAppMediaError: Lookup or download failed
        """
        if not self.access_token:
            raise WhatsAppMediaError("WHATSAPP_ACCESS_TOKEN not configured")

        if self._client is not None:
            return await self._fetch(self._client, media_id, mime_type)

        async with httpx.AsyncClient() as client:
            return await self._fetch(client, media_id, mime_type)

    async def _fetch(
        self,
        client: httpx.AsyncClient,
        media_id: str,
        mime_type: Optional[str],
    ) -> MediaContent:
        headers = {"Authorization": f"Bearer {self.access_token}"}

        try:
            # Step 1: Resolve download URL
            info_response = await client.get(
                f"{self.base_url}/{self.api_version}/{media_id}",
                headers=headers,
                timeout=self.timeout,
            )
            if not info_response.is_success:
                raise WhatsAppMediaError(
                    f"Media lookup for {media_id} returned {info_response.status_code}: "
                    f"{info_response.text}"
                )
            info = MediaInfo(**info_response.json())

            # Step 2: Download content
            file_response = await client.get(info.url, headers=headers, timeout=self.timeout)
            if not file_response.is_success:
                raise WhatsAppMediaError(
                    f"Media download for {media_id} returned {file_response.status_code}"
                )
        except httpx.RequestError as e:
            raise WhatsAppMediaError(f"HTTP request failed: {e}")
        except (ValueError, ValidationError) as e:
            raise WhatsAppMediaError(f"Unexpected media lookup response: {e}")

        logger.debug(
            f"Downloaded {len(file_response.content)} bytes for media {media_id}",
            extra={"media_id": media_id},
        )
        return MediaContent(
            data=file_response.content,
            mime_type=mime_type or info.mime_type or DEFAULT_AUDIO_MIME_TYPE,
        )
