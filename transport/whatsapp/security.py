"""
WhatsApp Webhook Security

Subscription handshake and Meta HMAC signature check.
"""

import hashlib
import hmac
from typing import Optional

from fastapi import HTTPException, Request, status


def compute_signature(body: bytes, app_secret: str) -> str:
    """Value Meta puts in X-Hub-Signature-256 for this body."""
    return "sha256=" + hmac.new(
        key=app_secret.encode("utf-8"),
        msg=body,
        digestmod=hashlib.sha256
    ).hexdigest()


async def verify_signature(
    request: Request,
    body: bytes,
    app_secret: Optional[str],
) -> None:
    """
    Verify Meta HMAC-SHA256 signature on a WhatsApp webhook.

    Verification only runs when an app secret is configured.

    Raises:
        HTTPException(401): Missing signature
        HTTPException(403): Invalid signature
    """
    if not app_secret:
        return

    signature = request.headers.get("X-Hub-Signature-256")
    if not signature:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Hub-Signature-256 header"
        )

    # Constant-time compare
    expected = compute_signature(body, app_secret)
    if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid signature"
        )


def verify_webhook_challenge(
    hub_mode: Optional[str],
    hub_challenge: Optional[str],
    hub_verify_token: Optional[str],
    expected_token: str,
) -> str:
    """
    Verify webhook subscription challenge from WhatsApp.

    WhatsApp calls GET /webhook with:
    - hub.mode=subscribe
    - hub.challenge=random_string
    - hub.verify_token=configured_token

    Returns:
        The challenge string to echo back

    Raises:
        HTTPException(400): mode or token missing
        HTTPException(403): wrong mode or token
    """
    if not hub_mode or not hub_verify_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing hub.mode or hub.verify_token"
        )

    if hub_mode != "subscribe" or not expected_token or not hmac.compare_digest(
        hub_verify_token.encode("utf-8"), expected_token.encode("utf-8")
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid hub.mode or hub.verify_token"
        )

    return hub_challenge or ""
