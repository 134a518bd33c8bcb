"""
Webhook Security Module

Signature verification for the payment collaborator's webhook:
- HMAC-SHA256 over ``timestamp.body``, sent as ``X-Salon-Signature: v1,<base64>``
- Constant-time signature comparison
- Timestamp validation against a maximum age (replay window)
"""

import base64
import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

from . import config

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Salon-Signature"
TIMESTAMP_HEADER = "X-Salon-Timestamp"
SIGNATURE_VERSION = "v1"


class WebhookSignatureError(Exception):
    """Raised when webhook signature verification fails"""

    pass


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_signature(secret: str, timestamp: str, payload: bytes) -> str:
    """Base64 HMAC-SHA256 of ``timestamp.payload``"""
    signed_message = timestamp.encode("utf-8") + b"." + payload
    digest = hmac.new(secret.encode("utf-8"), signed_message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def sign_payload(secret: str, timestamp: str, payload: bytes) -> str:
    """Header value a sender attaches: ``v1,<signature>``"""
    return f"{SIGNATURE_VERSION},{compute_signature(secret, timestamp, payload)}"


def verify_timestamp(
    timestamp: Optional[str],
    max_age: int = config.PAYMENT_WEBHOOK_MAX_AGE_SECONDS,
    now: Optional[float] = None,
) -> bool:
    """
    Verify webhook timestamp is within acceptable range.
    Prevents replay attacks by rejecting old webhooks.

    Args:
        timestamp: Unix timestamp as string
        max_age: Maximum age in seconds
        now: Current Unix time, defaults to time.time()

    Returns:
        True if timestamp is valid, False otherwise
    """
    if not timestamp:
        return False

    try:
        webhook_time = int(timestamp)
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    current_time = int(now if now is not None else time.time())
    age = abs(current_time - webhook_time)
    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


def verify_signature(
    secret: str,
    signature_header: Optional[str],
    timestamp: Optional[str],
    payload: bytes,
    now: Optional[float] = None,
) -> None:
    """Raise WebhookSignatureError unless the headers authenticate ``payload``"""
    if not secret:
        raise WebhookSignatureError("Webhook secret is not configured")
    if not signature_header:
        raise WebhookSignatureError("Missing webhook signature")
    if not timestamp:
        raise WebhookSignatureError("Missing webhook timestamp")
    if not verify_timestamp(timestamp, config.PAYMENT_WEBHOOK_MAX_AGE_SECONDS, now):
        raise WebhookSignatureError("Webhook timestamp expired")

    version, _, received = signature_header.partition(",")
    if version != SIGNATURE_VERSION or not received:
        raise WebhookSignatureError("Invalid signature format")

    expected = compute_signature(secret, timestamp, payload)
    if not constant_time_compare(expected, received):
        raise WebhookSignatureError("Invalid webhook signature")


async def verify_payment_webhook(request: Request) -> bytes:
    """
    FastAPI helper: verify the request and return its raw body.

    The body is read before any parsing; the signature covers the exact bytes.
    Raises HTTPException(401) on any verification failure.
    """
    raw_body = await request.body()
    try:
        verify_signature(
            config.PAYMENT_WEBHOOK_SECRET,
            request.headers.get(SIGNATURE_HEADER),
            request.headers.get(TIMESTAMP_HEADER),
            raw_body,
        )
    except WebhookSignatureError as e:
        logger.error(f"❌ Payment webhook rejected: {e}")
        raise HTTPException(status_code=401, detail=str(e)) from e

    logger.info(f"✅ Payment webhook signature verified ({len(raw_body)} bytes)")
    return raw_body
