"""Payment router - webhook endpoint for the payment collaborator"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from ...webhook_security import verify_payment_webhook
from .schemas import PaymentWebhookEvent, PaymentWebhookResponse
from .service import PaymentService

logger = logging.getLogger(__name__)

webhook_limit = create_rate_limiter(limit=100, window_seconds=60, key_prefix="payments_webhook")

router = APIRouter(prefix="/payments", tags=["Payments"])


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db)


@router.post(
    "/webhook",
    response_model=PaymentWebhookResponse,
    dependencies=[Depends(webhook_limit)],
)
async def handle_payment_webhook(
    request: Request,
    service: PaymentService = Depends(get_payment_service),
):
    """
    Payment status signal.

    Headers:
      - 'X-Salon-Timestamp': Unix timestamp (seconds)
      - 'X-Salon-Signature': 'v1,{base64(hmac_sha256(timestamp.payload))}'
    """
    raw_body = await verify_payment_webhook(request)

    try:
        event = PaymentWebhookEvent.model_validate_json(raw_body)
    except PydanticValidationError as e:
        logger.error(f"Failed to parse payment webhook: {e}")
        raise HTTPException(status_code=400, detail="Invalid webhook payload") from e

    return service.handle_webhook_event(event)
