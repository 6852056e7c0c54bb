"""Payment processor notification handler (Mercado Pago).

Flow:
  1. Extract data.id from the body; absent → 200 {"ok": false}, no side effects
  2. Re-read the payment from the Payments API (never trust the body)
  3. Upsert the payment record keyed by payment id (last write wins)
  4. Match payer email to a platform account; approved → entitlement
  5. Forward the normalized event to the account's webhook (best-effort)
  6. 200 {"ok": true}

Error taxonomy (retry storm prevention):
  (A) Missing payment id / unreadable body        → 200 {"ok": false}
  (D) Our misconfig (missing access token)        → 500 WEBHOOK_PROVIDER_MISCONFIG
  (E) Payments API network error / non-2xx / shape → 500 WEBHOOK_VERIFY_UPSTREAM_FAILED
  (F) Store / directory error                      → 500 WEBHOOK_INTERNAL_ERROR
  Delivery failures toward the user's endpoint are never surfaced here.
"""

import json as _json
import logging
import re
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from scaleturbo_api.auth.user_directory import DirectoryUser, get_user_directory
from scaleturbo_api.billing.mercadopago import PaymentShapeError, get_mercadopago_client
from scaleturbo_api.config.settings import Settings, get_settings
from scaleturbo_api.context import user_id_var
from scaleturbo_api.db.repo_payments import PaymentRepository
from scaleturbo_api.db.repo_profiles import ProfileRepository
from scaleturbo_api.db.session import get_db
from scaleturbo_api.problems import webhook_problem
from scaleturbo_api.schemas import NotificationAck, ProblemDetail
from scaleturbo_api.utils.sanitize import mask_email, payload_hash_bytes, sanitize_str
from scaleturbo_api.webhooks.dispatcher import WebhookDispatcher, get_webhook_dispatcher
from scaleturbo_api.webhooks.events import APPROVED, event_type_for_status

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)

PROVIDER = "mercadopago"


# Mercado Pago payment ids are numeric; anything else never reaches the
# read-back URL.
_PAYMENT_ID_RE = re.compile(r"[0-9]{1,32}")


def extract_payment_id(raw_body: bytes) -> Optional[str]:
    """Return ``data.id`` from a notification body as a string, if usable.

    Only non-empty strings and non-bool integers made of digits are accepted.
    ``0``, ``false``, containers and path-like values count as missing.
    """
    try:
        body = _json.loads(raw_body)
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    data = body.get("data")
    if not isinstance(data, dict):
        return None
    payment_id = data.get("id")
    if isinstance(payment_id, bool) or not isinstance(payment_id, (str, int)) or not payment_id:
        return None
    payment_id = str(payment_id)
    if not _PAYMENT_ID_RE.fullmatch(payment_id):
        return None
    return payment_id


@router.post(
    "/mercadopago",
    response_model=NotificationAck,
    responses={500: {"model": ProblemDetail}},
)
async def mercadopago_webhook(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    dispatcher: WebhookDispatcher = Depends(get_webhook_dispatcher),
):
    """Mercado Pago payment notification endpoint."""
    # ── Step 0: Raw body ingestion ───────────────────────────────────────────
    raw_body: bytes = await request.body()
    payload_hash = payload_hash_bytes(raw_body)
    payment_id = extract_payment_id(raw_body)

    logger.info(
        "WEBHOOK_RECEIVED",
        extra={"provider": PROVIDER, "payload_hash": payload_hash, "payload_size": len(raw_body)},
    )

    # ── Step 1: Payment id (A → 200 ok=false) ───────────────────────────────
    if not payment_id:
        logger.warning(
            "WEBHOOK_MISSING_PAYMENT_ID",
            extra={"provider": PROVIDER, "payload_hash": payload_hash},
        )
        return NotificationAck(ok=False)

    # ── Step 2: Processor client (D → 500) ──────────────────────────────────
    try:
        mp_client = get_mercadopago_client(settings)
    except ValueError:
        return webhook_problem(
            500,
            code="WEBHOOK_PROVIDER_MISCONFIG",
            title="Webhook provider misconfiguration",
            detail="Mercado Pago client is not properly configured",
            provider=PROVIDER,
            logger=logger,
        )

    # ── Step 3: Authoritative read-back (E → 500) ───────────────────────────
    try:
        payment = await mp_client.get_payment(payment_id)
    except httpx.RequestError as exc:
        return webhook_problem(
            500,
            code="WEBHOOK_VERIFY_UPSTREAM_FAILED",
            title="Payment lookup upstream failure",
            detail="Unable to fetch payment details due to upstream network error",
            provider=PROVIDER,
            logger=logger,
            extra={"payment_id": payment_id, "error_type": type(exc).__name__},
        )
    except httpx.HTTPStatusError as exc:
        return webhook_problem(
            500,
            code="WEBHOOK_VERIFY_UPSTREAM_FAILED",
            title="Payment lookup upstream failure",
            detail=f"Mercado Pago API returned HTTP {exc.response.status_code}",
            provider=PROVIDER,
            logger=logger,
            extra={"payment_id": payment_id, "upstream_status": exc.response.status_code},
        )
    except PaymentShapeError as exc:
        return webhook_problem(
            500,
            code="WEBHOOK_VERIFY_UPSTREAM_FAILED",
            title="Payment lookup upstream failure",
            detail=str(exc),
            provider=PROVIDER,
            logger=logger,
            extra={"payment_id": payment_id},
        )

    # ── Step 4: Record payment + entitlement (F → 500) ──────────────────────
    user: Optional[DirectoryUser] = None
    try:
        PaymentRepository(db).upsert(
            payment_id=payment.payment_id,
            email=payment.email,
            status=payment.status,
            amount=payment.amount_decimal,
            payment_method=payment.payment_type_id,
        )
        logger.info(
            "PAYMENT_UPSERTED",
            extra={
                "provider": PROVIDER,
                "payment_id": payment.payment_id,
                "status": payment.status,
                "payer_email": mask_email(payment.email),
            },
        )

        user = get_user_directory(settings).find_by_email(payment.email)

        if user is not None and payment.status == APPROVED:
            ProfileRepository(db).grant_premium(user.id, user.email)
            logger.info(
                "ENTITLEMENT_GRANTED",
                extra={"payment_id": payment.payment_id, "profile_id": user.id},
            )
    except Exception as exc:
        db.rollback()
        return webhook_problem(
            500,
            code="WEBHOOK_INTERNAL_ERROR",
            title="Internal processing error",
            detail=f"Failed to record payment: {sanitize_str(str(exc)) or type(exc).__name__}",
            provider=PROVIDER,
            logger=logger,
            extra={"payment_id": payment.payment_id, "error_type": type(exc).__name__},
        )

    # ── Step 5: Forward to the user's webhook (never fails the request) ─────
    if user is None:
        logger.info(
            "WEBHOOK_DISPATCH_SKIPPED_NO_USER",
            extra={"payment_id": payment.payment_id, "payer_email": mask_email(payment.email)},
        )
    else:
        user_id_var.set(user.id)
        event_type = event_type_for_status(payment.status)
        outcome = await dispatcher.dispatch(
            user.id,
            event_type,
            {
                "id": payment.payment_id,
                "email": payment.email,
                "amount": payment.transaction_amount,
                "status": payment.status,
                "payment_method": payment.payment_type_id,
            },
        )
        if outcome is not None and not outcome.success:
            logger.warning(
                "WEBHOOK_DISPATCH_FAILED",
                extra={
                    "payment_id": payment.payment_id,
                    "event_type": event_type.value,
                    "response_status": outcome.status_code,
                },
            )

    return NotificationAck(ok=True)
