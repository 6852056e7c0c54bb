"""Mercado Pago API client.

Notifications from Mercado Pago only carry the payment id. The authoritative
payment state is always re-read from the Payments API; notification body
fields are never trusted.

Mercado Pago API Reference:
- Get payment: https://www.mercadopago.com.br/developers/en/reference/payments/_payments_id/get
- Notifications: https://www.mercadopago.com.br/developers/en/docs/your-integrations/notifications/webhooks
"""

import logging
from decimal import Decimal
from typing import Optional, Union
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from scaleturbo_api.config.settings import Settings

logger = logging.getLogger(__name__)


class PaymentShapeError(ValueError):
    """Payments API answered 2xx with a body that is not a usable payment."""


class MercadoPagoPayer(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = None


class MercadoPagoPayment(BaseModel):
    """Subset of the Payments API resource the pipeline relies on."""

    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    status: str = Field(min_length=1)
    payer: MercadoPagoPayer = Field(default_factory=MercadoPagoPayer)
    transaction_amount: Optional[float] = None
    payment_type_id: Optional[str] = None

    @field_validator("payer", mode="before")
    @classmethod
    def _payer_none_is_empty(cls, value):
        return {} if value is None else value

    @property
    def payment_id(self) -> str:
        return str(self.id)

    @property
    def email(self) -> Optional[str]:
        return self.payer.email

    @property
    def amount_decimal(self) -> Optional[Decimal]:
        if self.transaction_amount is None:
            return None
        return Decimal(str(self.transaction_amount))


class MercadoPagoClient:
    """Mercado Pago Payments API client.

    Configuration comes from Settings:
    - mercadopago_access_token: APP_USR-* (live) or TEST-* (sandbox)
    - mercadopago_api_base_url: defaults to https://api.mercadopago.com
    """

    def __init__(
        self,
        access_token: Optional[str],
        *,
        base_url: str = "https://api.mercadopago.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not access_token:
            raise ValueError(
                "MERCADO_PAGO_ACCESS_TOKEN is required. Set it in environment configuration."
            )

        self.access_token = access_token
        self.env = "sandbox" if access_token.startswith("TEST-") else "live"
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _get_auth_header(self) -> str:
        return f"Bearer {self.access_token}"

    async def get_payment(self, payment_id: str) -> MercadoPagoPayment:
        """Get authoritative payment details.

        Args:
            payment_id: Mercado Pago payment id from the notification

        Returns:
            Parsed payment

        Raises:
            httpx.RequestError: Network / timeout failure
            httpx.HTTPStatusError: Non-2xx answer from the Payments API
            PaymentShapeError: Body is not JSON or misses id/status
        """
        url = f"{self.base_url}/v1/payments/{quote(payment_id, safe='')}"

        headers = {
            "Authorization": self._get_auth_header(),
        }

        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.get(url, headers=headers, timeout=self.timeout)
            response.raise_for_status()

            try:
                payment = MercadoPagoPayment.model_validate(response.json())
            except (ValueError, ValidationError) as exc:
                raise PaymentShapeError(
                    f"Unexpected Mercado Pago payment payload for id {payment_id}"
                ) from exc

        logger.info(
            "Mercado Pago payment retrieved",
            extra={
                "event": "mercadopago.payment.retrieved",
                "payment_id": payment.payment_id,
                "status": payment.status,
                "mp_env": self.env,
            },
        )
        return payment


def get_mercadopago_client(settings: Settings) -> MercadoPagoClient:
    """Build a Mercado Pago client from injected settings.

    Raises:
        ValueError: If the access token is not configured
    """
    return MercadoPagoClient(
        settings.mercadopago_access_token,
        base_url=settings.mercadopago_api_base_url,
        timeout=settings.mercadopago_timeout_seconds,
    )
