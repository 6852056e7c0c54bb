"""Payment record repository (upsert-only)."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from scaleturbo_api.db.models import Payment
from scaleturbo_api.db.upsert import upsert

logger = logging.getLogger(__name__)

_MUTABLE_COLUMNS = ("email", "status", "amount", "payment_method", "observed_at")


class PaymentRepository:
    """Payment Record Store keyed by the processor's payment id."""

    def __init__(self, db: Session):
        self.db = db

    def upsert(
        self,
        *,
        payment_id: str,
        email: Optional[str],
        status: str,
        amount: Optional[Decimal],
        payment_method: Optional[str],
        observed_at: Optional[datetime] = None,
    ) -> Payment:
        """Insert or overwrite the record for ``payment_id`` and commit.

        Last write wins: concurrent or out-of-order notifications for the
        same payment are not serialized.
        """
        upsert(
            self.db,
            Payment,
            {
                "payment_id": payment_id,
                "email": email,
                "status": status,
                "amount": amount,
                "payment_method": payment_method,
                "observed_at": observed_at or datetime.now(timezone.utc),
            },
            conflict_columns=("payment_id",),
            update_columns=_MUTABLE_COLUMNS,
        )
        self.db.commit()

        payment = self.get(payment_id)
        assert payment is not None
        return payment

    def get(self, payment_id: str) -> Optional[Payment]:
        # populate_existing: the upsert bypasses the identity map
        return self.db.get(Payment, payment_id, populate_existing=True)

    def count(self, payment_id: str) -> int:
        return self.db.query(Payment).filter(Payment.payment_id == payment_id).count()
