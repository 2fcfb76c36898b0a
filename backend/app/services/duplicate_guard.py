"""Duplicate order guard.

Rejects a second submission from the same client session carrying the same
total within a short window (default 30 seconds). This catches double taps
and client retries after a slow response.

It is a heuristic, not an idempotency key:
- two different carts with the same total from one session inside the
  window collide, and the second is rejected;
- a resubmission with a different total is not caught;
- the check and the later insert are not atomic, so two truly simultaneous
  submissions can both pass. Writers are serialised per stock row, not per
  session.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import DuplicateOrder
from app.models.order import Order

logger = logging.getLogger(__name__)


class DuplicateGuard:
    def __init__(self, db: Session, window_seconds: Optional[int] = None):
        self.db = db
        self.window = timedelta(seconds=window_seconds or settings.duplicate_order_window_seconds)

    def find_recent(self, session_id: str, total_amount: Decimal, now: datetime) -> Optional[Order]:
        return self.db.execute(
            select(Order)
            .where(
                Order.session_id == session_id,
                Order.total_amount == total_amount,
                Order.created_at >= now - self.window,
            )
            .order_by(Order.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def check(self, session_id: str, total_amount: Decimal, now: datetime) -> None:
        existing = self.find_recent(session_id, total_amount, now)
        if existing is not None:
            logger.info(
                f"Duplicate order rejected: session={session_id} total={total_amount} "
                f"matches order {existing.id}"
            )
            raise DuplicateOrder(session_id)
