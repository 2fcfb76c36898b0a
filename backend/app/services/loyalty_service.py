"""Loyalty updater: credits a known customer when their order commits."""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.customer import Customer

logger = logging.getLogger(__name__)


def points_for(total_amount: Decimal, spend_per_point: Optional[int] = None) -> int:
    """One point per full ``spend_per_point`` spent, rounded down."""
    per_point = spend_per_point or settings.loyalty_spend_per_point
    return int(Decimal(total_amount) // per_point)


class LoyaltyService:
    def __init__(self, db: Session):
        self.db = db

    def credit(self, customer_id: int, total_amount: Decimal) -> int:
        """Increment points, spend and visits in one atomic UPDATE.

        Column-level increments, not read-modify-write, so concurrent orders
        for the same customer never lose an update. Does not commit.
        Returns the points awarded.
        """
        points = points_for(total_amount)
        self.db.execute(
            update(Customer)
            .where(Customer.id == customer_id)
            .values(
                loyalty_points=Customer.loyalty_points + points,
                total_spent=Customer.total_spent + total_amount,
                visit_count=Customer.visit_count + 1,
            )
            .execution_options(synchronize_session=False)
        )
        logger.debug(f"Customer {customer_id} credited {points} points for {total_amount}")
        return points
