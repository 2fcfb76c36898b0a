"""Availability policy: kitchen switch and per-item time-of-day windows.

Customer-facing orders (storefront, QR) are validated strictly. Orders keyed
in by staff at the POS are trusted: staff may sell while the kitchen switch
is off, outside an item's window and against stock the system believes is
exhausted. Every bypass is decided here, through ``ValidationMode``, rather
than by checking the order source at each call site.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Protocol
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.core.exceptions import ItemUnavailable, KitchenClosed
from app.models.menu import DEFAULT_WINDOW_END, DEFAULT_WINDOW_START, MenuItem
from app.models.order import OrderSource

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


class ValidationMode(str, Enum):
    """How much customer-facing gating an order goes through."""

    STRICT = "strict"
    TRUSTED = "trusted"

    @classmethod
    def for_source(cls, source: OrderSource) -> "ValidationMode":
        return cls.TRUSTED if source == OrderSource.POS else cls.STRICT

    @property
    def enforces_stock(self) -> bool:
        return self is ValidationMode.STRICT


class KitchenSettings(Protocol):
    """Read access to the global kitchen switch."""

    def is_kitchen_open(self) -> bool: ...


def is_available(now_hhmm: str, start: str, end: str) -> bool:
    """Return True if ``now_hhmm`` falls inside the [start, end] window.

    All values are zero-padded "HH:MM" strings, so string comparison orders
    them correctly. A window whose start is after its end wraps midnight.
    """
    if start <= end:
        return start <= now_hhmm <= end
    return now_hhmm >= start or now_hhmm <= end


class AvailabilityPolicy:
    """Decides whether an order may be taken and whether each item is orderable."""

    def __init__(
        self,
        mode: ValidationMode,
        kitchen: KitchenSettings,
        clock: Clock = utc_clock,
        tz: Optional[str] = None,
    ):
        self.mode = mode
        self.kitchen = kitchen
        self.clock = clock
        self.tz = ZoneInfo(tz or settings.timezone)

    def current_hhmm(self) -> str:
        """The local wall-clock time as "HH:MM"."""
        return self.clock().astimezone(self.tz).strftime("%H:%M")

    def ensure_kitchen_open(self) -> None:
        if self.mode is ValidationMode.TRUSTED:
            return
        if not self.kitchen.is_kitchen_open():
            logger.info("Order rejected: kitchen is closed")
            raise KitchenClosed()

    def ensure_orderable(self, menu_item: MenuItem, now_hhmm: Optional[str] = None) -> None:
        """Raise ItemUnavailable if a strict-mode order may not include this item."""
        if self.mode is ValidationMode.TRUSTED:
            return

        if not menu_item.in_stock:
            raise ItemUnavailable(f"{menu_item.name} is out of stock")

        if not menu_item.is_time_bound:
            return

        start = menu_item.available_start or DEFAULT_WINDOW_START
        end = menu_item.available_end or DEFAULT_WINDOW_END
        now_hhmm = now_hhmm or self.current_hhmm()
        if not is_available(now_hhmm, start, end):
            raise ItemUnavailable(f"{menu_item.name} is only available between {start} and {end}")
