"""Shared models used across the auto purchaser."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field


class CheckoutStep(str, enum.Enum):
    """Ordered states of the checkout state machine."""

    AUTHENTICATE = "authenticate"
    CLEAR_CART = "clear_cart"
    NAVIGATE_TO_PRODUCT = "navigate_to_product"
    SELECT_VARIANTS = "select_variants"
    ADD_TO_CART = "add_to_cart"
    FILL_SHIPPING = "fill_shipping"
    ENSURE_NO_SUBSCRIBE = "ensure_no_subscribe"
    SUBMIT_SHIPPING = "submit_shipping"
    FILL_PAYMENT = "fill_payment"
    PRICE_GUARD = "price_guard"
    COMMIT_OR_ABORT = "commit_or_abort"


class PurchaseOutcome(str, enum.Enum):
    """Terminal business outcomes of a run."""

    PURCHASED = "purchased"
    UNAVAILABLE = "unavailable"
    PRICE_EXCEEDED = "price_exceeded"
    DRY_RUN = "dry_run"


class PurchaseResult(BaseModel):
    """Result reported by the checkout orchestrator."""

    outcome: PurchaseOutcome
    subtotal: Optional[Decimal] = Field(
        default=None,
        description="Subtotal observed by the price guard, if it was reached.",
    )
    ceiling: Optional[Decimal] = None
    last_step: CheckoutStep


class NotificationLevel(str, enum.Enum):
    """Severity of notification events."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class NotificationEvent(BaseModel):
    """Event emitted to report a run outcome."""

    type: str
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
