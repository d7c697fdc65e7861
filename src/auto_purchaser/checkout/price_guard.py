"""Gate the order commit on the rendered subtotal."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from ..browser.base import ElementQuery

LOGGER = logging.getLogger(__name__)


class PriceParseError(ValueError):
    """Raised when the rendered subtotal is not a number."""


def parse_price(text: str, currency_symbol: str = "$") -> Decimal:
    """Parse a rendered amount such as ``" $1,234.50 "``."""

    cleaned = text.strip()
    if cleaned.startswith(currency_symbol):
        cleaned = cleaned[len(currency_symbol) :]
    cleaned = cleaned.strip().replace(",", "")
    try:
        value = Decimal(cleaned)
    except InvalidOperation as exc:
        raise PriceParseError(f"Unable to parse price from {text!r}") from exc
    if not value.is_finite():
        raise PriceParseError(f"Unable to parse price from {text!r}")
    return value


class PriceGuard:
    """Compare the subtotal shown on the page against a ceiling."""

    def __init__(self, page: ElementQuery, selector: str = ".sub-total") -> None:
        self._page = page
        self._selector = selector

    async def check_subtotal(self, ceiling: Decimal) -> Optional[Decimal]:
        """Return ``None`` when the subtotal is within ``ceiling``, else the subtotal."""

        element = await self._page.locate(self._selector)
        observed = parse_price(await element.inner_html())
        LOGGER.info("Observed subtotal %s against ceiling %s", observed, ceiling)
        if observed <= ceiling:
            return None
        return observed
