"""Element query abstractions shared by page and element scopes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from .query import ElementRef


class ElementNotFoundError(LookupError):
    """Raised when a selector does not resolve to any element."""

    def __init__(self, selector: str) -> None:
        super().__init__(f"No element matches selector {selector!r}")
        self.selector = selector


class ElementQuery(Protocol):
    """Locate and act on elements within a scope (the document or one element)."""

    async def locate(self, selector: str) -> ElementRef:
        """Return the first match or raise :class:`ElementNotFoundError`. Never waits."""

    async def locate_all(self, selector: str) -> Sequence[ElementRef]:
        """Return every match; an empty result is not an error."""

    async def wait_locate(self, selector: str, timeout_ms: int) -> Optional[ElementRef]:
        """Return a match as soon as one appears, or ``None`` once ``timeout_ms`` elapses."""

    async def type_into(self, selector: str, text: str) -> None:
        """Locate an input and send ``text`` to it."""

    async def click_on(self, selector: str) -> None:
        """Locate an element and click it."""

    async def select_value(self, selector: str, value: str) -> None:
        """Locate a ``<select>`` and pick the option whose value is ``value``."""
