"""Document- and element-scoped implementations of :class:`ElementQuery`."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

from ..webdriver.client import NoSuchElementError, WebDriverClient
from .base import ElementNotFoundError

LOGGER = logging.getLogger(__name__)

ELEMENT_WAIT_ATTEMPTS = 10


@dataclass(frozen=True)
class ElementRef:
    """Handle to a located DOM node. Stale after any navigation."""

    client: WebDriverClient
    element_id: str
    selector: str

    def query(self) -> "ElementScopeQuery":
        return ElementScopeQuery(self.client, self)

    async def click(self) -> None:
        await self.client.element_click(self.element_id)

    async def clear(self) -> None:
        await self.client.element_clear(self.element_id)

    async def send_keys(self, text: str) -> None:
        await self.client.element_send_keys(self.element_id, text)

    async def attribute(self, name: str) -> Optional[str]:
        return await self.client.element_attribute(self.element_id, name)

    async def is_checked(self) -> bool:
        return await self.attribute("checked") is not None

    async def is_disabled(self) -> bool:
        return await self.attribute("disabled") is not None

    async def inner_html(self) -> str:
        value = await self.client.element_property(self.element_id, "innerHTML")
        return "" if value is None else str(value)

    async def select_by_index(self, index: int) -> None:
        options = await self.query().locate_all("option")
        if not 0 <= index < len(options):
            raise ElementNotFoundError(f"{self.selector} option[{index}]")
        await options[index].click()

    async def select_by_value(self, value: str) -> None:
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        option = await self.query().locate(f'option[value="{escaped}"]')
        await option.click()


class _ScopedQuery:
    """Operations common to both scopes; subclasses supply lookup and waiting."""

    clears_before_typing = False

    def __init__(self, client: WebDriverClient) -> None:
        self._client = client

    @property
    def _parent_id(self) -> Optional[str]:
        return None

    async def locate(self, selector: str) -> ElementRef:
        try:
            element_id = await self._client.find_element(selector, parent=self._parent_id)
        except NoSuchElementError as exc:
            raise ElementNotFoundError(selector) from exc
        return ElementRef(self._client, element_id, selector)

    async def locate_all(self, selector: str) -> List[ElementRef]:
        element_ids = await self._client.find_elements(selector, parent=self._parent_id)
        return [ElementRef(self._client, element_id, selector) for element_id in element_ids]

    async def type_into(self, selector: str, text: str) -> None:
        element = await self.locate(selector)
        if self.clears_before_typing:
            await element.clear()
        await element.send_keys(text)

    async def click_on(self, selector: str) -> None:
        element = await self.locate(selector)
        await element.click()

    async def select_value(self, selector: str, value: str) -> None:
        element = await self.locate(selector)
        await element.select_by_value(value)


class PageQuery(_ScopedQuery):
    """Queries against the whole document of the current session."""

    clears_before_typing = True

    async def goto(self, url: str) -> None:
        LOGGER.debug("Navigating to %s", url)
        await self._client.navigate(url)

    async def wait_locate(self, selector: str, timeout_ms: int) -> Optional[ElementRef]:
        await self._client.set_implicit_wait(timeout_ms)
        try:
            element_id = await asyncio.wait_for(
                self._client.find_element(selector, implicit_wait_ms=timeout_ms),
                timeout=timeout_ms / 1000,
            )
        except (NoSuchElementError, asyncio.TimeoutError):
            LOGGER.debug("No match for %s within %sms", selector, timeout_ms)
            return None
        finally:
            await self._client.set_implicit_wait(0)
        return ElementRef(self._client, element_id, selector)


class ElementScopeQuery(_ScopedQuery):
    """Queries scoped to the descendants of one element.

    The protocol has no element-scoped wait, so ``wait_locate`` polls.
    """

    def __init__(self, client: WebDriverClient, parent: ElementRef) -> None:
        super().__init__(client)
        self._parent = parent

    @property
    def _parent_id(self) -> Optional[str]:
        return self._parent.element_id

    async def wait_locate(self, selector: str, timeout_ms: int) -> Optional[ElementRef]:
        interval = timeout_ms / ELEMENT_WAIT_ATTEMPTS / 1000
        for attempt in range(ELEMENT_WAIT_ATTEMPTS):
            try:
                return await self.locate(selector)
            except ElementNotFoundError:
                if attempt < ELEMENT_WAIT_ATTEMPTS - 1:
                    await asyncio.sleep(interval)
        return None
