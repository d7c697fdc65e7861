from __future__ import annotations

import asyncio
import itertools
import time
from decimal import Decimal
from typing import Any, Optional

import pytest

from auto_purchaser.browser.query import PageQuery
from auto_purchaser.config import (
    PaymentProfile,
    PurchaseRequest,
    ShippingProfile,
    SiteConfig,
    TimingConfig,
)
from auto_purchaser.models import NotificationEvent
from auto_purchaser.notifications.base import Notifier
from auto_purchaser.webdriver.client import NoSuchElementError

_ids = itertools.count(1)


class FakeNode:
    """Something that holds child elements keyed by the selector that finds them."""

    def __init__(self) -> None:
        self._children: dict[str, list[tuple[float, FakeElement]]] = {}

    def add(self, selector: str, element: "FakeElement", delay: float = 0.0) -> "FakeElement":
        self._children.setdefault(selector, []).append((time.monotonic() + delay, element))
        return element

    def matches(self, selector: str) -> list["FakeElement"]:
        now = time.monotonic()
        return [element for visible_at, element in self._children.get(selector, []) if visible_at <= now]


class FakeElement(FakeNode):
    def __init__(self, name: str, html: str = "", **attributes: Optional[str]) -> None:
        super().__init__()
        self.id = f"el-{next(_ids)}"
        self.name = name
        self.html = html
        self.attributes = {key: value for key, value in attributes.items() if value is not None}


class FakeWebDriver:
    """In-memory stand-in for :class:`WebDriverClient`."""

    def __init__(self) -> None:
        self.pages: dict[str, FakeNode] = {}
        self.current = FakeNode()
        self.elements: dict[str, FakeElement] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.implicit_ms = 0
        self.session_id: Optional[str] = None
        self.delete_calls = 0
        self.fail_delete = False
        self.click_errors: dict[str, Exception] = {}

    def page(self, url: str) -> FakeNode:
        return self.pages.setdefault(url, FakeNode())

    def _register(self, elements: list[FakeElement]) -> list[FakeElement]:
        for element in elements:
            self.elements[element.id] = element
        return elements

    async def new_session(self, capabilities: dict[str, Any]) -> str:
        self.session_id = "session-1"
        self.calls.append(("new_session", capabilities))
        return self.session_id

    async def delete_session(self) -> None:
        self.delete_calls += 1
        self.session_id = None
        if self.fail_delete:
            from auto_purchaser.webdriver.client import WebDriverError

            raise WebDriverError("unknown error", "browser already gone")

    async def aclose(self) -> None:
        return None

    async def set_implicit_wait(self, timeout_ms: int) -> None:
        self.implicit_ms = timeout_ms

    async def navigate(self, url: str) -> None:
        self.calls.append(("navigate", url))
        self.current = self.page(url)

    async def find_element(
        self, selector: str, parent: Optional[str] = None, *, implicit_wait_ms: int = 0
    ) -> str:
        scope = self.elements[parent] if parent else self.current
        deadline = time.monotonic() + (0 if parent else self.implicit_ms / 1000)
        while True:
            found = scope.matches(selector)
            if found:
                return self._register(found)[0].id
            if time.monotonic() >= deadline:
                raise NoSuchElementError("no such element", selector)
            await asyncio.sleep(0.01)

    async def find_elements(self, selector: str, parent: Optional[str] = None) -> list[str]:
        scope = self.elements[parent] if parent else self.current
        return [element.id for element in self._register(scope.matches(selector))]

    async def element_click(self, element_id: str) -> None:
        name = self.elements[element_id].name
        if name in self.click_errors:
            raise self.click_errors[name]
        self.calls.append(("click", name))

    async def element_clear(self, element_id: str) -> None:
        self.calls.append(("clear", self.elements[element_id].name))

    async def element_send_keys(self, element_id: str, text: str) -> None:
        self.calls.append(("type", self.elements[element_id].name, text))

    async def element_attribute(self, element_id: str, name: str) -> Optional[str]:
        return self.elements[element_id].attributes.get(name)

    async def element_property(self, element_id: str, name: str) -> Any:
        if name == "innerHTML":
            return self.elements[element_id].html
        return None

    def clicked(self) -> list[str]:
        return [call[1] for call in self.calls if call[0] == "click"]

    def typed(self) -> dict[str, str]:
        return {call[1]: call[2] for call in self.calls if call[0] == "type"}

    def navigated(self) -> list[str]:
        return [call[1] for call in self.calls if call[0] == "navigate"]


class CollectingNotifier(Notifier):
    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    def notify(self, event: NotificationEvent) -> None:
        self.events.append(event)

    @property
    def messages(self) -> list[str]:
        return [event.message for event in self.events]


PRODUCT_URL = "https://shop.test/product/rack"
SITE = SiteConfig(base_url="https://shop.test")


def build_store(
    driver: FakeWebDriver,
    *,
    cart_items: int = 0,
    disabled: bool = False,
    subtotal: str = "$123.45",
    subscribed: bool = True,
    variants: int = 0,
    login_marker: bool = True,
    omit: tuple[str, ...] = (),
) -> FakeWebDriver:
    """Populate ``driver`` with the pages the checkout flow visits."""

    login = driver.page(SITE.page(SITE.login_path))
    login.add("#login-form-email", FakeElement("login-email"))
    login.add("#login-form-password", FakeElement("login-password"))
    login.add(".login > .btn", FakeElement("login-submit"))
    if login_marker:
        login.add(".my-account-main", FakeElement("account"))

    cart = driver.page(SITE.page(SITE.cart_path))
    for idx in range(cart_items):
        cart.add(".remove-product", FakeElement(f"remove-{idx}"))
    cart.add(".cart-delete-confirmation-btn", FakeElement("confirm-remove"))

    product = driver.page(PRODUCT_URL)
    product.add(".add-to-cart", FakeElement("add-to-cart", disabled="true" if disabled else None))
    for idx in range(variants):
        select = product.add(".attribute-row select", FakeElement(f"variant-{idx}"))
        for option in range(3):
            select.add("option", FakeElement(f"variant-{idx}-option-{option}"))

    checkout = driver.page(SITE.page(SITE.checkout_path))
    fields = {
        "#email": "email",
        "#shippingFirstName": "first-name",
        "#shippingLastName": "last-name",
        "#shippingAddressOne": "address",
        "#shippingAddressCity": "city",
        "#shippingZipCode": "zip",
        "#shippingPhoneNumber": "phone",
        "#saved-payment-security-code": "security-code",
    }
    for selector, name in fields.items():
        if selector not in omit:
            checkout.add(selector, FakeElement(name))
    state = checkout.add("#shippingState", FakeElement("state"))
    state.add('option[value="MN"]', FakeElement("state-MN"))
    if "#newsletterSubscribeCheck" not in omit:
        checkout.add(
            "#newsletterSubscribeCheck",
            FakeElement("newsletter", checked="true" if subscribed else None),
        )
        checkout.add('label[for="newsletterSubscribeCheck"]', FakeElement("newsletter-label"))
    checkout.add(".submit-shipping", FakeElement("submit-shipping"))
    checkout.add(".submit-payment", FakeElement("submit-payment"))
    checkout.add(".sub-total", FakeElement("subtotal", html=f"\n  {subtotal}  \n"))
    checkout.add(".place-order-btn", FakeElement("place-order"))
    return driver


def make_request(**overrides: Any) -> PurchaseRequest:
    data: dict[str, Any] = {
        "url": PRODUCT_URL,
        "username": "buyer@example.com",
        "password": "hunter2",
        "price": Decimal("150.00"),
    }
    data.update(overrides)
    return PurchaseRequest(**data)


SHIPPING = ShippingProfile(
    email="buyer@example.com",
    first_name="Pat",
    last_name="Buyer",
    address="1 Main St",
    city="Springfield",
    state="MN",
    zip_code="55401",
    phone="5550100",
)
PAYMENT = PaymentProfile(security_code="123")
FAST = TimingConfig(login_wait_ms=200, add_to_cart_wait_ms=200, settle_ms=0, final_settle_ms=0)


@pytest.fixture
def driver() -> FakeWebDriver:
    return FakeWebDriver()


@pytest.fixture
def page(driver: FakeWebDriver) -> PageQuery:
    return PageQuery(driver)  # type: ignore[arg-type]


@pytest.fixture
def notifier() -> CollectingNotifier:
    return CollectingNotifier()
