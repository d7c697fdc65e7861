"""Sequential checkout state machine driven through the element query facade."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Awaitable, Callable, Optional, TypeVar

from ..browser.base import ElementNotFoundError
from ..browser.query import PageQuery
from ..config import PaymentProfile, PurchaseRequest, ShippingProfile, SiteConfig, TimingConfig
from ..models import (
    CheckoutStep,
    NotificationEvent,
    NotificationLevel,
    PurchaseOutcome,
    PurchaseResult,
)
from ..notifications.base import Notifier
from ..webdriver.client import ElementStateError, WebDriverError
from .price_guard import PriceGuard, PriceParseError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

REQUIRED_STEP_ERRORS = (ElementNotFoundError, WebDriverError, PriceParseError)
OPTIONAL_STEP_ERRORS = (ElementNotFoundError, ElementStateError)


class CheckoutStepError(RuntimeError):
    """Raised when a required checkout step cannot be completed."""

    def __init__(self, step: CheckoutStep, cause: BaseException) -> None:
        super().__init__(f"Checkout step '{step.value}' failed: {cause}")
        self.step = step
        self.cause = cause


class CheckoutOrchestrator:
    """Run login, cart clearing, checkout and the guarded commit in order."""

    def __init__(
        self,
        page: PageQuery,
        request: PurchaseRequest,
        shipping: ShippingProfile,
        payment: PaymentProfile,
        notifier: Notifier,
        site: Optional[SiteConfig] = None,
        timing: Optional[TimingConfig] = None,
        price_guard: Optional[PriceGuard] = None,
    ) -> None:
        self._page = page
        self._request = request
        self._shipping = shipping
        self._payment = payment
        self._notifier = notifier
        self._site = site or SiteConfig()
        self._timing = timing or TimingConfig()
        self._selectors = self._site.selectors
        self._price_guard = price_guard or PriceGuard(page, self._selectors.subtotal)
        self._step_name = CheckoutStep.AUTHENTICATE

    async def run(self) -> PurchaseResult:
        """Drive the checkout to a terminal outcome.

        Raises :class:`CheckoutStepError` when a required step fails.
        """

        await self._step(CheckoutStep.AUTHENTICATE, self._authenticate)
        await self._step(CheckoutStep.CLEAR_CART, self._clear_cart)
        await self._step(CheckoutStep.NAVIGATE_TO_PRODUCT, self._navigate_to_product)
        if self._request.select_index:
            await self._step(CheckoutStep.SELECT_VARIANTS, self._select_variants)
        available = await self._step(CheckoutStep.ADD_TO_CART, self._add_to_cart)
        if not available:
            self._notify("item_unavailable", "item not available", NotificationLevel.WARNING)
            return self._result(PurchaseOutcome.UNAVAILABLE)
        await self._step(CheckoutStep.FILL_SHIPPING, self._fill_shipping)
        await self._step(CheckoutStep.ENSURE_NO_SUBSCRIBE, self._ensure_no_subscribe)
        await self._step(CheckoutStep.SUBMIT_SHIPPING, self._submit_shipping)
        await self._step(CheckoutStep.FILL_PAYMENT, self._fill_payment)
        over_limit = await self._step(CheckoutStep.PRICE_GUARD, self._check_price)
        return await self._step(
            CheckoutStep.COMMIT_OR_ABORT,
            lambda: self._commit_or_abort(over_limit),
        )

    async def _step(self, step: CheckoutStep, action: Callable[[], Awaitable[T]]) -> T:
        self._step_name = step
        LOGGER.info("Checkout step: %s", step.value)
        try:
            return await action()
        except REQUIRED_STEP_ERRORS as exc:
            raise CheckoutStepError(step, exc) from exc

    async def _pause(self, milliseconds: int) -> None:
        await asyncio.sleep(milliseconds / 1000)

    async def _authenticate(self) -> None:
        await self._page.goto(self._site.page(self._site.login_path))
        await self._page.type_into(self._selectors.login_email, self._request.username)
        await self._page.type_into(self._selectors.login_password, self._request.password)
        await self._page.click_on(self._selectors.login_submit)
        marker = await self._page.wait_locate(
            self._selectors.account_marker, self._timing.login_wait_ms
        )
        if marker is None:
            # TODO: decide whether a missing account page should abort the run
            LOGGER.warning(
                "Account page marker %s not found after login; continuing",
                self._selectors.account_marker,
            )

    async def _clear_cart(self) -> None:
        await self._page.goto(self._site.page(self._site.cart_path))
        remove_buttons = await self._page.locate_all(self._selectors.cart_remove)
        LOGGER.info("Removing %d item(s) from cart", len(remove_buttons))
        for button in remove_buttons:
            try:
                await button.click()
                await self._pause(self._timing.settle_ms)
                await self._page.click_on(self._selectors.cart_remove_confirm)
                await self._pause(self._timing.settle_ms)
            except OPTIONAL_STEP_ERRORS:
                LOGGER.warning("Failed to remove a cart item", exc_info=True)

    async def _navigate_to_product(self) -> None:
        await self._page.goto(self._request.url)

    async def _select_variants(self) -> None:
        indices = self._request.select_index or ()
        selects = await self._page.locate_all(self._selectors.variant_select)
        if len(selects) < len(indices):
            LOGGER.warning(
                "Only %d variant select(s) found for %d index(es)", len(selects), len(indices)
            )
        for index, select in zip(indices, selects):
            await select.select_by_index(index)
            await self._pause(self._timing.settle_ms)

    async def _add_to_cart(self) -> bool:
        button = await self._page.wait_locate(
            self._selectors.add_to_cart, self._timing.add_to_cart_wait_ms
        )
        if button is None:
            raise ElementNotFoundError(self._selectors.add_to_cart)
        if await button.is_disabled():
            return False
        await button.click()
        return True

    async def _fill_shipping(self) -> None:
        await self._page.goto(self._site.page(self._site.checkout_path))
        selectors = self._selectors
        shipping = self._shipping
        await self._page.type_into(selectors.email, shipping.email)
        await self._page.type_into(selectors.first_name, shipping.first_name)
        await self._page.type_into(selectors.last_name, shipping.last_name)
        await self._page.type_into(selectors.address, shipping.address)
        await self._page.type_into(selectors.city, shipping.city)
        await self._page.select_value(selectors.state, shipping.state)
        await self._page.type_into(selectors.zip_code, shipping.zip_code)
        await self._page.type_into(selectors.phone, shipping.phone)

    async def _ensure_no_subscribe(self) -> None:
        control_id = self._selectors.newsletter_id
        try:
            checkbox = await self._page.locate(f"#{control_id}")
            if await checkbox.is_checked():
                # the input itself is hidden behind its label
                await self._page.click_on(f'label[for="{control_id}"]')
        except OPTIONAL_STEP_ERRORS:
            LOGGER.warning("Newsletter opt-in control not usable; leaving as is", exc_info=True)

    async def _submit_shipping(self) -> None:
        await self._page.click_on(self._selectors.submit_shipping)
        await self._pause(self._timing.settle_ms)

    async def _fill_payment(self) -> None:
        await self._page.type_into(self._selectors.security_code, self._payment.security_code)
        await self._page.click_on(self._selectors.submit_payment)

    async def _check_price(self) -> Optional[Decimal]:
        return await self._price_guard.check_subtotal(self._request.price)

    async def _commit_or_abort(self, over_limit: Optional[Decimal]) -> PurchaseResult:
        if over_limit is not None:
            self._notify(
                "price_exceeded",
                f"Subtotal too large for purchase, subtotal={over_limit} "
                f"target={self._request.price}",
                NotificationLevel.WARNING,
            )
            result = self._result(PurchaseOutcome.PRICE_EXCEEDED, subtotal=over_limit)
        elif self._request.dry_run:
            self._notify("dry_run", "Would have purchased!", NotificationLevel.INFO)
            result = self._result(PurchaseOutcome.DRY_RUN)
        else:
            await self._page.click_on(self._selectors.place_order)
            LOGGER.info("Order placed for %s", self._request.url)
            result = self._result(PurchaseOutcome.PURCHASED)
        await self._pause(self._timing.final_settle_ms)
        return result

    def _result(
        self, outcome: PurchaseOutcome, subtotal: Optional[Decimal] = None
    ) -> PurchaseResult:
        return PurchaseResult(
            outcome=outcome,
            subtotal=subtotal,
            ceiling=self._request.price,
            last_step=self._step_name,
        )

    def _notify(self, event_type: str, message: str, level: NotificationLevel) -> None:
        self._notifier.notify(
            NotificationEvent(
                type=event_type,
                message=message,
                level=level,
                data={"url": self._request.url},
            )
        )
