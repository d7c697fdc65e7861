"""Configuration models for the auto purchaser."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DriverKind = Literal["geckodriver", "chromedriver"]


class PurchaseRequest(BaseModel):
    """Caller-supplied parameters for a single purchase attempt."""

    model_config = ConfigDict(frozen=True)

    url: str
    username: str
    password: str
    price: Decimal = Field(description="Subtotal ceiling; equal is allowed to proceed.")
    select_index: Optional[tuple[int, ...]] = Field(
        default=None,
        description="Option index to pick for each variant select, in document order.",
    )
    dry_run: bool = False


class ShippingProfile(BaseModel):
    """Fixed shipping identity typed into the checkout form."""

    model_config = ConfigDict(frozen=True)

    email: str
    first_name: str
    last_name: str
    address: str
    city: str
    state: str = Field(description="Option value of the state select, e.g. 'MN'.")
    zip_code: str
    phone: str


class PaymentProfile(BaseModel):
    """Stored-card details entered on the payment step."""

    model_config = ConfigDict(frozen=True)

    security_code: str


class DriverConfig(BaseModel):
    """Settings for the WebDriver binary and its HTTP endpoint."""

    kind: DriverKind = "geckodriver"
    binary: Optional[Path] = None
    host: str = "localhost"
    port: int = 4444
    startup_grace: float = Field(
        default=1.0,
        description="Seconds to wait for a driver that does not report readiness on stdout.",
    )
    headless: bool = False
    request_timeout: float = 30.0


class Selectors(BaseModel):
    """CSS selectors for the elements the checkout flow touches."""

    login_email: str = "#login-form-email"
    login_password: str = "#login-form-password"
    login_submit: str = ".login > .btn"
    account_marker: str = ".my-account-main"
    cart_remove: str = ".remove-product"
    cart_remove_confirm: str = ".cart-delete-confirmation-btn"
    variant_select: str = ".attribute-row select"
    add_to_cart: str = ".add-to-cart"
    email: str = "#email"
    first_name: str = "#shippingFirstName"
    last_name: str = "#shippingLastName"
    address: str = "#shippingAddressOne"
    city: str = "#shippingAddressCity"
    state: str = "#shippingState"
    zip_code: str = "#shippingZipCode"
    phone: str = "#shippingPhoneNumber"
    newsletter_id: str = "newsletterSubscribeCheck"
    submit_shipping: str = ".submit-shipping"
    security_code: str = "#saved-payment-security-code"
    submit_payment: str = ".submit-payment"
    subtotal: str = ".sub-total"
    place_order: str = ".place-order-btn"


class SiteConfig(BaseModel):
    """Location of the store pages used by the checkout flow."""

    base_url: str = "https://www.titan.fitness"
    login_path: str = "/login"
    cart_path: str = "/cart"
    checkout_path: str = "/startcheckout"
    selectors: Selectors = Field(default_factory=Selectors)

    def page(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"


class TimingConfig(BaseModel):
    """Timeouts and settle pauses, in milliseconds."""

    login_wait_ms: int = 5000
    add_to_cart_wait_ms: int = 30000
    settle_ms: int = 500
    final_settle_ms: int = 1000


class PurchaserConfig(BaseSettings):
    """Top-level configuration for a purchase run."""

    model_config = SettingsConfigDict(
        env_prefix="AUTO_PURCHASER_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    request: PurchaseRequest
    shipping: ShippingProfile
    payment: PaymentProfile
    driver: DriverConfig = Field(default_factory=DriverConfig)
    site: SiteConfig = Field(default_factory=SiteConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)


def parse_account_info(value: str) -> tuple[str, str]:
    """Split ``<username>:<password>`` into its two parts."""

    username, sep, password = value.partition(":")
    if not sep or not username:
        raise ValueError("Invalid account info value expected <username>:<password>")
    return username, password


def load_config(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> PurchaserConfig:
    """Load configuration from an optional YAML file, env file and overrides."""

    data: dict[str, Any] = {}
    if path:
        import yaml

        data = yaml.safe_load(path.read_text()) or {}
    if overrides:
        _deep_update(data, overrides)
    settings_kwargs: dict[str, object] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file
    config = PurchaserConfig(**data, **settings_kwargs)
    if not data:
        return config

    merged = config.model_dump(mode="python")
    _deep_update(merged, data)
    return PurchaserConfig.model_validate(merged)


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> None:
    """Recursively merge ``updates`` into ``target`` in-place."""

    for key, value in updates.items():
        if (
            isinstance(value, Mapping)
            and isinstance(existing := target.get(key), Mapping)
        ):
            nested: dict[str, Any]
            if isinstance(existing, dict):
                nested = existing
            else:
                nested = dict(existing)
            _deep_update(nested, value)
            target[key] = nested
        else:
            target[key] = value
