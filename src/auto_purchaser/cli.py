"""Command line interface for auto-purchaser."""

from __future__ import annotations

import asyncio
import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Annotated, Any, List, Optional

import typer

from .checkout.orchestrator import CheckoutStepError
from .checkout.runner import run_purchase
from .config import load_config, parse_account_info
from .factory import build_notifier, build_session
from .models import NotificationEvent, NotificationLevel
from .webdriver.client import WebDriverError
from .webdriver.driver_process import DriverStartError

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="Automated single-item store purchaser")


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging before executing any command."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.command()
def version() -> None:
    """Print the package version."""

    try:
        typer.echo(get_version("auto-purchaser"))
    except PackageNotFoundError:  # pragma: no cover - when running from source tree
        typer.echo("0.0.0")


@app.command()
def run(
    url: Annotated[
        Optional[str],
        typer.Option("--url", "-u", help="The full url for the item to purchase."),
    ] = None,
    account_info: Annotated[
        Optional[str],
        typer.Option(
            "--account-info",
            "-a",
            help="The username and password to log in with <username>:<password>.",
        ),
    ] = None,
    price: Annotated[
        Optional[str],
        typer.Option("--price", "-p", help="The subtotal not to exceed."),
    ] = None,
    select_index: Annotated[
        Optional[List[int]],
        typer.Option(
            "--select-index",
            "-s",
            help="Option index to pick for each variant select; repeat for several selects.",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Report the result but do not place the order."),
    ] = False,
    chrome: Annotated[
        bool,
        typer.Option("--chrome", help="Use chromedriver instead of geckodriver."),
    ] = False,
    headless: Annotated[
        Optional[bool],
        typer.Option("--headless/--headed", help="Run the browser headless (or headed)."),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", help="Port the driver listens on."),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to YAML configuration."),
    ] = None,
    env_file: Annotated[
        Optional[Path],
        typer.Option(
            "--env-file",
            help="Path to an .env file with default configuration values.",
        ),
    ] = None,
) -> None:
    """Attempt one purchase of the configured item."""

    overrides: dict[str, Any] = {}
    request: dict[str, Any] = {}
    if url:
        request["url"] = url
    if account_info:
        try:
            request["username"], request["password"] = parse_account_info(account_info)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--account-info") from exc
    if price is not None:
        request["price"] = price
    if select_index:
        request["select_index"] = list(select_index)
    if dry_run:
        request["dry_run"] = True
    if request:
        overrides["request"] = request
    if chrome or headless is not None or port is not None:
        overrides.setdefault("driver", {})
        if chrome:
            overrides["driver"]["kind"] = "chromedriver"
        if headless is not None:
            overrides["driver"]["headless"] = headless
        if port is not None:
            overrides["driver"]["port"] = port

    config = load_config(config_path, env_file=env_file, **overrides)
    LOGGER.info("Loaded configuration for %s", config.request.url)

    notifier = build_notifier()
    session = build_session(config.driver)
    try:
        asyncio.run(run_purchase(config, notifier, session))
    except (CheckoutStepError, DriverStartError, WebDriverError) as exc:
        LOGGER.exception("Purchase run failed")
        notifier.notify(
            NotificationEvent(
                type="purchase_failed",
                message=str(exc),
                level=NotificationLevel.ERROR,
            )
        )
        raise typer.Exit(code=1) from exc


if __name__ == "__main__":
    app()
