"""Lifecycle of the driver subprocess and the WebDriver session on top of it."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..config import DriverConfig
from ..webdriver.client import WebDriverClient, build_capabilities
from ..webdriver.driver_process import DriverProcess
from .query import PageQuery

LOGGER = logging.getLogger(__name__)

ClientFactory = Callable[[str], WebDriverClient]


class AutomationSession:
    """Own one driver process and one WebDriver session for a single run.

    Use as ``async with AutomationSession(config) as page``. Both resources are
    released exactly once when the block exits, whatever the outcome; teardown
    failures are logged and never replace the outcome already in hand.
    """

    def __init__(
        self,
        config: Optional[DriverConfig] = None,
        *,
        driver: Optional[DriverProcess] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self._config = config or DriverConfig()
        self._driver = driver or DriverProcess(self._config)
        self._client_factory = client_factory or self._default_client
        self._client: Optional[WebDriverClient] = None
        self._closed = False

    def _default_client(self, endpoint: str) -> WebDriverClient:
        return WebDriverClient(endpoint, timeout=self._config.request_timeout)

    async def __aenter__(self) -> PageQuery:
        try:
            return await self.open()
        except BaseException:
            await self.close()
            raise

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> PageQuery:
        LOGGER.info("Starting %s on port %s", self._config.kind, self._config.port)
        await self._driver.start()
        self._client = self._client_factory(self._driver.endpoint)
        await self._client.new_session(
            build_capabilities(self._config.kind, headless=self._config.headless)
        )
        await self._client.set_implicit_wait(0)
        return PageQuery(self._client)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._client is not None:
            try:
                await self._client.delete_session()
            except Exception:
                LOGGER.warning("Failed to close WebDriver session", exc_info=True)
            try:
                await self._client.aclose()
            except Exception:
                LOGGER.warning("Failed to close HTTP client", exc_info=True)
        try:
            await self._driver.kill()
        except Exception:
            LOGGER.warning("Failed to kill driver process", exc_info=True)
