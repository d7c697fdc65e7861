"""Spawn and stop the local WebDriver binary."""

from __future__ import annotations

import asyncio
import logging
import subprocess
from typing import Optional

from ..config import DriverConfig

LOGGER = logging.getLogger(__name__)

STARTUP_READ_BYTES = 256


class DriverStartError(RuntimeError):
    """Raised when the driver binary cannot be launched."""


def driver_command(config: DriverConfig) -> list[str]:
    """Return the argv used to start the configured driver."""

    binary = str(config.binary) if config.binary else config.kind
    if config.kind == "chromedriver":
        return [binary, f"--port={config.port}"]
    return [binary, "--port", str(config.port)]


class DriverProcess:
    """Manage the lifecycle of a ``geckodriver`` or ``chromedriver`` subprocess."""

    def __init__(self, config: Optional[DriverConfig] = None) -> None:
        self._config = config or DriverConfig()
        self._process: Optional[asyncio.subprocess.Process] = None

    @property
    def endpoint(self) -> str:
        return f"http://{self._config.host}:{self._config.port}"

    @property
    def alive(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        args = driver_command(self._config)
        # chromedriver announces readiness on stdout; geckodriver gets a grace period
        stdout = subprocess.PIPE if self._config.kind == "chromedriver" else None
        LOGGER.debug("Launching %s", " ".join(args))
        try:
            self._process = await asyncio.create_subprocess_exec(*args, stdout=stdout)
        except OSError as exc:
            raise DriverStartError(f"Unable to start {args[0]}: {exc}") from exc
        await self._wait_ready()

    async def _wait_ready(self) -> None:
        assert self._process is not None
        if self._process.stdout is not None:
            banner = await self._process.stdout.read(STARTUP_READ_BYTES)
            LOGGER.info("Driver output: %s", banner.decode("utf-8", errors="replace").strip())
        else:
            await asyncio.sleep(self._config.startup_grace)

    async def kill(self) -> None:
        if self._process is None:
            return
        process = self._process
        self._process = None
        if process.returncode is None:
            LOGGER.debug("Killing driver process %s", process.pid)
            process.kill()
            await process.wait()
