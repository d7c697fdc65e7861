"""Factories for constructing components from configuration."""

from __future__ import annotations

from .browser.session import AutomationSession
from .config import DriverConfig
from .notifications.base import ConsoleNotifier, Notifier
from .webdriver.driver_process import DriverProcess


def build_session(config: DriverConfig) -> AutomationSession:
    return AutomationSession(config, driver=DriverProcess(config))


def build_notifier() -> Notifier:
    return ConsoleNotifier()
