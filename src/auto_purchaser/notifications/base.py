"""Notification channels for purchase outcomes."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rich.console import Console

from ..models import NotificationEvent


class Notifier(ABC):
    """Interface for reporting run outcomes."""

    @abstractmethod
    def notify(self, event: NotificationEvent) -> None:
        """Send a notification event."""


class ConsoleNotifier(Notifier):
    """Print events to the console using Rich."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    def notify(self, event: NotificationEvent) -> None:
        style = {
            "info": "cyan",
            "warning": "yellow",
            "error": "red",
        }.get(event.level.value, "white")
        self._console.print(event.message, style=style)
        if event.data:
            self._console.print(event.data, style="dim")
