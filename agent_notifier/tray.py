"""Tray menu capability and the menu actions it triggers."""

import logging
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from agent_notifier.app import RelayService

logger = logging.getLogger(__name__)

START_LISTENING = "start_listening"
STOP_LISTENING = "stop_listening"
QUIT = "quit"


class TrayController(Protocol):
    """What the relay needs from a tray icon implementation."""

    def set_listening(self, listening: bool) -> None:
        """Enable "Stop listening" when listening, "Start listening" otherwise."""
        ...


class HeadlessTray:
    """Tray controller for headless runs and tests."""

    def __init__(self) -> None:
        self.listening: bool | None = None

    def set_listening(self, listening: bool) -> None:
        self.listening = listening


def handle_menu_event(service: "RelayService", event_id: str) -> None:
    """Apply a tray menu selection to the service."""
    if event_id == START_LISTENING:
        service.start_listening()
    elif event_id == STOP_LISTENING:
        service.stop_listening()
    elif event_id == QUIT:
        service.request_exit()
    else:
        logger.debug(f"Ignoring unknown menu event: {event_id}")
