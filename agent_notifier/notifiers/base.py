"""Base notifier protocol definition."""

from enum import Enum
from typing import Protocol


class PermissionState(str, Enum):
    """Whether the OS lets this process show notifications."""

    GRANTED = "granted"
    PROMPT = "prompt"
    DENIED = "denied"


class Notifier(Protocol):
    """Platform-agnostic desktop notification interface."""

    async def show(self, title: str, body: str) -> None:
        """Show a notification.

        Args:
            title: Notification title.
            body: Notification body, already truncated to the platform limit.
        """
        ...

    async def permission_state(self) -> PermissionState:
        """Current notification permission for this process."""
        ...

    async def request_permission(self) -> None:
        """Ask the OS for notification permission."""
        ...

    async def close(self) -> None:
        """Release platform resources."""
        ...
