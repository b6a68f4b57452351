"""macOS notifier using osascript."""

import asyncio
import logging

from agent_notifier.errors import NotifierError
from agent_notifier.notifiers.base import PermissionState

logger = logging.getLogger(__name__)

OSASCRIPT_TIMEOUT = 5.0

# Title and body are passed as argv, never spliced into the script source.
NOTIFY_SCRIPT = (
    "-e",
    "on run argv",
    "-e",
    "display notification (item 2 of argv) with title (item 1 of argv)",
    "-e",
    "end run",
)


class MacNotifier:
    """Shows notifications through ``osascript``'s ``display notification``."""

    def __init__(self, app_name: str = "Agent Notifications") -> None:
        self.app_name = app_name

    async def show(self, title: str, body: str) -> None:
        """Run osascript and raise if it fails."""
        try:
            process = await asyncio.create_subprocess_exec(
                "osascript",
                *NOTIFY_SCRIPT,
                title,
                body,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise NotifierError(f"Failed to run osascript: {e}") from e

        try:
            _, stderr = await asyncio.wait_for(
                process.communicate(), timeout=OSASCRIPT_TIMEOUT
            )
        except asyncio.TimeoutError as e:
            process.kill()
            raise NotifierError("osascript timed out") from e

        if process.returncode != 0:
            raise NotifierError(
                f"osascript exited with {process.returncode}: "
                f"{stderr.decode(errors='replace').strip()}"
            )

    async def permission_state(self) -> PermissionState:
        """Notifications are attributed to Script Editor; macOS prompts on first use."""
        return PermissionState.GRANTED

    async def request_permission(self) -> None:
        return None

    async def close(self) -> None:
        return None
