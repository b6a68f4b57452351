"""Platform-specific desktop notifiers."""

import sys

from agent_notifier.notifiers.base import Notifier, PermissionState


def get_notifier(app_name: str = "Agent Notifications") -> Notifier:
    """Return the appropriate notifier for the current platform."""
    if sys.platform == "linux":
        from agent_notifier.notifiers.linux import DBusNotifier

        return DBusNotifier(app_name)
    elif sys.platform == "win32":
        from agent_notifier.notifiers.windows import WindowsNotifier

        return WindowsNotifier(app_name)
    elif sys.platform == "darwin":
        from agent_notifier.notifiers.macos import MacNotifier

        return MacNotifier(app_name)
    else:
        raise RuntimeError(
            f"Unsupported platform: {sys.platform} "
            "(supported: Linux, Windows and macOS)"
        )


__all__ = ["Notifier", "PermissionState", "get_notifier"]
