"""Windows WinRT toast notifier."""

import logging
from xml.sax.saxutils import escape

from agent_notifier.notifiers.base import PermissionState

logger = logging.getLogger(__name__)

TOAST_TEMPLATE = (
    "<toast>"
    "<visual>"
    '<binding template="ToastText02">'
    '<text id="1">{title}</text>'
    '<text id="2">{body}</text>'
    "</binding>"
    "</visual>"
    "</toast>"
)


def _import_winrt():
    # Windows-specific imports are done lazily to avoid import errors on Linux
    try:
        from winrt.windows.data.xml.dom import XmlDocument
        from winrt.windows.ui.notifications import (
            NotificationSetting,
            ToastNotification,
            ToastNotificationManager,
        )
    except ImportError as e:
        raise RuntimeError(
            "Windows notification support requires winrt packages. "
            "Install with: uv sync --extra windows"
        ) from e
    return XmlDocument, NotificationSetting, ToastNotification, ToastNotificationManager


class WindowsNotifier:
    """Windows notifier using WinRT toast notifications."""

    def __init__(self, app_id: str = "Agent Notifications") -> None:
        self.app_id = app_id

    @staticmethod
    def toast_xml(title: str, body: str) -> str:
        """Render the ToastText02 payload for a notification."""
        return TOAST_TEMPLATE.format(title=escape(title), body=escape(body))

    async def show(self, title: str, body: str) -> None:
        """Show a toast for the configured AppUserModelID."""
        XmlDocument, _, ToastNotification, ToastNotificationManager = _import_winrt()

        document = XmlDocument()
        document.load_xml(self.toast_xml(title, body))
        notifier = ToastNotificationManager.create_toast_notifier_with_id(self.app_id)
        notifier.show(ToastNotification(document))

    async def permission_state(self) -> PermissionState:
        """Map the toast notifier setting onto a permission state."""
        _, NotificationSetting, _, ToastNotificationManager = _import_winrt()

        notifier = ToastNotificationManager.create_toast_notifier_with_id(self.app_id)
        if notifier.setting == NotificationSetting.ENABLED:
            return PermissionState.GRANTED
        return PermissionState.DENIED

    async def request_permission(self) -> None:
        """Windows has no runtime prompt; users enable toasts in Settings."""
        logger.info(
            "Enable notifications in Windows Settings > System > Notifications"
        )

    async def close(self) -> None:
        return None
