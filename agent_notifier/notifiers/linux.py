"""Linux D-Bus notifier."""

import logging

from dbus_fast import BusType, Message, MessageType
from dbus_fast.aio import MessageBus

from agent_notifier.errors import NotifierError
from agent_notifier.notifiers.base import PermissionState

logger = logging.getLogger(__name__)

NOTIFICATIONS_BUS_NAME = "org.freedesktop.Notifications"
NOTIFICATIONS_PATH = "/org/freedesktop/Notifications"


class DBusNotifier:
    """Shows notifications through org.freedesktop.Notifications on the session bus."""

    def __init__(self, app_name: str = "Agent Notifications") -> None:
        self.app_name = app_name
        self._bus: MessageBus | None = None

    async def _connect(self) -> MessageBus:
        if self._bus is None:
            self._bus = await MessageBus(bus_type=BusType.SESSION).connect()
            logger.info("Connected to D-Bus session bus")
        return self._bus

    async def show(self, title: str, body: str) -> None:
        """Call Notify on the notification server."""
        bus = await self._connect()

        # Signature: susssasa{sv}i
        # app_name, replaces_id, icon, summary, body, actions, hints, timeout
        reply = await bus.call(
            Message(
                destination=NOTIFICATIONS_BUS_NAME,
                path=NOTIFICATIONS_PATH,
                interface=NOTIFICATIONS_BUS_NAME,
                member="Notify",
                signature="susssasa{sv}i",
                body=[self.app_name, 0, "", title, body, [], {}, -1],
            )
        )

        if reply.message_type == MessageType.ERROR:
            raise NotifierError(f"Notify failed: {reply.error_name} {reply.body}")

        logger.debug(f"Notification shown with id {reply.body[0]}")

    async def permission_state(self) -> PermissionState:
        """D-Bus notification servers have no per-application permission."""
        return PermissionState.GRANTED

    async def request_permission(self) -> None:
        return None

    async def close(self) -> None:
        """Disconnect from D-Bus."""
        if self._bus:
            self._bus.disconnect()
            self._bus = None
            logger.info("Disconnected from D-Bus")
