"""Turns validated notifications into desktop notifications and a sound."""

import logging

from agent_notifier.core import DispatchedNotification
from agent_notifier.errors import DispatchFailedError
from agent_notifier.notifiers.base import Notifier
from agent_notifier.sound import SoundPlayer

logger = logging.getLogger(__name__)


class Dispatcher:
    """Shows notifications through a Notifier and plays the notification sound."""

    def __init__(self, notifier: Notifier, sound: SoundPlayer | None = None):
        self.notifier = notifier
        self.sound = sound

    async def dispatch(self, title: str, content: str, agent: str) -> None:
        """Show ``"{agent}: {content}"`` under ``title``.

        The sound is scheduled only once the notifier accepted the
        notification, and is never awaited.

        Raises:
            DispatchFailedError: If the notifier failed.
        """
        notification = DispatchedNotification.build(title, content, agent)

        try:
            await self.notifier.show(notification.title, notification.body)
        except Exception as e:
            raise DispatchFailedError(f"Failed to dispatch notification: {e}") from e

        logger.info(f"Dispatched notification: [{agent}] {title}")

        if self.sound is not None:
            self.sound.play()
