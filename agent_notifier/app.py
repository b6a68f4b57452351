"""Relay service: owns the shared state and wires the components together."""

import asyncio
import logging
from typing import Any

from fastapi import FastAPI
from pydantic import ValidationError

from agent_notifier.core import ListenBinding, ListeningGate, Settings
from agent_notifier.dispatch import Dispatcher
from agent_notifier.errors import SettingsError
from agent_notifier.listener import ListenerManager
from agent_notifier.mcp import McpEngine
from agent_notifier.notifiers.base import Notifier, PermissionState
from agent_notifier.server import RelayContext, create_app
from agent_notifier.sound import SoundPlayer
from agent_notifier.store import SettingsStore
from agent_notifier.tray import HeadlessTray, TrayController

logger = logging.getLogger(__name__)


async def ensure_notification_permission(notifier: Notifier) -> None:
    """Best-effort permission check so users get any OS prompt up front."""
    try:
        state = await notifier.permission_state()
    except Exception as e:
        logger.warning(f"Unable to read notification permission state: {e}")
        return

    if state == PermissionState.PROMPT:
        try:
            await notifier.request_permission()
        except Exception as e:
            logger.warning(f"Notification permission request failed: {e}")
    elif state == PermissionState.DENIED:
        logger.warning("Notification permission is denied for this app.")


class RelayService:
    """Owns the gate, the bindings and the listener for one process."""

    def __init__(
        self,
        settings: Settings,
        store: SettingsStore,
        notifier: Notifier,
        sound: SoundPlayer | None = None,
        tray: TrayController | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.notifier = notifier
        self.sound = sound
        self.tray = tray or HeadlessTray()
        self.gate = ListeningGate(listening=True)
        self.dispatcher = Dispatcher(notifier, sound)
        self.engine = McpEngine(self.dispatcher)
        self.listener = ListenerManager(self.build_app)
        self.exit_requested = asyncio.Event()
        self._bindings = store.load()
        self._settings_lock = asyncio.Lock()
        self._restart_lock = asyncio.Lock()

    def build_app(self) -> FastAPI:
        return create_app(
            RelayContext(
                gate=self.gate,
                dispatcher=self.dispatcher,
                engine=self.engine,
                keepalive_interval=self.settings.keepalive_interval,
            )
        )

    async def start(self) -> bool:
        """Check notification permission and start listening on the stored bindings."""
        await ensure_notification_permission(self.notifier)
        self.tray.set_listening(self.gate.is_open)
        return await self.listener.start(self._bindings)

    async def stop(self) -> None:
        await self.listener.stop()
        await self.notifier.close()
        if self.sound is not None:
            self.sound.shutdown()

    def get_http_bindings(self) -> ListenBinding:
        return self._bindings

    async def save_http_bindings(self, bindings: ListenBinding | dict[str, Any]) -> bool:
        """Apply, persist and restart the listener on new bindings.

        The in-memory bindings are replaced before persisting and are not
        rolled back if persisting fails.

        Returns:
            Whether the listener came up on the new bindings.

        Raises:
            SettingsError: If the bindings are invalid or cannot be saved.
        """
        if not isinstance(bindings, ListenBinding):
            try:
                bindings = ListenBinding.model_validate(bindings)
            except ValidationError as e:
                raise SettingsError(e.errors()[0]["msg"]) from e

        async with self._settings_lock:
            self._bindings = bindings
            self.store.save(bindings)

        async with self._restart_lock:
            # Read under the lock so the last restart binds the last saved value.
            return await self.listener.restart(self._bindings)

    def start_listening(self) -> None:
        self.gate.open()
        self.tray.set_listening(True)

    def stop_listening(self) -> None:
        self.gate.close()
        self.tray.set_listening(False)

    def request_exit(self) -> None:
        self.exit_requested.set()
