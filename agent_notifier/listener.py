"""Lifecycle of the HTTP listener: spawn, restart and stop.

One uvicorn server runs at a time. Restarts abort the previous server before
binding the new address, and never wait for in-flight requests to drain.
"""

import asyncio
import contextlib
import logging
import socket
import sys
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum

import uvicorn
from fastapi import FastAPI

from agent_notifier.core import ListenBinding
from agent_notifier.errors import BindFailedError

logger = logging.getLogger(__name__)

STARTUP_POLL_INTERVAL = 0.01


class ListenerState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class ManagedServer(uvicorn.Server):
    """uvicorn server that leaves process signals to its owner."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


@dataclass
class ServerHandle:
    """A running listener and everything needed to tear it down."""

    binding: ListenBinding
    app: FastAPI
    server: ManagedServer
    task: asyncio.Task
    sock: socket.socket


def bind_socket(binding: ListenBinding) -> socket.socket:
    """Bind a TCP socket for ``binding``.

    Raises:
        BindFailedError: If the address cannot be bound.
    """
    family = socket.AF_INET6 if ":" in binding.bind_address else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        if sys.platform != "win32":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((binding.bind_address, binding.port))
    except OSError as e:
        sock.close()
        raise BindFailedError(f"HTTP server failed to bind {binding}: {e}") from e
    return sock


class ListenerManager:
    """Owns the single live ServerHandle."""

    def __init__(self, app_factory: Callable[[], FastAPI]) -> None:
        self.app_factory = app_factory
        self.state = ListenerState.STOPPED
        self._handle: ServerHandle | None = None
        self._lock = asyncio.Lock()

    @property
    def binding(self) -> ListenBinding | None:
        """Binding of the live listener, if any."""
        return self._handle.binding if self._handle else None

    async def spawn(self, binding: ListenBinding) -> ServerHandle | None:
        """Bind ``binding`` and serve a fresh app on it.

        A failed bind is logged and not retried.
        """
        self.state = ListenerState.STARTING
        app = self.app_factory()
        try:
            sock = bind_socket(binding)
        except BindFailedError as e:
            logger.error(str(e))
            self.state = ListenerState.STOPPED
            return None

        config = uvicorn.Config(app, lifespan="off", log_config=None)
        server = ManagedServer(config)
        task = asyncio.create_task(server.serve(sockets=[sock]))

        while not server.started and not task.done():
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

        if not server.started:
            sock.close()
            error = task.exception() if not task.cancelled() else None
            logger.error(f"HTTP server on {binding} exited during startup: {error}")
            self.state = ListenerState.STOPPED
            return None

        logger.info(f"HTTP server listening on http://{binding}")
        self.state = ListenerState.RUNNING
        return ServerHandle(binding=binding, app=app, server=server, task=task, sock=sock)

    async def _abort(self, handle: ServerHandle) -> None:
        self.state = ListenerState.STOPPING
        handle.app.state.closing.set()
        handle.server.should_exit = True
        handle.server.force_exit = True
        handle.task.cancel()
        for listening in getattr(handle.server, "servers", []):
            listening.close()
        handle.sock.close()
        await asyncio.wait([handle.task])
        if not handle.task.cancelled() and handle.task.exception() is not None:
            logger.error(f"HTTP server error: {handle.task.exception()}")
        self.state = ListenerState.STOPPED
        logger.info(f"HTTP server on {handle.binding} stopped")

    async def start(self, binding: ListenBinding) -> bool:
        """Spawn the initial listener. Returns whether it is running."""
        async with self._lock:
            if self._handle is not None:
                await self._abort(self._handle)
            self._handle = await self.spawn(binding)
            return self._handle is not None

    async def restart(self, binding: ListenBinding) -> bool:
        """Replace the live listener with one bound to ``binding``.

        The previous listener is aborted even if the new bind then fails,
        which leaves the service down until the next successful restart.

        Returns:
            Whether the new listener is running.
        """
        async with self._lock:
            handle, self._handle = self._handle, None
            if handle is not None:
                await self._abort(handle)
            self._handle = await self.spawn(binding)
            return self._handle is not None

    async def stop(self) -> None:
        """Tear down the live listener, if any."""
        async with self._lock:
            handle, self._handle = self._handle, None
            if handle is not None:
                await self._abort(handle)
