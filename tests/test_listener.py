"""Tests for the listener manager, against real loopback sockets."""

import asyncio
import socket

import httpx
import pytest

from agent_notifier.core import ListenBinding, ListeningGate
from agent_notifier.dispatch import Dispatcher
from agent_notifier.errors import BindFailedError
from agent_notifier.listener import ListenerManager, ListenerState, bind_socket
from agent_notifier.mcp import McpEngine
from agent_notifier.server import RelayContext, create_app

NOTIFY_BODY = {"title": "T", "content": "C", "agent": "A"}


def binding(port: int) -> ListenBinding:
    return ListenBinding(bind_address="127.0.0.1", port=port)


async def accepts(port: int) -> bool:
    """Whether something is accepting connections on the loopback port."""
    try:
        _, writer = await asyncio.open_connection("127.0.0.1", port)
    except OSError:
        return False
    writer.close()
    return True


@pytest.fixture
def gate():
    """Create an open listening gate."""
    return ListeningGate()


@pytest.fixture
def manager(gate, notifier):
    """Create a listener manager serving the relay app."""
    dispatcher = Dispatcher(notifier)

    def factory():
        return create_app(
            RelayContext(
                gate=gate,
                dispatcher=dispatcher,
                engine=McpEngine(dispatcher),
                keepalive_interval=0.05,
            )
        )

    return ListenerManager(factory)


class TestBindSocket:
    """Tests for socket binding."""

    def test_bind_failure_raises(self, free_port):
        """Test that an address in use raises BindFailedError."""
        port = free_port()
        with socket.socket() as occupied:
            occupied.bind(("127.0.0.1", port))
            occupied.listen()
            with pytest.raises(BindFailedError, match="failed to bind"):
                bind_socket(binding(port))


class TestListenerManager:
    """Tests for spawn, restart and stop."""

    def test_initial_state(self, manager):
        """Test the manager starts stopped."""
        assert manager.state == ListenerState.STOPPED
        assert manager.binding is None

    @pytest.mark.asyncio
    async def test_start_serves_requests(self, manager, notifier, free_port):
        """Test that a started listener serves the notify route."""
        port = free_port()
        try:
            assert await manager.start(binding(port)) is True
            assert manager.state == ListenerState.RUNNING
            assert manager.binding == binding(port)

            async with httpx.AsyncClient() as http:
                response = await http.post(
                    f"http://127.0.0.1:{port}/agent/notify", json=NOTIFY_BODY
                )
            assert response.status_code == 200
            notifier.show.assert_awaited_once_with("T", "A: C")
        finally:
            await manager.stop()

    @pytest.mark.asyncio
    async def test_restart_moves_listener(self, manager, free_port):
        """Test that restart unbinds the old port and binds the new one."""
        old, new = free_port(), free_port()
        try:
            await manager.start(binding(old))
            assert await manager.restart(binding(new)) is True

            assert await accepts(new)
            assert not await accepts(old)
            assert manager.binding == binding(new)
        finally:
            await manager.stop()

    @pytest.mark.asyncio
    async def test_restart_same_port(self, manager, free_port):
        """Test restarting onto the port currently in use."""
        port = free_port()
        try:
            await manager.start(binding(port))
            assert await manager.restart(binding(port)) is True
            assert await accepts(port)
        finally:
            await manager.stop()

    @pytest.mark.asyncio
    async def test_failed_bind_leaves_nothing_running(self, manager, free_port):
        """Test the old listener is aborted even when the new bind fails."""
        old, taken = free_port(), free_port()
        with socket.socket() as occupied:
            occupied.bind(("127.0.0.1", taken))
            occupied.listen()
            try:
                await manager.start(binding(old))
                assert await manager.restart(binding(taken)) is False

                assert manager.state == ListenerState.STOPPED
                assert manager.binding is None
                assert not await accepts(old)
            finally:
                await manager.stop()

    @pytest.mark.asyncio
    async def test_recovers_after_failed_bind(self, manager, free_port):
        """Test a later restart brings the service back."""
        taken, good = free_port(), free_port()
        with socket.socket() as occupied:
            occupied.bind(("127.0.0.1", taken))
            occupied.listen()
            try:
                assert await manager.start(binding(taken)) is False
                assert await manager.restart(binding(good)) is True
                assert await accepts(good)
            finally:
                await manager.stop()

    @pytest.mark.asyncio
    async def test_concurrent_restarts_serialize(self, manager, free_port):
        """Test quick successive restarts leave only the last binding bound."""
        first, second, third = free_port(), free_port(), free_port()
        try:
            await manager.start(binding(first))
            await asyncio.gather(
                manager.restart(binding(second)), manager.restart(binding(third))
            )

            assert manager.binding == binding(third)
            assert await accepts(third)
            assert not await accepts(second)
            assert not await accepts(first)
        finally:
            await manager.stop()

    @pytest.mark.asyncio
    async def test_stop(self, manager, free_port):
        """Test stop unbinds the port."""
        port = free_port()
        await manager.start(binding(port))
        await manager.stop()

        assert manager.state == ListenerState.STOPPED
        assert not await accepts(port)

    @pytest.mark.asyncio
    async def test_closed_gate_keeps_port_bound(self, manager, gate, free_port):
        """Test that a closed gate answers 503 on a still-bound port."""
        port = free_port()
        try:
            await manager.start(binding(port))
            gate.close()

            async with httpx.AsyncClient() as http:
                response = await http.post(
                    f"http://127.0.0.1:{port}/agent/notify", json=NOTIFY_BODY
                )
            assert response.status_code == 503
        finally:
            await manager.stop()


class TestKeepaliveStream:
    """Tests for GET /mcp on a live listener."""

    @pytest.mark.asyncio
    async def test_stream_ends_on_teardown(self, manager, free_port):
        """Test that the SSE stream emits keep-alives and ends with its listener."""
        port = free_port()
        await manager.start(binding(port))

        async with httpx.AsyncClient(timeout=5) as http:
            async with http.stream("GET", f"http://127.0.0.1:{port}/mcp") as response:
                assert response.status_code == 200
                assert response.headers["content-type"].startswith("text/event-stream")

                lines = response.aiter_lines()
                assert await lines.__anext__() == ": keep-alive"

                await manager.stop()

                async def drain():
                    return [line async for line in lines]

                rest = await asyncio.wait_for(drain(), timeout=5)
                assert all(line in ("", ": keep-alive") for line in rest)
