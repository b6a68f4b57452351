"""Shared fixtures."""

import socket
from unittest.mock import AsyncMock, MagicMock

import pytest

from agent_notifier.notifiers.base import PermissionState


@pytest.fixture
def notifier():
    """Create a mock platform notifier."""
    notifier = AsyncMock()
    notifier.show = AsyncMock(return_value=None)
    notifier.permission_state = AsyncMock(return_value=PermissionState.GRANTED)
    notifier.request_permission = AsyncMock()
    notifier.close = AsyncMock()
    return notifier


@pytest.fixture
def sound():
    """Create a mock sound player."""
    return MagicMock()


@pytest.fixture
def free_port():
    """Return a function handing out distinct, currently unused loopback ports."""
    handed_out: set[int] = set()

    def _free_port() -> int:
        while True:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
                sock.bind(("127.0.0.1", 0))
                port = sock.getsockname()[1]
            if port not in handed_out:
                handed_out.add(port)
                return port

    return _free_port
