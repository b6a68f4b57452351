"""Core module: Settings, data models, field validation and the listening gate."""

import logging
import threading
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from agent_notifier.errors import InvalidInputError

logger = logging.getLogger(__name__)

# Windows toast text blocks cap at 1024 chars; keep a conservative ceiling.
MAX_NOTIFICATION_BODY_CHARS = 1000
# Leaves room for the "{agent}: " prefix inside the body ceiling.
SOFT_CONTENT_LIMIT_CHARS = 950

DEFAULT_BIND_ADDRESS = "127.0.0.1"
DEFAULT_PORT = 60766


class Settings(BaseSettings):
    """Application configuration with environment variable support."""

    settings_file: Path = Path.home() / ".agent-notifier" / "settings.json"
    app_name: str = "Agent Notifications"
    keepalive_interval: float = 25.0
    sound_file: Path | None = None
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="AGENT_NOTIFIER_", env_file=".env", extra="ignore"
    )


class ListenBinding(BaseModel):
    """Address and port the HTTP listener binds to."""

    model_config = ConfigDict(frozen=True)

    bind_address: str = DEFAULT_BIND_ADDRESS
    port: int = DEFAULT_PORT

    @field_validator("bind_address")
    @classmethod
    def _address_not_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Bind address cannot be empty")
        return value

    @field_validator("port")
    @classmethod
    def _port_in_range(cls, value: int) -> int:
        if not 1 <= value <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return value

    def __str__(self) -> str:
        if ":" in self.bind_address:
            return f"[{self.bind_address}]:{self.port}"
        return f"{self.bind_address}:{self.port}"


class NotificationRequest(BaseModel):
    """Body of the plain notify endpoint."""

    title: str
    content: str
    agent: str


class DispatchedNotification(BaseModel):
    """What actually reaches the platform notifier."""

    title: str
    body: str = Field(max_length=MAX_NOTIFICATION_BODY_CHARS)

    @classmethod
    def build(cls, title: str, content: str, agent: str) -> "DispatchedNotification":
        """Prefix the content with the agent label and cap the body length."""
        body = f"{agent}: {content}"
        return cls(title=title, body=body[:MAX_NOTIFICATION_BODY_CHARS])


def validate_notification_fields(
    title: str, content: str, agent: str
) -> tuple[str, str, str]:
    """Trim and bound-check the notification fields.

    Returns:
        The trimmed ``(title, content, agent)``.

    Raises:
        InvalidInputError: If a field is blank or the content is over the
            soft limit.
    """
    title = title.strip()
    content = content.strip()
    agent = agent.strip()

    if not title or not content or not agent:
        raise InvalidInputError("'title', 'content', and 'agent' are required")

    content_len = len(content)
    if content_len > SOFT_CONTENT_LIMIT_CHARS:
        raise InvalidInputError(
            f"'content' is too long ({content_len} chars); "
            f"keep it under {SOFT_CONTENT_LIMIT_CHARS}"
        )

    return title, content, agent


class ListeningGate:
    """Process-wide switch deciding whether handlers do work or answer 503.

    Closing the gate does not unbind the listener; the port stays reserved.
    """

    def __init__(self, listening: bool = True) -> None:
        self._flag = threading.Event()
        if listening:
            self._flag.set()

    @property
    def is_open(self) -> bool:
        return self._flag.is_set()

    def open(self) -> None:
        self._flag.set()
        logger.info("Listening gate opened")

    def close(self) -> None:
        self._flag.clear()
        logger.info("Listening gate closed")
