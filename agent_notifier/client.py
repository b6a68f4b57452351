"""HTTP client for posting notifications to a running relay."""

import logging

import httpx

from agent_notifier.core import DEFAULT_BIND_ADDRESS, DEFAULT_PORT

logger = logging.getLogger(__name__)

DEFAULT_URL = f"http://{DEFAULT_BIND_ADDRESS}:{DEFAULT_PORT}"


class NotificationClient:
    """Sends notifications to the relay's plain notify endpoint."""

    def __init__(self, client: httpx.AsyncClient, base_url: str = DEFAULT_URL):
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def notify(self, title: str, content: str, agent: str) -> bool:
        """Post a notification. Returns whether the relay dispatched it."""
        payload = {"title": title, "content": content, "agent": agent}

        try:
            response = await self.client.post(
                f"{self.base_url}/agent/notify", json=payload
            )
        except httpx.RequestError as e:
            logger.error(f"HTTP error sending notification: {e}")
            return False

        if response.status_code == 200:
            logger.info(f"Notification accepted: {title}")
            return True

        logger.warning(
            f"Relay rejected notification: {response.status_code} - {response.text}"
        )
        return False
