"""
Agent Notifier - Entry point.

``agent-notifier serve`` runs the relay; ``agent-notifier send`` posts a
notification to a running relay.
"""

import argparse
import asyncio
import logging
import signal
import sys

import httpx

from agent_notifier.app import RelayService
from agent_notifier.client import DEFAULT_URL, NotificationClient
from agent_notifier.core import Settings
from agent_notifier.notifiers import get_notifier
from agent_notifier.sound import SoundPlayer
from agent_notifier.store import JsonSettingsStore
from agent_notifier.tray import START_LISTENING, STOP_LISTENING, handle_menu_event

logger = logging.getLogger(__name__)


def build_service(settings: Settings) -> RelayService:
    return RelayService(
        settings=settings,
        store=JsonSettingsStore(settings.settings_file),
        notifier=get_notifier(settings.app_name),
        sound=SoundPlayer(sound_file=settings.sound_file),
    )


async def serve(settings: Settings) -> None:
    """Run the relay until SIGINT or SIGTERM."""
    service = build_service(settings)
    loop = asyncio.get_running_loop()

    if sys.platform != "win32":
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, service.request_exit)
        # Stand-ins for the tray's start/stop items.
        loop.add_signal_handler(
            signal.SIGUSR1, handle_menu_event, service, START_LISTENING
        )
        loop.add_signal_handler(
            signal.SIGUSR2, handle_menu_event, service, STOP_LISTENING
        )

    if not await service.start():
        logger.error("HTTP server is not running; fix the bindings and restart")

    try:
        await service.exit_requested.wait()
    finally:
        logger.info("Shutting down")
        await service.stop()


async def send(url: str, title: str, content: str, agent: str) -> bool:
    async with httpx.AsyncClient(timeout=5.0) as client:
        return await NotificationClient(client, url).notify(title, content, agent)


def main() -> None:
    """Run the CLI."""
    parser = argparse.ArgumentParser(description="Agent Notifier")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve", help="Run the notification relay")

    send_parser = subparsers.add_parser("send", help="Send a notification")
    send_parser.add_argument("--title", required=True)
    send_parser.add_argument("--content", required=True)
    send_parser.add_argument("--agent", required=True)
    send_parser.add_argument(
        "--url", default=DEFAULT_URL, help=f"Relay URL (default: {DEFAULT_URL})"
    )

    args = parser.parse_args()
    settings = Settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))

    if args.command == "serve":
        try:
            asyncio.run(serve(settings))
        except KeyboardInterrupt:
            pass
    else:
        ok = asyncio.run(send(args.url, args.title, args.content, args.agent))
        sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
