"""FastAPI server module."""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError

from agent_notifier import __version__
from agent_notifier.core import ListeningGate, NotificationRequest
from agent_notifier.dispatch import Dispatcher
from agent_notifier.errors import DispatchFailedError, GateClosedError, InvalidInputError
from agent_notifier.mcp import PARSE_ERROR, McpEngine, jsonrpc_error

logger = logging.getLogger(__name__)

KEEPALIVE_COMMENT = ": keep-alive\n\n"


@dataclass
class RelayContext:
    """Shared state injected into every request handler."""

    gate: ListeningGate
    dispatcher: Dispatcher
    engine: McpEngine
    keepalive_interval: float = 25.0


def get_context(request: Request) -> RelayContext:
    return request.app.state.context


def require_listening(context: RelayContext = Depends(get_context)) -> RelayContext:
    """Reject the request with 503 while the listening gate is closed."""
    if not context.gate.is_open:
        raise GateClosedError()
    return context


async def keepalive_events(
    interval: float, closing: asyncio.Event
) -> AsyncIterator[str]:
    """Yield an SSE comment now and every ``interval`` seconds until ``closing`` is set."""
    while not closing.is_set():
        yield KEEPALIVE_COMMENT
        try:
            await asyncio.wait_for(closing.wait(), timeout=interval)
        except asyncio.TimeoutError:
            continue


async def _read_json(request: Request) -> Any:
    raw = await request.body()
    return json.loads(raw)


def create_app(context: RelayContext) -> FastAPI:
    """Build the HTTP application serving the notify and MCP routes."""
    app = FastAPI(
        title="Agent Notifier",
        description="Relays agent notifications to the desktop over HTTP and MCP.",
        version=__version__,
    )
    app.state.context = context
    # Set by the listener manager when this app's listener is torn down.
    app.state.closing = asyncio.Event()

    @app.exception_handler(GateClosedError)
    async def gate_closed_handler(request: Request, exc: GateClosedError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"message": str(exc)})

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(
        request: Request, exc: InvalidInputError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"message": str(exc)})

    @app.exception_handler(DispatchFailedError)
    async def dispatch_failed_handler(
        request: Request, exc: DispatchFailedError
    ) -> JSONResponse:
        logger.error(str(exc))
        return JSONResponse(
            status_code=500, content={"message": "Failed to dispatch notification"}
        )

    @app.post("/agent/notify")
    async def notify(
        request: Request, context: RelayContext = Depends(require_listening)
    ) -> dict[str, str]:
        """Dispatch a notification from a plain ``{title, content, agent}`` body."""
        try:
            payload = NotificationRequest.model_validate(await _read_json(request))
        except (ValueError, RecursionError, ValidationError) as e:
            logger.debug(f"Rejected notify body: {e}")
            raise InvalidInputError(
                "'title', 'content', and 'agent' are required"
            ) from e

        title = payload.title.strip()
        content = payload.content.strip()
        agent = payload.agent.strip()
        if not title or not content or not agent:
            raise InvalidInputError("'title', 'content', and 'agent' are required")

        await context.dispatcher.dispatch(title, content, agent)
        return {"message": "Notification dispatched"}

    @app.post("/mcp")
    async def mcp_post(
        request: Request, context: RelayContext = Depends(require_listening)
    ) -> Response:
        """JSON-RPC entry point of the MCP HTTP transport."""
        try:
            body = await _read_json(request)
        except (ValueError, RecursionError):
            return JSONResponse(
                status_code=400, content=jsonrpc_error(None, PARSE_ERROR, "Parse error")
            )

        reply = await context.engine.handle(body)
        if reply.body is None:
            return Response(status_code=reply.status_code)
        return JSONResponse(status_code=reply.status_code, content=reply.body)

    @app.get("/mcp")
    async def mcp_stream(
        request: Request, context: RelayContext = Depends(require_listening)
    ) -> StreamingResponse:
        """Server-sent events stream carrying only keep-alive comments."""
        return StreamingResponse(
            keepalive_events(context.keepalive_interval, request.app.state.closing),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache"},
        )

    return app
