"""MCP (Model Context Protocol) engine for the HTTP transport.

Implements the JSON-RPC 2.0 envelope rules and the three methods the relay
supports: ``initialize``, ``tools/list`` and ``tools/call`` with a single
``notify`` tool.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from agent_notifier import __version__
from agent_notifier.core import SOFT_CONTENT_LIMIT_CHARS, validate_notification_fields
from agent_notifier.dispatch import Dispatcher
from agent_notifier.errors import DispatchFailedError, InvalidInputError, ProtocolError

logger = logging.getLogger(__name__)

# MCP HTTP Stream transport as of the 2025-11-25 revision.
PROTOCOL_VERSION = "2025-11-25"
SERVER_NAME = "agent-notifications"
TOOL_NAME = "notify"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
SERVER_ERROR = -32000

INVALID_NOTIFY_ARGUMENTS = (
    "Invalid params: 'title', 'content', and 'agent' are required "
    "and must be within limits"
)


class McpMethod(str, Enum):
    INITIALIZE = "initialize"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"


@dataclass
class McpReply:
    """HTTP status plus optional JSON-RPC envelope for a POST /mcp body."""

    status_code: int
    body: dict[str, Any] | None = None


def jsonrpc_success(id: Any, result: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": id, "result": result}


def jsonrpc_error(id: Any, code: int, message: str) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": id, "error": {"code": code, "message": message}}


def notify_tool_descriptor() -> dict[str, Any]:
    return {
        "name": TOOL_NAME,
        "description": (
            "Send a desktop notification via the Agent Notifications app "
            "with title, content, and agent label."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "title": {"type": "string", "minLength": 1},
                "content": {
                    "type": "string",
                    "minLength": 1,
                    "maxLength": SOFT_CONTENT_LIMIT_CHARS,
                },
                "agent": {"type": "string", "minLength": 1},
            },
            "required": ["title", "content", "agent"],
            "additionalProperties": False,
        },
    }


def _string_arg(arguments: dict[str, Any], key: str) -> str:
    value = arguments.get(key)
    return value if isinstance(value, str) else ""


class McpEngine:
    """Stateless MCP request handler."""

    def __init__(self, dispatcher: Dispatcher, server_version: str = __version__):
        self.dispatcher = dispatcher
        self.server_version = server_version
        self._handlers: dict[
            McpMethod, Callable[[Any], Awaitable[dict[str, Any]]]
        ] = {
            McpMethod.INITIALIZE: self._initialize,
            McpMethod.TOOLS_LIST: self._tools_list,
            McpMethod.TOOLS_CALL: self._tools_call,
        }

    async def handle(self, body: Any) -> McpReply:
        """Handle one decoded POST /mcp body."""
        if not isinstance(body, dict) or "method" not in body:
            # Response or notification from the client: nothing to answer.
            return McpReply(202)

        if "id" not in body:
            return McpReply(202)

        method = body["method"]
        if not isinstance(method, str):
            return McpReply(
                200,
                jsonrpc_error(None, INVALID_REQUEST, "Invalid request: method must be a string"),
            )

        id = body["id"]
        try:
            handler = self._handlers[McpMethod(method)]
        except ValueError:
            return McpReply(200, jsonrpc_error(id, METHOD_NOT_FOUND, "Method not found"))

        try:
            result = await handler(body.get("params"))
        except ProtocolError as e:
            return McpReply(200, jsonrpc_error(id, e.code, e.message))

        return McpReply(200, jsonrpc_success(id, result))

    async def _initialize(self, params: Any) -> dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "serverInfo": {"name": SERVER_NAME, "version": self.server_version},
            "capabilities": {"tools": {"listChanged": False}},
        }

    async def _tools_list(self, params: Any) -> dict[str, Any]:
        return {"tools": [notify_tool_descriptor()], "nextCursor": None}

    async def _tools_call(self, params: Any) -> dict[str, Any]:
        if not isinstance(params, dict):
            raise ProtocolError(INVALID_PARAMS, "Invalid params: expected object")

        tool_name = params.get("name")
        if not isinstance(tool_name, str):
            raise ProtocolError(INVALID_PARAMS, "Invalid params: missing tool name")
        if tool_name != TOOL_NAME:
            raise ProtocolError(METHOD_NOT_FOUND, "Tool not found")

        arguments = params.get("arguments")
        if not isinstance(arguments, dict):
            raise ProtocolError(
                INVALID_PARAMS, "Invalid params: 'arguments' must be an object"
            )

        try:
            title, content, agent = validate_notification_fields(
                _string_arg(arguments, "title"),
                _string_arg(arguments, "content"),
                _string_arg(arguments, "agent"),
            )
        except InvalidInputError as e:
            logger.debug(f"Rejected notify arguments: {e}")
            raise ProtocolError(INVALID_PARAMS, INVALID_NOTIFY_ARGUMENTS) from e

        try:
            await self.dispatcher.dispatch(title, content, agent)
        except DispatchFailedError as e:
            logger.error(str(e))
            raise ProtocolError(SERVER_ERROR, "Failed to dispatch notification") from e

        return {
            "content": [{"type": "text", "text": f"Notification sent: {title}"}],
            "isError": False,
        }
