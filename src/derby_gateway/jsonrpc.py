"""JSON-RPC 2.0 over WebSocket: method registry, dispatch, and broadcast."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from common.errors import JsonRpcErrorCode, json_rpc_code_for_code, sanitize_exception
from dal.errors import DalError
from dal.named_query import NamedQueryExecutor

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"

MethodHandler = Callable[[Any, Any, Any], Awaitable[Any]]


class JsonRpcError(Exception):
    """Error raised by a method handler to produce a specific JSON-RPC error."""

    def __init__(self, code: int, message: str) -> None:
        """Initialize with a JSON-RPC error code and message."""
        super().__init__(message)
        self.code = int(code)
        self.message = message


def error_response(request_id: Any, code: int, message: str) -> Dict[str, Any]:
    """Build a JSON-RPC error envelope."""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "error": {"code": int(code), "message": message},
        "id": request_id,
    }


def result_response(request_id: Any, result: Any) -> Dict[str, Any]:
    """Build a JSON-RPC success envelope."""
    return {"jsonrpc": JSONRPC_VERSION, "result": result, "id": request_id}


class ConnectionRegistry:
    """Tracks open WebSocket connections for broadcasting."""

    def __init__(self) -> None:
        self.active_connections: Set[Any] = set()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: Any) -> None:
        """Add a new connection."""
        async with self._lock:
            self.active_connections.add(websocket)
        logger.info("WebSocket client connected. Total clients: %d", len(self.active_connections))

    async def disconnect(self, websocket: Any) -> None:
        """Remove a connection."""
        async with self._lock:
            self.active_connections.discard(websocket)
        logger.info(
            "WebSocket client disconnected. Total clients: %d", len(self.active_connections)
        )

    async def broadcast(self, data: Any) -> int:
        """Send a ``notification`` to every open connection; return how many received it."""
        message = json.dumps(
            {"jsonrpc": JSONRPC_VERSION, "method": "notification", "params": data},
            default=str,
        )
        dead_connections = set()
        delivered = 0
        async with self._lock:
            for connection in self.active_connections:
                try:
                    await connection.send_text(message)
                    delivered += 1
                except Exception as exc:
                    logger.warning("Failed to send notification to connection: %s", exc)
                    dead_connections.add(connection)
            self.active_connections -= dead_connections
        return delivered


class JsonRpcDispatcher:
    """Routes JSON-RPC requests to registered method handlers.

    Handlers are called as ``handler(params, request_id, websocket)`` and
    return the ``result`` value.
    """

    def __init__(self, methods: Optional[Dict[str, MethodHandler]] = None) -> None:
        self.methods: Dict[str, MethodHandler] = dict(methods or {})
        self.connections = ConnectionRegistry()

    def register_method(self, name: str, handler: MethodHandler) -> None:
        """Register (or replace) a method handler."""
        self.methods[name] = handler
        logger.info("Registered WebSocket method: %s", name)

    def get_method(self, name: str) -> Optional[MethodHandler]:
        """Return the handler registered for ``name``."""
        return self.methods.get(name)

    async def broadcast(self, data: Any) -> int:
        """Broadcast a notification to all connected clients."""
        return await self.connections.broadcast(data)

    async def handle_message(self, raw: str, websocket: Any = None) -> Dict[str, Any]:
        """Process one text frame and return the response envelope."""
        try:
            request = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Invalid JSON received over WebSocket")
            return error_response(None, JsonRpcErrorCode.PARSE_ERROR, "Invalid JSON")

        if not isinstance(request, dict):
            return error_response(
                None, JsonRpcErrorCode.INVALID_REQUEST, "Invalid JSON-RPC request"
            )

        request_id = request.get("id")
        method = request.get("method")
        if request.get("jsonrpc") != JSONRPC_VERSION or not isinstance(method, str) or not method:
            return error_response(
                request_id, JsonRpcErrorCode.INVALID_REQUEST, "Invalid JSON-RPC request"
            )

        handler = self.get_method(method)
        if handler is None:
            return error_response(
                request_id, JsonRpcErrorCode.METHOD_NOT_FOUND, f"Method '{method}' not found"
            )

        logger.debug("Executing method '%s'", method)
        try:
            result = await handler(request.get("params"), request_id, websocket)
        except JsonRpcError as exc:
            return error_response(request_id, exc.code, exc.message)
        except DalError as exc:
            logger.error("Error executing method '%s': %s", method, exc.message)
            return error_response(
                request_id, json_rpc_code_for_code(exc.error_code), sanitize_exception(exc)
            )
        except Exception as exc:
            logger.exception("Unexpected error executing method '%s'", method)
            return error_response(
                request_id, JsonRpcErrorCode.INTERNAL_ERROR, sanitize_exception(exc)
            )
        return result_response(request_id, result)


def make_sql_method(get_executor: Callable[[], NamedQueryExecutor]) -> MethodHandler:
    """Build the ``sql`` method: ``{"name": ..., "parameters": {...}}`` -> rows."""

    async def sql_method(params: Any, request_id: Any, websocket: Any) -> Any:
        if not isinstance(params, dict) or not params.get("name"):
            raise JsonRpcError(JsonRpcErrorCode.INVALID_PARAMS, "Missing query name")
        parameters = params.get("parameters") or {}
        if not isinstance(parameters, dict):
            raise JsonRpcError(JsonRpcErrorCode.INVALID_PARAMS, "parameters must be an object")
        return await get_executor().execute_named_query(str(params["name"]), parameters)

    return sql_method
