"""JSON-RPC 2.0 method dispatch for the MCP endpoint.

Two calling conventions reach the same tool registry:

* MCP: ``tools/call`` with ``{"name": ..., "arguments": {...}}``; the result is
  wrapped as MCP text content.
* Flat: ``<namespace>.<operation>`` (e.g. ``entries.update``) with the tool
  arguments as ``params``; the handler's value is returned as-is.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from auth.mcp_auth import AuthContext
from rpc.envelope import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    METHOD_NOT_FOUND,
    JsonRpcError,
    error_from_exception,
    request_id_of,
    success_response,
)
from services.errors import ConflictError, InvalidArgumentError, NotAuthorizedError
from tools.base import ToolArgumentError, ToolContext, UnknownToolError
from tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

NOTIFICATION_PREFIX = "notifications/"


def flat_method_to_tool(method: str) -> str | None:
    namespace, sep, operation = method.partition(".")
    if not sep or not namespace or not operation or "/" in method:
        return None
    return f"{namespace}_{operation}"


class McpDispatcher:
    def __init__(
        self,
        registry: ToolRegistry,
        *,
        protocol_version: str,
        server_name: str,
        server_version: str,
    ):
        self.registry = registry
        self.protocol_version = protocol_version
        self.server_name = server_name
        self.server_version = server_version

    def handle(self, payload: Any, db: Session, auth: AuthContext) -> dict[str, Any] | None:
        """Return the response envelope, or None for a notification."""
        request_id = request_id_of(payload)
        try:
            method, params = self._parse_request(payload)
            if method.startswith(NOTIFICATION_PREFIX) and "id" not in payload:
                logger.debug("Accepted MCP notification %s", method)
                return None
            result = self._dispatch(method, params, db, auth)
        except JsonRpcError as exc:
            return error_from_exception(request_id, exc)
        return success_response(request_id, result)

    def _parse_request(self, payload: Any) -> tuple[str, dict[str, Any]]:
        if isinstance(payload, list):
            raise JsonRpcError(INVALID_REQUEST, "Batch requests are not supported")
        if not isinstance(payload, dict):
            raise JsonRpcError(INVALID_REQUEST, "Invalid Request")
        if payload.get("jsonrpc") != JSONRPC_VERSION:
            raise JsonRpcError(INVALID_REQUEST, "Invalid Request: jsonrpc must be \"2.0\"")
        method = payload.get("method")
        if not isinstance(method, str) or not method:
            raise JsonRpcError(INVALID_REQUEST, "Invalid Request: missing method")
        params = payload.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            raise JsonRpcError(INVALID_PARAMS, "params must be an object")
        return method, params

    def _dispatch(self, method: str, params: dict[str, Any], db: Session, auth: AuthContext) -> Any:
        if method == "initialize":
            return self.initialize_result()
        if method == "ping":
            return {}
        if method == "tools/list":
            return {"tools": [spec.describe() for spec in self.registry.list_specs()]}
        if method == "tools/call":
            name = params.get("name")
            if not isinstance(name, str) or not name.strip():
                raise JsonRpcError(INVALID_PARAMS, "Missing tool name")
            arguments = params.get("arguments")
            if arguments is None:
                arguments = {}
            if not isinstance(arguments, dict):
                raise JsonRpcError(INVALID_PARAMS, "Tool arguments must be a JSON object")
            result = self.call_tool(name.strip(), arguments, db, auth)
            return {"content": [{"type": "text", "text": json.dumps(result)}]}

        tool_name = flat_method_to_tool(method)
        if tool_name and self.registry.get_spec(tool_name) is not None:
            return self.call_tool(tool_name, params, db, auth)
        raise JsonRpcError(METHOD_NOT_FOUND, f"Method not found: {method}")

    def initialize_result(self) -> dict[str, Any]:
        return {
            "protocolVersion": self.protocol_version,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": self.server_name, "version": self.server_version},
        }

    def call_tool(self, name: str, arguments: dict[str, Any], db: Session, auth: AuthContext) -> Any:
        ctx = ToolContext(db=db, user_id=auth.user_id, key_id=auth.key_id)
        try:
            result = self.registry.execute(name, arguments, ctx)
            db.commit()
            return result
        except UnknownToolError as exc:
            db.rollback()
            raise JsonRpcError(METHOD_NOT_FOUND, str(exc)) from exc
        except ToolArgumentError as exc:
            db.rollback()
            raise JsonRpcError(INVALID_PARAMS, str(exc), {"errors": exc.errors} if exc.errors else None) from exc
        except InvalidArgumentError as exc:
            db.rollback()
            raise JsonRpcError(INVALID_PARAMS, str(exc)) from exc
        except (NotAuthorizedError, ConflictError) as exc:
            db.rollback()
            logger.info("Tool %s refused for user %s: %s", name, auth.user_id, exc)
            raise JsonRpcError(INTERNAL_ERROR, str(exc)) from exc
        except Exception as exc:
            db.rollback()
            logger.exception("Tool %s failed for user %s", name, auth.user_id)
            raise JsonRpcError(INTERNAL_ERROR, "Internal error") from exc
