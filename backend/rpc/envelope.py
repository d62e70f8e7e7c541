from __future__ import annotations

from typing import Any

JSONRPC_VERSION = "2.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
UNAUTHORIZED = -32001

RequestId = str | int | None


class JsonRpcError(Exception):
    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


def success_response(request_id: RequestId, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(request_id: RequestId, code: int, message: str, data: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def error_from_exception(request_id: RequestId, exc: JsonRpcError) -> dict[str, Any]:
    return error_response(request_id, exc.code, exc.message, exc.data)


def request_id_of(payload: Any) -> RequestId:
    """Best-effort id for error replies; anything not a valid id becomes null."""
    if isinstance(payload, dict):
        value = payload.get("id")
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            return value
    return None
