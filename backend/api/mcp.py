import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from auth.mcp_auth import AuthContext, get_mcp_auth_context
from config import settings
from db.database import get_db
from rpc.dispatcher import McpDispatcher
from rpc.envelope import PARSE_ERROR, error_response
from tools import tool_registry

router = APIRouter(prefix="/mcp", tags=["mcp"])

dispatcher = McpDispatcher(
    tool_registry,
    protocol_version=settings.MCP_PROTOCOL_VERSION,
    server_name=settings.MCP_SERVER_NAME,
    server_version=settings.APP_VERSION,
)


@router.post("/messages")
async def mcp_messages(
    request: Request,
    auth: AuthContext = Depends(get_mcp_auth_context),
    db: Session = Depends(get_db),
):
    """JSON-RPC 2.0 endpoint. Errors are reported in the envelope with HTTP 200."""
    raw = await request.body()
    try:
        payload = json.loads(raw) if raw else None
    except ValueError:
        return JSONResponse(error_response(None, PARSE_ERROR, "Parse error"))

    response = await run_in_threadpool(dispatcher.handle, payload, db, auth)
    if response is None:
        return Response(status_code=202)
    return JSONResponse(response)


@router.get("/sse")
def mcp_sse(auth: AuthContext = Depends(get_mcp_auth_context)):
    _ = auth
    return JSONResponse({"error": "MCP SSE endpoint not implemented"}, status_code=501)
