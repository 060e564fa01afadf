"""POST /invoke — run one command and answer with the envelope.

Every routed request answers HTTP 200, whether the command succeeded or
not; the outcome lives in ``ok``.  Only a body that cannot be turned into a
``(command, params)`` pair is rejected with HTTP 400.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from garden_bridge.api.dependencies import RouterDep
from garden_bridge.api.middleware import envelope_response
from garden_bridge.logging import bind_invocation_context
from garden_bridge.protocol.constants import ErrorCode

router = APIRouter(tags=["invoke"])


@router.post("/invoke", summary="Invoke a command")
async def invoke(request: Request, command_router: RouterDep) -> JSONResponse:
    raw = await request.body()
    try:
        body: Any = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return envelope_response(400, ErrorCode.INVALID_JSON, "Invalid request body")

    if not isinstance(body, dict):
        return envelope_response(400, ErrorCode.INVALID_JSON, "Request body must be a JSON object")

    command = body.get("command")
    if not isinstance(command, str) or not command:
        return envelope_response(
            400, ErrorCode.INVALID_PARAMS, "Missing or invalid parameter: command"
        )

    request_id = getattr(request.state, "request_id", None)
    bind_invocation_context(request_id=request_id, command=command)
    result = await command_router.route(command, body.get("params"))
    return JSONResponse(status_code=200, content=result.to_wire())
