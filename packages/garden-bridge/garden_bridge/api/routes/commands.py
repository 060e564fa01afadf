"""GET /commands — capability manifests and the flat command list."""

from __future__ import annotations

from fastapi import APIRouter

from garden_bridge.api.dependencies import RouterDep
from garden_bridge.api.schemas import CommandsResponse

router = APIRouter(tags=["commands"])


@router.get("/commands", response_model=CommandsResponse, summary="List routable commands")
async def list_commands(command_router: RouterDep) -> CommandsResponse:
    return CommandsResponse(
        capabilities=[handler.manifest() for handler in command_router.handlers()],
        commands=command_router.commands(),
    )
