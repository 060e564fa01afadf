"""GET /health — liveness plus gateway and capability status."""

from __future__ import annotations

import time

from fastapi import APIRouter

from garden_bridge import __protocol_version__, __version__
from garden_bridge.api.dependencies import (
    GatewayDep,
    IdentityDep,
    RegistryDep,
    ResourceStoreDep,
    RouterDep,
)
from garden_bridge.api.schemas import CapabilityStatus, GatewayStatus, HealthResponse
from garden_bridge.gateway.session import SessionState

router = APIRouter(tags=["health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Daemon health check")
async def health(
    command_router: RouterDep,
    registry: RegistryDep,
    gateway: GatewayDep,
    identity: IdentityDep,
    store: ResourceStoreDep,
) -> HealthResponse:
    if registry is not None:
        capabilities = CapabilityStatus(**registry.status_report())
    else:
        capabilities = CapabilityStatus(available=command_router.capabilities())

    gateway_status = GatewayStatus(
        enabled=gateway is not None,
        url=gateway.url if gateway is not None else None,
        device_id=identity.device_id if identity is not None else None,
    )
    if gateway is not None:
        gateway_status.state = gateway.state.value
        gateway_status.reason = gateway.reason
        gateway_status.paired = gateway.state is SessionState.PAIRED

    return HealthResponse(
        version=__version__,
        protocol_version=__protocol_version__,
        uptime_seconds=round(time.time() - _start_time, 2),
        gateway=gateway_status,
        capabilities=capabilities,
        resources=len(store),
    )
