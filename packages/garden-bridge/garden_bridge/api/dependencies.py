"""API layer — FastAPI dependency injection.

The router, resource store and gateway client are created once at startup
and injected via FastAPI's dependency system.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, Request

from garden_bridge.capabilities.registry import CapabilityRegistry
from garden_bridge.capabilities.router import CommandRouter
from garden_bridge.resources.store import ResourceStore


def get_router(request: Request) -> CommandRouter:
    return request.app.state.command_router  # type: ignore[no-any-return]


def get_registry(request: Request) -> CapabilityRegistry | None:
    """The registry is absent when the app was built around an explicit router."""
    return getattr(request.app.state, "capability_registry", None)


def get_resource_store(request: Request) -> ResourceStore:
    return request.app.state.resource_store  # type: ignore[no-any-return]


def get_gateway(request: Request) -> Any:
    """Return the GatewayClient, or None when the gateway is disabled."""
    return getattr(request.app.state, "gateway_client", None)


def get_identity(request: Request) -> Any:
    return getattr(request.app.state, "device_identity", None)


# Shorthand type aliases for route signatures.
RouterDep = Annotated[CommandRouter, Depends(get_router)]
RegistryDep = Annotated[Any, Depends(get_registry)]
ResourceStoreDep = Annotated[ResourceStore, Depends(get_resource_store)]
# Nullable: None when the gateway is disabled.
GatewayDep = Annotated[Any, Depends(get_gateway)]
IdentityDep = Annotated[Any, Depends(get_identity)]
