"""API layer — FastAPI application factory.

``create_app()`` is the single entry point for building the FastAPI app.
All components are wired here so that tests can override them by calling
``create_app()`` with custom objects.
"""

from __future__ import annotations

import asyncio

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from garden_bridge import __version__
from garden_bridge.api.middleware import (
    AccessLogMiddleware,
    RequestIDMiddleware,
    TokenAuthMiddleware,
    build_error_handler,
    build_http_error_handler,
)
from garden_bridge.api.routes import commands, health, invoke
from garden_bridge.api.routes import resources as resources_routes
from garden_bridge.capabilities.builtin import ServiceOverrides, build_registry
from garden_bridge.capabilities.router import CommandRouter
from garden_bridge.config import Settings, get_settings
from garden_bridge.exceptions import BridgeError, IdentityError
from garden_bridge.gateway.client import GatewayClient
from garden_bridge.gateway.identity import DeviceIdentity, TokenStore
from garden_bridge.logging import configure_logging, get_logger
from garden_bridge.permissions import PermissionGate, StaticPermissionGate
from garden_bridge.resources.store import ResourceStore

log = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    router: CommandRouter | None = None,
    resources: ResourceStore | None = None,
    permissions: PermissionGate | None = None,
    services: ServiceOverrides | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings:    Optional settings override (used in tests).
        router:      Pre-built command router; skips the capability registry.
        resources:   Resource store shared with handlers built outside the app.
        permissions: Permission gate; defaults to the configured grants.
        services:    Data-source backends for the built-in handlers.

    Returns:
        A fully configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    configure_logging(
        level=settings.logging.level,
        format=settings.logging.format,
        log_file=str(settings.logging.file) if settings.logging.file else None,
    )

    app = FastAPI(
        title="GardenBridge",
        description="Local automation bridge exposing host capabilities over a command protocol.",
        version=__version__,
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
    )

    # Middleware (order matters, outermost applied last)
    app.add_middleware(AccessLogMiddleware)
    if settings.server.api_token:
        app.add_middleware(TokenAuthMiddleware, token=settings.server.api_token)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost", "http://127.0.0.1"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Exception handlers
    app.add_exception_handler(BridgeError, build_error_handler())  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, build_http_error_handler())  # type: ignore[arg-type]

    # Routers
    app.include_router(invoke.router)
    app.include_router(resources_routes.router)
    app.include_router(health.router)
    app.include_router(commands.router)

    # Startup / shutdown lifecycle
    @app.on_event("startup")
    async def startup() -> None:
        log.info("daemon_starting", version=__version__)

        store = resources or ResourceStore(
            root_dir=settings.resources.storage_dir,
            retention=settings.resources.retention,
            default_retention=settings.resources.default_retention,
        )
        gate = permissions or StaticPermissionGate(
            settings.permissions.granted, settings.permissions.denied
        )

        registry = None
        command_router = router
        if command_router is None:
            registry = build_registry(settings, store, gate, services)
            command_router = registry.build_router()

        identity: DeviceIdentity | None = None
        gateway_client: GatewayClient | None = None
        gateway_task: asyncio.Task[None] | None = None
        if settings.gateway.enabled:
            try:
                identity = DeviceIdentity.load(settings.identity.key_path)
            except IdentityError as exc:
                # The gateway still connects; the hello just goes out unsigned.
                log.error("device_identity_unavailable", error=exc.message)
            gateway_client = GatewayClient(
                settings.gateway,
                command_router,
                identity,
                gate,
                TokenStore(settings.identity.state_path),
            )
            gateway_task = asyncio.create_task(gateway_client.run_forever(), name="gateway-client")

        app.state.settings = settings
        app.state.resource_store = store
        app.state.permission_gate = gate
        app.state.capability_registry = registry
        app.state.command_router = command_router
        app.state.device_identity = identity
        app.state.gateway_client = gateway_client
        app.state.gateway_task = gateway_task  # Keep reference to prevent GC

        log.info(
            "daemon_ready",
            host=settings.server.host,
            port=settings.server.port,
            capabilities=command_router.capabilities(),
            gateway=settings.gateway.url() if gateway_client else None,
        )

    @app.on_event("shutdown")
    async def shutdown() -> None:
        log.info("daemon_stopping")
        if getattr(app.state, "gateway_client", None) is not None:
            await app.state.gateway_client.stop()
        task = getattr(app.state, "gateway_task", None)
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        if hasattr(app.state, "resource_store"):
            await app.state.resource_store.close()

    return app
