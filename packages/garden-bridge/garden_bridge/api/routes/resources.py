"""GET /resources/{id} — serve ephemeral artifacts by id.

``/screenshot/{id}``, ``/photo/{id}`` and ``/audio/{id}`` are aliases kept for
the URLs the screen, photos and audio capabilities hand out.
"""

from __future__ import annotations

from fastapi import APIRouter, Response

from garden_bridge.api.dependencies import ResourceStoreDep

router = APIRouter(tags=["resources"])


async def _serve(resource_id: str, store: ResourceStoreDep) -> Response:
    # ResourceNotFoundError is rendered as a 404 envelope by the app's handler.
    data, entry = await store.read(resource_id)
    return Response(
        content=data,
        media_type=entry.mime_type,
        headers={"Cache-Control": f"public, max-age={int(entry.retention)}"},
    )


@router.get("/resources/{resource_id}", summary="Fetch a stored resource")
async def get_resource(resource_id: str, store: ResourceStoreDep) -> Response:
    return await _serve(resource_id, store)


@router.get("/screenshot/{resource_id}", summary="Fetch a stored screenshot")
async def get_screenshot(resource_id: str, store: ResourceStoreDep) -> Response:
    return await _serve(resource_id, store)


@router.get("/audio/{resource_id}", summary="Fetch a stored recording")
async def get_audio(resource_id: str, store: ResourceStoreDep) -> Response:
    return await _serve(resource_id, store)


@router.get("/photo/{resource_id}", summary="Fetch an exported photo")
async def get_photo(resource_id: str, store: ResourceStoreDep) -> Response:
    return await _serve(resource_id, store)
