"""Lifecycle and descriptor routes called by the remote product."""

import json
from typing import Any

from fastapi import APIRouter, Request

from connect_engine.common.schemas import StatusResponse
from connect_engine.lifecycle.service import (
    DESCRIPTOR_PATH,
    INSTALLED_PATH,
    UNINSTALLED_PATH,
    LifecycleManager,
)


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def create_lifecycle_router(manager: LifecycleManager) -> APIRouter:
    router = APIRouter()

    @router.post(INSTALLED_PATH, response_model=StatusResponse, response_model_exclude_none=True)
    async def installed(request: Request):
        await manager.install(await _json_body(request))
        return StatusResponse(code=200, msg="Installation completed successfully")

    @router.post(UNINSTALLED_PATH, response_model=StatusResponse, response_model_exclude_none=True)
    async def uninstalled(request: Request):
        await manager.uninstall(await _json_body(request))
        return StatusResponse(code=200, msg="Uninstall completed successfully")

    @router.get(DESCRIPTOR_PATH)
    async def descriptor(request: Request):
        return request.app.state.descriptor.to_json()

    return router
