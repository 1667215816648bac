"""Signed webhook callback route."""

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from connect_engine.common.security import require_signed_request
from connect_engine.verification.schemas import VerifiedClaims
from connect_engine.webhooks.dispatcher import WEBHOOK_BASE_PATH, WebhookDispatcher


def create_webhook_router(dispatcher: WebhookDispatcher) -> APIRouter:
    router = APIRouter()

    @router.post(WEBHOOK_BASE_PATH + "/{event}")
    async def receive_webhook(
        event: str,
        request: Request,
        claims: VerifiedClaims = Depends(require_signed_request),
    ):
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            payload = None

        outcome = await dispatcher.dispatch(claims, payload, route_event=event)
        return JSONResponse(
            status_code=outcome.status_code,
            content={"code": outcome.status_code, "msg": outcome.message},
        )

    return router
