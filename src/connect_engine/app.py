"""FastAPI application factory for Connect-Engine."""

from contextlib import asynccontextmanager
from typing import Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from connect_engine.common.config import get_settings
from connect_engine.common.exceptions import ConnectError
from connect_engine.common.logging import setup_logging
from connect_engine.common.schemas import HealthResponse, StatusResponse
from connect_engine.descriptor.builder import DescriptorBuilder
from connect_engine.webhooks.dispatcher import WebhookDispatcher
from connect_engine.webhooks.schemas import WebhookConfiguration


def create_app(webhooks: Optional[Iterable[WebhookConfiguration]] = None) -> FastAPI:
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        setup_logging(settings.log_level)
        from connect_engine.deps import get_db
        db = get_db()
        await db.init()
        await db.create_all()
        yield
        # Shutdown
        await db.close()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    @app.exception_handler(ConnectError)
    async def connect_error_handler(request: Request, exc: ConnectError):
        body = StatusResponse(
            code=exc.status_code,
            msg=exc.message,
            reason=getattr(exc, "reason", None),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=body.model_dump(exclude_none=True),
        )

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(version=settings.api_version)

    from connect_engine.deps import get_lifecycle_manager

    lifecycle = get_lifecycle_manager()
    # Each app owns its webhook registry.
    dispatcher = WebhookDispatcher()
    if webhooks:
        dispatcher.register(webhooks)
    app.state.webhook_dispatcher = dispatcher

    prefix = settings.normalized_addon_path
    lifecycle.add_lifecycle_endpoints(app, prefix)
    dispatcher.add_webhook_endpoints(app, prefix)

    # Assemble the descriptor once every component has registered.
    builder = DescriptorBuilder.from_settings(settings)
    builder.add(lifecycle.descriptor_fragment())
    builder.add(dispatcher.descriptor_fragment())
    app.state.descriptor = builder.build()

    return app
