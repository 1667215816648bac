"""Routes verified webhook events to their registered handler."""

import logging
from typing import Any, Iterable, Optional

from fastapi import FastAPI

from connect_engine.common.exceptions import DuplicateWebhookError
from connect_engine.verification.schemas import VerifiedClaims
from connect_engine.webhooks.schemas import (
    FAILED,
    HANDLED,
    MALFORMED,
    NOT_FOUND,
    DispatchOutcome,
    WebhookConfiguration,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

WEBHOOK_BASE_PATH = "/webhook"
WEBHOOKS_MOUNTED_FLAG = "connect_webhooks_mounted"

# Jira sends `webhookEvent`, Confluence sends `event`.
EVENT_NAME_FIELDS = ("webhookEvent", "event")


def webhook_url(event: str) -> str:
    return f"{WEBHOOK_BASE_PATH}/{event}"


def extract_event_name(payload: dict[str, Any]) -> Optional[str]:
    for field in EVENT_NAME_FIELDS:
        value = payload.get(field)
        if isinstance(value, str) and value:
            return value
    return None


class WebhookDispatcher:
    """Static event-name -> handler registry.

    Registration happens at startup; the mapping is never mutated while
    requests are being served.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, WebhookConfiguration] = {}

    @property
    def events(self) -> list[str]:
        return list(self._handlers)

    def register(self, configs: Iterable[WebhookConfiguration]) -> None:
        """Add a batch of registrations.

        The whole batch is rejected with DuplicateWebhookError if any event
        name repeats, inside the batch or against earlier batches.
        """
        batch: dict[str, WebhookConfiguration] = {}
        for config in configs:
            event = config.definition.event
            if event in batch or event in self._handlers:
                raise DuplicateWebhookError(event)
            batch[event] = WebhookConfiguration(
                definition=config.definition.model_copy(update={"url": webhook_url(event)}),
                handler=config.handler,
            )

        self._handlers.update(batch)
        for event in batch:
            logger.info("Registered webhook handler for %s", event)

    def descriptor_fragment(self) -> dict[str, Any]:
        if not self._handlers:
            return {}
        return {
            "modules": {
                "webhooks": [c.definition.to_module() for c in self._handlers.values()],
            }
        }

    async def dispatch(
        self,
        claims: VerifiedClaims,
        payload: Any,
        route_event: Optional[str] = None,
    ) -> DispatchOutcome:
        """Invoke the handler for the payload's event at most once."""
        if not isinstance(payload, dict):
            logger.warning("Webhook from tenant %s has no JSON object body", claims.tenant_key)
            return DispatchOutcome(MALFORMED, "Webhook payload must be a JSON object")

        event = extract_event_name(payload) or route_event
        if not event:
            return DispatchOutcome(MALFORMED, "Webhook payload does not name an event")

        config = self._handlers.get(event)
        if config is None:
            logger.info("Webhook event handler not found for %s", event)
            return DispatchOutcome(NOT_FOUND, "Event handler not found", event)

        try:
            result = await config.handler(
                WebhookEvent(name=event, payload=payload, claims=claims)
            )
        except Exception:
            logger.exception(
                "Unable to handle webhook event %s from tenant %s", event, claims.tenant_key,
                extra={"tenant_key": claims.tenant_key, "event": event},
            )
            return DispatchOutcome(FAILED, "Exception thrown during handling of webhook event", event)

        if result is False:
            logger.warning("Handler for %s reported failure", event)
            return DispatchOutcome(FAILED, "Webhook handler reported failure", event)
        return DispatchOutcome(HANDLED, "Event handled successfully", event)

    def add_webhook_endpoints(self, app: FastAPI, addon_path: str = "") -> bool:
        if getattr(app.state, WEBHOOKS_MOUNTED_FLAG, False):
            logger.warning("Webhook endpoints already registered; skipping")
            return False

        from connect_engine.webhooks.router import create_webhook_router

        app.include_router(
            create_webhook_router(self),
            prefix=addon_path,
            tags=["webhooks"],
        )
        setattr(app.state, WEBHOOKS_MOUNTED_FLAG, True)
        return True
