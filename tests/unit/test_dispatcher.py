"""Tests for webhook registration and dispatch outcomes."""

import pytest

from connect_engine.common.exceptions import DuplicateWebhookError
from connect_engine.verification.schemas import VerifiedClaims
from connect_engine.webhooks.dispatcher import WebhookDispatcher, extract_event_name
from connect_engine.webhooks.schemas import (
    FAILED,
    HANDLED,
    MALFORMED,
    NOT_FOUND,
    WebhookConfiguration,
    WebhookDefinition,
)


class RecordingHandler:
    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.events = []

    async def __call__(self, event):
        self.events.append(event)
        if self.error is not None:
            raise self.error
        return self.result


CLAIMS = VerifiedClaims(tenant_key="T1", token="tok", host_base_url="https://one.net")


def config(event: str, handler=None, **definition) -> WebhookConfiguration:
    return WebhookConfiguration(
        definition=WebhookDefinition(event=event, **definition),
        handler=handler or RecordingHandler(),
    )


class TestRegister:
    def test_registers_events(self):
        dispatcher = WebhookDispatcher()
        dispatcher.register([config("jira:issue_created"), config("jira:issue_updated")])
        assert dispatcher.events == ["jira:issue_created", "jira:issue_updated"]

    def test_duplicate_in_batch_rejected(self):
        dispatcher = WebhookDispatcher()
        with pytest.raises(DuplicateWebhookError) as exc_info:
            dispatcher.register([config("jira:issue_created"), config("jira:issue_created")])
        assert exc_info.value.event == "jira:issue_created"
        assert dispatcher.events == []

    def test_duplicate_across_batches_rejected(self):
        dispatcher = WebhookDispatcher()
        dispatcher.register([config("jira:issue_created")])
        with pytest.raises(DuplicateWebhookError):
            dispatcher.register([config("jira:issue_updated"), config("jira:issue_created")])
        assert dispatcher.events == ["jira:issue_created"]

    def test_url_derived_from_event(self):
        dispatcher = WebhookDispatcher()
        dispatcher.register([config("jira:issue_created", url="/somewhere/else")])
        fragment = dispatcher.descriptor_fragment()
        assert fragment["modules"]["webhooks"] == [
            {"event": "jira:issue_created", "url": "/webhook/jira:issue_created"}
        ]

    def test_registration_does_not_mutate_caller_definition(self):
        definition = WebhookDefinition(event="jira:issue_created")
        WebhookDispatcher().register(
            [WebhookConfiguration(definition=definition, handler=RecordingHandler())]
        )
        assert definition.url is None

    def test_fragment_uses_camel_case(self):
        dispatcher = WebhookDispatcher()
        dispatcher.register([config(
            "jira:issue_created", exclude_body=True, property_keys=["p1"], filter="project = X",
        )])
        module = dispatcher.descriptor_fragment()["modules"]["webhooks"][0]
        assert module["excludeBody"] is True
        assert module["propertyKeys"] == ["p1"]
        assert module["filter"] == "project = X"

    def test_empty_fragment(self):
        assert WebhookDispatcher().descriptor_fragment() == {}


class TestExtractEventName:
    def test_webhook_event_field(self):
        assert extract_event_name({"webhookEvent": "jira:issue_created"}) == "jira:issue_created"

    def test_event_field(self):
        assert extract_event_name({"event": "page_created"}) == "page_created"

    def test_none(self):
        assert extract_event_name({"timestamp": 1}) is None


class TestDispatch:
    async def test_handler_invoked_once(self):
        handler = RecordingHandler()
        dispatcher = WebhookDispatcher()
        dispatcher.register([config("jira:issue_created", handler)])
        payload = {"webhookEvent": "jira:issue_created", "issue": {"key": "ABC-1"}}

        outcome = await dispatcher.dispatch(CLAIMS, payload)

        assert outcome.code == HANDLED
        assert outcome.status_code == 200
        assert len(handler.events) == 1
        event = handler.events[0]
        assert event.name == "jira:issue_created"
        assert event.payload == payload
        assert event.claims is CLAIMS

    async def test_only_matching_handler_invoked(self):
        created, updated = RecordingHandler(), RecordingHandler()
        dispatcher = WebhookDispatcher()
        dispatcher.register([config("jira:issue_created", created), config("jira:issue_updated", updated)])
        await dispatcher.dispatch(CLAIMS, {"webhookEvent": "jira:issue_updated"})
        assert created.events == []
        assert len(updated.events) == 1

    async def test_unknown_event_not_found(self):
        handler = RecordingHandler()
        dispatcher = WebhookDispatcher()
        dispatcher.register([config("jira:issue_created", handler)])
        outcome = await dispatcher.dispatch(CLAIMS, {"webhookEvent": "jira:worklog_updated"})
        assert outcome.code == NOT_FOUND
        assert outcome.status_code == 404
        assert handler.events == []

    async def test_route_event_used_when_payload_is_silent(self):
        handler = RecordingHandler()
        dispatcher = WebhookDispatcher()
        dispatcher.register([config("page_created", handler)])
        outcome = await dispatcher.dispatch(CLAIMS, {"page": {}}, route_event="page_created")
        assert outcome.code == HANDLED

    async def test_payload_event_wins_over_route(self):
        created, updated = RecordingHandler(), RecordingHandler()
        dispatcher = WebhookDispatcher()
        dispatcher.register([config("jira:issue_created", created), config("jira:issue_updated", updated)])
        await dispatcher.dispatch(
            CLAIMS, {"webhookEvent": "jira:issue_updated"}, route_event="jira:issue_created"
        )
        assert created.events == []
        assert len(updated.events) == 1

    @pytest.mark.parametrize("payload", [None, [], "text", 42])
    async def test_non_object_payload_malformed(self, payload):
        dispatcher = WebhookDispatcher()
        dispatcher.register([config("jira:issue_created")])
        outcome = await dispatcher.dispatch(CLAIMS, payload, route_event="jira:issue_created")
        assert outcome.code == MALFORMED
        assert outcome.status_code == 500

    async def test_handler_exception_is_contained(self):
        failing = RecordingHandler(error=RuntimeError("boom"))
        healthy = RecordingHandler()
        dispatcher = WebhookDispatcher()
        dispatcher.register([config("jira:issue_deleted", failing), config("jira:issue_created", healthy)])

        outcome = await dispatcher.dispatch(CLAIMS, {"webhookEvent": "jira:issue_deleted"})
        assert outcome.code == FAILED
        assert outcome.status_code == 500

        again = await dispatcher.dispatch(CLAIMS, {"webhookEvent": "jira:issue_created"})
        assert again.ok

    async def test_handler_false_is_failure(self):
        dispatcher = WebhookDispatcher()
        dispatcher.register([config("jira:issue_updated", RecordingHandler(result=False))])
        outcome = await dispatcher.dispatch(CLAIMS, {"webhookEvent": "jira:issue_updated"})
        assert outcome.code == FAILED

    async def test_handler_none_is_success(self):
        dispatcher = WebhookDispatcher()
        dispatcher.register([config("jira:issue_updated", RecordingHandler(result=None))])
        outcome = await dispatcher.dispatch(CLAIMS, {"webhookEvent": "jira:issue_updated"})
        assert outcome.code == HANDLED
