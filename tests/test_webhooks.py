"""
Tests for the webhook lifecycle and inbound payload handling.
"""

import json
import logging

import pytest

from formaloo_flow.formaloo.client import FormalooClient
from formaloo_flow.formaloo.errors import ApiRequestError, InvalidResponseError, ValidationError
from formaloo_flow.formaloo.webhooks import (
    WebhookEvent,
    WebhookLifecycleManager,
    WebhookReceiver,
    build_registration_body,
)
from formaloo_flow.workflows.engine.static_data import InMemoryStaticData

CALLBACK = "https://flows.example.com/api/v1/webhooks/wf1/node1"
HOOKS_PATH = "/v3.0/forms/f1/webhooks/"
HOOK_PATH = "/v3.0/forms/f1/webhooks/wh1/"


def _registered_store():
    return InMemoryStaticData({"webhook_slug": "wh1", "form_slug": "f1", "event_type": "form_submit"})


@pytest.mark.parametrize("event,flags", [
    (WebhookEvent.FORM_SUBMIT, (True, False, False)),
    (WebhookEvent.ROW_UPDATE, (False, True, False)),
    (WebhookEvent.PAYMENT_COMPLETED, (False, False, True)),
    (WebhookEvent.ALL, (True, True, True)),
])
def test_registration_flags_follow_event(event, flags):
    body = build_registration_body(event, CALLBACK)

    assert (body["form_submit_events"], body["row_update_events"], body["row_payment_events"]) == flags
    assert body["url"] == CALLBACK
    assert body["send_raw_data"] is True
    assert body["send_rendered_data"] is False
    assert body["title"] == f"Formaloo Flow workflow on {event.value}"


@pytest.mark.asyncio
async def test_create_registers_and_stores_state(fake_api, pre_issued):
    fake_api.add("POST", HOOKS_PATH, {"data": {"webhook": {"slug": "wh1"}}}, status=201)
    store = InMemoryStaticData()

    async with FormalooClient(pre_issued, transport=fake_api.transport) as client:
        manager = WebhookLifecycleManager(client, store, "f1", "all", CALLBACK)
        assert await manager.create() is True

    [request] = fake_api.calls("POST", HOOKS_PATH)
    body = fake_api.body(request)
    assert body["form_submit_events"] and body["row_update_events"] and body["row_payment_events"]
    assert store.as_dict() == {"webhook_slug": "wh1", "form_slug": "f1", "event_type": "all"}


@pytest.mark.asyncio
async def test_create_without_webhook_slug_fails(fake_api, pre_issued):
    fake_api.add("POST", HOOKS_PATH, {"data": {}})
    store = InMemoryStaticData()

    async with FormalooClient(pre_issued, transport=fake_api.transport) as client:
        with pytest.raises(InvalidResponseError):
            await WebhookLifecycleManager(client, store, "f1", "form_submit", CALLBACK).create()

    assert store.as_dict() == {}


@pytest.mark.asyncio
async def test_create_propagates_api_errors(fake_api, pre_issued):
    fake_api.add("POST", HOOKS_PATH, {"detail": "forbidden"}, status=403)

    async with FormalooClient(pre_issued, transport=fake_api.transport) as client:
        with pytest.raises(ApiRequestError):
            await WebhookLifecycleManager(client, InMemoryStaticData(), "f1", "form_submit", CALLBACK).create()


@pytest.mark.asyncio
@pytest.mark.parametrize("form,event", [("", "form_submit"), ("f1", "everything")])
async def test_create_validates_form_and_event(fake_api, pre_issued, form, event):
    async with FormalooClient(pre_issued, transport=fake_api.transport) as client:
        with pytest.raises(ValidationError):
            await WebhookLifecycleManager(client, InMemoryStaticData(), form, event, CALLBACK).create()

    assert fake_api.requests == []


@pytest.mark.asyncio
async def test_check_exists_without_state_makes_no_request(fake_api, pre_issued):
    async with FormalooClient(pre_issued, transport=fake_api.transport) as client:
        assert await WebhookLifecycleManager(client, InMemoryStaticData(), "f1").check_exists() is False

    assert fake_api.requests == []


@pytest.mark.asyncio
async def test_check_exists_probes_stored_webhook(fake_api, pre_issued):
    fake_api.add("GET", HOOK_PATH, {"data": {"webhook": {"slug": "wh1"}}})

    async with FormalooClient(pre_issued, transport=fake_api.transport) as client:
        # stored form slug wins over the configured one
        manager = WebhookLifecycleManager(client, _registered_store(), "other-form")
        assert await manager.check_exists() is True

    assert fake_api.requests[0].url.path == HOOK_PATH


@pytest.mark.asyncio
async def test_check_exists_is_false_when_probe_fails(fake_api, pre_issued):
    async with FormalooClient(pre_issued, transport=fake_api.transport) as client:
        assert await WebhookLifecycleManager(client, _registered_store(), "f1").check_exists() is False


@pytest.mark.asyncio
async def test_delete_without_state_makes_no_request(fake_api, self_issued):
    async with FormalooClient(self_issued, transport=fake_api.transport) as client:
        assert await WebhookLifecycleManager(client, InMemoryStaticData(), "f1").delete() is True

    assert fake_api.requests == []


@pytest.mark.asyncio
async def test_delete_removes_webhook_and_clears_state(fake_api, pre_issued):
    fake_api.add("DELETE", HOOK_PATH, None, status=204)
    store = _registered_store()

    async with FormalooClient(pre_issued, transport=fake_api.transport) as client:
        assert await WebhookLifecycleManager(client, store, "f1").delete() is True

    assert len(fake_api.calls("DELETE", HOOK_PATH)) == 1
    assert store.as_dict() == {}


@pytest.mark.asyncio
async def test_delete_swallows_failures_and_clears_state(fake_api, pre_issued):
    fake_api.add("DELETE", HOOK_PATH, {"detail": "boom"}, status=500)
    store = _registered_store()

    async with FormalooClient(pre_issued, transport=fake_api.transport) as client:
        assert await WebhookLifecycleManager(client, store, "f1").delete() is True

    assert store.as_dict() == {}


class TestWebhookReceiver:
    def test_json_text_is_parsed_and_tagged(self):
        receiver = WebhookReceiver(_registered_store())

        event = receiver.receive(json.dumps({"form": "f1", "data": {"name": "Ada"}}))

        assert event["data"] == {"name": "Ada"}
        metadata = event["_webhook_metadata"]
        assert metadata["form_slug"] == "f1"
        assert metadata["event_type"] == "form_submit"
        assert metadata["webhook_slug"] == "wh1"
        assert metadata["received_at"]

    def test_mapping_body_is_used_as_is(self):
        event = WebhookReceiver(InMemoryStaticData()).receive({"form": "f2", "row": "r1"})

        assert event["row"] == "r1"
        assert event["_webhook_metadata"]["form_slug"] == "f2"
        assert event["_webhook_metadata"]["webhook_slug"] is None

    def test_non_json_text_is_kept_raw(self):
        event = WebhookReceiver(InMemoryStaticData()).receive(b"name=Ada&age=36")

        assert event["data"] == "name=Ada&age=36"
        assert event["_webhook_metadata"]["form_slug"] is None

    def test_invalid_utf8_is_replaced_and_logged(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="formaloo_flow.formaloo.webhooks"):
            event = WebhookReceiver(InMemoryStaticData()).receive(b"name=\xffAda")

        assert event["data"] == "name=\ufffdAda"
        assert "not valid UTF-8" in caplog.text

    def test_internal_failure_becomes_error_event(self):
        class BrokenStore(InMemoryStaticData):
            def get(self, key, default=None):
                raise RuntimeError("store unavailable")

        event = WebhookReceiver(BrokenStore()).receive('{"form": "f1"}')

        assert event["error"] == "store unavailable"
        assert event["raw_body"] == '{"form": "f1"}'
        assert event["timestamp"]
