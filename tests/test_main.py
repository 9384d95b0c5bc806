"""
Tests for the inbound webhook HTTP surface.
"""

import pytest
from fastapi.testclient import TestClient

from formaloo_flow.main import app
from formaloo_flow.workflows.engine.static_data import get_static_data_store


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_json_callback_is_received(client):
    store = get_static_data_store("wf-http", "trigger-1")
    store.update({"webhook_slug": "wh7", "form_slug": "f1", "event_type": "all"})

    response = client.post("/api/v1/webhooks/wf-http/trigger-1", json={"form": "f1", "data": {"name": "Ada"}})

    assert response.status_code == 200
    payload = response.json()
    assert payload["received"] is True
    [item] = payload["items"]
    assert item["json"]["data"] == {"name": "Ada"}
    assert item["json"]["_webhook_metadata"]["webhook_slug"] == "wh7"
    assert item["json"]["_webhook_metadata"]["event_type"] == "all"


def test_text_callback_is_kept_raw(client):
    response = client.post(
        "/api/v1/webhooks/wf-http/trigger-2",
        content=b"plain text",
        headers={"Content-Type": "text/plain"},
    )

    [item] = response.json()["items"]
    assert item["json"]["data"] == "plain text"
    assert item["json"]["_webhook_metadata"]["webhook_slug"] is None
