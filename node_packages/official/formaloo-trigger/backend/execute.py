"""
Formaloo Trigger Node

Registers a webhook on a Formaloo form when the workflow is activated,
removes it on deactivation, and turns each callback into one workflow item.
"""

import logging
from typing import Any, Dict, List

from formaloo_flow.formaloo.catalog import CatalogClient
from formaloo_flow.formaloo.client import FormalooClient
from formaloo_flow.formaloo.errors import FormalooError
from formaloo_flow.formaloo.webhooks import (
    WEBHOOK_STATE_KEYS,
    WebhookEvent,
    WebhookLifecycleManager,
    WebhookReceiver,
)
from formaloo_flow.workflows.engine.context import NodeContext
from formaloo_flow.workflows.engine.definitions import WorkflowItem

logger = logging.getLogger(__name__)


def _client(context: NodeContext) -> FormalooClient:
    return FormalooClient(context.get_credential(), transport=context.transport)


def _manager(context: NodeContext, client: FormalooClient) -> WebhookLifecycleManager:
    config = context.resolve_config()
    return WebhookLifecycleManager(
        client,
        context.static_data,
        form=config.get("formSlug"),
        event=config.get("event") or WebhookEvent.FORM_SUBMIT.value,
        webhook_url=context.webhook_url,
    )


async def check_exists(context: NodeContext) -> bool:
    try:
        async with _client(context) as client:
            return await _manager(context, client).check_exists()
    except FormalooError as e:
        logger.debug(f"Webhook check skipped: {e.message}")
        return False


async def create(context: NodeContext) -> bool:
    async with _client(context) as client:
        return await _manager(context, client).create()


async def delete(context: NodeContext) -> bool:
    try:
        client = _client(context)
    except FormalooError as e:
        logger.warning(f"Clearing webhook state without remote delete: {e.message}")
        for key in WEBHOOK_STATE_KEYS:
            context.static_data.delete(key)
        return True

    async with client:
        return await _manager(context, client).delete()


async def webhook(context: NodeContext) -> List[WorkflowItem]:
    """Emit the inbound callback as one item."""
    event = WebhookReceiver(context.static_data).receive(context.request_body)
    return [WorkflowItem(json=event)]


async def execute(context: NodeContext) -> List[WorkflowItem]:
    """
    Manual run: push the first input item (or its 'body') through the receiver.
    """
    items = context.items()
    payload: Any = items[0].json_data
    if isinstance(payload, dict) and "body" in payload:
        payload = payload["body"]

    event = WebhookReceiver(context.static_data).receive(payload)
    return [WorkflowItem(json=event)]


async def get_forms(context: NodeContext, **kwargs) -> List[Dict[str, str]]:
    async with _client(context) as client:
        forms = await CatalogClient(client).list_forms()
    return [form.option() for form in forms]
