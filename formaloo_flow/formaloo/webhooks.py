"""
Formaloo webhook lifecycle and inbound payload normalization.
"""
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from formaloo_flow.formaloo.client import FormalooClient
from formaloo_flow.formaloo.errors import InvalidResponseError, ValidationError
from formaloo_flow.formaloo.submission import resolve_form_slug
from formaloo_flow.workflows.engine.static_data import StaticDataStore

logger = logging.getLogger(__name__)

WEBHOOK_SLUG_KEY = "webhook_slug"
FORM_SLUG_KEY = "form_slug"
EVENT_TYPE_KEY = "event_type"
WEBHOOK_STATE_KEYS = (WEBHOOK_SLUG_KEY, FORM_SLUG_KEY, EVENT_TYPE_KEY)


class WebhookEvent(str, Enum):
    FORM_SUBMIT = "form_submit"
    ROW_UPDATE = "row_update"
    PAYMENT_COMPLETED = "payment_completed"
    ALL = "all"


def build_registration_body(event: WebhookEvent, webhook_url: str) -> Dict[str, Any]:
    is_all = event == WebhookEvent.ALL
    return {
        "title": f"Formaloo Flow workflow on {event.value}",
        "url": webhook_url,
        "form_submit_events": is_all or event == WebhookEvent.FORM_SUBMIT,
        "row_update_events": is_all or event == WebhookEvent.ROW_UPDATE,
        "row_payment_events": is_all or event == WebhookEvent.PAYMENT_COMPLETED,
        "send_raw_data": True,
        "send_rendered_data": False,
    }


class WebhookLifecycleManager:
    """
    Creates, probes and removes the remote webhook of one trigger instance.

    The registration lives in the instance's static data: no stored
    webhook slug means the trigger is not registered.
    """

    def __init__(
        self,
        client: FormalooClient,
        store: StaticDataStore,
        form: Any = None,
        event: Any = WebhookEvent.FORM_SUBMIT,
        webhook_url: Optional[str] = None,
    ):
        self.client = client
        self.store = store
        self.form_slug = resolve_form_slug(form)
        self.event = event
        self.webhook_url = webhook_url

    @property
    def webhook_slug(self) -> Optional[str]:
        return self.store.get(WEBHOOK_SLUG_KEY)

    def _webhook_path(self, form_slug: str, webhook_slug: str) -> str:
        return f"/v3.0/forms/{form_slug}/webhooks/{webhook_slug}/"

    async def check_exists(self) -> bool:
        """True when the stored webhook is still reachable; never raises."""
        webhook_slug = self.webhook_slug
        if not webhook_slug:
            return False

        form_slug = self.store.get(FORM_SLUG_KEY) or self.form_slug
        try:
            await self.client.request("GET", self._webhook_path(form_slug, webhook_slug))
        except Exception as e:
            logger.debug(f"Webhook {webhook_slug} probe failed: {e}")
            return False
        return True

    async def create(self) -> bool:
        """
        Register the webhook and remember it in static data.

        Raises:
            ValidationError: Missing form, callback URL or unknown event
            FormalooError: Any API failure
        """
        if not self.form_slug:
            raise ValidationError("Form is required. Please select a form from the dropdown.")
        if not self.webhook_url:
            raise ValidationError("Webhook URL is required to register a Formaloo webhook.")
        try:
            event = WebhookEvent(self.event)
        except ValueError as e:
            raise ValidationError(f"Unknown webhook event: {self.event}") from e

        response = await self.client.request(
            "POST",
            f"/v3.0/forms/{self.form_slug}/webhooks/",
            json=build_registration_body(event, self.webhook_url),
        )

        webhook = (response.get("data") or {}).get("webhook") if isinstance(response, dict) else None
        if not isinstance(webhook, dict) or not webhook.get("slug"):
            raise InvalidResponseError("Failed to create webhook: No webhook ID returned")

        self.store.update(
            {
                WEBHOOK_SLUG_KEY: webhook["slug"],
                FORM_SLUG_KEY: self.form_slug,
                EVENT_TYPE_KEY: event.value,
            }
        )
        logger.info(f"Created Formaloo webhook {webhook['slug']} for form {self.form_slug} ({event.value})")
        return True

    async def delete(self) -> bool:
        """Remove the remote webhook; always succeeds and always clears state."""
        webhook_slug = self.webhook_slug
        if not webhook_slug:
            return True

        form_slug = self.store.get(FORM_SLUG_KEY) or self.form_slug
        try:
            await self.client.request("DELETE", self._webhook_path(form_slug, webhook_slug))
            logger.info(f"Deleted Formaloo webhook {webhook_slug}")
        except Exception as e:
            logger.warning(f"Ignoring failure deleting Formaloo webhook {webhook_slug}: {e}")
        finally:
            for key in WEBHOOK_STATE_KEYS:
                self.store.delete(key)
        return True


class WebhookReceiver:
    """Normalizes an inbound Formaloo callback into one workflow event."""

    def __init__(self, store: StaticDataStore):
        self.store = store

    @staticmethod
    def _decode(body: bytes) -> str:
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.debug(f"Inbound webhook body is not valid UTF-8 ({e}); replacing undecodable bytes")
            return body.decode("utf-8", errors="replace")

    @classmethod
    def _parse(cls, body: Any) -> Any:
        if isinstance(body, bytes):
            body = cls._decode(body)
        if isinstance(body, str):
            try:
                return json.loads(body)
            except ValueError:
                logger.debug("Inbound webhook body is not JSON; keeping raw text")
        return body

    def receive(self, body: Any) -> Dict[str, Any]:
        """
        Parse the body and attach receipt metadata.

        Failures are returned as an error-shaped event instead of raised.
        """
        try:
            payload = self._parse(body)
            event = dict(payload) if isinstance(payload, dict) else {"data": payload}
            event["_webhook_metadata"] = {
                "received_at": datetime.now(timezone.utc).isoformat(),
                "form_slug": payload.get("form") if isinstance(payload, dict) else None,
                "event_type": self.store.get(EVENT_TYPE_KEY),
                "webhook_slug": self.store.get(WEBHOOK_SLUG_KEY),
            }
            return event
        except Exception as e:
            logger.error(f"Failed to process Formaloo webhook: {e}")
            return {
                "error": str(e),
                "raw_body": body if not isinstance(body, bytes) else self._decode(body),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
