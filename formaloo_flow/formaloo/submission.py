"""
Submission Assembler

Resolves every field row, merges the results with optional metadata and
POSTs the body to the form's public submit endpoint.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional

from formaloo_flow.formaloo.catalog import CatalogClient
from formaloo_flow.formaloo.client import FormalooClient
from formaloo_flow.formaloo.errors import ValidationError
from formaloo_flow.formaloo.fields import FieldResolver

logger = logging.getLogger(__name__)

FORM_URL_PATTERN = re.compile(r"/forms/([^/?#]+)")


def resolve_form_slug(value: Any) -> str:
    """
    Extract a form slug from a plain string or a resource-locator value.

    Resource locators look like {"__rl": True, "mode": "list"|"id"|"url", "value": ...};
    in URL mode the slug is the path segment after /forms/.
    """
    if isinstance(value, Mapping):
        mode = value.get("mode")
        raw = str(value.get("value") or "").strip()
        if mode == "url" and raw:
            match = FORM_URL_PATTERN.search(raw)
            return match.group(1) if match else ""
        return raw
    return str(value or "").strip()


@dataclass
class FieldRow:
    field: Any
    value: Any = None

    @classmethod
    def from_config(cls, row: Mapping[str, Any]) -> "FieldRow":
        reference = row.get("fieldId", row.get("field"))
        return cls(field=reference, value=row.get("value"))


@dataclass
class SubmissionMetadata:
    submit_code: Optional[str] = None
    recaptcha_value: Optional[str] = None
    submitter_referer_address: Optional[str] = None
    submit_time: Optional[str] = None

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]]) -> "SubmissionMetadata":
        config = config or {}
        return cls(
            submit_code=config.get("submitCode", config.get("submit_code")),
            recaptcha_value=config.get("recaptchaValue", config.get("recaptcha_value")),
            submitter_referer_address=config.get(
                "submitterRefererAddress", config.get("submitter_referer_address")
            ),
            submit_time=config.get("submitTime", config.get("submit_time")),
        )

    def apply(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Add the metadata fields that were actually provided."""
        for key in ("submit_code", "recaptcha_value", "submitter_referer_address", "submit_time"):
            value = getattr(self, key)
            if value not in (None, ""):
                body[key] = value
        return body


@dataclass
class SubmissionResult:
    form_slug: str
    submitted_data: Dict[str, Any]
    response: Any
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_json(self) -> Dict[str, Any]:
        return {
            "success": True,
            "response": self.response,
            "submittedData": self.submitted_data,
            "formSlug": self.form_slug,
            "timestamp": self.timestamp,
        }


class SubmissionAssembler:
    def __init__(self, client: FormalooClient, resolver: Optional[FieldResolver] = None):
        self.client = client
        self.resolver = resolver or FieldResolver(CatalogClient(client))

    async def build_body(
        self,
        rows: Iterable[Any],
        metadata: Optional[SubmissionMetadata] = None,
    ) -> Dict[str, Any]:
        """
        Resolve rows in order into one body; a later row wins on a repeated slug.

        Raises:
            ValidationError: If nothing is left to submit
        """
        body: Dict[str, Any] = {}
        for row in rows:
            if isinstance(row, Mapping):
                row = FieldRow.from_config(row)
            resolved = await self.resolver.resolve(row.field, row.value)
            if resolved is None:
                continue
            slug, value = resolved
            body[slug] = value

        if metadata is not None:
            metadata.apply(body)

        if not body:
            raise ValidationError("No valid fields to submit. Please check the form data.")
        return body

    async def submit(
        self,
        form: Any,
        rows: Iterable[Any],
        metadata: Optional[SubmissionMetadata] = None,
    ) -> SubmissionResult:
        """
        Resolve and submit one form entry.

        Raises:
            ValidationError: Missing form or empty body
            FormalooError: Any resolver or API failure, unchanged
        """
        form_slug = resolve_form_slug(form)
        if not form_slug:
            raise ValidationError("Form is required. Please select a form from the dropdown.")

        body = await self.build_body(rows, metadata)
        response = await self.client.request(
            "POST", f"/v3.0/form-displays/slug/{form_slug}/submit/", json=body
        )
        logger.info(f"Submitted {len(body)} fields to form {form_slug}")
        return SubmissionResult(form_slug=form_slug, submitted_data=body, response=response)
