"""
Formaloo Submit Node

Submits one form entry per input item. Field rows name a form field and a
raw value; choice, multi-select, city and country values are resolved to
Formaloo option slugs before the entry is posted.
"""

import logging
from typing import Any, Dict, List, Optional

from formaloo_flow.formaloo.catalog import CatalogClient
from formaloo_flow.formaloo.client import FormalooClient
from formaloo_flow.formaloo.errors import ValidationError
from formaloo_flow.formaloo.submission import (
    FieldRow,
    SubmissionAssembler,
    SubmissionMetadata,
    resolve_form_slug,
)
from formaloo_flow.workflows.engine.context import NodeContext
from formaloo_flow.workflows.engine.definitions import WorkflowItem
from formaloo_flow.workflows.engine.error_handler import ErrorClassifier, ErrorPolicyHandler

logger = logging.getLogger(__name__)

SUBMIT_FORM = "submitForm"


def _client(context: NodeContext) -> FormalooClient:
    return FormalooClient(context.get_credential(), transport=context.transport)


def _field_rows(config: Dict[str, Any]) -> List[FieldRow]:
    """Rows from the formData collection ({"fields": [...]}) or a bare list."""
    form_data = config.get("formData") or {}
    rows = form_data.get("fields", []) if isinstance(form_data, dict) else form_data
    return [FieldRow.from_config(row) for row in rows or [] if isinstance(row, dict)]


async def _submit(context: NodeContext, config: Dict[str, Any]) -> Dict[str, Any]:
    operation = config.get("operation") or SUBMIT_FORM
    if operation != SUBMIT_FORM:
        raise ValidationError(f"Unsupported operation: {operation}")

    async with _client(context) as client:
        result = await SubmissionAssembler(client).submit(
            config.get("formSlug"),
            _field_rows(config),
            SubmissionMetadata.from_config(config.get("additionalFields")),
        )
    return result.to_json()


async def execute(context: NodeContext) -> List[WorkflowItem]:
    """
    Submit every input item to the configured form.

    With continue-on-fail a failing item yields an error item and the batch
    goes on; otherwise the first failure is raised unchanged.
    """
    results: List[WorkflowItem] = []

    for index, item in enumerate(context.items()):
        try:
            config = context.resolve_item_config(item)
            output = await _submit(context, config)
        except Exception as e:
            if not context.continue_on_fail:
                raise
            error_context = ErrorClassifier.classify(e)
            logger.warning(f"Item {index} failed ({error_context.category.value}): {error_context.message}")
            output = ErrorPolicyHandler.get_fallback_output(error_context)

        results.append(WorkflowItem(json=output, pairedItem=index))

    return results


async def validate(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate submit configuration.

    Returns:
        Dict with 'valid' and 'errors'
    """
    errors = []

    if not resolve_form_slug(config.get("formSlug")):
        errors.append("Form is required")

    return {
        "valid": len(errors) == 0,
        "errors": errors
    }


async def get_forms(context: NodeContext, **kwargs) -> List[Dict[str, str]]:
    """Dropdown options: every form of the account."""
    async with _client(context) as client:
        forms = await CatalogClient(client).list_forms()
    return [form.option() for form in forms]


async def search_forms(
    context: NodeContext,
    filter: Optional[str] = None,
    pagination_token: Optional[str] = None,
    **kwargs
) -> Dict[str, Any]:
    """Searchable form list for the resource locator."""
    async with _client(context) as client:
        return await CatalogClient(client).search_forms(filter, pagination_token)


async def get_form_fields(context: NodeContext, **kwargs) -> List[Dict[str, str]]:
    """Dropdown options: submittable fields of the selected form."""
    form_slug = resolve_form_slug(context.resolve_config().get("formSlug"))
    if not form_slug:
        return []

    async with _client(context) as client:
        fields = await CatalogClient(client).get_form_fields(form_slug)
    return [field.option() for field in fields]
