from typing import Any, Dict, List, Optional, Union

import httpx

from formaloo_flow.config import settings
from formaloo_flow.credentials.models import (
    PreIssuedCredential,
    SelfIssuedCredential,
    parse_credential,
)
from formaloo_flow.workflows.engine.definitions import WorkflowItem
from formaloo_flow.workflows.engine.expressions.resolver import ExpressionResolver
from formaloo_flow.workflows.engine.static_data import InMemoryStaticData, StaticDataStore

FORMALOO_CREDENTIAL_TYPE = "formaloo_api"


class NodeContext:
    """
    Execution context for a node.

    Carries everything a node package function needs for one invocation:
    its raw parameters, the input items, the credentials attached to the
    node, the instance-scoped static data and, for triggers, the inbound
    request body. Parameters may contain Jinja2 expressions which are
    resolved against the workflow context or against a single input item.
    """

    def __init__(
        self,
        execution_id: str,
        workflow_id: str,
        node_id: str,
        config: Dict[str, Any],
        input_data: Optional[List[Any]] = None,
        results_map: Optional[Dict[str, Any]] = None,
        env: Optional[Dict[str, str]] = None,
        credentials: Optional[Dict[str, Any]] = None,
        static_data: Optional[StaticDataStore] = None,
        webhook_url: Optional[str] = None,
        request_body: Any = None,
        continue_on_fail: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.execution_id = execution_id
        self.workflow_id = workflow_id
        self.node_id = node_id
        self.raw_config = config or {}
        self.input_data = [self._to_item(item) for item in (input_data or [])]
        self.credentials = credentials or {}
        self.static_data = static_data if static_data is not None else InMemoryStaticData()
        self.webhook_url = webhook_url or settings.webhook_url_for(workflow_id, node_id)
        self.request_body = request_body
        self.continue_on_fail = continue_on_fail
        self.transport = transport

        # Expressions see {{ node.<id>.json.<field> }}, {{ env.X }} and {{ execution.id }}
        self.expr_context = {
            "node": self._build_node_context(results_map or {}),
            "input": [item.json_data for item in self.input_data],
            "env": env or {},
            "execution": {
                "id": execution_id,
                "workflow_id": workflow_id,
            },
        }
        self.resolver = ExpressionResolver(self.expr_context)

    @staticmethod
    def _to_item(item: Any) -> WorkflowItem:
        if isinstance(item, WorkflowItem):
            return item
        if isinstance(item, dict) and ("json" in item or "binary" in item):
            return WorkflowItem.model_validate(item)
        return WorkflowItem(json=item if isinstance(item, dict) else {"data": item})

    @staticmethod
    def _build_node_context(results_map: Dict[str, Any]) -> Dict[str, Any]:
        return {
            nid: {"json": data if isinstance(data, dict) else {"data": data}}
            for nid, data in results_map.items()
        }

    def items(self) -> List[WorkflowItem]:
        """Input items, or a single empty item when the node has no input."""
        return self.input_data or [WorkflowItem()]

    def resolve_config(self) -> Dict[str, Any]:
        """Returns the configuration dictionary with all expressions resolved."""
        return self.resolver.resolve(self.raw_config)

    def resolve_item_config(self, item: WorkflowItem) -> Dict[str, Any]:
        """Resolve the configuration against one input item ({{ json.email }})."""
        resolver = ExpressionResolver(
            {**self.expr_context, "json": item.json_data, "binary": item.binary_data}
        )
        return resolver.resolve(self.raw_config)

    def get_credential(
        self, credential_type: str = FORMALOO_CREDENTIAL_TYPE
    ) -> Union[SelfIssuedCredential, PreIssuedCredential]:
        """
        Raises:
            AuthenticationError: If the credential is missing or malformed
        """
        return parse_credential(self.credentials.get(credential_type))
