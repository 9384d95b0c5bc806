from formaloo_flow.workflows.engine.context import NodeContext
from formaloo_flow.workflows.engine.definitions import WorkflowItem

__all__ = ["NodeContext", "WorkflowItem"]
