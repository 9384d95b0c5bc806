from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


class WorkflowItem(BaseModel):
    """
    Standard unit of data passed into and out of a node.

    The JSON payload and any binary attachments are kept apart.
    """
    model_config = ConfigDict(populate_by_name=True)

    json_data: Dict[str, Any] = Field(default_factory=dict, alias="json")
    binary_data: Dict[str, Any] = Field(default_factory=dict, alias="binary")
    paired_item: Optional[int] = Field(None, alias="pairedItem")  # index of the source input item
