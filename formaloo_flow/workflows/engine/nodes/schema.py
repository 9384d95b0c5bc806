from enum import Enum
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Enums ---
class NodeCategory(str, Enum):
    TRIGGER = "TRIGGER"
    ACTION = "ACTION"

# --- Models ---
class DisplayConfiguration(BaseModel):
    """
    Configuration for hiding/showing fields.
    """
    show: Optional[Dict[str, List[Any]]] = None
    hide: Optional[Dict[str, List[Any]]] = None

class TypeOptions(BaseModel):
    """
    Options that bind an input to a dynamic data source in the node's backend.
    """
    loadOptionsMethod: Optional[str] = None
    loadOptionsDependsOn: Optional[List[str]] = None
    searchListMethod: Optional[str] = None
    searchable: bool = False
    multipleValues: bool = False

class SelectOption(BaseModel):
    label: str
    value: Any
    description: Optional[str] = None

class NodeInput(BaseModel):
    """
    Definition of a single input field in the node.
    """
    name: str
    type: str  # string, options, resourceLocator, fixedCollection, collection, ...
    label: str
    default: Optional[Any] = None
    description: Optional[str] = None
    required: bool = False
    placeholder: Optional[str] = None

    # Select options OR nested inputs
    options: Optional[Union[List['NodeInput'], List[SelectOption], List[Dict[str, Any]]]] = None

    displayOptions: Optional[DisplayConfiguration] = None
    typeOptions: Optional[TypeOptions] = None

class NodeOutput(BaseModel):
    name: str
    type: str
    label: Optional[str] = None
    description: Optional[str] = None

class WebhookMethods(BaseModel):
    """Names of the backend functions driving the remote webhook lifecycle."""
    checkExists: str = "check_exists"
    create: str = "create"
    delete: str = "delete"

class NodeManifest(BaseModel):
    """
    Node manifest definition, validated when a package is loaded.
    """
    model_config = ConfigDict(extra="allow")

    id: str
    version: str = "1.0.0"

    name: Optional[str] = Field(None, validate_default=True)
    displayName: Optional[str] = Field(None, validate_default=True)

    description: str = ""
    category: NodeCategory
    service: Optional[str] = "formaloo"

    icon: Optional[str] = None

    inputs: List[NodeInput] = []
    outputs: List[NodeOutput] = []

    webhook: bool = False
    webhookMethods: Optional[WebhookMethods] = None

    credentials: Optional[List[str]] = None
    tags: List[str] = []
    author: str = "Formaloo"

    @field_validator("name", mode="before")
    def set_name_fallback(cls, v, values):
        if v is None and "id" in values.data:
            return values.data["id"]
        return v

    @field_validator("displayName", mode="before")
    def set_display_name(cls, v, values):
        if not v and "name" in values.data:
            return values.data["name"]
        return v

    def option_methods(self) -> List[str]:
        """Backend function names referenced by inputs, including nested ones."""
        methods: List[str] = []

        def walk(inputs: List[Any]) -> None:
            for node_input in inputs:
                if not isinstance(node_input, NodeInput):
                    continue
                options = node_input.typeOptions
                if options is not None:
                    for method in (options.loadOptionsMethod, options.searchListMethod):
                        if method and method not in methods:
                            methods.append(method)
                walk(node_input.options or [])

        walk(self.inputs)
        return methods
