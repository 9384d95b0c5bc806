"""
Formaloo credential variants.

A deployment uses exactly one of two shapes: a self-issued key pair that is
exchanged for a short-lived JWT, or a pre-issued token scoped to a workspace.
"""
from typing import Annotated, Any, Dict, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from formaloo_flow.formaloo.errors import AuthenticationError

MISSING_CREDENTIALS_MESSAGE = (
    "Missing required credentials. Please check your Formaloo API credentials."
)


class SelfIssuedCredential(BaseModel):
    """API key plus secret, exchanged for a JWT per operation."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["self_issued"] = "self_issued"
    api_key: str = Field(min_length=1)
    secret_api: str = Field(min_length=1)


class PreIssuedCredential(BaseModel):
    """Already-issued JWT bound to a workspace."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["pre_issued"] = "pre_issued"
    auth_token: str = Field(alias="authToken", min_length=1)
    api_key: str = Field(alias="apiKey", min_length=1)
    workspace: str = Field(min_length=1)


FormalooCredential = Annotated[
    Union[SelfIssuedCredential, PreIssuedCredential], Field(discriminator="kind")
]

_credential_adapter: TypeAdapter = TypeAdapter(FormalooCredential)


def _present(data: Mapping[str, Any], keys) -> bool:
    return any(data.get(key) for key in keys)


def parse_credential(data: Any) -> Union[SelfIssuedCredential, PreIssuedCredential]:
    """
    Resolve raw credential data into exactly one credential variant.

    Args:
        data: A credential model or the mapping stored by the host

    Returns:
        SelfIssuedCredential or PreIssuedCredential

    Raises:
        AuthenticationError: If data is missing, incomplete or mixes both shapes
    """
    if isinstance(data, (SelfIssuedCredential, PreIssuedCredential)):
        return data
    if not data or not isinstance(data, Mapping):
        raise AuthenticationError(MISSING_CREDENTIALS_MESSAGE)

    payload: Dict[str, Any] = dict(data)
    if "kind" not in payload:
        has_self = _present(payload, ("secret_api",))
        has_pre = _present(payload, ("authToken", "auth_token", "workspace"))
        if has_self and has_pre:
            raise AuthenticationError(
                "Formaloo credentials must use either api_key/secret_api or "
                "authToken/apiKey/workspace, not both."
            )
        if has_self:
            payload["kind"] = "self_issued"
        elif has_pre:
            payload["kind"] = "pre_issued"
        else:
            raise AuthenticationError(MISSING_CREDENTIALS_MESSAGE)

    try:
        return _credential_adapter.validate_python(payload)
    except PydanticValidationError as e:
        raise AuthenticationError(MISSING_CREDENTIALS_MESSAGE) from e
