"""
Credential service functions for turning credentials into request headers.
"""
import logging
from typing import Any, Dict, Optional, Union

import httpx

from formaloo_flow.credentials.models import (
    PreIssuedCredential,
    SelfIssuedCredential,
    parse_credential,
)
from formaloo_flow.formaloo.auth import TokenProvider
from formaloo_flow.formaloo.errors import FormalooError

logger = logging.getLogger(__name__)


async def build_auth_headers(
    credential: Union[SelfIssuedCredential, PreIssuedCredential],
    token_provider: TokenProvider,
) -> Dict[str, str]:
    """
    Build the authentication headers for one operation.

    Self-issued credentials trigger a token exchange; pre-issued credentials
    are used as-is together with their workspace header.
    """
    if isinstance(credential, SelfIssuedCredential):
        token = await token_provider.fetch_token(credential.secret_api)
        return {
            "Authorization": f"JWT {token}",
            "X-Api-Key": credential.api_key,
            "Content-Type": "application/json",
        }

    return {
        "Authorization": f"JWT {credential.auth_token}",
        "X-Api-Key": credential.api_key,
        "X-Workspace": credential.workspace,
        "Content-Type": "application/json",
    }


async def test_credential(
    data: Any, transport: Optional[httpx.AsyncBaseTransport] = None
) -> Dict[str, str]:
    """
    Check that credential data can authenticate against Formaloo.

    Never raises: failures are reported in the returned status.
    """
    # Imported here to avoid a cycle: the client builds headers through this module
    from formaloo_flow.formaloo.client import FormalooClient

    try:
        credential = parse_credential(data)
        async with FormalooClient(credential, transport=transport) as client:
            if isinstance(credential, SelfIssuedCredential):
                await client.auth_headers()
            else:
                await client.request("GET", "/v3.0/forms/", params={"page_size": 1})
    except FormalooError as e:
        logger.info(f"Credential test failed: {e.message}")
        return {"status": "Error", "message": e.message}

    return {"status": "OK", "message": "Connection successful"}


# pytest would otherwise collect the coroutine above as a test
test_credential.__test__ = False  # type: ignore[attr-defined]
