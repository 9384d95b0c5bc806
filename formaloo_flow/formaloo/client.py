import logging
from typing import Any, Dict, Optional, Union

import httpx

from formaloo_flow.config import settings
from formaloo_flow.credentials.models import (
    PreIssuedCredential,
    SelfIssuedCredential,
    parse_credential,
)
from formaloo_flow.credentials.service import build_auth_headers
from formaloo_flow.formaloo.auth import TokenProvider
from formaloo_flow.formaloo.errors import ApiRequestError, InvalidResponseError

logger = logging.getLogger(__name__)


class FormalooClient:
    """
    Authenticated HTTP session against the Formaloo API for one operation.

    Usage:
        async with FormalooClient(credentials) as client:
            data = await client.request("GET", "/v3.0/forms/")

    Authentication headers are built on the first call and reused until the
    client closes, so a self-issued token is fetched at most once per
    operation and never outlives it.
    """

    def __init__(
        self,
        credential: Union[SelfIssuedCredential, PreIssuedCredential, Dict[str, Any]],
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.credential = parse_credential(credential)
        self.base_url = (base_url or settings.FORMALOO_API_URL).rstrip("/")
        self._transport = transport
        self._timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self._http: Optional[httpx.AsyncClient] = None
        self._headers: Optional[Dict[str, str]] = None

    async def __aenter__(self) -> "FormalooClient":
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            transport=self._transport,
            timeout=self._timeout,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
        self._headers = None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RuntimeError("FormalooClient must be used as an async context manager")
        return self._http

    async def auth_headers(self) -> Dict[str, str]:
        if self._headers is None:
            self._headers = await build_auth_headers(
                self.credential, TokenProvider(self.http)
            )
        return self._headers

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        """
        Send an authenticated request and decode the JSON body.

        Raises:
            AuthenticationError: If headers cannot be built
            ApiRequestError: On transport failure or a non-2xx status
            InvalidResponseError: If the body is not JSON
        """
        headers = await self.auth_headers()
        try:
            response = await self.http.request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            raise ApiRequestError(
                f"Formaloo request {method} {path} failed: {e}",
                method=method,
                url=f"{self.base_url}{path}",
            ) from e

        logger.debug(f"{method} {path} -> {response.status_code}")

        if not response.is_success:
            raise ApiRequestError(
                f"Formaloo API returned {response.status_code} for {method} {path}: {response.text}",
                status_code=response.status_code,
                method=method,
                url=str(response.request.url),
                response_text=response.text,
            )

        if response.status_code == 204 or not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseError("Invalid response from Formaloo API") from e
