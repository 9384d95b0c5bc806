import logging

import httpx

from formaloo_flow.formaloo.errors import AuthenticationError

logger = logging.getLogger(__name__)

TOKEN_PATH = "/v3.0/oauth2/authorization-token/"


class TokenProvider:
    """
    Exchanges a Formaloo secret for a short-lived JWT.

    The token is returned to the caller and never stored here; callers fetch a
    new one for every operation.
    """

    def __init__(self, http: httpx.AsyncClient):
        self.http = http

    async def fetch_token(self, secret_api: str) -> str:
        """
        POST the client-credentials grant with Basic authentication.

        Args:
            secret_api: The credential's secret, sent verbatim after "Basic "

        Returns:
            The authorization token string

        Raises:
            AuthenticationError: On transport failure, non-2xx status or a
                response without an authorization_token
        """
        if not secret_api:
            raise AuthenticationError("Authentication failed: secret is empty")

        headers = {
            "Authorization": f"Basic {secret_api}",
            "Content-Type": "application/json",
        }
        try:
            response = await self.http.post(
                TOKEN_PATH,
                json={"grant_type": "client_credentials"},
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise AuthenticationError(f"Authentication failed: {e}") from e

        if not response.is_success:
            raise AuthenticationError(
                f"Authentication failed: token endpoint returned {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AuthenticationError(
                "Authentication failed: token endpoint returned invalid JSON"
            ) from e

        token = data.get("authorization_token") if isinstance(data, dict) else None
        if not token:
            raise AuthenticationError(
                "Failed to get JWT token from authentication endpoint"
            )

        logger.debug("Fetched Formaloo authorization token")
        return token
