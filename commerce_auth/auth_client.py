"""
HTTP client for the commerce auth API token endpoints.
"""

import base64
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlencode

import httpx
import pydantic

from commerce_auth.config import AuthConfig
from commerce_auth.constants import REVOKE_PATH, TOKEN_PATH, GrantType
from commerce_auth.grant import GrantResponse
from commerce_auth.scopes import scope_array_to_request_string
from commerce_shared.errors import TransportError, http_status_error
from commerce_shared.logging import get_logger

REVOKE_OPERATION = "revoke"


def basic_auth_token(client_id: str, client_secret: str) -> str:
    """Credentials for the ``Authorization: Basic`` header (RFC 7617)."""
    return base64.b64encode(f"{client_id}:{client_secret}".encode("utf-8")).decode("ascii")


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class AuthClient:
    """
    Client for the auth server token endpoints.

    Every call is a form encoded POST authenticated with the API client's
    Basic credentials. Pass ``http_client`` to share a connection pool (or a
    mock transport); otherwise a short lived ``httpx.AsyncClient`` is opened
    per request.
    """

    def __init__(self, config: AuthConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.base_url = config.auth_base_url
        self.timeout = config.timeout_seconds
        self.logger = get_logger("commerce_auth.client")
        self._http_client = http_client

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Basic {basic_auth_token(self.config.client_id, self.config.client_secret)}",
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        if self.config.system_identifier:
            headers["User-Agent"] = self.config.system_identifier
        return headers

    async def _send(self, url: str, body: str) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(url, content=body, headers=self._headers(), timeout=self.timeout)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(url, content=body, headers=self._headers())

    async def post(self, path: str, data: Dict[str, Any], grant_type: str) -> Dict[str, Any]:
        """
        POST a form to the auth server and return the decoded JSON body.

        ``grant_type`` only labels errors and log events. ``None`` values in
        ``data`` are left out of the form.
        """
        url = f"{self.base_url}{path}"
        body = urlencode({key: value for key, value in data.items() if value is not None})
        context = {"grant_type": grant_type, "url": url}

        try:
            response = await self._send(url, body)
        except httpx.TimeoutException as e:
            self.logger.error("Auth server timeout", **context)
            raise TransportError("Auth server timeout", details=context) from e
        except httpx.RequestError as e:
            self.logger.error("Auth server request error", error=str(e), **context)
            raise TransportError(f"Auth server unavailable: {e}", details=context) from e

        if not response.is_success:
            response_body = _response_body(response)
            self.logger.warning(
                "Auth request rejected",
                status_code=response.status_code,
                response=response_body,
                **context
            )
            raise http_status_error(
                response.status_code,
                f"Response error POSTing to {url}",
                body=response_body,
                details={**context, "status_code": response.status_code}
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            self.logger.error("Auth server returned invalid JSON", **context)
            raise TransportError("Auth server returned invalid JSON", details=context) from e

    async def post_token(self, path: str, data: Dict[str, Any], grant_type: str) -> Dict[str, Any]:
        """POST to a token endpoint and check the body is a usable token response."""
        body = await self.post(path, data, grant_type)
        try:
            GrantResponse.model_validate(body)
        except pydantic.ValidationError as e:
            context = {"grant_type": grant_type, "url": f"{self.base_url}{path}"}
            self.logger.error("Auth server returned an invalid token response", errors=e.error_count(), **context)
            raise TransportError("Auth server returned an invalid token response", details=context) from e
        return body

    async def request_client_grant(self, scopes: Iterable[str]) -> Dict[str, Any]:
        return await self.post_token(TOKEN_PATH, {
            "grant_type": GrantType.CLIENT_CREDENTIALS.value,
            "scope": scope_array_to_request_string(scopes, self.config.project_key),
        }, GrantType.CLIENT_CREDENTIALS.value)

    async def refresh_grant(self, refresh_token: str) -> Dict[str, Any]:
        return await self.post_token(TOKEN_PATH, {
            "grant_type": GrantType.REFRESH_TOKEN.value,
            "refresh_token": refresh_token,
        }, GrantType.REFRESH_TOKEN.value)

    async def login(self,
                    username: str,
                    password: str,
                    scopes: Iterable[str],
                    store_key: Optional[str] = None) -> Dict[str, Any]:
        store_path = f"/in-store/key={store_key}" if store_key else ""
        path = f"/oauth/{self.config.project_key}{store_path}/customers/token"
        return await self.post_token(path, {
            "grant_type": GrantType.PASSWORD.value,
            "username": username,
            "password": password,
            "scope": scope_array_to_request_string(scopes, self.config.project_key),
        }, GrantType.PASSWORD.value)

    async def anonymous_grant(self,
                              scopes: Optional[Iterable[str]] = None,
                              anonymous_id: Optional[str] = None) -> Dict[str, Any]:
        scope = scope_array_to_request_string(scopes, self.config.project_key)
        return await self.post_token(f"/oauth/{self.config.project_key}/anonymous/token", {
            "grant_type": GrantType.CLIENT_CREDENTIALS.value,
            "scope": scope or None,
            "anonymous_id": anonymous_id or None,
        }, GrantType.CLIENT_CREDENTIALS.value)

    async def revoke_token(self, token: str, token_type_hint: Optional[str] = None) -> None:
        await self.post(REVOKE_PATH, {
            "token": token,
            "token_type_hint": token_type_hint,
        }, REVOKE_OPERATION)
