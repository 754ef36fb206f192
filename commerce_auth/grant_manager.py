"""
Grant lifecycle manager.

Keeps the shared client grant cached and renews it when it gets close to
expiry, making sure concurrent callers never trigger more than one token
request at a time. Customer and anonymous grants are issued on demand and
never cached here.
"""

import asyncio
from typing import Any, Awaitable, Dict, List, Optional

from commerce_auth.auth_client import REVOKE_OPERATION, AuthClient
from commerce_auth.config import AuthConfig
from commerce_auth.constants import GrantType
from commerce_auth.grant import Grant
from commerce_auth.models import AnonymousGrantOptions, LoginOptions, LogoutOptions, RevokeTokenOptions
from commerce_shared.errors import CommerceError, ValidationError
from commerce_shared.logging import get_logger
from commerce_shared.metrics import GrantMetrics


def _ensure_non_empty(value: Optional[str], name: str):
    if value is None or not value.strip():
        raise ValidationError(f"The string parameter '{name}' cannot be empty", details={"parameter": name})


class GrantManager:
    """
    Single source of truth for the client credentials grant.

    Designed to live for the whole process (or event loop): create it once
    and share it, rather than creating one per request.

    The cached grant and the in-flight fetch task are the only shared state.
    The in-flight task is checked and assigned with no ``await`` in between,
    so every caller arriving while a fetch is running joins that fetch and
    gets its result or its exception.
    """

    def __init__(self,
                 config: AuthConfig,
                 client: Optional[AuthClient] = None,
                 metrics: Optional[GrantMetrics] = None):
        if not config.client_scopes:
            raise ValidationError("`client_scopes` must contain at least one scope")

        self.config = config
        self.client = client or AuthClient(config)
        self.metrics = metrics or GrantMetrics()
        self.logger = get_logger("commerce_auth.grant_manager")

        self._grant: Optional[Grant] = None
        self._pending: Optional["asyncio.Task[Grant]"] = None

    @property
    def client_grant(self) -> Optional[Grant]:
        """The cached client grant, if any."""
        return self._grant

    async def get_client_grant(self) -> Grant:
        """
        Return a client grant that is not within the refresh window.

        Served from cache when possible. Otherwise joins the fetch already in
        flight, or starts one. A failed fetch leaves any previously cached
        grant in place and raises to every caller waiting on it.
        """
        if self._pending is not None:
            self.metrics.record_coalesced()
            return await asyncio.shield(self._pending)

        grant = self._grant
        if grant is not None and not grant.expires_within(self.config.refresh_if_within_secs):
            self.metrics.record_cache_hit()
            return grant

        if grant is not None:
            self.logger.info(
                "Client grant within refresh window, renewing",
                expires_at=grant.expires_at.isoformat(),
                refresh_if_within_secs=self.config.refresh_if_within_secs
            )
        return await self._start_fetch(self._fetch_client_grant())

    async def refresh_client_grant(self) -> Grant:
        """
        Force renewal of the cached client grant using its refresh token.

        The cached ``Grant`` is updated in place. Falls back to a new client
        credentials request when nothing is cached, when the cached grant
        holds no refresh token, or when the refresh request fails.
        """
        if self._pending is not None:
            self.metrics.record_coalesced()
            return await asyncio.shield(self._pending)

        grant = self._grant
        if grant is None or not grant.refresh_token:
            return await self._start_fetch(self._fetch_client_grant())
        return await self._start_fetch(self._refresh_cached_grant(grant))

    def invalidate_client_grant(self):
        """Drop the cached client grant. An in-flight fetch is left running."""
        if self._grant is not None:
            self.logger.info("Client grant invalidated")
        self._grant = None

    def _start_fetch(self, fetch: Awaitable[Grant]) -> Awaitable[Grant]:
        task = asyncio.ensure_future(self._settle(fetch))
        task.add_done_callback(self._retrieve_exception)
        self._pending = task
        # Shielded: a caller that gives up must not cancel the shared fetch.
        return asyncio.shield(task)

    async def _settle(self, fetch: Awaitable[Grant]) -> Grant:
        try:
            return await fetch
        finally:
            if self._pending is asyncio.current_task():
                self._pending = None

    @staticmethod
    def _retrieve_exception(task: "asyncio.Task[Grant]"):
        # Waiters re-raise the exception themselves; this only marks it as
        # retrieved when every waiter has already stopped waiting.
        if not task.cancelled():
            task.exception()

    async def _fetch_client_grant(self) -> Grant:
        grant_type = GrantType.CLIENT_CREDENTIALS.value
        self.logger.debug("Requesting client grant", scopes=self.config.client_scopes)

        data = await self._request(grant_type, self.client.request_client_grant(self.config.client_scopes))
        grant = Grant(data)
        self._grant = grant

        self.logger.info("Client grant cached", expires_at=grant.expires_at.isoformat(), scopes=grant.scopes)
        return grant

    async def _refresh_cached_grant(self, grant: Grant) -> Grant:
        grant_type = GrantType.REFRESH_TOKEN.value
        self.logger.debug("Refreshing client grant")

        try:
            data = await self._request(grant_type, self.client.refresh_grant(grant.refresh_token))
        except CommerceError as e:
            self.logger.warning("Client grant refresh failed, requesting a new grant", code=e.code)
            return await self._fetch_client_grant()

        grant.refresh(data)
        self._grant = grant

        self.logger.info("Client grant refreshed", expires_at=grant.expires_at.isoformat())
        return grant

    async def _request(self, grant_type: str, call: Awaitable[Dict[str, Any]]) -> Dict[str, Any]:
        try:
            data = await call
        except CommerceError as e:
            self.metrics.record_request(grant_type, "error")
            self.logger.warning("Grant request failed", grant_type=grant_type, code=e.code, error=str(e))
            raise

        self.metrics.record_request(grant_type, "success")
        return data

    def _resolve_customer_scopes(self, scopes: Optional[List[str]], operation: str) -> List[str]:
        """
        Pick the scopes for a customer or anonymous grant.

        Never falls back to the client scopes: a customer token must not carry
        the same privileges as the API client.
        """
        resolved = scopes or self.config.customer_scopes
        if not resolved:
            raise ValidationError(
                f"Customer scopes must be set on either the options passed to `{operation}`, "
                "or on the `customer_scopes` configuration property",
                details={"operation": operation}
            )
        return list(resolved)

    async def login(self, options: LoginOptions) -> Grant:
        """Log a customer in with username and password. The grant is not cached."""
        _ensure_non_empty(options.username, "username")
        _ensure_non_empty(options.password, "password")
        scopes = self._resolve_customer_scopes(options.scopes, "login")

        # The login call authenticates with Basic credentials, but needs a
        # working API client, so make sure a client grant exists first.
        await self.get_client_grant()

        data = await self._request(
            GrantType.PASSWORD.value,
            self.client.login(options.username, options.password, scopes, options.store_key)
        )
        return Grant(data)

    async def get_anonymous_grant(self, options: Optional[AnonymousGrantOptions] = None) -> Grant:
        """Issue a grant for an anonymous customer session. The grant is not cached."""
        options = options or AnonymousGrantOptions()
        scopes = self._resolve_customer_scopes(options.scopes, "get_anonymous_grant")

        await self.get_client_grant()

        data = await self._request(
            GrantType.CLIENT_CREDENTIALS.value,
            self.client.anonymous_grant(scopes, options.anonymous_id)
        )
        return Grant(data)

    async def refresh_customer_grant(self, refresh_token: str) -> Grant:
        """Exchange a customer refresh token for a new grant."""
        _ensure_non_empty(refresh_token, "refresh_token")

        data = await self._request(GrantType.REFRESH_TOKEN.value, self.client.refresh_grant(refresh_token))
        return Grant({**data, "refresh_token": data.get("refresh_token") or refresh_token})

    async def revoke_token(self, options: RevokeTokenOptions):
        """Revoke one access or refresh token."""
        _ensure_non_empty(options.token, "token")
        await self._request(REVOKE_OPERATION, self.client.revoke_token(options.token, options.token_type_hint))

    async def logout(self, options: LogoutOptions):
        """Revoke the tokens of a customer session."""
        if not options.access_token and not options.refresh_token:
            raise ValidationError("Logout needs an access token, a refresh token, or both")

        if options.access_token:
            await self.revoke_token(RevokeTokenOptions(token=options.access_token, token_type_hint="access_token"))
        if options.refresh_token:
            await self.revoke_token(RevokeTokenOptions(token=options.refresh_token, token_type_hint="refresh_token"))
