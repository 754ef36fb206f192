"""
Grant value type: an issued access token with its expiry and scopes.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict

from commerce_auth.scopes import scope_request_string_to_array


class GrantResponse(BaseModel):
    """JSON body returned by every token endpoint."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    expires_in: int
    scope: str = ""
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Grant:
    """
    An access token plus everything derived from the response that issued it.

    ``expires_at`` is computed once, from ``issued_at + expires_in``, and is
    read-only. The only mutation is :meth:`refresh`, which re-derives every
    field from a new response while keeping the old refresh token when the
    new response carries none.
    """

    def __init__(self,
                 data: Union[GrantResponse, Dict[str, Any]],
                 issued_at: Optional[datetime] = None):
        self._refresh_token: Optional[str] = None
        self._apply(data, issued_at)

    def _apply(self, data: Union[GrantResponse, Dict[str, Any]], issued_at: Optional[datetime]):
        response = data if isinstance(data, GrantResponse) else GrantResponse.model_validate(data)

        self._issued_at = issued_at or _utcnow()
        self._access_token = response.access_token
        self._expires_in = response.expires_in
        self._expires_at = self._issued_at + timedelta(seconds=response.expires_in)
        self._scopes = scope_request_string_to_array(response.scope)

        # Refresh responses come back without a refresh token
        if response.refresh_token:
            self._refresh_token = response.refresh_token

    @property
    def access_token(self) -> str:
        return self._access_token

    @property
    def refresh_token(self) -> Optional[str]:
        return self._refresh_token

    @property
    def expires_in(self) -> int:
        return self._expires_in

    @property
    def issued_at(self) -> datetime:
        return self._issued_at

    @property
    def expires_at(self) -> datetime:
        return self._expires_at

    @property
    def scopes(self) -> List[str]:
        return list(self._scopes)

    def refresh(self,
                data: Union[GrantResponse, Dict[str, Any]],
                issued_at: Optional[datetime] = None) -> "Grant":
        """Replace the derived fields in place from a refresh response."""
        self._apply(data, issued_at)
        return self

    def expires_within(self, seconds: float, now: Optional[datetime] = None) -> bool:
        """True when the remaining lifetime is shorter than ``seconds``."""
        now = now or _utcnow()
        return self._expires_at - now < timedelta(seconds=seconds)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self._access_token,
            "refresh_token": self._refresh_token,
            "expires_in": self._expires_in,
            "expires_at": self._expires_at.isoformat(),
            "scopes": self.scopes,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grant):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None  # mutable through refresh()

    def __repr__(self) -> str:
        return (
            f"Grant(expires_at={self._expires_at.isoformat()}, "
            f"scopes={self._scopes!r}, has_refresh_token={self._refresh_token is not None})"
        )
