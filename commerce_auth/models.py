"""
Option models for the customer facing grant operations.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel


class LoginOptions(BaseModel):
    """Customer password login."""
    username: str
    password: str
    # Must be a subset of the client scopes. Falls back to the configured
    # customer scopes when empty.
    scopes: Optional[List[str]] = None
    store_key: Optional[str] = None


class AnonymousGrantOptions(BaseModel):
    """Anonymous customer session."""
    scopes: Optional[List[str]] = None
    # Must not already exist for the project; usually left unset so the
    # server generates one.
    anonymous_id: Optional[str] = None


class RevokeTokenOptions(BaseModel):
    """Revocation of a single token."""
    token: str
    token_type_hint: Optional[Literal["access_token", "refresh_token"]] = None


class LogoutOptions(BaseModel):
    """End a customer session by revoking its tokens."""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
