"""
Commerce auth package.

Obtains, caches and refreshes grants from the commerce auth API:

- grant_manager: GrantManager, the long-lived owner of the client grant
- auth_client: Thin httpx client for the token endpoints
- grant: Grant value type and the token endpoint response model
- scopes: Scope string encoding/decoding
- models: Options for login, anonymous grants, logout and revocation
- config: AuthConfig via pydantic-settings

Design notes:
- Module import must not perform network calls.
- Use commerce_shared for logging, metrics, retries and errors.
"""

from .auth_client import AuthClient
from .config import AuthConfig, get_auth_config
from .constants import GrantType, Region
from .grant import Grant, GrantResponse
from .grant_manager import GrantManager
from .models import AnonymousGrantOptions, LoginOptions, LogoutOptions, RevokeTokenOptions

__all__ = [
    "AnonymousGrantOptions",
    "AuthClient",
    "AuthConfig",
    "Grant",
    "GrantManager",
    "GrantResponse",
    "GrantType",
    "LoginOptions",
    "LogoutOptions",
    "Region",
    "RevokeTokenOptions",
    "get_auth_config",
]
