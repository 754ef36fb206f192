"""
Scope string encoding for the auth API.

Requests carry scopes as ``"<scope>:<project_key>"`` tokens joined by
spaces; responses use the same shape and may include identifier pseudo
scopes such as ``customer_id:1234``.
"""

from typing import Iterable, List, Optional

from commerce_auth.constants import RESERVED_SCOPES


def scope_array_to_request_string(scopes: Optional[Iterable[str]], project_key: str) -> str:
    """``["a", "b"], "proj"`` -> ``"a:proj b:proj"``."""
    if not scopes:
        return ""
    return " ".join(f"{scope}:{project_key}" for scope in scopes)


def scope_request_string_to_array(scopes: Optional[str]) -> List[str]:
    """Parse a server scope string into bare scope names, dropping reserved names."""
    if not scopes:
        return []
    names = (token.split(":", 1)[0] for token in scopes.split())
    return [name for name in names if name and name not in RESERVED_SCOPES]
