"""
Configuration for the commerce auth client.
"""

import json
from typing import Annotated, Any, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from commerce_auth.constants import (
    DEFAULT_REFRESH_IF_WITHIN_SECS,
    DEFAULT_REQUEST_TIMEOUT_MS,
    REGION_URLS,
    Region,
)


class AuthConfig(BaseSettings):
    """
    Credentials and behaviour of one API client. Read from ``COMMERCE_*`` env vars.

    Scope lists accept a comma or space separated string
    (``COMMERCE_CLIENT_SCOPES=manage_orders,view_products``) or a JSON list.
    """

    model_config = SettingsConfigDict(
        env_prefix="COMMERCE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # API client
    project_key: str
    client_id: str
    client_secret: str
    region: Region = Region.EUROPE_GCP

    # Scopes, without the ":<project_key>" suffix
    client_scopes: Annotated[List[str], NoDecode] = Field(default_factory=list)
    customer_scopes: Annotated[Optional[List[str]], NoDecode] = None

    # Grant caching
    refresh_if_within_secs: int = Field(default=DEFAULT_REFRESH_IF_WITHIN_SECS, ge=0)

    # Transport
    timeout_ms: int = Field(default=DEFAULT_REQUEST_TIMEOUT_MS, gt=0)
    auth_url: Optional[str] = None
    system_identifier: Optional[str] = None

    # Observability
    log_level: str = "info"

    @field_validator("client_scopes", "customer_scopes", mode="before")
    @classmethod
    def split_scopes(cls, value: Any) -> Any:
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                return json.loads(text)
            return text.replace(",", " ").split()
        return value

    @property
    def auth_base_url(self) -> str:
        """Auth host for the configured region, unless overridden by ``auth_url``."""
        if self.auth_url:
            return self.auth_url.rstrip('/')
        return REGION_URLS[self.region]["auth"]

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


def get_auth_config(**overrides) -> AuthConfig:
    """Build configuration from the environment, with explicit overrides."""
    return AuthConfig(**overrides)
