"""
Shared fixtures for commerce_auth tests.
"""

import pytest

from commerce_auth.config import AuthConfig
from commerce_auth.constants import Region
from commerce_shared.test_helpers import DEFAULT_PROJECT_KEY


@pytest.fixture
def auth_config():
    """Config for a test API client, independent of the environment."""
    return AuthConfig(
        _env_file=None,
        project_key=DEFAULT_PROJECT_KEY,
        client_id="test-client-id",
        client_secret="test-client-secret",
        region=Region.NORTH_AMERICA_AWS,
        client_scopes=["defaultClientScope1"],
    )


@pytest.fixture
def customer_config(auth_config):
    """Same client, with default customer scopes configured."""
    return auth_config.model_copy(update={"customer_scopes": ["view_products", "manage_my_orders"]})
