"""
Constants for the commerce auth API.
"""

from enum import Enum
from typing import Dict


class Region(str, Enum):
    """Hosting regions; each has its own auth and API hosts."""
    NORTH_AMERICA_GCP = "north_america_gcp"
    NORTH_AMERICA_AWS = "north_america_aws"
    EUROPE_GCP = "europe_gcp"
    EUROPE_AWS = "europe_aws"
    AUSTRALIA_GCP = "australia_gcp"


class GrantType(str, Enum):
    """Values for the ``grant_type`` form parameter."""
    # Client grant and anonymous customer grant
    CLIENT_CREDENTIALS = "client_credentials"
    # Refreshing any grant, client or customer
    REFRESH_TOKEN = "refresh_token"
    # Customer login
    PASSWORD = "password"


REGION_URLS: Dict[Region, Dict[str, str]] = {
    Region.EUROPE_GCP: {
        "auth": "https://auth.europe-west1.gcp.commercetools.com",
        "api": "https://api.europe-west1.gcp.commercetools.com",
    },
    Region.EUROPE_AWS: {
        "auth": "https://auth.eu-central-1.aws.commercetools.com",
        "api": "https://api.eu-central-1.aws.commercetools.com",
    },
    Region.NORTH_AMERICA_GCP: {
        "auth": "https://auth.us-central1.gcp.commercetools.com",
        "api": "https://api.us-central1.gcp.commercetools.com",
    },
    Region.NORTH_AMERICA_AWS: {
        "auth": "https://auth.us-east-2.aws.commercetools.com",
        "api": "https://api.us-east-2.aws.commercetools.com",
    },
    Region.AUSTRALIA_GCP: {
        "auth": "https://auth.australia-southeast1.gcp.commercetools.com",
        "api": "https://api.australia-southeast1.gcp.commercetools.com",
    },
}

# Scope names the server reports that are identifiers, not permissions.
RESERVED_SCOPES = frozenset({"anonymous_id", "customer_id"})

DEFAULT_REFRESH_IF_WITHIN_SECS = 1800
DEFAULT_REQUEST_TIMEOUT_MS = 5000

TOKEN_PATH = "/oauth/token"
REVOKE_PATH = "/oauth/token/revoke"
