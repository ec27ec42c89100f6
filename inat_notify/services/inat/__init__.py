"""iNaturalist HTTP client and credential providers."""
from inat_notify.services.inat.auth import (
    CredentialProvider,
    SessionCredentialProvider,
    StaticCredentialProvider,
    default_credentials,
    token_expiry,
)
from inat_notify.services.inat.client import INatClient

__all__ = [
    "CredentialProvider",
    "INatClient",
    "SessionCredentialProvider",
    "StaticCredentialProvider",
    "default_credentials",
    "token_expiry",
]
