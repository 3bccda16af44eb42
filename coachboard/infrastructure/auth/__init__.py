"""Identity provider implementations (hosted auth service and in-memory mock)."""

from .client import HostedAuthConfig, HostedIdentityProvider
from .mock import MockAuthBackend, MockIdentityProvider
from .tokens import decode_access_token, encode_access_token

__all__ = [
    "HostedAuthConfig",
    "HostedIdentityProvider",
    "MockAuthBackend",
    "MockIdentityProvider",
    "decode_access_token",
    "encode_access_token",
]
