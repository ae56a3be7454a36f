"""
Signing key discovery.

The service publishes its RSA verification keys at ``/token_key`` (active
key) and ``/token_keys`` (all keys). ``SigningKeysClient`` consumes those
endpoints so resource servers can verify tokens without sharing
configuration with the issuer.
"""

from .client import SigningKeysClient
from .documents import (
    TokenKeyResponse,
    TokenKeysResponse,
    signing_key_from_document,
    token_key_document,
    token_keys_document,
)

__all__ = [
    "SigningKeysClient",
    "TokenKeyResponse",
    "TokenKeysResponse",
    "signing_key_from_document",
    "token_key_document",
    "token_keys_document",
]
