"""
Token subsystem: claims, signing keys, encode/decode, verification and
scope/audience authorization.

Typical flow::

    token = decode(bearer)           # parse only
    token.verify(registry.verification_keys())
    if not validate(token, ["scim.read"], ["scim"]):
        ...                          # access denied
"""

from .audiences import derive_audiences
from .authorization import validate
from .claims import Token, TokenSegments
from .decoder import decode
from .encoder import encode
from .keys import SigningKey, SigningKeyRegistry
from .signing import HMACSigningMethod, RSASigningMethod, get_signing_method
from .verifier import verify_token

__all__ = [
    "HMACSigningMethod",
    "RSASigningMethod",
    "SigningKey",
    "SigningKeyRegistry",
    "Token",
    "TokenSegments",
    "decode",
    "derive_audiences",
    "encode",
    "get_signing_method",
    "validate",
    "verify_token",
]
