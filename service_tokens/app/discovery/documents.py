"""
Token key documents published for external verifiers.
"""

from typing import List

from jwt.utils import to_base64url_uint
from pydantic import BaseModel

from ..tokens import SigningKey, SigningKeyRegistry
from ..tokens.keys import rsa_public_numbers

_DOCUMENT_ALGORITHMS = {
    "RS256": "SHA256withRSA",
    "RS384": "SHA384withRSA",
    "RS512": "SHA512withRSA",
}


class TokenKeyResponse(BaseModel):
    """A single published verification key."""
    kid: str
    alg: str
    value: str
    kty: str = "RSA"
    use: str = "sig"
    n: str
    e: str


class TokenKeysResponse(BaseModel):
    """All published verification keys."""
    keys: List[TokenKeyResponse]


def token_key_document(key: SigningKey) -> TokenKeyResponse:
    """Describe an RSA key by its public PEM and its modulus/exponent."""
    public_pem = key.public_pem()
    modulus, exponent = rsa_public_numbers(public_pem)

    return TokenKeyResponse(
        kid=key.key_id,
        alg=_DOCUMENT_ALGORITHMS[key.jws_algorithm],
        value=public_pem,
        n=to_base64url_uint(modulus).decode("ascii"),
        e=to_base64url_uint(exponent).decode("ascii"),
    )


def token_keys_document(registry: SigningKeyRegistry) -> TokenKeysResponse:
    """Every RSA key in the registry. Shared HMAC secrets are never published."""
    return TokenKeysResponse(keys=[token_key_document(key) for key in registry.rsa_keys()])


def signing_key_from_document(document: dict) -> SigningKey:
    """Turn a published key document back into a verification SigningKey."""
    return SigningKey(
        key_id=document.get("kid", ""),
        algorithm=document.get("alg", "SHA256withRSA"),
        value=document["value"],
    )
