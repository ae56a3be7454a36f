"""
Shared pytest fixtures: RSA key pairs, candidate key sets and a registry.

Keys are generated once per test session and handed to tests explicitly.
"""

import base64
import hashlib
import hmac
import json
import textwrap
from dataclasses import dataclass

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.utils import base64url_encode

from service_tokens.app.tokens import SigningKey, SigningKeyRegistry


@dataclass(frozen=True)
class RSAKeyPair:
    """Generated RSA key material in the forms tests need."""
    key_id: str
    private_key: rsa.RSAPrivateKey
    private_pem: str
    public_pem: str


def _pem(label: str, der: bytes) -> str:
    body = "\n".join(textwrap.wrap(base64.b64encode(der).decode("ascii"), 64))
    return f"-----BEGIN {label}-----\n{body}\n-----END {label}-----\n"


def _generate_key_pair(key_id: str, pkcs1_public: bool = False) -> RSAKeyPair:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")

    if pkcs1_public:
        # bare PKCS#1 RSAPublicKey under a "PUBLIC KEY" label
        der = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.PKCS1,
        )
        public_pem = _pem("PUBLIC KEY", der)
    else:
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    return RSAKeyPair(key_id, private_key, private_pem, public_pem)


@pytest.fixture(scope="session")
def key_pair_a() -> RSAKeyPair:
    """RSA key pair whose public key is PKIX encoded."""
    return _generate_key_pair("some-key-id-a")


@pytest.fixture(scope="session")
def key_pair_b() -> RSAKeyPair:
    """RSA key pair whose public key is PKCS#1 encoded."""
    return _generate_key_pair("some-key-id-b", pkcs1_public=True)


@pytest.fixture
def shared_secret() -> str:
    return "some-secret"


@pytest.fixture
def candidate_keys(key_pair_a, key_pair_b, shared_secret):
    """Verification keys: two RSA public keys and one HMAC secret."""
    return [
        SigningKey(key_pair_a.key_id, "RS256", key_pair_a.public_pem),
        SigningKey(key_pair_b.key_id, "RS256", key_pair_b.public_pem),
        SigningKey("some-key-id-c", "HS256", shared_secret),
    ]


@pytest.fixture
def registry(key_pair_a, key_pair_b, shared_secret) -> SigningKeyRegistry:
    """Registry signing with "token-key" and also trusting a legacy and an HMAC key."""
    return SigningKeyRegistry(
        [
            SigningKey("token-key", "SHA256withRSA", key_pair_a.private_pem),
            SigningKey("legacy-token-key", "SHA256withRSA", key_pair_b.private_pem),
            SigningKey("hmac-key", "HS256", shared_secret),
        ],
        active_key_id="token-key",
    )


@pytest.fixture
def forge_hmac_token():
    """Build an HS256 token by hand, bypassing any library key checks."""

    def forge(header: dict, claims: dict, secret: str) -> str:
        def segment(payload: dict) -> str:
            return base64url_encode(json.dumps(payload).encode("utf-8")).decode("ascii")

        signing_input = f"{segment(header)}.{segment(claims)}"
        signature = hmac.new(secret.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256).digest()
        return f"{signing_input}.{base64url_encode(signature).decode('ascii')}"

    return forge
