"""
Signing methods for the RSA and HMAC algorithm families.

Both families expose the same ``sign``/``verify`` pair and are looked up by
their JWS algorithm name. ``verify`` raises
``cryptography.exceptions.InvalidSignature`` on a mismatch.
"""

import base64
import re
from typing import Dict

from cryptography.hazmat.primitives import hashes, hmac, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from jwt.utils import is_pem_format, is_ssh_key

from shared.errors import KeyParseError, UnsupportedAlgorithmError

_PEM_BLOCK = re.compile(r"-----BEGIN ([A-Z0-9 ]+)-----(.*?)-----END \1-----", re.DOTALL)

# Declared key algorithms that are not JWS names
_KEY_ALGORITHM_ALIASES = {
    "SHA256withRSA": "RS256",
    "SHA384withRSA": "RS384",
    "SHA512withRSA": "RS512",
}


def load_rsa_public_key(value: str) -> rsa.RSAPublicKey:
    """Parse an RSA public key from PEM.

    The block body may hold either a SubjectPublicKeyInfo or a bare PKCS#1
    RSAPublicKey, whatever its label says. Errors raised by ``cryptography``
    for a malformed body propagate unchanged.
    """
    match = _PEM_BLOCK.search(value)
    if match is None:
        raise KeyParseError("public key is not valid PEM encoding")

    der = base64.b64decode("".join(match.group(2).split()))
    key = serialization.load_der_public_key(der)
    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyParseError("public key is not an RSA key")
    return key


def load_rsa_private_key(value: str) -> rsa.RSAPrivateKey:
    """Parse a PKCS#1 or PKCS#8 RSA private key from PEM."""
    try:
        key = serialization.load_pem_private_key(value.encode("utf-8"), password=None)
    except (ValueError, TypeError) as exc:
        raise KeyParseError(f"private key is not valid PEM encoding: {exc}") from exc

    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyParseError("private key is not an RSA key")
    return key


class SigningMethod:
    """A JWS algorithm able to produce and check signatures."""

    family = ""

    def __init__(self, name: str, hash_algorithm: type):
        self.name = name
        self.hash_algorithm = hash_algorithm

    def sign(self, message: bytes, key_value: str) -> bytes:
        raise NotImplementedError

    def verify(self, message: bytes, signature: bytes, key_value: str) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class RSASigningMethod(SigningMethod):
    """RSASSA-PKCS1-v1_5 with SHA-2. Signs with a private PEM, verifies with a public one."""

    family = "RSA"

    def sign(self, message: bytes, key_value: str) -> bytes:
        private_key = load_rsa_private_key(key_value)
        return private_key.sign(message, padding.PKCS1v15(), self.hash_algorithm())

    def verify(self, message: bytes, signature: bytes, key_value: str) -> None:
        public_key = load_rsa_public_key(key_value)
        public_key.verify(signature, message, padding.PKCS1v15(), self.hash_algorithm())


class HMACSigningMethod(SigningMethod):
    """HMAC with SHA-2 over a raw shared secret.

    PEM and SSH key material is refused as a secret, so a token claiming an
    HS* algorithm cannot be checked against an RSA key's public half.
    """

    family = "HMAC"

    def _mac(self, message: bytes, key_value: str) -> hmac.HMAC:
        secret = key_value.encode("utf-8")
        # a published RSA public key must never double as a shared secret
        if is_pem_format(secret) or is_ssh_key(secret):
            raise KeyParseError(
                "The specified key is an asymmetric key or x509 certificate and"
                " should not be used as an HMAC secret."
            )

        mac = hmac.HMAC(secret, self.hash_algorithm())
        mac.update(message)
        return mac

    def sign(self, message: bytes, key_value: str) -> bytes:
        return self._mac(message, key_value).finalize()

    def verify(self, message: bytes, signature: bytes, key_value: str) -> None:
        self._mac(message, key_value).verify(signature)


SIGNING_METHODS: Dict[str, SigningMethod] = {
    "RS256": RSASigningMethod("RS256", hashes.SHA256),
    "RS384": RSASigningMethod("RS384", hashes.SHA384),
    "RS512": RSASigningMethod("RS512", hashes.SHA512),
    "HS256": HMACSigningMethod("HS256", hashes.SHA256),
    "HS384": HMACSigningMethod("HS384", hashes.SHA384),
    "HS512": HMACSigningMethod("HS512", hashes.SHA512),
}


def get_signing_method(algorithm: str) -> SigningMethod:
    """Look up the signing method for a JWS algorithm name."""
    try:
        return SIGNING_METHODS[algorithm]
    except KeyError:
        raise UnsupportedAlgorithmError(algorithm) from None


def algorithm_for_key(declared: str) -> str:
    """Map a key's declared algorithm to the JWS name used in token headers."""
    algorithm = _KEY_ALGORITHM_ALIASES.get(declared, declared)
    if algorithm not in SIGNING_METHODS:
        raise UnsupportedAlgorithmError(declared)
    return algorithm
