"""
Signing keys and the registry the service signs and verifies with.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, List, Mapping, Optional, Tuple

from cryptography.hazmat.primitives import serialization

from shared.errors import ConfigurationError
from shared.logging import get_logger
from .signing import (
    HMACSigningMethod,
    RSASigningMethod,
    algorithm_for_key,
    get_signing_method,
    load_rsa_private_key,
    load_rsa_public_key,
)

logger = get_logger("tokens.keys")


@dataclass(frozen=True)
class SigningKey:
    """A key identifier bound to an algorithm family and key material.

    ``value`` is a PEM public key (verification), a PEM private key (signing)
    or a raw shared secret for HMAC keys.
    """

    key_id: str
    algorithm: str
    value: str

    def __repr__(self) -> str:
        # keep secrets out of logs and tracebacks
        return f"SigningKey(key_id={self.key_id!r}, algorithm={self.algorithm!r})"

    @property
    def jws_algorithm(self) -> str:
        return algorithm_for_key(self.algorithm)

    @property
    def is_rsa(self) -> bool:
        return isinstance(get_signing_method(self.jws_algorithm), RSASigningMethod)

    @property
    def is_hmac(self) -> bool:
        return isinstance(get_signing_method(self.jws_algorithm), HMACSigningMethod)

    @property
    def has_private_key(self) -> bool:
        return self.is_rsa and "PRIVATE KEY-----" in self.value

    def public_pem(self) -> str:
        """Return the PEM public key for an RSA key, deriving it from a private key if needed."""
        if not self.is_rsa:
            raise ConfigurationError(
                "HMAC keys have no public part",
                details={"kid": self.key_id},
            )

        if not self.has_private_key:
            return self.value

        public_key = load_rsa_private_key(self.value).public_key()
        return public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")

    def verification_key(self) -> "SigningKey":
        """The form of this key a verifier needs: public PEM for RSA, the secret for HMAC."""
        if self.has_private_key:
            return SigningKey(self.key_id, self.algorithm, self.public_pem())
        return self


class SigningKeyRegistry:
    """Immutable mapping of key id to SigningKey.

    Built once at startup. Insertion order is kept so verification scans keys
    in the order they were configured.
    """

    def __init__(self, keys: Iterable[SigningKey], active_key_id: Optional[str] = None):
        ordered: List[SigningKey] = []
        by_id = {}
        for key in keys:
            if key.key_id in by_id:
                raise ConfigurationError(
                    f"Duplicate signing key id: {key.key_id}",
                    details={"kid": key.key_id},
                )
            algorithm_for_key(key.algorithm)
            by_id[key.key_id] = key
            ordered.append(key)

        if not ordered:
            raise ConfigurationError("At least one signing key is required")

        if active_key_id is None:
            active_key_id = ordered[0].key_id
        if active_key_id not in by_id:
            raise ConfigurationError(
                f"Active signing key not configured: {active_key_id}",
                details={"kid": active_key_id, "known": list(by_id)},
            )

        self._keys: Tuple[SigningKey, ...] = tuple(ordered)
        self._by_id: Mapping[str, SigningKey] = MappingProxyType(by_id)
        self._active_key_id = active_key_id
        self._verification_keys = tuple(key.verification_key() for key in ordered)

        logger.info(
            "Signing key registry loaded",
            key_ids=list(by_id),
            active_key_id=active_key_id,
        )

    @classmethod
    def from_settings(cls, entries: Iterable, active_key_id: Optional[str] = None) -> "SigningKeyRegistry":
        """Build a registry from ``SigningKeySettings`` entries."""
        keys = [SigningKey(entry.kid, entry.alg, entry.value) for entry in entries]
        return cls(keys, active_key_id)

    def __iter__(self) -> Iterator[SigningKey]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key_id: object) -> bool:
        return key_id in self._by_id

    def get(self, key_id: str) -> Optional[SigningKey]:
        return self._by_id.get(key_id)

    @property
    def active_key(self) -> SigningKey:
        return self._by_id[self._active_key_id]

    def verification_keys(self) -> List[SigningKey]:
        """Candidate keys for ``Token.verify``, in configuration order."""
        return list(self._verification_keys)

    def rsa_keys(self) -> List[SigningKey]:
        return [key for key in self._keys if key.is_rsa]


def rsa_public_numbers(public_pem: str) -> Tuple[int, int]:
    """Return (modulus, exponent) of an RSA public key in PEM form."""
    numbers = load_rsa_public_key(public_pem).public_numbers()
    return numbers.n, numbers.e
