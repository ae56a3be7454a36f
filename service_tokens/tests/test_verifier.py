"""
Unit tests for token verification.
"""

import jwt
import pytest
from cryptography.exceptions import InvalidSignature

from service_tokens.app.tokens import SigningKey, decode, verify_token
from shared.errors import (
    InvalidTokenError,
    KeyParseError,
    UnknownSigningKeyError,
    UnsupportedAlgorithmError,
)

CLAIMS = {
    "client_id": "some-client-id",
    "scope": ["scim.read"],
    "aud": "some-client-id scim",
    "iss": "http://localhost:8080/oauth/token",
}


def mint(key_value, key_id, algorithm="RS256", claims=None):
    """Sign claims with PyJWT, independently of our encoder."""
    return jwt.encode(claims or CLAIMS, key_value, algorithm=algorithm, headers={"kid": key_id})


def flip_first_char(segment: str) -> str:
    return ("B" if segment[0] == "A" else "A") + segment[1:]


class TestVerifyRSA:
    """Test cases for RSA signed tokens."""

    def test_verify_pkix_public_key(self, key_pair_a, candidate_keys):
        """Test verifying against a SubjectPublicKeyInfo PEM."""
        token = decode(mint(key_pair_a.private_pem, key_pair_a.key_id))

        assert token.verify(candidate_keys) is None

    def test_verify_pkcs1_public_key(self, key_pair_b, candidate_keys):
        """Test verifying against a PKCS#1 public key labelled PUBLIC KEY."""
        token = decode(mint(key_pair_b.private_pem, key_pair_b.key_id))

        token.verify(candidate_keys)

    @pytest.mark.parametrize("algorithm", ["RS384", "RS512"])
    def test_verify_uses_token_algorithm(self, key_pair_a, candidate_keys, algorithm):
        """Test that the hash comes from the token header, not the key."""
        token = decode(mint(key_pair_a.private_pem, key_pair_a.key_id, algorithm))

        token.verify(candidate_keys)

    def test_truncated_signature(self, key_pair_a, candidate_keys):
        """Test that dropping signature characters fails verification."""
        encoded = mint(key_pair_a.private_pem, key_pair_a.key_id)

        token = decode(encoded[:-2])

        with pytest.raises(InvalidSignature):
            token.verify(candidate_keys)

    def test_modified_claims(self, key_pair_a, candidate_keys):
        """Test that changed claims are not covered by the old signature."""
        original = mint(key_pair_a.private_pem, key_pair_a.key_id).split(".")
        forged = mint(key_pair_a.private_pem, key_pair_a.key_id, claims={**CLAIMS, "scope": ["uaa.admin"]}).split(".")

        token = decode(".".join([original[0], forged[1], original[2]]))

        with pytest.raises(InvalidSignature):
            token.verify(candidate_keys)

    def test_wrong_key_with_matching_kid(self, key_pair_a, key_pair_b):
        """Test that a key id pointing at another key's material fails."""
        token = decode(mint(key_pair_a.private_pem, "shared-kid"))
        keys = [SigningKey("shared-kid", "RS256", key_pair_b.public_pem)]

        with pytest.raises(InvalidSignature):
            token.verify(keys)

    def test_garbage_public_key(self, key_pair_a):
        """Test that a non-PEM public key is reported as a parse error."""
        token = decode(mint(key_pair_a.private_pem, key_pair_a.key_id))
        keys = [SigningKey(key_pair_a.key_id, "RS256", "not a pem")]

        with pytest.raises(KeyParseError, match="public key is not valid PEM encoding"):
            token.verify(keys)


class TestVerifyHMAC:
    """Test cases for HMAC signed tokens."""

    @pytest.mark.parametrize("algorithm", ["HS256", "HS384", "HS512"])
    def test_verify_shared_secret(self, shared_secret, candidate_keys, algorithm):
        """Test verifying with the raw shared secret."""
        token = decode(mint(shared_secret, "some-key-id-c", algorithm))

        token.verify(candidate_keys)

    def test_wrong_secret(self, candidate_keys):
        """Test that a token signed with another secret is rejected."""
        token = decode(mint("other-secret", "some-key-id-c", "HS256"))

        with pytest.raises(InvalidSignature):
            token.verify(candidate_keys)

    def test_modified_signature(self, shared_secret, candidate_keys):
        """Test that a changed signature byte is rejected."""
        header, claims, signature = mint(shared_secret, "some-key-id-c", "HS256").split(".")

        token = decode(f"{header}.{claims}.{flip_first_char(signature)}")

        with pytest.raises(InvalidSignature):
            token.verify(candidate_keys)


class TestKeySelection:
    """Test cases for choosing the verifying key."""

    def test_unknown_kid(self, key_pair_a, candidate_keys):
        """Test that a kid outside the candidates is rejected."""
        token = decode(mint(key_pair_a.private_pem, "some-unknown-key"))

        with pytest.raises(UnknownSigningKeyError, match="token was not signed by a known key"):
            token.verify(candidate_keys)

    def test_no_candidates(self, key_pair_a):
        """Test that an empty candidate list rejects every token."""
        token = decode(mint(key_pair_a.private_pem, key_pair_a.key_id))

        with pytest.raises(UnknownSigningKeyError):
            verify_token(token, [])

    def test_missing_kid(self, key_pair_a, candidate_keys):
        """Test that a token without kid matches no key."""
        token = decode(jwt.encode(CLAIMS, key_pair_a.private_pem, algorithm="RS256"))

        with pytest.raises(UnknownSigningKeyError):
            token.verify(candidate_keys)

    def test_first_match_wins(self, key_pair_a, key_pair_b):
        """Test that only the first key with a matching id is tried."""
        token = decode(mint(key_pair_a.private_pem, "duplicate"))
        keys = [
            SigningKey("duplicate", "RS256", key_pair_b.public_pem),
            SigningKey("duplicate", "RS256", key_pair_a.public_pem),
        ]

        with pytest.raises(InvalidSignature):
            token.verify(keys)

        token.verify(list(reversed(keys)))

    def test_unsigned_token(self, candidate_keys):
        """Test that alg none is never accepted."""
        encoded = jwt.encode(CLAIMS, None, algorithm="none", headers={"kid": "some-key-id-c"})
        token = decode(encoded)

        with pytest.raises(UnsupportedAlgorithmError, match="unsupported token signing method: none"):
            token.verify(candidate_keys)

    def test_algorithm_outside_families(self, shared_secret, candidate_keys):
        """Test that a kid match with an unknown algorithm is rejected."""
        header, claims, signature = mint(shared_secret, "some-key-id-c", "HS256").split(".")
        token = decode(f"{header}.{claims}.{signature}")
        token.algorithm = "ES256"

        with pytest.raises(UnsupportedAlgorithmError):
            token.verify(candidate_keys)

    def test_token_without_segments(self, candidate_keys):
        """Test that a token built in memory cannot be verified."""
        token = decode(mint("some-secret", "some-key-id-c", "HS256"))
        token.segments = None

        with pytest.raises(InvalidTokenError):
            token.verify(candidate_keys)


class TestRegistryKeys:
    """Test cases verifying against registry derived keys."""

    def test_verify_with_registry(self, registry, key_pair_b):
        """Test that private keys in the registry verify through their public part."""
        token = decode(mint(key_pair_b.private_pem, "legacy-token-key"))

        token.verify(registry.verification_keys())


class TestUntrustedTokens:
    """Test cases for tokens crafted to cross algorithm families."""

    def test_hmac_signed_with_published_public_key(self, key_pair_a, candidate_keys, forge_hmac_token):
        """Test an HS256 token keyed by an RSA public PEM is refused."""
        encoded = forge_hmac_token(
            {"alg": "HS256", "typ": "JWT", "kid": key_pair_a.key_id},
            {"user_id": "attacker", "scope": ["scim.write"], "aud": "scim"},
            key_pair_a.public_pem,
        )

        with pytest.raises(KeyParseError, match="should not be used as an HMAC secret"):
            decode(encoded).verify(candidate_keys)

    def test_hmac_against_registry_public_key(self, registry, forge_hmac_token):
        """Test the registry's derived public PEM is refused as a secret too."""
        public_pem = registry.active_key.public_pem()
        encoded = forge_hmac_token({"alg": "HS512", "kid": "token-key"}, {"scope": ["uaa.admin"]}, public_pem)

        with pytest.raises(KeyParseError):
            decode(encoded).verify(registry.verification_keys())

    def test_hmac_with_ssh_key_secret(self, forge_hmac_token):
        secret = "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQC7 user@host"
        encoded = forge_hmac_token({"alg": "HS256", "kid": "ssh"}, {"scope": []}, secret)

        with pytest.raises(KeyParseError):
            decode(encoded).verify([SigningKey("ssh", "HS256", secret)])
