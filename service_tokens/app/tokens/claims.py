"""
Claims model for access tokens.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .audiences import ordered_unique


@dataclass(frozen=True)
class TokenSegments:
    """The encoded token split into its three raw base64url parts."""

    header: str
    claims: str
    signature: str

    @property
    def signing_input(self) -> str:
        """The exact string the signature was computed over."""
        return f"{self.header}.{self.claims}"


@dataclass
class Token:
    """In-memory representation of a decoded or about-to-be-encoded token.

    ``segments`` is only set on decoded tokens. It keeps the substrings the
    token was split on so signatures are checked against the original bytes.
    """

    client_id: str = ""
    user_id: str = ""
    scopes: List[str] = field(default_factory=list)
    authorities: List[str] = field(default_factory=list)
    audiences: List[str] = field(default_factory=list)
    issuer: str = ""
    key_id: str = ""
    algorithm: str = ""
    segments: Optional[TokenSegments] = None

    def __post_init__(self):
        self.audiences = ordered_unique(self.audiences)

    def verify(self, signing_keys: Iterable[Any]) -> None:
        """Verify the signature against the first key whose id matches ``key_id``.

        Raises on failure, returns None on success.
        """
        from .verifier import verify_token

        verify_token(self, signing_keys)

    def has_scopes(self, scopes: Iterable[str]) -> bool:
        return all(scope in self.scopes for scope in scopes)

    def has_audiences(self, audiences: Iterable[str]) -> bool:
        return all(audience in self.audiences for audience in audiences)

    def to_claims(self) -> Dict[str, Any]:
        """Build the wire claims set."""
        claims: Dict[str, Any] = {}

        if self.client_id:
            claims["client_id"] = self.client_id

        if self.user_id:
            claims["user_id"] = self.user_id

        claims["scope"] = list(self.scopes)
        claims["aud"] = " ".join(self.audiences)
        claims["iss"] = self.issuer

        return claims
