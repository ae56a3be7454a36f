"""
Token decoder: splits a token string and parses its header and claims.

Decoding never checks the signature. A decoded token can be inspected before
its verifying key is known; call ``Token.verify`` before trusting it.
"""

import json
from typing import Any, Dict, List

from jwt.utils import base64url_decode

from shared.errors import InvalidTokenError
from .claims import Token, TokenSegments


def _decode_segment(segment: str, name: str) -> bytes:
    try:
        return base64url_decode(segment)
    except ValueError as exc:
        raise InvalidTokenError(f"{name} cannot be decoded: {exc}") from exc


def _parse_object(data: bytes, error_prefix: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(data)
    except (ValueError, RecursionError) as exc:
        # RecursionError: nesting deeper than the interpreter stack
        raise InvalidTokenError(f"{error_prefix}: {exc}") from exc

    if not isinstance(parsed, dict):
        raise InvalidTokenError(f"{error_prefix}: expected a JSON object")
    return parsed


def _string_claim(claims: Dict[str, Any], name: str) -> str:
    value = claims.get(name, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidTokenError(f"token cannot be parsed: {name} must be a string")
    return value


def _string_list_claim(claims: Dict[str, Any], name: str) -> List[str]:
    value = claims.get(name)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise InvalidTokenError(f"token cannot be parsed: {name} must be an array of strings")
    return list(value)


def _audiences(claims: Dict[str, Any]) -> List[str]:
    value = claims.get("aud")
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    # other issuers send a JSON array
    return _string_list_claim(claims, "aud")


def decode(token_string: str) -> Token:
    """Parse ``header.claims.signature`` into a Token.

    Raises InvalidTokenError for a wrong segment count, undecodable base64 or
    unparsable JSON.
    """
    segments = token_string.split(".")
    if len(segments) != 3:
        raise InvalidTokenError(f"invalid number of segments in token ({len(segments)}/3)")

    header = _parse_object(_decode_segment(segments[0], "header"), "header cannot be parsed")
    claims = _parse_object(_decode_segment(segments[1], "claims"), "token cannot be parsed")

    return Token(
        client_id=_string_claim(claims, "client_id"),
        user_id=_string_claim(claims, "user_id"),
        scopes=_string_list_claim(claims, "scope"),
        audiences=_audiences(claims),
        issuer=_string_claim(claims, "iss"),
        key_id=_string_claim(header, "kid"),
        algorithm=_string_claim(header, "alg"),
        segments=TokenSegments(*segments),
    )
