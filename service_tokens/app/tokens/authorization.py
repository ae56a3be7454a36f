"""
Scope/audience authorization check for decoded tokens.
"""

from typing import Iterable

from .claims import Token


def validate(token: Token, required_scopes: Iterable[str] = (), required_audiences: Iterable[str] = ()) -> bool:
    """Return True if the token carries every required scope and audience.

    Membership is exact and case-sensitive. This does not check the
    signature; callers must also run ``Token.verify``.
    """
    return token.has_scopes(required_scopes) and token.has_audiences(required_audiences)
