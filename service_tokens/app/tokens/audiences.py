"""
Audience derivation from granted scopes and authorities.
"""

from typing import Iterable, List


def ordered_unique(values: Iterable[str]) -> List[str]:
    """Drop duplicates while keeping first-seen order."""
    return list(dict.fromkeys(values))


def audience_for(scope: str) -> str:
    """Return the resource part of a scope: ``scim.read`` -> ``scim``."""
    return scope.split(".", 1)[0]


def derive_audiences(client_id: str, scopes: Iterable[str], authorities: Iterable[str]) -> List[str]:
    """Compute the ``aud`` values for a token.

    The client id, when present, comes first; the resource prefixes of every
    scope and authority follow in the order they were granted.
    """
    audiences: List[str] = []
    if client_id:
        audiences.append(client_id)

    for scope in scopes:
        audiences.append(audience_for(scope))

    for authority in authorities:
        audiences.append(audience_for(authority))

    return ordered_unique(audiences)
