"""
Token verifier: selects the key by kid and checks the signature.
"""

from typing import TYPE_CHECKING, Iterable

from jwt.utils import base64url_decode

from shared.errors import InvalidTokenError, UnknownSigningKeyError
from shared.logging import get_logger
from .signing import get_signing_method

if TYPE_CHECKING:
    from .claims import Token
    from .keys import SigningKey

logger = get_logger("tokens.verifier")


def verify_token(token: "Token", signing_keys: Iterable["SigningKey"]) -> None:
    """Verify ``token`` against the first key whose id equals its kid.

    The algorithm comes from the token header. Signature mismatches raise
    ``cryptography.exceptions.InvalidSignature``; errors from parsing the key
    material propagate as raised.
    """
    for signing_key in signing_keys:
        if signing_key.key_id != token.key_id:
            continue

        method = get_signing_method(token.algorithm)

        if token.segments is None:
            raise InvalidTokenError("token has no encoded segments to verify")

        try:
            signature = base64url_decode(token.segments.signature)
        except ValueError as exc:
            raise InvalidTokenError(f"signature cannot be decoded: {exc}") from exc

        method.verify(
            token.segments.signing_input.encode("utf-8"),
            signature,
            signing_key.value,
        )
        logger.debug("Token signature verified", kid=token.key_id, algorithm=token.algorithm)
        return

    logger.info("No signing key for token", kid=token.key_id)
    raise UnknownSigningKeyError(token.key_id)
