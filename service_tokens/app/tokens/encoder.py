"""
Token encoder: serializes claims into a signed three-segment token.
"""

import json
from typing import Any, Dict

from jwt.utils import base64url_encode

from shared.logging import get_logger
from .claims import Token
from .keys import SigningKey
from .signing import algorithm_for_key, get_signing_method

logger = get_logger("tokens.encoder")


def _encode_segment(payload: Dict[str, Any]) -> str:
    data = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64url_encode(data).decode("ascii")


def encode(token: Token, key: SigningKey) -> str:
    """Sign ``token`` with ``key`` and return the compact token string.

    Raises UnsupportedAlgorithmError for keys outside the RSA/HMAC families
    and KeyParseError when an RSA private key cannot be parsed.
    """
    algorithm = algorithm_for_key(key.algorithm)
    method = get_signing_method(algorithm)

    header = {"alg": algorithm, "typ": "JWT", "kid": key.key_id}
    signing_input = f"{_encode_segment(header)}.{_encode_segment(token.to_claims())}"

    signature = method.sign(signing_input.encode("ascii"), key.value)

    logger.debug(
        "Token signed",
        kid=key.key_id,
        algorithm=algorithm,
        scopes=list(token.scopes),
    )
    return f"{signing_input}.{base64url_encode(signature).decode('ascii')}"
