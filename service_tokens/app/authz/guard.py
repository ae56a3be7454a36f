"""
Bearer token guard for protected endpoints.
"""

from typing import Callable, Iterable, Optional, Sequence

from cryptography.exceptions import InvalidSignature
from fastapi import Request

from shared.errors import AuthenticationError, AuthorizationError, TokenServiceException
from shared.logging import get_logger, set_principal_context
from shared.metrics import MetricsCollector
from ..tokens import SigningKey, Token, decode, validate


class TokenGuard:
    """Authenticates bearer tokens and enforces scope/audience requirements.

    Signature verification and the scope/audience check are separate gates;
    a request passes only if both do.
    """

    def __init__(self, signing_keys: Sequence[SigningKey], metrics: Optional[MetricsCollector] = None):
        self.signing_keys = list(signing_keys)
        self.metrics = metrics
        self.logger = get_logger("tokens.guard")

    def _count(self, metric_name: str, **labels) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, **labels)

    def verify(self, token_string: str) -> Token:
        """Decode and verify a token, mapping every failure to AuthenticationError."""
        try:
            token = decode(token_string)
            token.verify(self.signing_keys)
        except InvalidSignature as exc:
            self._count("token_verifications_total", status="invalid_signature")
            raise AuthenticationError("Token signature is invalid") from exc
        except TokenServiceException as exc:
            self._count("token_verifications_total", status="rejected")
            raise AuthenticationError(exc.message, details=exc.details) from exc
        except ValueError as exc:
            # malformed key material in the candidate set
            self._count("token_verifications_total", status="rejected")
            raise AuthenticationError(f"Token could not be verified: {exc}") from exc

        self._count("token_verifications_total", status="ok")
        return token

    def authenticate(self, request: Request) -> Token:
        """Authenticate the incoming request using the Authorization bearer token."""
        authorization = request.headers.get("Authorization")
        if not authorization or not authorization.startswith("Bearer "):
            raise AuthenticationError("Missing or invalid Authorization header")

        token_string = authorization[7:].strip()
        if not token_string:
            raise AuthenticationError("Authorization header contained empty bearer token")

        token = self.verify(token_string)
        set_principal_context(client_id=token.client_id, user_id=token.user_id)
        request.state.token = token
        return token

    def authorize(self, token: Token, scopes: Iterable[str] = (), audiences: Iterable[str] = ()) -> Token:
        """Raise AuthorizationError unless the token holds every required scope and audience."""
        scopes = list(scopes)
        audiences = list(audiences)

        if not validate(token, scopes, audiences):
            self._count("authorization_checks_total", decision="deny")
            self.logger.warning(
                "Insufficient token scope",
                required_scopes=scopes,
                required_audiences=audiences,
                scopes=token.scopes,
                audiences=token.audiences,
            )
            raise AuthorizationError(
                "Insufficient scope for this resource",
                details={"required_scopes": scopes, "required_audiences": audiences},
            )

        self._count("authorization_checks_total", decision="allow")
        return token

    def require(self, scopes: Iterable[str] = (), audiences: Iterable[str] = ()) -> Callable[[Request], Token]:
        """Build a FastAPI dependency that authenticates and authorizes the request."""
        scopes = list(scopes)
        audiences = list(audiences)

        def dependency(request: Request) -> Token:
            token = self.authenticate(request)
            return self.authorize(token, scopes, audiences)

        return dependency
