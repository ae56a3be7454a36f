"""
Grant-flow policy: decides which principal, scopes and audiences a new token
carries, then signs it with the registry's active key.
"""

import hmac
import uuid
from typing import Iterable, List, Optional

from shared.errors import (
    AuthenticationError,
    ConsentRequiredError,
    InvalidClientError,
    UnauthorizedGrantError,
    UserNotFoundError,
)
from shared.logging import get_logger, set_principal_context
from shared.metrics import MetricsCollector
from ..tokens import SigningKeyRegistry, Token, derive_audiences, encode
from .models import Client, Directory, TokenResponse, User

CLIENT_CREDENTIALS = "client_credentials"
PASSWORD = "password"
IMPLICIT = "implicit"


def _secrets_match(expected: str, presented: str) -> bool:
    return hmac.compare_digest(expected.encode("utf-8"), presented.encode("utf-8"))


class TokenIssuer:
    """Mints access tokens for the supported grant types."""

    def __init__(
        self,
        registry: SigningKeyRegistry,
        directory: Directory,
        issuer_url: str,
        default_scopes: Iterable[str] = (),
        token_validity_seconds: int = 599,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.registry = registry
        self.directory = directory
        self.issuer_url = issuer_url.rstrip("/")
        self.default_scopes = list(default_scopes)
        self.token_validity_seconds = token_validity_seconds
        self.metrics = metrics
        self.logger = get_logger("tokens.issuer")

    @property
    def issuer(self) -> str:
        return f"{self.issuer_url}/oauth/token"

    def find_client(self, client_id: str) -> Client:
        """Look up a registered client without checking credentials."""
        client = self.directory.get_client(client_id)
        if client is None:
            raise InvalidClientError(f"No client with requested id: {client_id}")
        return client

    def authenticate_client(self, client_id: str, client_secret: Optional[str] = None) -> Client:
        """Look up a client and check its secret when one is configured."""
        client = self.find_client(client_id)

        if client.secret is not None and not _secrets_match(client.secret, client_secret or ""):
            raise InvalidClientError("Bad client credentials")

        return client

    def authenticate_user(self, user_name: str, password: str) -> User:
        user = self.directory.get_user_by_name(user_name)
        if user is None:
            raise UserNotFoundError(user_name)

        if user.password is None or not _secrets_match(user.password, password):
            raise AuthenticationError("Bad credentials", details={"user_name": user_name})

        return user

    def client_credentials(self, client_id: str, client_secret: Optional[str] = None) -> TokenResponse:
        """Token for the client itself, carrying its authorities."""
        client = self.authenticate_client(client_id, client_secret)
        self._check_grant_type(client, CLIENT_CREDENTIALS)

        token = Token(
            client_id=client.client_id,
            scopes=list(client.scope),
            authorities=list(client.authorities),
        )
        return self._issue(token, CLIENT_CREDENTIALS)

    def password(
        self,
        client_id: str,
        user_name: str,
        password: str,
        client_secret: Optional[str] = None,
    ) -> TokenResponse:
        """Token for a user authenticating through a client at the token endpoint."""
        client = self.authenticate_client(client_id, client_secret)
        self._check_grant_type(client, PASSWORD)
        user = self.authenticate_user(user_name, password)

        token = Token(
            client_id=client.client_id,
            user_id=user.user_id,
            scopes=list(client.scope),
        )
        return self._issue(token, PASSWORD)

    def approved_scopes(self, client: Client, requested_scopes: Iterable[str]) -> List[str]:
        """Requested scopes allowed by the default-scope list.

        Raises ConsentRequiredError when any of them is not auto-approved for
        the client.
        """
        scopes = [scope for scope in requested_scopes if scope in self.default_scopes]

        unapproved = [scope for scope in scopes if scope not in client.autoapprove]
        if unapproved:
            # TODO: return an approval document for the caller to render once consent is supported
            self.logger.info(
                "Consent required",
                client_id=client.client_id,
                scopes=unapproved,
            )
            raise ConsentRequiredError(client.client_id, unapproved)

        return scopes

    def implicit(
        self,
        client_id: str,
        user_name: str,
        password: str,
        requested_scopes: Iterable[str],
    ) -> TokenResponse:
        """Token for a user posting credentials to the authorize endpoint.

        The implicit flow carries no client credentials, so the client only
        has to be registered.
        """
        client = self.find_client(client_id)
        self._check_grant_type(client, IMPLICIT)
        user = self.authenticate_user(user_name, password)

        token = Token(
            client_id=client.client_id,
            user_id=user.user_id,
            scopes=self.approved_scopes(client, requested_scopes),
        )
        return self._issue(token, IMPLICIT)

    def _check_grant_type(self, client: Client, grant_type: str) -> None:
        if client.authorized_grant_types and grant_type not in client.authorized_grant_types:
            raise UnauthorizedGrantError(client.client_id, grant_type)

    def _issue(self, token: Token, grant_type: str) -> TokenResponse:
        key = self.registry.active_key
        token.issuer = self.issuer
        token.key_id = key.key_id
        token.audiences = derive_audiences(token.client_id, token.scopes, token.authorities)

        set_principal_context(client_id=token.client_id, user_id=token.user_id)

        if self.metrics:
            with self.metrics.time_operation("token_signing_duration_seconds", algorithm=key.jws_algorithm):
                access_token = encode(token, key)
            self.metrics.increment_counter("tokens_issued_total", grant_type=grant_type)
        else:
            access_token = encode(token, key)

        self.logger.info(
            "Token issued",
            grant_type=grant_type,
            kid=key.key_id,
            scopes=token.scopes,
            audiences=token.audiences,
        )

        return TokenResponse(
            access_token=access_token,
            expires_in=self.token_validity_seconds,
            scope=" ".join(token.scopes),
            jti=str(uuid.uuid4()),
        )
