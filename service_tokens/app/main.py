"""
Token service: issues, publishes keys for, and checks access tokens.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from fastapi import Depends, Form, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import AuthenticationError, InvalidClientError, ValidationError
from .authz import TokenGuard
from .discovery import TokenKeyResponse, TokenKeysResponse, token_key_document, token_keys_document
from .grants import CLIENT_CREDENTIALS, PASSWORD, Directory, InMemoryDirectory, TokenIssuer, TokenResponse
from .tokens import SigningKeyRegistry, validate


class CheckTokenRequest(BaseModel):
    """Request model for token checks."""
    token: str
    scopes: List[str] = []
    audiences: List[str] = []


class CheckTokenResponse(BaseModel):
    """Response model for token checks."""
    valid: bool
    claims: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class TokenService(BaseService):
    """Token service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        registry: Optional[SigningKeyRegistry] = None,
        directory: Optional[Directory] = None,
    ):
        super().__init__("tokens", 8080, config or get_config("tokens", 8080))

        self.registry = registry or SigningKeyRegistry.from_settings(
            self.config.load_signing_keys(),
            self.config.active_key_id,
        )
        self.directory = directory or InMemoryDirectory()
        self.issuer = TokenIssuer(
            self.registry,
            self.directory,
            issuer_url=self.config.issuer_url,
            default_scopes=self.config.default_scopes,
            token_validity_seconds=self.config.token_validity_seconds,
            metrics=self.metrics,
        )
        self.guard = TokenGuard(self.registry.verification_keys(), metrics=self.metrics)
        self.basic_auth = HTTPBasic(auto_error=False)

        self._setup_token_routes()

    def _client_credentials(
        self,
        credentials: Optional[HTTPBasicCredentials],
        client_id: Optional[str],
        client_secret: Optional[str],
    ):
        if credentials is not None:
            return credentials.username, credentials.password
        if client_id:
            return client_id, client_secret
        raise AuthenticationError("An Authentication object was not found in the SecurityContext")

    def _setup_token_routes(self):
        """Set up token-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "tokens",
                "issuer": self.issuer.issuer,
                "version": "1.0.0"
            }

        @self.app.post("/oauth/token", response_model=TokenResponse)
        async def token_endpoint(
            grant_type: str = Form(...),
            username: Optional[str] = Form(None),
            password: Optional[str] = Form(None),
            client_id: Optional[str] = Form(None),
            client_secret: Optional[str] = Form(None),
            credentials: Optional[HTTPBasicCredentials] = Depends(self.basic_auth),
        ):
            """Token endpoint for the client_credentials and password grants."""
            client_id, client_secret = self._client_credentials(credentials, client_id, client_secret)

            if grant_type == CLIENT_CREDENTIALS:
                return self.issuer.client_credentials(client_id, client_secret)

            if grant_type == PASSWORD:
                if not username:
                    raise ValidationError("Username and password required", code="INVALID_REQUEST")
                return self.issuer.password(client_id, username, password or "", client_secret)

            raise ValidationError(
                f"Unsupported grant type: {grant_type}",
                details={"grant_type": grant_type},
                code="UNSUPPORTED_GRANT_TYPE",
            )

        @self.app.post("/oauth/authorize")
        async def authorize_endpoint(
            request: Request,
            client_id: str = Query(""),
            response_type: str = Query(""),
            redirect_uri: str = Query(""),
            scope: str = Query(""),
            username: str = Form(""),
            password: str = Form(""),
            source: str = Form(""),
        ):
            """Implicit grant for users posting credentials directly."""
            if request.headers.get("Accept") != "application/json" or response_type != "token":
                return self._redirect_to_login()

            client = self.issuer.find_client(client_id)

            if source != "credentials":
                return self._redirect_to_login()

            if client.redirect_uri and redirect_uri not in client.redirect_uri:
                raise ValidationError(
                    "Invalid redirect uri",
                    details={"redirect_uri": redirect_uri},
                    code="INVALID_REDIRECT_URI",
                )

            try:
                issued = self.issuer.implicit(client_id, username, password, scope.split())
            except InvalidClientError:
                raise
            except AuthenticationError:
                return self._redirect_to_login()

            fragment = urlencode({
                "token_type": issued.token_type,
                "access_token": issued.access_token,
                "expires_in": str(issued.expires_in),
                "scope": issued.scope,
                "jti": issued.jti,
            })
            return RedirectResponse(f"{redirect_uri}#{fragment}", status_code=302)

        @self.app.get("/token_key", response_model=TokenKeyResponse)
        async def token_key():
            """The active verification key."""
            key = self.registry.active_key
            if not key.is_rsa:
                raise HTTPException(status_code=404, detail="Active signing key is not published")
            return token_key_document(key)

        @self.app.get("/token_keys", response_model=TokenKeysResponse)
        async def token_keys():
            """All published verification keys."""
            return token_keys_document(self.registry)

        @self.app.post("/check_token", response_model=CheckTokenResponse)
        async def check_token(request: CheckTokenRequest):
            """Verify a token and check it against the required scopes and audiences."""
            token_string = request.token
            if token_string.startswith("Bearer "):
                token_string = token_string[7:]

            try:
                token = self.guard.verify(token_string)
            except AuthenticationError as e:
                self.logger.warning("Token check failed", error=e.message)
                return CheckTokenResponse(valid=False, error=e.message)

            if not validate(token, request.scopes, request.audiences):
                self.metrics.increment_counter("authorization_checks_total", decision="deny")
                return CheckTokenResponse(
                    valid=False,
                    claims=token.to_claims(),
                    error="Insufficient scope for this resource",
                )

            self.metrics.increment_counter("authorization_checks_total", decision="allow")
            return CheckTokenResponse(valid=True, claims=token.to_claims())

    def _redirect_to_login(self) -> RedirectResponse:
        return RedirectResponse("/login", status_code=302)

    async def _check_dependencies(self) -> Dict[str, str]:
        return {"signing_keys": str(len(self.registry))}


def create_app(**kwargs):
    """Create token service application."""
    service = TokenService(**kwargs)
    return service.app


if __name__ == "__main__":
    TokenService().run()
