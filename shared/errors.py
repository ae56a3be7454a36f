"""
Shared error handling for the token service.
"""

from typing import Dict, Any, List, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class TokenServiceException(Exception):
    """Base exception for token service errors."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class AuthenticationError(TokenServiceException):
    """Authentication-related errors."""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None,
                 code: str = "AUTHENTICATION_ERROR"):
        super().__init__(code, message, details)


class AuthorizationError(TokenServiceException):
    """Authorization-related errors."""

    status_code = 403

    def __init__(self, message: str = "Authorization failed", details: Optional[Dict[str, Any]] = None,
                 code: str = "AUTHORIZATION_ERROR"):
        super().__init__(code, message, details)


class ValidationError(TokenServiceException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None,
                 code: str = "VALIDATION_ERROR"):
        super().__init__(code, message, details)


class ConfigurationError(TokenServiceException):
    """Invalid service or key configuration."""

    status_code = 500

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None,
                 code: str = "CONFIGURATION_ERROR"):
        super().__init__(code, message, details)


class InvalidTokenError(ValidationError):
    """A token string could not be split, decoded or parsed."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_TOKEN")


class UnsupportedAlgorithmError(AuthenticationError):
    """The signing algorithm is neither RSA nor HMAC family."""

    def __init__(self, algorithm: str):
        self.algorithm = algorithm
        super().__init__(
            f"unsupported token signing method: {algorithm}",
            details={"algorithm": algorithm},
            code="UNSUPPORTED_ALGORITHM",
        )


class UnknownSigningKeyError(AuthenticationError):
    """No candidate key matches the token's kid."""

    def __init__(self, key_id: str = ""):
        self.key_id = key_id
        super().__init__(
            "token was not signed by a known key",
            details={"kid": key_id},
            code="UNKNOWN_SIGNING_KEY",
        )


class KeyParseError(ConfigurationError):
    """PEM decoding or ASN.1 parsing of an RSA key failed."""

    def __init__(self, message: str):
        super().__init__(message, code="KEY_PARSE_ERROR")


class InvalidClientError(AuthenticationError):
    """The OAuth client is unknown or presented bad credentials."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_CLIENT")


class UserNotFoundError(TokenServiceException):
    """The named user does not exist."""

    status_code = 404

    def __init__(self, user_name: str):
        super().__init__(
            "SCIM_RESOURCE_NOT_FOUND",
            f"User {user_name} does not exist",
            {"user_name": user_name},
        )


class UnauthorizedGrantError(AuthorizationError):
    """The client is not allowed to use the requested grant type."""

    def __init__(self, client_id: str, grant_type: str):
        super().__init__(
            f"Unauthorized grant type: {grant_type}",
            details={"client_id": client_id, "grant_type": grant_type},
            code="UNAUTHORIZED_GRANT",
        )


class ConsentRequiredError(AuthorizationError):
    """Requested scopes need interactive user approval.

    Approval screens are not implemented; the issuer raises this instead of
    minting a token so the caller can decide how to respond.
    """

    status_code = 501

    def __init__(self, client_id: str, scopes: List[str]):
        self.scopes = list(scopes)
        super().__init__(
            "User approval required for requested scopes",
            details={"client_id": client_id, "scopes": self.scopes},
            code="CONSENT_REQUIRED",
        )
