"""
Grant flows: client_credentials, password and implicit token issuance.
"""

from .issuer import CLIENT_CREDENTIALS, IMPLICIT, PASSWORD, TokenIssuer
from .models import Client, Directory, InMemoryDirectory, TokenResponse, User

__all__ = [
    "CLIENT_CREDENTIALS",
    "Client",
    "Directory",
    "IMPLICIT",
    "InMemoryDirectory",
    "PASSWORD",
    "TokenIssuer",
    "TokenResponse",
    "User",
]
