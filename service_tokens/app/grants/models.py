"""
Client and user records read by the grant layer, and the token response document.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from pydantic import BaseModel


@dataclass(frozen=True)
class Client:
    """OAuth client record, owned by the client management layer."""
    client_id: str
    scope: List[str] = field(default_factory=list)
    authorities: List[str] = field(default_factory=list)
    resource_ids: List[str] = field(default_factory=list)
    authorized_grant_types: List[str] = field(default_factory=list)
    autoapprove: List[str] = field(default_factory=list)
    redirect_uri: List[str] = field(default_factory=list)
    secret: Optional[str] = None


@dataclass(frozen=True)
class User:
    """User record, owned by the user management layer."""
    user_id: str
    user_name: str
    password: Optional[str] = None


class Directory(Protocol):
    """Read access to the client and user stores."""

    def get_client(self, client_id: str) -> Optional[Client]:
        ...

    def get_user_by_name(self, user_name: str) -> Optional[User]:
        ...


class InMemoryDirectory:
    """Directory backed by dictionaries."""

    def __init__(self, clients: Optional[List[Client]] = None, users: Optional[List[User]] = None):
        self._clients: Dict[str, Client] = {c.client_id: c for c in clients or []}
        self._users: Dict[str, User] = {u.user_name: u for u in users or []}

    def add_client(self, client: Client) -> None:
        self._clients[client.client_id] = client

    def add_user(self, user: User) -> None:
        self._users[user.user_name] = user

    def get_client(self, client_id: str) -> Optional[Client]:
        return self._clients.get(client_id)

    def get_user_by_name(self, user_name: str) -> Optional[User]:
        return self._users.get(user_name)


class TokenResponse(BaseModel):
    """Response document for a granted token."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    scope: str
    jti: str
