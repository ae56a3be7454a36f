"""
Shared configuration management for the token service.
"""

import json
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.errors import ConfigurationError


class SigningKeySettings(BaseModel):
    """A signing key as it appears in configuration."""

    kid: str
    alg: str = "SHA256withRSA"
    value: str


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="TOKENS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Issuance
    issuer_url: str = Field(default="http://localhost:8080")
    token_validity_seconds: int = Field(default=599)
    default_scopes: List[str] = Field(default_factory=lambda: [
        "openid",
        "scim.me",
        "cloud_controller.read",
        "cloud_controller.write",
        "password.write",
    ])

    # Signing keys
    active_key_id: str = Field(default="token-key")
    signing_keys: List[SigningKeySettings] = Field(default_factory=list)
    signing_keys_file: Optional[str] = Field(default=None)

    # Key discovery client
    key_cache_ttl: int = Field(default=300)
    http_timeout: float = Field(default=5.0)

    def load_signing_keys(self) -> List[SigningKeySettings]:
        """Return inline keys followed by the keys listed in signing_keys_file."""
        keys = list(self.signing_keys)
        if self.signing_keys_file:
            path = Path(self.signing_keys_file)
            try:
                entries = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                raise ConfigurationError(
                    f"Cannot read signing keys file: {exc}",
                    details={"path": str(path)},
                ) from exc
            if not isinstance(entries, list):
                raise ConfigurationError(
                    "Signing keys file must contain a JSON list",
                    details={"path": str(path)},
                )
            keys.extend(SigningKeySettings(**entry) for entry in entries)
        return keys


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
