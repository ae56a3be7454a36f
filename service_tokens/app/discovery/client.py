"""
Client for the token key discovery endpoints.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

import httpx

from shared.errors import UnknownSigningKeyError, ValidationError
from shared.logging import get_logger
from ..tokens import SigningKey, Token, decode
from .documents import signing_key_from_document


class SigningKeysClient:
    """Fetches and caches the signing keys published by a token service."""

    def __init__(
        self,
        base_url: str,
        cache_ttl: int = 300,
        http_timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.cache_ttl = cache_ttl
        self.logger = get_logger("tokens.discovery")

        self._keys: Optional[List[SigningKey]] = None
        self._last_refresh: float = 0.0
        self._lock = asyncio.Lock()
        self._client = client or httpx.AsyncClient(timeout=http_timeout)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _get_json(self, path: str) -> Dict[str, Any]:
        response = await self._client.get(
            f"{self.base_url}{path}",
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()
        return response.json()

    async def get_signing_key(self) -> SigningKey:
        """Fetch the active signing key."""
        document = await self._get_json("/token_key")
        return signing_key_from_document(document)

    async def get_signing_keys(self, force: bool = False) -> List[SigningKey]:
        """Fetch all published signing keys, served from cache while fresh."""
        if not force and self._is_fresh():
            return list(self._keys)

        async with self._lock:
            if not force and self._is_fresh():
                return list(self._keys)

            payload = await self._get_json("/token_keys")
            documents = payload.get("keys")
            if not isinstance(documents, list):
                raise ValidationError("Token keys response missing 'keys' array")

            self._keys = [signing_key_from_document(document) for document in documents]
            self._last_refresh = time.time()

            self.logger.info(
                "Signing keys refreshed",
                keys_count=len(self._keys),
                key_ids=[key.key_id for key in self._keys],
            )
            return list(self._keys)

    async def verify(self, token_string: str) -> Token:
        """Decode and verify a token against the published keys.

        An unknown kid triggers a single forced refresh in case keys were
        rotated since the last fetch.
        """
        token = decode(token_string)
        try:
            token.verify(await self.get_signing_keys())
        except UnknownSigningKeyError:
            token.verify(await self.get_signing_keys(force=True))
        return token

    def clear_cache(self) -> None:
        """Drop cached keys."""
        self._keys = None
        self._last_refresh = 0.0

    def _is_fresh(self) -> bool:
        return self._keys is not None and (time.time() - self._last_refresh) < self.cache_ttl
