"""Redis implementation of the document store."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from redis.exceptions import RedisError

from ...ports.document_store import IDocumentStore, StoredDocument
from ...primitives.exceptions import StoreUnavailableError

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger("plansync.redis_store")


class RedisDocumentStore(IDocumentStore):
    """
    Redis implementation of IDocumentStore.

    Each vertical lives under one key holding the JSON-encoded document,
    timestamp map and ``updated_at`` together, so a single ``SET`` replaces
    all three atomically.
    """

    def __init__(self, redis_client: Redis[bytes], *, key_prefix: str = "plansync") -> None:
        self._redis = redis_client
        self._key_prefix = key_prefix

    def _key(self, vertical: str) -> str:
        return f"{self._key_prefix}:vertical:{vertical}"

    async def load(self, vertical: str) -> StoredDocument | None:
        key = self._key(vertical)
        try:
            raw = await self._redis.get(key)
        except RedisError as exc:
            logger.warning("Redis get failed for key %s: %s", key, exc)
            raise StoreUnavailableError(vertical, "load", str(exc)) from exc

        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError as exc:
            logger.error("Corrupt document under key %s: %s", key, exc)
            raise StoreUnavailableError(vertical, "load", "corrupt document") from exc
        if not isinstance(data, dict):
            raise StoreUnavailableError(vertical, "load", "corrupt document")
        return StoredDocument.from_dict(data)

    async def store(
        self,
        vertical: str,
        document: dict[str, Any],
        field_timestamps: dict[str, int],
        *,
        updated_at: int | None = None,
    ) -> None:
        key = self._key(vertical)
        payload = json.dumps(
            StoredDocument(
                document=document,
                field_timestamps=field_timestamps,
                updated_at=updated_at,
            ).to_dict()
        )
        try:
            await self._redis.set(key, payload)
        except RedisError as exc:
            logger.warning("Redis set failed for key %s: %s", key, exc)
            raise StoreUnavailableError(vertical, "store", str(exc)) from exc

    async def health_check(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError as exc:
            logger.warning("Redis ping failed: %s", exc)
            return False
