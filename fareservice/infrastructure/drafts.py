"""
Redis-backed booking draft store.

The draft for a booking wizard lives under ``draft:{id}`` as JSON with a
sliding TTL: every save pushes the expiry out again, so an abandoned
wizard disappears on its own.
"""

from __future__ import annotations

import json
import uuid

import redis.asyncio as aioredis

from fareservice.domain.entities import BookingDraft
from fareservice.domain.exceptions import DraftNotFoundError


class DraftStore:
    def __init__(self, client: aioredis.Redis, ttl_seconds: int = 24 * 3600):
        self.redis = client
        self.ttl = ttl_seconds

    @staticmethod
    def _key(draft_id: str) -> str:
        return f"draft:{draft_id}"

    async def create(self) -> tuple[str, BookingDraft]:
        draft_id = uuid.uuid4().hex
        draft = BookingDraft()
        await self.save(draft_id, draft)
        return draft_id, draft

    async def get(self, draft_id: str) -> BookingDraft:
        raw = await self.redis.get(self._key(draft_id))
        if raw is None:
            raise DraftNotFoundError(f"Draft {draft_id} not found")
        return BookingDraft.from_dict(json.loads(raw))

    async def save(self, draft_id: str, draft: BookingDraft) -> None:
        await self.redis.set(
            self._key(draft_id), json.dumps(draft.to_dict()), ex=self.ttl
        )

    async def delete(self, draft_id: str) -> None:
        await self.redis.delete(self._key(draft_id))
