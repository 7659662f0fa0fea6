"""Personalization store: one PersonalizationProfile per user in Redis.

Writes are whole-value replaces. Recomputations for the same user are
serialized by a per-user lock (SET NX EX with an owner token, released
only by its owner).
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator
from uuid import uuid4

import redis

from energy_today.config.settings import (
    REDIS_URL,
    PERSONALIZATION_LOCK_TTL,
    PERSONALIZATION_LOCK_WAIT,
)
from energy_today.errors import PersonalizationBusyError, ValidationError
from energy_today.models.personalization import PersonalizationProfile

logger = logging.getLogger(__name__)

PERSONALIZATION_PREFIX = "personalization:"
LOCK_PREFIX = "lock:personalization:"


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


class PersonalizationStore:
    def __init__(
        self,
        r: redis.Redis | None = None,
        lock_ttl: int = PERSONALIZATION_LOCK_TTL,
        lock_wait: float = PERSONALIZATION_LOCK_WAIT,
        poll_interval: float = 0.05,
    ):
        self.r = r or _get_redis()
        self.lock_ttl = lock_ttl
        self.lock_wait = lock_wait
        self.poll_interval = poll_interval

    def get(self, profile_id: str) -> PersonalizationProfile:
        """Stored profile, or an empty one when nothing has been computed yet."""
        raw = self.r.get(f"{PERSONALIZATION_PREFIX}{profile_id}")
        if not raw:
            return PersonalizationProfile.empty(profile_id)
        return PersonalizationProfile.from_json(raw)

    def apply(self, profile_id: str, profile: PersonalizationProfile) -> None:
        """Replace the stored profile wholesale."""
        if profile.profile_id != profile_id:
            raise ValidationError(
                f"profile id mismatch: {profile.profile_id!r} != {profile_id!r}",
                field="profile_id",
            )
        self.r.set(f"{PERSONALIZATION_PREFIX}{profile_id}", profile.to_json())
        logger.info(
            "Applied personalization for %s: %d factors, %d outcomes",
            profile_id, len(profile.factors), profile.total_outcomes_considered,
        )

    def clear(self, profile_id: str) -> None:
        self.r.delete(f"{PERSONALIZATION_PREFIX}{profile_id}")

    # ── Single-writer lock ───────────────────────────────────────────────

    @contextmanager
    def lock(self, profile_id: str) -> Iterator[str]:
        key = f"{LOCK_PREFIX}{profile_id}"
        token = uuid4().hex
        started = time.monotonic()
        while not self.r.set(key, token, nx=True, ex=self.lock_ttl):
            waited = time.monotonic() - started
            if waited >= self.lock_wait:
                logger.warning("Personalization lock busy for %s after %.1fs", profile_id, waited)
                raise PersonalizationBusyError(profile_id, waited)
            time.sleep(self.poll_interval)
        try:
            yield token
        finally:
            self._release(key, token)

    def is_locked(self, profile_id: str) -> bool:
        return bool(self.r.exists(f"{LOCK_PREFIX}{profile_id}"))

    def _release(self, key: str, token: str) -> None:
        with self.r.pipeline() as pipe:
            try:
                pipe.watch(key)
                if pipe.get(key) != token:
                    # expired and taken over by another writer
                    pipe.unwatch()
                    logger.warning("Lock %s no longer held by this writer", key)
                    return
                pipe.multi()
                pipe.delete(key)
                pipe.execute()
            except redis.WatchError:
                logger.warning("Lock %s changed during release", key)
