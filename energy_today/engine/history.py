"""Redis-backed history repositories.

Key layout:
    profile:{pid}                 hash   birth profile fields
    readings:{pid}                hash   ISO date -> reading JSON
    outcome:{pid}                 hash   outcome id -> outcome JSON
    outcomes:{pid}                zset   outcome id scored by append sequence
    outcomes:{pid}:seq            int    change counter (bumped on append and delete)
    signals:{pid}:{factor}        hash   ISO date -> raw value
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Optional

import redis

from energy_today.config.settings import REDIS_URL
from energy_today.models.outcome import OutcomeRecord
from energy_today.models.profile import BirthProfile
from energy_today.models.reading import DailyEnergyReading

logger = logging.getLogger(__name__)

READINGS_PREFIX = "readings:"
OUTCOME_PREFIX = "outcome:"
OUTCOME_INDEX_PREFIX = "outcomes:"
SIGNAL_PREFIX = "signals:"


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


class ProfileRepository:
    def __init__(self, r: redis.Redis | None = None):
        self.r = r or _get_redis()

    def get(self, profile_id: str) -> Optional[BirthProfile]:
        return BirthProfile.from_redis(self.r, profile_id)

    def put(self, profile: BirthProfile) -> None:
        profile.to_redis(self.r)
        logger.info("Stored profile %s", profile.profile_id)

    def delete(self, profile_id: str) -> None:
        BirthProfile.delete_from_redis(self.r, profile_id)


class ReadingHistory:
    """Cached readings, one per profile per date (upsert)."""

    def __init__(self, r: redis.Redis | None = None):
        self.r = r or _get_redis()

    def _key(self, profile_id: str) -> str:
        return f"{READINGS_PREFIX}{profile_id}"

    def append(self, profile_id: str, reading: DailyEnergyReading) -> None:
        self.r.hset(self._key(profile_id), reading.date.isoformat(), reading.to_json())

    def get(self, profile_id: str, day: date) -> Optional[DailyEnergyReading]:
        raw = self.r.hget(self._key(profile_id), day.isoformat())
        return DailyEnergyReading.from_json(raw) if raw else None

    def all(self, profile_id: str) -> list[DailyEnergyReading]:
        raw = self.r.hgetall(self._key(profile_id))
        return [DailyEnergyReading.from_json(raw[k]) for k in sorted(raw)]

    def delete(self, profile_id: str, day: date) -> bool:
        return bool(self.r.hdel(self._key(profile_id), day.isoformat()))

    def clear(self, profile_id: str) -> None:
        self.r.delete(self._key(profile_id))


class OutcomeHistory:
    """Append-only (plus delete) outcome log, read back in logging order."""

    def __init__(self, r: redis.Redis | None = None):
        self.r = r or _get_redis()

    def _key(self, profile_id: str) -> str:
        return f"{OUTCOME_PREFIX}{profile_id}"

    def _index(self, profile_id: str) -> str:
        return f"{OUTCOME_INDEX_PREFIX}{profile_id}"

    def append(self, profile_id: str, record: OutcomeRecord) -> None:
        seq = self.r.incr(f"{self._index(profile_id)}:seq")
        pipe = self.r.pipeline()
        pipe.hset(self._key(profile_id), record.id, record.to_json())
        pipe.zadd(self._index(profile_id), {record.id: seq})
        pipe.execute()

    def get(self, profile_id: str, outcome_id: str) -> Optional[OutcomeRecord]:
        raw = self.r.hget(self._key(profile_id), outcome_id)
        return OutcomeRecord.from_json(raw) if raw else None

    def all(self, profile_id: str) -> list[OutcomeRecord]:
        ids = self.r.zrange(self._index(profile_id), 0, -1)
        if not ids:
            return []
        payloads = self.r.hmget(self._key(profile_id), ids)
        return [OutcomeRecord.from_json(p) for p in payloads if p]

    def count(self, profile_id: str) -> int:
        return self.r.zcard(self._index(profile_id))

    def version(self, profile_id: str) -> int:
        """Monotonic counter that moves whenever the outcome log changes."""
        return int(self.r.get(f"{self._index(profile_id)}:seq") or 0)

    def delete(self, profile_id: str, outcome_id: str) -> bool:
        pipe = self.r.pipeline()
        pipe.hdel(self._key(profile_id), outcome_id)
        pipe.zrem(self._index(profile_id), outcome_id)
        removed, _ = pipe.execute()
        if removed:
            self.r.incr(f"{self._index(profile_id)}:seq")
        return bool(removed)


class SignalHistory:
    """Raw lifestyle signal values (e.g. hours slept) by date."""

    def __init__(self, r: redis.Redis | None = None):
        self.r = r or _get_redis()

    def _key(self, profile_id: str, factor_id: str) -> str:
        return f"{SIGNAL_PREFIX}{profile_id}:{factor_id}"

    def record(self, profile_id: str, factor_id: str, day: date, value: float) -> None:
        self.r.hset(self._key(profile_id, factor_id), day.isoformat(), json.dumps(value))

    def values(self, profile_id: str, factor_id: str) -> dict[date, float]:
        raw = self.r.hgetall(self._key(profile_id, factor_id))
        return {date.fromisoformat(k): float(json.loads(v)) for k, v in raw.items()}
