"""Birth profile and per-call environmental inputs.

A BirthProfile is created once during onboarding and persisted as a Redis
hash; the engine only ever reads it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from datetime import date, datetime
from typing import Optional

import redis

from energy_today.config.settings import MIN_SUPPORTED_DATE, MAX_SUPPORTED_DATE
from energy_today.errors import ValidationError

PROFILE_PREFIX = "profile:"
PROFILE_INDEX_KEY = "profile:index"

WEATHER_CONDITIONS = ("sunny", "cloudy", "rainy", "stormy", "snowy", "foggy")


def coerce_date(value, field: str = "date") -> date:
    """Parse an ISO date (or pass through a date) and check the supported range."""
    if value is None or value == "":
        raise ValidationError(f"{field} is required", field=field)
    if isinstance(value, datetime):
        value = value.date()
    elif isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            raise ValidationError(f"{field} is not a valid ISO date: {value!r}", field=field)
    elif not isinstance(value, date):
        raise ValidationError(f"{field} must be a date, got {type(value).__name__}", field=field)

    if not (MIN_SUPPORTED_DATE <= value <= MAX_SUPPORTED_DATE):
        raise ValidationError(
            f"{field} {value.isoformat()} is outside the supported range "
            f"{MIN_SUPPORTED_DATE.isoformat()}..{MAX_SUPPORTED_DATE.isoformat()}",
            field=field,
        )
    return value


@dataclass(frozen=True)
class BirthPlace:
    latitude: float
    longitude: float
    label: str = ""

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValidationError(f"latitude out of range: {self.latitude}", field="latitude")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValidationError(f"longitude out of range: {self.longitude}", field="longitude")


@dataclass(frozen=True)
class BirthProfile:
    profile_id: str
    name: str
    birth_date: date
    birth_place: Optional[BirthPlace] = None

    def to_dict(self) -> dict:
        return {
            "profile_id": self.profile_id,
            "name": self.name,
            "birth_date": self.birth_date.isoformat(),
            "birth_place": json.dumps(asdict(self.birth_place)) if self.birth_place else "",
        }

    @classmethod
    def from_dict(cls, data: dict) -> BirthProfile:
        place = data.get("birth_place")
        if isinstance(place, str):
            place = json.loads(place) if place else None
        if isinstance(place, dict):
            place = BirthPlace(**place)
        return cls(
            profile_id=data["profile_id"],
            name=data.get("name", ""),
            birth_date=coerce_date(data.get("birth_date"), field="birth_date"),
            birth_place=place,
        )

    def to_redis(self, r: redis.Redis) -> None:
        """Persist the profile as a Redis hash."""
        r.hset(f"{PROFILE_PREFIX}{self.profile_id}", mapping=self.to_dict())
        r.sadd(PROFILE_INDEX_KEY, self.profile_id)

    @classmethod
    def from_redis(cls, r: redis.Redis, profile_id: str) -> Optional[BirthProfile]:
        data = r.hgetall(f"{PROFILE_PREFIX}{profile_id}")
        if not data:
            return None
        return cls.from_dict(data)

    @classmethod
    def delete_from_redis(cls, r: redis.Redis, profile_id: str) -> None:
        r.delete(f"{PROFILE_PREFIX}{profile_id}")
        r.srem(PROFILE_INDEX_KEY, profile_id)


@dataclass(frozen=True)
class EnvironmentalInputs:
    """Optional per-call context. Any field may be missing."""

    condition: Optional[str] = None        # one of WEATHER_CONDITIONS
    temperature_c: Optional[float] = None
    humidity: Optional[float] = None       # percent
    pressure_hpa: Optional[float] = None
    calendar_events: Optional[int] = None  # events scheduled that day

    def __post_init__(self):
        if self.condition is not None and self.condition not in WEATHER_CONDITIONS:
            raise ValidationError(
                f"Unknown weather condition {self.condition!r}", field="condition"
            )
        if self.calendar_events is not None and self.calendar_events < 0:
            raise ValidationError("calendar_events must be >= 0", field="calendar_events")

    @property
    def has_weather(self) -> bool:
        return self.condition is not None

    @property
    def has_calendar(self) -> bool:
        return self.calendar_events is not None
