"""Seed Redis with a demo profile, two weeks of readings and logged outcomes.

Run: python -m energy_today.scripts.seed_demo
"""

import logging
from datetime import date, timedelta

import redis

from energy_today.config.settings import REDIS_URL
from energy_today.engine.history import (
    OUTCOME_INDEX_PREFIX,
    OUTCOME_PREFIX,
    READINGS_PREFIX,
    SIGNAL_PREFIX,
)
from energy_today.engine.personalization_store import PERSONALIZATION_PREFIX
from energy_today.engine.service import EnergyEngine
from energy_today.models.profile import BirthPlace, BirthProfile

DEMO_PROFILE_ID = "demo-user"

# (days ago, activity, result, followed advice)
DEMO_OUTCOMES = [
    (13, "client_pitch", "success", True),
    (12, "workout", "success", True),
    (11, "deep_work", "neutral", False),
    (10, "negotiation", "failure", False),
    (9, "client_pitch", "success", True),
    (8, "workout", "failure", False),
    (7, "deep_work", "success", True),
    (6, "networking", "success", True),
    (5, "negotiation", "neutral", True),
    (4, "deep_work", "success", False),
    (3, "workout", "success", True),
    (2, "client_pitch", "failure", False),
    (1, "networking", "success", True),
]

# (days ago, hours slept)
DEMO_SLEEP = [(d, 7.5 if d % 3 else 5.5) for d in range(1, 14)]


def clear_demo(r: redis.Redis, profile_id: str = DEMO_PROFILE_ID) -> None:
    """Remove every key belonging to the demo profile."""
    r.delete(
        f"{READINGS_PREFIX}{profile_id}",
        f"{OUTCOME_PREFIX}{profile_id}",
        f"{OUTCOME_INDEX_PREFIX}{profile_id}",
        f"{OUTCOME_INDEX_PREFIX}{profile_id}:seq",
        f"{PERSONALIZATION_PREFIX}{profile_id}",
    )
    for key in r.scan_iter(f"{SIGNAL_PREFIX}{profile_id}:*"):
        r.delete(key)
    BirthProfile.delete_from_redis(r, profile_id)


def seed(r: redis.Redis | None = None, today: date | None = None) -> EnergyEngine:
    r = r or redis.Redis.from_url(REDIS_URL, decode_responses=True)
    today = today or date.today()
    clear_demo(r)

    engine = EnergyEngine(r)
    profile = BirthProfile(
        profile_id=DEMO_PROFILE_ID,
        name="Sarah",
        birth_date=date(1990, 6, 15),
        birth_place=BirthPlace(latitude=13.7563, longitude=100.5018, label="Bangkok"),
    )
    engine.profiles.put(profile)

    for days_ago in range(14, -1, -1):
        engine.get_reading(profile, today - timedelta(days=days_ago))

    for days_ago, hours in DEMO_SLEEP:
        engine.record_signal(profile, "sleep_hours", today - timedelta(days=days_ago), hours)

    for days_ago, activity, result, followed in DEMO_OUTCOMES:
        day = today - timedelta(days=days_ago)
        reading = engine.readings.get(profile.profile_id, day)
        engine.record_outcome(profile, {
            "date": day,
            "activity_type": activity,
            "composite_score_at_logging": reading.composite_score,
            "result": result,
            "followed_advice": followed,
        })

    personalization = engine.refresh_personalization(profile, force=True)

    print(f"Seeded profile {profile.profile_id} ({profile.name}, born {profile.birth_date})")
    print(f"  readings: {len(engine.readings.all(profile.profile_id))}")
    print(f"  outcomes: {personalization.total_outcomes_considered}")
    print(f"  accuracy: {personalization.overall_accuracy}")
    print("\nFactors:")
    for f in personalization.factors:
        print(f"  {f.factor_id:<16} delta={f.weight_delta:+.3f} n={f.sample_size} conf={f.confidence:.0f}")
    return engine


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    seed()
