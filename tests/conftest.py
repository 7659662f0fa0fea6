"""Shared test fixtures for the energy engine test suite."""

import pytest
import fakeredis
from datetime import date, datetime, timedelta, timezone

from energy_today.engine.registry import Model, ModelId
from energy_today.engine.service import EnergyEngine
from energy_today.models.outcome import OutcomeRecord, OutcomeResult
from energy_today.models.profile import BirthPlace, BirthProfile
from energy_today.models.reading import DailyEnergyReading, ModelReading, alignment_for


# ── Redis ────────────────────────────────────────────────────────────────

@pytest.fixture
def r():
    """Fresh fakeredis instance per test (decode_responses=True like production)."""
    return fakeredis.FakeRedis(decode_responses=True)


# ── Time Freezing ───────────────────────────────────────────────────────

@pytest.fixture
def frozen_now():
    """Fixed 'now' for recompute-interval tests: 2026-02-15T12:00:00Z (a Sunday)."""
    return datetime(2026, 2, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def today():
    return date(2026, 2, 15)


# ── Profiles ────────────────────────────────────────────────────────────

@pytest.fixture
def profile():
    """Born 1990-06-15 (a Friday), no birth place."""
    return BirthProfile(profile_id="user-1", name="Sarah", birth_date=date(1990, 6, 15))


@pytest.fixture
def placed_profile():
    return BirthProfile(
        profile_id="user-2",
        name="Niran",
        birth_date=date(1985, 12, 3),
        birth_place=BirthPlace(latitude=13.7563, longitude=100.5018, label="Bangkok"),
    )


@pytest.fixture
def engine(r, profile, placed_profile):
    eng = EnergyEngine(r)
    eng.profiles.put(profile)
    eng.profiles.put(placed_profile)
    return eng


# ── Stub models ─────────────────────────────────────────────────────────

class FixedModel(Model):
    """Model stub returning a constant sub-score, or soft-skipping."""

    def __init__(self, model_id: ModelId, score: int = 80, label: str | None = None,
                 available: bool = True):
        self.model_id = model_id
        self.score = score
        self.label = label or f"{model_id.value}_fixed"
        self.available = available

    def compute(self, profile, day, environment=None):
        if not self.available:
            return None
        return self._reading(self.score, self.label)


@pytest.fixture
def fixed_model():
    return FixedModel


# ── Factories ───────────────────────────────────────────────────────────

@pytest.fixture
def make_reading():
    """Factory for DailyEnergyReading with a given composite score.

    Usage:
        reading = make_reading(date(2026, 2, 1), 82, confidence=70)
    """

    def _factory(day, score, confidence=70, sub_scores=None):
        models = {
            mid: ModelReading(model_id=mid, sub_score=sub, label=f"{mid}_label")
            for mid, sub in (sub_scores or {}).items()
        }
        return DailyEnergyReading(
            date=day,
            models=models,
            composite_score=score,
            confidence=confidence,
            alignment=alignment_for(score),
        )

    return _factory


@pytest.fixture
def make_series(make_reading):
    """Consecutive daily readings starting at `start` with the given scores."""

    def _factory(scores, start=date(2026, 2, 2), confidence=70):
        return [
            make_reading(start + timedelta(days=i), s, confidence=confidence)
            for i, s in enumerate(scores)
        ]

    return _factory


@pytest.fixture
def make_outcome():
    """Factory for stored OutcomeRecord instances with sensible defaults."""
    _counter = 0

    def _factory(**overrides):
        nonlocal _counter
        _counter += 1
        defaults = {
            "id": f"outcome-{_counter}",
            "date": date(2026, 2, 1) + timedelta(days=_counter),
            "activity_type": "deep_work",
            "composite_score_at_logging": 75.0,
            "result": OutcomeResult.SUCCESS,
            "followed_advice": True,
            "logged_at": (datetime(2026, 2, 1, 9, tzinfo=timezone.utc)
                          + timedelta(hours=_counter)).isoformat(),
        }
        defaults.update(overrides)
        if isinstance(defaults["result"], str):
            defaults["result"] = OutcomeResult(defaults["result"])
        return OutcomeRecord(**defaults)

    return _factory
