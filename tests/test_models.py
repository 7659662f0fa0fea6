"""Tests for the data model types and their serialization."""

import json
import random
import pytest
from datetime import date, datetime

from energy_today.errors import InsufficientDataError, ValidationError
from energy_today.models.outcome import OutcomeRecord, OutcomeResult
from energy_today.models.personalization import AdjustmentFactor, PersonalizationProfile
from energy_today.models.profile import (
    BirthPlace,
    BirthProfile,
    EnvironmentalInputs,
    coerce_date,
)
from energy_today.models.reading import (
    Alignment,
    DailyEnergyReading,
    ModelReading,
    alignment_for,
)


# ═══════════════════════════════════════════════════════════════════════════
# Alignment
# ═══════════════════════════════════════════════════════════════════════════


class TestAlignment:
    @pytest.mark.parametrize("score,expected", [
        (100, Alignment.STRONG),
        (70, Alignment.STRONG),
        (69.999, Alignment.MODERATE),
        (45, Alignment.MODERATE),
        (44.999, Alignment.CHALLENGING),
        (0, Alignment.CHALLENGING),
    ])
    def test_boundaries(self, score, expected):
        assert alignment_for(score) is expected

    def test_random_scores_partition_range(self):
        rng = random.Random(1234)
        for _ in range(10_000):
            score = rng.uniform(0, 100)
            bucket = alignment_for(score)
            hits = [score >= 70, 45 <= score < 70, score < 45]
            assert sum(hits) == 1
            expected = [Alignment.STRONG, Alignment.MODERATE, Alignment.CHALLENGING][hits.index(True)]
            assert bucket is expected

    def test_monotonic(self):
        order = {Alignment.CHALLENGING: 0, Alignment.MODERATE: 1, Alignment.STRONG: 2}
        ranks = [order[alignment_for(s)] for s in range(101)]
        assert ranks == sorted(ranks)


# ═══════════════════════════════════════════════════════════════════════════
# Profile
# ═══════════════════════════════════════════════════════════════════════════


class TestProfile:
    def test_redis_round_trip_with_place(self, r, placed_profile):
        placed_profile.to_redis(r)
        assert BirthProfile.from_redis(r, "user-2") == placed_profile

    def test_redis_round_trip_without_place(self, r, profile):
        profile.to_redis(r)
        loaded = BirthProfile.from_redis(r, "user-1")
        assert loaded.birth_place is None
        assert loaded.birth_date == date(1990, 6, 15)

    def test_missing_profile(self, r):
        assert BirthProfile.from_redis(r, "ghost") is None

    def test_delete(self, r, profile):
        profile.to_redis(r)
        BirthProfile.delete_from_redis(r, "user-1")
        assert BirthProfile.from_redis(r, "user-1") is None

    @pytest.mark.parametrize("lat,lon", [(91, 0), (-91, 0), (0, 181), (0, -181)])
    def test_birth_place_bounds(self, lat, lon):
        with pytest.raises(ValidationError):
            BirthPlace(latitude=lat, longitude=lon)

    def test_environment_rejects_unknown_condition(self):
        with pytest.raises(ValidationError):
            EnvironmentalInputs(condition="hail")

    def test_environment_rejects_negative_events(self):
        with pytest.raises(ValidationError):
            EnvironmentalInputs(calendar_events=-1)

    def test_coerce_date(self):
        assert coerce_date("2026-02-15") == date(2026, 2, 15)
        assert coerce_date("2026-02-15T08:30:00") == date(2026, 2, 15)
        assert coerce_date(datetime(2026, 2, 15, 8)) == date(2026, 2, 15)
        assert coerce_date(date(1900, 1, 1)) == date(1900, 1, 1)
        with pytest.raises(ValidationError):
            coerce_date(date(1899, 12, 31))
        with pytest.raises(ValidationError):
            coerce_date("2026-13-01")


# ═══════════════════════════════════════════════════════════════════════════
# Serialization
# ═══════════════════════════════════════════════════════════════════════════


class TestSerialization:
    def test_reading_json_round_trip(self):
        reading = DailyEnergyReading(
            date=date(2026, 2, 15),
            models={
                "lunar": ModelReading("lunar", 95, "full_moon", 1.25),
                "weekday": ModelReading("weekday", 70, "weekday_favorable"),
            },
            composite_score=84,
            confidence=70,
            alignment=Alignment.STRONG,
            best_for=["launches"],
            avoid=["quiet research"],
            dominant_model="lunar",
            skipped_models=["daylight"],
            personalized=True,
        )
        raw = reading.to_json()
        assert DailyEnergyReading.from_json(raw) == reading
        assert list(json.loads(raw)["models"]) == ["lunar", "weekday"]

    def test_outcome_round_trip(self, make_outcome):
        record = make_outcome(result="neutral", notes="tired")
        assert OutcomeRecord.from_json(record.to_json()) == record
        assert record.result is OutcomeResult.NEUTRAL
        assert record.result_value == 50

    def test_personalization_round_trip(self):
        profile = PersonalizationProfile(
            profile_id="user-1",
            factors=(AdjustmentFactor("lunar", 0.25, 4, 70.0, "2026-02-15T12:00:00+00:00", 0.75, 0.5),),
            overall_accuracy=66.7,
            total_outcomes_considered=6,
            last_computed="2026-02-15T12:00:00+00:00",
        )
        assert PersonalizationProfile.from_json(profile.to_json()) == profile
        assert profile.to_dict()["status"] == "ok"
        assert profile.computed_at.year == 2026


# ═══════════════════════════════════════════════════════════════════════════
# Insufficient data
# ═══════════════════════════════════════════════════════════════════════════


class TestInsufficientData:
    def test_fewer_than_three_outcomes(self):
        profile = PersonalizationProfile(profile_id="user-1", total_outcomes_considered=2)
        assert not profile.has_sufficient_data
        assert profile.to_dict()["status"] == "insufficient_data"
        with pytest.raises(InsufficientDataError) as exc:
            profile.require_sufficient_data()
        assert exc.value.considered == 2
        assert exc.value.required == 3

    def test_three_outcomes_is_enough(self):
        profile = PersonalizationProfile(profile_id="user-1", total_outcomes_considered=3)
        profile.require_sufficient_data()

    def test_factor_direction(self):
        assert AdjustmentFactor("lunar", 0.1, 3, 65.0).direction == "boosts"
        assert AdjustmentFactor("lunar", -0.1, 3, 65.0).direction == "drains"
        assert AdjustmentFactor("lunar", 0.0, 3, 65.0).direction == "neutral"
