"""EnergyEngine: the in-process boundary UI screens and the HTTP layer call.

Wires the Redis repositories, scorer, trend aggregator, outcome recorder,
correlation analyzer and personalization store together.
"""

from __future__ import annotations

import logging
from dataclasses import fields
from datetime import date, datetime, timedelta, timezone
from numbers import Real
from typing import Optional, Union

import redis

from energy_today.config.settings import REDIS_URL, PERSONALIZATION_RECOMPUTE_INTERVAL
from energy_today.engine.correlation import LIFESTYLE_SIGNALS, CorrelationAnalyzer
from energy_today.engine.history import (
    OutcomeHistory,
    ProfileRepository,
    ReadingHistory,
    SignalHistory,
)
from energy_today.engine.personalization_store import PersonalizationStore
from energy_today.engine.recorder import OutcomeRecorder
from energy_today.engine.scorer import CompositeScorer
from energy_today.engine.trends import TrendAggregator, forecast, validate_window
from energy_today.errors import ProfileNotFoundError, ValidationError
from energy_today.models.outcome import OutcomeRecord, OutcomeRecordInput
from energy_today.models.personalization import PersonalizationProfile
from energy_today.models.profile import BirthProfile, EnvironmentalInputs, coerce_date
from energy_today.models.reading import DailyEnergyReading, TrendSummary

logger = logging.getLogger(__name__)

ProfileRef = Union[BirthProfile, str]

_OUTCOME_INPUT_FIELDS = {f.name for f in fields(OutcomeRecordInput)}


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


class EnergyEngine:
    def __init__(
        self,
        r: redis.Redis | None = None,
        scorer: Optional[CompositeScorer] = None,
        aggregator: Optional[TrendAggregator] = None,
        recompute_interval: int = PERSONALIZATION_RECOMPUTE_INTERVAL,
    ):
        r = r or _get_redis()
        self.profiles = ProfileRepository(r)
        self.readings = ReadingHistory(r)
        self.outcomes = OutcomeHistory(r)
        self.signals = SignalHistory(r)
        self.store = PersonalizationStore(r)
        self.scorer = scorer or CompositeScorer()
        self.aggregator = aggregator or TrendAggregator()
        self.recorder = OutcomeRecorder(self.outcomes)
        self.analyzer = CorrelationAnalyzer(
            self.readings, self.outcomes, self.signals, models=self.scorer.models
        )
        self.recompute_interval = recompute_interval

    def resolve(self, profile: ProfileRef) -> BirthProfile:
        if isinstance(profile, BirthProfile):
            return profile
        found = self.profiles.get(profile)
        if found is None:
            raise ProfileNotFoundError(profile)
        return found

    # ═══════════════════════════════════════════════════════════════════════
    # Readings, trends, forecasts
    # ═══════════════════════════════════════════════════════════════════════

    def get_reading(
        self,
        profile: ProfileRef,
        day: date | str | None = None,
        environment: Optional[EnvironmentalInputs] = None,
    ) -> DailyEnergyReading:
        profile = self.resolve(profile)
        day = coerce_date(day or date.today())
        personalization = self.store.get(profile.profile_id)
        reading = self.scorer.score(profile, day, environment, personalization)
        self.readings.append(profile.profile_id, reading)
        return reading

    def get_trend(
        self, profile: ProfileRef, window: int = 7, end: date | str | None = None
    ) -> TrendSummary:
        """Summarize the window ending on `end` (today by default).

        Cached readings are used as-is; days never viewed are scored with
        the current personalization. Days before birth are left out.
        """
        validate_window(window)
        profile = self.resolve(profile)
        end = coerce_date(end or date.today(), field="end")
        start = end - timedelta(days=window - 1)
        cached = {
            r.date: r for r in self.readings.all(profile.profile_id)
            if start <= r.date <= end
        }
        personalization = self.store.get(profile.profile_id)

        series = []
        for offset in range(window):
            day = start + timedelta(days=offset)
            if day in cached:
                series.append(cached[day])
            elif day >= profile.birth_date:
                series.append(self.scorer.score(profile, day, personalization=personalization))
        return self.aggregator.aggregate(series, window)

    def get_forecast(
        self, profile: ProfileRef, days: int = 7, start: date | str | None = None
    ) -> list[DailyEnergyReading]:
        profile = self.resolve(profile)
        start = start or date.today() + timedelta(days=1)
        personalization = self.store.get(profile.profile_id)
        return forecast(self.scorer, profile, start, days, personalization)

    def get_forecast_trend(
        self, profile: ProfileRef, window: int = 7, start: date | str | None = None
    ) -> TrendSummary:
        validate_window(window)
        return self.aggregator.aggregate(self.get_forecast(profile, window, start), window)

    # ═══════════════════════════════════════════════════════════════════════
    # Outcomes and signals
    # ═══════════════════════════════════════════════════════════════════════

    def record_outcome(
        self, profile: ProfileRef, payload: OutcomeRecordInput | dict
    ) -> OutcomeRecord:
        profile = self.resolve(profile)
        if isinstance(payload, dict):
            missing = {"date", "activity_type", "composite_score_at_logging", "result"} - payload.keys()
            if missing:
                raise ValidationError(
                    f"missing fields: {', '.join(sorted(missing))}", field=sorted(missing)[0]
                )
            payload = OutcomeRecordInput(
                **{k: v for k, v in payload.items() if k in _OUTCOME_INPUT_FIELDS}
            )
        return self.recorder.record(profile.profile_id, payload)

    def delete_outcome(self, profile: ProfileRef, outcome_id: str) -> bool:
        profile = self.resolve(profile)
        return self.recorder.delete(profile.profile_id, outcome_id)

    def list_outcomes(self, profile: ProfileRef) -> list[OutcomeRecord]:
        profile = self.resolve(profile)
        return self.outcomes.all(profile.profile_id)

    def record_signal(
        self, profile: ProfileRef, factor_id: str, day: date | str, value: float
    ) -> None:
        profile = self.resolve(profile)
        if factor_id not in LIFESTYLE_SIGNALS:
            raise ValidationError(
                f"unknown signal {factor_id!r}; expected one of {sorted(LIFESTYLE_SIGNALS)}",
                field="factor_id",
            )
        if isinstance(value, bool) or not isinstance(value, Real) or value < 0:
            raise ValidationError(f"signal value must be a number >= 0, got {value!r}", field="value")
        day = coerce_date(day)
        self.signals.record(profile.profile_id, factor_id, day, float(value))

    # ═══════════════════════════════════════════════════════════════════════
    # Personalization
    # ═══════════════════════════════════════════════════════════════════════

    def get_personalization(self, profile: ProfileRef) -> PersonalizationProfile:
        profile = self.resolve(profile)
        return self.store.get(profile.profile_id)

    def refresh_personalization(
        self,
        profile: ProfileRef,
        force: bool = False,
        now: Optional[datetime] = None,
    ) -> PersonalizationProfile:
        """Recompute from outcome history.

        Skipped when the stored profile is younger than the recompute interval
        and the outcome log has not changed since it was computed, unless forced.
        """
        profile = self.resolve(profile)
        pid = profile.profile_id
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        current = self.store.get(pid)
        if not force and current.computed_at is not None:
            age = (now - current.computed_at).total_seconds()
            unchanged = current.outcome_version == self.outcomes.version(pid)
            if unchanged and age < self.recompute_interval:
                logger.debug("Personalization for %s is %.0fs old; skipping recompute", pid, age)
                return current

        with self.store.lock(pid):
            prior = self.store.get(pid)
            updated = self.analyzer.recompute(profile, prior, now)
            if updated != prior:
                self.store.apply(pid, updated)
        return updated
