"""Correlation analyzer: learns per-factor weight adjustments from outcomes.

For every factor candidate (each registered model plus each lifestyle
signal) the outcome history is split by the factor's value on the outcome
date:

    high      value >= 70
    baseline  everything else (or all outcomes when nothing else exists)

    weight_delta = clamp((success_rate(high) - success_rate(baseline)) * sensitivity, +-0.5)
    confidence   = min(95, 50 + 5 * count(high))

Factors with fewer than three high samples are left out entirely. The
analysis is an on-demand batch; callers serialize it per user through the
personalization store lock.
"""

from __future__ import annotations

import logging
import statistics
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Optional, Sequence

from energy_today.config.settings import (
    HIGH_FACTOR_THRESHOLD,
    MIN_FACTOR_SAMPLES,
    CORRELATION_SENSITIVITY,
    MAX_WEIGHT_DELTA,
    FACTOR_CONFIDENCE_BASE,
    FACTOR_CONFIDENCE_STEP,
    CONFIDENCE_CAP,
    PREDICT_SUCCESS_AT,
    PREDICT_FAILURE_BELOW,
)
from energy_today.engine.history import OutcomeHistory, ReadingHistory, SignalHistory
from energy_today.engine.registry import REGISTRY, Model, compute_sub_scores
from energy_today.models.outcome import OutcomeRecord, OutcomeResult
from energy_today.models.personalization import (
    ActivityStat,
    AdjustmentFactor,
    PersonalizationProfile,
    ScoreBandStat,
)
from energy_today.models.profile import BirthProfile

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Lifestyle signals (raw value -> 0-100 factor value)
# ═══════════════════════════════════════════════════════════════════════════

def sleep_score(hours: float) -> int:
    if hours < 5:
        return 20
    if hours < 6:
        return 45
    if hours < 7:
        return 65
    if hours <= 9:
        return 90
    return 70  # oversleeping


def exercise_score(minutes: float) -> int:
    if minutes <= 0:
        return 30
    if minutes < 20:
        return 50
    if minutes < 45:
        return 75
    if minutes < 90:
        return 90
    return 80


LIFESTYLE_SIGNALS: dict[str, Callable[[float], int]] = {
    "sleep_hours": sleep_score,
    "exercise_minutes": exercise_score,
}

# (label, lower bound inclusive), checked top-down
SCORE_BANDS: tuple[tuple[str, float], ...] = (
    ("85-100", 85),
    ("70-84", 70),
    ("50-69", 50),
    ("0-49", 0),
)


# ═══════════════════════════════════════════════════════════════════════════
# Statistics helpers
# ═══════════════════════════════════════════════════════════════════════════

def success_rate(outcomes: Sequence[OutcomeRecord]) -> Optional[float]:
    if not outcomes:
        return None
    return sum(1 for o in outcomes if o.is_success) / len(outcomes)


def _pct(rate: Optional[float]) -> Optional[float]:
    return None if rate is None else round(rate * 100, 1)


def score_band(score: float) -> str:
    for label, lower in SCORE_BANDS:
        if score >= lower:
            return label
    return SCORE_BANDS[-1][0]


def score_band_stats(outcomes: Sequence[OutcomeRecord]) -> tuple[ScoreBandStat, ...]:
    buckets: dict[str, list[OutcomeRecord]] = {label: [] for label, _ in SCORE_BANDS}
    for o in outcomes:
        buckets[score_band(o.composite_score_at_logging)].append(o)
    return tuple(
        ScoreBandStat(band=label, count=len(items), success_rate=_pct(success_rate(items)))
        for label, items in buckets.items()
    )


def activity_stats(outcomes: Sequence[OutcomeRecord]) -> tuple[ActivityStat, ...]:
    grouped: OrderedDict[str, list[OutcomeRecord]] = OrderedDict()
    for o in outcomes:
        grouped.setdefault(o.activity_type, []).append(o)
    stats = [
        ActivityStat(
            activity_type=name,
            attempts=len(items),
            success_rate=_pct(success_rate(items)),
            average_score=round(statistics.mean(o.composite_score_at_logging for o in items), 1),
        )
        for name, items in grouped.items()
    ]
    stats.sort(key=lambda s: (-s.success_rate, -s.attempts, s.activity_type))
    return tuple(stats)


def advice_rates(outcomes: Sequence[OutcomeRecord]) -> tuple[Optional[float], Optional[float]]:
    followed = [o for o in outcomes if o.followed_advice]
    ignored = [o for o in outcomes if not o.followed_advice]
    return _pct(success_rate(followed)), _pct(success_rate(ignored))


def score_outcome_correlation(outcomes: Sequence[OutcomeRecord]) -> Optional[float]:
    """Pearson r between logged score and result (success 100 / neutral 50 / failure 0)."""
    if len(outcomes) < 2:
        return None
    try:
        r = statistics.correlation(
            [o.composite_score_at_logging for o in outcomes],
            [float(o.result_value) for o in outcomes],
        )
    except statistics.StatisticsError:
        return None  # one side is constant
    return round(r, 4)


def prediction_accuracy(
    outcomes: Sequence[OutcomeRecord],
    success_at: float = PREDICT_SUCCESS_AT,
    failure_below: float = PREDICT_FAILURE_BELOW,
) -> Optional[float]:
    """Share of correct calls among outcomes logged outside the neutral band."""
    predictions = correct = 0
    for o in outcomes:
        score = o.composite_score_at_logging
        if score >= success_at:
            predictions += 1
            correct += o.result is OutcomeResult.SUCCESS
        elif score < failure_below:
            predictions += 1
            correct += o.result is OutcomeResult.FAILURE
    if predictions == 0:
        return None
    return round(100.0 * correct / predictions, 1)


# ═══════════════════════════════════════════════════════════════════════════
# Analyzer
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class CorrelationAnalyzer:
    readings: ReadingHistory
    outcomes: OutcomeHistory
    signals: SignalHistory
    models: Sequence[Model] = REGISTRY
    lifestyle_signals: dict[str, Callable[[float], int]] = field(
        default_factory=lambda: dict(LIFESTYLE_SIGNALS)
    )
    high_threshold: float = HIGH_FACTOR_THRESHOLD
    min_samples: int = MIN_FACTOR_SAMPLES
    sensitivity: float = CORRELATION_SENSITIVITY
    max_delta: float = MAX_WEIGHT_DELTA
    confidence_base: float = FACTOR_CONFIDENCE_BASE
    confidence_step: float = FACTOR_CONFIDENCE_STEP
    confidence_cap: float = CONFIDENCE_CAP
    predict_success_at: float = PREDICT_SUCCESS_AT
    predict_failure_below: float = PREDICT_FAILURE_BELOW

    def recompute(
        self,
        profile: BirthProfile,
        prior: Optional[PersonalizationProfile] = None,
        now: Optional[datetime] = None,
    ) -> PersonalizationProfile:
        pid = profile.profile_id
        prior = prior or PersonalizationProfile.empty(pid)
        # version before the log, so an append racing this read looks newer
        version = self.outcomes.version(pid)
        outcomes = self.outcomes.all(pid)
        if not outcomes:
            logger.info("No outcomes for %s; keeping prior personalization", pid)
            return prior.with_outcome_count(0, version)

        computed_at = (now or datetime.now(timezone.utc)).isoformat()
        values = self.factor_values(profile, outcomes)

        factors = []
        for factor_id, by_date in values.items():
            factor = self.compute_factor(factor_id, outcomes, by_date, computed_at)
            if factor is not None:
                factors.append(factor)

        followed, ignored = advice_rates(outcomes)
        result = PersonalizationProfile(
            profile_id=pid,
            factors=tuple(factors),
            overall_accuracy=prediction_accuracy(
                outcomes, self.predict_success_at, self.predict_failure_below
            ),
            total_outcomes_considered=len(outcomes),
            last_computed=computed_at,
            score_bands=score_band_stats(outcomes),
            activity_stats=activity_stats(outcomes),
            followed_advice_rate=followed,
            ignored_advice_rate=ignored,
            score_outcome_correlation=score_outcome_correlation(outcomes),
            outcome_version=version,
        )
        logger.info(
            "Recomputed personalization for %s: %d outcomes, %d factors, accuracy=%s",
            pid, len(outcomes), len(factors), result.overall_accuracy,
        )
        return result

    # ── Factor values ────────────────────────────────────────────────────

    def factor_values(
        self, profile: BirthProfile, outcomes: Sequence[OutcomeRecord]
    ) -> OrderedDict[str, dict[date, float]]:
        """factor_id -> {outcome date -> 0-100 value}, models first then signals."""
        pid = profile.profile_id
        values: OrderedDict[str, dict[date, float]] = OrderedDict(
            (m.model_id.value, {}) for m in self.models
        )
        cached = {r.date: r for r in self.readings.all(pid)}

        for day in sorted({o.date for o in outcomes}):
            reading = cached.get(day)
            if reading is not None:
                sub_scores = {mid: m.sub_score for mid, m in reading.models.items()}
            else:
                # sub-scores do not depend on personalization, so a fresh
                # computation matches what was shown on that day
                sub_scores = compute_sub_scores(profile, day, models=self.models)
            for mid, sub in sub_scores.items():
                if mid in values:
                    values[mid][day] = float(sub)

        for signal_id, to_score in self.lifestyle_signals.items():
            raw = self.signals.values(pid, signal_id)
            values[signal_id] = {d: float(to_score(v)) for d, v in raw.items()}
        return values

    # ── Per-factor effect ────────────────────────────────────────────────

    def compute_factor(
        self,
        factor_id: str,
        outcomes: Sequence[OutcomeRecord],
        by_date: dict[date, float],
        computed_at: str = "",
    ) -> Optional[AdjustmentFactor]:
        observed = [o for o in outcomes if o.date in by_date]
        high = [o for o in observed if by_date[o.date] >= self.high_threshold]
        if len(high) < self.min_samples:
            return None
        rest = [o for o in observed if by_date[o.date] < self.high_threshold]
        baseline = rest or observed

        rate_high = success_rate(high)
        rate_base = success_rate(baseline)
        delta = (rate_high - rate_base) * self.sensitivity
        delta = max(-self.max_delta, min(self.max_delta, delta))
        return AdjustmentFactor(
            factor_id=factor_id,
            weight_delta=round(delta, 4),
            sample_size=len(high),
            confidence=self.factor_confidence(len(high)),
            last_computed=computed_at,
            success_rate_high=round(rate_high, 4),
            success_rate_baseline=round(rate_base, 4),
        )

    def factor_confidence(self, high_count: int) -> float:
        return float(min(self.confidence_cap, self.confidence_base + self.confidence_step * high_count))
