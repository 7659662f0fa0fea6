"""Trend aggregation over 7- or 30-day windows of readings, plus forecasts.

Insights come from a fixed set of independent rules over aggregate
statistics. Every rule that applies fires; each emits one fixed template
filled with the computed numbers.
"""

from __future__ import annotations

import logging
import statistics
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from energy_today.config.settings import (
    TREND_WINDOWS,
    TREND_SHIFT_THRESHOLD,
    STRONG_DAY_SHARE,
    CHALLENGING_DAY_SHARE,
    LOW_CONFIDENCE_THRESHOLD,
    MAX_FORECAST_DAYS,
    STRONG_THRESHOLD,
    MODERATE_THRESHOLD,
)
from energy_today.engine.scorer import CompositeScorer
from energy_today.errors import ValidationError
from energy_today.models.personalization import PersonalizationProfile
from energy_today.models.profile import BirthProfile, coerce_date
from energy_today.models.reading import Alignment, DailyEnergyReading, TrendSummary

logger = logging.getLogger(__name__)


def validate_window(window: int) -> int:
    if isinstance(window, bool) or window not in TREND_WINDOWS:
        raise ValidationError(
            f"window must be one of {TREND_WINDOWS}, got {window!r}", field="window"
        )
    return window


def validate_forecast_days(days: int) -> int:
    if isinstance(days, bool) or not isinstance(days, int) or not 1 <= days <= MAX_FORECAST_DAYS:
        raise ValidationError(
            f"days must be between 1 and {MAX_FORECAST_DAYS}, got {days!r}", field="days"
        )
    return days


@dataclass
class TrendAggregator:
    shift_threshold: float = TREND_SHIFT_THRESHOLD
    strong_share: float = STRONG_DAY_SHARE
    challenging_share: float = CHALLENGING_DAY_SHARE
    low_confidence: float = LOW_CONFIDENCE_THRESHOLD
    strong_at: float = STRONG_THRESHOLD
    moderate_at: float = MODERATE_THRESHOLD

    def aggregate(self, readings: Iterable[DailyEnergyReading], window: int) -> TrendSummary:
        validate_window(window)

        # one reading per date, latest wins, chronological
        by_date: dict[date, DailyEnergyReading] = {}
        for reading in readings:
            by_date[reading.date] = reading
        series = [by_date[d] for d in sorted(by_date)][-window:]

        summary = TrendSummary(window=window, days=len(series), incomplete=len(series) < window)
        if not series:
            return summary

        scores = [r.composite_score for r in series]
        summary.average_composite = round(statistics.mean(scores), 1)
        summary.average_confidence = round(statistics.mean(r.confidence for r in series), 1)

        best = worst = series[0]
        for r in series[1:]:
            if r.composite_score > best.composite_score:
                best = r
            if r.composite_score < worst.composite_score:
                worst = r
        summary.best_day, summary.best_score = best.date, best.composite_score
        summary.worst_day, summary.worst_score = worst.date, worst.composite_score

        summary.strong_days = sum(1 for r in series if r.alignment is Alignment.STRONG)
        summary.challenging_days = sum(1 for r in series if r.alignment is Alignment.CHALLENGING)

        summary.insights = self._insights(series, summary)
        return summary

    # ── Insight rules ────────────────────────────────────────────────────

    def _insights(self, series: list[DailyEnergyReading], summary: TrendSummary) -> list[str]:
        insights: list[str] = []
        n = len(series)
        avg = summary.average_composite

        if avg >= self.strong_at:
            insights.append(
                f"Strong stretch: your energy averaged {avg:.0f} over the last {n} days."
            )
        elif avg < self.moderate_at:
            insights.append(
                f"Challenging stretch: your energy averaged {avg:.0f} over the last {n} days. Pace yourself."
            )
        else:
            insights.append(
                f"Balanced stretch: your energy averaged {avg:.0f} over the last {n} days. Good for steady progress."
            )

        if n >= 2:
            half = n // 2
            first = statistics.mean(r.composite_score for r in series[:half])
            second = statistics.mean(r.composite_score for r in series[half:])
            if second - first >= self.shift_threshold:
                insights.append(
                    f"Rising energy: your recent average ({second:.0f}) is "
                    f"{second - first:.0f} points above the earlier days ({first:.0f})."
                )
            if first - second >= self.shift_threshold:
                insights.append(
                    f"Falling energy: your recent average ({second:.0f}) is "
                    f"{first - second:.0f} points below the earlier days ({first:.0f})."
                )

        if summary.strong_days / n >= self.strong_share:
            insights.append(
                f"{summary.strong_days} of {n} days were strong (70+). Use them for your biggest moves."
            )
        if summary.challenging_days / n >= self.challenging_share:
            insights.append(
                f"{summary.challenging_days} of {n} days were challenging (below 45). Protect time for recovery."
            )

        best_weekday = self._best_weekday(series)
        if best_weekday is not None:
            name, weekday_avg = best_weekday
            insights.append(f"{name}s are your strongest day, averaging {weekday_avg:.0f}.")

        if summary.average_confidence < self.low_confidence:
            insights.append(
                f"Readings this period had low confidence ({summary.average_confidence:.0f}). "
                "Add a birth place or daily context for sharper scores."
            )
        return insights

    def _best_weekday(self, series: list[DailyEnergyReading]) -> Optional[tuple[str, float]]:
        buckets: OrderedDict[str, list[int]] = OrderedDict()
        for r in series:
            buckets.setdefault(r.weekday, []).append(r.composite_score)
        if len(buckets) < 2:
            return None
        best_name, best_avg = None, None
        for name, scores in buckets.items():
            avg = statistics.mean(scores)
            if best_avg is None or avg > best_avg:
                best_name, best_avg = name, avg
        return best_name, best_avg


# ═══════════════════════════════════════════════════════════════════════════
# Forecast
# ═══════════════════════════════════════════════════════════════════════════

def forecast(
    scorer: CompositeScorer,
    profile: BirthProfile,
    start: date | str,
    days: int,
    personalization: Optional[PersonalizationProfile] = None,
) -> list[DailyEnergyReading]:
    """Score consecutive future days with one personalization snapshot."""
    validate_forecast_days(days)
    start = coerce_date(start, field="start")
    readings = [
        scorer.score(profile, start + timedelta(days=offset), personalization=personalization)
        for offset in range(days)
    ]
    logger.debug("Forecast %d days for %s from %s", days, profile.profile_id, start)
    return readings
