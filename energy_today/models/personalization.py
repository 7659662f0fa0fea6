"""Per-user personalization state derived from outcome correlation.

Written only by the correlation analyzer (through the personalization
store), read by the composite scorer.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime, timezone
from typing import Optional

from energy_today.config.settings import MIN_FACTOR_SAMPLES, MIN_OUTCOMES_FOR_INSIGHTS
from energy_today.errors import InsufficientDataError


@dataclass(frozen=True)
class AdjustmentFactor:
    factor_id: str            # a model id or a lifestyle signal id
    weight_delta: float       # fraction of base weight, within [-0.5, +0.5]
    sample_size: int
    confidence: float         # 0-100
    last_computed: str = ""
    success_rate_high: Optional[float] = None
    success_rate_baseline: Optional[float] = None

    @property
    def direction(self) -> str:
        if self.weight_delta > 0:
            return "boosts"
        if self.weight_delta < 0:
            return "drains"
        return "neutral"


@dataclass(frozen=True)
class ScoreBandStat:
    band: str                 # e.g. "85-100"
    count: int
    success_rate: Optional[float] = None


@dataclass(frozen=True)
class ActivityStat:
    activity_type: str
    attempts: int
    success_rate: float
    average_score: float


@dataclass(frozen=True)
class PersonalizationProfile:
    profile_id: str
    factors: tuple[AdjustmentFactor, ...] = ()
    overall_accuracy: Optional[float] = None
    total_outcomes_considered: int = 0
    last_computed: str = ""
    score_bands: tuple[ScoreBandStat, ...] = ()
    activity_stats: tuple[ActivityStat, ...] = ()
    followed_advice_rate: Optional[float] = None
    ignored_advice_rate: Optional[float] = None
    score_outcome_correlation: Optional[float] = None
    outcome_version: int = 0  # outcome history version this was computed from

    @classmethod
    def empty(cls, profile_id: str) -> PersonalizationProfile:
        return cls(profile_id=profile_id)

    # ── Scoring hooks ────────────────────────────────────────────────────

    def factor(self, factor_id: str) -> Optional[AdjustmentFactor]:
        for f in self.factors:
            if f.factor_id == factor_id:
                return f
        return None

    def adjustment_for(self, model_id: str, min_samples: int = MIN_FACTOR_SAMPLES) -> float:
        """Weight delta for a model, or 0.0 when absent or under-sampled."""
        f = self.factor(model_id)
        if f is None or f.sample_size < min_samples:
            return 0.0
        return f.weight_delta

    def contributing_factors(
        self, model_ids, min_samples: int = MIN_FACTOR_SAMPLES
    ) -> list[AdjustmentFactor]:
        wanted = set(model_ids)
        return [
            f for f in self.factors
            if f.factor_id in wanted and f.sample_size >= min_samples
        ]

    # ── Insufficient-data reporting ──────────────────────────────────────

    @property
    def has_sufficient_data(self) -> bool:
        return self.total_outcomes_considered >= MIN_OUTCOMES_FOR_INSIGHTS

    def require_sufficient_data(self) -> None:
        if not self.has_sufficient_data:
            raise InsufficientDataError(
                self.total_outcomes_considered, MIN_OUTCOMES_FOR_INSIGHTS
            )

    @property
    def computed_at(self) -> Optional[datetime]:
        if not self.last_computed:
            return None
        computed = datetime.fromisoformat(self.last_computed)
        if computed.tzinfo is None:
            computed = computed.replace(tzinfo=timezone.utc)
        return computed

    def with_outcome_count(self, count: int, version: Optional[int] = None) -> PersonalizationProfile:
        if version is None:
            version = self.outcome_version
        return replace(self, total_outcomes_considered=count, outcome_version=version)

    # ── Serialization ────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "profile_id": self.profile_id,
            "factors": [asdict(f) for f in self.factors],
            "overall_accuracy": self.overall_accuracy,
            "total_outcomes_considered": self.total_outcomes_considered,
            "last_computed": self.last_computed,
            "score_bands": [asdict(b) for b in self.score_bands],
            "activity_stats": [asdict(a) for a in self.activity_stats],
            "followed_advice_rate": self.followed_advice_rate,
            "ignored_advice_rate": self.ignored_advice_rate,
            "score_outcome_correlation": self.score_outcome_correlation,
            "outcome_version": self.outcome_version,
            "status": "ok" if self.has_sufficient_data else "insufficient_data",
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> PersonalizationProfile:
        return cls(
            profile_id=data["profile_id"],
            factors=tuple(AdjustmentFactor(**f) for f in data.get("factors", [])),
            overall_accuracy=data.get("overall_accuracy"),
            total_outcomes_considered=int(data.get("total_outcomes_considered", 0)),
            last_computed=data.get("last_computed", ""),
            score_bands=tuple(ScoreBandStat(**b) for b in data.get("score_bands", [])),
            activity_stats=tuple(ActivityStat(**a) for a in data.get("activity_stats", [])),
            followed_advice_rate=data.get("followed_advice_rate"),
            ignored_advice_rate=data.get("ignored_advice_rate"),
            score_outcome_correlation=data.get("score_outcome_correlation"),
            outcome_version=int(data.get("outcome_version", 0)),
        )

    @classmethod
    def from_json(cls, raw: str) -> PersonalizationProfile:
        return cls.from_dict(json.loads(raw))
