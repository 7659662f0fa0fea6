"""Composite scorer: blends every available model sub-score into one reading.

    effective_weight = base + adjustment * base      (clamped to [0, 2 * base])
    composite        = round(sum(sub * w) / sum(w))
    confidence       = base + per_model * n + per_factor * factor_conf / 100
                       (capped, never claims certainty)

A reading is a pure function of (profile, date, personalization snapshot,
environment); it carries no timestamps so recomputation is byte-identical.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Sequence

from energy_today.config.settings import (
    CONFIDENCE_BASE,
    CONFIDENCE_PER_MODEL,
    CONFIDENCE_PER_FACTOR,
    CONFIDENCE_CAP,
    NEUTRAL_COMPOSITE,
    MIN_FACTOR_SAMPLES,
)
from energy_today.engine.registry import REGISTRY, Model, base_weight, load_engine_config
from energy_today.errors import ValidationError
from energy_today.models.personalization import PersonalizationProfile
from energy_today.models.profile import BirthProfile, EnvironmentalInputs, coerce_date
from energy_today.models.reading import (
    Alignment,
    DailyEnergyReading,
    ModelReading,
    alignment_for,
)

logger = logging.getLogger(__name__)


@dataclass
class CompositeScorer:
    models: Sequence[Model] = REGISTRY
    config: dict[str, Any] = field(default_factory=load_engine_config)
    confidence_base: float = CONFIDENCE_BASE
    confidence_per_model: float = CONFIDENCE_PER_MODEL
    confidence_per_factor: float = CONFIDENCE_PER_FACTOR
    confidence_cap: float = CONFIDENCE_CAP
    neutral_composite: int = NEUTRAL_COMPOSITE
    min_factor_samples: int = MIN_FACTOR_SAMPLES

    # ── Public API ───────────────────────────────────────────────────────

    def score(
        self,
        profile: BirthProfile,
        day: date | str,
        environment: Optional[EnvironmentalInputs] = None,
        personalization: Optional[PersonalizationProfile] = None,
    ) -> DailyEnergyReading:
        day = coerce_date(day)
        if day < profile.birth_date:
            raise ValidationError(
                f"date {day.isoformat()} is before the birth date", field="date"
            )
        personalization = personalization or PersonalizationProfile.empty(profile.profile_id)

        included: dict[str, ModelReading] = {}
        skipped: list[str] = []
        personalized = False
        for model in self.models:
            reading = model.compute(profile, day, environment)
            if reading is None:
                skipped.append(model.model_id.value)
                continue
            adjustment = personalization.adjustment_for(
                reading.model_id, min_samples=self.min_factor_samples
            )
            reading.weight = self.effective_weight(reading.model_id, adjustment)
            personalized = personalized or adjustment != 0.0
            included[reading.model_id] = reading

        if not included:
            logger.debug("No models available for %s on %s", profile.profile_id, day)
            best_for, avoid = self.guidance(Alignment.MODERATE, None)
            return DailyEnergyReading(
                date=day,
                composite_score=self.neutral_composite,
                confidence=0,
                alignment=Alignment.MODERATE,
                best_for=best_for,
                avoid=avoid,
                skipped_models=skipped,
            )

        composite = self.composite(included.values())
        alignment = alignment_for(composite)
        dominant = self.dominant(included.values())
        best_for, avoid = self.guidance(alignment, dominant.label)
        confidence = self.confidence(included, personalization)

        logger.debug(
            "Scored %s on %s: composite=%d confidence=%d dominant=%s skipped=%s",
            profile.profile_id, day, composite, confidence, dominant.model_id, skipped,
        )
        return DailyEnergyReading(
            date=day,
            models=included,
            composite_score=composite,
            confidence=confidence,
            alignment=alignment,
            best_for=best_for,
            avoid=avoid,
            dominant_model=dominant.model_id,
            skipped_models=skipped,
            personalized=personalized,
        )

    # ── Steps ────────────────────────────────────────────────────────────

    def effective_weight(self, model_id: str, adjustment: float) -> float:
        base = base_weight(model_id, self.config)
        return max(0.0, min(2.0 * base, base + adjustment * base))

    def composite(self, readings) -> int:
        readings = list(readings)
        total_weight = sum(r.weight for r in readings)
        if total_weight > 0:
            value = sum(r.sub_score * r.weight for r in readings) / total_weight
        else:
            # every weight personalized down to zero
            value = sum(r.sub_score for r in readings) / len(readings)
        return max(0, min(100, round(value)))

    def dominant(self, readings) -> ModelReading:
        """Highest sub_score * weight; earlier registration wins ties."""
        best: Optional[ModelReading] = None
        for r in readings:
            if best is None or r.sub_score * r.weight > best.sub_score * best.weight:
                best = r
        return best

    def confidence(
        self, included: dict[str, ModelReading], personalization: PersonalizationProfile
    ) -> int:
        value = self.confidence_base + self.confidence_per_model * len(included)
        for factor in personalization.contributing_factors(
            included.keys(), min_samples=self.min_factor_samples
        ):
            value += self.confidence_per_factor * factor.confidence / 100.0
        return int(round(max(0.0, min(self.confidence_cap, value))))

    def guidance(self, alignment: Alignment, label: Optional[str]) -> tuple[list[str], list[str]]:
        table = self.config.get("guidance", {}).get(alignment.value, {})
        entry = table.get(label) if label else None
        if entry is None:
            entry = table.get("default", {})
        return list(entry.get("best_for", [])), list(entry.get("avoid", []))
