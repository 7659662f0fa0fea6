"""Reading types produced by the scorer and trend aggregator."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from energy_today.config.settings import STRONG_THRESHOLD, MODERATE_THRESHOLD


class Alignment(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    CHALLENGING = "challenging"


def alignment_for(
    score: float,
    strong_at: float = STRONG_THRESHOLD,
    moderate_at: float = MODERATE_THRESHOLD,
) -> Alignment:
    """Bucket a composite score: strong >= 70, moderate in [45, 70), else challenging."""
    if score >= strong_at:
        return Alignment.STRONG
    if score >= moderate_at:
        return Alignment.MODERATE
    return Alignment.CHALLENGING


@dataclass
class ModelReading:
    model_id: str
    sub_score: int          # 0-100
    label: str
    weight: float = 1.0

    def to_dict(self) -> dict:
        return {
            "model_id": self.model_id,
            "sub_score": self.sub_score,
            "label": self.label,
            "weight": round(self.weight, 4),
        }

    @classmethod
    def from_dict(cls, data: dict) -> ModelReading:
        return cls(
            model_id=data["model_id"],
            sub_score=int(data["sub_score"]),
            label=data["label"],
            weight=float(data.get("weight", 1.0)),
        )


@dataclass
class DailyEnergyReading:
    date: date
    models: dict[str, ModelReading] = field(default_factory=dict)
    composite_score: int = 50
    confidence: int = 0
    alignment: Alignment = Alignment.MODERATE
    best_for: list[str] = field(default_factory=list)
    avoid: list[str] = field(default_factory=list)
    dominant_model: Optional[str] = None
    skipped_models: list[str] = field(default_factory=list)
    personalized: bool = False

    @property
    def weekday(self) -> str:
        return self.date.strftime("%A")

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "models": {mid: m.to_dict() for mid, m in self.models.items()},
            "composite_score": self.composite_score,
            "confidence": self.confidence,
            "alignment": self.alignment.value,
            "best_for": list(self.best_for),
            "avoid": list(self.avoid),
            "dominant_model": self.dominant_model,
            "skipped_models": list(self.skipped_models),
            "personalized": self.personalized,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict) -> DailyEnergyReading:
        return cls(
            date=date.fromisoformat(data["date"]),
            models={
                mid: ModelReading.from_dict(m) for mid, m in data.get("models", {}).items()
            },
            composite_score=int(data["composite_score"]),
            confidence=int(data["confidence"]),
            alignment=Alignment(data["alignment"]),
            best_for=list(data.get("best_for", [])),
            avoid=list(data.get("avoid", [])),
            dominant_model=data.get("dominant_model"),
            skipped_models=list(data.get("skipped_models", [])),
            personalized=bool(data.get("personalized", False)),
        )

    @classmethod
    def from_json(cls, raw: str) -> DailyEnergyReading:
        return cls.from_dict(json.loads(raw))


@dataclass
class TrendSummary:
    window: int
    days: int = 0
    average_composite: Optional[float] = None
    average_confidence: Optional[float] = None
    best_day: Optional[date] = None
    best_score: Optional[int] = None
    worst_day: Optional[date] = None
    worst_score: Optional[int] = None
    strong_days: int = 0
    challenging_days: int = 0
    insights: list[str] = field(default_factory=list)
    incomplete: bool = True

    def to_dict(self) -> dict:
        return {
            "window": self.window,
            "days": self.days,
            "average_composite": self.average_composite,
            "average_confidence": self.average_confidence,
            "best_day": self.best_day.isoformat() if self.best_day else None,
            "best_score": self.best_score,
            "worst_day": self.worst_day.isoformat() if self.worst_day else None,
            "worst_score": self.worst_score,
            "strong_days": self.strong_days,
            "challenging_days": self.challenging_days,
            "insights": list(self.insights),
            "incomplete": self.incomplete,
        }
