"""User-logged outcomes used as ground truth for personalization."""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from datetime import date
from enum import Enum
from typing import Any


class OutcomeResult(str, Enum):
    SUCCESS = "success"
    NEUTRAL = "neutral"
    FAILURE = "failure"


# Numeric stand-in for correlating results against scores
RESULT_VALUES: dict[OutcomeResult, int] = {
    OutcomeResult.SUCCESS: 100,
    OutcomeResult.NEUTRAL: 50,
    OutcomeResult.FAILURE: 0,
}


@dataclass
class OutcomeRecordInput:
    """Unvalidated payload accepted by the outcome recorder."""

    date: Any
    activity_type: Any
    composite_score_at_logging: Any
    result: Any
    followed_advice: bool = False
    notes: str = ""


@dataclass(frozen=True)
class OutcomeRecord:
    id: str
    date: date
    activity_type: str
    composite_score_at_logging: float
    result: OutcomeResult
    followed_advice: bool
    logged_at: str
    notes: str = ""

    @property
    def is_success(self) -> bool:
        return self.result is OutcomeResult.SUCCESS

    @property
    def result_value(self) -> int:
        return RESULT_VALUES[self.result]

    def to_dict(self) -> dict:
        d = asdict(self)
        d["date"] = self.date.isoformat()
        d["result"] = self.result.value
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> OutcomeRecord:
        return cls(
            id=data["id"],
            date=date.fromisoformat(data["date"]),
            activity_type=data["activity_type"],
            composite_score_at_logging=float(data["composite_score_at_logging"]),
            result=OutcomeResult(data["result"]),
            followed_advice=bool(data.get("followed_advice", False)),
            logged_at=data.get("logged_at", ""),
            notes=data.get("notes", ""),
        )

    @classmethod
    def from_json(cls, raw: str) -> OutcomeRecord:
        return cls.from_dict(json.loads(raw))
