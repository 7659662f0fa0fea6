"""Outcome recorder: validates user-logged outcomes and appends them to history.

No scoring happens here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from numbers import Real
from typing import Optional
from uuid import uuid4

from energy_today.engine.history import OutcomeHistory
from energy_today.errors import ValidationError
from energy_today.models.outcome import OutcomeRecord, OutcomeRecordInput, OutcomeResult
from energy_today.models.profile import coerce_date

logger = logging.getLogger(__name__)


def validate_outcome(payload: OutcomeRecordInput) -> dict:
    """Return normalized fields or raise ValidationError on the first bad one."""
    day = coerce_date(payload.date, field="date")

    try:
        result = OutcomeResult(payload.result)
    except (ValueError, TypeError):
        allowed = ", ".join(r.value for r in OutcomeResult)
        raise ValidationError(
            f"result must be one of {allowed}, got {payload.result!r}", field="result"
        )

    score = payload.composite_score_at_logging
    if isinstance(score, bool) or not isinstance(score, Real):
        raise ValidationError(
            "composite_score_at_logging must be a number", field="composite_score_at_logging"
        )
    if not 0 <= score <= 100:
        raise ValidationError(
            f"composite_score_at_logging must be within 0..100, got {score}",
            field="composite_score_at_logging",
        )

    activity = payload.activity_type
    if not isinstance(activity, str) or not activity.strip():
        raise ValidationError("activity_type is required", field="activity_type")

    return {
        "date": day,
        "activity_type": activity.strip(),
        "composite_score_at_logging": float(score),
        "result": result,
        "followed_advice": bool(payload.followed_advice),
        "notes": payload.notes or "",
    }


class OutcomeRecorder:
    def __init__(self, history: Optional[OutcomeHistory] = None):
        self.history = history or OutcomeHistory()

    def record(self, profile_id: str, payload: OutcomeRecordInput) -> OutcomeRecord:
        fields = validate_outcome(payload)
        record = OutcomeRecord(
            id=uuid4().hex,
            logged_at=datetime.now(timezone.utc).isoformat(),
            **fields,
        )
        self.history.append(profile_id, record)
        logger.info(
            "Recorded outcome %s for %s: %s %s (score %.0f)",
            record.id, profile_id, record.activity_type, record.result.value,
            record.composite_score_at_logging,
        )
        return record

    def delete(self, profile_id: str, outcome_id: str) -> bool:
        removed = self.history.delete(profile_id, outcome_id)
        if removed:
            logger.info("Deleted outcome %s for %s", outcome_id, profile_id)
        else:
            logger.warning("Outcome %s not found for %s", outcome_id, profile_id)
        return removed
