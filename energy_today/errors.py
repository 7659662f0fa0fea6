"""Error taxonomy for the energy engine.

Scoring and trend computation never raise for missing data; they degrade
confidence instead. Only malformed explicit input and storage contention
surface as exceptions.
"""


class EnergyTodayError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(EnergyTodayError, ValueError):
    """Malformed caller input (outcome payloads, out-of-range dates, windows)."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class ProfileNotFoundError(EnergyTodayError, LookupError):
    """No birth profile stored under the requested id."""

    def __init__(self, profile_id: str):
        super().__init__(f"Profile not found: {profile_id}")
        self.profile_id = profile_id


class InsufficientDataError(EnergyTodayError):
    """Too few logged outcomes to report personalization statistics."""

    def __init__(self, considered: int, required: int):
        super().__init__(
            f"Not enough outcomes for insights ({considered}/{required})"
        )
        self.considered = considered
        self.required = required


class PersonalizationBusyError(EnergyTodayError):
    """Another recompute holds the per-user personalization lock."""

    def __init__(self, profile_id: str, waited: float):
        super().__init__(
            f"Personalization for {profile_id} is locked (waited {waited:.1f}s)"
        )
        self.profile_id = profile_id
        self.waited = waited
