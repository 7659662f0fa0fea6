"""Model registry: the fixed, ordered set of date-derived sub-score models.

Each model is a strategy object with the same pure signature:

    compute(profile, day, environment=None) -> ModelReading | None

Returning None is a soft skip (the model cannot run for this input, e.g.
no birth place or no weather data). Callers iterate REGISTRY and never
name individual models.
"""

from __future__ import annotations

import logging
from datetime import date
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml

from energy_today.config.settings import ENGINE_CONFIG_PATH
from energy_today.engine import cycles
from energy_today.models.profile import BirthProfile, EnvironmentalInputs
from energy_today.models.reading import ModelReading

logger = logging.getLogger(__name__)


class ModelId(str, Enum):
    LIFE_PATH = "life_path"
    PERSONAL_CYCLE = "personal_cycle"
    DAY_BORN = "day_born"
    KARMIC = "karmic"
    BIORHYTHM = "biorhythm"
    LUNAR = "lunar"
    ELEMENT = "element"
    WEEKDAY = "weekday"
    DAYLIGHT = "daylight"
    WEATHER = "weather"
    CALENDAR_LOAD = "calendar_load"


# ═══════════════════════════════════════════════════════════════════════════
# Engine config (YAML)
# ═══════════════════════════════════════════════════════════════════════════

@lru_cache(maxsize=4)
def load_engine_config(path: Path = ENGINE_CONFIG_PATH) -> dict[str, Any]:
    with open(path) as f:
        config = yaml.safe_load(f) or {}
    logger.debug("Loaded engine config from %s", path)
    return config


def base_weight(model_id: str, config: Optional[dict] = None) -> float:
    config = config if config is not None else load_engine_config()
    return float(config.get("model_weights", {}).get(model_id, 1.0))


# ═══════════════════════════════════════════════════════════════════════════
# Model strategies
# ═══════════════════════════════════════════════════════════════════════════

class Model:
    """Base strategy. Subclasses set model_id and implement compute()."""

    model_id: ModelId

    def compute(
        self,
        profile: BirthProfile,
        day: date,
        environment: Optional[EnvironmentalInputs] = None,
    ) -> Optional[ModelReading]:
        raise NotImplementedError

    def _reading(self, score: float, label: str) -> ModelReading:
        clamped = max(0, min(100, int(round(score))))
        return ModelReading(model_id=self.model_id.value, sub_score=clamped, label=label)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.model_id.value}>"


class LifePathModel(Model):
    """Resonance between the life path number and the universal day number."""

    model_id = ModelId.LIFE_PATH
    HARMONY_GROUPS = ({1, 5, 7}, {2, 4, 8}, {3, 6, 9})

    def compute(self, profile, day, environment=None):
        life = cycles.root_number(cycles.life_path_number(profile.birth_date))
        today = cycles.root_number(cycles.universal_day_number(day))
        if life == today:
            return self._reading(90, "life_path_resonant")
        if any(life in g and today in g for g in self.HARMONY_GROUPS):
            return self._reading(78, "life_path_harmonious")
        return self._reading(50, "life_path_dissonant")


class PersonalCycleModel(Model):
    """Personal day number mapped to an energy theme."""

    model_id = ModelId.PERSONAL_CYCLE
    THEMES: dict[int, tuple[int, str]] = {
        1: (85, "high_momentum"),
        2: (62, "harmonious"),
        3: (80, "creative_flow"),
        4: (68, "structured_growth"),
        5: (75, "communicative_energy"),
        6: (70, "grounded_stability"),
        7: (55, "reflective_pause"),
        8: (88, "focused_execution"),
        9: (58, "transformative"),
        11: (90, "creative_flow"),
        22: (92, "structured_growth"),
        33: (86, "harmonious"),
    }

    def compute(self, profile, day, environment=None):
        number = cycles.personal_day_number(profile.birth_date, day)
        score, label = self.THEMES[number]
        return self._reading(score, label)


class DayBornModel(Model):
    """Weekday of birth against the weekday of the target date."""

    model_id = ModelId.DAY_BORN

    def compute(self, profile, day, environment=None):
        distance = abs(profile.birth_date.weekday() - day.weekday())
        distance = min(distance, 7 - distance)
        if distance == 0:
            return self._reading(85, "day_born_match")
        if distance == 1:
            return self._reading(72, "day_born_complement")
        if distance == 3:
            return self._reading(45, "day_born_opposition")
        return self._reading(60, "day_born_neutral")


class KarmicModel(Model):
    """Karmic-debt compound numbers on the birth date and the target date."""

    model_id = ModelId.KARMIC

    def compute(self, profile, day, environment=None):
        birth_debt = cycles.is_karmic_debt(cycles.compound_number(profile.birth_date))
        day_debt = cycles.is_karmic_debt(cycles.compound_number(day))
        if day_debt and birth_debt:
            return self._reading(40, "karmic_trigger")
        if day_debt:
            return self._reading(55, "karmic_lesson")
        if birth_debt:
            return self._reading(70, "karmic_steady")
        return self._reading(80, "karmic_clear")


class BiorhythmModel(Model):
    """Mean of the physical, emotional and intellectual cycles."""

    model_id = ModelId.BIORHYTHM
    CRITICAL_BAND = 5.0
    CRITICAL_PENALTY = 10

    def compute(self, profile, day, environment=None):
        values = cycles.biorhythm_values(profile.birth_date, day)
        score = sum(cycles.biorhythm_percentage(v) for v in values.values()) / len(values)
        if any(abs(v) < self.CRITICAL_BAND for v in values.values()):
            return self._reading(score - self.CRITICAL_PENALTY, "biorhythm_critical")
        if score >= 75:
            label = "biorhythm_peak"
        elif score >= 55:
            label = "biorhythm_high"
        elif score >= 40:
            label = "biorhythm_neutral"
        else:
            label = "biorhythm_low"
        return self._reading(score, label)


class LunarModel(Model):
    model_id = ModelId.LUNAR
    INFLUENCE: dict[str, int] = {
        "new_moon": 70,
        "waxing_crescent": 75,
        "first_quarter": 80,
        "waxing_gibbous": 85,
        "full_moon": 95,
        "waning_gibbous": 85,
        "last_quarter": 75,
        "waning_crescent": 65,
    }

    def compute(self, profile, day, environment=None):
        phase = cycles.lunar_phase(day)
        return self._reading(self.INFLUENCE[phase], phase)


class ElementModel(Model):
    """Birth-year element against the element of the day stem."""

    model_id = ModelId.ELEMENT
    SCORES: dict[str, int] = {
        "same": 100,
        "generating": 85,
        "nourished": 75,
        "controlling": 45,
        "controlled": 35,
    }

    def compute(self, profile, day, environment=None):
        relation = cycles.element_relation(
            cycles.year_element(profile.birth_date.year), cycles.day_element(day)
        )
        return self._reading(self.SCORES[relation], f"element_{relation}")


class WeekdayModel(Model):
    """Traditional Thai weekday fortune, Sunday first."""

    model_id = ModelId.WEEKDAY
    FORTUNE = (70, 80, 60, 90, 50, 70, 40)

    def compute(self, profile, day, environment=None):
        score = self.FORTUNE[cycles.sunday_first_weekday(day)]
        if score >= 85:
            label = "weekday_auspicious"
        elif score >= 70:
            label = "weekday_favorable"
        elif score >= 55:
            label = "weekday_neutral"
        else:
            label = "weekday_cautious"
        return self._reading(score, label)


class DaylightModel(Model):
    """Day length at the birth latitude compared with the birthday's day length."""

    model_id = ModelId.DAYLIGHT

    def compute(self, profile, day, environment=None):
        if profile.birth_place is None:
            return None
        lat = profile.birth_place.latitude
        natal = cycles.day_length_hours(lat, profile.birth_date)
        today = cycles.day_length_hours(lat, day)
        score = 95 - min(abs(today - natal), 12.0) * 5
        return self._reading(score, f"daylight_{cycles.daylight_trend(lat, day)}")


class WeatherModel(Model):
    model_id = ModelId.WEATHER
    CONDITION_SCORES: dict[str, int] = {
        "sunny": 85,
        "cloudy": 65,
        "rainy": 55,
        "stormy": 35,
        "snowy": 60,
        "foggy": 50,
    }

    def compute(self, profile, day, environment=None):
        if environment is None or not environment.has_weather:
            return None
        score = self.CONDITION_SCORES[environment.condition]
        t = environment.temperature_c
        if t is not None and not 15 <= t <= 26:
            score -= 10
        if environment.humidity is not None and environment.humidity > 80:
            score -= 5
        if environment.pressure_hpa is not None and environment.pressure_hpa < 1000:
            score -= 5
        return self._reading(score, f"weather_{environment.condition}")


class CalendarLoadModel(Model):
    model_id = ModelId.CALENDAR_LOAD

    def compute(self, profile, day, environment=None):
        if environment is None or not environment.has_calendar:
            return None
        events = environment.calendar_events
        if events <= 2:
            return self._reading(85, "calendar_light")
        if events <= 5:
            return self._reading(65, "calendar_busy")
        return self._reading(max(30, 65 - 5 * (events - 5)), "calendar_overloaded")


# Registration order is the tie-break order for the dominant model.
REGISTRY: tuple[Model, ...] = (
    LifePathModel(),
    PersonalCycleModel(),
    DayBornModel(),
    KarmicModel(),
    BiorhythmModel(),
    LunarModel(),
    ElementModel(),
    WeekdayModel(),
    DaylightModel(),
    WeatherModel(),
    CalendarLoadModel(),
)

MODEL_IDS: tuple[str, ...] = tuple(m.model_id.value for m in REGISTRY)


def get_model(model_id: str) -> Model:
    for model in REGISTRY:
        if model.model_id.value == model_id:
            return model
    raise KeyError(model_id)


def compute_sub_scores(
    profile: BirthProfile,
    day: date,
    environment: Optional[EnvironmentalInputs] = None,
    models=REGISTRY,
) -> dict[str, int]:
    """Raw sub-scores of every model that runs for the input, in registry order."""
    scores: dict[str, int] = {}
    for model in models:
        reading = model.compute(profile, day, environment)
        if reading is not None:
            scores[reading.model_id] = reading.sub_score
    return scores
