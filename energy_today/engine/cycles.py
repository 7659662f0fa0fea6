"""Calendar arithmetic shared by the date-derived models.

Numerology reductions, biorhythm cycles, lunar phase, five-element
correspondences and day-length estimates. Everything here is a pure
function of its arguments.
"""

from __future__ import annotations

import math
from datetime import date, timedelta

MASTER_NUMBERS = (11, 22, 33)
KARMIC_DEBT_NUMBERS = (13, 14, 16, 19)

SYNODIC_MONTH = 29.53058867
REFERENCE_FULL_MOON_JD = 2451565.4
LUNAR_PHASES = (
    "new_moon",
    "waxing_crescent",
    "first_quarter",
    "waxing_gibbous",
    "full_moon",
    "waning_gibbous",
    "last_quarter",
    "waning_crescent",
)

BIORHYTHM_PERIODS: dict[str, int] = {
    "physical": 23,
    "emotional": 28,
    "intellectual": 33,
}

ELEMENTS = ("wood", "fire", "earth", "metal", "water")
# wood feeds fire, fire makes earth, earth bears metal, metal carries water
GENERATES = {"wood": "fire", "fire": "earth", "earth": "metal", "metal": "water", "water": "wood"}
# wood parts earth, earth dams water, water quenches fire, fire melts metal
CONTROLS = {"wood": "earth", "earth": "water", "water": "fire", "fire": "metal", "metal": "wood"}

_ORDINAL_TO_JDN = 1721425


# ── Numerology ───────────────────────────────────────────────────────────

def digit_sum(n: int) -> int:
    return sum(int(c) for c in str(abs(n)))


def reduce_number(n: int, keep_master: bool = True) -> int:
    """Reduce to a single digit, stopping early at master numbers."""
    while n > 9 and not (keep_master and n in MASTER_NUMBERS):
        n = digit_sum(n)
    return n


def root_number(n: int) -> int:
    return reduce_number(n, keep_master=False)


def life_path_number(birth: date) -> int:
    return reduce_number(birth.day + birth.month + birth.year)


def universal_day_number(day: date) -> int:
    return reduce_number(day.day + day.month + day.year)


def personal_year_number(birth: date, year: int) -> int:
    return reduce_number(birth.day + birth.month + year)


def personal_day_number(birth: date, day: date) -> int:
    return reduce_number(personal_year_number(birth, day.year) + day.month + day.day)


def compound_number(day: date) -> int:
    """Digit total of the full date, folded down until it is 19 or less."""
    n = digit_sum(int(day.strftime("%Y%m%d")))
    while n > 19:
        n = digit_sum(n)
    return n


def is_karmic_debt(n: int) -> bool:
    return n in KARMIC_DEBT_NUMBERS


# ── Biorhythm ────────────────────────────────────────────────────────────

def biorhythm_values(birth: date, day: date) -> dict[str, float]:
    """Raw cycle values in [-100, 100] keyed by cycle name."""
    elapsed = (day - birth).days
    return {
        name: 100.0 * math.sin(2 * math.pi * elapsed / period)
        for name, period in BIORHYTHM_PERIODS.items()
    }


def biorhythm_percentage(value: float) -> float:
    return (value + 100.0) / 2.0


# ── Lunar ────────────────────────────────────────────────────────────────

def julian_date(day: date, hour: float = 12.0) -> float:
    y, m, d = day.year, day.month, day.day
    jd = (
        367 * y
        - math.floor(7 * (y + math.floor((m + 9) / 12)) / 4)
        + math.floor(275 * m / 9)
        + d
        + 1721013.5
    )
    return jd + hour / 24.0


def lunar_phase_fraction(day: date) -> float:
    """0.0 = new moon, 0.5 = full moon."""
    cycles = (julian_date(day) - REFERENCE_FULL_MOON_JD) / SYNODIC_MONTH
    return (cycles - math.floor(cycles) + 0.5) % 1.0


def lunar_phase(day: date) -> str:
    fraction = lunar_phase_fraction(day)
    return LUNAR_PHASES[int(((fraction + 0.0625) % 1.0) / 0.125) % len(LUNAR_PHASES)]


# ── Five elements ────────────────────────────────────────────────────────

def year_element(year: int) -> str:
    last = year % 10
    if last in (0, 1):
        return "metal"
    if last in (2, 3):
        return "water"
    if last in (4, 5):
        return "wood"
    if last in (6, 7):
        return "fire"
    return "earth"


def day_element(day: date) -> str:
    """Element of the day's heavenly stem in the sixty-day cycle."""
    jdn = day.toordinal() + _ORDINAL_TO_JDN
    stem = (jdn + 9) % 10
    return ELEMENTS[stem // 2]


def element_relation(birth_element: str, day_element_: str) -> str:
    if birth_element == day_element_:
        return "same"
    if GENERATES[birth_element] == day_element_:
        return "generating"
    if GENERATES[day_element_] == birth_element:
        return "nourished"
    if CONTROLS[birth_element] == day_element_:
        return "controlling"
    return "controlled"


# ── Daylight ─────────────────────────────────────────────────────────────

def day_length_hours(latitude: float, day: date) -> float:
    """Approximate hours of daylight, 0-24, from solar declination."""
    doy = day.timetuple().tm_yday
    declination = math.radians(23.44) * math.sin(2 * math.pi * (284 + doy) / 365.0)
    cos_h = -math.tan(math.radians(latitude)) * math.tan(declination)
    cos_h = max(-1.0, min(1.0, cos_h))
    return 2.0 * math.degrees(math.acos(cos_h)) / 15.0


def daylight_trend(latitude: float, day: date) -> str:
    tomorrow = day + timedelta(days=1)
    if day_length_hours(latitude, tomorrow) > day_length_hours(latitude, day):
        return "lengthening"
    return "shortening"


def sunday_first_weekday(day: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7
