"""Application-wide configuration loaded from environment variables."""

import os
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Redis
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")

# Structured engine tunables (model weights, guidance table)
ENGINE_CONFIG_PATH: Path = Path(
    os.getenv("ENGINE_CONFIG_PATH", str(Path(__file__).resolve().parent / "engine.yaml"))
)

# ── Supported Dates ──────────────────────────────────────────────────────

MIN_SUPPORTED_DATE: date = date.fromisoformat(os.getenv("MIN_SUPPORTED_DATE", "1900-01-01"))
MAX_SUPPORTED_DATE: date = date.fromisoformat(os.getenv("MAX_SUPPORTED_DATE", "2199-12-31"))

# ── Alignment Thresholds ─────────────────────────────────────────────────

STRONG_THRESHOLD: int = int(os.getenv("STRONG_THRESHOLD", "70"))
MODERATE_THRESHOLD: int = int(os.getenv("MODERATE_THRESHOLD", "45"))

# ── Composite Scorer ─────────────────────────────────────────────────────

CONFIDENCE_BASE: float = float(os.getenv("CONFIDENCE_BASE", "60"))
CONFIDENCE_PER_MODEL: float = float(os.getenv("CONFIDENCE_PER_MODEL", "3"))
CONFIDENCE_PER_FACTOR: float = float(os.getenv("CONFIDENCE_PER_FACTOR", "2"))
CONFIDENCE_CAP: float = float(os.getenv("CONFIDENCE_CAP", "95"))
NEUTRAL_COMPOSITE: int = int(os.getenv("NEUTRAL_COMPOSITE", "50"))

# ── Correlation Analyzer ─────────────────────────────────────────────────

HIGH_FACTOR_THRESHOLD: float = float(os.getenv("HIGH_FACTOR_THRESHOLD", "70"))
MIN_FACTOR_SAMPLES: int = int(os.getenv("MIN_FACTOR_SAMPLES", "3"))
CORRELATION_SENSITIVITY: float = float(os.getenv("CORRELATION_SENSITIVITY", "1.0"))
MAX_WEIGHT_DELTA: float = float(os.getenv("MAX_WEIGHT_DELTA", "0.5"))
FACTOR_CONFIDENCE_BASE: float = float(os.getenv("FACTOR_CONFIDENCE_BASE", "50"))
FACTOR_CONFIDENCE_STEP: float = float(os.getenv("FACTOR_CONFIDENCE_STEP", "5"))
PREDICT_SUCCESS_AT: float = float(os.getenv("PREDICT_SUCCESS_AT", "70"))
PREDICT_FAILURE_BELOW: float = float(os.getenv("PREDICT_FAILURE_BELOW", "55"))
MIN_OUTCOMES_FOR_INSIGHTS: int = int(os.getenv("MIN_OUTCOMES_FOR_INSIGHTS", "3"))

# ── Personalization Store ────────────────────────────────────────────────

PERSONALIZATION_RECOMPUTE_INTERVAL: int = int(
    os.getenv("PERSONALIZATION_RECOMPUTE_INTERVAL", "86400")
)  # once per day
PERSONALIZATION_LOCK_TTL: int = int(os.getenv("PERSONALIZATION_LOCK_TTL", "30"))
PERSONALIZATION_LOCK_WAIT: float = float(os.getenv("PERSONALIZATION_LOCK_WAIT", "5.0"))

# ── Trend Aggregator ─────────────────────────────────────────────────────

TREND_WINDOWS: tuple[int, ...] = (7, 30)
TREND_SHIFT_THRESHOLD: float = float(os.getenv("TREND_SHIFT_THRESHOLD", "10"))
STRONG_DAY_SHARE: float = float(os.getenv("STRONG_DAY_SHARE", "0.4"))
CHALLENGING_DAY_SHARE: float = float(os.getenv("CHALLENGING_DAY_SHARE", "0.3"))
LOW_CONFIDENCE_THRESHOLD: float = float(os.getenv("LOW_CONFIDENCE_THRESHOLD", "50"))
MAX_FORECAST_DAYS: int = int(os.getenv("MAX_FORECAST_DAYS", "30"))

# ── Server Configuration ─────────────────────────────────────────────────

SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
