"""FastAPI server exposing the energy engine to UI clients.

REST endpoints per profile:
- readings:        GET  /api/profiles/{pid}/reading
- trends:          GET  /api/profiles/{pid}/trend, /forecast, /forecast/trend
- outcomes:        POST /api/profiles/{pid}/outcomes, DELETE /outcomes/{id}
- signals:         POST /api/profiles/{pid}/signals
- personalization: GET  /api/profiles/{pid}/personalization, POST .../refresh
"""

from __future__ import annotations

import logging
from typing import Optional

import redis
from fastapi import FastAPI, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from energy_today.config.settings import REDIS_URL, SERVER_HOST, SERVER_PORT
from energy_today.engine.registry import MODEL_IDS
from energy_today.engine.service import EnergyEngine
from energy_today.errors import (
    PersonalizationBusyError,
    ProfileNotFoundError,
    ValidationError,
)
from energy_today.models.profile import BirthPlace, BirthProfile, EnvironmentalInputs

logger = logging.getLogger(__name__)

app = FastAPI(title="Energy Today", description="Daily energy scoring and personalization")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_redis() -> redis.Redis:
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


def _engine() -> EnergyEngine:
    return EnergyEngine(_get_redis())


# ── Error mapping ────────────────────────────────────────────────────────

async def _call(fn, *args, **kwargs):
    """Run a blocking engine call in the threadpool and map engine errors to HTTP."""
    try:
        return await run_in_threadpool(fn, *args, **kwargs)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail={"error": str(exc), "field": exc.field})
    except ProfileNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"error": str(exc)})
    except PersonalizationBusyError as exc:
        raise HTTPException(status_code=409, detail={"error": str(exc)})


# ── Request models ───────────────────────────────────────────────────────

class BirthPlaceRequest(BaseModel):
    latitude: float
    longitude: float
    label: str = ""


class ProfileRequest(BaseModel):
    name: str
    birth_date: str
    birth_place: Optional[BirthPlaceRequest] = None


class OutcomeRequest(BaseModel):
    date: str
    activity_type: str
    composite_score_at_logging: float
    result: str
    followed_advice: bool = False
    notes: str = ""


class SignalRequest(BaseModel):
    factor_id: str
    date: str
    value: float


# ── REST Endpoints ───────────────────────────────────────────────────────

@app.get("/api/health")
async def health():
    r = _get_redis()
    try:
        await run_in_threadpool(r.ping)
        redis_ok = True
    except redis.RedisError:
        redis_ok = False
    return {"status": "ok", "redis": redis_ok, "models": list(MODEL_IDS)}


@app.put("/api/profiles/{profile_id}")
async def put_profile(profile_id: str, req: ProfileRequest):
    """Create or edit a birth profile."""
    def _build() -> BirthProfile:
        place = None
        if req.birth_place is not None:
            place = BirthPlace(**req.birth_place.model_dump())
        return BirthProfile.from_dict({
            "profile_id": profile_id,
            "name": req.name,
            "birth_date": req.birth_date,
            "birth_place": place,
        })

    profile = await _call(_build)
    await _call(_engine().profiles.put, profile)
    return {"successful": True, "profile": profile.to_dict()}


@app.get("/api/profiles/{profile_id}/reading")
async def get_reading(
    profile_id: str,
    date: Optional[str] = None,
    condition: Optional[str] = None,
    temperature_c: Optional[float] = None,
    humidity: Optional[float] = None,
    pressure_hpa: Optional[float] = None,
    calendar_events: Optional[int] = None,
):
    def _read():
        environment = EnvironmentalInputs(
            condition=condition,
            temperature_c=temperature_c,
            humidity=humidity,
            pressure_hpa=pressure_hpa,
            calendar_events=calendar_events,
        )
        return _engine().get_reading(profile_id, date, environment)

    return (await _call(_read)).to_dict()


@app.get("/api/profiles/{profile_id}/trend")
async def get_trend(profile_id: str, window: int = Query(7), end: Optional[str] = None):
    return (await _call(_engine().get_trend, profile_id, window, end)).to_dict()


@app.get("/api/profiles/{profile_id}/forecast")
async def get_forecast(profile_id: str, days: int = Query(7), start: Optional[str] = None):
    readings = await _call(_engine().get_forecast, profile_id, days, start)
    return {"days": len(readings), "readings": [r.to_dict() for r in readings]}


@app.get("/api/profiles/{profile_id}/forecast/trend")
async def get_forecast_trend(profile_id: str, window: int = Query(7), start: Optional[str] = None):
    return (await _call(_engine().get_forecast_trend, profile_id, window, start)).to_dict()


@app.get("/api/profiles/{profile_id}/outcomes")
async def list_outcomes(profile_id: str):
    records = await _call(_engine().list_outcomes, profile_id)
    return {"outcomes": [o.to_dict() for o in records]}


@app.post("/api/profiles/{profile_id}/outcomes")
async def record_outcome(profile_id: str, req: OutcomeRequest):
    record = await _call(_engine().record_outcome, profile_id, req.model_dump())
    return {"successful": True, "outcome": record.to_dict()}


@app.delete("/api/profiles/{profile_id}/outcomes/{outcome_id}")
async def delete_outcome(profile_id: str, outcome_id: str):
    removed = await _call(_engine().delete_outcome, profile_id, outcome_id)
    if not removed:
        raise HTTPException(status_code=404, detail={"error": "Outcome not found", "outcome_id": outcome_id})
    return {"successful": True, "outcome_id": outcome_id}


@app.post("/api/profiles/{profile_id}/signals")
async def record_signal(profile_id: str, req: SignalRequest):
    await _call(_engine().record_signal, profile_id, req.factor_id, req.date, req.value)
    return {"successful": True}


@app.get("/api/profiles/{profile_id}/personalization")
async def get_personalization(profile_id: str):
    return (await _call(_engine().get_personalization, profile_id)).to_dict()


@app.post("/api/profiles/{profile_id}/personalization/refresh")
async def refresh_personalization(profile_id: str, force: bool = False):
    return (await _call(_engine().refresh_personalization, profile_id, force)).to_dict()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)
