"""
Wearable plugin API endpoints, mounted under /api/plugins/wearable.
Import, query and goal management for activity data.
"""

import json
import logging
import time
from typing import Any, List, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from pydantic import BaseModel

from lifelog.models import utcnow

from .data import WearableData
from .parsers import parse_export

logger = logging.getLogger(__name__)

MAX_IMPORT_SIZE = 50 * 1024 * 1024


class HeartRate(BaseModel):
    avg: Optional[int] = None
    current: Optional[int] = None
    min: Optional[int] = None
    max: Optional[int] = None


class ActivityPost(BaseModel):
    source_id: str = "companion-app"
    date: Optional[str] = None
    steps: int = 0
    calories: int = 0
    distance: float = 0
    active_minutes: int = 0
    exercises: List[dict[str, Any]] = []
    heart_rate: Optional[HeartRate] = None


class SourceCreate(BaseModel):
    id: str
    type: str = "unknown"
    name: str = "Unknown Device"


class GoalsUpdate(BaseModel):
    steps: Optional[int] = None
    active_minutes: Optional[int] = None
    calories: Optional[int] = None


def build_router(store: WearableData) -> APIRouter:
    router = APIRouter(tags=["wearable"])

    @router.post("/import")
    async def import_export(
        file: Optional[UploadFile] = File(None),
        data: Optional[str] = Form(None),
        source: str = Form("samsung-health"),
        source_id: Optional[str] = Form(None),
        source_name: str = Form("Samsung Galaxy Watch"),
    ):
        """Import an exported JSON file (upload) or a JSON string form field."""
        if file is not None:
            content = await file.read()
            if len(content) > MAX_IMPORT_SIZE:
                raise HTTPException(status_code=413, detail="Import file too large")
            raw = content.decode("utf-8")
        elif data:
            raw = data
        else:
            raise HTTPException(status_code=400, detail="No data provided")

        try:
            export = json.loads(raw)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=f"Invalid JSON: {e}")

        source_id = source_id or f"{source}-{int(time.time() * 1000)}"
        store.add_source(source_id, source, source_name)

        activities = parse_export(export, source)
        if not activities:
            raise HTTPException(status_code=400, detail="No activity data found in import")

        result = store.add_activities(activities, source_id)
        dates = sorted(a["date"] for a in activities)
        return {
            "success": True,
            "imported": {"days": len(activities), **result},
            "date_range": {"from": dates[0], "to": dates[-1]},
        }

    @router.post("/activity")
    def post_activity(body: ActivityPost):
        """Real-time daily totals from a companion app."""
        if not body.date:
            raise HTTPException(status_code=400, detail="Date is required")

        activity: dict[str, Any] = {
            "date": body.date,
            "steps": body.steps,
            "calories": body.calories,
            "distance": body.distance,
            "distance_unit": "km",
            "active_minutes": body.active_minutes,
            "exercises": body.exercises,
        }
        if body.heart_rate:
            activity["heart_rate_avg"] = body.heart_rate.avg or body.heart_rate.current
            activity["heart_rate_min"] = body.heart_rate.min
            activity["heart_rate_max"] = body.heart_rate.max

        result = store.add_activities([activity], body.source_id)
        return {"success": True, "activity": activity, "result": result}

    @router.get("/activities")
    def list_activities(
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        source_id: Optional[str] = None,
        limit: Optional[int] = None,
    ):
        return store.activities(from_=from_date, to=to_date, source_id=source_id, limit=limit)

    @router.get("/activities/{day}")
    def activity_for_date(day: str):
        activity = store.activity_for_date(day)
        if not activity:
            raise HTTPException(status_code=404, detail="No activity found for this date")
        return activity

    @router.get("/today")
    def today():
        day = utcnow().date().isoformat()
        activity = store.activity_for_date(day)
        return {
            "date": day,
            "activity": activity or {
                "date": day, "steps": 0, "calories": 0, "distance": 0, "active_minutes": 0,
            },
            "goals": store.goals,
            "progress": store.progress(activity),
        }

    @router.get("/stats")
    def stats():
        sources = store.sources
        imports = [s["last_import_at"] for s in sources if s.get("last_import_at")]
        return {
            "connected": bool(sources),
            "sources": sources,
            "last_import": max(imports) if imports else None,
            "total_days": len(store.activities()),
            "weekly": store.weekly_stats(),
            "goals": store.goals,
        }

    @router.get("/sources")
    def list_sources():
        return store.sources

    @router.post("/sources")
    def add_source(body: SourceCreate):
        return {"success": True, "source": store.add_source(body.id, body.type, body.name)}

    @router.delete("/sources/{source_id}")
    def remove_source(source_id: str):
        if not store.remove_source(source_id):
            raise HTTPException(status_code=404, detail="Source not found")
        return {"success": True}

    @router.get("/goals")
    def get_goals():
        return store.goals

    @router.put("/goals")
    def update_goals(body: GoalsUpdate):
        goals = store.set_goals(**body.model_dump())
        return {"success": True, "goals": goals}

    return router
