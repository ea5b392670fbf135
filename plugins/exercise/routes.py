"""
Exercise plugin API endpoints, mounted under /api/plugins/exercise.
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from .data import ExerciseLog


class SessionCreate(BaseModel):
    category: Optional[str] = None
    exercises: List[str] = []
    duration: int = 0
    notes: str = ""
    timestamp: Optional[str] = None


def build_router(log: ExerciseLog) -> APIRouter:
    router = APIRouter(tags=["exercise"])

    @router.get("/sessions")
    def list_sessions(
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ):
        return log.sessions(from_=from_date, to=to_date, category=category, limit=limit)

    @router.post("/sessions")
    def create_session(body: SessionCreate):
        if not body.category:
            raise HTTPException(status_code=400, detail="Category is required")
        try:
            session = log.log_session(
                body.category,
                exercises=body.exercises,
                duration=body.duration,
                notes=body.notes,
                timestamp=body.timestamp,
            )
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid timestamp: {body.timestamp}")
        return {"success": True, "session": session}

    @router.get("/stats")
    def stats(days: int = 7):
        return log.stats(days)

    @router.get("/streaks")
    def streaks():
        return log.streaks

    return router
