"""Health check endpoint."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from mazeloot.db.database import get_db

router = APIRouter()


@router.get("/health")
def health_check(request: Request, db: Session = Depends(get_db)) -> dict[str, str]:
    """Return application, database and session registry status."""
    manager = getattr(request.app.state, "session_manager", None)
    sessions = str(len(manager)) if manager is not None else "0"
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok", "database": "connected", "sessions": sessions}
    except Exception:
        return {"status": "error", "database": "disconnected", "sessions": sessions}
