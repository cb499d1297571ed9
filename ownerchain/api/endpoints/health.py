from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.responses import JSONResponse

from ownerchain.api.endpoints.ownership import get_session

router = APIRouter()


@router.get("/api/v1/health/live")
def liveness():
    return {"status": "alive"}


@router.get("/api/v1/health/ready")
def readiness(session: Session = Depends(get_session)):
    """
    Readiness reflects ability to reach the data store the ownership
    lookups run against.
    """
    problems: list[str] = []
    try:
        session.execute(text("SELECT 1"))
    except Exception as e:
        problems.append(f"database_unreachable:{type(e).__name__}")

    if problems:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "problems": problems},
        )
    return {"status": "ready"}
