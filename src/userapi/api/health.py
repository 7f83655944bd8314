"""Health check endpoint for the userapi API."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from userapi import __version__
from userapi.api.deps import get_db
from userapi.database import ping

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    timestamp: datetime
    database: str


@router.get("/health", response_model=HealthResponse)
async def health_check(db: "Engine" = Depends(get_db)) -> HealthResponse:
    """Check system health.

    Overall status is 'healthy' when the database answers, 'degraded' otherwise.
    """
    try:
        ping(db)
        db_status = "ok"
    except SQLAlchemyError:
        db_status = "error"

    return HealthResponse(
        status="healthy" if db_status == "ok" else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        database=db_status,
    )
