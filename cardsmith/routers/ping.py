import logging

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from cardsmith.config import get_settings
from cardsmith.dependencies import SessionDep
from cardsmith.schemas.api.common import HealthResponse

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/ping", response_model=HealthResponse)
def ping(session: SessionDep):
    """Liveness plus a database round trip."""
    try:
        session.execute(text("SELECT 1"))
        database = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        database = "unhealthy"
    return HealthResponse(
        status="ok" if database == "healthy" else "degraded",
        version=get_settings().app_version,
        database=database,
    )
