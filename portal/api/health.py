"""Health check endpoint with database connectivity and provider configuration."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.core.config import get_settings
from portal.core.database import check_db_connected, get_db
from portal.core.providers import provider_status
from portal.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(db: Session = Depends(get_db)) -> HealthResponse:
    """
    Return service health status, database connectivity and which providers
    are configured. Used by load balancers and monitoring.
    """
    settings = get_settings()
    db_status = "connected" if check_db_connected(db) else "disconnected"

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=db_status,
        providers=provider_status(settings),
    )
