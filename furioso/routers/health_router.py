import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from furioso.config import settings
from furioso.database.session import get_db
from furioso.schemas.health import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthCheckResponse)
def health_check(response: Response, db: Session = Depends(get_db)) -> HealthCheckResponse:
    """Health check endpoint (DB 연결 포함)."""
    checked_at = datetime.now(timezone.utc)
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {str(e)}")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthCheckResponse(
            status="unhealthy",
            database="unavailable",
            environment=settings.ENVIRONMENT,
            checked_at=checked_at,
            error=type(e).__name__,
        )

    return HealthCheckResponse(environment=settings.ENVIRONMENT, checked_at=checked_at)
