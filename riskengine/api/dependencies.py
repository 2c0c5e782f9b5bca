"""
API Dependencies

FastAPI dependency injection for the shared engine and alert publisher.
Both are created in the application lifespan and stored on app.state.
"""

from typing import Optional

from fastapi import HTTPException, Request, status

from ..alerts import AlertPublisher
from ..engine import RiskEngine


def get_engine(request: Request) -> RiskEngine:
    """
    Get the risk engine built at startup.

    Raises:
        HTTPException: 503 if the engine is not initialized
    """
    engine: Optional[RiskEngine] = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Risk engine not initialized",
        )
    return engine


def get_publisher(request: Request) -> Optional[AlertPublisher]:
    """Alert publisher, or None when publishing is disabled."""
    return getattr(request.app.state, "publisher", None)
