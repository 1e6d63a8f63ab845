"""
FastAPI dependencies shared by the route modules.
"""
from fastapi import HTTPException, Request, status

from matchstats.services.stats_engine import StatsEngine


def get_stats_engine(request: Request) -> StatsEngine:
    """The engine opened by the application lifespan."""
    engine = getattr(request.app.state, "stats_engine", None)
    if engine is None or not engine.store.is_open:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Stats store is not available",
        )
    return engine
