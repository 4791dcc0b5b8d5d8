"""GET /v1/health — Health check with a store probe."""

import logging
from fastapi import APIRouter, Request

from tether.api.schemas import HealthResponse
from tether.version import __version__

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Check health of the API and its store."""
    services: dict[str, bool] = {"api": True, "store": False}

    store = request.app.state.runtime.store
    probe = getattr(store, "health", None)
    if probe is None:
        services["store"] = True
    else:
        services["store"] = await probe()
        if not services["store"]:
            logger.warning("[health] Store check failed")

    overall = "ok" if all(services.values()) else "degraded"
    return HealthResponse(status=overall, version=__version__, services=services)
