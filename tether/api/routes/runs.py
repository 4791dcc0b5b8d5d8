"""GET /v1/runs — Persisted run records."""

from typing import Optional
from fastapi import APIRouter, HTTPException, Query, Request

from tether.api.schemas import RunListResponse
from tether.types import RunRecord

router = APIRouter(tags=["runs"])


@router.get("/runs", response_model=RunListResponse)
async def list_runs(
    request: Request,
    config_id: Optional[str] = None,
    org_id: str = "",
    limit: int = Query(default=10, ge=1, le=100),
):
    """List recent runs, newest first."""
    runs = await request.app.state.runtime.store.list_runs(config_id, org_id, limit)
    return RunListResponse(runs=runs, total=len(runs))


@router.get("/runs/{run_id}", response_model=RunRecord)
async def get_run(request: Request, run_id: str, org_id: str = ""):
    """Fetch one run record."""
    run = await request.app.state.runtime.store.get_run(run_id, org_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return run
