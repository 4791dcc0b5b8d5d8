"""POST /v1/call — Run one API call through the orchestrator."""

import logging
from fastapi import APIRouter, Request

from tether.api.schemas import CallRequest
from tether.types import CallResult

logger = logging.getLogger(__name__)
router = APIRouter(tags=["call"])


@router.post("/call", response_model=CallResult)
async def call_endpoint(request: Request, body: CallRequest):
    """Execute an inline or stored config. Failures come back as success=false."""
    orchestrator = request.app.state.runtime.orchestrator
    return await orchestrator.call(
        endpoint=body.endpoint,
        endpoint_id=body.endpoint_id,
        payload=body.payload,
        credentials=body.credentials,
        options=body.options,
        org_id=body.org_id,
        integration_id=body.integration_id,
    )
