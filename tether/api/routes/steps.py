"""POST /v1/steps/execute — Run one workflow step (DIRECT or LOOP)."""

import logging
from fastapi import APIRouter, Request

from tether.api.schemas import StepExecuteRequest
from tether.types import Metadata, WorkflowStepResult

logger = logging.getLogger(__name__)
router = APIRouter(tags=["steps"])


@router.post("/steps/execute", response_model=WorkflowStepResult)
async def execute_step(request: Request, body: StepExecuteRequest):
    """Execute a step with the strategy its execution_mode selects."""
    runtime = request.app.state.runtime
    integration = None
    integration_id = body.integration_id or body.step.integration_id
    if integration_id:
        integration = await runtime.store.get_integration(integration_id, body.org_id)
        if integration is None:
            logger.info(f"[steps] Integration '{integration_id}' not found; running without documentation")

    return await runtime.steps.run(
        body.step,
        body.payload,
        body.credentials,
        body.options,
        Metadata(org_id=body.org_id),
        integration,
    )
