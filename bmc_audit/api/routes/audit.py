"""Audit API routes.

Endpoints for running multi-pass model checking audits.
"""

import asyncio
import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Request

from bmc_audit.api.dependencies import get_audit_service, get_settings
from bmc_audit.api.models import AuditRunRequest, AuditRunResponse, ErrorResponse
from bmc_audit.application.audit_service import AuditService
from bmc_audit.shared.config import Settings
from bmc_audit.shared.result import Err, Ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/audit", tags=["audit"])

# How often the handler checks whether the client went away
DISCONNECT_POLL_SECONDS = 0.5


async def _watch_disconnect(http_request: Request, cancel_event: asyncio.Event) -> None:
    while not cancel_event.is_set():
        if await http_request.is_disconnected():
            logger.warning("Client disconnected, cancelling audit")
            cancel_event.set()
            return
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


@router.post(
    "/run",
    response_model=AuditRunResponse,
    status_code=200,
    summary="Audit one source file",
    description="""
    Plan and run a multi-pass bounded model checking audit of one C/C++ source file.

    ## Flow

    1. **Solver selection**: boolector, then bitwuzla, then z3, whichever the checker supports first
    2. **Loop discovery**: the checker lists the artifact's loops once; each loop is
       classified as bound-known or bound-unknown
    3. **Strategy planning**: no unwinding for loop-free code, a per-loop unwind set when
       every bound is known, incremental BMC otherwise; k-induction (with a bounded
       fallback) when proving correctness
    4. **Pass execution**: one checker process per check category, concurrently by default
    5. **Aggregation**: per-pass verdicts, deduplicated findings and per-category counts

    ## Status semantics

    - **clean**: every pass that ran was successful
    - **violations_present**: at least one pass found a counterexample
    - **inconclusive**: no violation, but some pass timed out, was unknown, crashed,
      or the audit was cancelled

    ## Error Scenarios

    - **404 Not Found**: The artifact does not exist on the service host
    - **422 Unprocessable Entity**: No solver available, loop discovery failed,
      or the checker cannot be started
    - **500 Internal Server Error**: Unexpected system error
    """,
    responses={
        404: {"model": ErrorResponse, "description": "Artifact not found"},
        422: {
            "model": ErrorResponse,
            "description": "Audit halted before any verification pass ran",
        },
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    tags=["Audit"],
)
async def run_audit(
    request: AuditRunRequest,
    http_request: Request,
    audit_service: AuditService = Depends(get_audit_service),
    settings: Settings = Depends(get_settings),
) -> AuditRunResponse:
    """Run one audit and return its report.

    Args:
        request: AuditRunRequest describing the artifact and checks
        http_request: Raw request, watched for client disconnects
        audit_service: Injected AuditService instance
        settings: Injected application settings

    Returns:
        AuditRunResponse with the aggregated report

    Raises:
        HTTPException: 404 if the artifact does not exist
        HTTPException: 422 if the audit halted on a fatal precondition
        HTTPException: 500 for unexpected system errors
    """
    logger.info(f"Audit request for {request.artifact_path}")

    if not Path(request.artifact_path).is_file():
        raise HTTPException(
            status_code=404, detail=f"Artifact not found: {request.artifact_path}"
        )

    cancel_event = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(http_request, cancel_event))

    try:
        result = await audit_service.audit(
            request.to_domain(settings.default_run_mode), cancel_event=cancel_event
        )

        match result:
            case Ok(report):
                logger.info(f"Audit succeeded: {report.status.value}")
                return AuditRunResponse.from_domain(report)

            case Err(error):
                logger.warning(f"Audit halted: {error}")
                raise HTTPException(status_code=422, detail=str(error))

    except HTTPException:
        raise

    except Exception as e:
        logger.error(f"Unexpected error during audit: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error during audit") from e

    finally:
        watcher.cancel()
