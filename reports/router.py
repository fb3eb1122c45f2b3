from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response

from core.deps import GatewayDep
from core.errors import GatewayError, ReportNotFound
from reports.responses import compose_response, release

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


# ---------------------------------------------------------------------
# GET /api/v1/reports/file/{report_file_id}
# ---------------------------------------------------------------------
@router.get("/file/{report_file_id}")
def get_report_file(report_file_id: str, request: Request, gateway: GatewayDep):
    """
    Delegate access to one report file.

    Plain `def` on purpose: FastAPI runs it in the threadpool, so store
    calls in the presigned/stream strategies never block the event loop.
    Failures answer with a bare status; details only go to the log.
    """
    log.info("INCOMING: id=%s path=%s", report_file_id, request.url.path)
    try:
        delegation = gateway.retrieve(report_file_id)
    except ReportNotFound:
        return Response(status_code=404)
    except GatewayError:
        return Response(status_code=500)

    try:
        return compose_response(delegation)
    except Exception as exc:
        release(delegation)
        log.error(
            "Report file %r failed (response) locator=%s cause=%r",
            report_file_id,
            delegation.locator.path,
            exc,
        )
        return Response(status_code=500)
