"""Cron-triggered scheduled publishing route."""

from __future__ import annotations

import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse

from postrelay.core.config import get_settings
from postrelay.orchestrator.manager import build_sweeper
from postrelay.orchestrator.sweep import DuePostSweeper
from postrelay.schemas.sweep import SweepResponse


router = APIRouter(prefix="/cron", tags=["cron"])


def get_due_post_sweeper() -> DuePostSweeper:
    return build_sweeper()


def _enforce_cron_secret(authorization: Optional[str]) -> None:
    expected = get_settings().cron_secret.strip()
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="cron_secret_not_configured",
        )

    scheme, _, token = (authorization or "").partition(" ")
    received = token.strip() if scheme.lower() == "bearer" else ""
    if not received or not secrets.compare_digest(received, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid_cron_secret",
        )


@router.api_route("/publish-scheduled", methods=["GET", "POST"], response_model=SweepResponse)
def publish_scheduled_endpoint(
    sweeper: DuePostSweeper = Depends(get_due_post_sweeper),
    authorization: Optional[str] = Header(default=None),
) -> JSONResponse:
    _enforce_cron_secret(authorization)
    report = sweeper.run_once()
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR if report.failed else status.HTTP_200_OK
    body = SweepResponse.model_validate(report.to_payload())
    return JSONResponse(content=body.model_dump(exclude_none=True), status_code=status_code)
