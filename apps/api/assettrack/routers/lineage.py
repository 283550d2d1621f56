"""Link, clone-for-retest, and promote endpoints."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from assettrack.core.deps import get_db
from assettrack.core.rate_limit import limiter
from assettrack.schemas.lineage import (
    CloneRequest,
    LineageResponse,
    LinkRequest,
    PromoteRequest,
)
from assettrack.services import lineage_service

router = APIRouter()


@router.post("/link", response_model=LineageResponse)
@limiter.limit("60/minute")
def link_record(request: Request, data: LinkRequest, db: Session = Depends(get_db)):
    """Attach an existing asset or report to a job. Repeats are no-ops."""
    return lineage_service.link_record(
        db,
        data.partition,
        data.target_job_id,
        asset_id=data.asset_id,
        report_kind=data.report_kind,
        report_id=data.report_id,
    )


@router.post("/clone", response_model=LineageResponse)
@limiter.limit("60/minute")
def clone_for_retest(request: Request, data: CloneRequest, db: Session = Depends(get_db)):
    """Copy a report into the target job for a retest (PASS unless told otherwise)."""
    return lineage_service.clone_for_retest(
        db,
        data.partition,
        data.report_kind,
        data.source_report_id,
        data.target_job_id,
        status=data.status,
    )


@router.post("/promote", response_model=LineageResponse)
@limiter.limit("60/minute")
def promote_master_asset(
    request: Request, data: PromoteRequest, db: Session = Depends(get_db)
):
    """Turn a master asset without a report into a job-scoped report."""
    return lineage_service.promote_master_asset(
        db,
        data.partition,
        data.master_asset_id,
        data.target_job_id,
        report_kind=data.report_kind,
        status=data.status,
    )
