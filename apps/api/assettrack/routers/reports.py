"""Report endpoints, one path segment per report kind."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from assettrack.core.deps import get_db
from assettrack.db.enums import Partition, ReportKind
from assettrack.schemas.report import (
    ReportCreate,
    ReportRead,
    ReportSaveResponse,
    ReportUpdate,
)
from assettrack.services import report_service

router = APIRouter()


@router.post("/{kind}", response_model=ReportSaveResponse, status_code=status.HTTP_201_CREATED)
def create_report(kind: ReportKind, data: ReportCreate, db: Session = Depends(get_db)):
    """
    Save a new report and its catalog asset.

    An identity is issued when the payload has none. If issuance is
    unavailable the report is still saved with a pending identity.
    """
    report, asset = report_service.create_report(
        db,
        data.partition,
        data.job_id,
        kind,
        data.report_info,
        status=data.status,
        company_key=data.company_key,
    )
    return {"report": report, "asset": asset}


@router.get("/{kind}", response_model=list[ReportRead])
def list_job_reports(
    kind: ReportKind,
    job_id: UUID,
    partition: Partition = Query(...),
    db: Session = Depends(get_db),
):
    return report_service.list_job_reports(db, partition, kind, job_id)


@router.get("/{kind}/{report_id}", response_model=ReportRead)
def get_report(
    kind: ReportKind,
    report_id: UUID,
    partition: Partition = Query(...),
    include_deleted: bool = False,
    db: Session = Depends(get_db),
):
    report = report_service.get_report(
        db, partition, kind, report_id, include_deleted=include_deleted
    )
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.patch("/{kind}/{report_id}", response_model=ReportRead)
def update_report(
    kind: ReportKind,
    report_id: UUID,
    data: ReportUpdate,
    db: Session = Depends(get_db),
):
    return report_service.update_report(
        db, data.partition, kind, report_id, payload=data.report_info, status=data.status
    )


@router.delete("/{kind}/{report_id}", response_model=ReportRead)
def delete_report(
    kind: ReportKind,
    report_id: UUID,
    partition: Partition = Query(...),
    db: Session = Depends(get_db),
):
    """Soft-delete a report and its catalog assets."""
    return report_service.soft_delete_report(db, partition, kind, report_id)
