"""Job API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from assettrack.core.deps import get_db
from assettrack.db.enums import JobStatus, Partition
from assettrack.schemas.asset import AssetListItem
from assettrack.schemas.job import JobCreate, JobRead, JobStatusUpdate
from assettrack.services import asset_service, job_service, status_projection_service

router = APIRouter()


@router.post("", response_model=JobRead, status_code=status.HTTP_201_CREATED)
def create_job(data: JobCreate, db: Session = Depends(get_db)):
    """Create a job; the division decides partition and job number format."""
    return job_service.create_job(db, data.division, data.customer_id, data.title)


@router.get("", response_model=list[JobRead])
def list_jobs(
    partition: Partition = Query(...),
    customer_id: UUID | None = None,
    job_status: JobStatus | None = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return job_service.list_jobs(db, partition, customer_id, job_status, limit)


@router.get("/{job_id}", response_model=JobRead)
def get_job(job_id: UUID, partition: Partition = Query(...), db: Session = Depends(get_db)):
    job = job_service.get_job(db, partition, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.patch("/{job_id}/status", response_model=JobRead)
def update_job_status(
    job_id: UUID,
    data: JobStatusUpdate,
    partition: Partition = Query(...),
    db: Session = Depends(get_db),
):
    job = job_service.get_job(db, partition, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job_service.update_job_status(db, job, data.status)


@router.get("/{job_id}/assets", response_model=list[AssetListItem])
def list_job_assets(
    job_id: UUID,
    partition: Partition = Query(...),
    db: Session = Depends(get_db),
):
    """
    Assets visible on a job with their projected PASS/FAIL status.

    Includes assets of reports linked in from other jobs.
    """
    if not job_service.get_job(db, partition, job_id):
        raise HTTPException(status_code=404, detail="Job not found")
    assets = asset_service.list_job_assets(db, partition, job_id)
    statuses = status_projection_service.project_statuses(db, assets)
    items = []
    for asset in assets:
        item = AssetListItem.model_validate(asset)
        item.status = statuses[asset.id]
        items.append(item)
    return items
