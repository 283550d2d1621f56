"""Catalog search endpoint."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from assettrack.core.deps import get_db
from assettrack.core.rate_limit import limiter
from assettrack.db.enums import Partition
from assettrack.schemas.lineage import CatalogSearchResponse
from assettrack.services import catalog_search_service

router = APIRouter()


@router.get("/search", response_model=CatalogSearchResponse)
@limiter.limit("120/minute")
def search_catalog(
    request: Request,
    q: str = Query(..., max_length=200),
    partition: Partition | None = None,
    job_id: UUID | None = None,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """
    Find existing assets and reports to link, clone, or promote into a job.

    Queries shorter than the minimum length return no results. Records
    already attached to ``job_id`` are left out.
    """
    results = catalog_search_service.search_catalog(
        db, partition, q, current_job_id=job_id, limit=limit
    )
    return {"query": q, "total": len(results), "results": results}
