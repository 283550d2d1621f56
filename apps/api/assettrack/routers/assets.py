"""Asset catalog endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from assettrack.core.deps import get_db
from assettrack.db.enums import Partition, ProjectedStatus
from assettrack.schemas.asset import AssetRead, MasterAssetCreate
from assettrack.services import asset_service, status_projection_service

router = APIRouter()


# Fixed paths first so they are not captured by /{asset_id}


@router.post("/masters", response_model=AssetRead, status_code=status.HTTP_201_CREATED)
def create_master_asset(data: MasterAssetCreate, db: Session = Depends(get_db)):
    """Create a catalog-level asset with a freshly issued identity."""
    return asset_service.create_master_asset(
        db,
        data.partition,
        data.name,
        customer_id=data.customer_id,
        file_url=data.file_url,
        report_kind=data.report_kind.value if data.report_kind else None,
    )


@router.get("/masters", response_model=list[AssetRead])
def list_master_assets(partition: Partition = Query(...), db: Session = Depends(get_db)):
    return asset_service.list_master_assets(db, partition)


@router.get("/deleted", response_model=list[AssetRead])
def list_deleted_assets(partition: Partition = Query(...), db: Session = Depends(get_db)):
    """Soft-deleted assets, for review and restore."""
    return asset_service.list_deleted_assets(db, partition)


@router.get("/{asset_id}", response_model=AssetRead)
def get_asset(
    asset_id: UUID,
    partition: Partition = Query(...),
    include_deleted: bool = False,
    db: Session = Depends(get_db),
):
    asset = asset_service.get_asset(db, partition, asset_id, include_deleted=include_deleted)
    if not asset:
        raise HTTPException(status_code=404, detail="Asset not found")
    return asset


@router.get("/{asset_id}/status")
def get_asset_status(
    asset_id: UUID,
    partition: Partition = Query(...),
    db: Session = Depends(get_db),
) -> dict[str, ProjectedStatus]:
    asset = asset_service.get_asset(db, partition, asset_id)
    if not asset:
        raise HTTPException(status_code=404, detail="Asset not found")
    return {"status": status_projection_service.project_status(db, asset)}


@router.delete("/{asset_id}", response_model=AssetRead)
def delete_asset(
    asset_id: UUID,
    partition: Partition = Query(...),
    db: Session = Depends(get_db),
):
    """Soft-delete an asset. The row and its identity are kept."""
    return asset_service.soft_delete_asset(db, partition, asset_id)


@router.post("/{asset_id}/restore", response_model=AssetRead)
def restore_asset(
    asset_id: UUID,
    partition: Partition = Query(...),
    db: Session = Depends(get_db),
):
    return asset_service.restore_asset(db, partition, asset_id)
