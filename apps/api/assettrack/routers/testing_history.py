"""Asset testing history endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from assettrack.core.deps import get_db
from assettrack.db.enums import Partition, TestResult
from assettrack.schemas.testing_history import (
    AssetHistoryResponse,
    HistoryRecordCreate,
    HistoryRecordRead,
    HistoryRecordUpdate,
)
from assettrack.services import asset_service, testing_history_service

router = APIRouter()


@router.get("/tests/search", response_model=list[HistoryRecordRead])
def search_test_records(
    partition: Partition = Query(...),
    asset_ids: list[UUID] | None = Query(None),
    test_type: str | None = None,
    result: TestResult | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    min_rating: float | None = None,
    max_rating: float | None = None,
    db: Session = Depends(get_db),
):
    return testing_history_service.search_test_records(
        db,
        partition,
        asset_ids=asset_ids,
        test_type=test_type,
        pass_fail_status=result,
        date_from=date_from,
        date_to=date_to,
        min_condition_rating=min_rating,
        max_condition_rating=max_rating,
    )


@router.post(
    "/{asset_id}/tests",
    response_model=HistoryRecordRead,
    status_code=status.HTTP_201_CREATED,
)
def add_test_record(
    asset_id: UUID, data: HistoryRecordCreate, db: Session = Depends(get_db)
):
    return testing_history_service.add_test_record(
        db,
        data.partition,
        asset_id,
        test_date=data.test_date,
        test_type=data.test_type,
        pass_fail_status=data.pass_fail_status,
        job_id=data.job_id,
        test_performed_by=data.test_performed_by,
        condition_rating=data.condition_rating,
        notes=data.notes,
        test_measurements=data.test_measurements,
    )


@router.get("/{asset_id}/tests", response_model=AssetHistoryResponse)
def get_testing_history(
    asset_id: UUID,
    partition: Partition = Query(...),
    db: Session = Depends(get_db),
):
    """Testing history for an asset, most recent first, with summary stats."""
    if not asset_service.get_asset(db, partition, asset_id):
        raise HTTPException(status_code=404, detail="Asset not found")
    records = testing_history_service.list_test_history(db, partition, asset_id)
    return {
        "asset_id": asset_id,
        "records": records,
        "stats": testing_history_service.calculate_testing_stats(records),
    }


@router.patch("/{asset_id}/tests/{record_id}", response_model=HistoryRecordRead)
def update_test_record(
    asset_id: UUID,
    record_id: UUID,
    data: HistoryRecordUpdate,
    db: Session = Depends(get_db),
):
    record = testing_history_service.get_test_record(db, data.partition, record_id)
    if not record or record.asset_id != asset_id:
        raise HTTPException(status_code=404, detail="Test record not found")
    fields = data.model_dump(exclude={"partition"}, exclude_unset=True)
    return testing_history_service.update_test_record(db, data.partition, record_id, **fields)
