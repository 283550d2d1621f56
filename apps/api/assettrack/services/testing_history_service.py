"""Testing history service - per-asset test records and summary statistics."""

import logging
from datetime import datetime, timezone
from typing import Any, TypedDict
from uuid import UUID

from sqlalchemy.orm import Session

from assettrack.core.structured_logging import build_log_context
from assettrack.db.enums import DegradationTrend, Partition, TestResult
from assettrack.db.models import Asset, AssetTestRecord
from assettrack.db.record_store import get_row, insert_row, query_rows, store_call, update_row
from assettrack.services.errors import NotFoundError


logger = logging.getLogger(__name__)

TREND_THRESHOLD = 0.5
DAYS_PER_YEAR = 365.25


class HistoryStats(TypedDict):
    """Summary of an asset's testing history."""

    total_tests: int
    pass_rate: float  # percent
    average_condition_rating: float
    latest_test_date: datetime | None
    degradation_trend: str
    tests_per_year: float


# =============================================================================
# Records
# =============================================================================


def add_test_record(
    db: Session,
    partition: Partition,
    asset_id: UUID,
    test_date: datetime,
    test_type: str,
    pass_fail_status: TestResult,
    job_id: UUID | None = None,
    test_performed_by: str | None = None,
    condition_rating: float | None = None,
    notes: str | None = None,
    test_measurements: dict[str, Any] | None = None,
) -> AssetTestRecord:
    """Record one test of an asset."""
    asset = get_row(db, Asset, partition, asset_id)
    if asset is None:
        raise NotFoundError(f"Asset {asset_id} not found")

    record = insert_row(
        db,
        AssetTestRecord,
        partition,
        asset_id=asset.id,
        job_id=job_id if job_id is not None else asset.job_id,
        test_date=test_date,
        test_type=test_type.strip(),
        test_performed_by=test_performed_by,
        pass_fail_status=pass_fail_status.value,
        condition_rating=condition_rating,
        notes=notes,
        test_measurements=test_measurements,
    )
    with store_call("add test record"):
        db.commit()
    db.refresh(record)
    logger.info(
        "Added test record",
        extra=build_log_context(partition=partition.value, record_id=str(asset.id)),
    )
    return record


def update_test_record(
    db: Session, partition: Partition, record_id: UUID, **fields: Any
) -> AssetTestRecord:
    """Edit a test record in place. Only known, non-None fields are applied."""
    record = get_row(db, AssetTestRecord, partition, record_id)
    if record is None:
        raise NotFoundError(f"Test record {record_id} not found")
    allowed = {
        "test_date",
        "test_type",
        "test_performed_by",
        "pass_fail_status",
        "condition_rating",
        "notes",
        "test_measurements",
    }
    changes = {
        key: (value.value if isinstance(value, TestResult) else value)
        for key, value in fields.items()
        if key in allowed and value is not None
    }
    if changes:
        update_row(db, record, **changes)
        with store_call("update test record"):
            db.commit()
        db.refresh(record)
    return record


def get_test_record(
    db: Session, partition: Partition, record_id: UUID
) -> AssetTestRecord | None:
    return get_row(db, AssetTestRecord, partition, record_id)


def list_test_history(db: Session, partition: Partition, asset_id: UUID) -> list[AssetTestRecord]:
    """Test records for an asset, most recent first."""
    return query_rows(
        db,
        AssetTestRecord,
        partition,
        AssetTestRecord.asset_id == asset_id,
        order_by=AssetTestRecord.test_date.desc(),
    )


def search_test_records(
    db: Session,
    partition: Partition,
    asset_ids: list[UUID] | None = None,
    test_type: str | None = None,
    pass_fail_status: TestResult | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    min_condition_rating: float | None = None,
    max_condition_rating: float | None = None,
) -> list[AssetTestRecord]:
    """Filter test records; every filter is optional."""
    criteria = []
    if asset_ids:
        criteria.append(AssetTestRecord.asset_id.in_(asset_ids))
    if test_type:
        criteria.append(AssetTestRecord.test_type == test_type)
    if pass_fail_status is not None:
        criteria.append(AssetTestRecord.pass_fail_status == pass_fail_status.value)
    if date_from is not None:
        criteria.append(AssetTestRecord.test_date >= date_from)
    if date_to is not None:
        criteria.append(AssetTestRecord.test_date <= date_to)
    if min_condition_rating is not None:
        criteria.append(AssetTestRecord.condition_rating >= min_condition_rating)
    if max_condition_rating is not None:
        criteria.append(AssetTestRecord.condition_rating <= max_condition_rating)
    return query_rows(
        db,
        AssetTestRecord,
        partition,
        *criteria,
        order_by=AssetTestRecord.test_date.desc(),
    )


# =============================================================================
# Statistics
# =============================================================================


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _degradation_trend(oldest_first: list[AssetTestRecord]) -> DegradationTrend:
    ratings = [r.condition_rating for r in oldest_first if r.condition_rating is not None]
    if len(ratings) < 2:
        return DegradationTrend.UNKNOWN
    difference = ratings[-1] - ratings[0]
    if difference > TREND_THRESHOLD:
        return DegradationTrend.IMPROVING
    if difference < -TREND_THRESHOLD:
        return DegradationTrend.DECLINING
    return DegradationTrend.STABLE


def calculate_testing_stats(history: list[AssetTestRecord]) -> HistoryStats:
    """
    Summarize a testing history.

    The trend compares the oldest and newest condition ratings; a change of
    more than half a point either way counts as improving or declining.
    """
    if not history:
        return HistoryStats(
            total_tests=0,
            pass_rate=0.0,
            average_condition_rating=0.0,
            latest_test_date=None,
            degradation_trend=DegradationTrend.UNKNOWN.value,
            tests_per_year=0.0,
        )

    oldest_first = sorted(history, key=lambda r: _as_utc(r.test_date))
    total = len(history)
    passed = sum(1 for r in history if r.pass_fail_status == TestResult.PASS.value)
    ratings = [r.condition_rating for r in history if r.condition_rating is not None]

    first_date = _as_utc(oldest_first[0].test_date)
    last_date = _as_utc(oldest_first[-1].test_date)
    years = (last_date - first_date).days / DAYS_PER_YEAR

    return HistoryStats(
        total_tests=total,
        pass_rate=passed / total * 100,
        average_condition_rating=sum(ratings) / len(ratings) if ratings else 0.0,
        latest_test_date=oldest_first[-1].test_date,
        degradation_trend=_degradation_trend(oldest_first).value,
        tests_per_year=total / years if years > 0 else float(total),
    )
