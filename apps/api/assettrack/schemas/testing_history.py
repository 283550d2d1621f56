"""Pydantic schemas for asset testing history."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from assettrack.db.enums import Partition, TestResult


class HistoryRecordCreate(BaseModel):
    """Request to record one test of an asset."""

    partition: Partition
    test_date: datetime
    test_type: str = Field(..., min_length=1, max_length=64)
    pass_fail_status: TestResult
    job_id: UUID | None = None
    test_performed_by: str | None = Field(None, max_length=255)
    condition_rating: float | None = Field(None, ge=1, le=10)
    notes: str | None = Field(None, max_length=2000)
    test_measurements: dict[str, Any] | None = None


class HistoryRecordUpdate(BaseModel):
    """Request to edit a test record (partial)."""

    partition: Partition
    test_date: datetime | None = None
    test_type: str | None = Field(None, min_length=1, max_length=64)
    pass_fail_status: TestResult | None = None
    test_performed_by: str | None = Field(None, max_length=255)
    condition_rating: float | None = Field(None, ge=1, le=10)
    notes: str | None = Field(None, max_length=2000)
    test_measurements: dict[str, Any] | None = None


class HistoryRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    partition: str
    asset_id: UUID
    job_id: UUID | None
    test_date: datetime
    test_type: str
    test_performed_by: str | None
    pass_fail_status: str
    condition_rating: float | None
    notes: str | None
    test_measurements: dict[str, Any] | None
    created_at: datetime


class HistoryStatsRead(BaseModel):
    total_tests: int
    pass_rate: float
    average_condition_rating: float
    latest_test_date: datetime | None
    degradation_trend: str
    tests_per_year: float


class AssetHistoryResponse(BaseModel):
    """Testing history for one asset with summary statistics."""

    asset_id: UUID
    records: list[HistoryRecordRead]
    stats: HistoryStatsRead
