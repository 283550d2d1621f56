"""Pydantic schemas for reports."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from assettrack.db.enums import Partition, ReportStatus
from assettrack.schemas.asset import AssetRead


class ReportCreate(BaseModel):
    """Request to save a new report. Without a job it is stored as a template."""
    partition: Partition
    job_id: UUID | None = None
    report_info: dict[str, Any] = Field(default_factory=dict)
    status: ReportStatus = ReportStatus.DRAFT
    company_key: str | None = Field(None, max_length=64)


class ReportUpdate(BaseModel):
    """Request to edit a report in place (partial)."""
    partition: Partition
    report_info: dict[str, Any] | None = None
    status: ReportStatus | None = None


class ReportRead(BaseModel):
    """Report response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    partition: str
    job_id: UUID | None
    report_info: dict[str, Any]
    status: str | None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None


class ReportSaveResponse(BaseModel):
    report: ReportRead
    asset: AssetRead | None
