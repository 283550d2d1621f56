"""Pydantic schemas for catalog search and lineage operations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from assettrack.db.enums import Partition, ReportKind, ReportStatus
from assettrack.schemas.asset import AssetRead
from assettrack.schemas.report import ReportRead


class CatalogCandidateRead(BaseModel):
    """A record that can be linked, cloned, or promoted into a job."""
    source: str
    record_id: str
    report_kind: str | None
    display_name: str
    identity: str | None
    job_id: str | None
    partition: str
    is_master: bool
    status: str | None
    updated_at: datetime | None


class CatalogSearchResponse(BaseModel):
    query: str
    total: int
    results: list[CatalogCandidateRead]


class LinkRequest(BaseModel):
    """Attach an existing asset or report to a job. Give exactly one."""
    partition: Partition
    target_job_id: UUID
    asset_id: UUID | None = None
    report_kind: ReportKind | None = None
    report_id: UUID | None = None

    @model_validator(mode="after")
    def _one_source(self) -> "LinkRequest":
        if (self.asset_id is None) == (self.report_id is None):
            raise ValueError("Provide exactly one of asset_id or report_id")
        if self.report_id is not None and self.report_kind is None:
            raise ValueError("report_kind is required with report_id")
        return self


class CloneRequest(BaseModel):
    partition: Partition
    report_kind: ReportKind
    source_report_id: UUID
    target_job_id: UUID
    status: ReportStatus | None = Field(None, description="PASS or FAIL; defaults to PASS")


class PromoteRequest(BaseModel):
    partition: Partition
    master_asset_id: UUID
    target_job_id: UUID
    report_kind: ReportKind | None = None
    status: ReportStatus | None = Field(None, description="PASS or FAIL; defaults to PASS")


class JobReportLinkRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    job_id: UUID
    report_kind: str
    report_id: UUID
    created_at: datetime


class LineageResponse(BaseModel):
    created: bool
    asset: AssetRead | None = None
    report: ReportRead | None = None
    link: JobReportLinkRead | None = None
