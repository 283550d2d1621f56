"""Pydantic schemas for catalog assets and identities."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from assettrack.db.enums import Partition, ProjectedStatus, ReportKind


class AssetRead(BaseModel):
    """Asset response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    partition: str
    name: str
    file_url: str | None
    job_id: UUID | None
    identity: str | None
    identity_pending: bool
    report_kind: str | None
    report_id: UUID | None
    source_asset_id: UUID | None
    is_master: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None


class AssetListItem(AssetRead):
    """Asset in a listing, with its projected report status."""
    status: ProjectedStatus = ProjectedStatus.UNKNOWN


class MasterAssetCreate(BaseModel):
    """Request to create a catalog-level (master) asset."""
    partition: Partition
    name: str = Field(..., min_length=1, max_length=255)
    customer_id: UUID | None = None
    file_url: str | None = Field(None, max_length=1024)
    report_kind: ReportKind | None = None


class IdentityIssueRequest(BaseModel):
    partition: Partition
    namespace_key: str | None = Field(None, max_length=64)


class IdentityIssueResponse(BaseModel):
    identity: str
    namespace: str


class PendingIdentityRequest(BaseModel):
    partition: Partition


class PendingIdentityResponse(BaseModel):
    assigned: list[AssetRead]
