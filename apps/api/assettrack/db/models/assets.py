"""Asset catalog, identity ledger, and job attachment models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    JSON,
    String,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from assettrack.db.base import Base
from assettrack.db.models.jobs import _utcnow


class Asset(Base):
    """
    Catalog entry for a physical item or a generic document.

    - job_id NULL marks a master asset (catalog-level, not yet job-scoped)
    - report_kind/report_id point at the report that produced the asset
    - source_asset_id records the master a job-scoped row was linked or promoted from
    - Soft-delete only (deleted_at); rows are never removed
    """

    __tablename__ = "assets"
    __table_args__ = (
        Index("idx_assets_partition_job", "partition", "job_id"),
        Index("idx_assets_identity", "identity"),
        Index("idx_assets_report", "report_kind", "report_id"),
        Index("idx_assets_source", "source_asset_id"),
        # One live row per master per job
        Index(
            "uq_assets_job_source_live",
            "job_id",
            "source_asset_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL AND source_asset_id IS NOT NULL"),
            sqlite_where=text("deleted_at IS NULL AND source_asset_id IS NOT NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    partition: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    job_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True
    )

    # Identity
    identity: Mapped[str | None] = mapped_column(String(64), nullable=True)
    identity_namespace: Mapped[str | None] = mapped_column(String(32), nullable=True)
    identity_pending: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Lineage
    report_kind: Mapped[str | None] = mapped_column(String(64), nullable=True)
    report_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    source_asset_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("assets.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, onupdate=_utcnow, nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def is_master(self) -> bool:
        return self.job_id is None


class JobReportLink(Base):
    """
    Attaches an existing report to another job without copying it.

    The report's own job_id is left untouched (many-to-many attachment).
    """

    __tablename__ = "job_report_links"
    __table_args__ = (
        UniqueConstraint(
            "job_id", "report_kind", "report_id", name="uq_job_report_links_target"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    partition: Mapped[str] = mapped_column(String(20), nullable=False)
    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    report_kind: Mapped[str] = mapped_column(String(64), nullable=False)
    report_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)


class AssetIdentityClaim(Base):
    """
    Ledger of issued asset identities.

    The (namespace, sequence) primary key is the atomic claim: a second writer
    racing for the same number fails on insert and re-reads.
    """

    __tablename__ = "asset_identity_claims"
    __table_args__ = (UniqueConstraint("code", name="uq_asset_identity_code"),)

    namespace: Mapped[str] = mapped_column(String(32), primary_key=True)
    sequence: Mapped[int] = mapped_column(
        BigInteger, primary_key=True, autoincrement=False
    )
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    partition: Mapped[str] = mapped_column(String(20), nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)


class AssetTestRecord(Base):
    """One entry in an asset's testing history."""

    __tablename__ = "asset_test_records"
    __table_args__ = (Index("idx_asset_test_records_asset", "asset_id", "test_date"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    partition: Mapped[str] = mapped_column(String(20), nullable=False)
    asset_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("assets.id", ondelete="CASCADE"), nullable=False
    )
    job_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True
    )
    test_date: Mapped[datetime] = mapped_column(nullable=False)
    test_type: Mapped[str] = mapped_column(String(64), nullable=False)
    test_performed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    pass_fail_status: Mapped[str] = mapped_column(String(20), nullable=False)
    condition_rating: Mapped[float | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    test_measurements: Mapped[dict | None] = mapped_column(
        JSON, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
