"""Asset service - catalog listings and soft-delete lifecycle."""

import logging
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from assettrack.core.structured_logging import build_log_context
from assettrack.db.enums import Partition
from assettrack.db.models import Asset, Customer, JobReportLink
from assettrack.db.record_store import (
    get_row,
    insert_row,
    query_rows,
    restore_row,
    soft_delete_row,
    store_call,
)
from assettrack.services import identity_service
from assettrack.services.errors import NotFoundError


logger = logging.getLogger(__name__)


def create_master_asset(
    db: Session,
    partition: Partition,
    name: str,
    customer_id: UUID | None = None,
    file_url: str | None = None,
    report_kind: str | None = None,
) -> Asset:
    """
    Create a catalog-level asset with a freshly issued identity.

    The identity is claimed (and committed) before the asset row is written,
    so a failed asset insert burns the number rather than reusing it.
    """
    company_key = None
    if customer_id is not None:
        customer = get_row(db, Customer, partition, customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        company_key = customer.company_key

    namespace = identity_service.normalize_namespace(company_key)
    identity = identity_service.issue_identity(db, namespace, partition)
    try:
        asset = insert_row(
            db,
            Asset,
            partition,
            name=name.strip(),
            file_url=file_url,
            job_id=None,
            identity=identity,
            identity_namespace=namespace,
            identity_pending=False,
            report_kind=report_kind,
        )
        with store_call("create master asset"):
            db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(asset)
    logger.info(
        f"Created master asset {identity}",
        extra=build_log_context(partition=partition.value, record_id=str(asset.id)),
    )
    return asset


def get_asset(
    db: Session, partition: Partition, asset_id: UUID, include_deleted: bool = False
) -> Asset | None:
    """Get an asset; include_deleted bypasses the soft-delete filter."""
    return get_row(db, Asset, partition, asset_id, include_deleted=include_deleted)


def list_job_assets(db: Session, partition: Partition, job_id: UUID) -> list[Asset]:
    """
    Assets visible on a job.

    Owned rows plus the asset rows of reports linked into the job from other
    jobs. Soft-deleted rows are excluded.
    """
    linked = select(JobReportLink.report_kind, JobReportLink.report_id).where(
        JobReportLink.job_id == job_id
    )
    with store_call("load job links"):
        link_keys = db.execute(linked).all()

    clauses = [Asset.job_id == job_id]
    for kind, report_id in link_keys:
        clauses.append(
            and_(
                Asset.report_kind == kind,
                Asset.report_id == report_id,
                Asset.job_id.is_not(None),
            )
        )
    rows = query_rows(db, Asset, partition, or_(*clauses), order_by=Asset.created_at)

    # A linked report may have several job-scoped rows; keep one per report
    seen_reports: set[tuple[str | None, UUID | None]] = set()
    result: list[Asset] = []
    for asset in rows:
        if asset.job_id != job_id:
            key = (asset.report_kind, asset.report_id)
            if key in seen_reports:
                continue
            seen_reports.add(key)
        result.append(asset)
    return result


def list_master_assets(db: Session, partition: Partition) -> list[Asset]:
    return query_rows(
        db, Asset, partition, Asset.job_id.is_(None), order_by=Asset.name
    )


def list_deleted_assets(db: Session, partition: Partition) -> list[Asset]:
    """Soft-deleted assets, most recently deleted first."""
    return query_rows(
        db,
        Asset,
        partition,
        Asset.deleted_at.is_not(None),
        include_deleted=True,
        order_by=Asset.deleted_at.desc(),
    )


def soft_delete_asset(db: Session, partition: Partition, asset_id: UUID) -> Asset:
    """Mark an asset deleted. Its identity stays claimed."""
    asset = get_row(db, Asset, partition, asset_id)
    if asset is None:
        raise NotFoundError(f"Asset {asset_id} not found")
    soft_delete_row(db, asset)
    with store_call("delete asset"):
        db.commit()
    db.refresh(asset)
    logger.info(
        f"Soft-deleted asset {asset.id}",
        extra=build_log_context(partition=partition.value, record_id=str(asset.id)),
    )
    return asset


def restore_asset(db: Session, partition: Partition, asset_id: UUID) -> Asset:
    asset = get_row(db, Asset, partition, asset_id, include_deleted=True)
    if asset is None or asset.deleted_at is None:
        raise NotFoundError(f"Deleted asset {asset_id} not found")
    restore_row(db, asset)
    with store_call("restore asset"):
        db.commit()
    db.refresh(asset)
    return asset
