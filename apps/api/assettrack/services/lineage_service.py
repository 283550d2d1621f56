"""Lineage service - link, clone-for-retest, and promote.

All three operations are all-or-nothing: rows are flushed as they are built
and committed once at the end, so a failure or cancellation at any step
leaves nothing behind. Source rows are never modified.
"""

import copy
import logging
import threading
from datetime import datetime, timezone
from typing import Any, TypedDict
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from assettrack.core.cancellation import raise_if_cancelled
from assettrack.core.structured_logging import build_log_context
from assettrack.db.enums import (
    DEFAULT_PROMOTION_STATUS,
    DEFAULT_RETEST_STATUS,
    UNKNOWN_IDENTITY,
    Partition,
    ProjectedStatus,
    ReportKind,
    ReportStatus,
)
from assettrack.db.models import Asset, Job, JobReportLink, ReportMixin
from assettrack.db.record_store import get_row, insert_row, query_rows, store_call, update_row
from assettrack.services import identity_service, report_kinds
from assettrack.services.errors import (
    EmptySourcePayloadError,
    NotFoundError,
    PartitionMismatchError,
    UnsupportedOperationError,
)
from assettrack.services.status_projection_service import normalize_status


logger = logging.getLogger(__name__)

LINEAGE_KEY = report_kinds.LINEAGE_KEY
LINK_ATTEMPTS = 2


class LineageResult(TypedDict):
    """Outcome of a link, clone, or promote call."""

    created: bool  # False when an identical earlier call already did the work
    asset: Asset | None
    report: ReportMixin | None
    link: JobReportLink | None


# =============================================================================
# Loading helpers
# =============================================================================


def _require(
    db: Session, model: type, partition: Partition, row_id: UUID, label: str
) -> Any:
    """
    Load a live row in the partition.

    A row that exists only in another partition is a partition mismatch, not
    a missing row.
    """
    row = get_row(db, model, partition, row_id)
    if row is not None:
        return row
    with store_call(f"locate {label.lower()}"):
        other = db.get(model, row_id)
    if other is not None and getattr(other, "deleted_at", None) is None:
        raise PartitionMismatchError(
            f"{label} {row_id} belongs to partition {other.partition}, not {partition.value}"
        )
    raise NotFoundError(f"{label} {row_id} not found")


def _require_job(db: Session, partition: Partition, job_id: UUID) -> Job:
    return _require(db, Job, partition, job_id, "Job")


def _spec_for(kind: ReportKind | str | None, partition: Partition) -> report_kinds.ReportKindSpec:
    if kind is None:
        raise UnsupportedOperationError("A report kind is required")
    spec = report_kinds.find_spec(kind.value if isinstance(kind, ReportKind) else kind)
    if spec is None:
        raise UnsupportedOperationError(f"Unknown report kind: {kind}")
    if spec.partition != partition:
        raise PartitionMismatchError(
            f"Report kind {spec.kind.value} lives in {spec.partition.value}, not {partition.value}"
        )
    return spec


def _resolve_status(status: ReportStatus | str | None, default: ReportStatus) -> str:
    if status is None:
        return default.value
    projected = normalize_status(status.value if isinstance(status, ReportStatus) else status)
    if projected is ProjectedStatus.UNKNOWN:
        raise UnsupportedOperationError(f"Status must be PASS or FAIL, got {status!r}")
    return projected.value


def _lineage(payload: Any) -> dict[str, Any]:
    value = payload.get(LINEAGE_KEY) if isinstance(payload, dict) else None
    return value if isinstance(value, dict) else {}


def _job_namespace(job: Job) -> str:
    company_key = job.customer.company_key if job.customer is not None else None
    return identity_service.normalize_namespace(company_key)


def _asset_for_report(
    db: Session, partition: Partition, job_id: UUID, spec: report_kinds.ReportKindSpec, report_id: UUID
) -> Asset | None:
    rows = query_rows(
        db,
        Asset,
        partition,
        Asset.job_id == job_id,
        Asset.report_kind == spec.kind.value,
        Asset.report_id == report_id,
        limit=1,
    )
    return rows[0] if rows else None


def _create_report_asset(
    db: Session,
    partition: Partition,
    job: Job,
    spec: report_kinds.ReportKindSpec,
    report: ReportMixin,
    identity: str | None,
    source_asset_id: UUID | None = None,
) -> Asset:
    """Catalog row that makes a new report visible in the job's asset listing."""
    return insert_row(
        db,
        Asset,
        partition,
        name=report_kinds.display_label(spec, report.report_info),
        file_url=report_kinds.report_file_url(spec.kind, job.id, report.id),
        job_id=job.id,
        identity=identity or UNKNOWN_IDENTITY,
        identity_namespace=_job_namespace(job),
        identity_pending=False,
        report_kind=spec.kind.value,
        report_id=report.id,
        source_asset_id=source_asset_id,
    )


def _commit(db: Session, cancel_event: threading.Event | None, step: str) -> None:
    raise_if_cancelled(cancel_event, step)
    with store_call(step):
        db.commit()


# =============================================================================
# Link
# =============================================================================


def _link_master(db: Session, partition: Partition, job: Job, master: Asset) -> LineageResult:
    existing = query_rows(
        db,
        Asset,
        partition,
        Asset.job_id == job.id,
        Asset.source_asset_id == master.id,
        limit=1,
    )
    if existing:
        return LineageResult(created=False, asset=existing[0], report=None, link=None)

    asset = insert_row(
        db,
        Asset,
        partition,
        name=master.name,
        file_url=master.file_url,
        job_id=job.id,
        identity=master.identity,
        identity_namespace=master.identity_namespace,
        identity_pending=master.identity_pending,
        report_kind=master.report_kind,
        report_id=master.report_id,
        source_asset_id=master.id,
    )
    return LineageResult(created=True, asset=asset, report=None, link=None)


def _link_report(
    db: Session,
    partition: Partition,
    job: Job,
    spec: report_kinds.ReportKindSpec,
    report: ReportMixin,
) -> LineageResult:
    if report.job_id == job.id:
        # Already owned by the target job
        return LineageResult(created=False, asset=None, report=report, link=None)

    existing = query_rows(
        db,
        JobReportLink,
        partition,
        JobReportLink.job_id == job.id,
        JobReportLink.report_kind == spec.kind.value,
        JobReportLink.report_id == report.id,
        limit=1,
    )
    if existing:
        return LineageResult(created=False, asset=None, report=report, link=existing[0])

    link = insert_row(
        db,
        JobReportLink,
        partition,
        job_id=job.id,
        report_kind=spec.kind.value,
        report_id=report.id,
    )
    return LineageResult(created=True, asset=None, report=report, link=link)


def _link_once(
    db: Session,
    partition: Partition,
    target_job_id: UUID,
    asset_id: UUID | None,
    report_kind: ReportKind | str | None,
    report_id: UUID | None,
    cancel_event: threading.Event | None,
) -> LineageResult:
    raise_if_cancelled(cancel_event, "loading link target")
    job = _require_job(db, partition, target_job_id)

    if asset_id is not None:
        asset = _require(db, Asset, partition, asset_id, "Asset")
        raise_if_cancelled(cancel_event, "linking asset")
        if asset.is_master:
            result = _link_master(db, partition, job, asset)
        elif asset.report_kind and asset.report_id:
            # A job-scoped asset is attached through the report behind it
            spec = _spec_for(asset.report_kind, partition)
            report = _require(db, spec.model, partition, asset.report_id, "Report")
            result = _link_report(db, partition, job, spec, report)
        else:
            raise UnsupportedOperationError(
                f"Asset {asset_id} belongs to another job and has no report to link"
            )
    else:
        spec = _spec_for(report_kind, partition)
        report = _require(db, spec.model, partition, report_id, "Report")
        raise_if_cancelled(cancel_event, "linking report")
        result = _link_report(db, partition, job, spec, report)

    if result["created"]:
        _commit(db, cancel_event, "committing link")
    return result


def link_record(
    db: Session,
    partition: Partition,
    target_job_id: UUID,
    *,
    asset_id: UUID | None = None,
    report_kind: ReportKind | str | None = None,
    report_id: UUID | None = None,
    cancel_event: threading.Event | None = None,
) -> LineageResult:
    """
    Attach an existing asset or report to a job without copying it.

    - Master asset: a job-scoped asset row pointing at the same identity/report
    - Report owned by another job: a job_report_links row
    - Repeating the call returns the existing attachment with created=False

    Raises:
        NotFoundError: job or record missing or soft-deleted
        PartitionMismatchError: record and job live in different partitions
        UnsupportedOperationError: nothing linkable was given
    """
    if (asset_id is None) == (report_id is None):
        raise UnsupportedOperationError("Provide exactly one of asset_id or report_id")

    for attempt in range(1, LINK_ATTEMPTS + 1):
        try:
            result = _link_once(
                db, partition, target_job_id, asset_id, report_kind, report_id, cancel_event
            )
        except IntegrityError:
            # A concurrent link won the unique constraint; re-read returns it
            db.rollback()
            if attempt == LINK_ATTEMPTS:
                raise
            continue
        except Exception:
            db.rollback()
            raise
        break

    logger.info(
        f"Link {'created' if result['created'] else 'already present'}",
        extra=build_log_context(
            partition=partition.value,
            job_id=str(target_job_id),
            record_id=str(asset_id or report_id),
        ),
    )
    return result


# =============================================================================
# Clone for retest
# =============================================================================


def _existing_clone(
    db: Session,
    partition: Partition,
    spec: report_kinds.ReportKindSpec,
    job_id: UUID,
    source_report_id: UUID,
) -> ReportMixin | None:
    rows = query_rows(
        db,
        spec.model,
        partition,
        spec.model.job_id == job_id,
        order_by=spec.model.created_at,
    )
    source_key = str(source_report_id)
    for row in rows:
        if _lineage(row.report_info).get("sourceReportId") == source_key:
            return row
    return None


def clone_for_retest(
    db: Session,
    partition: Partition,
    report_kind: ReportKind | str,
    source_report_id: UUID,
    target_job_id: UUID,
    *,
    status: ReportStatus | str | None = None,
    cancel_event: threading.Event | None = None,
) -> LineageResult:
    """
    Copy a report into a new row owned by the target job.

    The copy gets its own id, the target job as owner, fresh timestamps, and
    status PASS unless ``status`` says otherwise. The source job survives
    only as ``report_info.lineage.sourceJobId``. A catalog asset row carrying
    the source identity is created alongside it.

    Raises:
        EmptySourcePayloadError: the source has nothing worth copying
        NotFoundError / PartitionMismatchError: see link_record
    """
    spec = _spec_for(report_kind, partition)
    new_status = _resolve_status(status, DEFAULT_RETEST_STATUS)

    try:
        raise_if_cancelled(cancel_event, "loading clone source")
        job = _require_job(db, partition, target_job_id)
        source = _require(db, spec.model, partition, source_report_id, "Report")
        if not report_kinds.has_real_data(spec, source.report_info):
            raise EmptySourcePayloadError(
                f"Report {source_report_id} has no data to copy; start a new report instead"
            )

        existing = _existing_clone(db, partition, spec, job.id, source.id)
        if existing is not None:
            asset = _asset_for_report(db, partition, job.id, spec, existing.id)
            return LineageResult(created=False, asset=asset, report=existing, link=None)

        payload = copy.deepcopy(source.report_info)
        payload[LINEAGE_KEY] = {
            "sourceJobId": str(source.job_id) if source.job_id else None,
            "sourceReportId": str(source.id),
            "sourceReportKind": spec.kind.value,
            "clonedAt": datetime.now(timezone.utc).isoformat(),
        }
        report_kinds.set_payload_status(spec, payload, new_status)
        identity = report_kinds.extract_identity(spec, payload)

        raise_if_cancelled(cancel_event, "creating cloned report")
        report = insert_row(
            db, spec.model, partition, job_id=job.id, report_info=payload, status=new_status
        )
        raise_if_cancelled(cancel_event, "creating cloned asset")
        asset = _create_report_asset(db, partition, job, spec, report, identity)
        _commit(db, cancel_event, "committing clone")
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Cloned {spec.kind.value} report for retest",
        extra=build_log_context(
            partition=partition.value,
            job_id=str(target_job_id),
            record_id=str(report.id),
            report_kind=spec.kind.value,
        ),
    )
    return LineageResult(created=True, asset=asset, report=report, link=None)


# =============================================================================
# Promote
# =============================================================================


def _existing_promotion(
    db: Session,
    partition: Partition,
    spec: report_kinds.ReportKindSpec,
    job_id: UUID,
    master_id: UUID,
) -> ReportMixin | None:
    rows = query_rows(db, spec.model, partition, spec.model.job_id == job_id)
    master_key = str(master_id)
    for row in rows:
        if _lineage(row.report_info).get("promotedFromAssetId") == master_key:
            return row
    return None


def promote_master_asset(
    db: Session,
    partition: Partition,
    master_asset_id: UUID,
    target_job_id: UUID,
    *,
    report_kind: ReportKind | str | None = None,
    status: ReportStatus | str | None = None,
    cancel_event: threading.Event | None = None,
) -> LineageResult:
    """
    Turn a master asset with no report into a job-scoped report.

    Creates a minimal report (PASS by default) carrying the master identity,
    then the same catalog asset row a clone gets. If the master was already
    linked into the job, that row is pointed at the new report instead.
    """
    new_status = _resolve_status(status, DEFAULT_PROMOTION_STATUS)

    try:
        raise_if_cancelled(cancel_event, "loading promotion source")
        job = _require_job(db, partition, target_job_id)
        master = _require(db, Asset, partition, master_asset_id, "Asset")
        if not master.is_master:
            raise UnsupportedOperationError(f"Asset {master_asset_id} is not a master asset")
        if master.report_id is not None:
            raise UnsupportedOperationError(
                f"Asset {master_asset_id} already has a report; link or clone it instead"
            )
        spec = _spec_for(report_kind or master.report_kind, partition)

        existing = _existing_promotion(db, partition, spec, job.id, master.id)
        if existing is not None:
            asset = _asset_for_report(db, partition, job.id, spec, existing.id)
            return LineageResult(created=False, asset=asset, report=existing, link=None)

        payload: dict[str, Any] = {}
        if job.customer is not None:
            payload["customer"] = job.customer.name
            payload["customerId"] = str(job.customer.id)
        if master.identity:
            report_kinds.set_payload_identity(spec, payload, master.identity)
        report_kinds.set_payload_status(spec, payload, new_status)
        payload[LINEAGE_KEY] = {
            "promotedFromAssetId": str(master.id),
            "promotedAt": datetime.now(timezone.utc).isoformat(),
        }

        raise_if_cancelled(cancel_event, "creating promoted report")
        report = insert_row(
            db, spec.model, partition, job_id=job.id, report_info=payload, status=new_status
        )

        raise_if_cancelled(cancel_event, "creating promoted asset")
        linked = query_rows(
            db,
            Asset,
            partition,
            Asset.job_id == job.id,
            Asset.source_asset_id == master.id,
            limit=1,
        )
        if linked and linked[0].report_id is None:
            asset = update_row(
                db,
                linked[0],
                report_kind=spec.kind.value,
                report_id=report.id,
                file_url=report_kinds.report_file_url(spec.kind, job.id, report.id),
            )
        else:
            # A linked row holding another kind's promotion keeps the master reference
            asset = _create_report_asset(
                db,
                partition,
                job,
                spec,
                report,
                master.identity,
                source_asset_id=None if linked else master.id,
            )
        _commit(db, cancel_event, "committing promotion")
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Promoted master asset to {spec.kind.value} report",
        extra=build_log_context(
            partition=partition.value,
            job_id=str(target_job_id),
            record_id=str(report.id),
            report_kind=spec.kind.value,
        ),
    )
    return LineageResult(created=True, asset=asset, report=report, link=None)
