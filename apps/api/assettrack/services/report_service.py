"""Report service - save, edit, and soft-delete reports of any kind.

Saving a report also maintains its catalog asset row. Identity issuance runs
at most once per save and only when the payload carries no identity yet; if
the issuer is unavailable the report is still saved and its asset is marked
pending, to be filled in by assign_pending_identities later.
"""

import copy
import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from assettrack.core.structured_logging import build_log_context
from assettrack.db.enums import Partition, ProjectedStatus, ReportKind, ReportStatus
from assettrack.db.models import Asset, Job, ReportMixin
from assettrack.db.record_store import (
    get_row,
    insert_row,
    query_rows,
    soft_delete_row,
    store_call,
    update_row,
)
from assettrack.services import identity_service, report_kinds
from assettrack.services.errors import (
    BackendUnavailableError,
    IdentityConflictError,
    NotFoundError,
    PartitionMismatchError,
)
from assettrack.services.status_projection_service import normalize_status


logger = logging.getLogger(__name__)


def _load_job(db: Session, partition: Partition, job_id: UUID) -> Job:
    job = get_row(db, Job, partition, job_id)
    if job is None:
        raise NotFoundError(f"Job {job_id} not found")
    return job


def _namespace_key(job: Job | None, company_key: str | None) -> str | None:
    if company_key:
        return company_key
    if job is not None and job.customer is not None:
        return job.customer.company_key
    return None


def create_report(
    db: Session,
    partition: Partition,
    job_id: UUID | None,
    kind: ReportKind | str,
    payload: dict[str, Any],
    status: ReportStatus = ReportStatus.DRAFT,
    company_key: str | None = None,
) -> tuple[ReportMixin, Asset | None]:
    """
    Save a new report and its catalog asset.

    A report without a job is stored as a TEMPLATE and gets no asset row.

    Returns:
        (report, asset); asset is None for templates.
    """
    spec = report_kinds.get_spec(kind)
    if spec.partition != partition:
        raise PartitionMismatchError(
            f"Report kind {spec.kind.value} lives in {spec.partition.value}, not {partition.value}"
        )
    job = _load_job(db, partition, job_id) if job_id is not None else None
    report_info = copy.deepcopy(payload or {})

    if job is None:
        report = insert_row(
            db,
            spec.model,
            partition,
            job_id=None,
            report_info=report_info,
            status=ReportStatus.TEMPLATE.value,
        )
        with store_call("save template"):
            db.commit()
        db.refresh(report)
        return report, None

    namespace = identity_service.normalize_namespace(_namespace_key(job, company_key))
    identity = report_kinds.extract_identity(spec, report_info)
    pending = False
    if identity is None:
        try:
            identity = identity_service.issue_identity(db, namespace, partition)
        except (BackendUnavailableError, IdentityConflictError) as exc:
            # Save proceeds; identity is assigned once the issuer recovers
            logger.warning(
                f"Identity issuance failed, saving report with pending identity: {exc}",
                extra=build_log_context(partition=partition.value, job_id=str(job_id)),
            )
            pending = True
        else:
            report_kinds.set_payload_identity(spec, report_info, identity)

    try:
        report = insert_row(
            db,
            spec.model,
            partition,
            job_id=job.id,
            report_info=report_info,
            status=status.value,
        )
        asset = insert_row(
            db,
            Asset,
            partition,
            name=report_kinds.display_label(spec, report_info),
            file_url=report_kinds.report_file_url(spec.kind, job.id, report.id),
            job_id=job.id,
            identity=identity,
            identity_namespace=namespace,
            identity_pending=pending,
            report_kind=spec.kind.value,
            report_id=report.id,
        )
        with store_call("save report"):
            db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Saved {spec.kind.value} report",
        extra=build_log_context(
            partition=partition.value,
            job_id=str(job.id),
            record_id=str(report.id),
            report_kind=spec.kind.value,
        ),
    )
    return report, asset


def get_report(
    db: Session,
    partition: Partition,
    kind: ReportKind | str,
    report_id: UUID,
    include_deleted: bool = False,
) -> ReportMixin | None:
    spec = report_kinds.get_spec(kind)
    return get_row(db, spec.model, partition, report_id, include_deleted=include_deleted)


def list_job_reports(
    db: Session, partition: Partition, kind: ReportKind | str, job_id: UUID
) -> list[ReportMixin]:
    """Live reports of one kind owned by a job, newest first."""
    spec = report_kinds.get_spec(kind)
    return query_rows(
        db,
        spec.model,
        partition,
        spec.model.job_id == job_id,
        order_by=spec.model.created_at.desc(),
    )


def _carry_lineage(stored: Any, edited: dict[str, Any]) -> dict[str, Any]:
    """Replace whatever lineage the edit carries with the stored one."""
    edited.pop(report_kinds.LINEAGE_KEY, None)
    if isinstance(stored, dict) and report_kinds.LINEAGE_KEY in stored:
        edited[report_kinds.LINEAGE_KEY] = copy.deepcopy(stored[report_kinds.LINEAGE_KEY])
    return edited


def update_report(
    db: Session,
    partition: Partition,
    kind: ReportKind | str,
    report_id: UUID,
    payload: dict[str, Any] | None = None,
    status: ReportStatus | None = None,
) -> ReportMixin:
    """
    Edit a report in place.

    The asset row's display name and identity follow the payload, except
    that an identity already stamped on the asset is never replaced by an
    empty one. The stored lineage section is carried over unchanged; a
    PASS or FAIL status is also written to the kind's payload status fields
    so the projected status follows the edit.
    """
    spec = report_kinds.get_spec(kind)
    report = get_row(db, spec.model, partition, report_id)
    if report is None:
        raise NotFoundError(f"Report {report_id} not found")

    fields: dict[str, Any] = {}
    report_info = None
    if payload is not None:
        report_info = _carry_lineage(report.report_info, copy.deepcopy(payload))
    if status is not None:
        fields["status"] = status.value
        if normalize_status(status.value) is not ProjectedStatus.UNKNOWN:
            if report_info is None:
                report_info = copy.deepcopy(report.report_info or {})
            report_kinds.set_payload_status(spec, report_info, status.value)
    if report_info is not None:
        fields["report_info"] = report_info
    if not fields:
        return report

    try:
        update_row(db, report, **fields)
        assets = query_rows(
            db,
            Asset,
            partition,
            Asset.report_kind == spec.kind.value,
            Asset.report_id == report.id,
        )
        if payload is not None:
            identity = report_kinds.extract_identity(spec, report.report_info)
            for asset in assets:
                changes: dict[str, Any] = {
                    "name": report_kinds.display_label(spec, report.report_info)
                }
                if identity:
                    changes["identity"] = identity
                    changes["identity_pending"] = False
                update_row(db, asset, **changes)
        with store_call("update report"):
            db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(report)
    return report


def soft_delete_report(
    db: Session, partition: Partition, kind: ReportKind | str, report_id: UUID
) -> ReportMixin:
    """
    Soft-delete a report and the catalog assets that point at it.

    Rows stay in place with deleted_at set; nothing is removed.
    """
    spec = report_kinds.get_spec(kind)
    report = get_row(db, spec.model, partition, report_id)
    if report is None:
        raise NotFoundError(f"Report {report_id} not found")
    try:
        soft_delete_row(db, report)
        for asset in query_rows(
            db,
            Asset,
            partition,
            Asset.report_kind == spec.kind.value,
            Asset.report_id == report.id,
        ):
            soft_delete_row(db, asset)
        with store_call("delete report"):
            db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(
        f"Soft-deleted {spec.kind.value} report",
        extra=build_log_context(
            partition=partition.value, record_id=str(report.id), report_kind=spec.kind.value
        ),
    )
    return report
