"""Status projection - derive an asset's PASS/FAIL display status.

Best-effort by contract: any missing reference, unknown kind, deleted row, or
store failure projects to UNKNOWN instead of raising.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from assettrack.core.structured_logging import build_log_context
from assettrack.db.enums import ProjectedStatus
from assettrack.db.models import Asset
from assettrack.db.record_store import get_row
from assettrack.services import report_kinds
from assettrack.services.errors import LineageServiceError


logger = logging.getLogger(__name__)


def normalize_status(value: Any) -> ProjectedStatus:
    """Map a raw status value onto PASS / FAIL / UNKNOWN."""
    if not isinstance(value, str):
        return ProjectedStatus.UNKNOWN
    text = value.strip().upper()
    if text == ProjectedStatus.PASS.value:
        return ProjectedStatus.PASS
    if text == ProjectedStatus.FAIL.value:
        return ProjectedStatus.FAIL
    return ProjectedStatus.UNKNOWN


def _report_reference(asset: Asset) -> tuple[str, UUID] | None:
    if asset.report_kind and asset.report_id:
        return asset.report_kind, asset.report_id
    parsed = report_kinds.parse_report_file_url(asset.file_url)
    if parsed is None:
        return None
    slug, raw_id = parsed
    try:
        return slug, UUID(raw_id)
    except ValueError:
        return None


def report_status(spec: report_kinds.ReportKindSpec, report: Any) -> ProjectedStatus:
    """Status of a loaded report row: payload status path first, then the status column."""
    projected = normalize_status(report_kinds.payload_status(spec, report.report_info))
    if projected is ProjectedStatus.UNKNOWN:
        projected = normalize_status(report.status)
    return projected


def project_status(db: Session, asset: Asset) -> ProjectedStatus:
    """
    Project the status of the report an asset points at.

    The kind's payload status path wins over the row's status column.
    """
    reference = _report_reference(asset)
    if reference is None:
        return ProjectedStatus.UNKNOWN
    slug, report_id = reference
    spec = report_kinds.find_spec(slug)
    if spec is None:
        return ProjectedStatus.UNKNOWN

    try:
        report = get_row(db, spec.model, asset.partition, report_id)
    except (LineageServiceError, SQLAlchemyError) as exc:
        logger.warning(
            f"Status lookup failed for asset {asset.id}: {exc}",
            extra=build_log_context(
                partition=asset.partition, record_id=str(asset.id), report_kind=slug
            ),
        )
        # A failed statement aborts the transaction for the rest of a listing
        db.rollback()
        return ProjectedStatus.UNKNOWN
    if report is None:
        return ProjectedStatus.UNKNOWN

    return report_status(spec, report)


def project_statuses(db: Session, assets: list[Asset]) -> dict[UUID, ProjectedStatus]:
    """Project statuses for a listing, keyed by asset id."""
    return {asset.id: project_status(db, asset) for asset in assets}
