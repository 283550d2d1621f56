"""Catalog search - locate existing assets and reports to reuse on a job.

Provides:
- Free-text search over the asset catalog and every report-kind table
- One actionable candidate per physical item (masters win over reports)
- Exclusion of records already attached to the current job
- Per-table failure isolation: a broken table is logged and skipped
- Optional fan-out of the per-table sub-queries over a bounded thread pool
"""

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, TypedDict
from uuid import UUID

from sqlalchemy import String, cast, or_, select
from sqlalchemy.orm import Session

from assettrack.core.cancellation import raise_if_cancelled
from assettrack.core.config import settings
from assettrack.core.structured_logging import build_log_context
from assettrack.db.enums import Partition
from assettrack.db.models import Asset, JobReportLink
from assettrack.db.record_store import store_call
from assettrack.services import report_kinds
from assettrack.services.errors import OperationCancelledError
from assettrack.services.status_projection_service import report_status


logger = logging.getLogger(__name__)

SOURCE_ASSET = "asset"
SOURCE_REPORT = "report"


# =============================================================================
# Types
# =============================================================================


class CatalogCandidate(TypedDict):
    """A single reusable record offered for a job."""

    source: str  # "asset" or "report"
    record_id: str
    report_kind: str | None
    display_name: str
    identity: str | None
    job_id: str | None
    partition: str
    is_master: bool
    status: str | None  # PASS / FAIL / UNKNOWN for reports, None for assets
    updated_at: datetime | None
    # Report an asset candidate points at, used for de-duplication
    report_id: str | None


SubQuery = Callable[[Session], list[CatalogCandidate]]


# =============================================================================
# Sub-queries
# =============================================================================


def _like_pattern(needle: str) -> str:
    escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _asset_subquery(partitions: list[Partition], needle: str) -> SubQuery:
    pattern = _like_pattern(needle)

    def run(session: Session) -> list[CatalogCandidate]:
        stmt = select(Asset).where(
            Asset.partition.in_([p.value for p in partitions]),
            Asset.deleted_at.is_(None),
            or_(
                Asset.name.ilike(pattern, escape="\\"),
                Asset.identity.ilike(pattern, escape="\\"),
            ),
        )
        with store_call("search assets"):
            rows = session.execute(stmt).scalars().all()
        return [
            CatalogCandidate(
                source=SOURCE_ASSET,
                record_id=str(asset.id),
                report_kind=asset.report_kind,
                display_name=asset.name,
                identity=asset.identity,
                job_id=str(asset.job_id) if asset.job_id else None,
                partition=asset.partition,
                is_master=asset.is_master,
                status=None,
                updated_at=asset.updated_at,
                report_id=str(asset.report_id) if asset.report_id else None,
            )
            for asset in rows
        ]

    return run


def _serialized_patterns(needle: str) -> list[str]:
    """LIKE patterns for the needle as it may appear inside serialized JSON."""
    patterns = [_like_pattern(needle)]
    # The JSON column writes non-ASCII text as \uXXXX escapes
    escaped = json.dumps(needle)[1:-1]
    if escaped != needle:
        patterns.append(_like_pattern(escaped))
    return patterns


def _report_subquery(spec: report_kinds.ReportKindSpec, needle: str) -> SubQuery:
    patterns = _serialized_patterns(needle)
    lowered = needle.lower()

    def run(session: Session) -> list[CatalogCandidate]:
        model = spec.model
        serialized = cast(model.report_info, String)
        # Coarse filter on the serialized payload; exact field matching below
        stmt = select(model).where(
            model.partition == spec.partition.value,
            model.deleted_at.is_(None),
            or_(*(serialized.ilike(pattern, escape="\\") for pattern in patterns)),
        )
        with store_call(f"search {spec.table_name}"):
            rows = session.execute(stmt).scalars().all()

        candidates: list[CatalogCandidate] = []
        for report in rows:
            values = report_kinds.searchable_values(spec, report.report_info)
            if not any(lowered in value.lower() for value in values):
                continue
            candidates.append(
                CatalogCandidate(
                    source=SOURCE_REPORT,
                    record_id=str(report.id),
                    report_kind=spec.kind.value,
                    display_name=report_kinds.display_label(spec, report.report_info),
                    identity=report_kinds.extract_identity(spec, report.report_info),
                    job_id=str(report.job_id) if report.job_id else None,
                    partition=report.partition,
                    is_master=False,
                    status=report_status(spec, report).value,
                    updated_at=report.updated_at,
                    report_id=str(report.id),
                )
            )
        return candidates

    return run


def _guarded(name: str, subquery: SubQuery, cancel_event: threading.Event | None) -> SubQuery:
    """Wrap a sub-query so a failure is logged and contributes nothing."""

    def run(session: Session) -> list[CatalogCandidate]:
        raise_if_cancelled(cancel_event, f"searching {name}")
        try:
            return subquery(session)
        except OperationCancelledError:
            raise
        except Exception as exc:
            logger.warning(
                f"Catalog search skipped {name}: {exc}",
                extra=build_log_context(route="catalog_search"),
            )
            session.rollback()
            return []

    return run


def _run_sequential(
    db: Session,
    subqueries: list[tuple[str, SubQuery]],
    cancel_event: threading.Event | None,
) -> list[list[CatalogCandidate]]:
    return [_guarded(name, subquery, cancel_event)(db) for name, subquery in subqueries]


def _run_concurrent(
    session_factory: Callable[[], Session],
    subqueries: list[tuple[str, SubQuery]],
    cancel_event: threading.Event | None,
    max_workers: int,
) -> list[list[CatalogCandidate]]:
    def run_in_own_session(name: str, subquery: SubQuery) -> list[CatalogCandidate]:
        guarded = _guarded(name, subquery, cancel_event)
        session = session_factory()
        try:
            return guarded(session)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [pool.submit(run_in_own_session, name, sq) for name, sq in subqueries]
        results: list[list[CatalogCandidate]] = []
        try:
            # Collected in submission order, not completion order
            for future in futures:
                results.append(future.result())
                raise_if_cancelled(cancel_event, "merging search results")
        except OperationCancelledError:
            for future in futures:
                future.cancel()
            raise
    return results


# =============================================================================
# Merge helpers
# =============================================================================


def _current_job_attachments(
    db: Session, job_id: UUID
) -> tuple[set[tuple[str, str]], set[str]]:
    """Report keys linked into a job and master ids already linked or promoted into it."""
    with store_call("load current job attachments"):
        links = db.execute(
            select(JobReportLink.report_kind, JobReportLink.report_id).where(
                JobReportLink.job_id == job_id
            )
        ).all()
        sources = db.execute(
            select(Asset.source_asset_id).where(
                Asset.job_id == job_id,
                Asset.source_asset_id.is_not(None),
                Asset.deleted_at.is_(None),
            )
        ).scalars().all()
    linked_reports = {(kind, str(report_id)) for kind, report_id in links}
    linked_masters = {str(source_id) for source_id in sources}
    return linked_reports, linked_masters


def _is_attached(
    candidate: CatalogCandidate,
    job_id: str,
    linked_reports: set[tuple[str, str]],
    linked_masters: set[str],
) -> bool:
    if candidate["job_id"] == job_id:
        return True
    if candidate["source"] == SOURCE_ASSET and candidate["record_id"] in linked_masters:
        return True
    if candidate["report_kind"] and candidate["report_id"]:
        if (candidate["report_kind"], candidate["report_id"]) in linked_reports:
            return True
    return False


def _identity_key(identity: str | None) -> str | None:
    if not identity:
        return None
    return identity.strip().casefold() or None


def _dedupe(candidates: list[CatalogCandidate]) -> list[CatalogCandidate]:
    """
    Keep one candidate per physical item.

    - Anything non-master sharing a master's identity is dropped
    - A job-scoped asset whose report is itself a candidate is dropped
    - Exact duplicates (same source and record) collapse to the first seen
    """
    master_identities = {
        key
        for key in (_identity_key(c["identity"]) for c in candidates if c["is_master"])
        if key
    }
    report_keys = {
        (c["report_kind"], c["record_id"]) for c in candidates if c["source"] == SOURCE_REPORT
    }

    seen: set[tuple[str, str]] = set()
    kept: list[CatalogCandidate] = []
    for candidate in candidates:
        key = (candidate["source"], candidate["record_id"])
        if key in seen:
            continue
        seen.add(key)
        if not candidate["is_master"]:
            if _identity_key(candidate["identity"]) in master_identities:
                continue
            if (
                candidate["source"] == SOURCE_ASSET
                and (candidate["report_kind"], candidate["report_id"]) in report_keys
            ):
                continue
        kept.append(candidate)
    return kept


def _timestamp(value: datetime | None) -> float:
    if value is None:
        return 0.0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _sort_key(candidate: CatalogCandidate) -> tuple[int, float, str, str]:
    return (
        0 if candidate["is_master"] else 1,
        -_timestamp(candidate["updated_at"]),
        candidate["source"],
        candidate["record_id"],
    )


# =============================================================================
# Search
# =============================================================================


def search_catalog(
    db: Session,
    partition: Partition | None,
    query: str,
    current_job_id: UUID | None = None,
    limit: int | None = None,
    cancel_event: threading.Event | None = None,
    session_factory: Callable[[], Session] | None = None,
    max_workers: int | None = None,
) -> list[CatalogCandidate]:
    """
    Search assets and reports for records that can be linked, cloned, or promoted.

    Args:
        partition: Partition to search, or None for every partition
        query: Free text matched against identity, customer, and equipment fields
        current_job_id: Job being worked on; records already attached are excluded
        session_factory: When given, per-table sub-queries run concurrently,
            each on its own session

    Returns:
        Candidates ordered masters first, then most recently updated.
    """
    needle = (query or "").strip()
    if len(needle) < settings.CATALOG_SEARCH_MIN_CHARS:
        return []

    partitions = [partition] if partition is not None else list(Partition)
    subqueries: list[tuple[str, SubQuery]] = [("assets", _asset_subquery(partitions, needle))]
    for spec in report_kinds.kinds_for_partitions(partitions):
        subqueries.append((spec.table_name, _report_subquery(spec, needle)))

    raise_if_cancelled(cancel_event, "catalog search")
    if session_factory is not None:
        workers = max_workers or settings.CATALOG_SEARCH_MAX_WORKERS
        batches = _run_concurrent(session_factory, subqueries, cancel_event, workers)
    else:
        batches = _run_sequential(db, subqueries, cancel_event)
    raise_if_cancelled(cancel_event, "merging search results")

    merged = _dedupe([candidate for batch in batches for candidate in batch])
    if current_job_id is not None:
        linked_reports, linked_masters = _current_job_attachments(db, current_job_id)
        job_key = str(current_job_id)
        merged = [
            c for c in merged if not _is_attached(c, job_key, linked_reports, linked_masters)
        ]

    results = sorted(merged, key=_sort_key)
    max_results = limit if limit is not None else settings.CATALOG_SEARCH_LIMIT
    logger.info(
        f"Catalog search returned {min(len(results), max_results)} of {len(results)} candidates",
        extra=build_log_context(
            partition=partition.value if partition else None,
            job_id=str(current_job_id) if current_job_id else None,
        ),
    )
    return results[:max_results]
