"""Identity service - per-customer asset identity issuance.

Identities look like ``<namespace>-<n>`` where the namespace is the
customer's company key. Numbers are claimed in the asset_identity_claims
ledger; the (namespace, sequence) primary key makes the claim atomic, so two
racing writers cannot both get the same number. The loser re-reads and
retries a bounded number of times.
"""

from __future__ import annotations

import copy
import logging
import re
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from assettrack.core.config import settings
from assettrack.core.structured_logging import build_log_context
from assettrack.db.enums import Partition
from assettrack.db.models import Asset, AssetIdentityClaim
from assettrack.db.record_store import query_rows, store_call
from assettrack.services import report_kinds
from assettrack.services.errors import BackendUnavailableError, IdentityConflictError


logger = logging.getLogger(__name__)

_NAMESPACE_PATTERN = re.compile(r"^\d{1,9}$")


# =============================================================================
# Namespace / rendering
# =============================================================================


def normalize_namespace(key: Any) -> str:
    """
    Resolve a customer key to an identity namespace.

    Small positive integer-like keys are used as-is (leading zeros dropped).
    Anything else, including UUID-shaped keys, falls back to the default
    namespace so callers are never blocked on a lookup.
    """
    if key is None or isinstance(key, bool):
        return settings.DEFAULT_IDENTITY_NAMESPACE
    text = str(key).strip()
    if _NAMESPACE_PATTERN.match(text) and int(text) > 0:
        return str(int(text))
    return settings.DEFAULT_IDENTITY_NAMESPACE


def render_identity(namespace: str, sequence: int) -> str:
    """Render a claimed sequence number as an identity code."""
    width = settings.IDENTITY_SEQUENCE_WIDTH
    if width > 0:
        return f"{namespace}-{sequence:0{width}d}"
    return f"{namespace}-{sequence}"


def parse_sequence(code: str | None, namespace: str) -> int | None:
    """Sequence number of a code in the given namespace, or None."""
    if not code:
        return None
    prefix = f"{namespace}-"
    if not code.startswith(prefix):
        return None
    rest = code[len(prefix):]
    if not rest.isdigit():
        return None
    return int(rest)


def _highest_sequence(db: Session, namespace: str) -> int:
    """
    Highest sequence used in a namespace across every partition.

    Considers the claim ledger and identities already stamped on asset rows
    (including soft-deleted ones), so imported identities are never reissued.
    """
    ledger_max = db.execute(
        select(func.max(AssetIdentityClaim.sequence)).where(
            AssetIdentityClaim.namespace == namespace
        )
    ).scalar_one_or_none()
    highest = int(ledger_max or 0)

    legacy_codes = db.execute(
        select(Asset.identity).where(Asset.identity.like(f"{namespace}-%"))
    ).scalars()
    for code in legacy_codes:
        sequence = parse_sequence(code, namespace)
        if sequence is not None and sequence > highest:
            highest = sequence
    return highest


# =============================================================================
# Issuance
# =============================================================================


def issue_identity(db: Session, namespace_key: Any, partition: Partition) -> str:
    """
    Claim the next identity in a customer's namespace.

    Commits the session: a returned identity is durable and is never handed
    out again, even if the caller's own workflow fails afterwards.

    Raises:
        IdentityConflictError: every attempt lost the claim race
        BackendUnavailableError: the store could not be reached
    """
    namespace = normalize_namespace(namespace_key)
    attempts = settings.IDENTITY_CLAIM_MAX_ATTEMPTS
    for attempt in range(1, attempts + 1):
        with store_call("identity lookup"):
            sequence = _highest_sequence(db, namespace) + 1
        code = render_identity(namespace, sequence)
        db.add(
            AssetIdentityClaim(
                namespace=namespace,
                sequence=sequence,
                code=code,
                partition=partition.value,
            )
        )
        try:
            with store_call("identity claim"):
                db.commit()
        except IntegrityError:
            db.rollback()
            logger.info(
                f"Identity {code} already claimed, re-reading (attempt {attempt}/{attempts})",
                extra=build_log_context(partition=partition.value),
            )
            continue
        except BackendUnavailableError:
            db.rollback()
            raise
        logger.info(
            f"Issued identity {code}",
            extra=build_log_context(partition=partition.value),
        )
        return code

    raise IdentityConflictError(
        f"Could not claim an identity in namespace {namespace} after {attempts} attempts"
    )


def assign_pending_identities(db: Session, partition: Partition) -> list[Asset]:
    """
    Issue identities for assets saved while issuance was unavailable.

    Only assets still flagged pending and without an identity are touched,
    so running this again after success is a no-op.
    """
    pending = query_rows(
        db,
        Asset,
        partition,
        Asset.identity_pending.is_(True),
        Asset.identity.is_(None),
        order_by=Asset.created_at,
    )
    pending_ids: list[UUID] = [asset.id for asset in pending]
    assigned: list[Asset] = []
    for asset_id in pending_ids:
        asset = db.get(Asset, asset_id)
        if asset is None or asset.identity is not None:
            continue
        code = issue_identity(db, asset.identity_namespace, partition)
        asset = db.get(Asset, asset_id)
        asset.identity = code
        asset.identity_pending = False
        _stamp_report_identity(db, asset, code)
        with store_call("assign pending identity"):
            db.commit()
        assigned.append(asset)
    return assigned


def _stamp_report_identity(db: Session, asset: Asset, code: str) -> None:
    spec = report_kinds.find_spec(asset.report_kind)
    if spec is None or asset.report_id is None:
        return
    report = db.get(spec.model, asset.report_id)
    if report is None or report_kinds.extract_identity(spec, report.report_info):
        return
    payload = copy.deepcopy(report.report_info or {})
    report_kinds.set_payload_identity(spec, payload, code)
    report.report_info = payload
