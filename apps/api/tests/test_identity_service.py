"""Tests for per-customer asset identity issuance."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from assettrack.db.enums import Partition
from assettrack.db.models import Asset, AssetIdentityClaim
from assettrack.services import identity_service
from assettrack.services.errors import BackendUnavailableError, IdentityConflictError


def _make_asset(db, **fields) -> Asset:
    asset = Asset(partition=Partition.LAB_OPS.value, **fields)
    db.add(asset)
    db.commit()
    return asset


def test_normalize_namespace_accepts_small_integer_keys():
    assert identity_service.normalize_namespace("42") == "42"
    assert identity_service.normalize_namespace(" 0042 ") == "42"
    assert identity_service.normalize_namespace(7) == "7"


def test_normalize_namespace_falls_back_to_default():
    assert identity_service.normalize_namespace(None) == "1"
    assert identity_service.normalize_namespace("") == "1"
    assert identity_service.normalize_namespace("0") == "1"
    assert identity_service.normalize_namespace("acme") == "1"
    assert identity_service.normalize_namespace("6f1c2b9e-8d7a-4c3b-9e2f-1a2b3c4d5e6f") == "1"
    assert identity_service.normalize_namespace(True) == "1"


def test_render_identity_honors_configured_width(monkeypatch):
    assert identity_service.render_identity("42", 7) == "42-7"
    monkeypatch.setattr(identity_service.settings, "IDENTITY_SEQUENCE_WIDTH", 4)
    assert identity_service.render_identity("42", 7) == "42-0007"


def test_parse_sequence():
    assert identity_service.parse_sequence("42-17", "42") == 17
    assert identity_service.parse_sequence("42-17", "4") is None
    assert identity_service.parse_sequence("42-abc", "42") is None
    assert identity_service.parse_sequence(None, "42") is None


def test_issue_identity_is_sequential_per_namespace(db):
    first = identity_service.issue_identity(db, "42", Partition.LAB_OPS)
    second = identity_service.issue_identity(db, "42", Partition.LAB_OPS)
    other = identity_service.issue_identity(db, "7", Partition.LAB_OPS)

    assert first == "42-1"
    assert second == "42-2"
    assert other == "7-1"


def test_namespace_is_shared_across_partitions(db):
    assert identity_service.issue_identity(db, "42", Partition.LAB_OPS) == "42-1"
    assert identity_service.issue_identity(db, "42", Partition.GENERAL_OPS) == "42-2"


def test_issue_identity_skips_legacy_asset_identities(db):
    _make_asset(db, name="Imported glove", identity="42-15")

    assert identity_service.issue_identity(db, "42", Partition.LAB_OPS) == "42-16"


def test_identity_is_not_reused_after_soft_delete(db):
    _make_asset(db, name="Old glove", identity="42-1")
    asset = _make_asset(db, name="Newer glove", identity="42-2")
    asset.deleted_at = asset.created_at
    db.commit()

    assert identity_service.issue_identity(db, "42", Partition.LAB_OPS) == "42-3"


def test_issue_identity_retries_after_losing_the_race(db, session_factory, monkeypatch):
    # Another writer claims 42-1 between our read and our insert
    rival = session_factory()
    try:
        assert identity_service.issue_identity(rival, "42", Partition.LAB_OPS) == "42-1"
    finally:
        rival.close()

    real_highest = identity_service._highest_sequence
    calls = {"count": 0}

    def stale_then_fresh(session, namespace):
        calls["count"] += 1
        if calls["count"] == 1:
            return 0
        return real_highest(session, namespace)

    monkeypatch.setattr(identity_service, "_highest_sequence", stale_then_fresh)

    assert identity_service.issue_identity(db, "42", Partition.LAB_OPS) == "42-2"
    assert calls["count"] == 2
    total = db.execute(select(func.count()).select_from(AssetIdentityClaim)).scalar_one()
    assert total == 2


def test_issue_identity_gives_up_after_max_attempts(db, session_factory, monkeypatch):
    rival = session_factory()
    try:
        identity_service.issue_identity(rival, "42", Partition.LAB_OPS)
    finally:
        rival.close()
    monkeypatch.setattr(identity_service, "_highest_sequence", lambda session, namespace: 0)

    with pytest.raises(IdentityConflictError) as exc_info:
        identity_service.issue_identity(db, "42", Partition.LAB_OPS)

    assert exc_info.value.retryable is True


def test_issue_identity_reports_backend_failure(db, monkeypatch):
    def unreachable(session, namespace):
        raise OperationalError("SELECT max(sequence)", {}, Exception("connection refused"))

    monkeypatch.setattr(identity_service, "_highest_sequence", unreachable)

    with pytest.raises(BackendUnavailableError) as exc_info:
        identity_service.issue_identity(db, "42", Partition.LAB_OPS)

    assert exc_info.value.retryable is True


def test_assign_pending_identities_is_idempotent(db):
    pending = _make_asset(
        db,
        name="Glove awaiting identity",
        job_id=None,
        identity=None,
        identity_namespace="42",
        identity_pending=True,
    )

    assigned = identity_service.assign_pending_identities(db, Partition.LAB_OPS)
    assert [a.id for a in assigned] == [pending.id]
    assert assigned[0].identity == "42-1"
    assert assigned[0].identity_pending is False

    assert identity_service.assign_pending_identities(db, Partition.LAB_OPS) == []


def test_identity_survives_failed_follow_up_work(db):
    first = identity_service.issue_identity(db, "42", Partition.LAB_OPS)
    # The caller's own workflow fails after issuance and rolls back
    db.add(Asset(partition=Partition.LAB_OPS.value, name="Half-saved", identity=first))
    db.rollback()

    second = identity_service.issue_identity(db, "42", Partition.LAB_OPS)

    assert (first, second) == ("42-1", "42-2")
