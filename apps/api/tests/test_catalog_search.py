"""Tests for catalog search: matching, de-duplication, exclusion, and failure isolation."""

import logging
import threading
from datetime import datetime, timedelta, timezone

import pytest

from assettrack.db.enums import Partition, ReportKind, ReportStatus
from assettrack.db.models import Asset
from assettrack.services import (
    asset_service,
    catalog_search_service,
    lineage_service,
    report_service,
)
from assettrack.services.errors import OperationCancelledError


def _make_master(db, name: str, identity: str, partition: Partition = Partition.LAB_OPS) -> Asset:
    asset = Asset(partition=partition.value, name=name, identity=identity, job_id=None)
    db.add(asset)
    db.commit()
    return asset


def _save_glove_report(db, job, identity: str, customer: str = "Acme Utilities"):
    return report_service.create_report(
        db,
        Partition.LAB_OPS,
        job.id,
        ReportKind.CALIBRATION_GLOVES,
        {"customer": customer, "gloveData": {"assetId": identity, "manufacturer": "Salisbury"}},
        status=ReportStatus.PASS,
    )


def test_short_query_returns_nothing(db, lab_job):
    _save_glove_report(db, lab_job, "G-100")

    assert catalog_search_service.search_catalog(db, Partition.LAB_OPS, "G") == []
    assert catalog_search_service.search_catalog(db, Partition.LAB_OPS, "  ") == []


def test_master_wins_over_reports_with_same_identity(db, lab_job):
    master = _make_master(db, "Truck 7", "BT-004")
    report_service.create_report(
        db,
        Partition.LAB_OPS,
        lab_job.id,
        ReportKind.CALIBRATION_BUCKET_TRUCK,
        {"customer": "Acme Utilities", "bucketTruckData": {"assetId": "BT-004"}},
    )

    results = catalog_search_service.search_catalog(db, Partition.LAB_OPS, "BT-004")

    assert len(results) == 1
    assert results[0]["record_id"] == str(master.id)
    assert results[0]["is_master"] is True
    assert results[0]["source"] == "asset"


def test_report_is_offered_once_not_with_its_asset_row(db, lab_job):
    report, asset = _save_glove_report(db, lab_job, "G-100")

    results = catalog_search_service.search_catalog(db, Partition.LAB_OPS, "G-100")

    assert [r["record_id"] for r in results] == [str(report.id)]
    assert results[0]["source"] == "report"
    assert results[0]["report_kind"] == "calibration-gloves"
    assert results[0]["status"] == "PASS"
    assert results[0]["identity"] == "G-100"


def test_search_matches_customer_and_equipment_fields(db, lab_job):
    report, _ = _save_glove_report(db, lab_job, "G-100", customer="Northwind Power")

    by_customer = catalog_search_service.search_catalog(db, Partition.LAB_OPS, "northwind")
    by_maker = catalog_search_service.search_catalog(db, Partition.LAB_OPS, "salis")

    assert str(report.id) in [r["record_id"] for r in by_customer]
    assert str(report.id) in [r["record_id"] for r in by_maker]


def test_search_matches_non_ascii_payload_text(db, lab_job):
    report, _ = _save_glove_report(db, lab_job, "G-7", customer="Müller Energie")
    template, _ = report_service.create_report(
        db, Partition.LAB_OPS, None, ReportKind.METER_TEMPLATE, {"customer": "Jürgen Elektro"}
    )

    by_customer = catalog_search_service.search_catalog(db, Partition.LAB_OPS, "Müller")
    by_template = catalog_search_service.search_catalog(db, Partition.LAB_OPS, "Jürgen")

    assert [(r["source"], r["record_id"]) for r in by_customer] == [("report", str(report.id))]
    assert [r["record_id"] for r in by_template] == [str(template.id)]


def test_like_wildcards_are_literal(db, lab_job):
    _save_glove_report(db, lab_job, "G-100")

    assert catalog_search_service.search_catalog(db, Partition.LAB_OPS, "%%") == []
    assert catalog_search_service.search_catalog(db, Partition.LAB_OPS, "G_100") == []


def test_records_owned_by_current_job_are_excluded(db, lab_job, other_lab_job):
    _save_glove_report(db, lab_job, "G-100")

    for_same_job = catalog_search_service.search_catalog(
        db, Partition.LAB_OPS, "G-100", current_job_id=lab_job.id
    )
    for_other_job = catalog_search_service.search_catalog(
        db, Partition.LAB_OPS, "G-100", current_job_id=other_lab_job.id
    )

    assert for_same_job == []
    assert len(for_other_job) == 1


def test_linked_records_are_excluded_for_that_job(db, lab_job, other_lab_job):
    report, _ = _save_glove_report(db, lab_job, "G-100")
    master = _make_master(db, "Spare glove", "G-200")
    lineage_service.link_record(
        db,
        Partition.LAB_OPS,
        other_lab_job.id,
        report_kind=ReportKind.CALIBRATION_GLOVES,
        report_id=report.id,
    )
    lineage_service.link_record(db, Partition.LAB_OPS, other_lab_job.id, asset_id=master.id)

    linked_report = catalog_search_service.search_catalog(
        db, Partition.LAB_OPS, "G-100", current_job_id=other_lab_job.id
    )
    linked_master = catalog_search_service.search_catalog(
        db, Partition.LAB_OPS, "G-200", current_job_id=other_lab_job.id
    )
    unscoped = catalog_search_service.search_catalog(db, Partition.LAB_OPS, "G-200")

    assert linked_report == []
    assert linked_master == []
    assert [r["record_id"] for r in unscoped] == [str(master.id)]


def test_soft_deleted_records_are_hidden(db, lab_job):
    report, _ = _save_glove_report(db, lab_job, "G-100")
    master = _make_master(db, "Old truck", "BT-009")
    report_service.soft_delete_report(db, Partition.LAB_OPS, ReportKind.CALIBRATION_GLOVES, report.id)
    master.deleted_at = datetime.now(timezone.utc)
    db.commit()

    assert catalog_search_service.search_catalog(db, Partition.LAB_OPS, "G-100") == []
    assert catalog_search_service.search_catalog(db, Partition.LAB_OPS, "BT-009") == []


def test_search_stays_in_partition_unless_unscoped(db, lab_job, neta_job):
    _save_glove_report(db, lab_job, "SHARED-1")
    report_service.create_report(
        db,
        Partition.GENERAL_OPS,
        neta_job.id,
        ReportKind.PANELBOARD,
        {"customer": "Volt Energy", "identifier": "SHARED-2"},
    )

    lab = catalog_search_service.search_catalog(db, Partition.LAB_OPS, "SHARED")
    everywhere = catalog_search_service.search_catalog(db, None, "SHARED")

    assert {r["partition"] for r in lab} == {"lab_ops"}
    assert {r["partition"] for r in everywhere} == {"lab_ops", "neta_ops"}


def test_masters_sort_first_then_most_recent(db, lab_job):
    older, _ = _save_glove_report(db, lab_job, "G-301")
    newer, _ = _save_glove_report(db, lab_job, "G-302")
    older.updated_at = datetime.now(timezone.utc) - timedelta(days=30)
    db.commit()
    master = _make_master(db, "Glove G-3 bin", "G-3-BIN")

    results = catalog_search_service.search_catalog(db, Partition.LAB_OPS, "G-3")

    assert [r["record_id"] for r in results] == [str(master.id), str(newer.id), str(older.id)]


def test_limit_caps_results(db, lab_job):
    for n in range(5):
        _save_glove_report(db, lab_job, f"G-40{n}")

    results = catalog_search_service.search_catalog(db, Partition.LAB_OPS, "G-40", limit=3)

    assert len(results) == 3


def test_failing_table_is_logged_and_skipped(db, lab_job, caplog, monkeypatch):
    report, _ = _save_glove_report(db, lab_job, "G-500")
    real_subquery = catalog_search_service._report_subquery

    def flaky(spec, needle):
        if spec.kind == ReportKind.CALIBRATION_SLEEVE:
            def broken(session):
                raise RuntimeError("relation calibration_sleeve_reports is unavailable")

            return broken
        return real_subquery(spec, needle)

    monkeypatch.setattr(catalog_search_service, "_report_subquery", flaky)
    caplog.set_level(logging.WARNING)

    results = catalog_search_service.search_catalog(db, Partition.LAB_OPS, "G-500")

    assert [r["record_id"] for r in results] == [str(report.id)]
    assert any(
        "calibration_sleeve_reports" in record.getMessage()
        for record in caplog.records
        if record.levelno == logging.WARNING
    )


def test_concurrent_search_matches_sequential(db, lab_job, session_factory):
    _make_master(db, "Glove bin", "G-600")
    for n in range(3):
        _save_glove_report(db, lab_job, f"G-60{n + 1}")

    sequential = catalog_search_service.search_catalog(db, Partition.LAB_OPS, "G-60")
    concurrent = catalog_search_service.search_catalog(
        db, Partition.LAB_OPS, "G-60", session_factory=session_factory, max_workers=3
    )

    assert [r["record_id"] for r in concurrent] == [r["record_id"] for r in sequential]
    assert len(concurrent) == 4


def test_cancelled_search_raises(db, lab_job):
    _save_glove_report(db, lab_job, "G-700")
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(OperationCancelledError):
        catalog_search_service.search_catalog(db, Partition.LAB_OPS, "G-700", cancel_event=cancel)


def test_soft_deleted_asset_leaves_search_but_direct_lookup_keeps_it(db):
    master = _make_master(db, "Truck 9", "BT-010")
    assert len(catalog_search_service.search_catalog(db, Partition.LAB_OPS, "BT-010")) == 1

    asset_service.soft_delete_asset(db, Partition.LAB_OPS, master.id)

    assert catalog_search_service.search_catalog(db, Partition.LAB_OPS, "BT-010") == []
    direct = asset_service.get_asset(db, Partition.LAB_OPS, master.id, include_deleted=True)
    assert direct is not None
    assert direct.deleted_at is not None
