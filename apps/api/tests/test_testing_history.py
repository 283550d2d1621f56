"""Tests for asset testing history and summary statistics."""

import uuid
from datetime import datetime

import pytest

from assettrack.db.enums import Partition, TestResult
from assettrack.db.models import AssetTestRecord
from assettrack.services import asset_service, testing_history_service
from assettrack.services.errors import NotFoundError


def _record(test_date: datetime, status: TestResult, rating: float | None) -> AssetTestRecord:
    return AssetTestRecord(
        partition=Partition.LAB_OPS.value,
        asset_id=uuid.uuid4(),
        test_date=test_date,
        test_type="dielectric",
        pass_fail_status=status.value,
        condition_rating=rating,
    )


def test_stats_for_empty_history():
    stats = testing_history_service.calculate_testing_stats([])

    assert stats["total_tests"] == 0
    assert stats["pass_rate"] == 0.0
    assert stats["latest_test_date"] is None
    assert stats["degradation_trend"] == "unknown"
    assert stats["tests_per_year"] == 0.0


def test_stats_for_declining_asset():
    history = [
        _record(datetime(2024, 1, 1), TestResult.FAIL, 6.0),
        _record(datetime(2022, 1, 1), TestResult.PASS, 8.0),
        _record(datetime(2023, 1, 1), TestResult.PASS, 7.0),
    ]

    stats = testing_history_service.calculate_testing_stats(history)

    assert stats["total_tests"] == 3
    assert stats["pass_rate"] == pytest.approx(200 / 3)
    assert stats["average_condition_rating"] == pytest.approx(7.0)
    assert stats["latest_test_date"] == datetime(2024, 1, 1)
    assert stats["degradation_trend"] == "declining"
    assert stats["tests_per_year"] == pytest.approx(3 / (730 / 365.25))


def test_stats_trend_thresholds():
    improving = [
        _record(datetime(2022, 1, 1), TestResult.PASS, 6.0),
        _record(datetime(2023, 1, 1), TestResult.PASS, 7.0),
    ]
    stable = [
        _record(datetime(2022, 1, 1), TestResult.PASS, 7.0),
        _record(datetime(2023, 1, 1), TestResult.PASS, 7.4),
    ]

    assert testing_history_service.calculate_testing_stats(improving)["degradation_trend"] == "improving"
    assert testing_history_service.calculate_testing_stats(stable)["degradation_trend"] == "stable"


def test_single_test_counts_as_one_per_year():
    stats = testing_history_service.calculate_testing_stats(
        [_record(datetime(2024, 6, 1), TestResult.CONDITIONAL, None)]
    )

    assert stats["tests_per_year"] == 1.0
    assert stats["average_condition_rating"] == 0.0
    assert stats["degradation_trend"] == "unknown"


def test_add_list_and_search_records(db):
    asset = asset_service.create_master_asset(db, Partition.LAB_OPS, "Glove pair")
    for year, status, rating in ((2022, TestResult.PASS, 9.0), (2023, TestResult.FAIL, 5.0)):
        testing_history_service.add_test_record(
            db,
            Partition.LAB_OPS,
            asset.id,
            test_date=datetime(year, 3, 1),
            test_type=" dielectric ",
            pass_fail_status=status,
            condition_rating=rating,
        )

    history = testing_history_service.list_test_history(db, Partition.LAB_OPS, asset.id)
    failures = testing_history_service.search_test_records(
        db, Partition.LAB_OPS, pass_fail_status=TestResult.FAIL
    )
    well_rated = testing_history_service.search_test_records(
        db, Partition.LAB_OPS, asset_ids=[asset.id], min_condition_rating=8
    )

    assert [r.test_date.year for r in history] == [2023, 2022]
    assert history[0].test_type == "dielectric"
    assert [r.condition_rating for r in failures] == [5.0]
    assert [r.condition_rating for r in well_rated] == [9.0]


def test_update_record(db):
    asset = asset_service.create_master_asset(db, Partition.LAB_OPS, "Sleeve pair")
    record = testing_history_service.add_test_record(
        db,
        Partition.LAB_OPS,
        asset.id,
        test_date=datetime(2024, 1, 1),
        test_type="dielectric",
        pass_fail_status=TestResult.PASS,
    )

    updated = testing_history_service.update_test_record(
        db, Partition.LAB_OPS, record.id, pass_fail_status=TestResult.FAIL, notes="Pinhole found"
    )

    assert updated.pass_fail_status == "FAIL"
    assert updated.notes == "Pinhole found"


def test_add_record_for_missing_asset(db):
    with pytest.raises(NotFoundError):
        testing_history_service.add_test_record(
            db,
            Partition.LAB_OPS,
            uuid.uuid4(),
            test_date=datetime(2024, 1, 1),
            test_type="dielectric",
            pass_fail_status=TestResult.PASS,
        )
