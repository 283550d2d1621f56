"""Tests for job creation and job numbering."""

import uuid
from datetime import datetime, timezone

import pytest

from assettrack.db.enums import Division, JobStatus, Partition
from assettrack.services import customer_service, job_service
from assettrack.services.errors import NotFoundError, PartitionMismatchError


def test_division_selects_partition(db, lab_customer, neta_customer):
    lab = job_service.create_job(db, Division.ARMADILLO, lab_customer.id, "Armadillo work")
    neta = job_service.create_job(db, Division.TENNESSEE, neta_customer.id, "Plant outage")

    assert lab.partition == Partition.LAB_OPS.value
    assert neta.partition == Partition.GENERAL_OPS.value
    assert lab.status == JobStatus.PENDING.value


def test_calibration_numbers_restart_each_year(db, lab_customer):
    year = datetime.now(timezone.utc).year % 100

    first = job_service.create_job(db, Division.CALIBRATION, lab_customer.id, "First")
    second = job_service.create_job(db, Division.CALIBRATION, lab_customer.id, "Second")

    assert first.job_number == f"1{year:02d}001"
    assert second.job_number == f"1{year:02d}002"
    next_year = datetime(2000 + year + 1, 1, 2, tzinfo=timezone.utc)
    next_number = job_service.generate_job_number(db, Division.CALIBRATION, now=next_year)
    assert next_number == f"1{(year + 1) % 100:02d}001"


def test_calibration_sequence_grows_past_999(db, monkeypatch):
    in_2026 = datetime(2026, 6, 1, tzinfo=timezone.utc)
    numbers = ["126998", "126999"]
    monkeypatch.setattr(job_service, "_existing_numbers", lambda *args: list(numbers))

    assert job_service.generate_job_number(db, Division.CALIBRATION, now=in_2026) == "1261000"
    numbers.append("1261000")
    assert job_service.generate_job_number(db, Division.CALIBRATION, now=in_2026) == "1261001"


def test_armadillo_and_general_number_formats(db, lab_customer, neta_customer):
    armadillo = job_service.create_job(db, Division.ARMADILLO, lab_customer.id, "A1")
    armadillo_2 = job_service.create_job(db, Division.ARMADILLO, lab_customer.id, "A2")
    general = job_service.create_job(db, Division.GEORGIA, neta_customer.id, "G1")

    assert armadillo.job_number == "AS-1"
    assert armadillo_2.job_number == "AS-2"
    assert general.job_number == "J-00001"


def test_job_number_conflict_is_retried(db, lab_customer, monkeypatch):
    taken = job_service.create_job(db, Division.ARMADILLO, lab_customer.id, "Existing")
    real_generate = job_service.generate_job_number
    calls = {"count": 0}

    def collide_once(session, division, now=None):
        calls["count"] += 1
        if calls["count"] == 1:
            return taken.job_number
        return real_generate(session, division, now)

    monkeypatch.setattr(job_service, "generate_job_number", collide_once)

    job = job_service.create_job(db, Division.ARMADILLO, lab_customer.id, "Racing")

    assert calls["count"] == 2
    assert job.job_number == "AS-2"


def test_customer_from_other_partition_is_refused(db, neta_customer):
    with pytest.raises(PartitionMismatchError):
        job_service.create_job(db, Division.CALIBRATION, neta_customer.id, "Wrong side")


def test_missing_customer_is_not_found(db):
    with pytest.raises(NotFoundError):
        job_service.create_job(db, Division.CALIBRATION, uuid.uuid4(), "Nobody")


def test_list_jobs_filters(db, lab_customer):
    other = customer_service.create_customer(db, Partition.LAB_OPS, "Other Co", "9")
    mine = job_service.create_job(db, Division.CALIBRATION, lab_customer.id, "Mine")
    job_service.create_job(db, Division.CALIBRATION, other.id, "Theirs")
    job_service.update_job_status(db, mine, JobStatus.IN_PROGRESS)

    by_customer = job_service.list_jobs(db, Partition.LAB_OPS, customer_id=lab_customer.id)
    in_progress = job_service.list_jobs(db, Partition.LAB_OPS, status=JobStatus.IN_PROGRESS)
    general = job_service.list_jobs(db, Partition.GENERAL_OPS)

    assert [j.id for j in by_customer] == [mine.id]
    assert [j.id for j in in_progress] == [mine.id]
    assert general == []
