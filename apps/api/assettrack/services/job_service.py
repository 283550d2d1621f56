"""Job service - job creation with per-division job numbers."""

import logging
import re
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from assettrack.core.config import settings
from assettrack.core.structured_logging import build_log_context
from assettrack.db.enums import Division, JobStatus, Partition
from assettrack.db.models import Customer, Job
from assettrack.db.record_store import get_row, query_rows, store_call
from assettrack.services.errors import NotFoundError, PartitionMismatchError


logger = logging.getLogger(__name__)

ARMADILLO_PREFIX = "AS-"
GENERAL_PREFIX = "J-"
GENERAL_WIDTH = 5

# Sequence is zero-padded to three digits and keeps growing past 999
_CALIBRATION_PATTERN = re.compile(r"^1\d{5,}$")


# =============================================================================
# Job numbers
# =============================================================================


def _existing_numbers(db: Session, partition: Partition, prefix: str) -> list[str]:
    with store_call("read job numbers"):
        return list(
            db.execute(
                select(Job.job_number).where(
                    Job.partition == partition.value,
                    Job.job_number.like(f"{prefix}%"),
                )
            ).scalars()
        )


def _highest_suffix(numbers: list[str], prefix: str) -> int:
    highest = 0
    for number in numbers:
        suffix = number[len(prefix):]
        if suffix.isdigit() and int(suffix) > highest:
            highest = int(suffix)
    return highest


def generate_job_number(db: Session, division: Division, now: datetime | None = None) -> str:
    """
    Next job number for a division.

    - calibration: 1YYNNN (1, two-digit year, sequence per year of at least 3 digits)
    - armadillo: AS-N
    - everything else: J-NNNNN
    """
    partition = division.partition
    if division == Division.CALIBRATION:
        year = (now or datetime.now(timezone.utc)).year % 100
        prefix = f"1{year:02d}"
        numbers = [
            n for n in _existing_numbers(db, partition, prefix) if _CALIBRATION_PATTERN.match(n)
        ]
        return f"{prefix}{_highest_suffix(numbers, prefix) + 1:03d}"
    if division == Division.ARMADILLO:
        numbers = _existing_numbers(db, partition, ARMADILLO_PREFIX)
        return f"{ARMADILLO_PREFIX}{_highest_suffix(numbers, ARMADILLO_PREFIX) + 1}"
    numbers = _existing_numbers(db, partition, GENERAL_PREFIX)
    next_number = _highest_suffix(numbers, GENERAL_PREFIX) + 1
    return f"{GENERAL_PREFIX}{next_number:0{GENERAL_WIDTH}d}"


def _is_job_number_conflict(error: IntegrityError) -> bool:
    constraint_name = getattr(getattr(error.orig, "diag", None), "constraint_name", None)
    if constraint_name == "uq_jobs_partition_number":
        return True
    message = str(error.orig) if error.orig else str(error)
    return "uq_jobs_partition_number" in message or "jobs.job_number" in message


# =============================================================================
# CRUD
# =============================================================================


def create_job(
    db: Session,
    division: Division,
    customer_id: UUID | None,
    title: str,
) -> Job:
    """
    Create a job. The division decides the partition and the number format.

    Raises:
        NotFoundError: customer does not exist
        PartitionMismatchError: customer belongs to the other partition
    """
    partition = division.partition
    if customer_id is not None:
        customer = get_row(db, Customer, partition, customer_id)
        if customer is None:
            with store_call("locate customer"):
                other = db.get(Customer, customer_id)
            if other is not None:
                raise PartitionMismatchError(
                    f"Customer {customer_id} belongs to partition {other.partition}"
                )
            raise NotFoundError(f"Customer {customer_id} not found")

    attempts = settings.JOB_NUMBER_MAX_ATTEMPTS
    job = None
    for attempt in range(attempts):
        job = Job(
            partition=partition.value,
            division=division.value,
            customer_id=customer_id,
            job_number=generate_job_number(db, division),
            title=title.strip(),
            status=JobStatus.PENDING.value,
        )
        db.add(job)
        try:
            with store_call("create job"):
                db.commit()
            db.refresh(job)
            break
        except IntegrityError as exc:
            db.rollback()
            if _is_job_number_conflict(exc) and attempt < attempts - 1:
                logger.info(
                    f"Job number {job.job_number} taken, retrying",
                    extra=build_log_context(partition=partition.value),
                )
                continue
            raise

    logger.info(
        f"Created job {job.job_number}",
        extra=build_log_context(partition=partition.value, job_id=str(job.id)),
    )
    return job


def get_job(db: Session, partition: Partition, job_id: UUID) -> Job | None:
    """Get a single job by ID within a partition."""
    return get_row(db, Job, partition, job_id)


def list_jobs(
    db: Session,
    partition: Partition,
    customer_id: UUID | None = None,
    status: JobStatus | None = None,
    limit: int | None = None,
) -> list[Job]:
    """List jobs in a partition, newest first."""
    criteria = []
    if customer_id is not None:
        criteria.append(Job.customer_id == customer_id)
    if status is not None:
        criteria.append(Job.status == status.value)
    return query_rows(
        db, Job, partition, *criteria, order_by=Job.created_at.desc(), limit=limit
    )


def update_job_status(db: Session, job: Job, status: JobStatus) -> Job:
    """Move a job to a new status."""
    job.status = status.value
    with store_call("update job status"):
        db.commit()
    db.refresh(job)
    return job
