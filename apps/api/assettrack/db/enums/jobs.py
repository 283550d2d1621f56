"""Job-related enums."""

from enum import Enum


class JobStatus(str, Enum):
    """Status of a field or laboratory job."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


DEFAULT_JOB_STATUS = JobStatus.PENDING
