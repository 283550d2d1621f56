"""Enum definitions for application constants."""

from assettrack.db.enums.jobs import DEFAULT_JOB_STATUS, JobStatus
from assettrack.db.enums.partitions import Division, Partition
from assettrack.db.enums.reports import (
    DEFAULT_PROMOTION_STATUS,
    DEFAULT_RETEST_STATUS,
    UNKNOWN_IDENTITY,
    DegradationTrend,
    ProjectedStatus,
    ReportKind,
    ReportStatus,
    TestResult,
)

__all__ = [
    "DEFAULT_JOB_STATUS",
    "DEFAULT_PROMOTION_STATUS",
    "DEFAULT_RETEST_STATUS",
    "UNKNOWN_IDENTITY",
    "DegradationTrend",
    "Division",
    "JobStatus",
    "Partition",
    "ProjectedStatus",
    "ReportKind",
    "ReportStatus",
    "TestResult",
]
