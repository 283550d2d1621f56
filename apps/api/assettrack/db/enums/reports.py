"""Report-related enums."""

from enum import Enum


class ReportKind(str, Enum):
    """Report kinds. Values are the route slugs used in asset file URLs."""

    # Laboratory (calibration) reports
    CALIBRATION_GLOVES = "calibration-gloves"
    CALIBRATION_SLEEVE = "calibration-sleeve"
    CALIBRATION_BLANKET = "calibration-blanket"
    CALIBRATION_LINE_HOSE = "calibration-line-hose"
    CALIBRATION_HOTSTICK = "calibration-hotstick"
    CALIBRATION_GROUND_CABLE = "calibration-ground-cable"
    CALIBRATION_BUCKET_TRUCK = "calibration-bucket-truck"
    CALIBRATION_DIGGER = "calibration-digger"
    METER_TEMPLATE = "meter-template"

    # General operations (NETA) reports
    PANELBOARD = "panelboard-report"
    AUTOMATIC_TRANSFER_SWITCH = "automatic-transfer-switch-ats-report"
    LARGE_DRY_TYPE_TRANSFORMER = "large-dry-type-transformer-report"


class ReportStatus(str, Enum):
    """Lifecycle status stored on a report row."""

    TEMPLATE = "TEMPLATE"
    DRAFT = "DRAFT"
    PASS = "PASS"
    FAIL = "FAIL"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"


class ProjectedStatus(str, Enum):
    """Closed display vocabulary for an asset's current status."""

    PASS = "PASS"
    FAIL = "FAIL"
    UNKNOWN = "UNKNOWN"


class TestResult(str, Enum):
    """Outcome of a single entry in an asset's testing history."""

    __test__ = False  # not a pytest test class

    PASS = "PASS"
    FAIL = "FAIL"
    CONDITIONAL = "CONDITIONAL"


class DegradationTrend(str, Enum):
    """Condition trend across an asset's testing history."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"
    UNKNOWN = "unknown"


DEFAULT_RETEST_STATUS = ReportStatus.PASS
DEFAULT_PROMOTION_STATUS = ReportStatus.PASS
UNKNOWN_IDENTITY = "Unknown"
