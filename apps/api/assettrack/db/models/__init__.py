"""SQLAlchemy ORM models."""

from assettrack.db.models.assets import (
    Asset,
    AssetIdentityClaim,
    AssetTestRecord,
    JobReportLink,
)
from assettrack.db.models.jobs import Customer, Job
from assettrack.db.models.reports import (
    AutomaticTransferSwitchReport,
    CalibrationBlanketReport,
    CalibrationBucketTruckReport,
    CalibrationDiggerReport,
    CalibrationGlovesReport,
    CalibrationGroundCableReport,
    CalibrationHotstickReport,
    CalibrationLineHoseReport,
    CalibrationSleeveReport,
    LargeDryTypeTransformerReport,
    MeterTemplateReport,
    PanelboardReport,
    ReportMixin,
)

__all__ = [
    "Asset",
    "AssetIdentityClaim",
    "AssetTestRecord",
    "AutomaticTransferSwitchReport",
    "CalibrationBlanketReport",
    "CalibrationBucketTruckReport",
    "CalibrationDiggerReport",
    "CalibrationGlovesReport",
    "CalibrationGroundCableReport",
    "CalibrationHotstickReport",
    "CalibrationLineHoseReport",
    "CalibrationSleeveReport",
    "Customer",
    "Job",
    "JobReportLink",
    "LargeDryTypeTransformerReport",
    "MeterTemplateReport",
    "PanelboardReport",
    "ReportMixin",
]
