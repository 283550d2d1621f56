"""Report models, one table per report kind.

Every kind shares the same row shape (ReportMixin); kind-specific equipment
fields live in the JSON report_info payload.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from assettrack.db.base import Base
from assettrack.db.models.jobs import _utcnow


class ReportMixin:
    """Columns shared by every report table."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    partition: Mapped[str] = mapped_column(String(20), nullable=False)
    report_info: Mapped[dict[str, Any]] = mapped_column(default=dict, nullable=False)
    status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, onupdate=_utcnow, nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @declared_attr
    def job_id(cls) -> Mapped[uuid.UUID | None]:
        # NULL for TEMPLATE rows that are not attached to a job yet
        return mapped_column(
            Uuid, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True, index=True
        )


# =============================================================================
# Laboratory reports
# =============================================================================


class CalibrationGlovesReport(ReportMixin, Base):
    __tablename__ = "calibration_gloves_reports"


class CalibrationSleeveReport(ReportMixin, Base):
    __tablename__ = "calibration_sleeve_reports"


class CalibrationBlanketReport(ReportMixin, Base):
    __tablename__ = "calibration_blanket_reports"


class CalibrationLineHoseReport(ReportMixin, Base):
    __tablename__ = "calibration_line_hose_reports"


class CalibrationHotstickReport(ReportMixin, Base):
    __tablename__ = "calibration_hotstick_reports"


class CalibrationGroundCableReport(ReportMixin, Base):
    __tablename__ = "calibration_ground_cable_reports"


class CalibrationBucketTruckReport(ReportMixin, Base):
    __tablename__ = "calibration_bucket_truck_reports"


class CalibrationDiggerReport(ReportMixin, Base):
    __tablename__ = "calibration_digger_reports"


class MeterTemplateReport(ReportMixin, Base):
    __tablename__ = "meter_template_reports"


# =============================================================================
# General operations reports
# =============================================================================


class PanelboardReport(ReportMixin, Base):
    __tablename__ = "panelboard_reports"


class AutomaticTransferSwitchReport(ReportMixin, Base):
    __tablename__ = "automatic_transfer_switch_ats_reports"


class LargeDryTypeTransformerReport(ReportMixin, Base):
    __tablename__ = "large_dry_type_transformer_reports"
