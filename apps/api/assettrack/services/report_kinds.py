"""Registry of report kinds.

Each ReportKind maps to exactly one ReportKindSpec describing where its rows
live, which payload fields are searchable, and how identity and pass/fail
status are read out of the payload. The registry is checked for completeness
at import time so a new ReportKind cannot be added without a spec.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from assettrack.db.enums import Partition, ReportKind
from assettrack.db.models import (
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


# Payload section recording where a cloned or promoted report came from
LINEAGE_KEY = "lineage"


@dataclass(frozen=True)
class ReportKindSpec:
    """Storage and payload conventions for one report kind."""

    kind: ReportKind
    model: type[ReportMixin]
    partition: Partition
    display_name: str
    section: str | None
    searchable_fields: tuple[str, ...]
    identity_fields: tuple[str, ...]
    status_fields: tuple[str, ...]

    @property
    def table_name(self) -> str:
        return self.model.__tablename__


def _calibration(
    kind: ReportKind,
    model: type[ReportMixin],
    section: str,
    display_name: str,
) -> ReportKindSpec:
    return ReportKindSpec(
        kind=kind,
        model=model,
        partition=Partition.LAB_OPS,
        display_name=display_name,
        section=section,
        searchable_fields=(
            "customer",
            "customerName",
            f"{section}.assetId",
            f"{section}.serialNumber",
            f"{section}.manufacturer",
            "assetId",
            "serialNumber",
        ),
        identity_fields=(f"{section}.assetId", "assetId"),
        status_fields=(f"{section}.passFailStatus", "status"),
    )


def _general(
    kind: ReportKind,
    model: type[ReportMixin],
    display_name: str,
) -> ReportKindSpec:
    return ReportKindSpec(
        kind=kind,
        model=model,
        partition=Partition.GENERAL_OPS,
        display_name=display_name,
        section=None,
        searchable_fields=(
            "customer",
            "customerName",
            "identifier",
            "serialNumber",
            "substation",
            "eqptLocation",
            "assetId",
        ),
        identity_fields=("assetId", "identifier"),
        status_fields=("status",),
    )


REPORT_KINDS: dict[ReportKind, ReportKindSpec] = {
    spec.kind: spec
    for spec in (
        _calibration(
            ReportKind.CALIBRATION_GLOVES, CalibrationGlovesReport, "gloveData", "Glove Report"
        ),
        _calibration(
            ReportKind.CALIBRATION_SLEEVE, CalibrationSleeveReport, "sleeveData", "Sleeve Report"
        ),
        _calibration(
            ReportKind.CALIBRATION_BLANKET,
            CalibrationBlanketReport,
            "blanketData",
            "Blanket Report",
        ),
        _calibration(
            ReportKind.CALIBRATION_LINE_HOSE,
            CalibrationLineHoseReport,
            "lineHoseData",
            "Line Hose Report",
        ),
        _calibration(
            ReportKind.CALIBRATION_HOTSTICK,
            CalibrationHotstickReport,
            "hotstickData",
            "Hotstick Report",
        ),
        _calibration(
            ReportKind.CALIBRATION_GROUND_CABLE,
            CalibrationGroundCableReport,
            "groundCableData",
            "Ground Cable Report",
        ),
        _calibration(
            ReportKind.CALIBRATION_BUCKET_TRUCK,
            CalibrationBucketTruckReport,
            "bucketTruckData",
            "Bucket Truck Report",
        ),
        _calibration(
            ReportKind.CALIBRATION_DIGGER, CalibrationDiggerReport, "diggerData", "Digger Report"
        ),
        _calibration(ReportKind.METER_TEMPLATE, MeterTemplateReport, "meterData", "Meter Report"),
        _general(ReportKind.PANELBOARD, PanelboardReport, "Panelboard Report"),
        _general(
            ReportKind.AUTOMATIC_TRANSFER_SWITCH,
            AutomaticTransferSwitchReport,
            "Automatic Transfer Switch Report",
        ),
        _general(
            ReportKind.LARGE_DRY_TYPE_TRANSFORMER,
            LargeDryTypeTransformerReport,
            "Large Dry Type Transformer Report",
        ),
    )
}

_missing = set(ReportKind) - set(REPORT_KINDS)
if _missing:
    raise RuntimeError(
        f"Report kinds without a registry entry: {sorted(k.value for k in _missing)}"
    )


def get_spec(kind: ReportKind | str) -> ReportKindSpec:
    """Return the spec for a kind. Raises ValueError for an unknown slug."""
    return REPORT_KINDS[ReportKind(kind)]


def find_spec(slug: str | None) -> ReportKindSpec | None:
    """Return the spec for a slug, or None if the slug is not a known kind."""
    if not slug:
        return None
    try:
        return get_spec(slug)
    except ValueError:
        return None


def kinds_for_partitions(partitions: list[Partition]) -> list[ReportKindSpec]:
    """Specs whose tables live in any of the given partitions, in enum order."""
    return [
        REPORT_KINDS[kind] for kind in ReportKind if REPORT_KINDS[kind].partition in partitions
    ]


# =============================================================================
# Payload helpers
# =============================================================================


def get_path(payload: Any, path: str) -> Any:
    """Read a dotted path from a nested dict payload; None when absent."""
    current = payload
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def set_path(payload: dict[str, Any], path: str, value: Any) -> None:
    """Write a dotted path into a nested dict payload, creating sections."""
    keys = path.split(".")
    current = payload
    for key in keys[:-1]:
        nested = current.get(key)
        if not isinstance(nested, dict):
            nested = {}
            current[key] = nested
        current = nested
    current[keys[-1]] = value


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def extract_identity(spec: ReportKindSpec, payload: Any) -> str | None:
    """First non-empty identity field of the payload."""
    for path in spec.identity_fields:
        value = _text(get_path(payload, path))
        if value:
            return value
    return None


def has_real_data(spec: ReportKindSpec, payload: Any) -> bool:
    """True when at least one searchable field carries a value."""
    return any(_text(get_path(payload, path)) for path in spec.searchable_fields)


def searchable_values(spec: ReportKindSpec, payload: Any) -> list[str]:
    return [
        value
        for value in (_text(get_path(payload, path)) for path in spec.searchable_fields)
        if value
    ]


def payload_status(spec: ReportKindSpec, payload: Any) -> str | None:
    """First non-empty status field of the payload."""
    for path in spec.status_fields:
        value = _text(get_path(payload, path))
        if value:
            return value
    return None


def set_payload_status(spec: ReportKindSpec, payload: dict[str, Any], status: str) -> None:
    for path in spec.status_fields:
        set_path(payload, path, status)


def set_payload_identity(spec: ReportKindSpec, payload: dict[str, Any], identity: str) -> None:
    set_path(payload, spec.identity_fields[0], identity)


def display_label(spec: ReportKindSpec, payload: Any) -> str:
    """Human-readable name for a report row."""
    identity = extract_identity(spec, payload)
    customer = _text(get_path(payload, "customer")) or _text(get_path(payload, "customerName"))
    parts = [spec.display_name]
    if identity:
        parts.append(identity)
    if customer:
        parts.append(customer)
    return " - ".join(parts)


def report_file_url(kind: ReportKind, job_id: Any, report_id: Any) -> str:
    """Opaque URL under which presentation opens a report."""
    return f"report:/jobs/{job_id}/{kind.value}/{report_id}"


def parse_report_file_url(file_url: str | None) -> tuple[str, str] | None:
    """
    Split a report URL into (kind slug, report id).

    Accepts ``report:/jobs/<job>/<slug>/<report-id>`` with an optional query
    string; returns None for anything else.
    """
    if not file_url or not file_url.startswith("report:"):
        return None
    parts = file_url.split("/")
    if len(parts) < 5:
        return None
    slug = parts[3].split("?")[0]
    report_id = parts[4].split("?")[0]
    if not slug or not report_id:
        return None
    return slug, report_id
