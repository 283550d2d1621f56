"""Structured logging helpers."""

import logging
from typing import Any

from assettrack.core.config import settings


def configure_logging() -> None:
    """Configure root logging once for the API process."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_log_context(
    *,
    partition: str | None = None,
    job_id: str | None = None,
    record_id: str | None = None,
    report_kind: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict with only the populated keys."""
    context: dict[str, Any] = {}
    if partition:
        context["partition"] = partition
    if job_id:
        context["job_id"] = job_id
    if record_id:
        context["record_id"] = record_id
    if report_kind:
        context["report_kind"] = report_kind
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
