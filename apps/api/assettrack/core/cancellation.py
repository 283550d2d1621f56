"""Cooperative cancellation for long-running store operations."""

import threading

from assettrack.services.errors import OperationCancelledError


def raise_if_cancelled(cancel_event: threading.Event | None, step: str) -> None:
    """Raise OperationCancelledError if the caller has cancelled the operation."""
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError(f"Operation cancelled before {step}")
