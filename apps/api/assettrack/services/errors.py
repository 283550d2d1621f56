"""Exceptions raised by the identity, catalog, and lineage services."""


class LineageServiceError(Exception):
    """Base exception for asset identity and lineage errors."""

    retryable = False


class NotFoundError(LineageServiceError):
    """Referenced job, asset, or report does not exist or is soft-deleted."""

    pass


class PartitionMismatchError(LineageServiceError):
    """Source record and target job live in different partitions."""

    pass


class IdentityConflictError(LineageServiceError):
    """Identity issuance kept losing the claim race; safe to retry later."""

    retryable = True


class EmptySourcePayloadError(LineageServiceError):
    """Clone source has no real data to copy."""

    pass


class BackendUnavailableError(LineageServiceError):
    """The record store failed at the transport or storage layer."""

    retryable = True


class UnsupportedOperationError(LineageServiceError):
    """The record exists but the requested operation does not apply to it."""

    pass


class OperationCancelledError(LineageServiceError):
    """The caller cancelled the operation before it completed."""

    pass
