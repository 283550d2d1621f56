"""Identity issuance endpoints."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from assettrack.core.deps import get_db
from assettrack.core.rate_limit import limiter
from assettrack.schemas.asset import (
    IdentityIssueRequest,
    IdentityIssueResponse,
    PendingIdentityRequest,
    PendingIdentityResponse,
)
from assettrack.services import identity_service

router = APIRouter()


@router.post("/issue", response_model=IdentityIssueResponse)
@limiter.limit("30/minute")
def issue_identity(
    request: Request,
    data: IdentityIssueRequest,
    db: Session = Depends(get_db),
):
    """Claim the next identity in a customer's namespace."""
    identity = identity_service.issue_identity(db, data.namespace_key, data.partition)
    return IdentityIssueResponse(
        identity=identity,
        namespace=identity_service.normalize_namespace(data.namespace_key),
    )


@router.post("/assign-pending", response_model=PendingIdentityResponse)
def assign_pending(data: PendingIdentityRequest, db: Session = Depends(get_db)):
    """Issue identities for assets saved while issuance was unavailable."""
    assigned = identity_service.assign_pending_identities(db, data.partition)
    return {"assigned": assigned}
