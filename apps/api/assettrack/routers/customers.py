"""Customer API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from assettrack.core.deps import get_db
from assettrack.db.enums import Partition
from assettrack.schemas.job import CustomerCreate, CustomerRead
from assettrack.services import customer_service

router = APIRouter()


@router.post("", response_model=CustomerRead, status_code=status.HTTP_201_CREATED)
def create_customer(data: CustomerCreate, db: Session = Depends(get_db)):
    """Create a customer in a partition."""
    return customer_service.create_customer(db, data.partition, data.name, data.company_key)


@router.get("", response_model=list[CustomerRead])
def list_customers(partition: Partition = Query(...), db: Session = Depends(get_db)):
    return customer_service.list_customers(db, partition)


@router.get("/{customer_id}", response_model=CustomerRead)
def get_customer(
    customer_id: UUID,
    partition: Partition = Query(...),
    db: Session = Depends(get_db),
):
    customer = customer_service.get_customer(db, partition, customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer
