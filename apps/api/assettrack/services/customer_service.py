"""Customer service."""

from uuid import UUID

from sqlalchemy.orm import Session

from assettrack.db.enums import Partition
from assettrack.db.models import Customer
from assettrack.db.record_store import get_row, insert_row, query_rows, store_call


def create_customer(
    db: Session,
    partition: Partition,
    name: str,
    company_key: str | None = None,
) -> Customer:
    """Create a customer. company_key is the identity namespace key, if known."""
    customer = insert_row(
        db,
        Customer,
        partition,
        name=name.strip(),
        company_key=company_key.strip() if company_key else None,
    )
    with store_call("create customer"):
        db.commit()
    db.refresh(customer)
    return customer


def get_customer(db: Session, partition: Partition, customer_id: UUID) -> Customer | None:
    return get_row(db, Customer, partition, customer_id)


def list_customers(db: Session, partition: Partition) -> list[Customer]:
    """List customers in a partition by name."""
    return query_rows(db, Customer, partition, order_by=Customer.name)
