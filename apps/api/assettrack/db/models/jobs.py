"""Customer and job models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from assettrack.db.base import Base
from assettrack.db.enums import DEFAULT_JOB_STATUS


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Customer(Base):
    """
    Customer record within one partition.

    The same company_key may exist in more than one partition; identity
    issuance treats every occurrence as a single namespace.
    """

    __tablename__ = "customers"
    __table_args__ = (Index("idx_customers_partition_key", "partition", "company_key"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    partition: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    company_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)

    jobs: Mapped[list["Job"]] = relationship(back_populates="customer")


class Job(Base):
    """
    Unit of work for a customer.

    The division chosen at creation selects the partition; neither changes
    afterwards.
    """

    __tablename__ = "jobs"
    __table_args__ = (
        UniqueConstraint("partition", "job_number", name="uq_jobs_partition_number"),
        Index("idx_jobs_customer", "customer_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    partition: Mapped[str] = mapped_column(String(20), nullable=False)
    division: Mapped[str] = mapped_column(String(40), nullable=False)
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True
    )
    job_number: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_JOB_STATUS.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, onupdate=_utcnow, nullable=False
    )

    customer: Mapped[Customer | None] = relationship(back_populates="jobs")
