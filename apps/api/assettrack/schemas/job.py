"""Pydantic schemas for customers and jobs."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from assettrack.db.enums import Division, JobStatus, Partition


class CustomerCreate(BaseModel):
    """Request to create a customer."""
    partition: Partition
    name: str = Field(..., min_length=1, max_length=255)
    company_key: str | None = Field(None, max_length=64)


class CustomerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    partition: str
    name: str
    company_key: str | None
    created_at: datetime


class JobCreate(BaseModel):
    """Request to create a job. The division selects the partition."""
    division: Division
    customer_id: UUID | None = None
    title: str = Field(..., min_length=1, max_length=255)


class JobStatusUpdate(BaseModel):
    status: JobStatus


class JobRead(BaseModel):
    """Job response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    partition: str
    division: str
    customer_id: UUID | None
    job_number: str
    title: str
    status: str
    created_at: datetime
    updated_at: datetime
