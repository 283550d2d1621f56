"""
Test configuration and fixtures.

Provides:
- A fresh SQLite database per test (file-backed, so worker threads share it)
- Customer/job factories for both partitions
- HTTPX AsyncClient bound to the app with get_db overridden
"""
import os
from typing import AsyncGenerator, Generator

# Must be set before the app (and its settings) are imported
os.environ["TESTING"] = "1"
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from assettrack.core.deps import get_db
from assettrack.db.base import Base
from assettrack.db.enums import Division, Partition
from assettrack.db.models import Customer, Job
from assettrack.main import app
from assettrack.services import customer_service, job_service


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine(tmp_path) -> Generator[Engine, None, None]:
    """A brand-new SQLite database with every table created."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'assettrack-test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def lab_customer(db: Session) -> Customer:
    return customer_service.create_customer(db, Partition.LAB_OPS, "Acme Utilities", "42")


@pytest.fixture(scope="function")
def lab_job(db: Session, lab_customer: Customer) -> Job:
    return job_service.create_job(db, Division.CALIBRATION, lab_customer.id, "Glove testing")


@pytest.fixture(scope="function")
def other_lab_job(db: Session, lab_customer: Customer) -> Job:
    return job_service.create_job(db, Division.CALIBRATION, lab_customer.id, "Annual retest")


@pytest.fixture(scope="function")
def neta_customer(db: Session) -> Customer:
    return customer_service.create_customer(db, Partition.GENERAL_OPS, "Volt Energy", "7")


@pytest.fixture(scope="function")
def neta_job(db: Session, neta_customer: Customer) -> Job:
    return job_service.create_job(db, Division.NORTH_ALABAMA, neta_customer.id, "Substation A")


# =============================================================================
# Client Fixtures
# =============================================================================


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient against the app, sharing the test session."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
