"""End-to-end API tests: save, search, clone, link, and promote."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from assettrack.db.models import CalibrationGlovesReport
from assettrack.services import identity_service


async def _create_lab_job(client: AsyncClient, title: str, customer_id: str | None = None) -> dict:
    if customer_id is None:
        customer = await client.post(
            "/customers", json={"partition": "lab_ops", "name": "Acme Utilities", "company_key": "42"}
        )
        assert customer.status_code == 201
        customer_id = customer.json()["id"]
    response = await client.post(
        "/jobs", json={"division": "calibration", "customer_id": customer_id, "title": title}
    )
    assert response.status_code == 201
    return response.json()


async def _save_glove_report(client: AsyncClient, job_id: str, report_info: dict, status="DRAFT") -> dict:
    response = await client.post(
        "/reports/calibration-gloves",
        json={"partition": "lab_ops", "job_id": job_id, "report_info": report_info, "status": status},
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_job_gets_lab_partition(client: AsyncClient):
    job = await _create_lab_job(client, "Glove testing")

    assert job["partition"] == "lab_ops"
    assert job["division"] == "calibration"
    assert job["job_number"].startswith("1")
    assert len(job["job_number"]) == 6


@pytest.mark.asyncio
async def test_search_then_clone_for_retest(client: AsyncClient):
    source_job = await _create_lab_job(client, "Last year")
    target_job = await _create_lab_job(client, "This year", source_job["customer_id"])
    saved = await _save_glove_report(
        client, source_job["id"], {"customer": "Acme", "assetId": "G-100"}, status="FAIL"
    )
    assert saved["asset"]["identity"] == "G-100"

    search = await client.get(
        "/catalog/search",
        params={"q": "G-100", "partition": "lab_ops", "job_id": target_job["id"]},
    )
    assert search.status_code == 200
    body = search.json()
    assert body["total"] == 1
    candidate = body["results"][0]
    assert candidate["record_id"] == saved["report"]["id"]
    assert candidate["status"] == "FAIL"

    clone = await client.post(
        "/lineage/clone",
        json={
            "partition": "lab_ops",
            "report_kind": candidate["report_kind"],
            "source_report_id": candidate["record_id"],
            "target_job_id": target_job["id"],
        },
    )
    assert clone.status_code == 200
    data = clone.json()
    assert data["created"] is True
    assert data["report"]["id"] != saved["report"]["id"]
    assert data["report"]["job_id"] == target_job["id"]
    assert data["report"]["status"] == "PASS"
    assert data["report"]["report_info"]["customer"] == "Acme"
    assert data["asset"]["identity"] == "G-100"

    assets = await client.get(f"/jobs/{target_job['id']}/assets", params={"partition": "lab_ops"})
    assert assets.status_code == 200
    assert [(a["identity"], a["status"]) for a in assets.json()] == [("G-100", "PASS")]


@pytest.mark.asyncio
async def test_link_report_into_second_job(client: AsyncClient):
    first_job = await _create_lab_job(client, "Owner")
    second_job = await _create_lab_job(client, "Borrower", first_job["customer_id"])
    saved = await _save_glove_report(client, first_job["id"], {"customer": "Acme"}, status="PASS")

    payload = {
        "partition": "lab_ops",
        "target_job_id": second_job["id"],
        "report_kind": "calibration-gloves",
        "report_id": saved["report"]["id"],
    }
    first = await client.post("/lineage/link", json=payload)
    again = await client.post("/lineage/link", json=payload)

    assert first.status_code == 200
    assert first.json()["created"] is True
    assert again.json()["created"] is False
    assert again.json()["link"]["id"] == first.json()["link"]["id"]

    assets = await client.get(f"/jobs/{second_job['id']}/assets", params={"partition": "lab_ops"})
    assert [a["status"] for a in assets.json()] == ["PASS"]


@pytest.mark.asyncio
async def test_promote_master_asset(client: AsyncClient):
    job = await _create_lab_job(client, "Promotion")
    master = await client.post(
        "/assets/masters",
        json={"partition": "lab_ops", "name": "Digger D-12", "customer_id": job["customer_id"]},
    )
    assert master.status_code == 201
    assert master.json()["is_master"] is True

    response = await client.post(
        "/lineage/promote",
        json={
            "partition": "lab_ops",
            "master_asset_id": master.json()["id"],
            "target_job_id": job["id"],
            "report_kind": "calibration-digger",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["created"] is True
    assert data["asset"]["source_asset_id"] == master.json()["id"]
    assert data["report"]["report_info"]["diggerData"]["assetId"] == master.json()["identity"]


@pytest.mark.asyncio
async def test_link_request_needs_exactly_one_source(client: AsyncClient):
    response = await client.post(
        "/lineage/link", json={"partition": "lab_ops", "target_job_id": str(uuid.uuid4())}
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_clone_missing_report_is_404(client: AsyncClient):
    job = await _create_lab_job(client, "Target")

    response = await client.post(
        "/lineage/clone",
        json={
            "partition": "lab_ops",
            "report_kind": "calibration-gloves",
            "source_report_id": str(uuid.uuid4()),
            "target_job_id": job["id"],
        },
    )

    assert response.status_code == 404
    assert response.json()["error"] == "NotFoundError"
    assert response.json()["retryable"] is False


@pytest.mark.asyncio
async def test_clone_empty_source_is_422(client: AsyncClient, db, lab_job, other_lab_job):
    empty = CalibrationGlovesReport(partition="lab_ops", job_id=lab_job.id, report_info={})
    db.add(empty)
    db.commit()

    response = await client.post(
        "/lineage/clone",
        json={
            "partition": "lab_ops",
            "report_kind": "calibration-gloves",
            "source_report_id": str(empty.id),
            "target_job_id": str(other_lab_job.id),
        },
    )

    assert response.status_code == 422
    assert response.json()["error"] == "EmptySourcePayloadError"


@pytest.mark.asyncio
async def test_clone_across_partitions_is_409(client: AsyncClient, lab_job, neta_job):
    saved = await _save_glove_report(client, str(lab_job.id), {"customer": "Acme"})

    response = await client.post(
        "/lineage/clone",
        json={
            "partition": "lab_ops",
            "report_kind": "calibration-gloves",
            "source_report_id": saved["report"]["id"],
            "target_job_id": str(neta_job.id),
        },
    )

    assert response.status_code == 409
    assert response.json()["error"] == "PartitionMismatchError"


@pytest.mark.asyncio
async def test_issue_identity_endpoint(client: AsyncClient):
    first = await client.post("/identities/issue", json={"partition": "lab_ops", "namespace_key": "42"})
    second = await client.post("/identities/issue", json={"partition": "neta_ops", "namespace_key": "42"})

    assert first.json() == {"identity": "42-1", "namespace": "42"}
    assert second.json()["identity"] == "42-2"


@pytest.mark.asyncio
async def test_store_outage_is_503_and_retryable(client: AsyncClient, monkeypatch):
    def unreachable(session, namespace):
        raise OperationalError("SELECT max(sequence)", {}, Exception("connection refused"))

    monkeypatch.setattr(identity_service, "_highest_sequence", unreachable)

    response = await client.post("/identities/issue", json={"partition": "lab_ops"})

    assert response.status_code == 503
    assert response.json()["retryable"] is True


@pytest.mark.asyncio
async def test_short_search_returns_empty(client: AsyncClient):
    response = await client.get("/catalog/search", params={"q": "G"})

    assert response.status_code == 200
    assert response.json() == {"query": "G", "total": 0, "results": []}
