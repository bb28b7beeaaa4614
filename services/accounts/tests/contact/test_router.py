import uuid

from fastapi.testclient import TestClient


def test_contact_request_requires_auth(client: TestClient) -> None:
    r = client.post(
        "/api/v1/contact-requests", json={"job_id": str(uuid.uuid4()), "message": "Hi"}
    )
    assert r.status_code == 401


def test_contact_request_created_once(client: TestClient, auth_headers) -> None:
    student = uuid.uuid4()
    headers = auth_headers(student)
    job_id = str(uuid.uuid4())

    r = client.post(
        "/api/v1/contact-requests",
        json={"job_id": job_id, "message": "I'd like to apply."},
        headers=headers,
    )
    assert r.status_code == 201
    data = r.json()
    assert data["student_id"] == str(student)
    assert data["job_id"] == job_id
    assert data["status"] == "pending"

    r = client.post(
        "/api/v1/contact-requests",
        json={"job_id": job_id, "message": "Again"},
        headers=headers,
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "You have already requested contact information for this job."

    # Another student may still ask about the same job
    r = client.post(
        "/api/v1/contact-requests",
        json={"job_id": job_id, "message": "Me too"},
        headers=auth_headers(uuid.uuid4()),
    )
    assert r.status_code == 201


def test_contact_request_message_required(client: TestClient, auth_headers) -> None:
    r = client.post(
        "/api/v1/contact-requests",
        json={"job_id": str(uuid.uuid4()), "message": "   "},
        headers=auth_headers(),
    )
    assert r.status_code == 422
