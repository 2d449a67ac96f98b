from __future__ import annotations

from fastapi.testclient import TestClient

from progress_engine.services.progress_service import progress_service
from tests.conftest import auth, build_course


def _complete_course(client: TestClient, token: str):
    course = build_course(
        progress_service.content,  # type: ignore[arg-type]
        video_durations=(60,),
        assessments=0,
    )
    client.post(f"/v1/courses/{course.id}/enroll", headers=auth(token))
    client.put(
        f"/v1/progress/video/{course.videos[0].id}",
        json={"last_position_seconds": 60, "completed": True},
        headers=auth(token),
    )
    return course


def test_generate_certificate(client: TestClient, token: str) -> None:
    course = _complete_course(client, token)
    resp = client.post(f"/v1/certificates/generate/{course.id}", headers=auth(token))
    assert resp.status_code == 201
    data = resp.json()
    assert data["certificate_number"].startswith("CERT-")
    assert data["course_id"] == str(course.id)


def test_generate_certificate_is_idempotent(client: TestClient, token: str) -> None:
    course = _complete_course(client, token)
    first = client.post(f"/v1/certificates/generate/{course.id}", headers=auth(token))
    second = client.post(f"/v1/certificates/generate/{course.id}", headers=auth(token))
    assert first.json()["id"] == second.json()["id"]


def test_generate_before_completion_is_400(client: TestClient, token: str) -> None:
    course = build_course(progress_service.content)  # type: ignore[arg-type]
    client.post(f"/v1/courses/{course.id}/enroll", headers=auth(token))
    resp = client.post(f"/v1/certificates/generate/{course.id}", headers=auth(token))
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Course not completed yet"


def test_verify_is_public(client: TestClient, token: str) -> None:
    course = _complete_course(client, token)
    number = client.post(
        f"/v1/certificates/generate/{course.id}", headers=auth(token)
    ).json()["certificate_number"]

    resp = client.get(f"/v1/certificates/verify/{number}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["valid"] is True
    assert data["user_id"] == "learner-1"
    assert data["course_title"] == "Test"


def test_verify_unknown_is_404(client: TestClient) -> None:
    resp = client.get("/v1/certificates/verify/CERT-1-00000000")
    assert resp.status_code == 404
