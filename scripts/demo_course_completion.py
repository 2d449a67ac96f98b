"""Demo: enroll, watch, pass the quiz, and verify the certificate.

Uses the seeded sample course (APP_ENV=dev, no DATABASE_URL).

Run with:
    python scripts/demo_course_completion.py
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from progress_engine.api.courses import SAMPLE_COURSE_ID
from progress_engine.main import app
from progress_engine.services import token_service
from progress_engine.services.progress_service import progress_service


def main() -> None:
    client = TestClient(app)
    headers = {
        "Authorization": f"Bearer {token_service.create_access_token(sub='demo')}"
    }
    tree = asyncio.run(
        progress_service.content.get_course_content_tree(SAMPLE_COURSE_ID)
    )
    if tree is None:
        raise SystemExit("sample course not seeded (APP_ENV must be dev)")

    r = client.post(f"/v1/courses/{SAMPLE_COURSE_ID}/enroll", headers=headers)
    print(f"1. enroll                  -> {r.status_code}")

    for i, video in enumerate(tree.videos(), start=2):
        r = client.put(
            f"/v1/progress/video/{video.id}",
            json={
                "last_position_seconds": video.duration_seconds,
                "completed": True,
            },
            headers=headers,
        )
        progress = client.get(
            f"/v1/progress/course/{SAMPLE_COURSE_ID}", headers=headers
        ).json()
        print(
            f"{i}. finish {video.title!r:22} -> {r.status_code}  "
            f"progress={progress['progress_percentage']}%"
        )

    quiz = tree.assessments()[0]
    wrong = {str(q.id): "Z" for q in quiz.questions}
    right = {str(q.id): q.correct_answer.lower() for q in quiz.questions}
    for label, answers in (("fail quiz", wrong), ("pass quiz", right)):
        r = client.post(
            f"/v1/progress/assessment/{quiz.id}/submit",
            json={"answers": answers},
            headers=headers,
        )
        print(f"   {label:23} -> {r.status_code}  score={r.json()['score']}")

    progress = client.get(
        f"/v1/progress/course/{SAMPLE_COURSE_ID}", headers=headers
    ).json()
    print(
        f"   completed={progress['completed']} "
        f"progress={progress['progress_percentage']}%"
    )

    cert = client.post(
        f"/v1/certificates/generate/{SAMPLE_COURSE_ID}", headers=headers
    ).json()
    r = client.get(f"/v1/certificates/verify/{cert['certificate_number']}")
    print(f"   verify {cert['certificate_number']} -> {r.status_code} {r.json()}")


if __name__ == "__main__":
    main()
