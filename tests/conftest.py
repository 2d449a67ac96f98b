from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from progress_engine.main import app
from progress_engine.models.course import (
    ARTICLE,
    ASSESSMENT,
    VIDEO,
    ContentItem,
    Course,
    Question,
)
from progress_engine.repos.certificate_repo import InMemoryCertificateRepo
from progress_engine.repos.content_repo import InMemoryContentRepo
from progress_engine.repos.progress_store import InMemoryProgressStore
from progress_engine.services import token_service
from progress_engine.services.cache import cache_service
from progress_engine.services.progress_service import ProgressService, progress_service
from progress_engine.services.task_queue import task_queue

# Ensure repo root is on sys.path so `import progress_engine` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_progress_state() -> None:
    """Clear the shared in-memory stores between tests."""
    for repo in (
        progress_service.store,
        progress_service.content,
        progress_service.certificate_repo,
    ):
        if hasattr(repo, "clear"):
            repo.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    if hasattr(cache_service, "clear"):
        cache_service.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    if hasattr(task_queue, "clear"):
        task_queue.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "learner-1",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token() -> str:
    return mint_token()


@pytest.fixture
def admin_token() -> str:
    return mint_token(username="ops-admin", roles=["admin"])


# ---------------------------------------------------------------------------
# Course-building helpers
# ---------------------------------------------------------------------------


@dataclass
class BuiltCourse:
    course: Course
    videos: list[ContentItem] = field(default_factory=list)
    assessments: list[ContentItem] = field(default_factory=list)
    articles: list[ContentItem] = field(default_factory=list)

    @property
    def id(self):
        return self.course.id


def build_course(
    content: InMemoryContentRepo,
    *,
    video_durations: tuple[int | None, ...] = (100,),
    assessments: int = 1,
    questions_per_assessment: int = 1,
    pass_percentage: int = 70,
    articles: int = 0,
    status: str = "published",
) -> BuiltCourse:
    """Build a one-module course: videos, then articles, then assessments.

    Every question's correct answer is "A".
    """
    course = content.add_course(
        Course.new(slug=f"course-{len(content._courses)}", title="Test", status=status)
    )
    built = BuiltCourse(course=course)
    module = content.add_module(course.id, title="Module 1", position=1)
    position = 0
    for duration in video_durations:
        position += 1
        built.videos.append(
            content.add_item(
                module.id,
                VIDEO,
                title=f"Video {position}",
                position=position,
                duration_seconds=duration,
            )
        )
    for _ in range(articles):
        position += 1
        built.articles.append(
            content.add_item(module.id, ARTICLE, title="Article", position=position)
        )
    for _ in range(assessments):
        position += 1
        questions = tuple(
            Question.new(correct_answer="A", order_index=i)
            for i in range(questions_per_assessment)
        )
        built.assessments.append(
            content.add_item(
                module.id,
                ASSESSMENT,
                title="Quiz",
                position=position,
                pass_percentage=pass_percentage,
                questions=questions,
            )
        )
    return built


def answers_for(item: ContentItem, correct: int) -> dict[str, str]:
    """Answer the first ``correct`` questions right (lowercase), the rest wrong."""
    return {
        str(q.id): ("a" if i < correct else "B")
        for i, q in enumerate(item.ordered_questions())
    }


def make_service(**kwargs) -> ProgressService:
    """A ProgressService on fresh in-memory stores, isolated from the app."""
    kwargs.setdefault("store", InMemoryProgressStore())
    kwargs.setdefault("content", InMemoryContentRepo())
    kwargs.setdefault("certificates", InMemoryCertificateRepo())
    return ProgressService(**kwargs)
