"""Assessment Grader: scores a submission and appends an immutable attempt.

Only fixed-choice answers are graded: an answer is correct when it
matches the question's correct answer ignoring case and surrounding
whitespace.  Anything else (missing, blank, non-string) is simply wrong.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from uuid import UUID

from progress_engine.core.clock import epoch_seconds
from progress_engine.core.metrics import ASSESSMENT_ATTEMPTS
from progress_engine.models.course import ASSESSMENT, ContentItem
from progress_engine.models.progress import AttemptResult
from progress_engine.repos.content_repo import ContentRepo
from progress_engine.repos.progress_store import ProgressStore
from progress_engine.services.recompute import RecomputeCoordinator, RecomputeRequest
from progress_engine.services.scope import resolve_item_scope

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GradeResult:
    score: float
    passed: bool
    correct_count: int
    total_questions: int
    earned_points: int
    total_points: int


def _normalize(answer: object) -> str | None:
    if not isinstance(answer, str):
        return None
    return answer.strip().upper() or None


def grade_answers(item: ContentItem, answers: Mapping[str, object]) -> GradeResult:
    """Score ``answers`` (question id -> choice) against ``item``'s questions."""
    total_points = 0
    earned_points = 0
    correct_count = 0
    questions = item.ordered_questions()

    for question in questions:
        total_points += question.points
        submitted = _normalize(answers.get(str(question.id)))
        if submitted is not None and submitted == _normalize(question.correct_answer):
            correct_count += 1
            earned_points += question.points

    score = earned_points / total_points * 100 if total_points > 0 else 0.0
    return GradeResult(
        score=score,
        passed=score >= item.pass_percentage,
        correct_count=correct_count,
        total_questions=len(questions),
        earned_points=earned_points,
        total_points=total_points,
    )


class AssessmentGrader:
    def __init__(
        self,
        store: ProgressStore,
        content: ContentRepo,
        recompute: RecomputeCoordinator,
        *,
        clock: Callable[[], int] = epoch_seconds,
    ) -> None:
        self._store = store
        self._content = content
        self._recompute = recompute
        self._clock = clock

    async def submit_assessment(
        self, user_id: str, content_item_id: UUID, answers: Mapping[str, str]
    ) -> AttemptResult:
        item, enrollment = await resolve_item_scope(
            self._store,
            self._content,
            user_id=user_id,
            content_item_id=content_item_id,
            expected_type=ASSESSMENT,
        )

        grade = grade_answers(item, answers)
        attempt, first_pass = await self._store.append_attempt(
            enrollment_id=enrollment.id,
            user_id=user_id,
            content_item_id=content_item_id,
            score=grade.score,
            passed=grade.passed,
            answers={str(k): v for k, v in answers.items()},
            now=self._clock(),
        )
        ASSESSMENT_ATTEMPTS.labels(passed=str(grade.passed).lower()).inc()
        logger.info(
            "Graded attempt #%d user=%s item=%s score=%.2f passed=%s",
            attempt.attempt_number,
            user_id,
            content_item_id,
            grade.score,
            grade.passed,
            extra={"enrollment_id": str(enrollment.id)},
        )

        # Repeat passes and failing retakes cannot change course progress.
        if first_pass:
            await self._recompute.request(
                RecomputeRequest(enrollment.id, reason="assessment_passed")
            )

        return AttemptResult(
            attempt=attempt,
            correct_count=grade.correct_count,
            total_questions=grade.total_questions,
            earned_points=grade.earned_points,
            total_points=grade.total_points,
            first_pass=first_pass,
        )
