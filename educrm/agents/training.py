"""Partner Training Agent.

Grades module quizzes and advances a partner's learning path: a passing quiz
completes its module and unlocks the next one, overall progress is
recomputed, and badges are awarded once when the completed-module count
reaches a configured milestone.
"""

from typing import Any, Optional, Union

from educrm.models.base import utcnow
from educrm.models.config import SystemParams
from educrm.models.counselor import Badge, QuizResult
from educrm.store.repository import EntityStore
from educrm.utils.errors import InvalidInputError, NotFoundError
from educrm.utils.logger import get_logger

# badge_type -> (badge_name, description); {count} is the milestone
BADGE_CATALOG = {
    "beginner": ("Learning Foundations", "Completed first {count} training modules"),
    "specialist": ("Subject Specialist", "Completed {count} training modules"),
}

Answers = Union[list[Any], dict[Any, Any]]


def _answer_at(answers: Answers, index: int) -> Any:
    if isinstance(answers, dict):
        return answers.get(index, answers.get(str(index)))
    return answers[index] if index < len(answers) else None


def grade_quiz(questions: list[dict[str, Any]], answers: Answers) -> float:
    """Percentage of questions answered with their ``correct_answer``.

    ``answers`` is either a list aligned with ``questions`` or a dict keyed by
    question index (int or str). Unanswered questions count as wrong.

    Raises:
        InvalidInputError: If there are no questions
    """
    if not questions:
        raise InvalidInputError("Quiz has no questions")
    correct = sum(
        1 for i, q in enumerate(questions) if _answer_at(answers, i) == q.get("correct_answer")
    )
    return correct / len(questions) * 100


def is_passing(score: float, pass_score: float) -> bool:
    return score >= pass_score


def award_badges(
    badges: list[Badge], completed: int, milestones: dict[str, int]
) -> tuple[list[Badge], list[Badge]]:
    """Add a badge for every milestone reached that is not already held.

    Returns:
        (all badges, newly awarded badges)
    """
    held = {b.badge_type for b in badges}
    awarded = []
    for badge_type, count in sorted(milestones.items(), key=lambda item: item[1]):
        if completed < count or badge_type in held:
            continue
        name, description = BADGE_CATALOG.get(
            badge_type, (badge_type.replace("_", " ").title(), "Completed {count} training modules")
        )
        awarded.append(
            Badge(
                badge_name=name,
                badge_type=badge_type,
                earned_date=utcnow(),
                description=description.format(count=count),
            )
        )
        held.add(badge_type)
    return badges + awarded, awarded


def submit_quiz(
    store: EntityStore,
    params: SystemParams,
    training_id: str,
    module_id: str,
    answers: Answers,
    questions: list[dict[str, Any]],
    correlation_id: Optional[str] = None,
) -> dict[str, Any]:
    """Grade a module quiz and update the partner's training record.

    A failed attempt is recorded in ``quiz_results`` but leaves the module
    incomplete.

    Returns:
        Dict with score, passed, overall_progress and badges_awarded

    Raises:
        NotFoundError: If the training record or the module does not exist
        InvalidInputError: If there are no questions
    """
    logger = get_logger(correlation_id=correlation_id, phase="training", component="quiz")

    training = store["PartnerTraining"].get(training_id)
    path = [m.model_copy() for m in training.learning_path]
    index = next((i for i, m in enumerate(path) if m.module_id == module_id), None)
    if index is None:
        raise NotFoundError("TrainingModule", module_id)

    thresholds = params.thresholds
    score = grade_quiz(questions, answers)
    passed = is_passing(score, thresholds.quiz_pass_score)

    module = path[index]
    module.quiz_score = score
    if passed:
        module.status = "completed"
        module.progress = 100
        if index + 1 < len(path) and path[index + 1].status == "locked":
            path[index + 1].status = "available"

    completed = sum(1 for m in path if m.status == "completed")
    overall_progress = completed / len(path) * 100
    badges, awarded = award_badges(training.badges_earned, completed, thresholds.badge_milestones)

    result = QuizResult(
        module_id=module_id,
        score=score,
        total_questions=len(questions),
        completed_at=utcnow(),
        passed=passed,
    )
    store["PartnerTraining"].update(
        training_id,
        {
            "learning_path": [m.model_dump() for m in path],
            "quiz_results": [r.model_dump() for r in training.quiz_results] + [result.model_dump()],
            "badges_earned": [b.model_dump() for b in badges],
            "overall_progress": overall_progress,
        },
    )

    logger.info(
        "Quiz submitted",
        training_id=training_id,
        module_id=module_id,
        score=score,
        passed=passed,
        badges_awarded=[b.badge_type for b in awarded],
    )
    return {
        "success": True,
        "score": score,
        "passed": passed,
        "overall_progress": overall_progress,
        "badges_awarded": [b.model_dump(mode="json") for b in awarded],
    }
