import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quizmaker.db import models
from quizmaker.services.question_order import is_permutation, restore_answer_order
from quizmaker.services.quiz_service import (
    QuizError,
    ensure_can_answer,
    get_quiz_or_error,
    load_questions,
)
from quizmaker.services.scoring import (
    Question,
    ScoringError,
    answer_from_value,
    answer_to_value,
    calculate_score,
    check_answer,
    describe_expected_answer,
    is_answered,
)

DEFAULT_USER_NAME = "Anonymous"
logger = logging.getLogger(__name__)


@dataclass
class SubmissionError(Exception):
    status_code: int
    message: str
    details: Optional[Dict[str, object]] = None


def _normalize_user_name(user_name: Optional[str]) -> str:
    value = (user_name or "").strip()
    return value or DEFAULT_USER_NAME


def submit_quiz(
    db: Session,
    quiz_id: int,
    user_id: str,
    user_name: Optional[str],
    answers: Sequence[Any],
    question_order: Optional[Sequence[int]] = None,
) -> models.QuizSubmission:
    """Score and store one user's answers.

    ``answers`` are in the order the questions were shown. When
    ``question_order`` is given (``question_order[display] = original``) the
    answers are mapped back to the quiz's original order before scoring.
    """
    quiz = get_quiz_or_error(db, quiz_id)
    try:
        ensure_can_answer(db, quiz, user_id)
    except QuizError as exc:
        raise SubmissionError(exc.status_code, exc.message, exc.details) from exc

    questions = load_questions(quiz)
    if len(answers) != len(questions):
        raise SubmissionError(
            422,
            "Answers must match quiz questions",
            {"expected": len(questions), "received": len(answers)},
        )

    order = list(question_order) if question_order is not None else list(range(len(questions)))
    if not is_permutation(order, len(questions)):
        raise SubmissionError(422, "Invalid question order", {"question_order": order})
    original_answers = restore_answer_order(order, list(answers))

    try:
        parsed = [answer_from_value(question, value) for question, value in zip(questions, original_answers)]
    except ScoringError as exc:
        raise SubmissionError(422, "Invalid answer", {"reason": str(exc)}) from exc

    for display_index, original_index in enumerate(order):
        if not is_answered(parsed[original_index]):
            raise SubmissionError(
                422,
                f"Please answer question {display_index + 1}",
                {"question": display_index + 1},
            )

    score = calculate_score(questions, parsed)
    submission = models.QuizSubmission(
        quiz_id=quiz.id,
        user_id=user_id,
        user_name=_normalize_user_name(user_name),
        answers_json=[answer_to_value(item) for item in parsed],
        correct_count=score.correct,
        total_count=score.total,
        percentage=score.percentage,
    )
    db.add(submission)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise SubmissionError(409, "You have already answered this quiz", {"quiz_id": quiz_id}) from exc
    db.refresh(submission)
    logger.info(
        "Submission %s for quiz %s by %s scored %s/%s",
        submission.id,
        quiz.id,
        user_id,
        score.correct,
        score.total,
    )
    return submission


def build_question_results(questions: Sequence[Question], stored_answers: Sequence[Any]) -> List[Dict[str, Any]]:
    results: List[Dict[str, Any]] = []
    for index, question in enumerate(questions):
        value = stored_answers[index] if index < len(stored_answers) else None
        try:
            correct = check_answer(question, answer_from_value(question, value))
        except ScoringError:
            logger.warning("Stored answer %r no longer fits question %s", value, index + 1)
            correct = False
        results.append(
            {
                "index": index,
                "question": question.prompt,
                "correct": correct,
                "user_answer": value,
                "expected_answer": describe_expected_answer(question),
            }
        )
    return results


def serialize_submission(submission: models.QuizSubmission, include_results: bool = False) -> Dict[str, Any]:
    quiz = submission.quiz
    payload: Dict[str, Any] = {
        "submission_id": submission.id,
        "quiz_id": submission.quiz_id,
        "quiz_title": quiz.title if quiz else None,
        "user_id": submission.user_id,
        "user_name": submission.user_name,
        "answers": list(submission.answers_json or []),
        "score": {
            "correct": submission.correct_count,
            "total": submission.total_count,
            "percentage": submission.percentage,
        },
        "submitted_at": submission.submitted_at,
        "per_question_result": None,
    }
    if include_results and quiz:
        payload["per_question_result"] = build_question_results(load_questions(quiz), payload["answers"])
    return payload


def get_submission(db: Session, submission_id: int, user_id: str) -> models.QuizSubmission:
    submission = (
        db.query(models.QuizSubmission).filter(models.QuizSubmission.id == submission_id).first()
    )
    if not submission:
        raise SubmissionError(404, "Submission not found", {"submission_id": submission_id})
    quiz = submission.quiz
    if submission.user_id != user_id and (quiz is None or quiz.creator_id != user_id):
        raise SubmissionError(
            403,
            "You don't have permission to view this submission",
            {"submission_id": submission_id},
        )
    return submission


def list_quiz_submissions(db: Session, quiz_id: int) -> List[models.QuizSubmission]:
    return (
        db.query(models.QuizSubmission)
        .filter(models.QuizSubmission.quiz_id == quiz_id)
        .order_by(models.QuizSubmission.submitted_at.desc(), models.QuizSubmission.id.desc())
        .all()
    )


def list_user_submissions(db: Session, user_id: str) -> List[models.QuizSubmission]:
    return (
        db.query(models.QuizSubmission)
        .filter(models.QuizSubmission.user_id == user_id)
        .order_by(models.QuizSubmission.submitted_at.desc(), models.QuizSubmission.id.desc())
        .all()
    )
