import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quizmaker.db import models
from quizmaker.schemas.quiz import IdentificationQuestionPayload, MultipleChoiceQuestionPayload
from quizmaker.services.question_order import build_question_order
from quizmaker.services.quiz_codes import (
    CODE_FORMAT_HINT,
    RandomSource,
    generate_quiz_code,
    is_valid_quiz_code,
)
from quizmaker.services.scoring import (
    MIN_CHOICES,
    QUESTION_IDENTIFICATION,
    QUESTION_MULTIPLE_CHOICE,
    IdentificationQuestion,
    MultiChoiceQuestion,
    Question,
    ScoringError,
    SingleChoiceQuestion,
)

DEFAULT_CODE_ATTEMPTS = 5
logger = logging.getLogger(__name__)

ANSWER_MODE_TEXT = "text"
ANSWER_MODE_SINGLE = "single"
ANSWER_MODE_MULTIPLE = "multiple"


@dataclass
class QuizError(Exception):
    status_code: int
    message: str
    details: Optional[Dict[str, object]] = None


def _invalid_question(number: int, message: str, exc: Optional[Exception] = None) -> QuizError:
    details: Dict[str, object] = {"question": number}
    if exc is not None:
        details["reason"] = str(exc)
    return QuizError(422, f"Question {number} {message}", details)


def question_from_payload(payload: Any, number: int) -> Question:
    """Validate one authored question; ``number`` is 1-based for messages."""
    prompt = (payload.question or "").strip()
    if not prompt:
        raise _invalid_question(number, "is empty")

    if isinstance(payload, IdentificationQuestionPayload):
        accepted = [item.strip() for item in payload.correct_answers if item and item.strip()]
        if not accepted:
            raise _invalid_question(number, "needs at least one correct answer")
        return IdentificationQuestion(prompt=prompt, correct_answers=tuple(accepted))

    if not isinstance(payload, MultipleChoiceQuestionPayload):
        raise _invalid_question(number, "has an unsupported type")

    if len(payload.choices) < MIN_CHOICES:
        raise _invalid_question(number, f"needs at least {MIN_CHOICES} choices")
    if any(not (choice or "").strip() for choice in payload.choices):
        raise _invalid_question(number, "has empty choices")
    choices = tuple(choice.strip() for choice in payload.choices)

    if payload.multiple_correct:
        if payload.correct_answer is not None:
            raise _invalid_question(number, "must use correct_answers when multiple answers are allowed")
        if not payload.correct_answers:
            raise _invalid_question(number, "needs at least one correct answer")
        try:
            return MultiChoiceQuestion(
                prompt=prompt,
                choices=choices,
                correct_answers=frozenset(payload.correct_answers),
            )
        except ScoringError as exc:
            raise _invalid_question(number, "has an invalid correct choice", exc) from exc

    if payload.correct_answers:
        raise _invalid_question(number, "must use correct_answer when only one answer is allowed")
    if payload.correct_answer is None:
        raise _invalid_question(number, "needs a correct answer")
    try:
        return SingleChoiceQuestion(prompt=prompt, choices=choices, correct_answer=payload.correct_answer)
    except ScoringError as exc:
        raise _invalid_question(number, "has an invalid correct choice", exc) from exc


def validate_quiz_payload(title: Optional[str], questions: Sequence[Any]) -> Tuple[str, List[Question]]:
    cleaned_title = (title or "").strip()
    if not cleaned_title:
        raise QuizError(422, "Please enter a quiz title", {"field": "title"})
    if not questions:
        raise QuizError(422, "Please add at least one question", {"field": "questions"})
    parsed = [question_from_payload(item, index + 1) for index, item in enumerate(questions)]
    return cleaned_title, parsed


def _question_row(question: Question, position: int) -> models.QuizQuestion:
    if isinstance(question, IdentificationQuestion):
        return models.QuizQuestion(
            position=position,
            type=QUESTION_IDENTIFICATION,
            prompt=question.prompt,
            choices_json=None,
            answer_json={"mode": ANSWER_MODE_TEXT, "correct_answers": list(question.correct_answers)},
        )
    if isinstance(question, MultiChoiceQuestion):
        answer_json = {"mode": ANSWER_MODE_MULTIPLE, "correct_answers": sorted(question.correct_answers)}
    else:
        answer_json = {"mode": ANSWER_MODE_SINGLE, "correct_answer": question.correct_answer}
    return models.QuizQuestion(
        position=position,
        type=QUESTION_MULTIPLE_CHOICE,
        prompt=question.prompt,
        choices_json=list(question.choices),
        answer_json=answer_json,
    )


def question_from_row(row: models.QuizQuestion) -> Question:
    answer = row.answer_json or {}
    mode = answer.get("mode")
    if row.type == QUESTION_IDENTIFICATION and mode == ANSWER_MODE_TEXT:
        return IdentificationQuestion(prompt=row.prompt, correct_answers=tuple(answer.get("correct_answers") or ()))
    choices = tuple(row.choices_json or ())
    if row.type == QUESTION_MULTIPLE_CHOICE and mode == ANSWER_MODE_SINGLE:
        return SingleChoiceQuestion(prompt=row.prompt, choices=choices, correct_answer=answer.get("correct_answer"))
    if row.type == QUESTION_MULTIPLE_CHOICE and mode == ANSWER_MODE_MULTIPLE:
        return MultiChoiceQuestion(
            prompt=row.prompt,
            choices=choices,
            correct_answers=frozenset(answer.get("correct_answers") or ()),
        )
    raise ScoringError(f"Stored question {row.id} has unknown type {row.type!r} / mode {mode!r}")


def load_questions(quiz: models.Quiz) -> List[Question]:
    return [question_from_row(row) for row in sorted(quiz.questions, key=lambda item: item.position)]


def serialize_question(question: Question) -> Dict[str, Any]:
    if isinstance(question, IdentificationQuestion):
        return {
            "type": QUESTION_IDENTIFICATION,
            "question": question.prompt,
            "choices": None,
            "multiple_correct": False,
            "correct_answer": None,
            "correct_answers": list(question.correct_answers),
        }
    multiple = isinstance(question, MultiChoiceQuestion)
    return {
        "type": QUESTION_MULTIPLE_CHOICE,
        "question": question.prompt,
        "choices": list(question.choices),
        "multiple_correct": multiple,
        "correct_answer": None if multiple else question.correct_answer,
        "correct_answers": sorted(question.correct_answers) if multiple else None,
    }


def serialize_quiz(quiz: models.Quiz, submission_count: int) -> Dict[str, Any]:
    return {
        "quiz_id": quiz.id,
        "code": quiz.code,
        "title": quiz.title,
        "description": quiz.description,
        "shuffle_questions": bool(quiz.shuffle_questions),
        "creator_id": quiz.creator_id,
        "questions": [serialize_question(item) for item in load_questions(quiz)],
        "submission_count": submission_count,
        "created_at": quiz.created_at,
        "updated_at": quiz.updated_at,
    }


def _clean_description(description: Optional[str]) -> Optional[str]:
    cleaned = (description or "").strip()
    return cleaned or None


def _allocate_code(db: Session, rng: Optional[RandomSource], max_attempts: int) -> str:
    for attempt in range(1, max_attempts + 1):
        code = generate_quiz_code(rng)
        taken = db.query(models.Quiz.id).filter(models.Quiz.code == code).first()
        if not taken:
            return code
        logger.warning("Quiz code collision on attempt %s/%s: %s", attempt, max_attempts, code)
    raise QuizError(503, "Could not allocate a unique quiz code", {"attempts": max_attempts})


def create_quiz(
    db: Session,
    creator_id: str,
    title: Optional[str],
    description: Optional[str],
    shuffle_questions: bool,
    questions: Sequence[Any],
    rng: Optional[RandomSource] = None,
    max_code_attempts: int = DEFAULT_CODE_ATTEMPTS,
) -> models.Quiz:
    cleaned_title, parsed = validate_quiz_payload(title, questions)
    quiz = models.Quiz(
        code=_allocate_code(db, rng, max_code_attempts),
        title=cleaned_title,
        description=_clean_description(description),
        shuffle_questions=bool(shuffle_questions),
        creator_id=creator_id,
        questions=[_question_row(item, position) for position, item in enumerate(parsed)],
    )
    db.add(quiz)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise QuizError(409, "Quiz code already in use, please retry", {"code": quiz.code}) from exc
    db.refresh(quiz)
    logger.info("Created quiz %s (%s) with %s questions for %s", quiz.id, quiz.code, len(parsed), creator_id)
    return quiz


def get_quiz_or_error(db: Session, quiz_id: int) -> models.Quiz:
    quiz = db.query(models.Quiz).filter(models.Quiz.id == quiz_id).first()
    if not quiz:
        raise QuizError(404, "Quiz not found", {"quiz_id": quiz_id})
    return quiz


def get_owned_quiz(db: Session, quiz_id: int, user_id: str) -> models.Quiz:
    quiz = get_quiz_or_error(db, quiz_id)
    if quiz.creator_id != user_id:
        raise QuizError(403, "You don't have permission to manage this quiz", {"quiz_id": quiz_id})
    return quiz


def get_quiz_by_code(db: Session, code: str) -> Optional[models.Quiz]:
    return db.query(models.Quiz).filter(models.Quiz.code == code).first()


def count_submissions(db: Session, quiz_id: int) -> int:
    return (
        db.query(func.count(models.QuizSubmission.id))
        .filter(models.QuizSubmission.quiz_id == quiz_id)
        .scalar()
        or 0
    )


def has_user_submitted(db: Session, quiz_id: int, user_id: str) -> bool:
    found = (
        db.query(models.QuizSubmission.id)
        .filter(
            models.QuizSubmission.quiz_id == quiz_id,
            models.QuizSubmission.user_id == user_id,
        )
        .first()
    )
    return found is not None


def ensure_can_answer(db: Session, quiz: models.Quiz, user_id: str) -> None:
    if quiz.creator_id == user_id:
        raise QuizError(403, "You cannot answer your own quiz", {"quiz_id": quiz.id})
    if has_user_submitted(db, quiz.id, user_id):
        raise QuizError(409, "You have already answered this quiz", {"quiz_id": quiz.id})


def join_quiz(db: Session, code: Any, user_id: str) -> models.Quiz:
    if not is_valid_quiz_code(code):
        raise QuizError(
            422,
            f"Please enter a valid 11-character code (format: {CODE_FORMAT_HINT})",
            {"code": code},
        )
    quiz = get_quiz_by_code(db, code)
    if not quiz:
        raise QuizError(404, "Quiz not found. Please check the code and try again.", {"code": code})
    ensure_can_answer(db, quiz, user_id)
    return quiz


def list_user_quizzes(db: Session, user_id: str) -> List[Tuple[models.Quiz, int]]:
    quizzes = (
        db.query(models.Quiz)
        .filter(models.Quiz.creator_id == user_id)
        .order_by(models.Quiz.created_at.desc(), models.Quiz.id.desc())
        .all()
    )
    if not quizzes:
        return []
    ids = [item.id for item in quizzes]
    counts = dict(
        db.query(models.QuizSubmission.quiz_id, func.count(models.QuizSubmission.id))
        .filter(models.QuizSubmission.quiz_id.in_(ids))
        .group_by(models.QuizSubmission.quiz_id)
        .all()
    )
    return [(item, int(counts.get(item.id, 0))) for item in quizzes]


def update_quiz(
    db: Session,
    quiz_id: int,
    user_id: str,
    title: Optional[str],
    description: Optional[str],
    shuffle_questions: bool,
    questions: Sequence[Any],
) -> models.Quiz:
    quiz = get_owned_quiz(db, quiz_id, user_id)
    cleaned_title, parsed = validate_quiz_payload(title, questions)
    quiz.title = cleaned_title
    quiz.description = _clean_description(description)
    quiz.shuffle_questions = bool(shuffle_questions)
    quiz.questions = [_question_row(item, position) for position, item in enumerate(parsed)]
    quiz.updated_at = func.now()
    db.commit()
    db.refresh(quiz)
    logger.info("Updated quiz %s with %s questions", quiz.id, len(parsed))
    return quiz


def delete_quiz(db: Session, quiz_id: int, user_id: str) -> int:
    quiz = get_owned_quiz(db, quiz_id, user_id)
    removed = len(quiz.submissions)
    db.delete(quiz)
    db.commit()
    logger.info("Deleted quiz %s and %s submissions", quiz_id, removed)
    return removed


def build_take_view(db: Session, quiz_id: int, user_id: str, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    quiz = get_quiz_or_error(db, quiz_id)
    ensure_can_answer(db, quiz, user_id)
    questions = load_questions(quiz)
    order = build_question_order(len(questions), bool(quiz.shuffle_questions), rng)
    items = []
    for original_index in order:
        question = questions[original_index]
        items.append(
            {
                "index": original_index,
                "type": QUESTION_IDENTIFICATION
                if isinstance(question, IdentificationQuestion)
                else QUESTION_MULTIPLE_CHOICE,
                "question": question.prompt,
                "choices": None if isinstance(question, IdentificationQuestion) else list(question.choices),
                "multiple_correct": isinstance(question, MultiChoiceQuestion),
            }
        )
    return {
        "quiz_id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "question_order": order,
        "questions": items,
    }
