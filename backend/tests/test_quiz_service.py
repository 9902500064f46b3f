import random

import pytest

from quizmaker.db import models
from quizmaker.schemas.quiz import QuizCreateRequest
from quizmaker.services.question_order import build_question_order
from quizmaker.services.quiz_codes import generate_quiz_code, is_valid_quiz_code
from quizmaker.services.quiz_service import (
    QuizError,
    build_take_view,
    create_quiz,
    delete_quiz,
    get_quiz_by_code,
    join_quiz,
    list_user_quizzes,
    load_questions,
    update_quiz,
)
from quizmaker.services.scoring import IdentificationQuestion, MultiChoiceQuestion, SingleChoiceQuestion
from quizmaker.services.submission_service import SubmissionError, submit_quiz


def _create(db, payload, creator_id="creator-1", **kwargs):
    request = QuizCreateRequest(**payload)
    return create_quiz(
        db,
        creator_id=creator_id,
        title=request.title,
        description=request.description,
        shuffle_questions=request.shuffle_questions,
        questions=request.questions,
        **kwargs,
    )


def _questions(*items):
    return QuizCreateRequest(title="t", questions=list(items)).questions


def test_create_quiz_stores_trimmed_variants(db, quiz_payload):
    quiz = _create(db, quiz_payload)
    assert is_valid_quiz_code(quiz.code)
    assert quiz.title == "Capitals"
    questions = load_questions(quiz)
    assert isinstance(questions[0], IdentificationQuestion)
    assert questions[0].correct_answers == ("Paris", "paris, france")
    assert isinstance(questions[1], SingleChoiceQuestion)
    assert questions[1].correct_answer == 1
    assert isinstance(questions[2], MultiChoiceQuestion)
    assert questions[2].correct_answers == frozenset({1, 3})


def test_code_collision_is_retried(db, quiz_payload):
    first = _create(db, quiz_payload, rng=random.Random(7))
    assert first.code == generate_quiz_code(random.Random(7))
    second = _create(db, quiz_payload, rng=random.Random(7))
    assert second.code != first.code
    assert is_valid_quiz_code(second.code)


def test_code_allocation_gives_up_after_max_attempts(db, quiz_payload):
    _create(db, quiz_payload, rng=random.Random(7))
    with pytest.raises(QuizError) as excinfo:
        _create(db, quiz_payload, rng=random.Random(7), max_code_attempts=1)
    assert excinfo.value.status_code == 503


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"title": "   ", "questions": []}, "Please enter a quiz title"),
        ({"title": "Quiz", "questions": []}, "Please add at least one question"),
        (
            {"title": "Quiz", "questions": [{"type": "identification", "question": " ", "correct_answers": ["a"]}]},
            "Question 1 is empty",
        ),
        (
            {"title": "Quiz", "questions": [{"type": "identification", "question": "Q", "correct_answers": [" "]}]},
            "Question 1 needs at least one correct answer",
        ),
        (
            {
                "title": "Quiz",
                "questions": [
                    {"type": "identification", "question": "Q", "correct_answers": ["a"]},
                    {"type": "multiple-choice", "question": "Q2", "choices": ["A", " "], "correct_answer": 0},
                ],
            },
            "Question 2 has empty choices",
        ),
        (
            {"title": "Quiz", "questions": [{"type": "multiple-choice", "question": "Q", "choices": ["A"], "correct_answer": 0}]},
            "Question 1 needs at least 2 choices",
        ),
        (
            {
                "title": "Quiz",
                "questions": [
                    {"type": "multiple-choice", "question": "Q", "choices": ["A", "B"], "multiple_correct": True}
                ],
            },
            "Question 1 needs at least one correct answer",
        ),
        (
            {"title": "Quiz", "questions": [{"type": "multiple-choice", "question": "Q", "choices": ["A", "B"]}]},
            "Question 1 needs a correct answer",
        ),
        (
            {
                "title": "Quiz",
                "questions": [
                    {"type": "multiple-choice", "question": "Q", "choices": ["A", "B"], "correct_answer": 5}
                ],
            },
            "Question 1 has an invalid correct choice",
        ),
        (
            {
                "title": "Quiz",
                "questions": [
                    {
                        "type": "multiple-choice",
                        "question": "Q",
                        "choices": ["A", "B"],
                        "correct_answer": 0,
                        "correct_answers": [0, 1],
                    }
                ],
            },
            "Question 1 must use correct_answer when only one answer is allowed",
        ),
    ],
)
def test_create_quiz_validation(db, payload, message):
    with pytest.raises(QuizError) as excinfo:
        _create(db, payload)
    assert excinfo.value.status_code == 422
    assert excinfo.value.message == message


def test_lookup_by_code_is_exact(db, quiz_payload):
    quiz = _create(db, quiz_payload)
    assert get_quiz_by_code(db, quiz.code).id == quiz.id
    other_code = "zzzzz-zzzzz" if quiz.code != "zzzzz-zzzzz" else "yyyyy-yyyyy"
    assert get_quiz_by_code(db, other_code) is None


def test_join_quiz_validates_code_format_before_lookup(db):
    with pytest.raises(QuizError) as excinfo:
        join_quiz(db, "not-a-code", "taker-1")
    assert excinfo.value.status_code == 422
    with pytest.raises(QuizError) as excinfo:
        join_quiz(db, 12345, "taker-1")
    assert excinfo.value.status_code == 422


@pytest.mark.parametrize("description", [None, "", "   "])
def test_blank_description_is_stored_as_null(db, quiz_payload, description):
    quiz_payload["description"] = description
    quiz = _create(db, quiz_payload)
    assert quiz.description is None

    updated = update_quiz(db, quiz.id, "creator-1", "Capitals", "  ", False, _questions(*quiz_payload["questions"]))
    assert updated.description is None


def test_join_quiz_rules(db, quiz_payload):
    quiz = _create(db, quiz_payload)
    with pytest.raises(QuizError) as excinfo:
        join_quiz(db, "ABCDE_FGHIJ", "taker-1")
    assert excinfo.value.status_code == 422
    with pytest.raises(QuizError) as excinfo:
        join_quiz(db, quiz.code, "creator-1")
    assert excinfo.value.status_code == 403
    assert join_quiz(db, quiz.code, "taker-1").id == quiz.id


def test_update_replaces_questions_and_checks_owner(db, quiz_payload):
    quiz = _create(db, quiz_payload)
    new_questions = _questions({"type": "identification", "question": "Only one", "correct_answers": ["yes"]})
    with pytest.raises(QuizError) as excinfo:
        update_quiz(db, quiz.id, "someone-else", "New", None, True, new_questions)
    assert excinfo.value.status_code == 403

    updated = update_quiz(db, quiz.id, "creator-1", " New title ", " desc ", True, new_questions)
    assert updated.title == "New title"
    assert updated.description == "desc"
    assert updated.shuffle_questions is True
    assert len(load_questions(updated)) == 1
    assert db.query(models.QuizQuestion).filter(models.QuizQuestion.quiz_id == quiz.id).count() == 1


def test_delete_cascades_to_submissions(db, quiz_payload):
    quiz = _create(db, quiz_payload)
    submit_quiz(db, quiz.id, "taker-1", "Terry", ["paris", 1, [1, 3]])
    submit_quiz(db, quiz.id, "taker-2", None, ["rome", 0, [1]])
    assert db.query(models.QuizSubmission).count() == 2

    with pytest.raises(QuizError):
        delete_quiz(db, quiz.id, "taker-1")

    assert delete_quiz(db, quiz.id, "creator-1") == 2
    assert db.query(models.Quiz).count() == 0
    assert db.query(models.QuizQuestion).count() == 0
    assert db.query(models.QuizSubmission).count() == 0


def test_list_user_quizzes_counts_submissions(db, quiz_payload):
    first = _create(db, quiz_payload)
    second = _create(db, quiz_payload)
    _create(db, quiz_payload, creator_id="creator-2")
    submit_quiz(db, first.id, "taker-1", "Terry", ["paris", 1, [1, 3]])

    items = list_user_quizzes(db, "creator-1")
    assert [quiz.id for quiz, _ in items] == [second.id, first.id]
    assert dict((quiz.id, count) for quiz, count in items) == {first.id: 1, second.id: 0}


def test_submit_scores_and_stores_native_answers(db, quiz_payload):
    quiz = _create(db, quiz_payload)
    submission = submit_quiz(db, quiz.id, "taker-1", "  ", ["  PARIS ", 1, [3, 1]])
    assert submission.user_name == "Anonymous"
    assert submission.answers_json == ["  PARIS ", 1, [1, 3]]
    assert (submission.correct_count, submission.total_count, submission.percentage) == (3, 3, 100)


def test_submit_unshuffles_answers(db, quiz_payload):
    quiz = _create(db, quiz_payload)
    shown_order = [2, 0, 1]
    submission = submit_quiz(db, quiz.id, "taker-1", "Terry", [[1, 3], "paris", 0], question_order=shown_order)
    assert submission.answers_json == ["paris", 0, [1, 3]]
    assert submission.correct_count == 2
    assert submission.percentage == 67


@pytest.mark.parametrize(
    "user_id, answers, order, status, message",
    [
        ("creator-1", ["paris", 1, [1, 3]], None, 403, "You cannot answer your own quiz"),
        ("taker-1", ["paris", 1], None, 422, "Answers must match quiz questions"),
        ("taker-1", ["paris", 1, [1, 3]], [0, 0, 1], 422, "Invalid question order"),
        ("taker-1", ["paris", 7, [1, 3]], None, 422, "Invalid answer"),
        ("taker-1", ["paris", None, [1, 3]], None, 422, "Please answer question 2"),
        ("taker-1", ["paris", 1, []], [2, 0, 1], 422, "Please answer question 1"),
    ],
)
def test_submit_rejections(db, quiz_payload, user_id, answers, order, status, message):
    quiz = _create(db, quiz_payload)
    if order == [2, 0, 1]:
        answers = [answers[2], answers[0], answers[1]]
    with pytest.raises(SubmissionError) as excinfo:
        submit_quiz(db, quiz.id, user_id, "name", answers, question_order=order)
    assert excinfo.value.status_code == status
    assert excinfo.value.message == message


def test_second_submission_is_rejected(db, quiz_payload):
    quiz = _create(db, quiz_payload)
    submit_quiz(db, quiz.id, "taker-1", "Terry", ["paris", 1, [1, 3]])
    with pytest.raises(SubmissionError) as excinfo:
        submit_quiz(db, quiz.id, "taker-1", "Terry", ["paris", 1, [1, 3]])
    assert excinfo.value.status_code == 409


def test_take_view_order_follows_injected_random(db, quiz_payload):
    quiz_payload["shuffle_questions"] = True
    quiz = _create(db, quiz_payload)
    view = build_take_view(db, quiz.id, "taker-1", rng=random.Random(3))
    assert view["question_order"] == build_question_order(3, True, random.Random(3))
    assert [item["index"] for item in view["questions"]] == view["question_order"]
    assert build_take_view(db, quiz.id, "taker-1", rng=random.Random(3))["question_order"] == view["question_order"]
