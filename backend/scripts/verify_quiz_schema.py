import os
import sys
import uuid

BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

from quizmaker.db import models
from quizmaker.db.session import SessionLocal
from quizmaker.services.quiz_codes import generate_quiz_code


def main() -> None:
    creator_id = f"verify-{uuid.uuid4().hex[:8]}"
    db = SessionLocal()
    try:
        quiz = models.Quiz(
            code=generate_quiz_code(),
            title="Schema check",
            description="Created by verify_quiz_schema.py",
            shuffle_questions=False,
            creator_id=creator_id,
        )
        db.add(quiz)
        db.flush()

        question = models.QuizQuestion(
            quiz_id=quiz.id,
            position=0,
            type="multiple-choice",
            prompt="Sample question?",
            choices_json=["A", "B", "C", "D"],
            answer_json={"mode": "single", "correct_answer": 0},
        )
        db.add(question)

        submission = models.QuizSubmission(
            quiz_id=quiz.id,
            user_id=f"{creator_id}-taker",
            user_name="Schema Check",
            answers_json=[0],
            correct_count=1,
            total_count=1,
            percentage=100,
        )
        db.add(submission)

        db.commit()

        loaded_quiz = db.query(models.Quiz).filter(models.Quiz.id == quiz.id).first()
        loaded_question = (
            db.query(models.QuizQuestion).filter(models.QuizQuestion.quiz_id == quiz.id).first()
        )
        loaded_submission = (
            db.query(models.QuizSubmission).filter(models.QuizSubmission.quiz_id == quiz.id).first()
        )

        print(
            "quiz_id={quiz_id} code={code} question_id={question_id} submission_id={submission_id}".format(
                quiz_id=loaded_quiz.id if loaded_quiz else None,
                code=loaded_quiz.code if loaded_quiz else None,
                question_id=loaded_question.id if loaded_question else None,
                submission_id=loaded_submission.id if loaded_submission else None,
            )
        )

        db.delete(loaded_quiz)
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    main()
