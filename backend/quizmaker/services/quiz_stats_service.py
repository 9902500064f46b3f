from typing import Any, Dict, List, Optional, Sequence

from quizmaker.db import models
from quizmaker.services.quiz_service import load_questions
from quizmaker.services.scoring import Question, round_percentage
from quizmaker.services.submission_service import build_question_results

DEFAULT_PASS_PERCENTAGE = 50


def summarize_percentages(percentages: Sequence[int], pass_percentage: int = DEFAULT_PASS_PERCENTAGE) -> Optional[Dict[str, int]]:
    if not percentages:
        return None
    total = len(percentages)
    passed = sum(1 for value in percentages if value >= pass_percentage)
    return {
        "total_responses": total,
        "average_score": round_percentage(sum(percentages), total * 100),
        "highest_score": max(percentages),
        "lowest_score": min(percentages),
        "pass_rate": round_percentage(passed, total),
    }


def build_question_stats(questions: Sequence[Question], answer_sets: Sequence[Sequence[Any]]) -> List[Dict[str, Any]]:
    correct_counts = [0] * len(questions)
    for answers in answer_sets:
        for result in build_question_results(questions, answers):
            if result["correct"]:
                correct_counts[result["index"]] += 1

    responses = len(answer_sets)
    stats: List[Dict[str, Any]] = []
    for index, question in enumerate(questions):
        correct = correct_counts[index]
        stats.append(
            {
                "index": index,
                "question": question.prompt,
                "correct_count": correct,
                "incorrect_count": responses - correct,
                "percentage": round_percentage(correct, responses) if responses else 0,
            }
        )
    return stats


def build_quiz_overview(
    quiz: models.Quiz,
    submissions: Sequence[models.QuizSubmission],
    pass_percentage: int = DEFAULT_PASS_PERCENTAGE,
) -> Dict[str, Any]:
    questions = load_questions(quiz)
    return {
        "quiz_id": quiz.id,
        "code": quiz.code,
        "title": quiz.title,
        "summary": summarize_percentages([item.percentage for item in submissions], pass_percentage),
        "questions": build_question_stats(questions, [item.answers_json or [] for item in submissions]),
    }
