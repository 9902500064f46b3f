from typing import List, Optional

from pydantic import BaseModel


class QuizOverviewSummary(BaseModel):
    total_responses: int
    average_score: int
    highest_score: int
    lowest_score: int
    pass_rate: int


class QuestionStat(BaseModel):
    index: int
    question: str
    correct_count: int
    incorrect_count: int
    percentage: int


class QuizOverviewResponse(BaseModel):
    quiz_id: int
    code: str
    title: str
    summary: Optional[QuizOverviewSummary] = None
    questions: List[QuestionStat]
