from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, StrictInt, StrictStr

AnswerValue = Union[StrictStr, StrictInt, List[StrictInt], None]


class QuizSubmitRequest(BaseModel):
    answers: List[AnswerValue]
    question_order: Optional[List[int]] = None


class ScoreRead(BaseModel):
    correct: int = Field(..., ge=0)
    total: int = Field(..., ge=1)
    percentage: int = Field(..., ge=0, le=100)


class QuizSubmitQuestionResult(BaseModel):
    index: int
    question: str
    correct: bool
    user_answer: Any = None
    expected_answer: str


class SubmissionRead(BaseModel):
    submission_id: int
    quiz_id: int
    quiz_title: Optional[str] = None
    user_id: str
    user_name: str
    answers: List[Any]
    score: ScoreRead
    submitted_at: Optional[datetime] = None
    per_question_result: Optional[List[QuizSubmitQuestionResult]] = None


class SubmissionListResponse(BaseModel):
    items: List[SubmissionRead]
