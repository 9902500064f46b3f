from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class IdentificationQuestionPayload(BaseModel):
    type: Literal["identification"]
    question: str = ""
    correct_answers: List[str] = Field(default_factory=list)


class MultipleChoiceQuestionPayload(BaseModel):
    type: Literal["multiple-choice"]
    question: str = ""
    choices: List[str] = Field(default_factory=list)
    multiple_correct: bool = False
    correct_answer: Optional[int] = None
    correct_answers: Optional[List[int]] = None


QuestionPayload = Annotated[
    Union[IdentificationQuestionPayload, MultipleChoiceQuestionPayload],
    Field(discriminator="type"),
]


class QuizWriteRequest(BaseModel):
    title: str = Field("", max_length=255)
    description: Optional[str] = None
    shuffle_questions: bool = False
    questions: List[QuestionPayload] = Field(default_factory=list)


class QuizCreateRequest(QuizWriteRequest):
    pass


class QuizUpdateRequest(QuizWriteRequest):
    pass


class QuizCreateResponse(BaseModel):
    quiz_id: int
    code: str


class QuestionRead(BaseModel):
    type: str
    question: str
    choices: Optional[List[str]] = None
    multiple_correct: bool = False
    correct_answer: Optional[int] = None
    correct_answers: Optional[List[Any]] = None


class QuizRead(BaseModel):
    quiz_id: int
    code: str
    title: str
    description: Optional[str] = None
    shuffle_questions: bool = False
    creator_id: str
    questions: List[QuestionRead]
    submission_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QuizListItem(BaseModel):
    quiz_id: int
    code: str
    title: str
    description: Optional[str] = None
    question_count: int
    submission_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QuizListResponse(BaseModel):
    items: List[QuizListItem]


class QuizJoinRequest(BaseModel):
    code: str = ""


class QuizJoinResponse(BaseModel):
    quiz_id: int
    code: str
    title: str
    description: Optional[str] = None
    question_count: int


class QuizTakeQuestion(BaseModel):
    index: int
    type: str
    question: str
    choices: Optional[List[str]] = None
    multiple_correct: bool = False


class QuizTakeResponse(BaseModel):
    quiz_id: int
    title: str
    description: Optional[str] = None
    question_order: List[int]
    questions: List[QuizTakeQuestion]
