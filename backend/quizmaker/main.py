import logging

from fastapi import Depends, FastAPI, Header
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from quizmaker.core.config import load_settings
from quizmaker.core.logging_config import configure_logging
from quizmaker.db.session import Base, engine, get_db
from quizmaker.schemas.quiz import (
    QuizCreateRequest,
    QuizCreateResponse,
    QuizJoinRequest,
    QuizJoinResponse,
    QuizListResponse,
    QuizRead,
    QuizTakeResponse,
    QuizUpdateRequest,
)
from quizmaker.schemas.quiz_overview import QuizOverviewResponse
from quizmaker.schemas.quiz_submit import QuizSubmitRequest, SubmissionListResponse, SubmissionRead
from quizmaker.services.quiz_service import (
    QuizError,
    build_take_view,
    count_submissions,
    create_quiz,
    delete_quiz,
    get_owned_quiz,
    join_quiz,
    list_user_quizzes,
    serialize_quiz,
    update_quiz,
)
from quizmaker.services.quiz_stats_service import build_quiz_overview
from quizmaker.services.submission_service import (
    SubmissionError,
    get_submission,
    list_quiz_submissions,
    list_user_submissions,
    serialize_submission,
    submit_quiz,
)

settings = load_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Quiz Maker", docs_url="/api-docs", redoc_url="/api-redoc")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class CurrentUser(BaseModel):
    user_id: str
    user_name: str


class IdentityError(Exception):
    pass


@app.on_event("startup")
def create_tables_on_startup():
    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured")


@app.exception_handler(IdentityError)
def identity_error_handler(request, exc: IdentityError):
    return _error_response(401, str(exc), {"header": "X-User-Id"})


def get_current_user(
    x_user_id: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
) -> CurrentUser:
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise IdentityError("X-User-Id is required")
    return CurrentUser(user_id=user_id, user_name=(x_user_name or "").strip() or "Anonymous")


def _error_response(status: int, message: str, details: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"code": status, "message": message, "details": details or {}},
    )


def _service_error(exc: QuizError | SubmissionError) -> JSONResponse:
    return _error_response(exc.status_code, exc.message, exc.details)


def _list_item(quiz, submission_count: int) -> dict:
    return {
        "quiz_id": quiz.id,
        "code": quiz.code,
        "title": quiz.title,
        "description": quiz.description,
        "question_count": len(quiz.questions),
        "submission_count": submission_count,
        "created_at": quiz.created_at,
        "updated_at": quiz.updated_at,
    }


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/quizzes", response_model=QuizCreateResponse)
def quiz_create(
    request: QuizCreateRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        quiz = create_quiz(
            db,
            creator_id=user.user_id,
            title=request.title,
            description=request.description,
            shuffle_questions=request.shuffle_questions,
            questions=request.questions,
            max_code_attempts=settings.quiz_code_max_attempts,
        )
        return {"quiz_id": quiz.id, "code": quiz.code}
    except QuizError as exc:
        return _service_error(exc)


@app.get("/quizzes/mine", response_model=QuizListResponse)
def quiz_list_mine(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    items = list_user_quizzes(db, user.user_id)
    return {"items": [_list_item(quiz, count) for quiz, count in items]}


@app.post("/quizzes/join", response_model=QuizJoinResponse)
def quiz_join(
    request: QuizJoinRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        quiz = join_quiz(db, request.code, user.user_id)
        return {
            "quiz_id": quiz.id,
            "code": quiz.code,
            "title": quiz.title,
            "description": quiz.description,
            "question_count": len(quiz.questions),
        }
    except QuizError as exc:
        return _service_error(exc)


@app.get("/quizzes/{quiz_id}", response_model=QuizRead)
def quiz_detail(
    quiz_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        quiz = get_owned_quiz(db, quiz_id, user.user_id)
        return serialize_quiz(quiz, count_submissions(db, quiz.id))
    except QuizError as exc:
        return _service_error(exc)


@app.put("/quizzes/{quiz_id}", response_model=QuizRead)
def quiz_update(
    quiz_id: int,
    request: QuizUpdateRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        quiz = update_quiz(
            db,
            quiz_id=quiz_id,
            user_id=user.user_id,
            title=request.title,
            description=request.description,
            shuffle_questions=request.shuffle_questions,
            questions=request.questions,
        )
        return serialize_quiz(quiz, count_submissions(db, quiz.id))
    except QuizError as exc:
        return _service_error(exc)


@app.delete("/quizzes/{quiz_id}")
def quiz_delete(
    quiz_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        removed = delete_quiz(db, quiz_id, user.user_id)
        return {"status": "deleted", "quiz_id": quiz_id, "deleted_submissions": removed}
    except QuizError as exc:
        return _service_error(exc)


@app.get("/quizzes/{quiz_id}/take", response_model=QuizTakeResponse)
def quiz_take(
    quiz_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        return build_take_view(db, quiz_id, user.user_id)
    except QuizError as exc:
        return _service_error(exc)


@app.post("/quizzes/{quiz_id}/submissions", response_model=SubmissionRead)
def quiz_submit(
    quiz_id: int,
    request: QuizSubmitRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        submission = submit_quiz(
            db,
            quiz_id=quiz_id,
            user_id=user.user_id,
            user_name=user.user_name,
            answers=request.answers,
            question_order=request.question_order,
        )
        return serialize_submission(submission, include_results=True)
    except (QuizError, SubmissionError) as exc:
        return _service_error(exc)


@app.get("/quizzes/{quiz_id}/submissions", response_model=SubmissionListResponse)
def quiz_submissions(
    quiz_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        quiz = get_owned_quiz(db, quiz_id, user.user_id)
        return {"items": [serialize_submission(item) for item in list_quiz_submissions(db, quiz.id)]}
    except QuizError as exc:
        return _service_error(exc)


@app.get("/quizzes/{quiz_id}/overview", response_model=QuizOverviewResponse)
def quiz_overview(
    quiz_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        quiz = get_owned_quiz(db, quiz_id, user.user_id)
        submissions = list_quiz_submissions(db, quiz.id)
        return build_quiz_overview(quiz, submissions, settings.quiz_pass_percentage)
    except QuizError as exc:
        return _service_error(exc)


@app.get("/submissions/mine", response_model=SubmissionListResponse)
def submissions_mine(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return {"items": [serialize_submission(item) for item in list_user_submissions(db, user.user_id)]}


@app.get("/submissions/{submission_id}", response_model=SubmissionRead)
def submission_detail(
    submission_id: int,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        submission = get_submission(db, submission_id, user.user_id)
        return serialize_submission(submission, include_results=True)
    except SubmissionError as exc:
        return _service_error(exc)
