"""Shared fixtures for quiz service tests."""

import os

os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quizmaker.db import models  # noqa: F401
from quizmaker.db.session import Base, get_db
from quizmaker.main import app


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def quiz_payload():
    return {
        "title": "  Capitals  ",
        "description": "European capitals",
        "shuffle_questions": False,
        "questions": [
            {
                "type": "identification",
                "question": "Capital of France?",
                "correct_answers": ["Paris", "paris, france", "  "],
            },
            {
                "type": "multiple-choice",
                "question": "Which letter is second?",
                "choices": ["A", "B", "C"],
                "correct_answer": 1,
            },
            {
                "type": "multiple-choice",
                "question": "Pick the even positions",
                "choices": ["A", "B", "C", "D"],
                "multiple_correct": True,
                "correct_answers": [1, 3],
            },
        ],
    }


@pytest.fixture
def creator():
    return {"X-User-Id": "creator-1", "X-User-Name": "Casey Creator"}


@pytest.fixture
def taker():
    return {"X-User-Id": "taker-1", "X-User-Name": "Terry Taker"}


@pytest.fixture
def other_taker():
    return {"X-User-Id": "taker-2"}
