import os
from dataclasses import dataclass
from typing import List
from urllib.parse import quote_plus

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    mysql_host: str
    mysql_port: int
    mysql_user: str
    mysql_password: str
    mysql_database: str
    database_url: str
    cors_origins: List[str]
    log_level: str
    quiz_code_max_attempts: int
    quiz_pass_percentage: int
    auto_create_tables: bool


def _build_database_url(
    mysql_host: str,
    mysql_port: int,
    mysql_user: str,
    mysql_password: str,
    mysql_database: str,
) -> str:
    password = quote_plus(mysql_password)
    return (
        "mysql+pymysql://"
        f"{mysql_user}:{password}@{mysql_host}:{mysql_port}/{mysql_database}"
        "?charset=utf8mb4"
    )


def _load_cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS", "")
    if raw:
        return [item.strip() for item in raw.split(",") if item.strip()]
    return ["http://localhost:5173", "http://127.0.0.1:5173"]


def load_settings() -> Settings:
    mysql_host = os.getenv("MYSQL_HOST", "localhost")
    mysql_port = int(os.getenv("MYSQL_PORT", "3306"))
    mysql_user = os.getenv("MYSQL_USER", "app_user")
    mysql_password = os.getenv("MYSQL_PASSWORD", "app_pass")
    mysql_database = os.getenv("MYSQL_DATABASE", "quiz_maker")

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        database_url = _build_database_url(
            mysql_host=mysql_host,
            mysql_port=mysql_port,
            mysql_user=mysql_user,
            mysql_password=mysql_password,
            mysql_database=mysql_database,
        )

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    quiz_code_max_attempts = max(int(os.getenv("QUIZ_CODE_MAX_ATTEMPTS", "5")), 1)
    quiz_pass_percentage = int(os.getenv("QUIZ_PASS_PERCENTAGE", "50"))
    quiz_pass_percentage = max(0, min(quiz_pass_percentage, 100))
    auto_create_tables = os.getenv("AUTO_CREATE_TABLES", "0").strip().lower() in _TRUTHY

    return Settings(
        mysql_host=mysql_host,
        mysql_port=mysql_port,
        mysql_user=mysql_user,
        mysql_password=mysql_password,
        mysql_database=mysql_database,
        database_url=database_url,
        cors_origins=_load_cors_origins(),
        log_level=log_level,
        quiz_code_max_attempts=quiz_code_max_attempts,
        quiz_pass_percentage=quiz_pass_percentage,
        auto_create_tables=auto_create_tables,
    )
