import os
from typing import List
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Always load .env from root
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
load_dotenv(os.path.join(BASE_DIR, ".env"))


class Settings(BaseSettings):
    JWT_SECRET: str = os.getenv("JWT_SECRET", "change-me")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")

    # Shared secret for the scheduled jobs endpoints
    CRON_SECRET: str | None = os.getenv("CRON_SECRET")

    DATABASE_URL: str | None = os.getenv("DATABASE_URL")
    DB_USER: str = os.getenv("DB_USER", "postgres")
    DB_PASS: str = os.getenv("DB_PASS", "postgres")
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_PORT: str = os.getenv("DB_PORT", "5432")
    PLAZA_DB_NAME: str = os.getenv("PLAZA_DB_NAME", "plaza")
    DB_SSL_MODE: str = os.getenv("DB_SSL_MODE", "prefer")
    DB_STATEMENT_TIMEOUT_MS: int = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", 15000))

    # Billing policy
    BILL_NUMBER_MAX_ATTEMPTS: int = 2
    ADVANCE_OFFSET_BILL_TYPES: List[str] = ["rent"]
    RENT_ON_NON_RENT_BILLS: bool = True
    BILL_LATE_SURCHARGE_PCT: float = 10.0
    METER_LATE_SURCHARGE_PCT: float = 5.0
    DEFAULT_PAYMENT_METHOD: str = "cash"
    BULK_ERROR_SUMMARY_LIMIT: int = 10

    # Scheduled rent run
    RENT_BILL_GENERATION_DAY: int | None = None
    RENT_BILL_DUE_DAYS: int = 15

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()

PLAZA_DATABASE_URL = settings.DATABASE_URL or (
    f"postgresql+psycopg2://{settings.DB_USER}:{settings.DB_PASS}@{settings.DB_HOST}:{settings.DB_PORT}/{settings.PLAZA_DB_NAME}?sslmode={settings.DB_SSL_MODE}"
)
