# alea/config.py
import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# SQLite DB path
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DB_PATH = os.path.join(BASE_DIR, "alea.db")
DATABASE_URL = f"sqlite:///{DB_PATH}"

# Gemini exposes an OpenAI-compatible endpoint
GEMINI_OPENAI_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class Settings(BaseModel):
    """Runtime configuration for the API and its workers"""
    database_url: str = DATABASE_URL
    gemini_api_key: str
    model_name: str = "gemini-2.5-flash"
    inference_base_url: str = GEMINI_OPENAI_URL
    inference_timeout: Optional[float] = None
    secret_key: str
    token_algorithm: str = "HS256"
    token_ttl_minutes: int = 60 * 24
    job_claim_ttl_seconds: int = 600
    stale_job_seconds: int = 900
    sweep_interval_seconds: int = 60
    daily_credits: int = 10
    deleted_retention_days: int = 30
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Read settings from the environment (and a local .env file)."""
    load_dotenv()

    gemini_api_key = os.getenv("GEMINI_API_KEY")
    secret_key = os.getenv("SECRET_KEY")

    # Validate required environment variables
    if not gemini_api_key:
        raise ValueError("GEMINI_API_KEY environment variable is not set")
    if not secret_key:
        raise ValueError("SECRET_KEY environment variable is not set")

    timeout = os.getenv("INFERENCE_TIMEOUT")
    return Settings(
        database_url=os.getenv("DATABASE_URL", DATABASE_URL),
        gemini_api_key=gemini_api_key,
        model_name=os.getenv("MODEL_NAME", "gemini-2.5-flash"),
        inference_base_url=os.getenv("INFERENCE_BASE_URL", GEMINI_OPENAI_URL),
        inference_timeout=float(timeout) if timeout else None,
        secret_key=secret_key,
        token_ttl_minutes=int(os.getenv("TOKEN_TTL_MINUTES", 60 * 24)),
        job_claim_ttl_seconds=int(os.getenv("JOB_CLAIM_TTL_SECONDS", 600)),
        stale_job_seconds=int(os.getenv("STALE_JOB_SECONDS", 900)),
        sweep_interval_seconds=int(os.getenv("SWEEP_INTERVAL_SECONDS", 60)),
        daily_credits=int(os.getenv("DAILY_CREDITS", 10)),
        deleted_retention_days=int(os.getenv("DELETED_RETENTION_DAYS", 30)),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
