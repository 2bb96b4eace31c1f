# alea/services.py
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .config import Settings
from .database import create_db_engine, create_session_factory, init_db
from .inference import GeminiInference, InferenceService
from .jobs import JobClaims
from .notifications import NotificationChannel
from .store import DocumentStore


@dataclass
class Services:
    """Clients shared by routes and workers, built once per application"""
    settings: Settings
    engine: Engine
    session_factory: sessionmaker
    store: DocumentStore
    inference: InferenceService
    channel: NotificationChannel
    claims: JobClaims


def build_services(settings: Settings, inference: Optional[InferenceService] = None,
                   engine: Optional[Engine] = None) -> Services:
    engine = engine or create_db_engine(settings.database_url)
    init_db(engine)
    session_factory = create_session_factory(engine)
    store = DocumentStore(session_factory)
    return Services(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        store=store,
        inference=inference or GeminiInference(settings),
        channel=NotificationChannel(store),
        claims=JobClaims(store, ttl_seconds=settings.job_claim_ttl_seconds),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
