# alea/models.py
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint

from .database import Base


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(String, default="User")  # "User", "Admin" or "Superadmin"
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class DocumentRecord(Base):
    """One document of the document store, addressed by collection path + id"""
    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("collection", "doc_id", name="uq_documents_path"),)

    id = Column(Integer, primary_key=True)
    collection = Column(String, nullable=False, index=True)  # e.g. "courses/abc/modules"
    doc_id = Column(String, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def path(self) -> str:
        return f"{self.collection}/{self.doc_id}"
