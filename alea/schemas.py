# alea/schemas.py
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Duration = Literal["7_days", "14_days", "30_days"]

COURSE_GENERATION = "course_generation"
MODULE_GENERATION = "module_generation"
FLASHCARD_GENERATION = "flashcard_generation"


def duration_days(duration: str) -> int:
    return int(duration.replace("_days", ""))


# --- Accounts ---
class UserCreate(BaseModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)


class UserLogin(BaseModel):
    username: str
    password: str


# --- Job triggers ---
class CourseJobCreate(BaseModel):
    topic: str
    duration: Duration = "7_days"

    @field_validator("topic")
    @classmethod
    def topic_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Topic must be a non-empty string.")
        return value.strip()


class LessonJobCreate(BaseModel):
    course_id: str
    module_id: str
    module_title: Optional[str] = None
    module_description: Optional[str] = None


class FlashcardJobCreate(BaseModel):
    course_id: str
    module_id: str
    lesson_material: Optional[str] = None
    module_title: Optional[str] = None


class JobAccepted(BaseModel):
    status: str = "accepted"
    type: str
    related_doc_id: Optional[str] = None
    message: str


# --- Inference payloads ---
class DailyModule(BaseModel):
    day: int = Field(strict=True, ge=1)
    title: str = Field(strict=True, min_length=1)
    description: str = Field(strict=True)


class CourseOutline(BaseModel):
    """Course architecture returned by the model"""
    title: str = Field(strict=True, min_length=1)
    daily_modules: List[DailyModule] = Field(alias="dailyModules", min_length=1)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def days_are_sequential(self):
        days = sorted(m.day for m in self.daily_modules)
        if days != list(range(1, len(days) + 1)):
            raise ValueError(f"dailyModules must be numbered 1..{len(days)}, got {days}")
        return self


class Flashcard(BaseModel):
    q: str = Field(strict=True, min_length=1)
    a: str = Field(strict=True, min_length=1)


class FlashcardDeck(BaseModel):
    cards: List[Flashcard] = Field(min_length=1)


# --- Notifications ---
class NotificationStatus(str, Enum):
    GENERATING = "generating"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not NotificationStatus.GENERATING


class Notification(BaseModel):
    id: str
    message: str
    status: NotificationStatus
    type: str
    related_doc_id: Optional[str] = Field(None, alias="relatedDocId")
    course_id: Optional[str] = Field(None, alias="courseId")
    is_read: bool = Field(False, alias="isRead")
    created_at: datetime = Field(alias="createdAt")
    link: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
