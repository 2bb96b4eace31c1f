from datetime import datetime, timezone
from typing import Optional

from ..inference import decode_course
from ..prompts import COURSE_ARCHITECT_PROMPT
from ..schemas import COURSE_GENERATION, CourseOutline, duration_days
from ..store import WriteBatch
from .base_workflow import BaseWorkflow


class CourseGenerationWorkflow(BaseWorkflow):
    """Course architecture: one course plus one empty module per day"""
    job_type = COURSE_GENERATION
    system_prompt = COURSE_ARCHITECT_PROMPT

    def __init__(self, services, user_id: str, topic: str, duration: str, claim_key: Optional[str] = None):
        super().__init__(services, user_id, claim_key=claim_key)
        self.topic = topic
        self.duration = duration
        self.course_id: Optional[str] = None

    def start_message(self) -> str:
        return f"Generating your new course: {self.topic}..."

    def failure_message(self) -> str:
        return f"Failed to generate course: {self.topic}. Please try again."

    def success_message(self, outline: CourseOutline) -> str:
        return f'Your course "{outline.title}" is ready!'

    def user_prompt(self) -> str:
        return f"Topic: {self.topic}\nDuration: {self.duration}"

    def decode(self, text: str) -> CourseOutline:
        outline = decode_course(text)
        expected = duration_days(self.duration)
        if len(outline.daily_modules) != expected:
            self.logger.warning(
                f"Asked for {expected} days, model returned {len(outline.daily_modules)}"
            )
        return outline

    def persist(self, txn: WriteBatch, outline: CourseOutline) -> str:
        self.course_id = txn.add("courses", {
            "userId": self.user_id,
            "title": outline.title,
            "durationDays": len(outline.daily_modules),
            "originalPrompt": self.topic,
            "status": "active",
            "createdAt": datetime.now(timezone.utc),
            "flashcardCount": 0,
        })
        for module in outline.daily_modules:
            txn.set(f"courses/{self.course_id}/modules/{module.day}", {
                "day": module.day,
                "title": module.title,
                "description": module.description,
                "learningMaterial": "",
                "isCompleted": False,
                "flashcardCount": 0,
            })
        self.logger.info(f"Course {self.course_id} staged with {len(outline.daily_modules)} modules")
        return f"/course/{self.course_id}"
