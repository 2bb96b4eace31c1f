from typing import Optional

from ..courses import CourseNotFound, module_path
from ..inference import decode_lesson
from ..prompts import LESSON_GENERATOR_PROMPT
from ..schemas import MODULE_GENERATION
from ..store import WriteBatch
from .base_workflow import BaseWorkflow


class LessonGenerationWorkflow(BaseWorkflow):
    """Fills one module's learningMaterial with a generated Markdown lesson"""
    job_type = MODULE_GENERATION
    system_prompt = LESSON_GENERATOR_PROMPT

    def __init__(self, services, user_id: str, course_id: str, module_id: str,
                 module_title: str, module_description: str = "", claim_key: Optional[str] = None):
        super().__init__(services, user_id, claim_key=claim_key)
        self.course_id = course_id
        self.module_id = module_id
        self.module_title = module_title
        self.module_description = module_description
        self.course_title = ""

    @property
    def related_doc_id(self) -> str:
        return self.module_id

    @property
    def related_course_id(self) -> str:
        return self.course_id

    def start_message(self) -> str:
        return f"Generating your lesson for {self.module_title}..."

    def failure_message(self) -> str:
        return f"Failed to generate lesson for {self.module_title}. Please try again."

    def success_message(self, lesson: str) -> str:
        return f"Your lesson for {self.module_title} is ready!"

    async def prepare(self):
        course = self.store.get(f"courses/{self.course_id}")
        if course is None:
            raise CourseNotFound(self.course_id)
        self.course_title = course.get("title", "")

    def user_prompt(self) -> str:
        return (
            f"Course Title: {self.course_title}\n"
            f"Module Title: {self.module_title}\n"
            f"Module Description: {self.module_description}"
        )

    def decode(self, text: str) -> str:
        return decode_lesson(text)

    def persist(self, txn: WriteBatch, lesson: str) -> str:
        # Overwrites any existing lesson body
        txn.update(module_path(self.course_id, self.module_id), {"learningMaterial": lesson})
        return f"/course/{self.course_id}"
