from .base_workflow import BaseWorkflow, WorkflowContext, WorkflowEvent
from .course_workflow import CourseGenerationWorkflow
from .flashcard_workflow import FlashcardGenerationWorkflow
from .lesson_workflow import LessonGenerationWorkflow

__all__ = [
    'BaseWorkflow', 'WorkflowContext', 'WorkflowEvent',
    'CourseGenerationWorkflow', 'LessonGenerationWorkflow', 'FlashcardGenerationWorkflow',
]
