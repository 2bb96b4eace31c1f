# alea/routes/jobs.py
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from ..activity import log_activity
from ..courses import get_owned_course, module_path
from ..credits import NoCreditsLeft, spend_credit
from ..schemas import (
    COURSE_GENERATION, FLASHCARD_GENERATION, MODULE_GENERATION,
    CourseJobCreate, FlashcardJobCreate, JobAccepted, LessonJobCreate,
)
from ..services import Services, get_services
from ..store import DocumentNotFound
from ..workflows import CourseGenerationWorkflow, FlashcardGenerationWorkflow, LessonGenerationWorkflow
from .auth import AuthUser, current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


def _load_module(services: Services, user: AuthUser, course_id: str, module_id: str) -> dict:
    get_owned_course(services.store, user.user_id, course_id)
    module = services.store.get(module_path(course_id, module_id))
    if module is None:
        raise DocumentNotFound(module_path(course_id, module_id))
    return module


@router.post("/course", status_code=202, response_model=JobAccepted)
async def trigger_course(
    data: CourseJobCreate,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    """
    Start course generation in the background and answer right away.
    Progress is reported on the user's notifications.
    """
    claim_key = services.claims.acquire(COURSE_GENERATION, data.topic.lower(), user.user_id)
    try:
        spend_credit(services.store, user.user_id, services.settings.daily_credits)
    except NoCreditsLeft:
        services.claims.release(claim_key)
        raise

    workflow = CourseGenerationWorkflow(services, user.user_id, data.topic, data.duration, claim_key=claim_key)
    background_tasks.add_task(workflow.run)
    log_activity(services.store, user.user_id, user.username, "generate_course",
                 {"topic": data.topic, "duration": data.duration})
    logger.info(f"Queued {workflow} for user {user.user_id}")

    return JobAccepted(type=COURSE_GENERATION, message=workflow.start_message())


@router.post("/lesson", status_code=202, response_model=JobAccepted)
async def trigger_lesson(
    data: LessonJobCreate,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    module = _load_module(services, user, data.course_id, data.module_id)
    claim_key = services.claims.acquire(
        MODULE_GENERATION, f"{data.course_id}/{data.module_id}", user.user_id
    )

    workflow = LessonGenerationWorkflow(
        services, user.user_id, data.course_id, data.module_id,
        module_title=data.module_title or module.get("title", ""),
        module_description=data.module_description or module.get("description", ""),
        claim_key=claim_key,
    )
    background_tasks.add_task(workflow.run)
    log_activity(services.store, user.user_id, user.username, "generate_lesson",
                 {"courseId": data.course_id, "moduleId": data.module_id})

    return JobAccepted(type=MODULE_GENERATION, related_doc_id=data.module_id, message=workflow.start_message())


@router.post("/flashcards", status_code=202, response_model=JobAccepted)
async def trigger_flashcards(
    data: FlashcardJobCreate,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    module = _load_module(services, user, data.course_id, data.module_id)
    lesson_material = data.lesson_material or module.get("learningMaterial")
    if not lesson_material:
        raise HTTPException(status_code=400, detail="Please generate the lesson material first.")

    claim_key = services.claims.acquire(
        FLASHCARD_GENERATION, f"{data.course_id}/{data.module_id}", user.user_id
    )
    workflow = FlashcardGenerationWorkflow(
        services, user.user_id, data.course_id, data.module_id,
        module_title=data.module_title or module.get("title", ""),
        lesson_material=lesson_material,
        claim_key=claim_key,
    )
    background_tasks.add_task(workflow.run)
    log_activity(services.store, user.user_id, user.username, "generate_flashcards",
                 {"courseId": data.course_id, "moduleId": data.module_id})

    return JobAccepted(type=FLASHCARD_GENERATION, related_doc_id=data.module_id, message=workflow.start_message())
