# alea/routes/courses.py
from fastapi import APIRouter, Depends

from ..activity import log_activity
from ..courses import (
    complete_module, delete_course, get_course, get_flashcards,
    list_courses, list_deleted_courses, open_module, restore_course,
)
from ..services import Services, get_services
from .auth import AuthUser, current_user

router = APIRouter(prefix="/courses", tags=["Courses"])


@router.get("")
def get_user_courses(
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    """All active courses of the user with their completion progress"""
    return list_courses(services.store, user.user_id)


@router.get("/deleted")
def get_deleted_courses(
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    """Courses deleted within the retention window; these can be restored"""
    return list_deleted_courses(services.store, user.user_id, services.settings.deleted_retention_days)


@router.get("/{course_id}")
def get_course_details(
    course_id: str,
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    return get_course(services.store, user.user_id, course_id)


@router.delete("/{course_id}")
def remove_course(
    course_id: str,
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    delete_course(services.store, user.user_id, course_id)
    log_activity(services.store, user.user_id, user.username, "delete_course", {"courseId": course_id})
    return {"course_id": course_id, "status": "deleted"}


@router.post("/{course_id}/restore")
def restore_deleted_course(
    course_id: str,
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    restore_course(services.store, user.user_id, course_id)
    log_activity(services.store, user.user_id, user.username, "restore_course", {"courseId": course_id})
    return {"course_id": course_id, "status": "active"}


@router.get("/{course_id}/modules/{day}")
def get_module(
    course_id: str,
    day: int,
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    """
    Open a day's module. Locked (423) until the previous day is complete.
    """
    return open_module(services.store, user.user_id, course_id, day)


@router.post("/{course_id}/modules/{day}/complete")
def mark_module_complete(
    course_id: str,
    day: int,
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    module = complete_module(services.store, user.user_id, course_id, day)
    log_activity(services.store, user.user_id, user.username, "complete_module",
                 {"courseId": course_id, "day": day})
    return module


@router.get("/{course_id}/modules/{module_id}/flashcards")
def get_module_flashcards(
    course_id: str,
    module_id: str,
    user: AuthUser = Depends(current_user),
    services: Services = Depends(get_services),
):
    return {"cards": get_flashcards(services.store, user.user_id, course_id, module_id)}
