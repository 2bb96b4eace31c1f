# alea/courses.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from .progress import check_unlocked, module_day, progress_percent, sort_modules
from .store import DocumentNotFound, DocumentStore, WriteBatch

logger = logging.getLogger(__name__)

ACTIVE = "courses"
DELETED = "deleted_courses"
SUBCOLLECTIONS = ("modules", "flashcards")


class CourseNotFound(LookupError):
    def __init__(self, course_id: str):
        super().__init__(f"Course not found: {course_id}")
        self.course_id = course_id


class NotCourseOwner(PermissionError):
    def __init__(self, course_id: str):
        super().__init__(f"Course {course_id} belongs to another user")
        self.course_id = course_id


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def module_path(course_id: str, module_id) -> str:
    return f"{ACTIVE}/{course_id}/modules/{module_id}"


def flashcards_path(course_id: str, module_id) -> str:
    return f"{ACTIVE}/{course_id}/flashcards/{module_id}"


def get_owned_course(reader, user_id: str, course_id: str, root: str = ACTIVE) -> Dict:
    """Load a course and check ownership; ``reader`` is a store or a transaction."""
    course = reader.get(f"{root}/{course_id}")
    if course is None:
        raise CourseNotFound(course_id)
    if course.get("userId") != user_id:
        raise NotCourseOwner(course_id)
    return {"id": course_id, **course}


def list_modules(reader, course_id: str, root: str = ACTIVE) -> List[Dict]:
    return sort_modules(reader.list(f"{root}/{course_id}/modules"))


def list_courses(store: DocumentStore, user_id: str) -> List[Dict]:
    courses = store.list(ACTIVE, where={"userId": user_id}, order_by="createdAt", descending=True)
    for course in courses:
        course["progress"] = progress_percent(list_modules(store, course["id"]))
    return courses


def get_course(store: DocumentStore, user_id: str, course_id: str) -> Dict:
    course = get_owned_course(store, user_id, course_id)
    modules = list_modules(store, course_id)
    course["modules"] = modules
    course["progress"] = progress_percent(modules)
    return course


def get_flashcards(store: DocumentStore, user_id: str, course_id: str, module_id: str) -> List[Dict]:
    get_owned_course(store, user_id, course_id)
    flashcards = store.get(flashcards_path(course_id, module_id))
    return flashcards["cards"] if flashcards else []


def open_module(store: DocumentStore, user_id: str, course_id: str, day: int) -> Dict:
    """Return a module and its flashcards, if the progress gate lets the user in."""
    get_owned_course(store, user_id, course_id)
    modules = list_modules(store, course_id)
    module = next((m for m in modules if module_day(m) == day), None)
    if module is None:
        raise DocumentNotFound(module_path(course_id, day))
    check_unlocked(modules, day)
    module["flashcards"] = get_flashcards(store, user_id, course_id, module["id"])
    return module


def complete_module(store: DocumentStore, user_id: str, course_id: str, day: int) -> Dict:
    with store.transaction() as txn:
        get_owned_course(txn, user_id, course_id)
        modules = list_modules(txn, course_id)
        module = next((m for m in modules if module_day(m) == day), None)
        if module is None:
            raise DocumentNotFound(module_path(course_id, day))
        check_unlocked(modules, day)
        if not module.get("isCompleted"):
            txn.update(module_path(course_id, module["id"]), {"isCompleted": True})
            module["isCompleted"] = True
    return module


def _move_course(txn: WriteBatch, course_id: str, source: str, target: str, extra: Optional[Dict] = None,
                 drop: tuple = ()):
    course = txn.get(f"{source}/{course_id}")
    data = {k: v for k, v in course.items() if k not in drop}
    data.update(extra or {})
    for sub in SUBCOLLECTIONS:
        for doc in txn.list(f"{source}/{course_id}/{sub}"):
            doc_id = doc.pop("id")
            txn.set(f"{target}/{course_id}/{sub}/{doc_id}", doc)
            txn.delete(f"{source}/{course_id}/{sub}/{doc_id}")
    txn.set(f"{target}/{course_id}", data)
    txn.delete(f"{source}/{course_id}")


def delete_course(store: DocumentStore, user_id: str, course_id: str, now: Optional[datetime] = None):
    """Soft delete: move the course and its subcollections under deleted_courses."""
    with store.transaction() as txn:
        get_owned_course(txn, user_id, course_id)
        _move_course(txn, course_id, ACTIVE, DELETED, extra={"deletedAt": now or utcnow()})
    logger.info("Course %s moved to %s", course_id, DELETED)


def restore_course(store: DocumentStore, user_id: str, course_id: str):
    with store.transaction() as txn:
        get_owned_course(txn, user_id, course_id, root=DELETED)
        _move_course(txn, course_id, DELETED, ACTIVE, drop=("deletedAt",))
    logger.info("Course %s restored", course_id)


def list_deleted_courses(store: DocumentStore, user_id: str, retention_days: int = 30,
                         now: Optional[datetime] = None) -> List[Dict]:
    cutoff = (now or utcnow()) - timedelta(days=retention_days)
    courses = store.list(DELETED, where={"userId": user_id}, order_by="deletedAt", descending=True)
    recent = []
    for course in courses:
        if datetime.fromisoformat(course["deletedAt"]) < cutoff:
            continue
        course["progress"] = progress_percent(list_modules(store, course["id"], root=DELETED))
        recent.append(course)
    return recent
