# alea/client.py
"""
Python client for the Alea API.

Job triggers send one request and return as soon as the server accepts the
job; results arrive on the notification channel. Each trigger leaves an
in-flight marker for its entity that is cleared when the entity's
notification settles (see ``NotificationFeed``) or when the trigger fails.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Set, Tuple

import requests

from .feed import NotificationFeed
from .progress import check_unlocked
from .schemas import (
    COURSE_GENERATION, FLASHCARD_GENERATION, MODULE_GENERATION,
    CourseJobCreate, Notification,
)

logger = logging.getLogger(__name__)

API_URL = "http://localhost:8000"

# (job type, course id, module id); course jobs have neither id
Marker = Tuple[str, Optional[str], Optional[str]]


class ClientError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TriggerError(ClientError):
    """A job could not be started. Not the same as a job that ran and failed."""


class AlreadyInFlight(TriggerError):
    pass


def handle_api_response(response, error_prefix: str = "Failed", error_class=ClientError):
    """Return the decoded body of a 2xx answer, raise ``error_class`` otherwise."""
    if 200 <= response.status_code < 300:
        return response.json() if response.content else None
    try:
        error_data = response.json()
        error_msg = error_data.get("error") or error_data.get("detail") or "Unknown error"
    except (json.JSONDecodeError, ValueError):
        error_msg = response.text if response.text else "Empty response from server"
    raise error_class(f"{error_prefix}: {error_msg}", status_code=response.status_code)


class AleaClient:
    def __init__(self, base_url: str = API_URL, token: Optional[str] = None,
                 session=None, timeout: float = 10, feed: Optional[NotificationFeed] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        # Anything with a requests-style request() works, e.g. a test client
        self.session = session or requests.Session()
        self.timeout = timeout
        self.in_flight: Set[Marker] = set()
        self.feed = feed or NotificationFeed()
        self.feed.on_settled = self._settle
        if self.feed.mark_read is None:
            self.feed.mark_read = self.mark_read

    def _request(self, method: str, path: str, error_prefix: str = "Failed",
                 error_class=ClientError, **kwargs):
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = self.session.request(
                method, f"{self.base_url}{path}", headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise error_class(f"{error_prefix}: {e}") from e
        return handle_api_response(response, error_prefix, error_class)

    # --- Accounts ---
    def register(self, username: str, password: str) -> Dict:
        return self._request("POST", "/auth/register", "Registration failed",
                             json={"username": username, "password": password})

    def login(self, username: str, password: str) -> str:
        data = self._request("POST", "/auth/login", "Login failed",
                             json={"username": username, "password": password})
        self.token = data["token"]
        return self.token

    def logout(self):
        self.token = None
        self.in_flight.clear()
        self.feed.reset()

    # --- Job triggers ---
    def _trigger(self, marker: Marker, path: str, payload: Dict, error_prefix: str) -> Dict:
        if marker in self.in_flight:
            raise AlreadyInFlight(f"{error_prefix}: a job for this item is already running")
        self.in_flight.add(marker)
        try:
            return self._request("POST", path, error_prefix, TriggerError, json=payload)
        except TriggerError:
            self.in_flight.discard(marker)
            raise

    def generate_course(self, topic: str, duration: str = "7_days") -> Dict:
        # Raises pydantic's ValidationError before anything is sent
        job = CourseJobCreate(topic=topic, duration=duration)
        return self._trigger((COURSE_GENERATION, None, None), "/jobs/course", job.model_dump(),
                             "Failed to start course generation")

    def generate_lesson(self, course_id: str, module: Dict) -> Optional[Dict]:
        """Start lesson generation, unless the module already has its lesson."""
        if module.get("learningMaterial"):
            logger.info(f"Module {module['id']} already has a lesson; not generating")
            return None
        payload = {
            "course_id": course_id,
            "module_id": str(module["id"]),
            "module_title": module.get("title"),
            "module_description": module.get("description"),
        }
        marker = (MODULE_GENERATION, course_id, str(module["id"]))
        return self._trigger(marker, "/jobs/lesson", payload, "Failed to generate lesson material")

    def generate_flashcards(self, course_id: str, module: Dict) -> Dict:
        if not module.get("learningMaterial"):
            raise ValueError("Please generate the lesson material first.")
        payload = {
            "course_id": course_id,
            "module_id": str(module["id"]),
            "module_title": module.get("title"),
            "lesson_material": module["learningMaterial"],
        }
        marker = (FLASHCARD_GENERATION, course_id, str(module["id"]))
        return self._trigger(marker, "/jobs/flashcards", payload, "Failed to generate flashcards")

    def is_in_flight(self, job_type: str, course_id: Optional[str] = None,
                     module_id: Optional[str] = None) -> bool:
        return (job_type, course_id, module_id) in self.in_flight

    def _settle(self, notification: Notification):
        if notification.type == COURSE_GENERATION:
            marker = (COURSE_GENERATION, None, None)
        else:
            marker = (notification.type, notification.course_id, notification.related_doc_id)
        self.in_flight.discard(marker)

    # --- Courses ---
    def list_courses(self) -> List[Dict]:
        return self._request("GET", "/courses", "Failed to fetch courses")

    def get_course(self, course_id: str) -> Dict:
        return self._request("GET", f"/courses/{course_id}", "Failed to fetch course details")

    def open_module(self, course: Dict, day: int, generate: bool = True) -> Dict:
        """
        Open day ``day`` of ``course`` (as returned by ``get_course``).

        Raises ProgressLocked before any request when the previous day is not
        complete. A module without a lesson gets one generated unless
        ``generate`` is false or that generation is already running.
        """
        check_unlocked(course.get("modules", []), day)
        module = self._request("GET", f"/courses/{course['id']}/modules/{day}", "Failed to open module")
        if generate and not module.get("learningMaterial") \
                and not self.is_in_flight(MODULE_GENERATION, course["id"], str(module["id"])):
            self.generate_lesson(course["id"], module)
        return module

    def complete_module(self, course_id: str, day: int) -> Dict:
        return self._request("POST", f"/courses/{course_id}/modules/{day}/complete",
                             "Failed to mark module complete")

    def delete_course(self, course_id: str) -> Dict:
        return self._request("DELETE", f"/courses/{course_id}", "Failed to delete course")

    def restore_course(self, course_id: str) -> Dict:
        return self._request("POST", f"/courses/{course_id}/restore", "Failed to restore course")

    def deleted_courses(self) -> List[Dict]:
        return self._request("GET", "/courses/deleted", "Failed to fetch deleted courses")

    # --- Notifications ---
    def fetch_notifications(self) -> List[Notification]:
        data = self._request("GET", "/notifications", "Failed to fetch notifications")
        return [Notification.model_validate(n) for n in data["notifications"]]

    def sync_notifications(self) -> List[Notification]:
        """Pull the current list into the feed; returns what fired side effects."""
        return self.feed.apply(self.fetch_notifications())

    def mark_read(self, notification_id: str):
        self._request("POST", f"/notifications/{notification_id}/read", "Failed to mark notification read")

    def mark_all_read(self) -> int:
        return self._request("POST", "/notifications/read-all", "Failed to mark notifications read")["marked_read"]

    def clear_notification(self, notification_id: str):
        self._request("DELETE", f"/notifications/{notification_id}", "Failed to clear notification")

    def clear_all(self) -> int:
        return self._request("DELETE", "/notifications", "Failed to clear notifications")["cleared"]

    # --- Account data ---
    def credits(self) -> int:
        return self._request("GET", "/credits", "Failed to fetch credits")["credits"]

    def activity(self, start_after: Optional[str] = None) -> Dict[str, Any]:
        params = {"start_after": start_after} if start_after else None
        return self._request("GET", "/activity", "Failed to fetch activity", params=params)
