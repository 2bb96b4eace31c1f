from typing import Optional, Dict, Any
from datetime import datetime, timezone
import uuid
import logging

from pydantic import BaseModel, Field

from ..schemas import NotificationStatus
from ..store import WriteBatch


class WorkflowEvent(BaseModel):
    """Base class for workflow events"""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: str
    event_data: Dict[str, Any] = {}


class WorkflowContext:
    """Context for storing workflow state"""
    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.events: list[WorkflowEvent] = []

    def add_event(self, event: WorkflowEvent):
        """Add event to context history"""
        self.events.append(event)

    def get_events_by_type(self, event_type: str) -> list[WorkflowEvent]:
        """Get all events of a specific type"""
        return [e for e in self.events if e.event_type == event_type]

    def set_data(self, key: str, value: Any):
        self.data[key] = value

    def get_data(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


class JobAlreadySettled(RuntimeError):
    def __init__(self, notification_id: str):
        super().__init__(f"Notification {notification_id} was settled before the job finished")
        self.notification_id = notification_id


class BaseWorkflow:
    """
    One background generation job.

    ``run()`` drives the notification through generating -> complete/failed:
    the generating record is written before the inference call, and the
    artifact and the complete record are committed in one transaction.
    Subclasses supply the prompt, the decoder and the persistence step.
    """
    job_type: str = ""
    system_prompt: str = ""

    def __init__(self, services, user_id: str, claim_key: Optional[str] = None,
                 workflow_id: Optional[uuid.UUID] = None):
        self.workflow_id = workflow_id or uuid.uuid4()
        self.ctx = WorkflowContext()
        self.logger = logging.getLogger(f"{self.__class__.__name__}_{self.workflow_id}")

        self.store = services.store
        self.channel = services.channel
        self.inference = services.inference
        self.claims = services.claims

        self.user_id = user_id
        self.claim_key = claim_key
        self.notification_id: Optional[str] = None

    async def emit_event(self, event_type: str, event_data: Optional[Dict[str, Any]] = None):
        """Emit a workflow event"""
        event = WorkflowEvent(event_type=event_type, event_data=event_data or {})
        self.ctx.add_event(event)
        self.logger.info(f"Event emitted: {event_type}")
        return event

    async def handle_error(self, error: Exception, step: str):
        """Handle workflow errors"""
        error_event = await self.emit_event("error", {"error": str(error), "step": step})
        self.logger.error(f"Error in step {step}: {error}", exc_info=error)
        return error_event

    @property
    def related_doc_id(self) -> Optional[str]:
        return None

    @property
    def related_course_id(self) -> Optional[str]:
        """Course the target module belongs to; module ids repeat across courses"""
        return None

    def start_message(self) -> str:
        raise NotImplementedError

    def failure_message(self) -> str:
        raise NotImplementedError

    def success_message(self, payload) -> str:
        raise NotImplementedError

    def user_prompt(self) -> str:
        raise NotImplementedError

    def decode(self, text: str):
        raise NotImplementedError

    def persist(self, txn: WriteBatch, payload) -> Optional[str]:
        """Write the artifact; returns the link shown on the notification."""
        raise NotImplementedError

    async def prepare(self):
        """Load whatever the prompt needs; runs after the generating notification."""

    async def run(self) -> NotificationStatus:
        step = "start"
        try:
            self.notification_id = self.channel.start(
                self.user_id, self.job_type, self.start_message(), self.related_doc_id,
                course_id=self.related_course_id,
            )
            await self.emit_event("generating", {"notification_id": self.notification_id})

            step = "prepare"
            await self.prepare()

            step = "inference"
            text = await self.inference.generate([self.system_prompt, self.user_prompt()])

            step = "decode"
            payload = self.decode(text)
            await self.emit_event("generated", {"characters": len(text)})

            step = "persist"
            with self.store.transaction() as txn:
                link = self.persist(txn, payload)
                completed = self.channel.complete(
                    txn, self.user_id, self.notification_id, self.success_message(payload),
                    self.job_type, self.related_doc_id, link, course_id=self.related_course_id,
                )
                if not completed:
                    # Already failed (e.g. by the stale-job sweep); drop the artifact with it
                    raise JobAlreadySettled(self.notification_id)
            await self.emit_event("complete", {"link": link})
            return NotificationStatus.COMPLETE

        except Exception as e:
            await self.handle_error(e, step)
            self._record_failure()
            return NotificationStatus.FAILED

        finally:
            self._release_claim()

    def _record_failure(self):
        if self.notification_id is None:
            return
        try:
            self.channel.fail(
                self.user_id, self.notification_id, self.failure_message(),
                self.job_type, self.related_doc_id, course_id=self.related_course_id,
            )
        except Exception:
            # Left as generating; the stale-job sweep fails it later
            self.logger.exception("Could not record failure on notification %s", self.notification_id)

    def _release_claim(self):
        if not self.claim_key:
            return
        try:
            self.claims.release(self.claim_key)
        except Exception:
            self.logger.exception("Could not release job claim %s", self.claim_key)

    def __str__(self):
        return f"{self.__class__.__name__}(workflow_id={self.workflow_id})"
