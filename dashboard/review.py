"""Application review screen state: detail record plus admission decision."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from portal.errors import PortalError
from portal.models.schemas import ApproveApplication, RejectApplication

from dashboard.invalidation import InvalidationBus, application_key
from dashboard.notifications import Notifier
from dashboard.utils.async_tasks import run_async, schedule
from dashboard.utils.logging import get_logger

logger = get_logger(__name__)


class DecisionType(str, Enum):
    ADMITTED = "ADMITTED"
    NOT_ADMITTED = "NOT_ADMITTED"


def build_approval(application: Dict[str, Any]) -> ApproveApplication:
    """Approval payload from an application detail record."""
    details = application.get("application") or {}
    return ApproveApplication(
        application_id=application["id"],
        program=application.get("program") or "",
        program_id=application.get("program_id") or "",
        study_mode=details.get("studyMode"),
        academic_session=application.get("academic_session"),
        semester=application.get("academic_semester"),
    )


class ApplicationReview:
    def __init__(
        self,
        gateway,
        bus: Optional[InvalidationBus] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.gateway = gateway
        self.bus = bus or InvalidationBus()
        self.notifier = notifier or Notifier()

        self.application_id: Optional[str] = None
        self.application: Optional[Dict[str, Any]] = None
        self.error: Optional[str] = None
        self.is_loading = False
        self.is_submitting = False

        self.show_decision_modal = False
        self.decision_type: Optional[DecisionType] = None
        self._unsubscribe = None

    # -------------------- Detail --------------------
    async def load(self, application_id: str) -> Optional[Dict[str, Any]]:
        """Fetch the application; None means the server has no such record."""
        application_id = str(application_id)
        if application_id != self.application_id:
            if self._unsubscribe is not None:
                self._unsubscribe()
            self._unsubscribe = self.bus.subscribe(
                application_key(application_id), lambda _key: self._schedule_reload()
            )
        self.application_id = application_id
        self.is_loading = True
        try:
            self.application = await run_async(self.gateway.get_application, application_id)
            self.error = None
        except PortalError as exc:
            logger.warning("Failed to load application %s: %s", application_id, exc)
            self.error = exc.message
        finally:
            self.is_loading = False
        return self.application

    def _schedule_reload(self) -> None:
        if self.application_id is not None:
            schedule(lambda: self.load(self.application_id))

    @property
    def not_found(self) -> bool:
        return (
            self.application_id is not None
            and self.application is None
            and self.error is None
            and not self.is_loading
        )

    # -------------------- Decision modal --------------------
    def open_decision(self, kind: Union[DecisionType, str]) -> None:
        self.decision_type = DecisionType(kind)
        self.show_decision_modal = True

    def close_decision(self) -> None:
        self.show_decision_modal = False
        self.decision_type = None

    # -------------------- Mutations --------------------
    async def _decide(self, call, payload, success_message: str, failure_message: str) -> bool:
        if self.is_submitting:
            return False
        self.is_submitting = True
        try:
            await run_async(call, payload.model_dump())
        except PortalError as exc:
            logger.error("%s: %s", failure_message, exc)
            self.notifier.error(failure_message, exc)
            return False
        except Exception as exc:
            logger.exception(failure_message)
            self.notifier.error(failure_message, exc)
            return False
        finally:
            self.is_submitting = False

        self.notifier.success(success_message)
        self.bus.invalidate(application_key(payload.application_id))
        self.bus.invalidate(("applicants",))
        self.close_decision()
        return True

    async def approve(self, payload: Union[ApproveApplication, Dict[str, Any]]) -> bool:
        if not isinstance(payload, ApproveApplication):
            payload = ApproveApplication.model_validate(payload)
        return await self._decide(
            self.gateway.approve_application,
            payload,
            "Application approved successfully",
            "Failed to approve application",
        )

    async def reject(self, payload: Union[RejectApplication, Dict[str, Any]]) -> bool:
        """Reject with a reason; an empty reason raises pydantic's ValidationError."""
        if not isinstance(payload, RejectApplication):
            payload = RejectApplication.model_validate(payload)
        return await self._decide(
            self.gateway.reject_application,
            payload,
            "Application rejected",
            "Failed to reject application",
        )

    async def submit_decision(self, reason: Optional[str] = None) -> bool:
        """Submit whichever decision the modal is open for."""
        if self.application is None or self.decision_type is None:
            raise RuntimeError("no application or decision selected")
        if self.decision_type is DecisionType.ADMITTED:
            try:
                payload = build_approval(self.application)
            except (KeyError, ValidationError) as exc:
                self.notifier.error("Application is missing program details", exc)
                return False
            return await self.approve(payload)
        return await self.reject({"application_id": self.application["id"], "reason": reason or ""})
