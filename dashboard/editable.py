"""Edit/cancel/save state machine for one section of an application.

The session keeps a draft the user edits and a snapshot of what the
server last confirmed. Saving sends the whole draft through the session's
update strategy; a failed save leaves the draft in place for a retry.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from portal.errors import PortalError

from dashboard.invalidation import InvalidationBus, application_key
from dashboard.notifications import Notifier
from dashboard.utils.async_tasks import run_async
from dashboard.utils.logging import get_logger

logger = get_logger(__name__)


class IllegalTransitionError(RuntimeError):
    """Edit-session call made in a state that does not allow it."""


@dataclass(frozen=True)
class ApplicationUpdate:
    """Write the draft to a specific application record."""

    application_id: str

    async def apply(self, gateway, payload: Dict[str, Any]) -> Any:
        return await run_async(gateway.update_application, self.application_id, payload)


@dataclass(frozen=True)
class PersonalInfoUpdate:
    """Write the draft to the current account's personal information."""

    async def apply(self, gateway, payload: Dict[str, Any]) -> Any:
        return await run_async(gateway.update_personal_info, payload)


UpdateStrategy = Union[ApplicationUpdate, PersonalInfoUpdate]


class EditableRecordSession:
    def __init__(
        self,
        record_id: str,
        initial_data: Dict[str, Any],
        strategy: UpdateStrategy,
        gateway,
        bus: Optional[InvalidationBus] = None,
        notifier: Optional[Notifier] = None,
        on_success: Optional[Callable[[Dict[str, Any]], None]] = None,
    ):
        self.record_id = str(record_id)
        self._strategy = strategy
        self.gateway = gateway
        self.bus = bus
        self.notifier = notifier or Notifier()
        self.on_success = on_success

        self.draft: Dict[str, Any] = copy.deepcopy(dict(initial_data))
        self.snapshot: Dict[str, Any] = copy.deepcopy(self.draft)
        self.is_editing = False
        self.is_saving = False

    @property
    def strategy(self) -> UpdateStrategy:
        return self._strategy

    @property
    def has_changes(self) -> bool:
        return self.draft != self.snapshot

    @property
    def can_save(self) -> bool:
        return self.is_editing and self.has_changes and not self.is_saving

    @property
    def can_cancel(self) -> bool:
        return self.is_editing and not self.is_saving

    def begin_edit(self) -> None:
        if self.is_editing or self.is_saving:
            raise IllegalTransitionError("already editing")
        self.snapshot = copy.deepcopy(self.draft)
        self.is_editing = True

    def update_field(self, key: str, value: Any) -> None:
        # Top-level merge only; nested values are replaced wholesale
        if not self.is_editing:
            raise IllegalTransitionError("update_field called outside of an edit")
        if self.is_saving:
            raise IllegalTransitionError("draft is locked while a save is in flight")
        self.draft = {**self.draft, key: copy.deepcopy(value)}

    def cancel_edit(self) -> None:
        if not self.is_editing:
            raise IllegalTransitionError("cancel_edit called outside of an edit")
        if self.is_saving:
            raise IllegalTransitionError("cannot cancel while a save is in flight")
        self.draft = copy.deepcopy(self.snapshot)
        self.is_editing = False

    async def save(self) -> bool:
        """Send the draft to the server.

        Returns True when the save succeeded. A second call while a save is
        pending does nothing and returns False.
        """
        if self.is_saving:
            logger.warning("Save already in progress for %s; ignoring", self.record_id)
            return False
        if not self.is_editing:
            raise IllegalTransitionError("save called outside of an edit")
        if not self.has_changes:
            raise IllegalTransitionError("nothing to save")

        self.is_saving = True
        payload = copy.deepcopy(self.draft)
        try:
            await self._strategy.apply(self.gateway, payload)
        except PortalError as exc:
            logger.error("Update failed for %s: %s", self.record_id, exc)
            self.notifier.error("Failed to save changes", exc)
            return False
        except Exception as exc:
            logger.exception("Unexpected error saving %s", self.record_id)
            self.notifier.error("Failed to save changes", exc)
            return False
        finally:
            self.is_saving = False

        self.snapshot = payload
        self.draft = copy.deepcopy(payload)
        self.is_editing = False
        self.notifier.success("Changes saved successfully")
        if self.bus is not None:
            self.bus.invalidate(application_key(self.record_id))
        if self.on_success is not None:
            self.on_success(copy.deepcopy(payload))
        return True
