"""Teacher-to-course assignment screen.

`AssignmentStore` holds what the admin has picked; `CourseAssignmentService`
reads teachers, courses and assignments through a short-lived cache and
submits assignment changes.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from portal.errors import PortalError
from portal.models.schemas import Course, Teacher, TeacherCourseAssignment, parse_list

from dashboard.invalidation import InvalidationBus
from dashboard.notifications import Notifier
from dashboard.utils.async_tasks import run_async
from dashboard.utils.logging import get_logger

logger = get_logger(__name__)

ASSIGNMENTS_KEY = ("assignments",)
TEACHERS_TTL = 5 * 60
COURSES_TTL = 5 * 60
ASSIGNMENTS_TTL = 2 * 60


@dataclass
class AssignmentStore:
    selected_teacher: Optional[Teacher] = None
    selected_courses: List[Course] = field(default_factory=list)
    modal_open: bool = False

    def select_teacher(self, teacher: Optional[Teacher]) -> None:
        self.selected_teacher = teacher

    def toggle_course(self, course: Course) -> None:
        if any(c.id == course.id for c in self.selected_courses):
            self.selected_courses = [c for c in self.selected_courses if c.id != course.id]
        else:
            self.selected_courses = [*self.selected_courses, course]

    def is_selected(self, course: Course) -> bool:
        return any(c.id == course.id for c in self.selected_courses)

    @property
    def can_submit(self) -> bool:
        return self.selected_teacher is not None and bool(self.selected_courses)

    def reset(self) -> None:
        self.selected_teacher = None
        self.selected_courses = []
        self.modal_open = False


class _TtlCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[Tuple[str, ...], Tuple[float, Any]] = {}

    def get(self, key: Tuple[str, ...]) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def put(self, key: Tuple[str, ...], value: Any, ttl: float) -> None:
        self._entries[key] = (self._clock() + ttl, value)

    def drop(self, key: Tuple[str, ...]) -> None:
        self._entries.pop(key, None)


class CourseAssignmentService:
    def __init__(
        self,
        gateway,
        bus: Optional[InvalidationBus] = None,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.gateway = gateway
        self.bus = bus or InvalidationBus()
        self.notifier = notifier or Notifier()
        self._cache = _TtlCache(clock)
        self.bus.subscribe(ASSIGNMENTS_KEY, lambda key: self._cache.drop(key))

    async def _cached(self, key: Tuple[str, ...], loader, model: type, ttl: float) -> list:
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        rows = parse_list(model, await run_async(loader))
        self._cache.put(key, rows, ttl)
        return rows

    async def teachers(self) -> List[Teacher]:
        return await self._cached(("teachers",), self.gateway.list_teachers, Teacher, TEACHERS_TTL)

    async def courses(self) -> List[Course]:
        return await self._cached(("courses",), self.gateway.list_courses, Course, COURSES_TTL)

    async def assignments(self) -> List[TeacherCourseAssignment]:
        return await self._cached(
            ASSIGNMENTS_KEY, self.gateway.list_assignments, TeacherCourseAssignment, ASSIGNMENTS_TTL
        )

    async def assign(self, teacher_id: str, course_ids: Iterable[str]) -> bool:
        course_ids = [str(c) for c in course_ids]
        if not course_ids:
            raise ValueError("select at least one course")
        try:
            await run_async(self.gateway.assign_teacher, str(teacher_id), course_ids)
        except PortalError as exc:
            self.notifier.error(exc.message or "Failed to assign teacher", exc)
            return False
        self.bus.invalidate(ASSIGNMENTS_KEY)
        self.notifier.success("Teacher assigned to courses successfully!")
        return True

    async def assign_selection(self, store: AssignmentStore) -> bool:
        """Submit the store's selection; resets the store on success."""
        if not store.can_submit:
            raise ValueError("select a teacher and at least one course")
        ok = await self.assign(store.selected_teacher.id, [c.id for c in store.selected_courses])
        if ok:
            store.reset()
        return ok

    async def remove(self, assignment_id: str) -> bool:
        try:
            await run_async(self.gateway.remove_assignment, str(assignment_id))
        except PortalError as exc:
            self.notifier.error("Failed to remove assignment", exc)
            return False
        self.bus.invalidate(ASSIGNMENTS_KEY)
        self.notifier.success("Assignment removed successfully!")
        return True
