import asyncio
from unittest.mock import Mock

import pytest

from dashboard.assignment import (
    ASSIGNMENTS_TTL,
    TEACHERS_TTL,
    AssignmentStore,
    CourseAssignmentService,
)
from dashboard.notifications import Level
from portal.errors import HttpError
from portal.models.schemas import Course, Teacher

TEACHERS = [{"id": 1, "firstName": "Ngozi", "lastName": "Okafor", "email": "n@example.com"}]
COURSES = [
    {"id": "c1", "code": "CSC101", "name": "Intro", "creditUnit": 3, "class": "100L"},
    {"id": "c2", "code": "CSC102", "name": "Data", "creditUnit": 2},
]
ASSIGNMENTS = [{"id": "a1", "teacherId": 1, "courseId": "c1", "assignedDate": "2024-09-01"}]


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def make_service():
    gateway = Mock()
    gateway.list_teachers.return_value = TEACHERS
    gateway.list_courses.return_value = COURSES
    gateway.list_assignments.return_value = ASSIGNMENTS
    clock = FakeClock()
    return CourseAssignmentService(gateway, clock=clock), gateway, clock


def test_reads_are_cached_until_ttl_expires():
    service, gateway, clock = make_service()

    teachers = asyncio.run(service.teachers())
    assert teachers[0].full_name == "Ngozi Okafor"
    assert teachers[0].id == "1"
    asyncio.run(service.teachers())
    assert gateway.list_teachers.call_count == 1

    clock.now += TEACHERS_TTL
    asyncio.run(service.teachers())
    assert gateway.list_teachers.call_count == 2


def test_course_aliases():
    service, _, _ = make_service()
    courses = asyncio.run(service.courses())
    assert courses[0].class_name == "100L"
    assert courses[0].credit_unit == 3
    assert courses[1].class_name is None


def test_assign_invalidates_assignment_cache():
    service, gateway, clock = make_service()
    asyncio.run(service.assignments())
    clock.now += ASSIGNMENTS_TTL - 1
    asyncio.run(service.assignments())
    assert gateway.list_assignments.call_count == 1

    assert asyncio.run(service.assign(1, ["c1", "c2"])) is True
    gateway.assign_teacher.assert_called_once_with("1", ["c1", "c2"])
    assert service.notifier.drain()[0].message == "Teacher assigned to courses successfully!"

    asyncio.run(service.assignments())
    assert gateway.list_assignments.call_count == 2


def test_assign_requires_courses():
    service, gateway, _ = make_service()
    with pytest.raises(ValueError):
        asyncio.run(service.assign("1", []))
    gateway.assign_teacher.assert_not_called()


def test_assign_failure_reports_server_message():
    service, gateway, _ = make_service()
    gateway.assign_teacher.side_effect = HttpError(409, "Teacher already assigned")
    assert asyncio.run(service.assign("1", ["c1"])) is False
    note = service.notifier.drain()[0]
    assert note.level is Level.ERROR
    assert note.message == "Teacher already assigned"


def test_remove_assignment():
    service, gateway, _ = make_service()
    assert asyncio.run(service.remove("a1")) is True
    gateway.remove_assignment.assert_called_once_with("a1")
    assert ("assignments",) in service.bus.history


def test_store_selection_and_submit():
    service, gateway, _ = make_service()
    store = AssignmentStore()
    teacher = Teacher.model_validate(TEACHERS[0])
    c1, c2 = (Course.model_validate(c) for c in COURSES)

    assert not store.can_submit
    store.select_teacher(teacher)
    store.toggle_course(c1)
    store.toggle_course(c2)
    store.toggle_course(c1)
    assert not store.is_selected(c1)
    assert store.is_selected(c2)
    assert store.can_submit

    assert asyncio.run(service.assign_selection(store)) is True
    gateway.assign_teacher.assert_called_once_with("1", ["c2"])
    assert store.selected_teacher is None
    assert store.selected_courses == []


def test_submit_empty_selection_raises():
    service, _, _ = make_service()
    with pytest.raises(ValueError):
        asyncio.run(service.assign_selection(AssignmentStore()))
