import asyncio
from unittest.mock import Mock

import pytest

from conftest import drain_tasks
from dashboard.invalidation import InvalidationBus, application_key
from dashboard.notifications import Level, Notifier
from dashboard.review import ApplicationReview, DecisionType, build_approval
from portal.errors import HttpError, NetworkError

APPLICATION = {
    "id": 9,
    "program": "Computer Science",
    "program_id": 14,
    "academic_session": "2024/2025",
    "academic_semester": "First",
    "application": {"studyMode": "Full Time"},
}


def make_review(gateway=None):
    gateway = gateway or Mock()
    gateway.get_application.return_value = dict(APPLICATION)
    bus = InvalidationBus()
    return ApplicationReview(gateway, bus=bus, notifier=Notifier()), gateway, bus


def test_build_approval_reads_detail_record():
    payload = build_approval(APPLICATION)
    assert payload.model_dump() == {
        "application_id": "9",
        "program": "Computer Science",
        "program_id": "14",
        "study_mode": "Full Time",
        "academic_session": "2024/2025",
        "semester": "First",
    }


def test_load_and_not_found():
    review, gateway, _ = make_review()
    assert asyncio.run(review.load("9")) == APPLICATION
    gateway.get_application.assert_called_once_with("9")
    assert not review.not_found

    gateway.get_application.return_value = None
    asyncio.run(review.load("10"))
    assert review.not_found


def test_load_failure_sets_error():
    review, gateway, _ = make_review()
    gateway.get_application.side_effect = NetworkError("Request timeout")
    asyncio.run(review.load("9"))
    assert review.error == "Request timeout"
    assert not review.not_found
    assert not review.is_loading


def test_approve_success_invalidates_and_closes_modal():
    review, gateway, bus = make_review()
    asyncio.run(review.load("9"))
    review.open_decision("ADMITTED")
    assert review.show_decision_modal

    assert asyncio.run(review.submit_decision()) is True
    gateway.approve_application.assert_called_once_with(build_approval(APPLICATION).model_dump())
    assert application_key("9") in bus.history
    assert ("applicants",) in bus.history
    assert not review.show_decision_modal
    assert review.decision_type is None
    assert review.notifier.drain()[0].message == "Application approved successfully"


def test_approve_failure_keeps_modal_open():
    review, gateway, bus = make_review()
    gateway.approve_application.side_effect = HttpError(200, "Failed to approve application: nope")
    asyncio.run(review.load("9"))
    review.open_decision(DecisionType.ADMITTED)

    assert asyncio.run(review.submit_decision()) is False
    assert review.show_decision_modal
    assert not review.is_submitting
    assert bus.history == []
    note = review.notifier.drain()[0]
    assert note.level is Level.ERROR
    assert note.message == "Failed to approve application"


def test_reject_requires_reason():
    review, gateway, _ = make_review()
    with pytest.raises(ValueError):
        asyncio.run(review.reject({"application_id": "9", "reason": "   "}))
    gateway.reject_application.assert_not_called()


def test_reject_through_modal():
    review, gateway, bus = make_review()
    asyncio.run(review.load("9"))
    review.open_decision(DecisionType.NOT_ADMITTED)

    assert asyncio.run(review.submit_decision("Incomplete documents ")) is True
    gateway.reject_application.assert_called_once_with(
        {"application_id": "9", "reason": "Incomplete documents"}
    )
    assert review.notifier.drain()[0].message == "Application rejected"
    assert application_key("9") in bus.history


def test_submit_without_selection_raises():
    review, _, _ = make_review()
    with pytest.raises(RuntimeError):
        asyncio.run(review.submit_decision())


class CountingGateway:
    def __init__(self):
        self.loads = 0

    async def get_application(self, application_id):
        self.loads += 1
        return {"id": application_id, "version": self.loads}


def test_invalidation_reloads_open_application():
    gateway = CountingGateway()
    bus = InvalidationBus()
    review = ApplicationReview(gateway, bus=bus)

    async def scenario():
        await review.load("9")
        bus.invalidate(application_key("9"))
        bus.invalidate(application_key("10"))
        await drain_tasks()

    asyncio.run(scenario())
    assert gateway.loads == 2
    assert review.application["version"] == 2


def test_unexpected_decision_error_is_reported():
    review, gateway, bus = make_review()
    gateway.reject_application.side_effect = RuntimeError("socket closed")
    asyncio.run(review.load("9"))
    review.open_decision(DecisionType.NOT_ADMITTED)

    assert asyncio.run(review.submit_decision("Late")) is False
    assert not review.is_submitting
    assert review.show_decision_modal
    assert review.notifier.drain()[0].message == "Failed to reject application"
