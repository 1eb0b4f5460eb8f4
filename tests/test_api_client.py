import json
from unittest.mock import Mock

import pytest
import requests

from portal.api_client import APPROVE_ENDPOINT, REJECT_ENDPOINT, PortalClient, flatten_form
from portal.config import Settings
from portal.errors import HttpError, NetworkError, NotFoundError

BASE = "https://portal.example.com/api/v1"


def make_response(status=200, body=None, text=None):
    response = requests.Response()
    response.status_code = status
    if body is not None:
        response._content = json.dumps(body).encode()
        response.headers["content-type"] = "application/json; charset=utf-8"
    else:
        response._content = (text or "").encode()
        response.headers["content-type"] = "text/html"
    return response


@pytest.fixture()
def session():
    return Mock()


@pytest.fixture()
def client(session):
    settings = Settings(api_domain="https://portal.example.com/", access_token="tok-123", api_timeout=5)
    return PortalClient(settings=settings, session=session)


def test_fetch_collection_nested_envelope(client, session):
    session.request.return_value = make_response(
        body={"status": 200, "data": {"data": [{"id": 1}, {"id": 2}], "total": 42}}
    )
    result = client.fetch_collection("/admin/all-applications", {"page": 1, "limit": 10})

    assert result == {"data": [{"id": 1}, {"id": 2}], "total": 42}
    args, kwargs = session.request.call_args
    assert args == ("GET", f"{BASE}/admin/all-applications")
    assert kwargs["params"] == {"page": 1, "limit": 10}
    assert kwargs["timeout"] == 5
    assert kwargs["headers"]["Authorization"] == "Bearer tok-123"
    assert kwargs["headers"]["Content-Type"] == "application/json"


def test_fetch_collection_metadata_envelope(client, session):
    session.request.return_value = make_response(
        body={"data": [{"id": 3}], "metadata": {"pagination": {"total": 31, "per_page": 10}}}
    )
    assert client.fetch_collection("/students")["total"] == 31


def test_fetch_collection_bare_list(client, session):
    session.request.return_value = make_response(body=[{"id": 1}])
    assert client.fetch_collection("/students") == {"data": [{"id": 1}], "total": 1}


def test_missing_record_is_none(client, session):
    session.request.return_value = make_response(404, body={"message": "Application not found"})
    assert client.get_application("77") is None
    assert session.request.call_args.kwargs["params"] == {"id": "77"}


def test_record_is_unwrapped(client, session):
    session.request.return_value = make_response(body={"data": {"id": 5, "program": "Law"}})
    assert client.get_application("5") == {"id": 5, "program": "Law"}


def test_validation_errors_are_listed(client, session):
    session.request.return_value = make_response(
        422, body={"errors": {"email": ["is taken", "is invalid"], "phone": ["is required"]}}
    )
    with pytest.raises(HttpError) as excinfo:
        client.update_personal_info({"email": "x"})
    assert excinfo.value.status == 422
    assert excinfo.value.message == "email: is taken, is invalid\nphone: is required"


def test_server_error_message(client, session):
    session.request.return_value = make_response(500, body={"message": "Database down"})
    with pytest.raises(HttpError) as excinfo:
        client.list_programs()
    assert excinfo.value.message == "Database down"
    assert str(excinfo.value) == "Database down (status 500)"
    assert not isinstance(excinfo.value, NotFoundError)


def test_service_unavailable_page(client, session):
    session.request.return_value = make_response(503, text="<h1>503 Service Unavailable</h1>")
    with pytest.raises(HttpError) as excinfo:
        client.list_courses()
    assert "temporarily unavailable" in excinfo.value.message


def test_transport_failures_become_network_errors(client, session):
    session.request.side_effect = requests.Timeout()
    with pytest.raises(NetworkError) as excinfo:
        client.list_teachers()
    assert excinfo.value.message == "Request timeout"

    session.request.side_effect = requests.ConnectionError("reset")
    with pytest.raises(NetworkError) as excinfo:
        client.list_teachers()
    assert "Network connection failed" in excinfo.value.message


def test_update_application_sends_multipart(client, session):
    session.request.return_value = make_response(body={"status": 200})
    client.update_application("9", {"address": {"city": "Lagos"}, "subjects": ["Maths"], "agreed": True, "skip": None})

    args, kwargs = session.request.call_args
    assert args == ("POST", f"{BASE}/application/update-application-form")
    assert "Content-Type" not in kwargs["headers"]
    assert kwargs["files"] == [
        ("application_id", (None, "9")),
        ("address[city]", (None, "Lagos")),
        ("subjects[0]", (None, "Maths")),
        ("agreed", (None, "1")),
    ]


def test_flatten_form_nested_lists():
    assert flatten_form({"a": [{"b": 1}, {"b": False}]}) == [("a[0][b]", "1"), ("a[1][b]", "0")]


def test_approve_requires_ok_status(client, session):
    payload = {"application_id": "9", "program": "Law", "program_id": "3"}
    session.request.return_value = make_response(body={"status": 200, "message": "ok"})
    assert client.approve_application(payload) is True
    args, kwargs = session.request.call_args
    assert args == ("POST", BASE + APPROVE_ENDPOINT)
    assert kwargs["json"] == payload

    session.request.return_value = make_response(body={"status": 400, "message": "Quota reached"})
    with pytest.raises(HttpError) as excinfo:
        client.approve_application(payload)
    assert "Quota reached" in excinfo.value.message

    session.request.return_value = make_response(201, body={"message": "created"})
    with pytest.raises(HttpError):
        client.approve_application(payload)


def test_reject_uses_delete(client, session):
    session.request.return_value = make_response(body={"status": True})
    assert client.reject_application({"application_id": "9", "reason": "Late"}) is True
    assert session.request.call_args.args == ("DELETE", BASE + REJECT_ENDPOINT)


def test_assign_teacher_payload(client, session):
    session.request.return_value = make_response(body={"data": {"id": "a1"}})
    client.assign_teacher(4, [1, "2"])
    assert session.request.call_args.kwargs["json"] == {"teacher_id": "4", "course_ids": ["1", "2"]}


def test_list_unwraps_data(client, session):
    session.request.return_value = make_response(body={"data": [{"id": 1, "name": "Arts"}]})
    assert client.list_programs() == [{"id": 1, "name": "Arts"}]
    assert session.request.call_args.args[1] == f"{BASE}/departments"


def test_null_total_falls_back_to_row_count(client, session):
    session.request.return_value = make_response(body={"data": {"data": [{"id": 1}], "total": None}})
    assert client.fetch_collection("/students")["total"] == 1

    session.request.return_value = make_response(body={"data": [{"id": 1}, {"id": 2}], "total": None})
    assert client.fetch_collection("/students")["total"] == 2


def test_other_request_failures_become_network_errors(client, session):
    session.request.side_effect = requests.exceptions.InvalidURL("bad url")
    with pytest.raises(NetworkError) as excinfo:
        client.list_programs()
    assert "bad url" in excinfo.value.message


def test_missing_domain_raises_network_error():
    client = PortalClient(settings=Settings(api_domain="", access_token="tok"), session=requests.Session())
    with pytest.raises(NetworkError):
        client.fetch_collection("/admin/all-applications", {"page": 1})


def test_list_academic_sessions(client, session):
    session.request.return_value = make_response(
        body={"data": [{"id": 1, "name": "2024/2025", "status": "ACTIVE"}]}
    )
    assert client.list_academic_sessions()[0]["name"] == "2024/2025"
    assert session.request.call_args.args[1] == f"{BASE}/academic-sessions"
