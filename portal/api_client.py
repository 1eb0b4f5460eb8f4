"""
Portal API Client - Interact with the admissions REST API.

Covers the endpoints the dashboard needs:
- Paginated applicant / student lists
- Single application details
- Application and personal-info updates
- Admission decisions (approve / reject)
- Programs, academic sessions, teachers, courses and course assignments
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests

from .config import Settings, get_settings
from .errors import (
    HttpError,
    NetworkError,
    NotFoundError,
    extract_error_message,
    format_field_errors,
)
from .models.schemas import Pagination
from .utils.logger import get_logger

logger = get_logger(__name__)

APPLICATION_UPDATE_ENDPOINT = "/application/update-application-form"
PERSONAL_INFO_UPDATE_ENDPOINT = "/account/user-update"
APPROVE_ENDPOINT = "/admin/approve-application"
REJECT_ENDPOINT = "/admin/reject-application"
DECISION_SUCCESS_STATUS = 200


def flatten_form(data: Any, prefix: str = "") -> List[Tuple[str, str]]:
    """Flatten nested dicts/lists into multipart form fields.

    ``{"a": {"b": 1}, "c": [1, 2]}`` becomes
    ``[("a[b]", "1"), ("c[0]", "1"), ("c[1]", "2")]``. ``None`` values are
    skipped and booleans are sent as ``1``/``0``.
    """
    fields: List[Tuple[str, str]] = []
    if isinstance(data, dict):
        for key, value in data.items():
            name = f"{prefix}[{key}]" if prefix else str(key)
            fields.extend(flatten_form(value, name))
    elif isinstance(data, (list, tuple)):
        for index, value in enumerate(data):
            fields.extend(flatten_form(value, f"{prefix}[{index}]"))
    elif data is None:
        pass
    elif isinstance(data, bool):
        fields.append((prefix, "1" if data else "0"))
    else:
        fields.append((prefix, str(data)))
    return fields


class PortalClient:
    """
    Client for the admissions REST API.

    Every request carries the bearer token from settings (or the one passed
    in). Non-2xx responses raise `HttpError`; transport failures raise
    `NetworkError`.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        access_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the portal API client.

        Args:
            settings: Settings instance (loaded from the environment if omitted)
            access_token: Overrides the token from settings
            session: requests.Session to reuse connections (created if omitted)
        """
        self.settings = settings or get_settings()
        self.access_token = access_token or self.settings.access_token
        self.session = session or requests.Session()

        if not self.settings.api_domain:
            logger.warning("PORTAL_API_DOMAIN is not set; requests will fail")
        if not self.access_token:
            logger.warning("No access token configured; requests will be anonymous")

    def _get_headers(self, json_body: bool = True) -> dict:
        """Get authorization headers for API requests."""
        headers = {"Accept": "application/json"}
        if json_body:
            headers["Content-Type"] = "application/json"
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def _send(self, method: str, endpoint: str, json_body: bool = True, **kwargs) -> requests.Response:
        url = f"{self.settings.api_base_url}{endpoint}"
        logger.debug("%s %s", method, url)
        try:
            return self.session.request(
                method,
                url,
                headers=self._get_headers(json_body),
                timeout=self.settings.api_timeout,
                **kwargs,
            )
        except requests.Timeout as exc:
            logger.error("Request timeout: %s %s", method, endpoint)
            raise NetworkError("Request timeout") from exc
        except requests.ConnectionError as exc:
            logger.error("Network error: %s %s: %s", method, endpoint, exc)
            raise NetworkError(
                "Network connection failed. Please check your internet connection and try again."
            ) from exc
        except requests.RequestException as exc:
            logger.error("Request failed: %s %s: %s", method, endpoint, exc)
            raise NetworkError(f"Request could not be sent: {exc}") from exc

    @staticmethod
    def _body(response: requests.Response) -> Any:
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError:
                return None
        return response.text

    def _raise_for_status(self, response: requests.Response, endpoint: str) -> None:
        if response.ok:
            return
        body = self._body(response)
        status = response.status_code
        if status == 503 and isinstance(body, str) and "Service Unavailable" in body:
            message = "The server is temporarily unavailable (503). Please try again shortly."
        elif status == 422 and isinstance(body, dict) and isinstance(body.get("errors"), dict):
            message = format_field_errors(body["errors"])
        else:
            message = extract_error_message(body, status)
        logger.error("API error %s on %s: %s", status, endpoint, message)
        if status == 404:
            raise NotFoundError(message, body)
        raise HttpError(status, message, body)

    def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        """
        Make authenticated API request.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path, relative to /api/v1
            **kwargs: Additional arguments for requests

        Returns:
            Decoded JSON body (or None for empty / non-JSON bodies)
        """
        json_body = "files" not in kwargs and "data" not in kwargs
        response = self._send(method, endpoint, json_body=json_body, **kwargs)
        self._raise_for_status(response, endpoint)
        body = self._body(response)
        return body if not isinstance(body, str) else None

    # -------------------- Collections --------------------
    def fetch_collection(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Fetch one page of a list endpoint.

        Args:
            path: List endpoint, e.g. /admin/all-applications
            params: Derived query parameters (page, limit, sortBy, ...)

        Returns:
            {"data": [...], "total": int}
        """
        result = self._request("GET", path, params=params or {})
        return self._normalize_page(result)

    @staticmethod
    def _normalize_page(result: Any) -> Dict[str, Any]:
        # Handle the different list envelopes the API uses
        if isinstance(result, list):
            return {"data": result, "total": len(result)}
        if not isinstance(result, dict):
            return {"data": [], "total": 0}

        payload = result.get("data", [])
        if isinstance(payload, dict):
            rows = payload.get("data") or []
            return {"data": rows, "total": int(payload.get("total") or len(rows))}

        rows = payload or []
        pagination = (result.get("metadata") or {}).get("pagination")
        if pagination:
            return {"data": rows, "total": Pagination.model_validate(pagination).total}
        return {"data": rows, "total": int(result.get("total") or len(rows))}

    # -------------------- Records --------------------
    def fetch_record(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[dict]:
        """
        Fetch a single record.

        Returns:
            The record dict, or None when the server has no such record
        """
        try:
            result = self._request("GET", path, params=params or {})
        except NotFoundError:
            return None
        if isinstance(result, dict) and "data" in result:
            result = result["data"]
        return result or None

    def get_application(self, application_id: str) -> Optional[dict]:
        """Full application details as seen by an admin reviewer."""
        return self.fetch_record("/admin/single-application", params={"id": application_id})

    # -------------------- Mutations --------------------
    def update_application(self, application_id: str, payload: Dict[str, Any]) -> Any:
        """Update an application record; sent as a multipart form."""
        fields = [("application_id", str(application_id))]
        fields.extend(flatten_form(payload))
        multipart = [(name, (None, value)) for name, value in fields]
        result = self._request("POST", APPLICATION_UPDATE_ENDPOINT, files=multipart)
        logger.info("Updated application %s (%d fields)", application_id, len(fields) - 1)
        return result

    def update_personal_info(self, payload: Dict[str, Any]) -> Any:
        """Update personal information of the current account."""
        result = self._request("POST", PERSONAL_INFO_UPDATE_ENDPOINT, json=dict(payload))
        logger.info("Updated personal information (%d fields)", len(payload))
        return result

    def _decision(self, method: str, endpoint: str, payload: Dict[str, Any], action: str) -> bool:
        response = self._send(method, endpoint, json=payload)
        body = self._body(response)
        # The API reports its own status in the body; both must be 200
        reported = body.get("status") if isinstance(body, dict) else None
        if response.status_code != DECISION_SUCCESS_STATUS or (
            reported is not None and reported not in (DECISION_SUCCESS_STATUS, True)
        ):
            message = extract_error_message(body, response.status_code)
            logger.error("Failed to %s application: %s", action, message)
            raise HttpError(response.status_code, f"Failed to {action} application: {message}", body)
        logger.info("Application %s %sd", payload.get("application_id"), action)
        return True

    def approve_application(self, payload: Dict[str, Any]) -> bool:
        """Admit an applicant. Raises HttpError unless the API answers 200."""
        return self._decision("POST", APPROVE_ENDPOINT, payload, "approve")

    def reject_application(self, payload: Dict[str, Any]) -> bool:
        """Reject an applicant. Raises HttpError unless the API answers 200."""
        return self._decision("DELETE", REJECT_ENDPOINT, payload, "reject")

    # -------------------- Reference data --------------------
    def _list(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> List[dict]:
        result = self._request("GET", endpoint, params=params or {})
        if isinstance(result, list):
            return result
        if isinstance(result, dict):
            rows = result.get("data", [])
            if isinstance(rows, dict):
                rows = rows.get("data", [])
            return list(rows or [])
        return []

    def list_programs(self) -> List[dict]:
        """All programs/departments; parents have ``parent == 0``."""
        return self._list("/departments")

    def list_academic_sessions(self) -> List[dict]:
        return self._list("/academic-sessions")

    def list_teachers(self) -> List[dict]:
        return self._list("/teachers")

    def list_courses(self) -> List[dict]:
        return self._list("/courses")

    def list_assignments(self) -> List[dict]:
        return self._list("/teacher-course-assignments")

    def assign_teacher(self, teacher_id: str, course_ids: Iterable[str]) -> Any:
        course_ids = [str(c) for c in course_ids]
        result = self._request(
            "POST",
            "/teacher-course-assignments",
            json={"teacher_id": str(teacher_id), "course_ids": course_ids},
        )
        logger.info("Assigned teacher %s to %d course(s)", teacher_id, len(course_ids))
        return result

    def remove_assignment(self, assignment_id: str) -> Any:
        result = self._request("DELETE", f"/teacher-course-assignments/{assignment_id}")
        logger.info("Removed assignment %s", assignment_id)
        return result
