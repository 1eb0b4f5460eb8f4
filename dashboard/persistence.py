"""Persisted dashboard stores.

Stores receive their persistence adapter instead of reaching for a module
level singleton: JSON on disk for a single-user desktop run, SQLite through
SQLAlchemy when several dashboards share a machine, memory in tests.
"""

from __future__ import annotations

import json
import os
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from portal.config import get_settings
from portal.database.engine import SessionLocal, init_db
from portal.database.repository import delete_state, load_state, save_state
from portal.errors import PortalError
from portal.models.schemas import Applicant, parse_list

from dashboard.collection import CollectionQueryState, QueryState, SortOrder
from dashboard.utils.async_tasks import run_async
from dashboard.utils.logging import get_logger

logger = get_logger(__name__)

APPLICANTS_STORE_KEY = "applicants-store"


class MemoryPersistence:
    def __init__(self):
        self._data: Dict[str, Any] = {}

    def load(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return json.loads(json.dumps(value)) if value is not None else None

    def save(self, key: str, value: Any) -> None:
        self._data[key] = json.loads(json.dumps(value))

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFilePersistence:
    """All store keys in one JSON document (``PORTAL_STATE_PATH`` by default)."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or get_settings().state_path

    def _ensure_dir(self) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def _read_all(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable state file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, Any]) -> None:
        self._ensure_dir()
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)

    def load(self, key: str) -> Optional[Any]:
        return self._read_all().get(key)

    def save(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


class SqlPersistence:
    """Store keys as rows of the ``ui_state`` table."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal, engine=None):
        self.session_factory = session_factory
        init_db(engine)

    def load(self, key: str) -> Optional[Any]:
        db = self.session_factory()
        try:
            return load_state(db, key)
        finally:
            db.close()

    def save(self, key: str, value: Any) -> None:
        db = self.session_factory()
        try:
            save_state(db, key, value)
        finally:
            db.close()

    def delete(self, key: str) -> None:
        db = self.session_factory()
        try:
            delete_state(db, key)
        finally:
            db.close()


class ApplicantsStore:
    """Cached applicant list shared by the admissions screens.

    Only ``applicants`` is persisted; loading flags and errors start fresh.
    """

    def __init__(self, adapter, key: str = APPLICANTS_STORE_KEY):
        self.adapter = adapter
        self.key = key
        self.applicants: List[Applicant] = []
        self.is_loading = False
        self.is_fetching = False
        self.error: Optional[str] = None
        self._restore()

    def _restore(self) -> None:
        stored = self.adapter.load(self.key) or {}
        try:
            self.applicants = parse_list(Applicant, stored.get("applicants") or [])
        except ValidationError as exc:
            logger.warning("Discarding persisted applicants: %s", exc)
            self.applicants = []

    def _persist(self) -> None:
        self.adapter.save(
            self.key,
            {"applicants": [a.model_dump(mode="json") for a in self.applicants]},
        )

    def set_applicants(self, applicants: List[Any]) -> None:
        self.applicants = [
            a if isinstance(a, Applicant) else Applicant.model_validate(a) for a in applicants
        ]
        self._persist()

    def set_error(self, error: Optional[str]) -> None:
        self.error = error

    @property
    def total_count(self) -> int:
        return len(self.applicants)

    async def fetch_all(self, gateway, path: str = "/admin/all-applications", limit: int = 10000) -> bool:
        """Pull every applicant in one request and replace the cache."""
        self.is_fetching = True
        self.is_loading = not self.applicants
        self.error = None
        params = {"page": 1, "limit": limit, "sortBy": "id", "sortOrder": "desc"}
        try:
            result = await run_async(gateway.fetch_collection, path, params)
            self.set_applicants(result.get("data") or [])
            return True
        except (PortalError, ValidationError) as exc:
            message = exc.message if isinstance(exc, PortalError) else "Failed to fetch applicants"
            logger.error("Error fetching applicants: %s", message)
            self.error = message
            return False
        finally:
            self.is_fetching = False
            self.is_loading = False

    def clear(self) -> None:
        self.applicants = []
        self.is_loading = False
        self.is_fetching = False
        self.error = None
        self.adapter.delete(self.key)


def save_query_preferences(adapter, key: str, collection: CollectionQueryState) -> None:
    """Remember filters, search and page size of a table (not the page)."""
    query = collection.query
    adapter.save(
        key,
        {
            "page_size": query.page_size,
            "sort_by": query.sort_by,
            "sort_order": query.sort_order.value,
            "search": query.search,
            "filters": dict(query.filters),
        },
    )


def load_query_preferences(adapter, key: str, default: Optional[QueryState] = None) -> QueryState:
    """QueryState restored from ``key``, always on the first page."""
    default = default or QueryState()
    stored = adapter.load(key)
    if not isinstance(stored, dict):
        return default
    try:
        return QueryState(
            page_index=0,
            page_size=int(stored.get("page_size", default.page_size)),
            sort_by=str(stored.get("sort_by", default.sort_by)),
            sort_order=SortOrder(stored.get("sort_order", default.sort_order.value)),
            search=str(stored.get("search", "")),
            filters={str(k): str(v) for k, v in (stored.get("filters") or {}).items() if v},
        )
    except (TypeError, ValueError) as exc:
        logger.warning("Ignoring persisted query for %s: %s", key, exc)
        return default
