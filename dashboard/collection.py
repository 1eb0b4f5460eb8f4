"""Paginated, sortable, filterable collection state for data tables.

`CollectionQueryState` owns the query a table shows (page, page size,
sort, search, filters), derives the gateway parameters from it and keeps
the last good page of rows. Every query change schedules a fetch; when
fetches overlap only the newest one is allowed to land.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Set

from pydantic import ValidationError

from portal.errors import GENERIC_MESSAGE, PortalError
from portal.models.schemas import Applicant, parse_list

from dashboard.invalidation import InvalidationBus
from dashboard.utils.async_tasks import run_async, schedule
from dashboard.utils.logging import get_logger

logger = get_logger(__name__)


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class QueryFieldError(ValueError):
    """Sort or filter field the resource does not support."""


@dataclass(frozen=True)
class CollectionResource:
    """A list endpoint and the fields it can be sorted and filtered by."""

    name: str
    path: str
    sortable: FrozenSet[str]
    filterable: FrozenSet[str]
    default_sort: str = "id"
    sort_param: str = "sortBy"
    order_param: str = "sortOrder"
    model: Optional[type] = None

    def check_sort(self, sort_by: str) -> None:
        if sort_by not in self.sortable:
            raise QueryFieldError(f"{self.name}: cannot sort by {sort_by!r}")

    def check_filter(self, key: str) -> None:
        if key not in self.filterable:
            raise QueryFieldError(f"{self.name}: unknown filter {key!r}")


APPLICANTS = CollectionResource(
    name="applicants",
    path="/admin/all-applications",
    sortable=frozenset(
        {"id", "first_name", "last_name", "email", "reference", "created_at", "admission_status"}
    ),
    filterable=frozenset(
        {"academic_session", "application_status", "admission_status", "program_id", "is_applied"}
    ),
    model=Applicant,
)

ADMITTED_APPLICANTS = CollectionResource(
    name="admitted-applicants",
    path="/admin/approved-applicants",
    sortable=APPLICANTS.sortable,
    filterable=frozenset({"academicSession", "program_id"}),
    model=Applicant,
)

STUDENTS = CollectionResource(
    name="students",
    path="/students",
    sortable=frozenset({"created_at", "full_name", "student_id", "admission_year"}),
    filterable=frozenset(
        {"academic_session_id", "semester_id", "department_code", "status", "admission_year"}
    ),
    default_sort="created_at",
    sort_param="sort_by",
    order_param="sort_order",
)


@dataclass(frozen=True)
class QueryState:
    page_index: int = 0
    page_size: int = 10
    sort_by: str = "id"
    sort_order: SortOrder = SortOrder.DESC
    search: str = ""
    filters: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if self.page_index < 0:
            raise ValueError("page_index must be >= 0")
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        object.__setattr__(self, "sort_order", SortOrder(self.sort_order))
        object.__setattr__(self, "filters", MappingProxyType(dict(self.filters)))

    def to_params(self, resource: Optional[CollectionResource] = None) -> Dict[str, Any]:
        """Wire parameters; pages are 1-based on the server."""
        sort_param = resource.sort_param if resource else "sortBy"
        order_param = resource.order_param if resource else "sortOrder"
        params: Dict[str, Any] = {
            "page": self.page_index + 1,
            "limit": self.page_size,
            sort_param: self.sort_by,
            order_param: self.sort_order.value,
        }
        if self.search:
            params["search"] = self.search
        params.update(self.filters)
        return params


Listener = Callable[["CollectionQueryState"], None]


class CollectionQueryState:
    """Query, results and fetch bookkeeping for one data table."""

    def __init__(
        self,
        gateway,
        resource: CollectionResource = APPLICANTS,
        initial: Optional[QueryState] = None,
        bus: Optional[InvalidationBus] = None,
    ):
        self.gateway = gateway
        self.resource = resource
        initial = initial or QueryState(sort_by=resource.default_sort)
        self._validate(initial)
        self._initial = initial
        self._query = initial

        self.data: List[Any] = []
        self.total: int = 0
        self.error: Optional[str] = None
        self.is_loading: bool = False

        self._seq = 0
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[Listener] = []
        self._unsubscribe = None
        if bus is not None:
            self._unsubscribe = bus.subscribe((resource.name,), lambda _key: self._request_fetch())

    # -------------------- Query --------------------
    @property
    def query(self) -> QueryState:
        return self._query

    @property
    def params(self) -> Dict[str, Any]:
        return self._query.to_params(self.resource)

    @property
    def page_count(self) -> int:
        return math.ceil(self.total / self._query.page_size) if self.total else 0

    def _validate(self, query: QueryState) -> None:
        self.resource.check_sort(query.sort_by)
        for key in query.filters:
            self.resource.check_filter(key)

    def _apply(self, query: QueryState, refetch: bool = True) -> None:
        changed = query != self._query
        self._query = query
        if changed:
            self._notify()
            if refetch:
                self._request_fetch()

    def set_page_index(self, page_index: int) -> None:
        if page_index < 0:
            raise ValueError("page_index must be >= 0")
        self._apply(replace(self._query, page_index=page_index))

    def set_page_size(self, page_size: int) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._apply(replace(self._query, page_size=page_size, page_index=0))

    def set_search(self, search: Optional[str]) -> None:
        self._apply(replace(self._query, search=(search or "").strip(), page_index=0))

    def set_sorting(self, sort_by: str, sort_order: SortOrder | str = SortOrder.ASC) -> None:
        self.resource.check_sort(sort_by)
        try:
            order = SortOrder(sort_order)
        except ValueError as exc:
            raise QueryFieldError(f"invalid sort order {sort_order!r}") from exc
        self._apply(replace(self._query, sort_by=sort_by, sort_order=order, page_index=0))

    def set_filter(self, key: str, value: Optional[str], refetch: bool = True) -> None:
        """Set or (for empty values) remove one filter."""
        self.resource.check_filter(key)
        filters = dict(self._query.filters)
        if value is None or value == "":
            filters.pop(key, None)
        else:
            filters[key] = str(value)
        self._apply(replace(self._query, filters=filters, page_index=0), refetch=refetch)

    def clear_filters(self) -> None:
        self._apply(replace(self._query, filters={}, search="", page_index=0))

    def reset(self) -> None:
        self._apply(self._initial)

    # -------------------- Fetching --------------------
    def _request_fetch(self) -> None:
        task = schedule(self.refresh)
        if task is not None:
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def refresh(self) -> bool:
        """Fetch the page for the current query.

        Returns True when this fetch's result was applied, False when it
        failed or no longer matches the current query.
        """
        self._seq += 1
        seq = self._seq
        query = self._query
        self.is_loading = True
        self._notify()

        try:
            result = await run_async(
                self.gateway.fetch_collection, self.resource.path, query.to_params(self.resource)
            )
            rows = list(result.get("data") or [])
            if self.resource.model is not None:
                rows = parse_list(self.resource.model, rows)
            total = int(result.get("total") or len(rows))
        except (PortalError, ValidationError) as exc:
            message = exc.message if isinstance(exc, PortalError) else "Unexpected response from server"
            return self._fail(seq, query, message)
        except Exception:
            logger.exception("Unexpected error fetching %s", self.resource.name)
            return self._fail(seq, query, GENERIC_MESSAGE)

        if not self._is_current(seq, query):
            logger.debug("Dropping stale %s response (request %s, latest %s)", self.resource.name, seq, self._seq)
            self._settle(seq)
            return False

        self.data = rows
        self.total = total
        self.error = None
        self.is_loading = False
        self._notify()
        return True

    def _is_current(self, seq: int, query: QueryState) -> bool:
        return seq == self._seq and query == self._query

    def _settle(self, seq: int) -> None:
        # No newer request will clear the flag when the query changed without a refetch
        if seq == self._seq and self.is_loading:
            self.is_loading = False
            self._notify()

    def _fail(self, seq: int, query: QueryState, message: str) -> bool:
        if not self._is_current(seq, query):
            logger.debug("Dropping failed response for superseded query %s", seq)
            self._settle(seq)
            return False
        logger.warning("Failed to fetch %s: %s", self.resource.name, message)
        self.error = message
        self.is_loading = False
        self._notify()
        return False

    async def wait_idle(self) -> None:
        """Wait until every scheduled fetch has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # -------------------- Listeners --------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener) if listener in self._listeners else None

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def close(self) -> None:
        """Detach from the invalidation bus (view unmount)."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
