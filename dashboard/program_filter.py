"""Two-level program/course filter for the admissions tables.

Picking a parent program only narrows the course list; the applicant
table is refetched once a course (child program) is picked.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from portal.models.schemas import ProgramItem

from dashboard.collection import CollectionQueryState
from dashboard.utils.logging import get_logger

logger = get_logger(__name__)

ALL = "all"
PROGRAM_FILTER_KEY = "program_id"


@dataclass(frozen=True)
class FilterSelection:
    parent_id: Optional[str] = None
    child_id: Optional[str] = None

    @property
    def has_specific_parent(self) -> bool:
        return bool(self.parent_id) and self.parent_id != ALL


@dataclass
class ProgramCatalogue:
    """Programs split into parents (``parent == 0``) and their children."""

    parents: List[ProgramItem]
    children: Dict[int, List[ProgramItem]]

    @classmethod
    def from_programs(cls, programs: Iterable) -> "ProgramCatalogue":
        items = [p if isinstance(p, ProgramItem) else ProgramItem.model_validate(p) for p in programs]
        items.sort(key=lambda p: (p.sortorder, p.name))
        parents = [p for p in items if p.parent == 0]
        children: Dict[int, List[ProgramItem]] = {}
        for item in items:
            if item.parent != 0:
                children.setdefault(item.parent, []).append(item)
        return cls(parents=parents, children=children)

    @classmethod
    def empty(cls) -> "ProgramCatalogue":
        return cls(parents=[], children={})

    def children_of(self, parent_id: Optional[str]) -> List[ProgramItem]:
        if not parent_id or parent_id == ALL:
            return []
        try:
            key = int(parent_id)
        except ValueError:
            return []
        return list(self.children.get(key, []))


class ProgramFilter:
    """Parent/child program selection wired into a collection's filters."""

    def __init__(
        self,
        collection: CollectionQueryState,
        catalogue: Optional[ProgramCatalogue] = None,
        filter_key: str = PROGRAM_FILTER_KEY,
    ):
        self.collection = collection
        self.catalogue = catalogue or ProgramCatalogue.empty()
        self.filter_key = filter_key
        self.selection = FilterSelection()
        self.is_loading = False

    def load_catalogue(self, programs: Iterable) -> None:
        self.catalogue = ProgramCatalogue.from_programs(programs)
        logger.debug(
            "Loaded %d parent program(s), %d with courses",
            len(self.catalogue.parents),
            len(self.catalogue.children),
        )

    def on_parent_change(self, value: Optional[str]) -> None:
        """Select a parent program (or ``"all"``); always clears the course.

        The table filter is dropped without a refetch.
        """
        parent = value or None
        self.selection = FilterSelection(parent_id=parent, child_id=None)
        self.collection.set_filter(self.filter_key, None, refetch=False)

    def on_child_change(self, value: Optional[str]) -> None:
        """Select a course; this is what refetches the table.

        Ignored until a specific parent program is selected.
        """
        if not self.selection.has_specific_parent:
            logger.warning("Ignoring course %r without a parent program", value)
            return
        child = value or None
        self.selection = FilterSelection(parent_id=self.selection.parent_id, child_id=child)
        self.collection.set_filter(self.filter_key, child)

    def reset(self) -> None:
        self.selection = FilterSelection()
        self.collection.set_filter(self.filter_key, None)

    # -------------------- View rules --------------------
    @property
    def parent_options(self) -> List[ProgramItem]:
        return list(self.catalogue.parents)

    @property
    def child_options(self) -> List[ProgramItem]:
        return self.catalogue.children_of(self.selection.parent_id)

    @property
    def show_parent_selector(self) -> bool:
        return bool(self.catalogue.parents)

    @property
    def show_child_selector(self) -> bool:
        return self.selection.has_specific_parent

    @property
    def child_selector_disabled(self) -> bool:
        return self.is_loading or not self.child_options

    @property
    def show_no_children_hint(self) -> bool:
        return self.show_child_selector and not self.child_options

    @property
    def child_placeholder(self) -> str:
        return "No courses available" if not self.child_options else "Select a course"
