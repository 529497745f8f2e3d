"""Transient UI state: selection, hover, navigation"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID

from .db.entities import EntityKind, PersonEntity
from .store import EntityStore


class NavSection(str, Enum):
    """Sidebar sections, in display order"""
    RESEARCH = "research"
    ARCHIVE = "archive"
    GRAPH = "graph"
    KNOWLEDGE = "knowledge"
    ANALYTICS = "analytics"
    MODELS = "models"
    CALENDAR = "calendar"


@dataclass
class InteractionState:
    """
    Selection and navigation state of one client.

    Entities are referenced by id only and resolved through the store on
    read, so a selection never shows stale data.
    """
    selected_person_id: Optional[UUID] = None
    hovered_person_id: Optional[UUID] = None
    nav_section: NavSection = NavSection.GRAPH
    add_person_open: bool = False
    open_task_id: Optional[UUID] = None

    def select(self, person_id: Optional[UUID]) -> None:
        self.selected_person_id = person_id

    def clear_selection(self) -> None:
        self.selected_person_id = None

    def hover(self, person_id: Optional[UUID]) -> None:
        self.hovered_person_id = person_id

    def navigate(self, section: NavSection) -> None:
        self.nav_section = NavSection(section)

    def open_add_person(self) -> None:
        self.add_person_open = True

    def close_add_person(self) -> None:
        self.add_person_open = False

    def open_task(self, task_id: UUID) -> None:
        self.open_task_id = task_id

    def close_task(self) -> None:
        self.open_task_id = None

    def selected_person(self, store: EntityStore) -> Optional[PersonEntity]:
        if self.selected_person_id is None:
            return None
        return store.get(EntityKind.PEOPLE, self.selected_person_id)

    def hovered_person(self, store: EntityStore) -> Optional[PersonEntity]:
        if self.hovered_person_id is None:
            return None
        return store.get(EntityKind.PEOPLE, self.hovered_person_id)

    def prune(self, store: EntityStore) -> None:
        """Drop references to people or tasks that no longer exist"""
        if self.selected_person_id is not None and self.selected_person(store) is None:
            self.selected_person_id = None
        if self.hovered_person_id is not None and self.hovered_person(store) is None:
            self.hovered_person_id = None
        if self.open_task_id is not None:
            if self.open_task_id not in {t.id for t in store.tasks()}:
                self.open_task_id = None
