"""Tests for transient interaction state and the observed session"""

from __future__ import annotations

from dataclasses import replace
from uuid import uuid4

import pytest

from relgraph.db.entities import EntityKind, Session
from relgraph.interaction import InteractionState, NavSection
from relgraph.session import SessionState
from relgraph.store import EntityStore


@pytest.fixture
def store(core_person, alice, sample_tasks) -> EntityStore:
    s = EntityStore(core_name=core_person.name)
    s.replace_all([core_person, alice], [], sample_tasks[:2])
    return s


class TestInteractionState:
    """Selection by id, navigation and pruning"""

    def test_defaults(self):
        state = InteractionState()
        assert state.nav_section is NavSection.GRAPH
        assert state.selected_person_id is None
        assert state.add_person_open is False

    def test_selection_resolves_latest_entity(self, store, alice):
        state = InteractionState()
        state.select(alice.id)
        store.upsert(EntityKind.PEOPLE, replace(alice, name="Alice B."))

        assert state.selected_person(store).name == "Alice B."

    def test_hover(self, store, alice):
        state = InteractionState()
        state.hover(alice.id)
        assert state.hovered_person(store) == alice
        state.hover(None)
        assert state.hovered_person(store) is None

    def test_navigate_accepts_values(self):
        state = InteractionState()
        state.navigate("calendar")
        assert state.nav_section is NavSection.CALENDAR
        with pytest.raises(ValueError):
            state.navigate("settings")

    def test_modal_and_task_detail(self, sample_tasks):
        state = InteractionState()
        state.open_add_person()
        state.open_task(sample_tasks[0].id)
        assert state.add_person_open
        assert state.open_task_id == sample_tasks[0].id

        state.close_add_person()
        state.close_task()
        assert not state.add_person_open
        assert state.open_task_id is None

    def test_prune_drops_missing_targets(self, store, alice, sample_tasks):
        state = InteractionState()
        state.select(alice.id)
        state.hover(uuid4())
        state.open_task(sample_tasks[1].id)

        store.remove(EntityKind.TASKS, sample_tasks[1].id)
        state.prune(store)
        assert state.selected_person_id == alice.id
        assert state.hovered_person_id is None
        assert state.open_task_id is None

        store.remove(EntityKind.PEOPLE, alice.id)
        state.prune(store)
        assert state.selected_person_id is None

    def test_nav_sections_in_order(self):
        assert [s.value for s in NavSection] == [
            "research", "archive", "graph", "knowledge", "analytics", "models", "calendar",
        ]


class TestSessionState:
    """Externally observed auth state"""

    def test_listeners_see_transitions(self):
        state = SessionState()
        seen = []
        remove = state.subscribe(lambda prev, cur: seen.append((prev, cur)))
        session = Session(user_id=uuid4(), email="a@b.c")

        state.set(session)
        state.set(session)
        state.set(None)
        remove()
        state.set(session)

        assert seen == [(None, session), (session, None)]
        assert state.is_authenticated

    def test_starts_signed_out(self):
        state = SessionState()
        assert state.current is None
        assert not state.is_authenticated
