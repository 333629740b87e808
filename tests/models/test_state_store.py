"""
Tests for the state store.
"""

import pytest

from constellation.models.state import (
    State, StateNotFoundError, DuplicateStateIdError, DanglingParentError,
    InvalidLabelError, CannotDeleteRootError, AlreadyInitializedError,
    TimelineNotInitializedError, InvariantViolationError
)
from constellation.models.state_store import StateStore, DEFAULT_ROOT_LABEL


@pytest.fixture
def store():
    """A store with root R and chain R -> A -> B."""
    store = StateStore()
    store.create_root({"nodes": []}, label="Root", state_id="R")
    store.insert(State(id="A", label="A", payload={}, parent_state_id="R"))
    store.insert(State(id="B", label="B", payload={}, parent_state_id="A"))
    return store


class TestStateStoreRoot:
    """Tests for root creation."""

    def test_create_root(self):
        """Test creating the root state."""
        store = StateStore()

        root = store.create_root({"nodes": []})

        assert store.root_state_id == root.id
        assert root.parent_state_id is None
        assert root.label == DEFAULT_ROOT_LABEL
        assert root.id.startswith("state_")
        assert store.is_initialized is True

    def test_create_root_twice(self, store):
        """Test a second root is rejected."""
        with pytest.raises(AlreadyInitializedError):
            store.create_root({})

        assert store.root_state_id == "R"
        assert len(store) == 3

    def test_insert_before_root(self):
        """Test inserting into an uninitialized store."""
        store = StateStore()

        with pytest.raises(TimelineNotInitializedError):
            store.insert(State(id="A", label="A", payload={}, parent_state_id="R"))


class TestStateStoreInsertAndGet:
    """Tests for insert and lookup."""

    def test_get_missing_returns_none(self, store):
        """Test looking up an unknown id."""
        assert store.get("missing") is None
        assert store.get(None) is None

    def test_require_missing_raises(self, store):
        """Test requiring an unknown id."""
        with pytest.raises(StateNotFoundError):
            store.require("missing")

    def test_insert_duplicate_id(self, store):
        """Test inserting an id that already exists."""
        with pytest.raises(DuplicateStateIdError):
            store.insert(State(id="A", label="Other", payload={}, parent_state_id="R"))

        assert store.get("A").label == "A"

    def test_insert_dangling_parent(self, store):
        """Test inserting a state whose parent is unknown."""
        with pytest.raises(DanglingParentError):
            store.insert(State(id="C", label="C", payload={}, parent_state_id="ghost"))

        assert "C" not in store

    def test_insert_second_parentless_state(self, store):
        """Test a parentless insert would create a second root."""
        with pytest.raises(AlreadyInitializedError):
            store.insert(State(id="C", label="C", payload={}))

        store.check_invariants()

    def test_states_view_is_read_only(self, store):
        """Test the exposed mapping cannot be mutated."""
        with pytest.raises(TypeError):
            store.states["X"] = State(id="X", label="X", payload=None)


class TestStateStoreRename:
    """Tests for renaming states."""

    def test_rename(self, store):
        """Test renaming trims the new label."""
        state = store.rename("A", "  Scenario A  ")

        assert state.label == "Scenario A"
        assert state.parent_state_id == "R"

    def test_rename_blank_label(self, store):
        """Test a blank label is rejected without changes."""
        with pytest.raises(InvalidLabelError):
            store.rename("A", "   ")

        assert store.get("A").label == "A"

    def test_rename_too_long(self):
        """Test labels over the configured limit are rejected."""
        store = StateStore(label_max_length=5)
        store.create_root({}, label="Root", state_id="R")

        with pytest.raises(InvalidLabelError, match="cannot exceed 5 characters"):
            store.rename("R", "toolong")

    def test_rename_missing(self, store):
        """Test renaming an unknown state."""
        with pytest.raises(StateNotFoundError):
            store.rename("missing", "Label")


class TestStateStoreDelete:
    """Tests for deleting states."""

    def test_delete_reparents_children(self, store):
        """Test deleting A in R -> A -> B moves B under R."""
        reparented = store.delete("A", reparent_children=True)

        assert reparented == ["B"]
        assert "A" not in store
        assert store.get("B").parent_state_id == "R"
        assert store.children_of("R") == ["B"]
        store.check_invariants()

    def test_delete_leaf(self, store):
        """Test deleting a leaf reparents nothing."""
        assert store.delete("B") == []
        assert store.children_of("A") == []

    def test_delete_root(self, store):
        """Test the root cannot be deleted."""
        with pytest.raises(CannotDeleteRootError):
            store.delete("R")

        assert len(store) == 3

    def test_delete_missing(self, store):
        """Test deleting an unknown state."""
        with pytest.raises(StateNotFoundError):
            store.delete("missing")

    def test_delete_without_reparenting_leaves_store_untouched(self, store):
        """Test refusing to orphan children changes nothing."""
        with pytest.raises(InvariantViolationError):
            store.delete("A", reparent_children=False)

        assert "A" in store
        assert store.get("B").parent_state_id == "A"


class TestStateStoreQueries:
    """Tests for derived tree queries."""

    def test_children_in_insertion_order(self, store):
        """Test children keep insertion order."""
        store.insert(State(id="C", label="C", payload={}, parent_state_id="R"))
        store.insert(State(id="D", label="D", payload={}, parent_state_id="R"))

        assert store.children_of("R") == ["A", "C", "D"]
        assert store.children_of("missing") == []

    def test_children_index_refreshed_after_mutation(self, store):
        """Test the cached children index follows inserts."""
        assert store.children_of("B") == []

        store.insert(State(id="C", label="C", payload={}, parent_state_id="B"))

        assert store.children_of("B") == ["C"]

    def test_ancestors(self, store):
        """Test walking up to the root."""
        assert store.ancestors_of("B") == ["A", "R"]
        assert store.ancestors_of("R") == []

    def test_check_invariants_detects_cycle(self, store):
        """Test a cycle in the parent links is reported."""
        store.get("A").parent_state_id = "B"

        with pytest.raises(InvariantViolationError):
            store.check_invariants()


class TestStateStoreFromStates:
    """Tests for building a store from existing states."""

    def test_from_states(self):
        """Test loading a valid tree."""
        store = StateStore.from_states([
            State(id="B", label="B", payload={}, parent_state_id="R"),
            State(id="R", label="R", payload={}),
        ], "R")

        assert store.root_state_id == "R"
        assert store.children_of("R") == ["B"]

    def test_from_states_missing_root(self):
        """Test the root id must be among the states."""
        with pytest.raises(InvariantViolationError):
            StateStore.from_states([State(id="R", label="R", payload={})], "X")

    def test_from_states_two_roots(self):
        """Test two parentless states are rejected."""
        with pytest.raises(InvariantViolationError, match="exactly one root"):
            StateStore.from_states([
                State(id="R", label="R", payload={}),
                State(id="S", label="S", payload={}),
            ], "R")

    def test_from_states_dangling_parent(self):
        """Test a parent outside the tree is rejected."""
        with pytest.raises(InvariantViolationError):
            StateStore.from_states([
                State(id="R", label="R", payload={}),
                State(id="A", label="A", payload={}, parent_state_id="ghost"),
            ], "R")

    def test_from_states_duplicate_ids(self):
        """Test duplicate ids are rejected."""
        with pytest.raises(DuplicateStateIdError):
            StateStore.from_states([
                State(id="R", label="R", payload={}),
                State(id="R", label="R again", payload={}),
            ], "R")
