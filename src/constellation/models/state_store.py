"""
State Store for Constellation

This module provides the StateStore class, which owns the states of a single
document and keeps the version tree consistent.
"""

import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

from constellation.models.state import (
    State, TimelineError, StateNotFoundError, DuplicateStateIdError,
    DanglingParentError, InvalidLabelError, CannotDeleteRootError,
    AlreadyInitializedError, TimelineNotInitializedError, InvariantViolationError
)
from constellation.utils.helpers import generate_state_id

DEFAULT_ROOT_LABEL = "Initial State"
DEFAULT_LABEL_MAX_LENGTH = 100


class StateStore:
    """
    Mapping of state ids to states for one document.

    The tree is stored only as parent back-references. Children are derived
    by grouping states on ``parent_state_id``; that index is cached and
    dropped on every structural mutation.

    This store enforces:
    - a single root that is never deleted
    - parents that always exist in the store
    - unique ids
    """

    def __init__(self, label_max_length: int = DEFAULT_LABEL_MAX_LENGTH):
        """
        Initialize an empty store.

        Args:
            label_max_length: Maximum accepted label length after trimming
        """
        self.logger = logging.getLogger("Constellation")
        self.label_max_length = label_max_length

        self._states: Dict[str, State] = {}
        self._root_state_id: Optional[str] = None
        self._children_index: Optional[Dict[str, List[str]]] = None

    @property
    def root_state_id(self) -> Optional[str]:
        return self._root_state_id

    @property
    def states(self) -> Mapping[str, State]:
        """Read-only view of the states, keyed by id."""
        return MappingProxyType(self._states)

    @property
    def is_initialized(self) -> bool:
        return self._root_state_id is not None

    def __contains__(self, state_id: object) -> bool:
        return state_id in self._states

    def __len__(self) -> int:
        return len(self._states)

    def create_root(self, payload: Any, label: str = DEFAULT_ROOT_LABEL,
                    state_id: Optional[str] = None) -> State:
        """
        Create the root state of the tree.

        Args:
            payload: Snapshot of the document content held by the root
            label: Label of the root state
            state_id: Id to use instead of a generated one

        Returns:
            State: The new root state

        Raises:
            AlreadyInitializedError: If the store already has a root
        """
        if self._root_state_id is not None:
            raise AlreadyInitializedError(f"Timeline already has root state '{self._root_state_id}'")

        label = self.validate_label(label)
        root = State(id=state_id or generate_state_id(), label=label, payload=payload)
        self._states[root.id] = root
        self._root_state_id = root.id
        self._invalidate()

        self.logger.debug(f"Created root state {root.id}")
        return root

    def get(self, state_id: Optional[str]) -> Optional[State]:
        """Return the state with the given id, or None if absent."""
        if state_id is None:
            return None
        return self._states.get(state_id)

    def require(self, state_id: str) -> State:
        """
        Return the state with the given id.

        Raises:
            StateNotFoundError: If the id is not in the store
        """
        state = self._states.get(state_id)
        if state is None:
            raise StateNotFoundError(state_id)
        return state

    def insert(self, state: State) -> State:
        """
        Add a non-root state to the tree.

        Args:
            state: The state to add; its parent must already be in the store

        Returns:
            State: The inserted state

        Raises:
            TimelineNotInitializedError: If the store has no root yet
            DuplicateStateIdError: If the id is already present
            AlreadyInitializedError: If the state has no parent
            DanglingParentError: If the parent is not in the store
        """
        if self._root_state_id is None:
            raise TimelineNotInitializedError("Cannot insert a state before the root is created")

        if state.id in self._states:
            raise DuplicateStateIdError(state.id)

        if state.parent_state_id is None:
            raise AlreadyInitializedError(
                f"State '{state.id}' has no parent but the timeline already has a root"
            )

        if state.parent_state_id not in self._states:
            raise DanglingParentError(state.id, state.parent_state_id)

        self._states[state.id] = state
        self._invalidate()

        self.logger.debug(f"Inserted state {state.id} under {state.parent_state_id}")
        return state

    def validate_label(self, label: Optional[str]) -> str:
        """
        Validate a state label.

        Args:
            label: The label to check

        Returns:
            str: The trimmed label

        Raises:
            InvalidLabelError: If the label is empty after trimming or too long
        """
        trimmed = (label or "").strip()
        if not trimmed:
            raise InvalidLabelError("State label cannot be empty")

        if len(trimmed) > self.label_max_length:
            raise InvalidLabelError(f"State label cannot exceed {self.label_max_length} characters")

        return trimmed

    def rename(self, state_id: str, new_label: str) -> State:
        """
        Change the label of a state in place.

        Raises:
            StateNotFoundError: If the id is not in the store
            InvalidLabelError: If the new label is not acceptable
        """
        state = self.require(state_id)
        label = self.validate_label(new_label)

        state.label = label
        state.touch()
        return state

    def set_payload(self, state_id: str, payload: Any) -> State:
        """
        Replace the payload of a state.

        Raises:
            StateNotFoundError: If the id is not in the store
        """
        state = self.require(state_id)
        state.payload = payload
        state.touch()
        return state

    def delete(self, state_id: str, reparent_children: bool = True) -> List[str]:
        """
        Remove a state from the tree.

        Children of the removed state are moved onto its parent. All checks
        run before anything is changed, so a failure leaves the store untouched.

        Args:
            state_id: Id of the state to remove
            reparent_children: Must be True when the state has children

        Returns:
            List[str]: Ids of the children that were reparented

        Raises:
            StateNotFoundError: If the id is not in the store
            CannotDeleteRootError: If the id is the root
            InvariantViolationError: If the state has children and
                reparenting is disabled, or its parent is missing
        """
        state = self.require(state_id)

        if state_id == self._root_state_id:
            raise CannotDeleteRootError(state_id)

        new_parent = state.parent_state_id
        if new_parent is None or new_parent not in self._states:
            raise InvariantViolationError(f"Non-root state '{state_id}' has no valid parent")

        children = self.children_of(state_id)
        if children and not reparent_children:
            raise InvariantViolationError(
                f"Deleting state '{state_id}' would orphan {len(children)} child state(s)"
            )

        for child_id in children:
            self._states[child_id].parent_state_id = new_parent
        del self._states[state_id]
        self._invalidate()

        self.logger.debug(f"Deleted state {state_id}, reparented {len(children)} child(ren) onto {new_parent}")
        return children

    def children_of(self, state_id: str) -> List[str]:
        """Ids of the direct children of a state, in insertion order."""
        return list(self._get_children_index().get(state_id, []))

    def ancestors_of(self, state_id: str) -> List[str]:
        """
        Ids on the path from a state's parent up to the root.

        Raises:
            StateNotFoundError: If the id is not in the store
            InvariantViolationError: If the parent chain loops or dangles
        """
        state = self.require(state_id)
        ancestors: List[str] = []
        seen = {state_id}

        parent_id = state.parent_state_id
        while parent_id is not None:
            if parent_id in seen:
                raise InvariantViolationError(f"Cycle in parent links at state '{parent_id}'")
            parent = self._states.get(parent_id)
            if parent is None:
                raise InvariantViolationError(f"State '{parent_id}' referenced as parent does not exist")
            seen.add(parent_id)
            ancestors.append(parent_id)
            parent_id = parent.parent_state_id

        return ancestors

    def all_states(self) -> List[State]:
        return list(self._states.values())

    def check_invariants(self) -> None:
        """
        Verify the whole tree.

        Raises:
            InvariantViolationError: If any structural rule does not hold
        """
        if not self._states:
            if self._root_state_id is not None:
                raise InvariantViolationError(f"Root state '{self._root_state_id}' is missing")
            return

        roots = [state.id for state in self._states.values() if state.parent_state_id is None]
        if len(roots) != 1:
            raise InvariantViolationError(f"Expected exactly one root state, found {len(roots)}")

        if roots[0] != self._root_state_id:
            raise InvariantViolationError(
                f"Root state is '{roots[0]}' but timeline root is '{self._root_state_id}'"
            )

        for key, state in self._states.items():
            if key != state.id:
                raise InvariantViolationError(f"State '{state.id}' is stored under key '{key}'")
            if not state.label or not state.label.strip():
                raise InvariantViolationError(f"State '{state.id}' has an empty label")
            if state.parent_state_id is not None:
                self.ancestors_of(state.id)

    @classmethod
    def from_states(cls, states: Iterable[State], root_state_id: str,
                    label_max_length: int = DEFAULT_LABEL_MAX_LENGTH) -> "StateStore":
        """
        Build a store from already existing states, e.g. when loading a file.

        Raises:
            DuplicateStateIdError: If two states share an id
            InvariantViolationError: If the states do not form a valid tree
        """
        store = cls(label_max_length=label_max_length)
        for state in states:
            if state.id in store._states:
                raise DuplicateStateIdError(state.id)
            store._states[state.id] = state

        if root_state_id not in store._states:
            raise InvariantViolationError(f"Root state '{root_state_id}' is not among the states")

        store._root_state_id = root_state_id
        try:
            store.check_invariants()
        except TimelineError as e:
            store.logger.error(f"Refusing to load malformed timeline: {e}")
            raise

        return store

    def _get_children_index(self) -> Dict[str, List[str]]:
        if self._children_index is None:
            index: Dict[str, List[str]] = {}
            for state in self._states.values():
                if state.parent_state_id is not None:
                    index.setdefault(state.parent_state_id, []).append(state.id)
            self._children_index = index
        return self._children_index

    def _invalidate(self) -> None:
        self._children_index = None
