"""
Timeline Data Model for Constellation

This module contains the Timeline aggregate: the version tree of one document
together with its current state pointer.
"""

import logging
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional

from constellation.models.state import (
    State, TimelineNotInitializedError, InvariantViolationError
)
from constellation.models.state_store import (
    StateStore, DEFAULT_ROOT_LABEL, DEFAULT_LABEL_MAX_LENGTH
)
from constellation.models.current_state import CurrentStatePointer
from constellation.services.events import EventManager

logger = logging.getLogger("Constellation")


class TimelineStatus(Enum):
    """Timeline lifecycle. A timeline never leaves ACTIVE once it has a root."""
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"


class Timeline:
    """
    The full version tree of one document plus its root and current pointers.
    """

    def __init__(self, document_id: Optional[str] = None,
                 event_manager: Optional[EventManager] = None,
                 label_max_length: int = DEFAULT_LABEL_MAX_LENGTH,
                 store: Optional[StateStore] = None):
        self.document_id = document_id
        self.store = store if store is not None else StateStore(label_max_length=label_max_length)
        self.pointer = CurrentStatePointer(self.store, event_manager, document_id)

    @property
    def status(self) -> TimelineStatus:
        if self.store.is_initialized:
            return TimelineStatus.ACTIVE
        return TimelineStatus.UNINITIALIZED

    @property
    def states(self) -> Mapping[str, State]:
        return self.store.states

    @property
    def root_state_id(self) -> Optional[str]:
        return self.store.root_state_id

    @property
    def current_state_id(self) -> Optional[str]:
        return self.pointer.current_state_id

    def create_root(self, payload: Any, label: str = DEFAULT_ROOT_LABEL) -> State:
        """
        Create the root state and point at it.

        Raises:
            AlreadyInitializedError: If the timeline already has a root
        """
        root = self.store.create_root(payload, label=label)
        self.pointer.reset(root.id)
        return root

    def require_active(self) -> None:
        """
        Raises:
            TimelineNotInitializedError: If the timeline has no root yet
        """
        if self.status is not TimelineStatus.ACTIVE:
            raise TimelineNotInitializedError("Timeline has not been initialized")

    def validate(self) -> None:
        """
        Check every structural invariant of the timeline.

        Raises:
            InvariantViolationError: If the tree or the current pointer is broken
        """
        self.store.check_invariants()

        if self.store.is_initialized and self.current_state_id not in self.store:
            raise InvariantViolationError(
                f"Current state '{self.current_state_id}' is not part of the timeline"
            )

    def __str__(self) -> str:
        return f"Timeline '{self.document_id}' ({len(self.store)} states, status: {self.status.value})"

    @classmethod
    def from_states(cls, states: Iterable[State], root_state_id: str, current_state_id: str,
                    document_id: Optional[str] = None,
                    event_manager: Optional[EventManager] = None,
                    label_max_length: int = DEFAULT_LABEL_MAX_LENGTH) -> "Timeline":
        """
        Rebuild a timeline from existing states, e.g. after deserialization.

        Args:
            states: All states of the timeline
            root_state_id: Id of the root state
            current_state_id: Id of the active state
            document_id: Owning document
            event_manager: Event bus for pointer changes

        Returns:
            Timeline: A validated timeline

        Raises:
            InvariantViolationError: If the states do not form a valid timeline
            DuplicateStateIdError: If two states share an id
        """
        state_list: List[State] = list(states)
        logger.debug(f"Rebuilding timeline {document_id} from {len(state_list)} states")

        store = StateStore.from_states(state_list, root_state_id, label_max_length=label_max_length)
        timeline = cls(document_id=document_id, event_manager=event_manager, store=store)

        if current_state_id not in store:
            logger.error(f"Current state '{current_state_id}' of timeline {document_id} does not exist")
            raise InvariantViolationError(f"Current state '{current_state_id}' is not part of the timeline")

        timeline.pointer.reset(current_state_id)
        return timeline
