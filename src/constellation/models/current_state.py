"""
Current State Pointer for Constellation

Tracks which state of a document is active for viewing and editing.
"""

import logging
from typing import Optional

from constellation.models.state import (
    State, StateNotFoundError, TimelineNotInitializedError, InvariantViolationError
)
from constellation.models.state_store import StateStore
from constellation.services.events import EventManager, Events


class CurrentStatePointer:
    """
    Pointer to the active state of one timeline.

    The pointer only ever references ids present in its store. Whenever it
    moves, a ``STATE_SWITCHED`` event tells the graph canvas to load the
    payload of the new state.
    """

    def __init__(self, store: StateStore, event_manager: Optional[EventManager] = None,
                 document_id: Optional[str] = None):
        self.logger = logging.getLogger("Constellation")
        self.store = store
        self.event_manager = event_manager
        self.document_id = document_id
        self._current_state_id: Optional[str] = None

    @property
    def current_state_id(self) -> Optional[str]:
        return self._current_state_id

    def current_state(self) -> State:
        """
        Return the active state.

        Raises:
            TimelineNotInitializedError: If the pointer was never set
            InvariantViolationError: If the pointer references a missing state
        """
        if self._current_state_id is None:
            raise TimelineNotInitializedError("Timeline has no current state")

        state = self.store.get(self._current_state_id)
        if state is None:
            raise InvariantViolationError(f"Current state '{self._current_state_id}' does not exist")
        return state

    def reset(self, state_id: str) -> None:
        """
        Point at a state without notifying anyone.

        Used when a timeline is created or loaded and the canvas is populated
        by the caller.

        Raises:
            StateNotFoundError: If the id is not in the store
        """
        self.store.require(state_id)
        self._current_state_id = state_id

    def switch_to(self, state_id: str) -> State:
        """
        Make a state the active one.

        Args:
            state_id: Id of the state to activate

        Returns:
            State: The newly active state

        Raises:
            StateNotFoundError: If the id is not in the store
        """
        state = self.store.get(state_id)
        if state is None:
            raise StateNotFoundError(state_id)

        previous_state_id = self._current_state_id
        self._current_state_id = state_id

        if previous_state_id != state_id:
            self.announce_switch(previous_state_id)

        return state

    def announce_switch(self, previous_state_id: Optional[str]) -> None:
        """
        Publish STATE_SWITCHED for the state currently pointed at.

        Callers that moved the pointer with ``reset`` as part of a larger
        change call this once the store is consistent again.
        """
        state = self.current_state()
        self.logger.debug(f"Current state moved from {previous_state_id} to {state.id}")
        if self.event_manager:
            self.event_manager.emit(
                Events.STATE_SWITCHED,
                document_id=self.document_id,
                state_id=state.id,
                previous_state_id=previous_state_id,
                payload=state.payload,
            )
