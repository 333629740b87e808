"""
Timeline Controller for Constellation

This module provides the controller that turns user actions on the timeline
diagram (switch, rename, duplicate, delete) into transactions against the state
store and the current state pointer of one document.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from constellation.models.state import (
    State, StateMetadata, TimelineError, InvariantViolationError, CannotDeleteRootError,
    CannotDuplicateRootError
)
from constellation.models.timeline import Timeline
from constellation.models.tree_layout import TreeLayout, layout, HORIZONTAL_SPACING, VERTICAL_SPACING
from constellation.services.events import EventManager, Events
from constellation.services.settings import SettingsManager
from constellation.utils.helpers import generate_state_id
from constellation.utils.payload import (
    PayloadCopier, PayloadFactory, deep_copy_payload, empty_graph_payload
)

DEFAULT_COPY_SUFFIX = " (Copy)"


class TimelineController:
    """
    Controller for the timeline of one document.

    This controller:
    - Runs every user operation as a single step under a per-timeline lock
    - Moves the current state pointer when the active state is deleted
    - Copies payloads with an injected strategy when branching
    - Publishes state and layout changes on the event bus
    - Reports recoverable errors as status messages before re-raising them
    """

    def __init__(self, timeline: Timeline, event_manager: EventManager,
                 settings: Optional[SettingsManager] = None,
                 copy_payload: PayloadCopier = deep_copy_payload,
                 empty_payload: PayloadFactory = empty_graph_payload,
                 capture_payload: Optional[Callable[[], Any]] = None,
                 strict: bool = False):
        """
        Initialize the timeline controller.

        Args:
            timeline: The timeline to operate on; must already have a root
            event_manager: Event manager for component communication
            settings: Settings to read labels and spacing from
            copy_payload: Strategy producing an independent copy of a payload
            empty_payload: Factory for the payload of states not cloned from
                the current one
            capture_payload: Returns the content currently shown by the graph
                canvas; it is stored into the outgoing state on switch
            strict: Re-check every tree invariant after each mutation
        """
        self.logger = logging.getLogger("Constellation")
        self.timeline = timeline
        self.event_manager = event_manager
        self.settings = settings
        self.copy_payload = copy_payload
        self.empty_payload = empty_payload
        self.capture_payload = capture_payload
        self.strict = strict

        self._lock = threading.RLock()

        self.timeline.require_active()
        self.logger.debug(f"Timeline controller initialized for {timeline}")

    @property
    def store(self):
        return self.timeline.store

    @property
    def pointer(self):
        return self.timeline.pointer

    def _read_setting(self, name: str, default: Any) -> Any:
        if self.settings is None:
            return default
        return self.settings.read(name, default)

    # Queries

    def get_state(self, state_id: str) -> Optional[State]:
        with self._lock:
            return self.store.get(state_id)

    def get_child_states(self, state_id: str) -> List[State]:
        with self._lock:
            return [self.store.states[child_id] for child_id in self.store.children_of(state_id)]

    def get_all_states(self) -> List[State]:
        with self._lock:
            return self.store.all_states()

    def get_current_state(self) -> State:
        with self._lock:
            return self.pointer.current_state()

    def compute_layout(self) -> TreeLayout:
        """Layout of the whole tree for the timeline diagram."""
        with self._lock:
            return layout(
                self.store.states,
                self.timeline.root_state_id,
                self.timeline.current_state_id,
                horizontal_spacing=self._read_setting("horizontal_spacing", HORIZONTAL_SPACING),
                vertical_spacing=self._read_setting("vertical_spacing", VERTICAL_SPACING),
            )

    # Operations

    def switch_to_state(self, state_id: str) -> State:
        """
        Make a state the active one.

        The canvas content is first stored into the outgoing state when a
        capture callable was given.

        Raises:
            StateNotFoundError: If the state does not exist
        """
        with self._lock:
            try:
                target = self.store.require(state_id)
                previous_id = self.timeline.current_state_id

                if previous_id == state_id:
                    return target

                if self.capture_payload is not None:
                    self.store.set_payload(previous_id, self.copy_payload(self.capture_payload()))

                self.pointer.switch_to(state_id)
            except TimelineError as e:
                self._report_error("switch state", e)
                raise

            self.logger.info(f"Switched to state \"{target.label}\"")
            self._after_mutation()
            return target

    def rename_state(self, state_id: str, new_label: str) -> State:
        """
        Change the label of a state.

        Raises:
            StateNotFoundError: If the state does not exist
            InvalidLabelError: If the label is empty after trimming
        """
        with self._lock:
            try:
                old_label = self.store.require(state_id).label
                state = self.store.rename(state_id, new_label)
            except TimelineError as e:
                self._report_error("rename state", e)
                raise

            self.logger.info(f"Renamed state \"{old_label}\" to \"{state.label}\"")
            self.event_manager.emit(Events.STATE_RENAMED, state=state, old_label=old_label)
            self._after_mutation()
            return state

    def update_state(self, state_id: str, label: Optional[str] = None,
                     description: Optional[str] = None,
                     metadata: Optional[Dict[str, Any]] = None) -> State:
        """
        Update the descriptive fields of a state.

        Metadata keys are merged into the existing metadata. Nothing changes
        if any of the updates is rejected.

        Raises:
            StateNotFoundError: If the state does not exist
            InvalidLabelError: If a given label is not acceptable
        """
        with self._lock:
            try:
                state = self.store.require(state_id)
                new_label = self.store.validate_label(label) if label is not None else None
            except TimelineError as e:
                self._report_error("update state", e)
                raise

            if new_label is not None:
                state.label = new_label
            if description is not None:
                state.description = description
            if metadata is not None:
                state.metadata = (state.metadata or StateMetadata()).merged(metadata)
            state.touch()

            self.event_manager.emit(Events.STATE_UPDATED, state=state)
            self._after_mutation()
            return state

    def duplicate_state(self, state_id: str, new_label: Optional[str] = None) -> State:
        """
        Create a sibling copy of a state, sharing its parent.

        The current state does not change.

        Raises:
            StateNotFoundError: If the state does not exist
            CannotDuplicateRootError: If the state is the root
            InvalidLabelError: If a given label is not acceptable
        """
        with self._lock:
            try:
                original = self.store.require(state_id)
                if original.parent_state_id is None:
                    raise CannotDuplicateRootError(state_id)
                state = self._insert_copy(original, original.parent_state_id, new_label)
            except TimelineError as e:
                self._report_error("duplicate state", e)
                raise

            self._announce_created(state)
            return state

    def duplicate_state_as_child(self, state_id: str, new_label: Optional[str] = None) -> State:
        """
        Create a copy of a state as its child.

        The current state does not change.

        Raises:
            StateNotFoundError: If the state does not exist
            InvalidLabelError: If a given label is not acceptable
        """
        with self._lock:
            try:
                original = self.store.require(state_id)
                state = self._insert_copy(original, original.id, new_label)
            except TimelineError as e:
                self._report_error("duplicate state as child", e)
                raise

            self._announce_created(state)
            return state

    def create_state(self, label: str, description: Optional[str] = None,
                     clone_from_current: bool = True) -> State:
        """
        Branch a new state off the current one and switch to it.

        Args:
            label: Label of the new state
            description: Optional description
            clone_from_current: Start from the current content instead of an
                empty payload

        Raises:
            InvalidLabelError: If the label is not acceptable
        """
        with self._lock:
            try:
                label = self.store.validate_label(label)
                current = self.pointer.current_state()

                if not clone_from_current:
                    payload = self.empty_payload()
                elif self.capture_payload is not None:
                    payload = self.copy_payload(self.capture_payload())
                    self.store.set_payload(current.id, self.copy_payload(payload))
                else:
                    payload = self.copy_payload(current.payload)

                state = self.store.insert(State(
                    id=generate_state_id(),
                    label=label,
                    payload=payload,
                    parent_state_id=current.id,
                    description=description,
                ))
                self.pointer.switch_to(state.id)
            except TimelineError as e:
                self._report_error("create state", e)
                raise

            self._announce_created(state)
            return state

    def delete_state(self, state_id: str) -> State:
        """
        Delete a state, moving its children onto its parent.

        When the state is the current one, the pointer moves to its parent.
        STATE_SWITCHED is published only after the record is gone, so
        subscribers never see the half-deleted tree.

        Returns:
            State: The removed state

        Raises:
            StateNotFoundError: If the state does not exist
            CannotDeleteRootError: If the state is the root
            InvariantViolationError: If the state has no valid parent
        """
        with self._lock:
            try:
                state = self.store.require(state_id)
                if state_id == self.timeline.root_state_id:
                    raise CannotDeleteRootError(state_id)

                parent_id = state.parent_state_id
                if parent_id is None or parent_id not in self.store:
                    raise InvariantViolationError(f"Non-root state '{state_id}' has no valid parent")

                was_current = state_id == self.timeline.current_state_id
                reparented = self.store.delete(state_id, reparent_children=True)
                if was_current:
                    self.pointer.reset(parent_id)
            except TimelineError as e:
                self._report_error("delete state", e)
                raise

            if was_current:
                self.pointer.announce_switch(state_id)
            self.logger.info(f"State \"{state.label}\" deleted")
            self.event_manager.emit(Events.STATE_DELETED, state=state, reparented=reparented)
            self._after_mutation()
            return state

    def save_current_payload(self, payload: Any) -> State:
        """Store a copy of the canvas content into the current state."""
        with self._lock:
            current = self.pointer.current_state()
            return self.store.set_payload(current.id, self.copy_payload(payload))

    def close_all_menus(self) -> None:
        """Ask every open timeline menu to close."""
        self.event_manager.emit(Events.CLOSE_ALL_MENUS)

    # Internals

    def _insert_copy(self, original: State, parent_state_id: str, new_label: Optional[str]) -> State:
        if new_label is not None:
            label = self.store.validate_label(new_label)
        else:
            suffix = self._read_setting("copy_label_suffix", DEFAULT_COPY_SUFFIX)
            label = f"{original.label}{suffix}"

        return self.store.insert(State(
            id=generate_state_id(),
            label=label,
            payload=self.copy_payload(original.payload),
            parent_state_id=parent_state_id,
            description=original.description,
            metadata=StateMetadata.from_dict(original.metadata.to_dict()) if original.metadata else None,
        ))

    def _announce_created(self, state: State) -> None:
        self.logger.info(f"State \"{state.label}\" created")
        self.event_manager.emit(Events.STATE_CREATED, state=state)
        self._after_mutation()

    def _after_mutation(self) -> None:
        if self.strict:
            try:
                self.timeline.validate()
            except InvariantViolationError as e:
                self._report_error("verify timeline", e)
                raise
        self.event_manager.emit(Events.LAYOUT_CHANGED, document_id=self.timeline.document_id)

    def _report_error(self, action: str, error: TimelineError) -> None:
        if isinstance(error, InvariantViolationError):
            self.logger.error(f"Timeline is inconsistent, aborting {action}: {error}")
            self.event_manager.emit(Events.ERROR_OCCURRED, message=str(error), action=action)
        else:
            self.logger.warning(f"Could not {action}: {error}")
            self.event_manager.emit(Events.STATUS_MESSAGE, message=str(error), message_type="error")
