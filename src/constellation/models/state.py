"""
State Data Models for Constellation

This module contains the state record, its descriptive metadata and all exceptions
related to the version tree of a document.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from constellation.utils.helpers import now_iso


class TimelineError(Exception):
    """Base exception raised for timeline-related errors."""
    pass


class StateNotFoundError(TimelineError):
    """Exception raised when an id references a missing state."""

    def __init__(self, state_id: str):
        super().__init__(f"State '{state_id}' not found")
        self.state_id = state_id


class DuplicateStateIdError(TimelineError):
    """Exception raised when inserting a state whose id is already present."""

    def __init__(self, state_id: str):
        super().__init__(f"State '{state_id}' already exists")
        self.state_id = state_id


class DanglingParentError(TimelineError):
    """Exception raised when a state points at a parent that is not in the store."""

    def __init__(self, state_id: str, parent_state_id: str):
        super().__init__(f"Parent '{parent_state_id}' of state '{state_id}' does not exist")
        self.state_id = state_id
        self.parent_state_id = parent_state_id


class InvalidLabelError(TimelineError):
    """Exception raised for labels that are empty or too long."""
    pass


class CannotDeleteRootError(TimelineError):
    """Exception raised when trying to delete the root state."""

    def __init__(self, state_id: str):
        super().__init__(f"Cannot delete root state '{state_id}'")
        self.state_id = state_id


class CannotDuplicateRootError(TimelineError):
    """Exception raised when duplicating the root as a sibling, which would add a second root."""

    def __init__(self, state_id: str):
        super().__init__(f"Cannot duplicate root state '{state_id}' as a sibling")
        self.state_id = state_id


class AlreadyInitializedError(TimelineError):
    """Exception raised when a root is created for a timeline that already has one."""
    pass


class TimelineNotInitializedError(TimelineError):
    """Exception raised for operations on a timeline that has no root yet."""
    pass


class InvariantViolationError(TimelineError):
    """
    Exception raised when the tree structure is broken.

    This never happens in normal operation; it indicates a bug or corrupted
    persisted data and must not be recovered from silently.
    """
    pass


class TimelinePersistenceError(TimelineError):
    """Exception raised when persisted timeline data cannot be read."""
    pass


@dataclass
class StateMetadata:
    """Purely descriptive state attributes. Never affect the tree structure."""
    date: Optional[str] = None
    color: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    notes: Optional[str] = None

    def merged(self, updates: Dict[str, Any]) -> "StateMetadata":
        """Return a copy with the given keys replaced, keeping the others."""
        values = self.to_dict()
        values.update({key: value for key, value in updates.items() if key in values})
        return StateMetadata(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "color": self.color,
            "tags": list(self.tags),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StateMetadata":
        return cls(
            date=data.get("date"),
            color=data.get("color"),
            tags=list(data.get("tags") or []),
            notes=data.get("notes"),
        )


@dataclass
class State:
    """Represents a single node in the version tree of a document."""
    id: str
    label: str
    payload: Any
    parent_state_id: Optional[str] = None
    description: Optional[str] = None
    metadata: Optional[StateMetadata] = None
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    @property
    def is_root(self) -> bool:
        """Whether this state has no parent."""
        return self.parent_state_id is None

    def touch(self) -> None:
        """Bump the modification timestamp."""
        self.updated_at = now_iso()

    def __str__(self) -> str:
        parent = self.parent_state_id or "root"
        return f"State '{self.label}' ({self.id}, parent: {parent})"
