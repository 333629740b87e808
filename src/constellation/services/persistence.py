"""
Timeline Persistence for Constellation

Converts timelines to and from the plain dictionary layout stored inside a
document file::

    {
        "states": {"<id>": {"id": ..., "label": ..., "parentStateId": ..., "graph": ...}},
        "currentStateId": "<id>",
        "rootStateId": "<id>"
    }

Loading validates the complete tree and fails closed: a malformed timeline is
never handed to the rest of the application.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from constellation.models.state import (
    State, StateMetadata, InvariantViolationError, TimelinePersistenceError
)
from constellation.models.timeline import Timeline
from constellation.services.events import EventManager

logger = logging.getLogger("Constellation")


def state_to_dict(state: State) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": state.id,
        "label": state.label,
        "graph": state.payload,
        "createdAt": state.created_at,
        "updatedAt": state.updated_at,
    }
    if state.parent_state_id is not None:
        data["parentStateId"] = state.parent_state_id
    if state.description is not None:
        data["description"] = state.description
    if state.metadata is not None:
        data["metadata"] = state.metadata.to_dict()
    return data


def state_from_dict(data: Dict[str, Any]) -> State:
    """
    Build a state from its stored form.

    Raises:
        TimelinePersistenceError: If required fields are missing or malformed
    """
    if not isinstance(data, dict):
        raise TimelinePersistenceError(f"State entry must be an object, got {type(data).__name__}")

    try:
        state_id = data["id"]
        label = data["label"]
    except KeyError as e:
        raise TimelinePersistenceError(f"State entry is missing field {e}") from e

    if not isinstance(state_id, str) or not state_id:
        raise TimelinePersistenceError("State id must be a non-empty string")
    if not isinstance(label, str):
        raise TimelinePersistenceError(f"Label of state '{state_id}' must be a string")

    metadata = data.get("metadata")
    state = State(
        id=state_id,
        label=label,
        payload=data.get("graph"),
        parent_state_id=data.get("parentStateId") or None,
        description=data.get("description"),
        metadata=StateMetadata.from_dict(metadata) if isinstance(metadata, dict) else None,
    )
    if data.get("createdAt"):
        state.created_at = data["createdAt"]
    if data.get("updatedAt"):
        state.updated_at = data["updatedAt"]
    return state


def timeline_to_dict(timeline: Timeline) -> Dict[str, Any]:
    """
    Serialize a timeline.

    Raises:
        InvariantViolationError: If the timeline is not valid
    """
    timeline.require_active()
    timeline.validate()

    return {
        "states": {state_id: state_to_dict(state) for state_id, state in timeline.states.items()},
        "currentStateId": timeline.current_state_id,
        "rootStateId": timeline.root_state_id,
    }


def timeline_from_dict(data: Dict[str, Any], document_id: Optional[str] = None,
                       event_manager: Optional[EventManager] = None) -> Timeline:
    """
    Deserialize and validate a timeline.

    Args:
        data: The stored timeline
        document_id: Owning document
        event_manager: Event bus for the rebuilt timeline

    Returns:
        Timeline: A timeline satisfying every tree invariant

    Raises:
        TimelinePersistenceError: If the data is not shaped like a timeline
        InvariantViolationError: If the states do not form a valid tree
    """
    if not isinstance(data, dict):
        raise TimelinePersistenceError("Timeline data must be an object")

    raw_states = data.get("states")
    root_state_id = data.get("rootStateId")
    current_state_id = data.get("currentStateId")

    if not isinstance(raw_states, dict) or not raw_states:
        raise TimelinePersistenceError("Timeline has no states")
    if not root_state_id or not current_state_id:
        raise TimelinePersistenceError("Timeline is missing rootStateId or currentStateId")

    states = []
    for key, raw_state in raw_states.items():
        state = state_from_dict(raw_state)
        if state.id != key:
            raise InvariantViolationError(f"State '{state.id}' is stored under key '{key}'")
        states.append(state)

    timeline = Timeline.from_states(
        states, root_state_id, current_state_id,
        document_id=document_id, event_manager=event_manager,
    )
    logger.info(f"Loaded timeline with {len(states)} states")
    return timeline


def save_timeline(timeline: Timeline, file_path: str | Path) -> None:
    """
    Write a timeline to a JSON file.

    Raises:
        TimelinePersistenceError: If the file cannot be written
    """
    data = timeline_to_dict(timeline)
    path = Path(file_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to save timeline to {path}: {e}")
        raise TimelinePersistenceError(f"Failed to save timeline to {path}: {e}") from e

    logger.debug(f"Saved timeline to {path}")


def load_timeline(file_path: str | Path, document_id: Optional[str] = None,
                  event_manager: Optional[EventManager] = None) -> Timeline:
    """
    Read a timeline from a JSON file.

    Raises:
        TimelinePersistenceError: If the file cannot be read or parsed
        InvariantViolationError: If the stored tree is malformed
    """
    path = Path(file_path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to read timeline from {path}: {e}")
        raise TimelinePersistenceError(f"Failed to read timeline from {path}: {e}") from e

    return timeline_from_dict(data, document_id=document_id or path.stem, event_manager=event_manager)
