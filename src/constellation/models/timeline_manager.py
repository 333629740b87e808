"""
Timeline Manager for Constellation

This module provides the TimelineManager class, the registry holding one
timeline per open document.
"""

import logging
from typing import Any, Dict, List, Optional

from constellation.models.state import AlreadyInitializedError, TimelineError
from constellation.models.state_store import DEFAULT_ROOT_LABEL, DEFAULT_LABEL_MAX_LENGTH
from constellation.models.timeline import Timeline
from constellation.services.events import EventManager, Events
from constellation.services.persistence import timeline_from_dict, timeline_to_dict
from constellation.services.settings import SettingsManager
from constellation.utils.payload import PayloadCopier, deep_copy_payload


class TimelineManager:
    """
    Keeps the timelines of all open documents.

    This manager handles:
    - Creating the timeline of a document the first time it is versioned
    - Registering timelines loaded from document files
    - Tracking which document is active
    - Dropping timelines when documents are closed
    """

    def __init__(self, event_manager: EventManager, settings: Optional[SettingsManager] = None,
                 copy_payload: PayloadCopier = deep_copy_payload):
        """
        Initialize the timeline manager.

        Args:
            event_manager: Event manager for component communication
            settings: Settings to read labels and limits from
            copy_payload: Strategy used to copy payloads handed to the manager
        """
        self.logger = logging.getLogger("Constellation")
        self.event_manager = event_manager
        self.settings = settings
        self.copy_payload = copy_payload

        self.timelines: Dict[str, Timeline] = {}
        self.active_document_id: Optional[str] = None

        self.logger.info("Timeline manager initialized")

    def _read_setting(self, name: str, default: Any) -> Any:
        if self.settings is None:
            return default
        return self.settings.read(name, default)

    def initialize_timeline(self, document_id: str, payload: Any) -> Timeline:
        """
        Create the timeline of a document with a root state holding its content.

        Args:
            document_id: The document being versioned
            payload: Current content of the document; it is copied

        Returns:
            Timeline: The new timeline, which also becomes the active one

        Raises:
            AlreadyInitializedError: If the document already has a timeline
        """
        if document_id in self.timelines:
            self.logger.warning(f"Timeline already initialized for document {document_id}")
            raise AlreadyInitializedError(f"Timeline already initialized for document {document_id}")

        timeline = Timeline(
            document_id=document_id,
            event_manager=self.event_manager,
            label_max_length=self._read_setting("label_max_length", DEFAULT_LABEL_MAX_LENGTH),
        )
        timeline.create_root(
            self.copy_payload(payload),
            label=self._read_setting("root_state_label", DEFAULT_ROOT_LABEL),
        )

        self.timelines[document_id] = timeline
        self.active_document_id = document_id

        self.logger.info(f"Timeline initialized for document {document_id}")
        self.event_manager.emit(Events.TIMELINE_CREATED, document_id=document_id, timeline=timeline)
        return timeline

    def load_timeline(self, document_id: str, data: Dict[str, Any]) -> Timeline:
        """
        Register a timeline read from a document file.

        The previous timeline of the document, if any, is replaced only after
        the new one passed validation.

        Raises:
            TimelinePersistenceError: If the data is not shaped like a timeline
            InvariantViolationError: If the stored tree is malformed
        """
        try:
            timeline = timeline_from_dict(data, document_id=document_id, event_manager=self.event_manager)
        except TimelineError as e:
            self.logger.error(f"Failed to load timeline for document {document_id}: {e}")
            raise

        self.timelines[document_id] = timeline
        self.active_document_id = document_id

        self.logger.info(f"Timeline loaded for document {document_id} ({len(timeline.store)} states)")
        self.event_manager.emit(Events.TIMELINE_LOADED, document_id=document_id, timeline=timeline)
        return timeline

    def export_timeline(self, document_id: str) -> Optional[Dict[str, Any]]:
        """Serialized form of a document's timeline, or None if it has none."""
        timeline = self.timelines.get(document_id)
        if timeline is None:
            return None
        return timeline_to_dict(timeline)

    def get_timeline(self, document_id: str) -> Optional[Timeline]:
        return self.timelines.get(document_id)

    def get_active_timeline(self) -> Optional[Timeline]:
        if self.active_document_id is None:
            return None
        return self.timelines.get(self.active_document_id)

    def set_active_document(self, document_id: Optional[str]) -> None:
        self.active_document_id = document_id
        self.logger.debug(f"Active document: {document_id}")

    def get_document_ids(self) -> List[str]:
        return list(self.timelines.keys())

    def clear_timeline(self, document_id: str) -> bool:
        """
        Drop the timeline of a document.

        Returns:
            bool: True if a timeline was removed
        """
        if self.timelines.pop(document_id, None) is None:
            return False

        if self.active_document_id == document_id:
            self.active_document_id = None

        self.logger.info(f"Timeline cleared for document {document_id}")
        self.event_manager.emit(Events.TIMELINE_CLEARED, document_id=document_id)
        return True

    def shutdown(self) -> None:
        """Shutdown the timeline manager."""
        self.logger.info("Shutting down timeline manager...")
        self.timelines.clear()
        self.active_document_id = None


# Global timeline manager instance
_timeline_manager: Optional[TimelineManager] = None


def initialize_timeline_manager(event_manager: EventManager,
                                settings: Optional[SettingsManager] = None) -> bool:
    """
    Initialize the global timeline manager.

    Args:
        event_manager: Event manager for component communication
        settings: Settings to read labels and limits from

    Returns:
        bool: True if initialization was successful
    """
    global _timeline_manager

    if _timeline_manager is not None:
        logging.getLogger("Constellation").warning("Timeline manager already initialized")
        return True

    _timeline_manager = TimelineManager(event_manager, settings)
    logging.getLogger("Constellation").info("Global timeline manager initialized")
    return True


def get_timeline_manager() -> TimelineManager:
    """
    Get the global timeline manager instance.

    Returns:
        TimelineManager: Global timeline manager instance

    Raises:
        RuntimeError: If timeline manager hasn't been initialized
    """
    if _timeline_manager is None:
        raise RuntimeError("Timeline manager not initialized")
    return _timeline_manager


def shutdown_timeline_manager():
    """Shutdown the global timeline manager instance."""
    global _timeline_manager
    if _timeline_manager:
        _timeline_manager.shutdown()
        _timeline_manager = None
