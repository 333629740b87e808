"""
Tests for timeline manager.
"""

import pytest
from unittest.mock import Mock

from constellation.models import timeline_manager as timeline_manager_module
from constellation.models.state import (
    AlreadyInitializedError, InvariantViolationError, TimelinePersistenceError
)
from constellation.models.timeline import TimelineStatus
from constellation.models.timeline_manager import (
    TimelineManager, initialize_timeline_manager, get_timeline_manager, shutdown_timeline_manager
)
from constellation.services.events import Events


class TestTimelineManagerInitialization:
    """Tests for creating document timelines."""

    def test_timeline_manager_creation(self, mock_event_manager):
        """Test creating a timeline manager."""
        manager = TimelineManager(mock_event_manager)

        assert manager.event_manager == mock_event_manager
        assert manager.timelines == {}
        assert manager.active_document_id is None
        assert manager.get_active_timeline() is None

    def test_initialize_timeline(self, mock_event_manager, sample_payload):
        """Test initializing a document timeline creates a root with a copy of the content."""
        manager = TimelineManager(mock_event_manager)

        timeline = manager.initialize_timeline("doc-1", sample_payload)

        root = timeline.states[timeline.root_state_id]
        assert timeline.status == TimelineStatus.ACTIVE
        assert timeline.current_state_id == root.id
        assert root.label == "Initial State"
        assert root.payload == sample_payload
        assert root.payload is not sample_payload
        assert manager.active_document_id == "doc-1"
        assert manager.get_active_timeline() is timeline
        mock_event_manager.emit.assert_called_once_with(
            Events.TIMELINE_CREATED, document_id="doc-1", timeline=timeline
        )

    def test_initialize_timeline_twice(self, mock_event_manager, sample_payload):
        """Test re-initializing a document is refused."""
        manager = TimelineManager(mock_event_manager)
        first = manager.initialize_timeline("doc-1", sample_payload)

        with pytest.raises(AlreadyInitializedError):
            manager.initialize_timeline("doc-1", {})

        assert manager.get_timeline("doc-1") is first

    def test_initialize_timeline_uses_settings(self, mock_event_manager):
        """Test the root label comes from settings."""
        settings = Mock()
        settings.read.side_effect = lambda name, default=None: {
            "root_state_label": "Baseline",
        }.get(name, default)
        manager = TimelineManager(mock_event_manager, settings=settings)

        timeline = manager.initialize_timeline("doc-1", {})

        assert timeline.states[timeline.root_state_id].label == "Baseline"


class TestTimelineManagerLoading:
    """Tests for loading and clearing timelines."""

    def test_load_and_export_timeline(self, mock_event_manager):
        """Test a loaded timeline is registered and can be exported again."""
        manager = TimelineManager(mock_event_manager)
        data = {
            "states": {
                "R": {"id": "R", "label": "Root", "graph": {"nodes": []}},
                "A": {"id": "A", "label": "A", "parentStateId": "R", "graph": {"nodes": []}},
            },
            "rootStateId": "R",
            "currentStateId": "A",
        }

        timeline = manager.load_timeline("doc-2", data)

        assert manager.get_timeline("doc-2") is timeline
        assert timeline.current_state_id == "A"
        exported = manager.export_timeline("doc-2")
        assert exported["rootStateId"] == "R"
        assert set(exported["states"]) == {"R", "A"}
        assert manager.export_timeline("unknown") is None

    def test_load_malformed_timeline_keeps_previous(self, mock_event_manager, sample_payload):
        """Test a failed load leaves the registered timeline in place."""
        manager = TimelineManager(mock_event_manager)
        existing = manager.initialize_timeline("doc-1", sample_payload)
        data = {
            "states": {"R": {"id": "R", "label": "Root", "parentStateId": "R"}},
            "rootStateId": "R",
            "currentStateId": "R",
        }

        with pytest.raises(InvariantViolationError):
            manager.load_timeline("doc-1", data)

        assert manager.get_timeline("doc-1") is existing

    def test_load_garbage(self, mock_event_manager):
        """Test data that is not a timeline is rejected."""
        manager = TimelineManager(mock_event_manager)

        with pytest.raises(TimelinePersistenceError):
            manager.load_timeline("doc-1", {"states": []})

    def test_clear_timeline(self, mock_event_manager, sample_payload):
        """Test clearing a document timeline."""
        manager = TimelineManager(mock_event_manager)
        manager.initialize_timeline("doc-1", sample_payload)

        assert manager.clear_timeline("doc-1") is True
        assert manager.get_timeline("doc-1") is None
        assert manager.active_document_id is None
        assert manager.clear_timeline("doc-1") is False
        mock_event_manager.emit.assert_called_with(Events.TIMELINE_CLEARED, document_id="doc-1")

    def test_document_ids(self, mock_event_manager):
        """Test listing documents with timelines."""
        manager = TimelineManager(mock_event_manager)
        manager.initialize_timeline("doc-1", {})
        manager.initialize_timeline("doc-2", {})
        manager.set_active_document("doc-1")

        assert manager.get_document_ids() == ["doc-1", "doc-2"]
        assert manager.get_active_timeline() is manager.get_timeline("doc-1")


class TestGlobalTimelineManager:
    """Tests for the module-level accessors."""

    def test_lifecycle(self, mock_event_manager):
        """Test initialize, get and shutdown of the global manager."""
        shutdown_timeline_manager()
        with pytest.raises(RuntimeError, match="not initialized"):
            get_timeline_manager()

        assert initialize_timeline_manager(mock_event_manager) is True
        manager = get_timeline_manager()
        assert initialize_timeline_manager(mock_event_manager) is True
        assert get_timeline_manager() is manager

        shutdown_timeline_manager()
        assert timeline_manager_module._timeline_manager is None
