"""
Pytest configuration and fixtures for Constellation tests.
"""

import pytest
import tempfile
import shutil
from pathlib import Path
from unittest.mock import Mock

from constellation.controllers.timeline_controller import TimelineController
from constellation.models.timeline import Timeline
from constellation.services.events import EventManager


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def mock_event_manager():
    """Create a mock event manager."""
    event_manager = Mock(spec=EventManager)
    event_manager.emit = Mock(return_value=0)
    event_manager.subscribe = Mock(return_value=True)
    event_manager.unsubscribe = Mock(return_value=True)
    return event_manager


@pytest.fixture
def sample_payload():
    """A small actors/relations/groups snapshot."""
    return {
        "nodes": [
            {"id": "a1", "type": "person", "data": {"label": "Alice"}},
            {"id": "a2", "type": "person", "data": {"label": "Bob"}},
        ],
        "edges": [{"id": "r1", "source": "a1", "target": "a2", "type": "knows"}],
        "groups": [],
    }


@pytest.fixture
def sample_timeline(mock_event_manager, sample_payload):
    """A timeline with a single root state 's0' labelled 'Initial'."""
    timeline = Timeline(document_id="doc-1", event_manager=mock_event_manager)
    timeline.store.create_root(sample_payload, label="Initial", state_id="s0")
    timeline.pointer.reset("s0")
    return timeline


@pytest.fixture
def controller(sample_timeline, mock_event_manager):
    """A strict controller over the sample timeline."""
    return TimelineController(sample_timeline, mock_event_manager, strict=True)
