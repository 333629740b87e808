"""
Event Management System for Constellation

The version tree publishes named events; the graph canvas, the timeline diagram
and the status bar subscribe to them. Dispatching is done by Blinker signals.
"""

import logging
from typing import Callable

from blinker import Namespace


class EventManager:
    """
    Named events backed by a private Blinker namespace.

    Receivers are called as ``callback(sender, **kwargs)`` where ``sender`` is
    this manager.
    """

    def __init__(self):
        self.logger = logging.getLogger("Constellation")
        self._namespace = Namespace()

    def subscribe(self, event_name: str, callback: Callable, weak: bool = True) -> bool:
        """
        Connect a callback to an event.

        With ``weak=True`` the subscription ends when the callback is garbage
        collected, so bound methods of short-lived views need no cleanup.
        """
        self._namespace.signal(event_name).connect(callback, weak=weak)
        self.logger.debug(f"Subscribed to '{event_name}': {callback}")
        return True

    def unsubscribe(self, event_name: str, callback: Callable) -> bool:
        self._namespace.signal(event_name).disconnect(callback)
        self.logger.debug(f"Unsubscribed from '{event_name}': {callback}")
        return True

    def emit(self, event_name: str, **kwargs) -> int:
        """
        Send an event to every subscriber.

        A failing subscriber is logged and does not reach the emitter; the
        tree is already consistent when events are sent.

        Returns:
            int: Number of subscribers called, 0 if dispatching failed
        """
        try:
            return len(self._namespace.signal(event_name).send(self, **kwargs))
        except Exception as e:
            self.logger.error(f"Failed to emit event '{event_name}': {e}")
            return 0


class Events:
    """Event names used throughout Constellation."""

    # Timeline lifecycle
    TIMELINE_CREATED = "timeline_created"
    TIMELINE_LOADED = "timeline_loaded"
    TIMELINE_CLEARED = "timeline_cleared"

    # State events
    STATE_CREATED = "state_created"
    STATE_RENAMED = "state_renamed"
    STATE_UPDATED = "state_updated"
    STATE_DELETED = "state_deleted"
    STATE_SWITCHED = "state_switched"

    # Rendering
    LAYOUT_CHANGED = "layout_changed"
    CLOSE_ALL_MENUS = "close_all_menus"

    # Status events
    STATUS_MESSAGE = "status_message"
    ERROR_OCCURRED = "error_occurred"
