"""
Event Manager Logging Handler for Constellation

This module provides a logging handler that bridges Python's standard logging
system with the event bus, so log records can be shown as status messages.
"""

import logging
from typing import Optional

from constellation.services.events import EventManager, Events


class EventManagerHandler(logging.Handler):
    """
    Logging handler that forwards log records to the event manager.
    """

    def __init__(self, event_manager: Optional[EventManager] = None, level: int = logging.NOTSET):
        """
        Initialize the event manager logging handler.

        Args:
            event_manager: The event manager instance to forward messages to.
                          If None, the handler ignores log records.
            level: The minimum log level to handle (default: NOTSET)
        """
        super().__init__(level)
        self.event_manager = event_manager
        self.setFormatter(logging.Formatter('%(message)s'))

    def emit(self, record: logging.LogRecord) -> None:
        """Forward a log record as a STATUS_MESSAGE event, traceback included."""
        if self.event_manager is None:
            return

        try:
            message = self.format(record)
            self.event_manager.emit(
                Events.STATUS_MESSAGE,
                message=message,
                message_type=record.levelname.lower(),
            )
        except Exception:
            self.handleError(record)

    def set_event_manager(self, event_manager: Optional[EventManager]) -> None:
        """
        Set or update the event manager instance.

        Args:
            event_manager: New event manager instance, or None to disable
        """
        self.event_manager = event_manager

    def close(self) -> None:
        self.event_manager = None
        super().close()


def add_event_manager_handler_to_logger(
    logger: logging.Logger,
    event_manager: Optional[EventManager] = None,
    level: int = logging.INFO,
    formatter: Optional[logging.Formatter] = None
) -> EventManagerHandler:
    """
    Add an EventManagerHandler to an existing logger.

    Args:
        logger: Logger to add the handler to
        event_manager: Event manager instance to use
        level: Minimum log level to handle
        formatter: Custom formatter to use (optional)

    Returns:
        EventManagerHandler: The handler that was added to the logger
    """
    handler = EventManagerHandler(event_manager, level)
    if formatter:
        handler.setFormatter(formatter)

    logger.addHandler(handler)
    return handler
