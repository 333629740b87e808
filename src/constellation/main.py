#!/usr/bin/env python3
"""
Command line entry point for Constellation timelines

Inspects and edits timeline files from the terminal: print the layout of the
version tree, validate a file, or create a new timeline.
"""

import argparse
import logging
import sys
from typing import List, Optional

from constellation.controllers.timeline_controller import TimelineController
from constellation.models.state import TimelineError
from constellation.models.timeline_manager import TimelineManager
from constellation.services.events import EventManager
from constellation.services.persistence import load_timeline, save_timeline
from constellation.utils.logging_handler import add_event_manager_handler_to_logger
from constellation.utils.payload import empty_graph_payload


def setup_logging(level: int = logging.INFO, event_manager: Optional[EventManager] = None) -> logging.Logger:
    """
    Configure the application logger.

    Args:
        level: Log level of the console handler
        event_manager: When given, log records are also published as status messages

    Returns:
        logging.Logger: The configured logger
    """
    logger = logging.getLogger("Constellation")
    logger.setLevel(level)
    formatter = logging.Formatter('%(asctime)s - %(module)s [%(levelname)s] %(message)s', datefmt='%H:%M:%S')
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if event_manager is not None:
        add_event_manager_handler_to_logger(logger, event_manager)

    return logger


def _cmd_show(args, event_manager: EventManager) -> int:
    timeline = load_timeline(args.file, event_manager=event_manager)
    controller = TimelineController(timeline, event_manager)
    result = controller.compute_layout()

    for node in sorted(result.nodes, key=lambda n: (n.level, n.lane)):
        marker = "*" if node.is_current else " "
        print(f"{marker} {node.label:<30} level={node.level:<3} lane={node.lane:<3} ({node.id})")
    return 0


def _cmd_validate(args, event_manager: EventManager) -> int:
    timeline = load_timeline(args.file, event_manager=event_manager)
    print(f"OK: {timeline}")
    return 0


def _cmd_init(args, event_manager: EventManager) -> int:
    manager = TimelineManager(event_manager)
    timeline = manager.initialize_timeline(args.document or "document", empty_graph_payload())
    if args.label:
        timeline.store.rename(timeline.root_state_id, args.label)
    save_timeline(timeline, args.file)
    print(f"Created {timeline} in {args.file}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect Constellation timeline files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show", help="Print the layout of a timeline")
    show.add_argument("file")
    show.set_defaults(handler=_cmd_show)

    validate = subparsers.add_parser("validate", help="Check a timeline file")
    validate.add_argument("file")
    validate.set_defaults(handler=_cmd_validate)

    init = subparsers.add_parser("init", help="Create a timeline with a single root state")
    init.add_argument("file")
    init.add_argument("--document", help="Document id")
    init.add_argument("--label", help="Label of the root state")
    init.set_defaults(handler=_cmd_init)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)
    logger = setup_logging(logging.DEBUG if args.verbose else logging.WARNING)
    event_manager = EventManager()

    try:
        return args.handler(args, event_manager)
    except TimelineError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
