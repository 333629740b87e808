"""
Helper Functions for Constellation

This module provides helper functions for id generation, timestamps, JSON handling
and resource lookup.
"""

import json
import logging
import random
import string
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

_ID_ALPHABET = string.digits + string.ascii_lowercase


def get_resource_base_path() -> Path:
    """Returns the base path of the packaged resource files."""
    return Path(__file__).resolve().parent.parent / "resources"


def generate_state_id() -> str:
    """
    Generate a new unique state id.

    Ids look like ``state_1700000000000_k3j9x0a1b``: the creation time in
    milliseconds followed by nine random base36 characters.

    Returns:
        str: The new id
    """
    millis = int(time.time() * 1000)
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"state_{millis}_{suffix}"


def now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


def load_json_file(file_path: str | Path) -> Optional[Dict[str, Any]]:
    """
    Load a JSON file.

    Args:
        file_path: Path to the JSON file

    Returns:
        dict: JSON data or None if failed to load
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except Exception as e:
        logging.getLogger("Constellation").error(f"Failed to load JSON file {file_path}: {e}")
        return None


def save_json_file(file_path: str | Path, data: Dict[str, Any]) -> bool:
    """
    Save data to a JSON file.

    Args:
        file_path: Path to save the JSON file
        data: Data to save

    Returns:
        bool: True if saved successfully
    """
    try:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=4, ensure_ascii=False)

        return True

    except Exception as e:
        logging.getLogger("Constellation").error(f"Failed to save JSON file {file_path}: {e}")
        return False
