"""
Payload Copy Strategies for Constellation

The version tree never looks inside a state's payload. Branching only needs a way
to produce an independent copy of it, which is injected into the controller as a
plain callable.
"""

import copy
import json
from typing import Any, Callable, Dict, List

PayloadCopier = Callable[[Any], Any]
PayloadFactory = Callable[[], Any]


def deep_copy_payload(payload: Any) -> Any:
    """Structural copy of an arbitrary Python object."""
    return copy.deepcopy(payload)


def json_copy_payload(payload: Any) -> Any:
    """
    Copy a payload by round-tripping it through JSON.

    Only works for JSON-compatible payloads, but guarantees the copy is also
    serializable by the persistence layer.
    """
    return json.loads(json.dumps(payload))


def empty_graph_payload() -> Dict[str, List[Any]]:
    """An empty actors/relations/groups snapshot."""
    return {"nodes": [], "edges": [], "groups": []}
