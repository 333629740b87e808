"""
Timeline Tree Layout for Constellation

Maps the version tree of a document onto a horizontal timeline diagram. The level
of a state is its breadth-first depth from the root and decides the x position.
The lane is assigned by a depth-first walk where the first child stays in the lane
of its parent and every further sibling opens a new lane; it decides the y position.

The functions here are pure: same input, same output, no side effects.
"""

from dataclasses import dataclass, field
from collections import deque
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from constellation.models.state import State, InvariantViolationError

HORIZONTAL_SPACING = 200
VERTICAL_SPACING = 100


@dataclass(frozen=True)
class LayoutNode:
    """Placement of one state in the diagram."""
    id: str
    label: str
    level: int
    lane: int
    x: float
    y: float
    is_current: bool = False


@dataclass(frozen=True)
class LayoutEdge:
    """Parent to child connection. Emphasized when it leads to the current state."""
    id: str
    source: str
    target: str
    emphasized: bool = False


@dataclass(frozen=True)
class TreeLayout:
    """Nodes and edges of a laid out timeline."""
    nodes: Tuple[LayoutNode, ...] = field(default_factory=tuple)
    edges: Tuple[LayoutEdge, ...] = field(default_factory=tuple)

    @property
    def levels(self) -> Dict[str, int]:
        return {node.id: node.level for node in self.nodes}

    @property
    def lanes(self) -> Dict[str, int]:
        return {node.id: node.lane for node in self.nodes}

    def node(self, state_id: str) -> Optional[LayoutNode]:
        for node in self.nodes:
            if node.id == state_id:
                return node
        return None


StatesInput = Union[Mapping[str, State], Iterable[State]]


def layout(states: StatesInput, root_state_id: Optional[str], current_state_id: Optional[str],
           horizontal_spacing: float = HORIZONTAL_SPACING,
           vertical_spacing: float = VERTICAL_SPACING) -> TreeLayout:
    """
    Compute the diagram layout of a version tree.

    Children are ordered as their states appear in ``states``.

    Args:
        states: The states, either as an id mapping or any iterable
        root_state_id: Id of the root state
        current_state_id: Id of the active state, used to mark node and edge
        horizontal_spacing: Distance between two levels
        vertical_spacing: Distance between two lanes

    Returns:
        TreeLayout: Nodes in input order and one edge per non-root state

    Raises:
        InvariantViolationError: If the root is missing or has a parent, or a
            state cannot be reached from the root
    """
    state_list = list(states.values()) if isinstance(states, Mapping) else list(states)
    if not state_list:
        return TreeLayout()

    by_id = {state.id: state for state in state_list}
    if root_state_id not in by_id:
        raise InvariantViolationError(f"Root state '{root_state_id}' is not among the states")

    root_parent = by_id[root_state_id].parent_state_id
    if root_parent is not None:
        raise InvariantViolationError(f"Root state '{root_state_id}' has parent '{root_parent}'")

    children = _group_children(state_list)
    levels = _assign_levels(root_state_id, children)

    unreachable = [state.id for state in state_list if state.id not in levels]
    if unreachable:
        raise InvariantViolationError(
            f"{len(unreachable)} state(s) not reachable from root '{root_state_id}': {', '.join(unreachable)}"
        )

    lanes = _assign_lanes(root_state_id, children)

    nodes = tuple(
        LayoutNode(
            id=state.id,
            label=state.label,
            level=levels[state.id],
            lane=lanes[state.id],
            x=levels[state.id] * horizontal_spacing,
            y=lanes[state.id] * vertical_spacing,
            is_current=state.id == current_state_id,
        )
        for state in state_list
    )

    edges = tuple(
        LayoutEdge(
            id=f"{state.parent_state_id}-{state.id}",
            source=state.parent_state_id,
            target=state.id,
            emphasized=state.id == current_state_id,
        )
        for state in state_list
        if state.parent_state_id is not None
    )

    return TreeLayout(nodes=nodes, edges=edges)


def _group_children(states: List[State]) -> Dict[str, List[str]]:
    children: Dict[str, List[str]] = {}
    for state in states:
        if state.parent_state_id is not None:
            children.setdefault(state.parent_state_id, []).append(state.id)
    return children


def _assign_levels(root_state_id: str, children: Dict[str, List[str]]) -> Dict[str, int]:
    levels = {root_state_id: 0}
    queue = deque([root_state_id])

    while queue:
        state_id = queue.popleft()
        for child_id in children.get(state_id, []):
            if child_id not in levels:
                levels[child_id] = levels[state_id] + 1
                queue.append(child_id)

    return levels


def _assign_lanes(root_state_id: str, children: Dict[str, List[str]]) -> Dict[str, int]:
    lanes: Dict[str, int] = {}
    last_lane = 0
    # None means the state opens a new lane when it is reached
    stack: List[Tuple[str, Optional[int]]] = [(root_state_id, 0)]

    while stack:
        state_id, lane = stack.pop()
        if state_id in lanes:
            raise InvariantViolationError(f"State '{state_id}' is reached twice, parent links form a cycle")
        if lane is None:
            last_lane += 1
            lane = last_lane
        lanes[state_id] = lane

        child_ids = children.get(state_id, [])
        for child_id in reversed(child_ids[1:]):
            stack.append((child_id, None))
        if child_ids:
            stack.append((child_ids[0], lane))

    return lanes
