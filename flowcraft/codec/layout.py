"""
Canvas placement for imported graphs.

Positions are visual hints only; nothing here influences execution or
graph equality.
"""

from collections import deque

from flowcraft.domain.models import Position

ORIGIN_X = 250.0
COLUMN_WIDTH = 300.0
ROW_HEIGHT = 150.0
LINEAR_ROW_HEIGHT = 120.0


def compute_levels(start_ids: list[str], outgoing: dict[str, list[str]]) -> dict[str, int]:
    """
    Breadth-first level numbering from the start set.

    A node takes the deepest level it is reached at. Levels are capped at
    the node count so cyclic graphs terminate.
    """
    nodes = set(outgoing) | {t for targets in outgoing.values() for t in targets}
    limit = max(len(nodes), 1)

    levels: dict[str, int] = {}
    queue: deque[tuple[str, int]] = deque()
    for start in start_ids:
        levels[start] = 0
        queue.append((start, 0))

    while queue:
        node, level = queue.popleft()
        for target in outgoing.get(node, []):
            new_level = level + 1
            if new_level >= limit:
                continue
            if target not in levels or levels[target] < new_level:
                levels[target] = new_level
                queue.append((target, new_level))

    return levels


def grid_positions(step_ids: list[str], levels: dict[str, int]) -> dict[str, Position]:
    """Lay out steps row by row; unreached steps sit on level 0."""
    per_level: dict[int, int] = {}
    positions = {}
    for step_id in step_ids:
        level = levels.get(step_id, 0)
        index = per_level.get(level, 0)
        per_level[level] = index + 1
        positions[step_id] = Position(x=ORIGIN_X + index * COLUMN_WIDTH, y=level * ROW_HEIGHT)
    return positions


def linear_position(index: int) -> Position:
    return Position(x=ORIGIN_X, y=index * LINEAR_ROW_HEIGHT)


__all__ = ["compute_levels", "grid_positions", "linear_position"]
