"""Column packing for overlapping tasks.

Tasks whose intervals overlap (directly or through a chain of other tasks)
form an overlap group. Inside a group every task gets a column so that no
two tasks sharing a column overlap in time.

Functions:
    group_overlaps: Partition timed tasks into overlap groups
    assign_columns: Greedy earliest-fit column assignment for one group
    layout: Column assignments for all tasks
    column_geometry: Horizontal offset and width for a column
"""
from datetime import datetime
from typing import Dict, List, Sequence, Tuple

from models import ColumnAssignment, TaskItem

# (task, start, end)
Placed = Tuple[TaskItem, datetime, datetime]

# Extra shrink applied to crowded groups so labels stay readable
THREE_COLUMN_SHRINK = 0.68
CROWDED_SHRINK = 0.5


def _placed(tasks: Sequence[TaskItem], default_minutes: int) -> List[Placed]:
    """Resolve the span of every timed task and sort by start (stable)."""
    placed = []
    for task in tasks:
        if not task.has_time:
            continue
        start, end = task.interval.span(default_minutes)
        placed.append((task, start, end))
    placed.sort(key=lambda item: (item[1], item[2]))
    return placed


def group_overlaps(tasks: Sequence[TaskItem], default_minutes: int = 30) -> List[List[Placed]]:
    """
    Partition tasks into overlap groups with a single sweep.

    A task joins the current group when it starts at or before the group's
    running maximum end; otherwise it opens a new group.

    Args:
        tasks: Tasks to group (timeless tasks are ignored)
        default_minutes: Length given to tasks without an end

    Returns:
        Groups in start order, each a list of (task, start, end)
    """
    groups: List[List[Placed]] = []
    group_end = None

    for item in _placed(tasks, default_minutes):
        _, start, end = item
        if groups and start <= group_end:
            groups[-1].append(item)
            group_end = max(group_end, end)
        else:
            groups.append([item])
            group_end = end

    return groups


def assign_columns(group: Sequence[Placed]) -> Tuple[Dict[int, int], int]:
    """
    Assign columns inside one group, greedy earliest fit.

    Each open column remembers the end of its last task. A task reuses the
    first column that is free at its start, else opens a new column. For
    tasks taken in start order this gives the minimum number of columns,
    equal to the largest number of tasks overlapping at one instant.

    Args:
        group: (task, start, end) in start order

    Returns:
        Tuple of (column by task id, column count)
    """
    column_ends: List[datetime] = []
    columns: Dict[int, int] = {}

    for task, start, end in group:
        for index, column_end in enumerate(column_ends):
            if column_end <= start:
                column_ends[index] = end
                columns[task.id] = index
                break
        else:
            column_ends.append(end)
            columns[task.id] = len(column_ends) - 1

    return columns, max(1, len(column_ends))


def layout(tasks: Sequence[TaskItem], default_minutes: int = 30) -> List[ColumnAssignment]:
    """
    Compute a column assignment for every timed task.

    Args:
        tasks: Parsed tasks; tasks without an interval are excluded
        default_minutes: Length given to tasks without an end

    Returns:
        ColumnAssignment list in start order
    """
    assignments = []
    for group in group_overlaps(tasks, default_minutes):
        columns, group_size = assign_columns(group)
        for task, _, _ in group:
            assignments.append(ColumnAssignment(task_id=task.id, column=columns[task.id], group_size=group_size))
    return assignments


def column_geometry(column: int, group_size: int) -> Tuple[float, float]:
    """
    Horizontal placement of a column as percentages of the lane width.

    Width is 100 / group_size, shrunk further for groups of three (×0.68)
    and larger groups (×0.5). The offset is column × 100 / group_size.

    Returns:
        Tuple of (offset_percent, width_percent)
    """
    group_size = max(1, group_size)
    share = 100.0 / group_size
    width = share
    if group_size == 3:
        width *= THREE_COLUMN_SHRINK
    elif group_size > 3:
        width *= CROWDED_SHRINK
    return column * share, width
