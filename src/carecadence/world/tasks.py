"""任务完成处理

重复任务(有截止时间且未完成)被勾选完成时不会直接改状态，而是返回 PendingCompletion，
由用户在两种处理方式中选一种:
- ARCHIVE_AND_CLONE: 当前任务标记完成(截止时间不变)，另建一个截止于下一次的新任务
- ADVANCE_IN_PLACE: 当前任务保持未完成，截止时间移到下一次
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import tzinfo
from typing import List, Tuple

from ulid import ULID

from carecadence.datamodel import Task, TaskResolution
from carecadence.logger import logger
from carecadence.world.recurrence import next_occurrence

__all__ = ["PendingCompletion", "toggle_task_completion", "resolve_completion", "pending_tasks", "completed_tasks"]


@dataclass(frozen=True)
class PendingCompletion:
    original: Task
    advanced: Task  # 截止时间已移到下一次的同一任务


def _find(tasks: List[Task], task_id: str) -> Task:
    for task in tasks:
        if task.id == task_id:
            return task
    raise KeyError(task_id)


def toggle_task_completion(
    tasks: List[Task], task_id: str, tz: tzinfo | None = None
) -> Tuple[List[Task], PendingCompletion | None]:
    """切换完成状态; 需要用户选择处理方式时返回原列表和 PendingCompletion"""
    task = _find(tasks, task_id)
    if task.rule.recurs and not task.is_completed and task.due_date is not None:
        next_due = next_occurrence(task.due_date, task.rule, tz)
        return tasks, PendingCompletion(
            original=task,
            advanced=replace(task, is_completed=False, due_date=next_due),
        )

    return [replace(t, is_completed=not t.is_completed) if t.id == task_id else t for t in tasks], None


def resolve_completion(
    tasks: List[Task],
    pending: PendingCompletion,
    resolution: TaskResolution | str,
    new_id: str | None = None,
) -> List[Task]:
    resolution = TaskResolution(resolution)
    original = _find(tasks, pending.original.id)

    if resolution is TaskResolution.ARCHIVE_AND_CLONE:
        archived = replace(original, is_completed=True)
        clone = replace(pending.advanced, id=new_id or str(ULID()))
        logger.info(f"重复任务完成并创建下一次: {original.id} -> {clone.id}")
        return [archived if t.id == original.id else t for t in tasks] + [clone]

    logger.info(f"重复任务顺延: {original.id}")
    return [pending.advanced if t.id == original.id else t for t in tasks]


def _pending_sort_key(task: Task) -> tuple:
    # 有截止时间的在前，按时间升序；同时间或无截止时间的按标题
    if task.due_date is not None:
        return (0, task.due_date.timestamp(), task.title)
    return (1, 0.0, task.title)


def pending_tasks(tasks: List[Task]) -> List[Task]:
    return sorted((t for t in tasks if not t.is_completed), key=_pending_sort_key)


def completed_tasks(tasks: List[Task]) -> List[Task]:
    return [t for t in tasks if t.is_completed]
