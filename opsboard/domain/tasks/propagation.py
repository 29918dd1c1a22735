"""Dependency propagation - shift dependent tasks when an upstream due date moves"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...config import MAX_PROPAGATION_DEPTH
from ...models import Task
from .repository import TaskRepository

logger = logging.getLogger(__name__)

# Dependents in these states keep their dates and do not pass a shift on
TERMINAL_STATUSES = ("completed", "cancelled")

# (task, new_due_date, new_start_date, actor_id) -> None
ShiftFn = Callable[[Task, datetime, Optional[datetime], Optional[str]], None]


class PropagationDepthError(Exception):
    """Raised when a dependency chain is deeper than the configured maximum"""

    def __init__(self, task_id: str, depth: int):
        self.task_id = task_id
        self.depth = depth
        super().__init__(f"Dependency chain exceeds {depth} levels at task {task_id}")


@dataclass
class PropagationResult:
    root_task_id: str
    delta: timedelta
    shifted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    cycle_detected: bool = False


class DependencyPropagator:
    """Walks a task's dependents and moves each one by the same delta.

    Every task is shifted at most once per run, so diamonds do not double
    shift and cycles terminate. Shifts are committed one by one through the
    normal task update path: a failure part-way leaves earlier shifts applied.
    """

    def __init__(
        self,
        db: Session,
        tenant_id: str,
        apply_shift: ShiftFn,
        max_depth: int = MAX_PROPAGATION_DEPTH,
    ):
        self.db = db
        self.tenant_id = tenant_id
        self.apply_shift = apply_shift
        self.max_depth = max_depth
        self.repo = TaskRepository()

    def on_due_date_changed(
        self,
        task_id: str,
        old_due_date: datetime,
        new_due_date: datetime,
        actor_id: Optional[str] = None,
    ) -> PropagationResult:
        delta = new_due_date - old_due_date
        result = PropagationResult(root_task_id=task_id, delta=delta)
        if not delta:
            return result

        visited = {task_id}
        self._propagate(task_id, delta, 1, visited, (task_id,), result, actor_id)

        if result.shifted:
            logger.info(
                f"🔗 Shifted {len(result.shifted)} dependent task(s) of {task_id} by {delta}"
            )
        if result.cycle_detected:
            logger.warning(f"⚠️ Dependency cycle reached from task {task_id}; stopped at revisit")
        return result

    def _propagate(
        self,
        task_id: str,
        delta: timedelta,
        depth: int,
        visited: set[str],
        path: tuple[str, ...],
        result: PropagationResult,
        actor_id: Optional[str],
    ) -> None:
        for dependent in self.repo.get_dependents(self.db, self.tenant_id, task_id):
            if dependent.id in path:
                result.cycle_detected = True
                continue
            if dependent.id in visited:
                continue
            visited.add(dependent.id)

            if dependent.status in TERMINAL_STATUSES or dependent.due_date is None:
                result.skipped.append(dependent.id)
                continue

            if depth > self.max_depth:
                raise PropagationDepthError(dependent.id, self.max_depth)

            new_start = dependent.start_date + delta if dependent.start_date else None
            self.apply_shift(dependent, dependent.due_date + delta, new_start, actor_id)
            result.shifted.append(dependent.id)

            self._propagate(
                dependent.id, delta, depth + 1, visited, path + (dependent.id,), result, actor_id
            )
