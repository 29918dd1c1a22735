"""Task service - Business logic for tasks, dependencies and due-date propagation"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Task
from ...tenancy import TenantContext
from ...utils.sanitization import sanitize_string
from ..scheduling.intervals import to_utc_naive
from .propagation import DependencyPropagator, PropagationDepthError, PropagationResult
from .repository import TaskRepository
from .schemas import TaskCreate, TaskUpdate

logger = logging.getLogger(__name__)

TASK_FIELD_MAP = {
    "title": "title",
    "description": "description",
    "assignedTo": "assigned_to",
    "projectId": "project_id",
    "priority": "priority",
    "status": "status",
    "startDate": "start_date",
    "dueDate": "due_date",
    "metadata": "task_metadata",
}


class TaskService:
    """Service layer for task business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TaskRepository()

    def list_tasks(
        self,
        context: TenantContext,
        assigned_to: Optional[str] = None,
        status: Optional[str] = None,
        include_shadows: bool = False,
    ) -> list[Task]:
        return self.repo.list_tasks(self.db, context.tenant_id, assigned_to, status, include_shadows)

    def get_task(self, context: TenantContext, task_id: str) -> Task:
        task = self.repo.get_task(self.db, context.tenant_id, task_id)
        if not task:
            raise HTTPException(status_code=404, detail="Task not found")
        return task

    def create_task(self, context: TenantContext, data: TaskCreate) -> Task:
        for upstream_id in data.dependsOn:
            self.get_task(context, upstream_id)

        task = self.repo.create_task(
            self.db,
            context.tenant_id,
            title=sanitize_string(data.title),
            description=sanitize_string(data.description),
            assigned_to=data.assignedTo,
            created_by=context.user_id,
            project_id=data.projectId,
            priority=data.priority,
            status=data.status,
            start_date=to_utc_naive(data.startDate),
            due_date=to_utc_naive(data.dueDate),
            completed_at=datetime.utcnow() if data.status == "completed" else None,
            task_metadata=data.metadata,
        )
        self.repo.log_activity(self.db, task.id, "created", None, {"title": task.title}, context.user_id)

        for upstream_id in data.dependsOn:
            self.repo.add_dependency(self.db, task.id, upstream_id, "finish_to_start")

        logger.info(f"📝 Created task {task.id} in tenant {context.tenant_id}")
        return task

    def update_task(
        self, context: TenantContext, task_id: str, data: TaskUpdate
    ) -> tuple[Task, Optional[PropagationResult]]:
        """Apply an edit; a due-date change shifts every dependent task too"""
        task = self.get_task(context, task_id)

        updates = {}
        for field_name, value in data.model_dump(exclude_unset=True).items():
            column = TASK_FIELD_MAP[field_name]
            if column in ("start_date", "due_date"):
                value = to_utc_naive(value)
            elif column in ("title", "description"):
                value = sanitize_string(value)
            updates[column] = value

        if updates.get("status") == "completed" and task.status != "completed":
            updates["completed_at"] = datetime.utcnow()
        elif "status" in updates and updates["status"] != "completed":
            updates["completed_at"] = None

        old_due = task.due_date
        task = self._apply_update(task, updates, context.user_id, action="updated")

        propagation = None
        new_due = updates.get("due_date")
        if "due_date" in updates and old_due is not None and new_due is not None and new_due != old_due:
            propagation = self.on_task_due_date_changed(context, task.id, old_due, new_due)
        return task, propagation

    def on_task_due_date_changed(
        self,
        context: TenantContext,
        task_id: str,
        old_due_date: datetime,
        new_due_date: datetime,
    ) -> PropagationResult:
        """Shift the downstream chain of task_id by new_due_date - old_due_date"""
        propagator = DependencyPropagator(self.db, context.tenant_id, self._shift_dates)
        try:
            return propagator.on_due_date_changed(
                task_id, to_utc_naive(old_due_date), to_utc_naive(new_due_date), context.user_id
            )
        except PropagationDepthError as e:
            logger.error(f"❌ Due-date propagation aborted: {e}")
            raise HTTPException(
                status_code=422,
                detail=f"{e}. Earlier dependents were already shifted.",
            ) from e

    def _shift_dates(
        self,
        task: Task,
        new_due_date: datetime,
        new_start_date: Optional[datetime],
        actor_id: Optional[str],
    ) -> None:
        updates = {"due_date": new_due_date}
        if new_start_date is not None:
            updates["start_date"] = new_start_date
        self._apply_update(task, updates, actor_id, action="due_date_shifted")

    def _apply_update(self, task: Task, updates: dict, actor_id: Optional[str], action: str) -> Task:
        """The single write path for task edits: persist, then log the change"""
        old_values = {key: getattr(task, key) for key in updates}
        task = self.repo.update_task(self.db, task, **updates)
        self.repo.log_activity(self.db, task.id, action, old_values, updates, actor_id)
        return task

    def delete_task(self, context: TenantContext, task_id: str) -> dict:
        task = self.get_task(context, task_id)
        self.repo.delete_task(self.db, task)
        return {"message": "Task deleted successfully"}

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def add_dependency(
        self,
        context: TenantContext,
        task_id: str,
        depends_on_task_id: str,
        dependency_type: str = "finish_to_start",
    ) -> dict:
        """Record that task_id depends on depends_on_task_id, refusing cycles"""
        self.get_task(context, task_id)
        self.get_task(context, depends_on_task_id)

        if task_id == depends_on_task_id:
            raise HTTPException(status_code=400, detail="A task cannot depend on itself")
        if self.repo.get_dependency(self.db, task_id, depends_on_task_id):
            return {"message": "Dependency already exists"}
        if self._creates_cycle(task_id, depends_on_task_id):
            raise HTTPException(status_code=400, detail="Circular dependency detected")

        self.repo.add_dependency(self.db, task_id, depends_on_task_id, dependency_type)
        self.repo.log_activity(
            self.db,
            task_id,
            "dependency_added",
            None,
            {"depends_on": depends_on_task_id, "dependency_type": dependency_type},
            context.user_id,
        )
        return {"message": "Dependency added"}

    def remove_dependency(self, context: TenantContext, task_id: str, depends_on_task_id: str) -> dict:
        self.get_task(context, task_id)
        dependency = self.repo.get_dependency(self.db, task_id, depends_on_task_id)
        if not dependency:
            raise HTTPException(status_code=404, detail="Dependency not found")
        self.repo.remove_dependency(self.db, dependency)
        return {"message": "Dependency removed"}

    def _creates_cycle(self, task_id: str, new_dependency_id: str) -> bool:
        """True if task_id is already upstream of new_dependency_id"""
        visited = set()
        stack = [new_dependency_id]
        while stack:
            current = stack.pop()
            if current == task_id:
                return True
            if current in visited:
                continue
            visited.add(current)
            stack.extend(self.repo.get_dependency_ids(self.db, current))
        return False

    def get_dependents(self, context: TenantContext, task_id: str) -> list[Task]:
        self.get_task(context, task_id)
        return self.repo.get_dependents(self.db, context.tenant_id, task_id)

    def get_blocking_tasks(self, context: TenantContext, task_id: str) -> list[Task]:
        """Upstream tasks that are not finished yet"""
        self.get_task(context, task_id)
        blocking = []
        for upstream_id in self.repo.get_dependency_ids(self.db, task_id):
            upstream = self.repo.get_task(self.db, context.tenant_id, upstream_id)
            if upstream and upstream.status not in ("completed", "cancelled"):
                blocking.append(upstream)
        return blocking
