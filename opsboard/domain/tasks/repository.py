"""Task repository - Database operations for tasks, dependencies and activity"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from ...models import Task, TaskActivity, TaskDependency


def _jsonable(values: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if values is None:
        return None
    return {k: v.isoformat() if isinstance(v, datetime) else v for k, v in values.items()}


class TaskRepository:
    """Repository for task database operations"""

    @staticmethod
    def get_task(db: Session, tenant_id: str, task_id: str) -> Optional[Task]:
        return db.query(Task).filter(Task.id == task_id, Task.tenant_id == tenant_id).first()

    @staticmethod
    def list_tasks(
        db: Session,
        tenant_id: str,
        assigned_to: Optional[str] = None,
        status: Optional[str] = None,
        include_shadows: bool = False,
    ) -> list[Task]:
        """Tasks for the board. Booking shadows are hidden unless asked for."""
        query = db.query(Task).filter(Task.tenant_id == tenant_id)
        if not include_shadows:
            query = query.filter(Task.is_booking_shadow.is_(False))
        if assigned_to:
            query = query.filter(Task.assigned_to == assigned_to)
        if status:
            query = query.filter(Task.status == status)
        return query.order_by(Task.due_date.is_(None), Task.due_date.asc()).all()

    @staticmethod
    def get_tasks_due_between(
        db: Session,
        tenant_id: str,
        assigned_to: str,
        start: Optional[datetime],
        end: Optional[datetime],
    ) -> list[Task]:
        query = db.query(Task).filter(
            Task.tenant_id == tenant_id,
            Task.assigned_to == assigned_to,
            Task.due_date.isnot(None),
            Task.is_booking_shadow.is_(False),
            Task.status.notin_(["completed", "cancelled"]),
        )
        if start is not None:
            query = query.filter(Task.due_date >= start)
        if end is not None:
            query = query.filter(Task.due_date < end)
        return query.all()

    @staticmethod
    def create_task(db: Session, tenant_id: str, **task_data) -> Task:
        task = Task(tenant_id=tenant_id, **task_data)
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def update_task(db: Session, task: Task, **updates) -> Task:
        for key, value in updates.items():
            if hasattr(task, key):
                setattr(task, key, value)
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def delete_task(db: Session, task: Task) -> None:
        db.query(TaskDependency).filter(
            (TaskDependency.task_id == task.id) | (TaskDependency.depends_on_task_id == task.id)
        ).delete(synchronize_session=False)
        db.delete(task)
        db.commit()

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    @staticmethod
    def get_dependents(db: Session, tenant_id: str, task_id: str) -> list[Task]:
        """Tasks recorded as depending on task_id"""
        return (
            db.query(Task)
            .join(TaskDependency, TaskDependency.task_id == Task.id)
            .filter(TaskDependency.depends_on_task_id == task_id, Task.tenant_id == tenant_id)
            .order_by(Task.created_at.asc(), Task.id.asc())
            .all()
        )

    @staticmethod
    def get_dependency_ids(db: Session, task_id: str) -> list[str]:
        """Upstream task ids that task_id depends on"""
        rows = (
            db.query(TaskDependency.depends_on_task_id)
            .filter(TaskDependency.task_id == task_id)
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def get_dependency(db: Session, task_id: str, depends_on_task_id: str) -> Optional[TaskDependency]:
        return (
            db.query(TaskDependency)
            .filter(
                TaskDependency.task_id == task_id,
                TaskDependency.depends_on_task_id == depends_on_task_id,
            )
            .first()
        )

    @staticmethod
    def add_dependency(
        db: Session, task_id: str, depends_on_task_id: str, dependency_type: str
    ) -> TaskDependency:
        dependency = TaskDependency(
            task_id=task_id,
            depends_on_task_id=depends_on_task_id,
            dependency_type=dependency_type,
        )
        db.add(dependency)
        db.commit()
        db.refresh(dependency)
        return dependency

    @staticmethod
    def remove_dependency(db: Session, dependency: TaskDependency) -> None:
        db.delete(dependency)
        db.commit()

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------

    @staticmethod
    def log_activity(
        db: Session,
        task_id: str,
        action: str,
        old_values: Optional[dict[str, Any]] = None,
        new_values: Optional[dict[str, Any]] = None,
        actor_id: Optional[str] = None,
    ) -> TaskActivity:
        activity = TaskActivity(
            task_id=task_id,
            action=action,
            old_values=_jsonable(old_values),
            new_values=_jsonable(new_values),
            actor_id=actor_id,
        )
        db.add(activity)
        db.commit()
        return activity
