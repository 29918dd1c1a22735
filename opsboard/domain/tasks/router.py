"""Task router - FastAPI endpoints for tasks and their dependencies"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import Task
from ...tenancy import TenantContext, get_tenant_context
from .propagation import PropagationResult
from .schemas import (
    DependencyRequest,
    PropagationResponse,
    TaskCreate,
    TaskResponse,
    TaskStatus,
    TaskUpdate,
    TaskUpdateResponse,
)
from .service import TaskService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def get_task_service(db: Session = Depends(get_db)) -> TaskService:
    """Dependency injection for TaskService"""
    return TaskService(db)


def serialize_task(task: Task) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        title=task.title,
        description=task.description,
        assignedTo=task.assigned_to,
        createdBy=task.created_by,
        projectId=task.project_id,
        priority=task.priority,
        status=task.status,
        startDate=task.start_date,
        dueDate=task.due_date,
        completedAt=task.completed_at,
        isBookingShadow=task.is_booking_shadow,
        metadata=task.task_metadata or {},
        createdAt=task.created_at,
    )


def serialize_propagation(result: PropagationResult) -> PropagationResponse:
    return PropagationResponse(
        rootTaskId=result.root_task_id,
        deltaSeconds=result.delta.total_seconds(),
        shifted=result.shifted,
        skipped=result.skipped,
        cycleDetected=result.cycle_detected,
    )


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    assigned_to: Optional[str] = Query(None),
    status: Optional[TaskStatus] = Query(None),
    include_shadows: bool = Query(False, description="Include booking shadow tasks"),
    context: TenantContext = Depends(get_tenant_context),
    service: TaskService = Depends(get_task_service),
):
    tasks = service.list_tasks(context, assigned_to, status, include_shadows)
    return [serialize_task(t) for t in tasks]


@router.post("", response_model=TaskResponse)
async def create_task(
    data: TaskCreate,
    context: TenantContext = Depends(get_tenant_context),
    service: TaskService = Depends(get_task_service),
):
    return serialize_task(service.create_task(context, data))


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    context: TenantContext = Depends(get_tenant_context),
    service: TaskService = Depends(get_task_service),
):
    return serialize_task(service.get_task(context, task_id))


@router.patch("/{task_id}", response_model=TaskUpdateResponse)
async def update_task(
    task_id: str,
    data: TaskUpdate,
    context: TenantContext = Depends(get_tenant_context),
    service: TaskService = Depends(get_task_service),
):
    """Update a task. Moving the due date shifts all dependent tasks."""
    task, propagation = service.update_task(context, task_id, data)
    return TaskUpdateResponse(
        task=serialize_task(task),
        propagation=serialize_propagation(propagation) if propagation else None,
    )


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    context: TenantContext = Depends(get_tenant_context),
    service: TaskService = Depends(get_task_service),
):
    return service.delete_task(context, task_id)


# ============================================================================
# DEPENDENCIES
# ============================================================================


@router.post("/{task_id}/dependencies")
async def add_dependency(
    task_id: str,
    data: DependencyRequest,
    context: TenantContext = Depends(get_tenant_context),
    service: TaskService = Depends(get_task_service),
):
    return service.add_dependency(context, task_id, data.dependsOnTaskId, data.dependencyType)


@router.delete("/{task_id}/dependencies/{depends_on_task_id}")
async def remove_dependency(
    task_id: str,
    depends_on_task_id: str,
    context: TenantContext = Depends(get_tenant_context),
    service: TaskService = Depends(get_task_service),
):
    return service.remove_dependency(context, task_id, depends_on_task_id)


@router.get("/{task_id}/dependents", response_model=list[TaskResponse])
async def get_dependents(
    task_id: str,
    context: TenantContext = Depends(get_tenant_context),
    service: TaskService = Depends(get_task_service),
):
    return [serialize_task(t) for t in service.get_dependents(context, task_id)]


@router.get("/{task_id}/blocking", response_model=list[TaskResponse])
async def get_blocking_tasks(
    task_id: str,
    context: TenantContext = Depends(get_tenant_context),
    service: TaskService = Depends(get_task_service),
):
    return [serialize_task(t) for t in service.get_blocking_tasks(context, task_id)]
