"""Task domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

TaskStatus = Literal["todo", "in_progress", "completed", "cancelled"]
TaskPriority = Literal["low", "medium", "high", "urgent"]
DependencyType = Literal["finish_to_start", "start_to_start", "finish_to_finish"]


class TaskCreate(BaseModel):
    """Schema for creating a new task"""

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    assignedTo: Optional[str] = None
    projectId: Optional[str] = None
    priority: TaskPriority = "medium"
    status: TaskStatus = "todo"
    startDate: Optional[datetime] = None
    dueDate: Optional[datetime] = None
    dependsOn: list[str] = Field(default_factory=list)  # Upstream task ids
    metadata: dict[str, Any] = Field(default_factory=dict)


class TaskUpdate(BaseModel):
    """Schema for updating an existing task"""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    assignedTo: Optional[str] = None
    projectId: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    startDate: Optional[datetime] = None
    dueDate: Optional[datetime] = None
    metadata: Optional[dict[str, Any]] = None


class TaskResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    assignedTo: Optional[str] = None
    createdBy: Optional[str] = None
    projectId: Optional[str] = None
    priority: str
    status: str
    startDate: Optional[datetime] = None
    dueDate: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    isBookingShadow: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)
    createdAt: Optional[datetime] = None


class DependencyRequest(BaseModel):
    dependsOnTaskId: str
    dependencyType: DependencyType = "finish_to_start"


class PropagationResponse(BaseModel):
    rootTaskId: str
    deltaSeconds: float
    shifted: list[str]
    skipped: list[str]
    cycleDetected: bool


class TaskUpdateResponse(BaseModel):
    task: TaskResponse
    propagation: Optional[PropagationResponse] = None
