"""Timeline schemas"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

TimelineKind = Literal["event", "task", "invoice", "contract"]


class TimelineItemResponse(BaseModel):
    id: str
    kind: TimelineKind
    title: str
    start: datetime
    end: datetime
    allDay: bool = False
    status: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class TimelineResponse(BaseModel):
    participantId: str
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    items: list[TimelineItemResponse]
