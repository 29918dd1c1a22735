"""Timeline router"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...tenancy import TenantContext, get_tenant_context
from .schemas import TimelineItemResponse, TimelineResponse
from .service import TimelineService

router = APIRouter(prefix="/timeline", tags=["Timeline"])


def get_timeline_service(db: Session = Depends(get_db)) -> TimelineService:
    return TimelineService(db)


@router.get("", response_model=TimelineResponse)
async def get_timeline(
    participant_id: Optional[str] = Query(None, description="Defaults to the caller"),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    context: TenantContext = Depends(get_tenant_context),
    service: TimelineService = Depends(get_timeline_service),
):
    """Events, open tasks and billing due dates in one sorted list"""
    items = service.timeline(context, participant_id, start, end)
    return TimelineResponse(
        participantId=participant_id or context.user_id,
        start=start,
        end=end,
        items=[
            TimelineItemResponse(
                id=item.id,
                kind=item.kind,
                title=item.title,
                start=item.start,
                end=item.end,
                allDay=item.all_day,
                status=item.status,
                metadata=item.metadata,
            )
            for item in items
        ],
    )
