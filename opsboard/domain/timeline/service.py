"""Timeline service - one sorted view over events, tasks and billing due dates"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import CalendarEvent, Contract, Invoice, Task
from ...tenancy import TenantContext
from ..scheduling.intervals import to_utc_naive
from ..scheduling.repository import CalendarRepository, TenantRepository
from ..tasks.repository import TaskRepository
from .repository import BillingRepository

logger = logging.getLogger(__name__)

# Tie-break for items starting at the same instant
KIND_ORDER = {"event": 0, "task": 1, "invoice": 2, "contract": 3}


@dataclass
class TimelineItem:
    id: str
    kind: str
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    status: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


def event_item(event: CalendarEvent) -> TimelineItem:
    return TimelineItem(
        id=event.id,
        kind="event",
        title=event.title,
        start=event.start_time,
        end=event.end_time,
        all_day=event.is_all_day,
        metadata={"type": event.event_type, "videoRoomId": event.video_room_id},
    )


def task_item(task: Task) -> TimelineItem:
    return TimelineItem(
        id=task.id,
        kind="task",
        title=task.title,
        start=task.due_date,
        end=task.due_date,
        all_day=True,
        status=task.status,
        metadata={"priority": task.priority, "projectId": task.project_id},
    )


def invoice_item(invoice: Invoice) -> TimelineItem:
    return TimelineItem(
        id=invoice.id,
        kind="invoice",
        title=f"Invoice due: {invoice.invoice_number or invoice.title}",
        start=invoice.due_date,
        end=invoice.due_date,
        all_day=True,
        status=invoice.status,
        metadata={"amount": invoice.amount, "currency": invoice.currency},
    )


def contract_item(contract: Contract) -> TimelineItem:
    return TimelineItem(
        id=contract.id,
        kind="contract",
        title=f"Payment due: {contract.title}",
        start=contract.end_date,
        end=contract.end_date,
        all_day=True,
        status=contract.payment_status,
        metadata={"totalValue": contract.total_value},
    )


class TimelineService:
    """Presentation merge only; no conflict semantics"""

    def __init__(self, db: Session):
        self.db = db

    def timeline(
        self,
        context: TenantContext,
        participant_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[TimelineItem]:
        participant_id = participant_id or context.user_id
        if participant_id != context.user_id and not TenantRepository.get_membership(
            self.db, context.tenant_id, participant_id
        ):
            raise HTTPException(status_code=404, detail="Participant not found")

        start = to_utc_naive(start)
        end = to_utc_naive(end)
        if start and end and end < start:
            raise HTTPException(status_code=400, detail="end must not be before start")

        events = CalendarRepository.get_events(self.db, context.tenant_id, participant_id, start, end)
        tasks = TaskRepository.get_tasks_due_between(
            self.db, context.tenant_id, participant_id, start, end
        )
        invoices = BillingRepository.get_unpaid_invoices(self.db, context.tenant_id, start, end)
        contracts = BillingRepository.get_outstanding_contracts(self.db, context.tenant_id, start, end)

        items = (
            [event_item(e) for e in events]
            + [task_item(t) for t in tasks]
            + [invoice_item(i) for i in invoices]
            + [contract_item(c) for c in contracts]
        )
        items.sort(key=lambda item: (item.start, KIND_ORDER[item.kind]))

        logger.info(
            f"🗓️ Timeline for {participant_id}: {len(events)} events, {len(tasks)} tasks, "
            f"{len(invoices)} invoices, {len(contracts)} contracts"
        )
        return items
