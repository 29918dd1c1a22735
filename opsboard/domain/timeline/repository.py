"""Timeline repository - billing due dates for the tenant timeline"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Contract, Invoice

UNPAID_INVOICE_EXCLUDED = ("paid", "cancelled")


class BillingRepository:
    """Read-only queries over invoices and contracts"""

    @staticmethod
    def get_unpaid_invoices(
        db: Session, tenant_id: str, start: Optional[datetime], end: Optional[datetime]
    ) -> list[Invoice]:
        query = db.query(Invoice).filter(
            Invoice.tenant_id == tenant_id,
            Invoice.due_date.isnot(None),
            Invoice.status.notin_(UNPAID_INVOICE_EXCLUDED),
        )
        if start is not None:
            query = query.filter(Invoice.due_date >= start)
        if end is not None:
            query = query.filter(Invoice.due_date < end)
        return query.all()

    @staticmethod
    def get_outstanding_contracts(
        db: Session, tenant_id: str, start: Optional[datetime], end: Optional[datetime]
    ) -> list[Contract]:
        query = db.query(Contract).filter(
            Contract.tenant_id == tenant_id,
            Contract.end_date.isnot(None),
            Contract.payment_status != "paid",
        )
        if start is not None:
            query = query.filter(Contract.end_date >= start)
        if end is not None:
            query = query.filter(Contract.end_date < end)
        return query.all()
