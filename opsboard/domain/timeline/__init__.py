"""
Timeline Domain

Read-only merge of events, open tasks, unpaid invoices and outstanding
contract payments for one participant.
"""

from .router import router

__all__ = ["router"]
