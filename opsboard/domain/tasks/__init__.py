"""
Tasks Domain

Task CRUD, dependency links and cascading due-date shifts.
"""

from .router import router

__all__ = ["router"]
