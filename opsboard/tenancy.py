"""Tenant scoping for dashboard requests.

Identity is established upstream; this dependency only resolves which
tenant the request acts on and checks the caller belongs to it.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .database import get_db
from .models import TenantUser

logger = logging.getLogger(__name__)

ADMIN_ROLES = ("owner", "admin")


@dataclass(frozen=True)
class TenantContext:
    tenant_id: str
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


async def get_tenant_context(
    x_tenant_id: str = Header(..., alias="X-Tenant-ID"),
    x_user_id: str = Header(..., alias="X-User-ID"),
    db: Session = Depends(get_db),
) -> TenantContext:
    membership = (
        db.query(TenantUser)
        .filter(TenantUser.tenant_id == x_tenant_id, TenantUser.user_id == x_user_id)
        .first()
    )
    if not membership:
        logger.warning(f"🚫 User {x_user_id} is not a member of tenant {x_tenant_id}")
        raise HTTPException(status_code=403, detail="Not a member of this workspace")
    return TenantContext(tenant_id=x_tenant_id, user_id=x_user_id, role=membership.role)
