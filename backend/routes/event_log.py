"""
IXC ERP - Routes Event Log (audit trail)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from services.tenancy import get_store
from services.tenant_store import TenantStore

router = APIRouter(prefix="/event-log", tags=["EventLog"])


@router.get("")
async def list_events(
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    skip: int = Query(0, ge=0),
    store: TenantStore = Depends(get_store),
):
    """Liste les events du compte, plus récents d'abord"""
    return await store.list_events(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        limit=limit,
        skip=skip,
    )
