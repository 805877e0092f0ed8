"""
IXC ERP - Routes Settings

Paramètres clé/valeur du compte (app_settings).
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException

from services.tenancy import get_store
from services.tenant_store import TenantStore

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("")
async def list_settings(store: TenantStore = Depends(get_store)):
    """Liste tous les settings"""
    settings = await store.get_settings()
    return {"settings": settings, "count": len(settings)}


@router.put("")
async def update_settings(values: Dict[str, Any] = Body(...), store: TenantStore = Depends(get_store)):
    """Crée ou met à jour plusieurs settings"""
    if not values:
        raise HTTPException(status_code=400, detail="Nenhuma configuração informada")
    settings = await store.put_settings(values)
    await store.log_event("settings_update", "settings", "app_settings", {"keys": sorted(values.keys())})
    return {"success": True, "settings": settings}
