"""
IXC ERP - Contexte compte / tenant (dépendances FastAPI)

L'authentification est gérée en amont: chaque requête porte X-Account-Id.
Le contexte tenant (compte + empresa active) est construit ici puis passé
explicitement au client IXC, à la sync et au resolver.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException

import config
from models import TenantContext
from services.ixc_client import IXCClient
from services.tenant_store import TenantStore


def get_account_id(x_account_id: Optional[str] = Header(None)) -> str:
    """Compte courant (X-Account-Id), DEFAULT_ACCOUNT_ID à défaut"""
    account_id = (x_account_id or "").strip()
    return account_id or config.DEFAULT_ACCOUNT_ID


def get_store(account_id: str = Depends(get_account_id)) -> TenantStore:
    return TenantStore(account_id)


async def get_tenant_context(store: TenantStore = Depends(get_store)) -> TenantContext:
    """Empresa active du compte, 400 si aucune n'est configurée"""
    empresa = await store.get_active_empresa()
    if not empresa:
        raise HTTPException(status_code=400, detail="Nenhuma empresa IXC ativa configurada")
    return TenantContext(account_id=store.account_id, empresa=empresa)


def get_ixc_client_factory():
    """Fabrique du client IXC (remplaçable en test)"""
    return IXCClient
