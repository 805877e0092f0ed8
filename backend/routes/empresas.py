"""
IXC ERP - Routes Empresas IXC (configuration upstream par compte)

CRUD + activation exclusive + test de connexion.
L'activation démarre le moniteur de contrats du compte.
"""

from fastapi import APIRouter, Depends, HTTPException

from models import EmpresaCreate, EmpresaUpdate, TenantContext
from scheduler_service import task_scheduler
from services.tenancy import get_store, get_ixc_client_factory
from services.tenant_store import TenantStore

router = APIRouter(prefix="/empresas", tags=["Empresas IXC"])


@router.get("")
async def list_empresas(store: TenantStore = Depends(get_store)):
    """Liste les empresas IXC du compte"""
    empresas = await store.list_empresas()
    return {"empresas": empresas, "count": len(empresas)}


@router.get("/ativa")
async def get_active_empresa(store: TenantStore = Depends(get_store)):
    """Empresa active (null si aucune)"""
    return {"empresa": await store.get_active_empresa()}


@router.get("/{empresa_id}")
async def get_empresa(empresa_id: str, store: TenantStore = Depends(get_store)):
    empresa = await store.get_empresa(empresa_id)
    if not empresa:
        raise HTTPException(status_code=404, detail="Empresa não encontrada")
    return {"empresa": empresa}


@router.post("")
async def create_empresa(data: EmpresaCreate, store: TenantStore = Depends(get_store)):
    """Crée une empresa (inactive jusqu'à activation)"""
    if data.id and await store.get_empresa(data.id):
        raise HTTPException(status_code=400, detail=f"Empresa '{data.id}' já existe")
    empresa = await store.save_empresa(data)
    await store.log_event("empresa_create", "empresa", empresa.id, {"nome": empresa.nome, "url": empresa.url})
    return {"success": True, "empresa": empresa}


@router.put("/{empresa_id}")
async def update_empresa(empresa_id: str, data: EmpresaUpdate, store: TenantStore = Depends(get_store)):
    empresa = await store.update_empresa(empresa_id, data)
    if not empresa:
        raise HTTPException(status_code=404, detail="Empresa não encontrada")
    return {"success": True, "empresa": empresa}


@router.delete("/{empresa_id}")
async def delete_empresa(empresa_id: str, store: TenantStore = Depends(get_store)):
    """Supprime l'empresa et ses clients synchronisés"""
    empresa = await store.get_empresa(empresa_id)
    if not empresa:
        raise HTTPException(status_code=404, detail="Empresa não encontrada")

    await store.delete_empresa(empresa_id)
    if empresa.ativa:
        task_scheduler.stop_monitor(store.account_id)
    await store.log_event("empresa_delete", "empresa", empresa_id, {"nome": empresa.nome})
    return {"success": True}


@router.post("/{empresa_id}/activate")
async def activate_empresa(empresa_id: str, store: TenantStore = Depends(get_store)):
    """Active l'empresa (désactive les autres) et démarre le moniteur"""
    empresa = await store.activate_empresa(empresa_id)
    if not empresa:
        raise HTTPException(status_code=404, detail="Empresa não encontrada")

    await store.log_event("empresa_activate", "empresa", empresa_id, {"nome": empresa.nome})
    task_scheduler.start_monitor(store.account_id)
    return {"success": True, "empresa": empresa}


@router.post("/{empresa_id}/test")
async def test_empresa(
    empresa_id: str,
    store: TenantStore = Depends(get_store),
    client_factory=Depends(get_ixc_client_factory),
):
    """Teste la connexion IXC (cliente.id = 1, rp 1)"""
    empresa = await store.get_empresa(empresa_id)
    if not empresa:
        raise HTTPException(status_code=404, detail="Empresa não encontrada")

    ctx = TenantContext(account_id=store.account_id, empresa=empresa)
    async with client_factory(ctx) as client:
        result = await client.test_connection()
    return result
