"""
IXC ERP - Routes Clientes IXC

- Catalogue local synchronisé (liste, recherche, lookup id par nom)
- Sync complète à la demande
- Consultation live de l'IXC (recherche, équipements, vérification contrat)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from models import TenantContext
from services.contract_resolver import ContractResolver
from services.customer_sync import sync_all_clientes
from services.ixc_errors import IXCError, http_status_for
from services.tenancy import get_store, get_tenant_context, get_ixc_client_factory
from services.tenant_store import TenantStore

logger = logging.getLogger("routes.clientes")

router = APIRouter(prefix="/clientes", tags=["Clientes IXC"])


def _ixc_error(e: IXCError) -> HTTPException:
    return HTTPException(status_code=http_status_for(e), detail=e.message)


@router.get("")
async def list_clientes(
    q: str = Query("", description="Razão, CPF/CNPJ ou telefone"),
    rp: int = Query(50, ge=1, le=200),
    ctx: TenantContext = Depends(get_tenant_context),
    store: TenantStore = Depends(get_store),
):
    """Clients synchronisés de l'empresa active"""
    return await store.list_clientes(ctx.empresa_id, q=q, rp=rp)


@router.post("/sync")
async def sync_clientes(
    ctx: TenantContext = Depends(get_tenant_context),
    store: TenantStore = Depends(get_store),
    client_factory=Depends(get_ixc_client_factory),
):
    """Sync complète des clients actifs IXC -> catalogue local"""
    try:
        async with client_factory(ctx) as client:
            total = await sync_all_clientes(client, store, ctx.empresa_id)
    except IXCError as e:
        logger.warning(f"[SYNC] {ctx.empresa_id}: {e.message}")
        await store.log_event("sync_failed", "clientes_sync", ctx.empresa_id, {"error": e.message})
        raise _ixc_error(e)

    await store.log_event("sync_completed", "clientes_sync", ctx.empresa_id, {"total": total})
    return {"success": True, "total": total}


@router.get("/buscar-ixc-id")
async def buscar_ixc_id(
    nome: str = Query(..., min_length=1),
    ctx: TenantContext = Depends(get_tenant_context),
    store: TenantStore = Depends(get_store),
):
    """Id IXC d'un client par razão social exacte (catalogue synchronisé)"""
    ixc_id = await store.find_ixc_id_by_nome(nome, ctx.empresa_id)
    return {"found": ixc_id is not None, "ixc_id": ixc_id}


@router.get("/verificar-contrato")
async def verificar_contrato(
    nome: str = Query(""),
    cliente_id: str = Query(""),
    ctx: TenantContext = Depends(get_tenant_context),
    store: TenantStore = Depends(get_store),
    client_factory=Depends(get_ixc_client_factory),
):
    """Vérifie les contrats IXC d'un client (même règle que le moniteur)"""
    if not nome and not cliente_id:
        raise HTTPException(status_code=400, detail="Informe nome ou cliente_id")
    try:
        async with client_factory(ctx) as client:
            resolution = await ContractResolver(client, store, ctx.empresa_id).resolve(nome, cliente_id)
    except IXCError as e:
        raise _ixc_error(e)
    return resolution


@router.get("/ixc/search")
async def search_clientes_ixc(
    q: str = Query(..., min_length=1),
    campo: str = Query("razao"),
    ctx: TenantContext = Depends(get_tenant_context),
    client_factory=Depends(get_ixc_client_factory),
):
    """Recherche live dans l'IXC (razao, fone_celular, fn_cgccpf)"""
    try:
        async with client_factory(ctx) as client:
            registros = await client.search_clientes(q, campo)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except IXCError as e:
        raise _ixc_error(e)
    return {"registros": registros, "count": len(registros)}


@router.get("/ixc/{cliente_id}")
async def get_cliente_ixc(
    cliente_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    client_factory=Depends(get_ixc_client_factory),
):
    try:
        async with client_factory(ctx) as client:
            cliente = await client.get_cliente_by_id(cliente_id)
    except IXCError as e:
        raise _ixc_error(e)
    if not cliente:
        raise HTTPException(status_code=404, detail="Cliente não encontrado no IXC")
    return {"cliente": cliente}


@router.get("/ixc/{cliente_id}/equipamentos")
async def get_equipamentos_ixc(
    cliente_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    client_factory=Depends(get_ixc_client_factory),
):
    """ONUs, rádios, contratos et boletos ouverts d'un client IXC"""
    try:
        async with client_factory(ctx) as client:
            return await client.get_equipamentos_by_cliente(cliente_id)
    except IXCError as e:
        raise _ixc_error(e)
