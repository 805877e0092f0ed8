"""
IXC ERP - Routes Equipamentos (inventaire)

CRUD + historique + mouvements (fourniture client, retour, statut).
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from models import (
    EquipamentoCreate,
    EquipamentoStatus,
    EquipamentoUpdate,
    ProvisionRequest,
    ReturnRequest,
    StatusChangeRequest,
)
from services.inventory import (
    EquipamentoNotFound,
    InventoryError,
    change_status,
    provision_to_cliente,
    register_equipamento,
    return_to_stock,
)
from services.tenancy import get_store
from services.tenant_store import TenantStore

router = APIRouter(prefix="/equipamentos", tags=["Equipamentos"])


@router.get("")
async def list_equipamentos(
    status: Optional[EquipamentoStatus] = Query(None),
    store: TenantStore = Depends(get_store),
):
    equipamentos = await store.list_equipamentos(status=status.value if status else None)
    return {"equipamentos": equipamentos, "count": len(equipamentos)}


@router.get("/{equipamento_id}")
async def get_equipamento(equipamento_id: int, store: TenantStore = Depends(get_store)):
    equipamento = await store.get_equipamento(equipamento_id)
    if not equipamento:
        raise HTTPException(status_code=404, detail="Equipamento não encontrado")
    return {"equipamento": equipamento}


@router.post("")
async def create_equipamento(data: EquipamentoCreate, store: TenantStore = Depends(get_store)):
    try:
        equipamento = await register_equipamento(store, data)
    except InventoryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "equipamento": equipamento}


@router.put("/{equipamento_id}")
async def update_equipamento(
    equipamento_id: int,
    data: EquipamentoUpdate,
    store: TenantStore = Depends(get_store),
):
    """Édition manuelle (une ligne d'historique)"""
    current = await store.get_equipamento(equipamento_id)
    if not current:
        raise HTTPException(status_code=404, detail="Equipamento não encontrado")

    fields = data.model_dump(exclude_unset=True)
    new_status = fields.get("status") or current.status
    cliente_id = fields.get("ixc_cliente_id", current.ixc_cliente_id)
    if new_status == EquipamentoStatus.NO_CLIENTE and not cliente_id:
        raise HTTPException(status_code=400, detail="Equipamento 'No Cliente' exige um cliente vinculado")

    equipamento = await store.update_equipamento(equipamento_id, fields)
    await store.add_historico(
        equipamento_id,
        f"Edição Manual (Status: {equipamento.status})",
        cliente_id=equipamento.ixc_cliente_id,
        cliente_nome=equipamento.ixc_cliente_nome,
        observacao=fields.get("observacao") or "Atualizado via cadastro manual",
    )
    return {"success": True, "equipamento": equipamento}


@router.delete("/{equipamento_id}")
async def delete_equipamento(equipamento_id: int, store: TenantStore = Depends(get_store)):
    if not await store.delete_equipamento(equipamento_id):
        raise HTTPException(status_code=404, detail="Equipamento não encontrado")
    await store.log_event("equipamento_delete", "equipamento", str(equipamento_id))
    return {"success": True}


@router.get("/{equipamento_id}/historico")
async def get_historico(equipamento_id: int, store: TenantStore = Depends(get_store)):
    historico = await store.list_historico(equipamento_id)
    return {"historico": historico, "count": len(historico)}


@router.post("/{equipamento_id}/provision")
async def provision(equipamento_id: int, data: ProvisionRequest, store: TenantStore = Depends(get_store)):
    """Fourniture au client IXC -> No Cliente"""
    try:
        equipamento = await provision_to_cliente(
            store, equipamento_id, data.cliente_id, data.cliente_nome,
            valor_mensal=data.valor_mensal, observacao=data.observacao or "",
        )
    except EquipamentoNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InventoryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "equipamento": equipamento}


@router.post("/{equipamento_id}/return")
async def return_equipamento(equipamento_id: int, data: ReturnRequest, store: TenantStore = Depends(get_store)):
    """Retour en stock (ESTOQUE) ou en maintenance (MANUTENCAO)"""
    try:
        equipamento = await return_to_stock(
            store, equipamento_id, destino=data.destino, observacao=data.observacao or "",
        )
    except EquipamentoNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InventoryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "equipamento": equipamento}


@router.post("/{equipamento_id}/status")
async def update_status(equipamento_id: int, data: StatusChangeRequest, store: TenantStore = Depends(get_store)):
    try:
        equipamento = await change_status(store, equipamento_id, data.status, observacao=data.observacao or "")
    except EquipamentoNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InventoryError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "equipamento": equipamento}
