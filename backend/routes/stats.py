"""
Routes pour les statistiques du tableau de bord
"""

from fastapi import APIRouter, Depends

from config import parse_money
from models import EquipamentoStatus
from services.tenancy import get_store
from services.tenant_store import TenantStore

router = APIRouter(prefix="/stats", tags=["Statistiques"])


@router.get("")
async def get_stats(store: TenantStore = Depends(get_store)):
    """
    Compteurs du compte:
    clients synchronisés (empresa active), équipements, en campo et
    receita recorrente (somme des valor_mensal des équipements No Cliente)
    """
    empresa = await store.get_active_empresa()
    clientes_sync = await store.count_clientes(empresa.id) if empresa else 0

    equipamentos = await store.list_equipamentos()
    no_cliente = [e for e in equipamentos if e.status == EquipamentoStatus.NO_CLIENTE.value]
    receita = sum(parse_money(e.valor_mensal) for e in no_cliente)

    return {
        "clientes_sync": clientes_sync,
        "equipamentos": len(equipamentos),
        "equipamentos_no_cliente": len(no_cliente),
        "receita_recorrente": round(receita, 2),
    }
