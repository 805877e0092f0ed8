"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  IXC ERP - Mouvements d'inventaire                                           ║
║                                                                              ║
║  Chaque mouvement:                                                           ║
║  - met à jour statut + client lié de l'équipement                            ║
║  - ajoute UNE ligne d'historique (append-only)                               ║
║  - écrit un event d'audit                                                    ║
║                                                                              ║
║  "No Cliente" IMPLIQUE ixc_cliente_id non vide                               ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
from typing import Optional

from models import Equipamento, EquipamentoCreate, EquipamentoStatus

logger = logging.getLogger("inventory")

ACAO_CADASTRO = "Cadastrado no Estoque"
ACAO_FORNECIDO = "Fornecido ao Cliente"
ACAO_DEVOLVIDO = "Devolvido ao Estoque"
ACAO_MANUTENCAO = "Enviado para Manutenção"

RETURN_DESTINATIONS = {
    "ESTOQUE": (EquipamentoStatus.EM_ESTOQUE, ACAO_DEVOLVIDO),
    "MANUTENCAO": (EquipamentoStatus.EM_MANUTENCAO, ACAO_MANUTENCAO),
}


class EquipamentoNotFound(Exception):
    def __init__(self, equipamento_id):
        super().__init__(f"Equipamento {equipamento_id} não encontrado")
        self.equipamento_id = equipamento_id


class InventoryError(Exception):
    """Mouvement refusé (destination inconnue, client manquant...)"""
    pass


async def _get_or_raise(store, equipamento_id: int) -> Equipamento:
    equipamento = await store.get_equipamento(equipamento_id)
    if not equipamento:
        raise EquipamentoNotFound(equipamento_id)
    return equipamento


async def register_equipamento(store, data: EquipamentoCreate) -> Equipamento:
    """Création + ligne d'historique initiale"""
    if data.status == EquipamentoStatus.NO_CLIENTE and not data.ixc_cliente_id:
        raise InventoryError("Equipamento 'No Cliente' exige um cliente vinculado")
    equipamento = await store.create_equipamento(data)
    await store.add_historico(
        equipamento.id,
        ACAO_CADASTRO,
        cliente_id=equipamento.ixc_cliente_id,
        cliente_nome=equipamento.ixc_cliente_nome,
        observacao=data.observacao or "Cadastro Inicial",
    )
    await store.log_event("equipamento_create", "equipamento", str(equipamento.id), {
        "modelo": equipamento.modelo,
        "serial_number": equipamento.serial_number,
    })
    return equipamento


async def provision_to_cliente(
    store,
    equipamento_id: int,
    cliente_id: str,
    cliente_nome: str,
    valor_mensal: Optional[str] = None,
    observacao: str = "",
) -> Equipamento:
    """Installe l'équipement chez un client IXC"""
    if not cliente_id:
        raise InventoryError("Cliente obrigatório")
    equipamento = await _get_or_raise(store, equipamento_id)

    fields = {
        "status": EquipamentoStatus.NO_CLIENTE.value,
        "ixc_cliente_id": str(cliente_id),
        "ixc_cliente_nome": cliente_nome,
    }
    if valor_mensal is not None:
        fields["valor_mensal"] = valor_mensal
    updated = await store.update_equipamento(equipamento.id, fields)

    await store.add_historico(
        equipamento.id,
        ACAO_FORNECIDO,
        cliente_id=str(cliente_id),
        cliente_nome=cliente_nome,
        observacao=observacao,
    )
    await store.log_event("equipamento_provision", "equipamento", str(equipamento.id), {
        "cliente_id": str(cliente_id),
        "cliente_nome": cliente_nome,
        "old_status": equipamento.status,
    })
    logger.info(f"[INVENTORY] Equipamento {equipamento.id} -> cliente {cliente_id} ({cliente_nome})")
    return updated


async def return_to_stock(
    store,
    equipamento_id: int,
    destino: str = "ESTOQUE",
    observacao: str = "",
) -> Equipamento:
    """Retour en stock ou en maintenance; le lien client est effacé"""
    destino = (destino or "ESTOQUE").upper()
    if destino not in RETURN_DESTINATIONS:
        raise InventoryError(f"Destino inválido: {destino}")
    status, acao = RETURN_DESTINATIONS[destino]

    equipamento = await _get_or_raise(store, equipamento_id)
    updated = await store.update_equipamento(equipamento.id, {
        "status": status.value,
        "ixc_cliente_id": None,
        "ixc_cliente_nome": None,
    })

    # L'historique garde le client d'où vient l'équipement
    await store.add_historico(
        equipamento.id,
        acao,
        cliente_id=equipamento.ixc_cliente_id,
        cliente_nome=equipamento.ixc_cliente_nome,
        observacao=observacao,
    )
    await store.log_event("equipamento_return", "equipamento", str(equipamento.id), {
        "destino": destino,
        "cliente_id": equipamento.ixc_cliente_id,
    })
    return updated


async def change_status(
    store,
    equipamento_id: int,
    status: EquipamentoStatus,
    observacao: str = "",
) -> Equipamento:
    """Changement de statut manuel (Danificado, Descartado...)"""
    status = EquipamentoStatus(status)
    equipamento = await _get_or_raise(store, equipamento_id)
    if status == EquipamentoStatus.NO_CLIENTE and not equipamento.ixc_cliente_id:
        raise InventoryError("Use o fornecimento ao cliente para vincular um cliente")

    fields = {"status": status.value}
    if status != EquipamentoStatus.NO_CLIENTE:
        fields["ixc_cliente_id"] = None
        fields["ixc_cliente_nome"] = None
    updated = await store.update_equipamento(equipamento.id, fields)

    await store.add_historico(
        equipamento.id,
        f"Status alterado: {equipamento.status} → {status.value}",
        cliente_id=equipamento.ixc_cliente_id,
        cliente_nome=equipamento.ixc_cliente_nome,
        observacao=observacao,
    )
    await store.log_event("equipamento_status", "equipamento", str(equipamento.id), {
        "old_status": equipamento.status,
        "new_status": status.value,
    })
    return updated
