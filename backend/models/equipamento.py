"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  IXC ERP - Modèle Equipamento (inventaire)                                   ║
║                                                                              ║
║  RÈGLES:                                                                     ║
║  - ixc_cliente_id est une COPIE locale: peut être obsolète ou être un id     ║
║    local attribué avant de connaître l'id IXC réel                           ║
║  - Chaque changement de statut ajoute une ligne d'historique                 ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class EquipamentoStatus(str, Enum):
    EM_ESTOQUE = "Em Estoque"
    NO_CLIENTE = "No Cliente"
    EM_MANUTENCAO = "Em Manutenção"
    DANIFICADO = "Danificado"
    DESCARTADO = "Descartado"


class EquipamentoCreate(BaseModel):
    categoria: str
    modelo: str
    serial_number: Optional[str] = ""
    mac: Optional[str] = ""
    status: EquipamentoStatus = EquipamentoStatus.EM_ESTOQUE
    ixc_cliente_id: Optional[str] = None
    ixc_cliente_nome: Optional[str] = None
    observacao: Optional[str] = ""
    preco_custo: Optional[str] = ""
    valor_mensal: Optional[str] = ""
    ixc_id_externo: Optional[str] = ""


class EquipamentoUpdate(BaseModel):
    categoria: Optional[str] = None
    modelo: Optional[str] = None
    serial_number: Optional[str] = None
    mac: Optional[str] = None
    status: Optional[EquipamentoStatus] = None
    ixc_cliente_id: Optional[str] = None
    ixc_cliente_nome: Optional[str] = None
    observacao: Optional[str] = None
    preco_custo: Optional[str] = None
    valor_mensal: Optional[str] = None
    ixc_id_externo: Optional[str] = None


class Equipamento(BaseModel):
    """TrackedEquipment tel que stocké"""
    model_config = ConfigDict(extra="ignore")

    id: int
    categoria: str = ""
    modelo: str = ""
    serial_number: Optional[str] = ""
    mac: Optional[str] = ""
    status: str = EquipamentoStatus.EM_ESTOQUE.value
    ixc_cliente_id: Optional[str] = None
    ixc_cliente_nome: Optional[str] = None
    observacao: Optional[str] = ""
    preco_custo: Optional[str] = ""
    valor_mensal: Optional[str] = ""
    ixc_id_externo: Optional[str] = ""


class HistoricoEntry(BaseModel):
    """EquipmentHistoryEntry - append-only"""
    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    equipamento_id: int
    data: str = ""
    acao: str
    cliente_id: Optional[str] = None
    cliente_nome: Optional[str] = None
    observacao: Optional[str] = ""


class ProvisionRequest(BaseModel):
    cliente_id: str
    cliente_nome: str
    valor_mensal: Optional[str] = None
    observacao: Optional[str] = ""


class ReturnRequest(BaseModel):
    destino: str = "ESTOQUE"  # ESTOQUE | MANUTENCAO
    observacao: Optional[str] = ""


class StatusChangeRequest(BaseModel):
    status: EquipamentoStatus
    observacao: Optional[str] = ""
