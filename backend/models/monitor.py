"""
IXC ERP - Modèles du moniteur de contrats (alertes transitoires, jamais persistées)
"""

from enum import Enum
from typing import Optional, List
from pydantic import BaseModel

from .equipamento import Equipamento


class ServiceStatus(str, Enum):
    """Statut normalisé d'un contrat IXC"""
    ACTIVE = "active"
    BLOCKED = "blocked"
    INACTIVE = "inactive"
    UNKNOWN = "unknown"


class AlertReason(str, Enum):
    NO_ACTIVE_SERVICE = "no_active_service"
    BLOCKED = "blocked"
    CANCELLED_OR_INACTIVE = "cancelled_or_inactive"
    OTHER = "other"


class ContractAlert(BaseModel):
    """ReconciliationAlert"""
    equipamento: Equipamento
    cliente_nome: str
    cliente_id: str
    motivo: AlertReason
    motivo_alerta: str  # texte affiché, ex: "Contrato Bloqueado"


class AlertGroup(BaseModel):
    """Alertes regroupées par client (une entrée par équipement)"""
    cliente_id: str
    cliente_nome: str
    motivo_alerta: str
    equipamentos: List[Equipamento]


class MonitorStatus(BaseModel):
    syncing: bool
    sync_log: str
    last_sync: Optional[str] = None
    last_error: Optional[str] = None
    alert_count: int = 0
    dismissed: bool = False
    visible: bool = False


class ResolutionOutcome(str, Enum):
    SKIPPED = "skipped"  # client absent du catalogue synchronisé (saisie manuelle)
    ACTIVE = "active"
    ALERT = "alert"


class Resolution(BaseModel):
    """Résultat de la vérification de contrat d'un client"""
    outcome: ResolutionOutcome
    ixc_id: Optional[str] = None
    motivo: Optional[AlertReason] = None
    motivo_alerta: Optional[str] = None
    statuses: List[str] = []
