"""
IXC ERP - Vérification des contrats IXC d'un client

Un client a un service actif si AU MOINS un contrat a un statut actif
(champ status ou status_contrato, casse ignorée, code court ou mot complet).

Sinon, motif par priorité: bloqué > cancelado/inativo > autre (statuts bruts).

L'id IXC fait foi par le NOM: l'id stocké sur l'équipement peut être un id
local ou obsolète. Un nom absent du catalogue synchronisé = client saisi à
la main -> ignoré, pas d'alerte.
"""

import logging
from typing import Optional, List, Dict, Any, Tuple

from models import ServiceStatus, AlertReason, ResolutionOutcome, Resolution

logger = logging.getLogger("contract_resolver")

STATUS_FIELDS = ("status", "status_contrato")

ACTIVE_TOKENS = {"A", "ATIVO", "S"}
# CM / CA / FA: bloqueio manual, bloqueio automático, financeiro em atraso
BLOCKED_TOKENS = {"B", "BLOQUEADO", "CM", "CA", "FA"}
INACTIVE_TOKENS = {"I", "INATIVO", "D", "DESATIVADO", "C", "CANCELADO"}

MSG_NO_ACTIVE = "Nenhum contrato ativo encontrado"
MSG_BLOCKED = "Contrato Bloqueado"
MSG_INACTIVE = "Contrato Cancelado / Inativo"


def _tokens(record: Dict[str, Any]) -> List[str]:
    tokens = []
    for field in STATUS_FIELDS:
        value = str(record.get(field) or "").strip().upper()
        if value:
            tokens.append(value)
    return tokens


def raw_status(record: Dict[str, Any]) -> str:
    """Statut tel que renvoyé par l'IXC (affichage uniquement)"""
    for field in STATUS_FIELDS:
        value = record.get(field)
        if value:
            return str(value)
    return ""


def normalize_service_status(record: Dict[str, Any]) -> ServiceStatus:
    tokens = _tokens(record)
    if any(t in ACTIVE_TOKENS for t in tokens):
        return ServiceStatus.ACTIVE
    if any(t in BLOCKED_TOKENS for t in tokens):
        return ServiceStatus.BLOCKED
    if any(t in INACTIVE_TOKENS for t in tokens):
        return ServiceStatus.INACTIVE
    return ServiceStatus.UNKNOWN


def _primary_status(record: Dict[str, Any]) -> ServiceStatus:
    token = raw_status(record).strip().upper()
    if token in BLOCKED_TOKENS:
        return ServiceStatus.BLOCKED
    if token in INACTIVE_TOKENS:
        return ServiceStatus.INACTIVE
    return ServiceStatus.UNKNOWN


def classify_services(servicos: List[Dict[str, Any]]) -> Optional[Tuple[AlertReason, str]]:
    """
    None si au moins un contrat est actif (status OU status_contrato), sinon (motif, message).

    Le motif ne lit que le statut principal de chaque contrat (status, à
    défaut status_contrato): status="X", status_contrato="B" -> "Contrato status: X".
    """
    if not servicos:
        return AlertReason.NO_ACTIVE_SERVICE, MSG_NO_ACTIVE

    if any(normalize_service_status(s) == ServiceStatus.ACTIVE for s in servicos):
        return None
    statuses = [_primary_status(s) for s in servicos]
    if ServiceStatus.BLOCKED in statuses:
        return AlertReason.BLOCKED, MSG_BLOCKED
    if ServiceStatus.INACTIVE in statuses:
        return AlertReason.CANCELLED_OR_INACTIVE, MSG_INACTIVE
    return AlertReason.OTHER, f"Contrato status: {', '.join(raw_status(s) for s in servicos)}"


class ContractResolver:
    """Résout l'id IXC d'un client puis classe l'état de ses contrats"""

    def __init__(self, client, store, empresa_id: Optional[str] = None):
        self.client = client
        self.store = store
        self.empresa_id = empresa_id

    async def authoritative_id(self, nome: str, cached_id: Optional[str] = None) -> Optional[str]:
        if nome:
            return await self.store.find_ixc_id_by_nome(nome, self.empresa_id)
        return cached_id or None

    async def resolve(self, nome: str, cached_id: Optional[str] = None) -> Resolution:
        ixc_id = await self.authoritative_id(nome, cached_id)
        if not ixc_id:
            logger.info(f"[RESOLVER] Cliente '{nome}' absent de clientes_sync, ignoré")
            return Resolution(outcome=ResolutionOutcome.SKIPPED)

        servicos = await self.client.get_servicos_by_cliente(ixc_id)
        statuses = [raw_status(s) for s in servicos]
        logger.info(f"[RESOLVER] Cliente '{nome}' (IXC ID: {ixc_id}) - {len(servicos)} contratos {statuses}")

        classification = classify_services(servicos)
        if classification is None:
            return Resolution(outcome=ResolutionOutcome.ACTIVE, ixc_id=ixc_id, statuses=statuses)

        motivo, message = classification
        logger.warning(f"[RESOLVER] ALERTA: Cliente '{nome}' - {message}")
        return Resolution(
            outcome=ResolutionOutcome.ALERT,
            ixc_id=ixc_id,
            motivo=motivo,
            motivo_alerta=message,
            statuses=statuses,
        )
