"""
IXC ERP - Moniteur de contrats (tâche de fond par compte)

Cycle:
1. Sync complète des clients IXC de l'empresa active
2. Équipements "No Cliente" avec un client lié
3. Vérification des contrats, une fois par client
4. Publication des alertes en fin de cycle (jamais partielle):
   alertes -> remplacées et ré-affichées même si écartées, aucune -> vidées

Démarrage: 1er cycle après MONITOR_WARMUP_SECONDS, puis toutes les
MONITOR_INTERVAL_MINUTES. Un seul cycle à la fois par compte.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import config
from config import now_iso
from models import (
    AlertGroup,
    ContractAlert,
    Equipamento,
    EquipamentoStatus,
    MonitorStatus,
    ResolutionOutcome,
    TenantContext,
)
from services.contract_resolver import ContractResolver
from services.customer_sync import sync_all_clientes
from services.ixc_client import IXCClient
from services.tenant_store import TenantStore

logger = logging.getLogger("contract_monitor")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContractMonitor:
    """État et cycle du moniteur pour un compte"""

    def __init__(
        self,
        account_id: str,
        store_factory: Optional[Callable] = None,
        client_factory: Optional[Callable] = None,
        clock: Optional[Callable[[], datetime]] = None,
        warmup_seconds: Optional[int] = None,
        interval_minutes: Optional[int] = None,
    ):
        self.account_id = str(account_id)
        self.store_factory = store_factory or TenantStore
        self.client_factory = client_factory or IXCClient
        self.clock = clock or _utcnow
        self.warmup_seconds = config.MONITOR_WARMUP_SECONDS if warmup_seconds is None else warmup_seconds
        self.interval_minutes = config.MONITOR_INTERVAL_MINUTES if interval_minutes is None else interval_minutes

        self.syncing = False
        self.sync_log = ""
        self.last_sync: Optional[str] = None
        self.last_error: Optional[str] = None
        self.alerts: List[ContractAlert] = []
        self.dismissed = False
        self.cycles = 0
        self.scheduler = None

    @property
    def warmup_job_id(self) -> str:
        return f"contract_monitor_warmup_{self.account_id}"

    @property
    def interval_job_id(self) -> str:
        return f"contract_monitor_{self.account_id}"

    @property
    def started(self) -> bool:
        return self.scheduler is not None

    # ==================== LIFECYCLE ====================

    def start(self, scheduler):
        """Planifie le cycle de démarrage puis le cycle récurrent"""
        if self.started:
            return
        self.scheduler = scheduler
        scheduler.add_job(
            self.run_cycle,
            "date",
            run_date=self.clock() + timedelta(seconds=self.warmup_seconds),
            id=self.warmup_job_id,
            name=f"Moniteur contrats (démarrage) {self.account_id}",
            replace_existing=True,
        )
        scheduler.add_job(
            self.run_cycle,
            "interval",
            minutes=self.interval_minutes,
            id=self.interval_job_id,
            name=f"Moniteur contrats {self.account_id}",
            replace_existing=True,
            coalesce=True,
        )
        logger.info(
            f"[MONITOR] {self.account_id}: démarré (1er cycle dans {self.warmup_seconds}s, "
            f"puis toutes les {self.interval_minutes} min)"
        )

    def stop(self):
        """Retire les jobs planifiés; un cycle en cours se termine normalement"""
        if not self.started:
            return
        for job_id in (self.warmup_job_id, self.interval_job_id):
            if self.scheduler.get_job(job_id):
                self.scheduler.remove_job(job_id)
        self.scheduler = None
        logger.info(f"[MONITOR] {self.account_id}: arrêté")

    # ==================== CYCLE ====================

    async def run_cycle(self) -> bool:
        """
        Exécute un cycle complet.
        Retourne False si un cycle est déjà en cours (rien n'est lancé).
        """
        if self.syncing:
            logger.info(f"[MONITOR] {self.account_id}: cycle déjà en cours, ignoré")
            return False

        self.syncing = True
        self.sync_log = "Iniciando sincronização automática..."
        try:
            await self._run()
        except Exception as e:
            logger.error(f"[MONITOR] {self.account_id}: erreur de synchronisation: {str(e)}")
            self.last_error = str(e)
            self.sync_log = f"Erro na sincronização. Próxima tentativa em {self.interval_minutes} min."
        finally:
            self.syncing = False
            self.cycles += 1
        return True

    async def _run(self):
        store = self.store_factory(self.account_id)
        empresa = await store.get_active_empresa()
        if not empresa:
            self.sync_log = "Nenhuma empresa ativa configurada."
            logger.info(f"[MONITOR] {self.account_id}: aucune empresa active")
            return

        ctx = TenantContext(account_id=self.account_id, empresa=empresa)
        async with self.client_factory(ctx) as client:
            self.sync_log = "Sincronizando clientes do IXC..."
            total = await sync_all_clientes(client, store, empresa.id, on_progress=self._on_progress)
            self.sync_log = f"{total} clientes sincronizados. Verificando contratos..."

            equipamentos = await store.list_equipamentos(status=EquipamentoStatus.NO_CLIENTE.value)
            em_campo = [e for e in equipamentos if e.ixc_cliente_id]

            if not em_campo:
                self._publish([])
                self.sync_log = f"Sync OK ({total} clientes). Nenhum equipamento em campo."
                self._completed()
                return

            resolver = ContractResolver(client, store, empresa.id)
            alerts = await self._verify(resolver, store, em_campo)

        self._publish(alerts)
        self.sync_log = (
            f"Sync completa. {total} clientes, {len(em_campo)} equips verificados, "
            f"{len(alerts)} alertas."
        )
        self._completed()

    async def _verify(self, resolver: ContractResolver, store, em_campo: List[Equipamento]) -> List[ContractAlert]:
        # Regroupe par client lié: un seul appel IXC par client
        por_cliente: Dict[str, List[Equipamento]] = {}
        for eq in em_campo:
            por_cliente.setdefault(eq.ixc_cliente_id, []).append(eq)

        alerts: List[ContractAlert] = []
        for cached_id, equipamentos in por_cliente.items():
            nome = equipamentos[0].ixc_cliente_nome or ""
            self.sync_log = f"Verificando contratos do cliente {nome or cached_id}..."
            try:
                resolution = await resolver.resolve(nome, cached_id)
            except Exception as e:
                logger.warning(f"[MONITOR] Échec vérification contrats du client {cached_id}: {str(e)}")
                continue
            if resolution.outcome == ResolutionOutcome.SKIPPED:
                continue

            try:
                await self._store_ixc_id(store, equipamentos, resolution.ixc_id)
            except Exception as e:
                logger.warning(f"[MONITOR] Échec écriture id IXC {resolution.ixc_id} (client {cached_id}): {str(e)}")

            if resolution.outcome == ResolutionOutcome.ALERT:
                for eq in equipamentos:
                    alerts.append(ContractAlert(
                        equipamento=eq,
                        cliente_nome=eq.ixc_cliente_nome or "Desconhecido",
                        cliente_id=resolution.ixc_id,
                        motivo=resolution.motivo,
                        motivo_alerta=resolution.motivo_alerta,
                    ))
        return alerts

    async def _store_ixc_id(self, store, equipamentos: List[Equipamento], ixc_id: str):
        for eq in equipamentos:
            if eq.ixc_id_externo != ixc_id:
                await store.update_equipamento(eq.id, {"ixc_id_externo": ixc_id})
                eq.ixc_id_externo = ixc_id

    def _on_progress(self, fetched: int, total: int):
        self.sync_log = f"Sincronizando clientes: {fetched} / {total}"

    def _publish(self, alerts: List[ContractAlert]):
        if alerts:
            self.alerts = alerts
            self.dismissed = False
        else:
            self.alerts = []

    def _completed(self):
        self.last_sync = now_iso()
        self.last_error = None
        logger.info(f"[MONITOR] {self.account_id}: {self.sync_log}")

    # ==================== ÉTAT ====================

    def dismiss(self):
        self.dismissed = True

    @property
    def visible(self) -> bool:
        return bool(self.alerts) and not self.dismissed

    def status(self) -> MonitorStatus:
        return MonitorStatus(
            syncing=self.syncing,
            sync_log=self.sync_log,
            last_sync=self.last_sync,
            last_error=self.last_error,
            alert_count=len(self.alerts),
            dismissed=self.dismissed,
            visible=self.visible,
        )

    def grouped_alerts(self) -> List[AlertGroup]:
        groups: Dict[str, AlertGroup] = {}
        for alert in self.alerts:
            group = groups.get(alert.cliente_id)
            if group is None:
                group = groups[alert.cliente_id] = AlertGroup(
                    cliente_id=alert.cliente_id,
                    cliente_nome=alert.cliente_nome,
                    motivo_alerta=alert.motivo_alerta,
                    equipamentos=[],
                )
            group.equipamentos.append(alert.equipamento)
        return list(groups.values())


class MonitorRegistry:
    """Un moniteur par compte"""

    def __init__(self, factory: Optional[Callable] = None):
        self.factory = factory or ContractMonitor
        self.monitors: Dict[str, ContractMonitor] = {}

    def get(self, account_id: str) -> ContractMonitor:
        account_id = str(account_id)
        if account_id not in self.monitors:
            self.monitors[account_id] = self.factory(account_id)
        return self.monitors[account_id]

    def start(self, account_id: str, scheduler) -> ContractMonitor:
        monitor = self.get(account_id)
        monitor.start(scheduler)
        return monitor

    def stop(self, account_id: str):
        monitor = self.monitors.get(str(account_id))
        if monitor:
            monitor.stop()

    def stop_all(self):
        for monitor in self.monitors.values():
            monitor.stop()


# Instance globale
monitor_registry = MonitorRegistry()
