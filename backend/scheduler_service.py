"""
Scheduler pour les tâches automatiques IXC ERP
- Moniteur de contrats par compte (démarrage différé + toutes les 30 min)
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

import config
from services.contract_monitor import MonitorRegistry, monitor_registry

logger = logging.getLogger("scheduler")


class TaskScheduler:
    """Gestionnaire de tâches planifiées"""

    def __init__(self, registry: Optional[MonitorRegistry] = None, scheduler=None):
        self.scheduler = scheduler or AsyncIOScheduler(timezone=config.SCHEDULER_TIMEZONE)
        self.registry = registry or monitor_registry

    def start(self):
        """Démarre le scheduler (les moniteurs sont ajoutés par compte)"""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler démarré avec succès")

    def stop(self):
        """Arrête le scheduler"""
        self.registry.stop_all()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler arrêté")

    # ==================== MONITEURS ====================

    def start_monitor(self, account_id: str):
        if not config.MONITOR_ENABLED:
            logger.info(f"Moniteur de contrats désactivé (compte {account_id})")
            return None
        return self.registry.start(account_id, self.scheduler)

    def stop_monitor(self, account_id: str):
        self.registry.stop(account_id)


# Instance globale
task_scheduler = TaskScheduler()
