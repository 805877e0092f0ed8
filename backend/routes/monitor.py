"""
IXC ERP - Routes Moniteur de contrats

GET  /monitor/status   indicateur compact (sync en cours, dernier run, nb alertes)
GET  /monitor/alerts   alertes groupées par client
POST /monitor/run      cycle manuel immédiat (409 si un cycle tourne)
POST /monitor/dismiss  masque le panneau jusqu'aux prochaines alertes
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from services.contract_monitor import ContractMonitor, monitor_registry
from services.tenancy import get_account_id

router = APIRouter(prefix="/monitor", tags=["Monitor"])


def get_monitor(account_id: str = Depends(get_account_id)) -> ContractMonitor:
    return monitor_registry.get(account_id)


@router.get("/status")
async def monitor_status(monitor: ContractMonitor = Depends(get_monitor)):
    return monitor.status()


@router.get("/alerts")
async def monitor_alerts(monitor: ContractMonitor = Depends(get_monitor)):
    """Alertes du dernier cycle complet"""
    return {
        "alerts": monitor.grouped_alerts(),
        "count": len(monitor.alerts),
        "dismissed": monitor.dismissed,
        "visible": monitor.visible,
    }


@router.post("/run", status_code=202)
async def monitor_run(background_tasks: BackgroundTasks, monitor: ContractMonitor = Depends(get_monitor)):
    """Force un cycle maintenant (même routine que le cycle planifié)"""
    if monitor.syncing:
        raise HTTPException(status_code=409, detail="Sincronização já em andamento")
    background_tasks.add_task(monitor.run_cycle)
    return {"success": True, "started": True}


@router.post("/dismiss")
async def monitor_dismiss(monitor: ContractMonitor = Depends(get_monitor)):
    monitor.dismiss()
    return monitor.status()
