"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  IXC ERP - Models Package                                                    ║
║                                                                              ║
║  Exports tous les modèles pour import facile                                 ║
║  from models import Empresa, TenantContext, ClienteSync, etc.                ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

# Empresa IXC (multi-tenant)
from .empresa import (
    EmpresaCreate,
    EmpresaUpdate,
    Empresa,
    TenantContext,
)

# IXC Soft webservice
from .ixc import (
    TABLE_CLIENTE,
    TABLE_FIBRA_ONU,
    TABLE_RADIO,
    TABLE_CONTRATO,
    TABLE_ARECEBER,
    IXCQuery,
    IXCPage,
    ClienteSync,
    ClienteListResponse,
    ConnectionTestResult,
    EquipamentosCliente,
)

# Inventaire
from .equipamento import (
    EquipamentoStatus,
    EquipamentoCreate,
    EquipamentoUpdate,
    Equipamento,
    HistoricoEntry,
    ProvisionRequest,
    ReturnRequest,
    StatusChangeRequest,
)

# Moniteur de contrats
from .monitor import (
    ServiceStatus,
    AlertReason,
    ContractAlert,
    AlertGroup,
    MonitorStatus,
    ResolutionOutcome,
    Resolution,
)

__all__ = [
    # Empresa
    "EmpresaCreate",
    "EmpresaUpdate",
    "Empresa",
    "TenantContext",
    # IXC
    "TABLE_CLIENTE",
    "TABLE_FIBRA_ONU",
    "TABLE_RADIO",
    "TABLE_CONTRATO",
    "TABLE_ARECEBER",
    "IXCQuery",
    "IXCPage",
    "ClienteSync",
    "ClienteListResponse",
    "ConnectionTestResult",
    "EquipamentosCliente",
    # Equipamento
    "EquipamentoStatus",
    "EquipamentoCreate",
    "EquipamentoUpdate",
    "Equipamento",
    "HistoricoEntry",
    "ProvisionRequest",
    "ReturnRequest",
    "StatusChangeRequest",
    # Monitor
    "ServiceStatus",
    "AlertReason",
    "ContractAlert",
    "AlertGroup",
    "MonitorStatus",
    "ResolutionOutcome",
    "Resolution",
]
