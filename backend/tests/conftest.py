"""
IXC ERP - Fixtures de test

- FakeStore   : TenantStore en mémoire (même interface)
- FakeIXC     : serveur IXC simulé derrière httpx.MockTransport
- FakeScheduler : enregistre les jobs au lieu de les exécuter
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from models import (
    ClienteListResponse,
    ClienteSync,
    Empresa,
    Equipamento,
    EquipamentoCreate,
    EquipamentoStatus,
    HistoricoEntry,
    TenantContext,
)


def run(coro):
    """Run async operation in a fresh event loop."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def make_empresa(empresa_id="t1", url="https://host.example", token="secret", ativa=True, account_id="1"):
    return Empresa(id=empresa_id, account_id=account_id, nome=f"Empresa {empresa_id}", url=url, token=token, ativa=ativa)


def make_ctx(**kwargs) -> TenantContext:
    empresa = make_empresa(**kwargs)
    return TenantContext(account_id=empresa.account_id, empresa=empresa)


# ==================== STORE ====================

class FakeStore:
    """Store en mémoire, une instance = un compte"""

    def __init__(self, account_id="1"):
        self.account_id = account_id
        self.empresas: Dict[str, Empresa] = {}
        self.clientes: Dict[str, Dict[str, ClienteSync]] = {}
        self.equipamentos: Dict[int, Equipamento] = {}
        self.historico: List[HistoricoEntry] = []
        self.settings: Dict[str, str] = {}
        self.events: List[dict] = []
        self.sync_calls: List[tuple] = []
        self.lookups: List[str] = []

    # empresas
    async def list_empresas(self):
        return sorted(self.empresas.values(), key=lambda e: e.nome)

    async def get_empresa(self, empresa_id):
        return self.empresas.get(empresa_id)

    async def get_active_empresa(self):
        return next((e for e in self.empresas.values() if e.ativa), None)

    async def save_empresa(self, data):
        empresa = Empresa(
            id=data.id or f"emp{len(self.empresas) + 1}",
            account_id=self.account_id,
            nome=data.nome,
            url=data.url,
            token=data.token,
            ativa=False,
        )
        self.empresas[empresa.id] = empresa
        return empresa

    async def update_empresa(self, empresa_id, data):
        empresa = self.empresas.get(empresa_id)
        if not empresa:
            return None
        fields = {k: v for k, v in data.model_dump().items() if v is not None}
        self.empresas[empresa_id] = empresa.model_copy(update=fields)
        return self.empresas[empresa_id]

    async def activate_empresa(self, empresa_id):
        if empresa_id not in self.empresas:
            return None
        for key, empresa in self.empresas.items():
            self.empresas[key] = empresa.model_copy(update={"ativa": key == empresa_id})
        return self.empresas[empresa_id]

    async def delete_empresa(self, empresa_id):
        await self.delete_clientes(empresa_id)
        return self.empresas.pop(empresa_id, None) is not None

    # clientes
    async def list_clientes(self, empresa_id, q="", rp=50):
        registros = sorted(self.clientes.get(empresa_id, {}).values(), key=lambda c: c.razao)
        if q:
            needle = q.lower()
            registros = [
                c for c in registros
                if any(needle in (v or "").lower() for v in (c.razao, c.fn_cgccpf, c.fone_celular, c.fone))
            ]
        return ClienteListResponse(registros=registros[:rp], total=len(registros))

    async def count_clientes(self, empresa_id=None):
        if empresa_id:
            return len(self.clientes.get(empresa_id, {}))
        return sum(len(c) for c in self.clientes.values())

    async def sync_clientes(self, empresa_id, registros, overwrite=False):
        self.sync_calls.append((len(registros), overwrite))
        if overwrite:
            self.clientes[empresa_id] = {}
        catalog = self.clientes.setdefault(empresa_id, {})
        for r in registros:
            catalog[r.id] = r.model_copy(update={"empresa_id": empresa_id, "sincronizado_em": "now"})
        return len(registros)

    async def delete_clientes(self, empresa_id):
        return len(self.clientes.pop(empresa_id, {}))

    async def find_ixc_id_by_nome(self, nome, empresa_id=None):
        self.lookups.append(nome)
        catalogs = [self.clientes.get(empresa_id, {})] if empresa_id else list(self.clientes.values())
        for catalog in catalogs:
            for c in catalog.values():
                if c.razao == nome:
                    return c.id
        return None

    # equipamentos
    async def list_equipamentos(self, status=None):
        items = sorted(self.equipamentos.values(), key=lambda e: -e.id)
        if status:
            items = [e for e in items if e.status == status]
        return [e.model_copy() for e in items]

    async def get_equipamento(self, equipamento_id):
        e = self.equipamentos.get(int(equipamento_id))
        return e.model_copy() if e else None

    async def create_equipamento(self, data: EquipamentoCreate):
        fields = data.model_dump()
        fields["status"] = data.status.value
        equipamento = Equipamento(id=len(self.equipamentos) + 1, **fields)
        self.equipamentos[equipamento.id] = equipamento
        return equipamento.model_copy()

    async def update_equipamento(self, equipamento_id, fields):
        current = self.equipamentos.get(int(equipamento_id))
        if not current:
            return None
        fields = {k: (v.value if isinstance(v, EquipamentoStatus) else v) for k, v in fields.items()}
        self.equipamentos[current.id] = current.model_copy(update=fields)
        return self.equipamentos[current.id].model_copy()

    async def delete_equipamento(self, equipamento_id):
        return self.equipamentos.pop(int(equipamento_id), None) is not None

    async def add_historico(self, equipamento_id, acao, cliente_id=None, cliente_nome=None, observacao=""):
        entry = HistoricoEntry(
            id=len(self.historico) + 1,
            equipamento_id=int(equipamento_id),
            data="now",
            acao=acao,
            cliente_id=cliente_id,
            cliente_nome=cliente_nome,
            observacao=observacao,
        )
        self.historico.append(entry)
        return entry

    async def list_historico(self, equipamento_id):
        return [h for h in reversed(self.historico) if h.equipamento_id == int(equipamento_id)]

    # settings / events
    async def get_settings(self):
        return dict(self.settings)

    async def put_settings(self, values):
        self.settings.update({k: "" if v is None else str(v) for k, v in values.items()})
        return dict(self.settings)

    async def log_event(self, action, entity_type, entity_id, details=None):
        event = {"action": action, "entity_type": entity_type, "entity_id": str(entity_id), "details": details or {}}
        self.events.append(event)
        return event

    async def list_events(self, action=None, entity_type=None, entity_id=None, limit=100, skip=0):
        events = [e for e in reversed(self.events) if not action or e["action"] == action]
        return {"events": events[skip:skip + limit], "count": len(events[skip:skip + limit]), "total": len(events)}


# ==================== IXC SIMULÉ ====================

def cliente_record(i: int, **extra) -> Dict[str, Any]:
    record = {
        "id": str(i),
        "razao": f"Cliente {i:04d}",
        "cnpj_cpf": f"{i:011d}",
        "telefone_celular": f"1199{i:07d}",
        "telefone_comercial": "",
        "email": f"cliente{i}@example.com",
        "ativo": "S",
        "cidade": "Campinas",
    }
    record.update(extra)
    return record


class FakeIXC:
    """
    Webservice IXC simulé.
    clientes: liste des enregistrements 'cliente'
    contratos: {id_cliente: [contrats]}
    """

    def __init__(self, clientes=None, contratos=None, fail_on_page: Optional[int] = None, total_override=None):
        self.clientes = clientes or []
        self.contratos = contratos or {}
        self.fail_on_page = fail_on_page
        self.total_override = total_override
        self.requests: List[httpx.Request] = []
        self.bodies: List[Dict[str, Any]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content or b"{}")
        self.bodies.append(body)
        table = request.url.path.rsplit("/", 1)[-1]
        page, rp = int(body.get("page", 1)), int(body.get("rp", 50))

        if table == "cliente":
            if self.fail_on_page == page:
                return httpx.Response(500, text="Internal error")
            if body.get("qtype") == "cliente.ativo":
                rows = [c for c in self.clientes if c.get("ativo") == "S"]
            else:
                field = body["qtype"].split(".", 1)[1]
                if body.get("oper") == "like":
                    rows = [c for c in self.clientes if body["query"].lower() in str(c.get(field, "")).lower()]
                else:
                    rows = [c for c in self.clientes if str(c.get(field, "")) == body["query"]]
        elif table == "cliente_contrato":
            rows = self.contratos.get(body["query"], [])
        else:
            rows = []

        start = (page - 1) * rp
        total = self.total_override if self.total_override is not None else len(rows)
        return httpx.Response(200, json={
            "type": "success",
            "page": str(page),
            "total": str(total),
            "registros": rows[start:start + rp],
        })

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def contract_queries(self) -> List[str]:
        return [b["query"] for b in self.bodies if b.get("qtype") == "cliente_contrato.id_cliente"]


class FakeScheduler:
    """Remplace AsyncIOScheduler: garde les jobs pour inspection"""

    def __init__(self):
        self.jobs: Dict[str, Dict[str, Any]] = {}
        self.running = False

    def add_job(self, func, trigger, id=None, **kwargs):
        self.jobs[id] = {"func": func, "trigger": trigger, **kwargs}

    def get_job(self, job_id):
        return self.jobs.get(job_id)

    def remove_job(self, job_id):
        del self.jobs[job_id]

    def start(self):
        self.running = True

    def shutdown(self, wait=True):
        self.running = False


@pytest.fixture
def store():
    return FakeStore()
