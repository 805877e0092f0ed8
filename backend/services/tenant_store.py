"""
IXC ERP - Store par compte (MongoDB)

Collections:
- ixc_empresas            : configurations IXC (une seule ativa par compte)
- clientes_sync           : clients IXC synchronisés, clé (account_id, empresa_id, id)
- equipamentos            : inventaire, id autoincrement par compte
- equipamentos_historico  : historique append-only
- app_settings            : paramètres clé/valeur
- counters                : séquences autoincrement

Toutes les requêtes sont filtrées par account_id.
"""

import logging
import re
import uuid
from typing import Optional, List, Dict, Any

from pymongo import ReplaceOne, ReturnDocument

import config
from config import now_iso
from services import event_logger
from models import (
    Empresa,
    EmpresaCreate,
    EmpresaUpdate,
    ClienteSync,
    ClienteListResponse,
    Equipamento,
    EquipamentoCreate,
    EquipamentoStatus,
    HistoricoEntry,
)

logger = logging.getLogger("tenant_store")

MAX_CLIENTES_PAGE = 200


class TenantStore:
    """Persistance d'un compte (tenant)"""

    def __init__(self, account_id: str, database=None):
        self.account_id = str(account_id)
        self.db = database if database is not None else config.db

    def _scope(self, **extra) -> Dict[str, Any]:
        return {"account_id": self.account_id, **extra}

    async def _next_id(self, name: str) -> int:
        doc = await self.db.counters.find_one_and_update(
            {"_id": f"{self.account_id}:{name}"},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(doc["seq"])

    # ==================== EMPRESAS IXC ====================

    async def list_empresas(self) -> List[Empresa]:
        docs = await self.db.ixc_empresas.find(self._scope(), {"_id": 0}).sort("nome", 1).to_list(200)
        return [Empresa(**d) for d in docs]

    async def get_empresa(self, empresa_id: str) -> Optional[Empresa]:
        doc = await self.db.ixc_empresas.find_one(self._scope(id=empresa_id), {"_id": 0})
        return Empresa(**doc) if doc else None

    async def get_active_empresa(self) -> Optional[Empresa]:
        doc = await self.db.ixc_empresas.find_one(self._scope(ativa=True), {"_id": 0})
        return Empresa(**doc) if doc else None

    async def save_empresa(self, data: EmpresaCreate) -> Empresa:
        """Crée une empresa (jamais active à la création)"""
        empresa = Empresa(
            id=data.id or str(uuid.uuid4()),
            account_id=self.account_id,
            nome=data.nome,
            url=data.url,
            token=data.token,
            ativa=False,
            created_at=now_iso(),
            updated_at=now_iso(),
        )
        await self.db.ixc_empresas.replace_one(
            self._scope(id=empresa.id), empresa.model_dump(), upsert=True
        )
        return empresa

    async def update_empresa(self, empresa_id: str, data: EmpresaUpdate) -> Optional[Empresa]:
        fields = {k: v for k, v in data.model_dump().items() if v is not None}
        fields["updated_at"] = now_iso()
        result = await self.db.ixc_empresas.update_one(self._scope(id=empresa_id), {"$set": fields})
        if result.matched_count == 0:
            return None
        return await self.get_empresa(empresa_id)

    async def activate_empresa(self, empresa_id: str) -> Optional[Empresa]:
        """Activation exclusive: désactive toutes les autres empresas du compte"""
        if not await self.get_empresa(empresa_id):
            return None
        await self.db.ixc_empresas.update_many(self._scope(), {"$set": {"ativa": False}})
        await self.db.ixc_empresas.update_one(
            self._scope(id=empresa_id), {"$set": {"ativa": True, "updated_at": now_iso()}}
        )
        return await self.get_empresa(empresa_id)

    async def delete_empresa(self, empresa_id: str) -> bool:
        """Supprime l'empresa et son catalogue de clients synchronisés"""
        await self.delete_clientes(empresa_id)
        result = await self.db.ixc_empresas.delete_one(self._scope(id=empresa_id))
        return result.deleted_count > 0

    # ==================== CLIENTES SYNC ====================

    async def list_clientes(self, empresa_id: str, q: str = "", rp: int = 50) -> ClienteListResponse:
        rp = max(1, min(int(rp or 50), MAX_CLIENTES_PAGE))
        query = self._scope(empresa_id=empresa_id)
        if q:
            pattern = {"$regex": re.escape(q), "$options": "i"}
            query["$or"] = [
                {"razao": pattern},
                {"fn_cgccpf": pattern},
                {"fone_celular": pattern},
                {"fone": pattern},
            ]
        docs = await self.db.clientes_sync.find(query, {"_id": 0}).sort("razao", 1).to_list(rp)
        total = await self.db.clientes_sync.count_documents(query)
        return ClienteListResponse(registros=[ClienteSync(**d) for d in docs], total=total)

    async def count_clientes(self, empresa_id: Optional[str] = None) -> int:
        query = self._scope()
        if empresa_id:
            query["empresa_id"] = empresa_id
        return await self.db.clientes_sync.count_documents(query)

    async def sync_clientes(self, empresa_id: str, registros: List[ClienteSync], overwrite: bool = False) -> int:
        """
        Écrit un lot de clients IXC.
        overwrite=True: supprime d'abord tout le catalogue de l'empresa (1er lot d'un run).
        Sinon: ajout / remplacement par id.
        """
        if overwrite:
            deleted = await self.delete_clientes(empresa_id)
            logger.info(f"[SYNC] {empresa_id}: {deleted} clients supprimés avant remplacement")

        if not registros:
            return 0

        now = now_iso()
        ops = []
        for r in registros:
            doc = r.model_dump()
            doc.update(account_id=self.account_id, empresa_id=empresa_id, sincronizado_em=now)
            ops.append(ReplaceOne(self._scope(empresa_id=empresa_id, id=r.id), doc, upsert=True))
        await self.db.clientes_sync.bulk_write(ops, ordered=False)
        return len(ops)

    async def delete_clientes(self, empresa_id: str) -> int:
        result = await self.db.clientes_sync.delete_many(self._scope(empresa_id=empresa_id))
        return result.deleted_count

    async def find_ixc_id_by_nome(self, nome: str, empresa_id: Optional[str] = None) -> Optional[str]:
        """Recherche exacte par razão social dans le catalogue synchronisé"""
        if not nome:
            return None
        query = self._scope(razao=nome)
        if empresa_id:
            query["empresa_id"] = empresa_id
        doc = await self.db.clientes_sync.find_one(query, {"_id": 0, "id": 1})
        return str(doc["id"]) if doc else None

    # ==================== EQUIPAMENTOS ====================

    async def list_equipamentos(self, status: Optional[str] = None) -> List[Equipamento]:
        query = self._scope()
        if status:
            query["status"] = status
        docs = await self.db.equipamentos.find(query, {"_id": 0}).sort("id", -1).to_list(None)
        return [Equipamento(**d) for d in docs]

    async def get_equipamento(self, equipamento_id: int) -> Optional[Equipamento]:
        doc = await self.db.equipamentos.find_one(self._scope(id=int(equipamento_id)), {"_id": 0})
        return Equipamento(**doc) if doc else None

    async def create_equipamento(self, data: EquipamentoCreate) -> Equipamento:
        fields = data.model_dump()
        fields["status"] = (data.status or EquipamentoStatus.EM_ESTOQUE).value
        equipamento = Equipamento(id=await self._next_id("equipamentos"), **fields)
        doc = equipamento.model_dump()
        doc["account_id"] = self.account_id
        await self.db.equipamentos.insert_one(doc)
        return equipamento

    async def update_equipamento(self, equipamento_id: int, fields: Dict[str, Any]) -> Optional[Equipamento]:
        fields = {k: (v.value if isinstance(v, EquipamentoStatus) else v) for k, v in fields.items()}
        fields.pop("id", None)
        fields.pop("account_id", None)
        if fields:
            result = await self.db.equipamentos.update_one(
                self._scope(id=int(equipamento_id)), {"$set": fields}
            )
            if result.matched_count == 0:
                return None
        return await self.get_equipamento(equipamento_id)

    async def delete_equipamento(self, equipamento_id: int) -> bool:
        result = await self.db.equipamentos.delete_one(self._scope(id=int(equipamento_id)))
        return result.deleted_count > 0

    async def add_historico(
        self,
        equipamento_id: int,
        acao: str,
        cliente_id: Optional[str] = None,
        cliente_nome: Optional[str] = None,
        observacao: str = "",
    ) -> HistoricoEntry:
        entry = HistoricoEntry(
            id=await self._next_id("equipamentos_historico"),
            equipamento_id=int(equipamento_id),
            data=now_iso(),
            acao=acao,
            cliente_id=cliente_id,
            cliente_nome=cliente_nome,
            observacao=observacao or "",
        )
        doc = entry.model_dump()
        doc["account_id"] = self.account_id
        await self.db.equipamentos_historico.insert_one(doc)
        return entry

    async def list_historico(self, equipamento_id: int) -> List[HistoricoEntry]:
        docs = await self.db.equipamentos_historico.find(
            self._scope(equipamento_id=int(equipamento_id)), {"_id": 0}
        ).sort("id", -1).to_list(1000)
        return [HistoricoEntry(**d) for d in docs]

    # ==================== SETTINGS ====================

    async def get_settings(self) -> Dict[str, str]:
        docs = await self.db.app_settings.find(self._scope(), {"_id": 0}).to_list(500)
        return {d["key"]: d.get("value", "") for d in docs}

    async def put_settings(self, values: Dict[str, Any]) -> Dict[str, str]:
        for key, value in values.items():
            await self.db.app_settings.update_one(
                self._scope(key=key),
                {"$set": {"value": "" if value is None else str(value), "updated_at": now_iso()}},
                upsert=True,
            )
        return await self.get_settings()

    # ==================== EVENT LOG ====================

    async def log_event(self, action: str, entity_type: str, entity_id: str, details: Optional[dict] = None):
        return await event_logger.log_event(
            action, entity_type, entity_id, self.account_id, details, database=self.db
        )

    async def list_events(self, **filters) -> Dict[str, Any]:
        return await event_logger.list_events(self.account_id, database=self.db, **filters)


async def list_active_accounts(database=None) -> List[str]:
    """Comptes ayant une empresa IXC active (moniteurs à démarrer)"""
    database = database if database is not None else config.db
    accounts = await database.ixc_empresas.distinct("account_id", {"ativa": True})
    return [str(a) for a in accounts]


async def create_indexes(database=None):
    """Index MongoDB (appelé au démarrage)"""
    database = database if database is not None else config.db
    await database.ixc_empresas.create_index([("account_id", 1), ("id", 1)], unique=True)
    await database.ixc_empresas.create_index([("account_id", 1), ("ativa", 1)])
    await database.clientes_sync.create_index(
        [("account_id", 1), ("empresa_id", 1), ("id", 1)], unique=True
    )
    await database.clientes_sync.create_index([("account_id", 1), ("empresa_id", 1), ("razao", 1)])
    await database.equipamentos.create_index([("account_id", 1), ("id", 1)], unique=True)
    await database.equipamentos.create_index([("account_id", 1), ("status", 1)])
    await database.equipamentos_historico.create_index([("account_id", 1), ("equipamento_id", 1)])
    await database.app_settings.create_index([("account_id", 1), ("key", 1)], unique=True)
    await database.event_log.create_index("created_at")
