"""
IXC ERP - Event Logger

Journal d'audit des actions sensibles (activation empresa, sync, inventaire).
Une seule fonction, appelée via TenantStore.log_event.
"""

import uuid
from typing import Optional

import config
from config import now_iso


async def log_event(
    action: str,
    entity_type: str,
    entity_id: str,
    account_id: str,
    details: Optional[dict] = None,
    user: str = "system",
    database=None,
) -> dict:
    """
    Écrit un event dans la collection event_log.

    Args:
        action: ex. empresa_activate, sync_completed, equipamento_provision
        entity_type: empresa | clientes_sync | equipamento | settings
        entity_id: ID de l'entité principale
        account_id: compte (tenant) concerné
        details: dict libre (total, ancien/nouveau statut, erreur...)
    """
    database = database if database is not None else config.db
    event = {
        "id": str(uuid.uuid4()),
        "action": action,
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "account_id": str(account_id),
        "user": user,
        "details": details or {},
        "created_at": now_iso(),
    }
    await database.event_log.insert_one(dict(event))
    return event


async def list_events(
    account_id: str,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    limit: int = 100,
    skip: int = 0,
    database=None,
) -> dict:
    database = database if database is not None else config.db
    query = {"account_id": str(account_id)}
    if action:
        query["action"] = action
    if entity_type:
        query["entity_type"] = entity_type
    if entity_id:
        query["entity_id"] = str(entity_id)

    events = await database.event_log.find(
        query, {"_id": 0}
    ).sort("created_at", -1).skip(skip).limit(limit).to_list(limit)
    total = await database.event_log.count_documents(query)
    return {"events": events, "count": len(events), "total": total}
