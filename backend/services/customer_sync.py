"""
IXC ERP - Synchronisation des clients IXC

Récupère tous les clients actifs (cliente.ativo = S) page par page et les
écrit dans le catalogue local de l'empresa.

- Page 1: flush immédiat en mode REPLACE (seul moment où les anciennes
  lignes sont supprimées)
- Pages suivantes: accumulées, flush APPEND tous les batch_size
- Arrêt: page incomplète, page vide, ou fetched >= total (total 0 = inconnu)
- Une erreur IXC interrompt le run et remonte à l'appelant (pas de nettoyage)
"""

import inspect
import logging
from typing import Callable, List, Optional

from models import ClienteSync, TABLE_CLIENTE

logger = logging.getLogger("customer_sync")

PAGE_SIZE = 100
BATCH_SIZE = 500


async def _report(on_progress: Optional[Callable], fetched: int, total: int):
    if on_progress is None:
        return
    result = on_progress(fetched, total)
    if inspect.isawaitable(result):
        await result


async def sync_all_clientes(
    client,
    store,
    empresa_id: str,
    on_progress: Optional[Callable] = None,
    page_size: int = PAGE_SIZE,
    batch_size: int = BATCH_SIZE,
) -> int:
    """
    Synchronise tous les clients actifs d'une empresa.

    Args:
        client: IXCClient du tenant
        store: TenantStore (sync_clientes)
        empresa_id: empresa cible
        on_progress: callback (fetched, total), sync ou async; total=0 = inconnu
    Returns:
        nombre de clients récupérés
    """
    page = 1
    fetched = 0
    total = 0
    batch: List[ClienteSync] = []

    while True:
        result = await client.query(
            TABLE_CLIENTE,
            "cliente.ativo",
            "S",
            oper="=",
            page=page,
            rp=page_size,
            sortname="cliente.razao",
            sortorder="asc",
        )
        registros = result.registros
        # Total absent ou 0 sur une page suivante: on garde le dernier connu
        total = result.total or total
        fetched += len(registros)
        batch.extend(ClienteSync.from_ixc(r) for r in registros)

        if page == 1:
            await store.sync_clientes(empresa_id, batch, overwrite=True)
            batch = []
        elif len(batch) >= batch_size:
            await store.sync_clientes(empresa_id, batch, overwrite=False)
            batch = []

        await _report(on_progress, fetched, total)
        logger.debug(f"[SYNC] {empresa_id} page {page}: {fetched}/{total}")

        if len(registros) < page_size or (total and fetched >= total):
            break
        page += 1

    if batch:
        await store.sync_clientes(empresa_id, batch, overwrite=False)

    logger.info(f"[SYNC] {empresa_id}: {fetched} clients synchronisés ({page} pages)")
    return fetched
