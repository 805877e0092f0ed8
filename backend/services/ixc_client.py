"""
IXC ERP - Client IXC Soft (webservice v1)

Toutes les requêtes passent par le proxy dynamique local:
    POST {IXC_PROXY_BASE_URL}/api/ixc/<empresa_id>/webservice/v1/<table>
    Header x-ixc-target: https://erp.suaempresa.com.br

Le client n'ouvre JAMAIS de connexion directe vers l'hôte IXC du tenant.

Documentation IXC: https://wikiapiprovedor.ixcsoft.com.br/
"""

import asyncio
import base64
import json
import logging
from typing import Optional, List, Dict, Any
from urllib.parse import quote

import httpx

import config
from config import only_digits
from models import (
    TenantContext,
    IXCQuery,
    IXCPage,
    ConnectionTestResult,
    EquipamentosCliente,
    TABLE_CLIENTE,
    TABLE_FIBRA_ONU,
    TABLE_RADIO,
    TABLE_CONTRATO,
    TABLE_ARECEBER,
)
from services.ixc_errors import (
    IXCError,
    UpstreamHTTPError,
    UpstreamProtocolError,
    UpstreamUnreachable,
)

logger = logging.getLogger("ixc_client")

PROXY_ERROR_HEADER = "x-ixc-proxy-error"
TARGET_HEADER = "x-ixc-target"

SEARCH_FIELDS = {
    "razao": "cliente.razao",
    "fone_celular": "cliente.telefone_celular",
    "fn_cgccpf": "cliente.cnpj_cpf",
}


# ==================== AUTH ====================

def build_ixc_auth(token: str, principal: Optional[str] = None) -> str:
    """
    Construit le header Authorization pour IXC Soft.

    IXC attend: Basic base64("userId:apiKey")
    - token déjà préfixé par un schéma ("Basic ...") -> utilisé tel quel
    - token contenant ":" -> encodé tel quel
    - sinon -> "<principal>:<token>" encodé
    """
    token = (token or "").strip()
    if token.lower().startswith("basic "):
        return token
    if principal is None:
        principal = config.IXC_DEFAULT_PRINCIPAL
    raw = token if ":" in token else f"{principal}:{token}"
    encoded = base64.b64encode(raw.encode("utf-8")).decode("ascii")
    return f"Basic {encoded}"


def cpf_cnpj_formats(raw: str) -> List[str]:
    """
    Formats possibles d'un CPF/CNPJ tels que l'IXC peut les stocker.
    Chiffres bruts, saisie originale, puis forme ponctuée (11 ou 14 chiffres).
    """
    raw = (raw or "").strip()
    d = only_digits(raw)
    formats = [d, raw]
    if len(d) == 11:
        formats.append(f"{d[:3]}.{d[3:6]}.{d[6:9]}-{d[9:]}")
    elif len(d) == 14:
        formats.append(f"{d[:2]}.{d[2:5]}.{d[5:8]}/{d[8:12]}-{d[12:]}")
    # dedupe en gardant l'ordre
    seen = set()
    return [f for f in formats if f and not (f in seen or seen.add(f))]


def parse_total(value) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


# ==================== CLIENT ====================

class IXCClient:
    """
    Client IXC pour un tenant donné.

    Usage:
        async with IXCClient(ctx) as ixc:
            page = await ixc.query(TABLE_CLIENTE, "cliente.id", "1")
    Sans "async with", chaque appel ouvre un httpx.AsyncClient éphémère.
    """

    def __init__(
        self,
        ctx: TenantContext,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        proxy_base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.ctx = ctx
        self.transport = transport
        self.proxy_base_url = (proxy_base_url or config.IXC_PROXY_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else config.IXC_HTTP_TIMEOUT
        self._http: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._http = self._new_http()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _new_http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def url_for(self, resource: str) -> str:
        empresa_id = quote(str(self.ctx.empresa_id), safe="")
        return f"{self.proxy_base_url}{config.IXC_PROXY_PREFIX}/{empresa_id}/webservice/v1/{resource}"

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "ixcsoft": "listar",
            "Authorization": build_ixc_auth(self.ctx.empresa.token),
            # Indique au proxy où transférer la requête
            TARGET_HEADER: self.ctx.base_url,
        }

    async def _post(self, resource: str, body: Dict[str, Any]) -> httpx.Response:
        url = self.url_for(resource)
        try:
            if self._http is not None:
                return await self._http.post(url, json=body, headers=self.headers())
            async with self._new_http() as http:
                return await http.post(url, json=body, headers=self.headers())
        except httpx.TransportError as e:
            logger.warning(f"IXC transport error ({self.ctx.base_url}): {e}")
            raise UpstreamUnreachable(self.ctx.base_url, str(e) or e.__class__.__name__)

    async def fetch(self, resource: str, q: IXCQuery) -> IXCPage:
        """Exécute une requête IXC et normalise la pagination"""
        resp = await self._post(resource, q.to_body())

        if resp.status_code == 502 and resp.headers.get(PROXY_ERROR_HEADER) == "unreachable":
            try:
                detail = resp.json().get("error", "")
            except ValueError:
                detail = resp.text
            raise UpstreamUnreachable(self.ctx.base_url, detail)

        if not resp.is_success:
            raise UpstreamHTTPError(resp.status_code, resp.text)

        try:
            data = json.loads(resp.content)
        except ValueError:
            raise UpstreamProtocolError(resp.text)
        if not isinstance(data, dict):
            raise UpstreamProtocolError(resp.text)

        if data.get("type") == "error":
            raise UpstreamHTTPError(resp.status_code, str(data.get("message", "")))

        registros = data.get("registros") or []
        if not isinstance(registros, list):
            raise UpstreamProtocolError(resp.text)
        return IXCPage(total=parse_total(data.get("total")), registros=registros)

    async def query(
        self,
        resource: str,
        qtype: str,
        query: str,
        oper: str = "=",
        page: int = 1,
        rp: int = 50,
        sortname: Optional[str] = None,
        sortorder: Optional[str] = None,
    ) -> IXCPage:
        return await self.fetch(resource, IXCQuery(
            qtype=qtype, query=str(query), oper=oper, page=page, rp=rp,
            sortname=sortname, sortorder=sortorder,
        ))

    # ==================== API METHODS ====================

    async def test_connection(self) -> ConnectionTestResult:
        """Teste la connexion au serveur IXC"""
        try:
            await self.query(TABLE_CLIENTE, "cliente.id", "1", page=1, rp=1)
            return ConnectionTestResult(ok=True)
        except UpstreamHTTPError as e:
            return ConnectionTestResult(ok=False, erro=f"HTTP {e.status}: {e.body[:200]}")
        except IXCError as e:
            return ConnectionTestResult(ok=False, erro=e.message)

    async def search_clientes(self, query: str, campo: str = "razao") -> List[Dict[str, Any]]:
        """Recherche de clients par nom, CPF/CNPJ ou téléphone"""
        if campo not in SEARCH_FIELDS:
            raise ValueError(f"Campo de busca inválido: {campo}")

        if campo == "fn_cgccpf":
            # L'IXC stocke le document avec ou sans ponctuation: on essaie tout
            for fmt in cpf_cnpj_formats(query):
                page = await self.query(TABLE_CLIENTE, SEARCH_FIELDS[campo], fmt, oper="=", rp=50)
                if page.registros:
                    return page.registros
            return []

        page = await self.query(TABLE_CLIENTE, SEARCH_FIELDS[campo], query, oper="like", rp=50)
        return page.registros

    async def get_cliente_by_id(self, cliente_id: str) -> Optional[Dict[str, Any]]:
        page = await self.query(TABLE_CLIENTE, "cliente.id", cliente_id, rp=1)
        return page.registros[0] if page.registros else None

    async def get_onus_by_cliente(self, cliente_id: str) -> List[Dict[str, Any]]:
        page = await self.query(TABLE_FIBRA_ONU, "fibra_onu_cliente.id_cliente", cliente_id)
        return page.registros

    async def get_radios_by_cliente(self, cliente_id: str) -> List[Dict[str, Any]]:
        page = await self.query(TABLE_RADIO, "raio_cliente.id_cliente", cliente_id)
        return page.registros

    async def get_servicos_by_cliente(self, cliente_id: str) -> List[Dict[str, Any]]:
        """Contrats / services d'un client"""
        page = await self.query(TABLE_CONTRATO, "cliente_contrato.id_cliente", cliente_id)
        return page.registros

    async def get_areceber_by_cliente(self, cliente_id: str) -> List[Dict[str, Any]]:
        """Titres à recevoir encore ouverts (status A)"""
        page = await self.query(TABLE_ARECEBER, "fn_areceber.id_cliente", cliente_id)
        return [b for b in page.registros if str(b.get("status", "")).upper() == "A"]

    async def get_equipamentos_by_cliente(self, cliente_id: str) -> EquipamentosCliente:
        onus, radios, servicos, boletos = await asyncio.gather(
            self.get_onus_by_cliente(cliente_id),
            self.get_radios_by_cliente(cliente_id),
            self.get_servicos_by_cliente(cliente_id),
            self.get_areceber_by_cliente(cliente_id),
        )
        return EquipamentosCliente(onus=onus, radios=radios, servicos=servicos, boletos=boletos)
