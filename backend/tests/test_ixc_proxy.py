"""
IXC ERP — Proxy IXC dynamique
Tests: réécriture d'URL, header cible manquant, en-têtes, erreurs de connexion,
mode middleware, chaîne complète client -> proxy -> IXC.
Run: cd backend && pytest tests/test_ixc_proxy.py -v
"""

import json

import httpx
from fastapi import FastAPI
from fastapi.testclient import TestClient

from routes import ixc_proxy as ixc_proxy_routes
from services.ixc_client import IXCClient
from services.ixc_proxy import (
    IXCProxy,
    IXCProxyMiddleware,
    build_target_url,
    ixc_proxy,
    strip_route_segment,
)
from tests.conftest import FakeIXC, cliente_record, make_ctx, run

TARGET = {"x-ixc-target": "https://host.example"}


class ChunkedBody(httpx.AsyncByteStream):
    """Corps de réponse réellement streamé (non lu à la construction)"""

    def __init__(self, data: bytes, chunk_size: int = 8):
        self.data = data
        self.chunk_size = chunk_size

    async def __aiter__(self):
        for i in range(0, len(self.data), self.chunk_size):
            yield self.data[i:i + self.chunk_size]


class Upstream:
    """Hôte IXC simulé: enregistre les requêtes reçues"""

    def __init__(self, status=200, payload=None, headers=None, streamed=True):
        self.status = status
        self.payload = payload if payload is not None else {"type": "success", "total": "0", "registros": []}
        self.headers = headers or {}
        self.streamed = streamed
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.streamed:
            return httpx.Response(self.status, json=self.payload, headers=self.headers)
        return httpx.Response(
            self.status,
            headers={"content-type": "application/json", **self.headers},
            stream=ChunkedBody(json.dumps(self.payload).encode()),
        )


def router_app(transport) -> TestClient:
    ixc_proxy.configure(transport)
    app = FastAPI()
    app.include_router(ixc_proxy_routes.router, prefix="/api/ixc")
    return TestClient(app)


# ═══════════════════════════════════════════════════════════════
# 1. UNIT: URL
# ═══════════════════════════════════════════════════════════════

class TestUrlRewrite:
    def test_strip_route_segment(self):
        assert strip_route_segment("/t1/webservice/v1/cliente") == "/webservice/v1/cliente"

    def test_no_double_slash(self):
        assert build_target_url("https://host.example/", "/t1/webservice/v1/cliente") == \
            "https://host.example/webservice/v1/cliente"

    def test_query_preserved(self):
        assert build_target_url("https://host.example", "/t1/x", "a=1&b=2") == "https://host.example/x?a=1&b=2"


# ═══════════════════════════════════════════════════════════════
# 2. ROUTER
# ═══════════════════════════════════════════════════════════════

class TestProxyRouter:
    def test_forwards_to_exact_target_url(self):
        upstream = Upstream()
        client = router_app(httpx.MockTransport(upstream.handler))
        r = client.post("/api/ixc/t1/webservice/v1/cliente", json={"qtype": "cliente.id"}, headers=TARGET)

        assert r.status_code == 200
        assert str(upstream.requests[0].url) == "https://host.example/webservice/v1/cliente"
        assert upstream.requests[0].method == "POST"

    def test_trailing_slash_on_target(self):
        upstream = Upstream()
        client = router_app(httpx.MockTransport(upstream.handler))
        client.post("/api/ixc/t1/webservice/v1/cliente", headers={"x-ixc-target": "https://host.example/"})
        assert str(upstream.requests[0].url) == "https://host.example/webservice/v1/cliente"

    def test_query_string_and_body_forwarded(self):
        upstream = Upstream()
        client = router_app(httpx.MockTransport(upstream.handler))
        client.post("/api/ixc/t1/webservice/v1/cliente?debug=1", json={"page": 2}, headers=TARGET)

        request = upstream.requests[0]
        assert request.url.query == b"debug=1"
        assert json.loads(request.content) == {"page": 2}

    def test_host_rewritten_auth_forwarded(self):
        upstream = Upstream()
        client = router_app(httpx.MockTransport(upstream.handler))
        client.post(
            "/api/ixc/t1/webservice/v1/cliente",
            headers={**TARGET, "Authorization": "Basic MTpzZWNyZXQ=", "ixcsoft": "listar"},
        )
        request = upstream.requests[0]
        assert request.headers["host"] == "host.example"
        assert request.headers["authorization"] == "Basic MTpzZWNyZXQ="
        assert request.headers["ixcsoft"] == "listar"

    def test_missing_target_header_is_400(self):
        """Jamais de 5xx ni d'attente quand le header manque"""
        upstream = Upstream()
        client = router_app(httpx.MockTransport(upstream.handler))
        r = client.post("/api/ixc/t1/webservice/v1/cliente", json={})

        assert r.status_code == 400
        assert "error" in r.json()
        assert upstream.requests == []

    def test_invalid_target_is_400(self):
        client = router_app(httpx.MockTransport(Upstream().handler))
        r = client.get("/api/ixc/t1/webservice/v1/cliente", headers={"x-ixc-target": "not a url"})
        assert r.status_code == 400
        assert "error" in r.json()

    def test_upstream_status_passthrough_without_www_authenticate(self):
        upstream = Upstream(status=401, payload={"error": "unauthorized"},
                            headers={"WWW-Authenticate": 'Basic realm="ixc"'})
        client = router_app(httpx.MockTransport(upstream.handler))
        r = client.post("/api/ixc/t1/webservice/v1/cliente", headers=TARGET)

        assert r.status_code == 401
        assert "www-authenticate" not in r.headers
        assert r.headers["access-control-allow-origin"] == "*"
        assert r.json() == {"error": "unauthorized"}

    def test_body_streamed_in_chunks(self):
        payload = {"type": "success", "total": "1", "registros": [cliente_record(1)]}
        client = router_app(httpx.MockTransport(Upstream(payload=payload).handler))
        r = client.post("/api/ixc/t1/webservice/v1/cliente", headers=TARGET)
        assert r.json() == payload

    def test_already_read_upstream_body(self):
        """Réponse upstream déjà bufferisée: renvoyée telle quelle, sans en-tête WWW-Authenticate"""
        upstream = Upstream(status=401, payload={"error": "unauthorized"},
                            headers={"WWW-Authenticate": 'Basic realm="ixc"'}, streamed=False)
        client = router_app(httpx.MockTransport(upstream.handler))
        r = client.post("/api/ixc/t1/webservice/v1/cliente", headers=TARGET)

        assert r.status_code == 401
        assert "www-authenticate" not in r.headers
        assert r.json() == {"error": "unauthorized"}
        assert int(r.headers["content-length"]) == len(r.content)

    def test_connection_failure_is_502(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = router_app(httpx.MockTransport(handler))
        r = client.post("/api/ixc/t1/webservice/v1/cliente", headers=TARGET)

        assert r.status_code == 502
        assert "connection refused" in r.json()["error"]
        assert r.headers["x-ixc-proxy-error"] == "unreachable"

    def test_any_method(self):
        upstream = Upstream()
        client = router_app(httpx.MockTransport(upstream.handler))
        client.delete("/api/ixc/t1/webservice/v1/cliente/5", headers=TARGET)
        assert upstream.requests[0].method == "DELETE"
        assert upstream.requests[0].url.path == "/webservice/v1/cliente/5"


# ═══════════════════════════════════════════════════════════════
# 3. MIDDLEWARE
# ═══════════════════════════════════════════════════════════════

class TestProxyMiddleware:
    def _app(self, upstream):
        app = FastAPI()

        @app.get("/api/health")
        async def health():
            return {"ok": True}

        proxy = IXCProxy(prefix="/api/ixc", transport=httpx.MockTransport(upstream.handler))
        app.add_middleware(IXCProxyMiddleware, proxy=proxy)
        return TestClient(app)

    def test_intercepts_prefix(self):
        upstream = Upstream()
        client = self._app(upstream)
        r = client.post("/api/ixc/t2/webservice/v1/cliente_contrato", headers=TARGET)
        assert r.status_code == 200
        assert str(upstream.requests[0].url) == "https://host.example/webservice/v1/cliente_contrato"

    def test_other_paths_reach_app(self):
        upstream = Upstream()
        client = self._app(upstream)
        r = client.get("/api/health")
        assert r.json() == {"ok": True}
        assert upstream.requests == []

    def test_same_contract_for_missing_header(self):
        client = self._app(Upstream())
        r = client.get("/api/ixc/t2/webservice/v1/cliente")
        assert r.status_code == 400
        assert "error" in r.json()


# ═══════════════════════════════════════════════════════════════
# 4. CHAÎNE COMPLÈTE
# ═══════════════════════════════════════════════════════════════

class TestClientThroughProxy:
    def test_client_query_reaches_ixc_host(self):
        ixc = FakeIXC(clientes=[cliente_record(1), cliente_record(2)])
        proxy = IXCProxy(prefix="/api/ixc", transport=ixc.transport())
        app = FastAPI()
        app.add_middleware(IXCProxyMiddleware, proxy=proxy)

        async def scenario():
            client = IXCClient(make_ctx(), transport=httpx.ASGITransport(app=app), proxy_base_url="http://erp.local")
            async with client as ixc_client:
                page = await ixc_client.query("cliente", "cliente.ativo", "S", rp=10)
            await proxy.aclose()
            return page

        page = run(scenario())
        assert page.total == 2
        assert str(ixc.requests[0].url) == "https://host.example/webservice/v1/cliente"
        assert ixc.requests[0].headers["ixcsoft"] == "listar"
