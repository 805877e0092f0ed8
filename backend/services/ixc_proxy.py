"""
IXC ERP - Proxy IXC dynamique

/api/ixc/<empresa_id>/webservice/v1/...  ->  <x-ixc-target>/webservice/v1/...

Le navigateur (et notre propre client IXC) ne parle jamais directement à
l'hôte IXC: pas de CORS, pas d'exposition des credentials, et l'hôte cible
est choisi par requête (header x-ixc-target), sans redémarrage.

Deux déploiements, même contrat:
- router  : handler FastAPI standalone (routes/ixc_proxy.py)
- middleware : couche ASGI qui intercepte le préfixe avant le routing (dev)
Les deux appellent IXCProxy.handle().
"""

import logging
import re
from typing import Optional

import httpx
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse

import config
from services.ixc_errors import InvalidRouteTarget, MissingRouteTarget

logger = logging.getLogger("ixc_proxy")

TARGET_HEADER = "x-ixc-target"
PROXY_ERROR_HEADER = "x-ixc-proxy-error"

HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

_ROUTE_SEGMENT = re.compile(r"^/[^/]+")


def strip_route_segment(path: str) -> str:
    """'/t1/webservice/v1/cliente' -> '/webservice/v1/cliente'"""
    return _ROUTE_SEGMENT.sub("", path, count=1)


def build_target_url(target: str, path: str, query: str = "") -> str:
    """
    Concatène le chemin (sans le segment empresa) sur l'URL cible.
    Le slash final de la cible est retiré pour éviter les doubles slashes.
    """
    url = f"{target.rstrip('/')}{strip_route_segment(path)}"
    if query:
        url = f"{url}?{query}"
    return url


def parse_target(target: Optional[str]) -> httpx.URL:
    if not target or not target.strip():
        raise MissingRouteTarget()
    try:
        url = httpx.URL(target.strip())
    except (httpx.InvalidURL, TypeError, ValueError):
        raise InvalidRouteTarget(target)
    if url.scheme not in ("http", "https") or not url.host:
        raise InvalidRouteTarget(target)
    return url


def host_header(url: httpx.URL) -> str:
    default_port = 443 if url.scheme == "https" else 80
    if url.port and url.port != default_port:
        return f"{url.host}:{url.port}"
    return url.host


def _error(status_code: int, message: str, **extra_headers) -> JSONResponse:
    headers = {"access-control-allow-origin": "*"}
    headers.update(extra_headers)
    return JSONResponse({"error": message}, status_code=status_code, headers=headers)


class IXCProxy:
    """Relais HTTP vers l'hôte IXC nommé dans x-ixc-target"""

    def __init__(
        self,
        prefix: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.prefix = (prefix if prefix is not None else config.IXC_PROXY_PREFIX).rstrip("/")
        self.transport = transport
        self.timeout = timeout if timeout is not None else config.IXC_HTTP_TIMEOUT
        self._client: Optional[httpx.AsyncClient] = None

    def configure(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Change le transport sortant (tests) et réinitialise le client"""
        self.transport = transport
        self._client = None

    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=False,
            )
        return self._client

    async def aclose(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def matches(self, path: str) -> bool:
        return path == self.prefix or path.startswith(self.prefix + "/")

    def relative_path(self, path: str) -> str:
        """'/api/ixc/t1/webservice/v1/cliente' -> '/t1/webservice/v1/cliente'"""
        if self.matches(path):
            return path[len(self.prefix):]
        return path

    def forward_headers(self, request: Request, target: httpx.URL):
        headers = []
        for key, value in request.headers.raw:
            name = key.decode("latin-1").lower()
            if name == "host" or name in HOP_BY_HOP_HEADERS:
                continue
            headers.append((key, value))
        headers.append((b"host", host_header(target).encode("latin-1")))
        return headers

    def response_headers(self, upstream: httpx.Response):
        headers = []
        for key, value in upstream.headers.raw:
            name = key.decode("latin-1").lower()
            # Sans WWW-Authenticate, un 401 ne déclenche pas la popup Basic Auth du navigateur
            if name == "www-authenticate" or name in HOP_BY_HOP_HEADERS:
                continue
            if name == "access-control-allow-origin":
                continue
            headers.append((key, value))
        headers.append((b"access-control-allow-origin", b"*"))
        return headers

    async def handle(self, request: Request) -> Response:
        raw_target = request.headers.get(TARGET_HEADER)
        try:
            target = parse_target(raw_target)
        except MissingRouteTarget as e:
            logger.warning(f"[IXC Proxy] {e.message} ({request.method} {request.url.path})")
            return _error(400, e.message)

        path = self.relative_path(request.url.path)
        full_url = build_target_url(str(target), path, request.url.query)

        # Corps streamé si présent (content-length ou chunked), rien sinon
        has_body = "content-length" in request.headers or "transfer-encoding" in request.headers
        content = request.stream() if has_body else None

        client = self.client()
        upstream_request = client.build_request(
            request.method,
            full_url,
            headers=self.forward_headers(request, target),
            content=content,
        )

        try:
            upstream = await client.send(upstream_request, stream=True)
        except httpx.TransportError as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"[IXC Proxy Error] {full_url}: {message}")
            return _error(502, message, **{PROXY_ERROR_HEADER: "unreachable"})

        if upstream.is_stream_consumed:
            # Corps déjà lu (transport en mémoire): renvoyé tel quel, décodé
            body = upstream.content
            await upstream.aclose()
            headers = [
                (k, v) for k, v in self.response_headers(upstream)
                if k.lower() not in (b"content-length", b"content-encoding")
            ]
            headers.append((b"content-length", str(len(body)).encode("latin-1")))
            response = Response(body, status_code=upstream.status_code)
            response.raw_headers = headers
            return response

        response = StreamingResponse(
            upstream.aiter_raw(),
            status_code=upstream.status_code,
            background=BackgroundTask(upstream.aclose),
        )
        response.raw_headers = self.response_headers(upstream)
        return response


class IXCProxyMiddleware:
    """
    Couche ASGI de développement: intercepte le préfixe proxy avant toute
    autre route (équivalent du plugin de proxy du serveur de dev front).
    """

    def __init__(self, app, proxy: Optional[IXCProxy] = None):
        self.app = app
        self.proxy = proxy or ixc_proxy

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and self.proxy.matches(scope["path"]):
            request = Request(scope, receive)
            response = await self.proxy.handle(request)
            await response(scope, receive, send)
            return
        await self.app(scope, receive, send)


# Instance globale
ixc_proxy = IXCProxy()
