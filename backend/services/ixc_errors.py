"""
IXC ERP - Erreurs IXC

Taxonomie:
- MissingRouteTarget   : header x-ixc-target absent (proxy, 400, pas de retry)
- UpstreamUnreachable  : connexion impossible vers l'hôte IXC (502, retry possible)
- UpstreamHTTPError    : réponse non-2xx de l'IXC (status + extrait du body)
- UpstreamProtocolError: réponse non JSON (HTML) -> URL IXC mal configurée
"""


class IXCError(Exception):
    """Base des erreurs IXC"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingRouteTarget(IXCError):
    def __init__(self, message: str = "Missing x-ixc-target header"):
        super().__init__(message)


class InvalidRouteTarget(MissingRouteTarget):
    """x-ixc-target présent mais pas une URL http(s) absolue"""

    def __init__(self, target: str):
        super().__init__(f"Invalid x-ixc-target header: {target!r}")
        self.target = target


class UpstreamUnreachable(IXCError):
    def __init__(self, target: str, detail: str):
        super().__init__(f"IXC inacessível ({target}): {detail}")
        self.target = target
        self.detail = detail


class UpstreamHTTPError(IXCError):
    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = (body or "")[:300]
        super().__init__(f"IXC API error {status}: {self.body}")


class UpstreamProtocolError(IXCError):
    def __init__(self, excerpt: str = ""):
        self.excerpt = (excerpt or "")[:200]
        super().__init__("Servidor retornou HTML em vez de JSON. Verifique a URL.")


def http_status_for(error: IXCError) -> int:
    """Code HTTP renvoyé par nos routes pour une erreur IXC"""
    if isinstance(error, MissingRouteTarget):
        return 400
    if isinstance(error, UpstreamHTTPError) and 400 <= error.status < 600:
        return error.status
    return 502
