"""
IXC ERP - Route proxy IXC (déploiement standalone)

ANY /api/ixc/<empresa_id>/<chemin IXC...>
Header requis: x-ixc-target: https://erp.suaempresa.com.br
"""

from fastapi import APIRouter, Request

from services.ixc_proxy import ixc_proxy

router = APIRouter(tags=["IXC Proxy"])  # monté sur IXC_PROXY_PREFIX

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


@router.api_route("", methods=PROXY_METHODS, include_in_schema=False)
@router.api_route("/{route_path:path}", methods=PROXY_METHODS, include_in_schema=False)
async def proxy_ixc(request: Request):
    """Relaie la requête vers l'hôte IXC du tenant"""
    return await ixc_proxy.handle(request)
