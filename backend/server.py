from fastapi import FastAPI, APIRouter
from starlette.middleware.cors import CORSMiddleware
import logging

import config
from config import client
from routes import clientes, empresas, equipamentos, event_log, ixc_proxy, monitor, settings, stats
from scheduler_service import task_scheduler
from services.ixc_proxy import IXCProxyMiddleware, ixc_proxy as ixc_proxy_service
from services.tenant_store import create_indexes, list_active_accounts

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create the main app without a prefix
app = FastAPI(title="IXC ERP")

# Create a router with the /api prefix
api_router = APIRouter(prefix="/api")


@api_router.get("/")
async def root():
    return {"message": "IXC ERP API", "proxy_mode": config.IXC_PROXY_MODE}


api_router.include_router(empresas.router)
api_router.include_router(clientes.router)
api_router.include_router(equipamentos.router)
api_router.include_router(monitor.router)
api_router.include_router(settings.router)
api_router.include_router(stats.router)
api_router.include_router(event_log.router)

# Include the router in the main app
app.include_router(api_router)

# Proxy IXC: handler standalone (défaut) ou couche ASGI devant le routing (dev)
if config.IXC_PROXY_MODE == "middleware":
    app.add_middleware(IXCProxyMiddleware, proxy=ixc_proxy_service)
else:
    app.include_router(ixc_proxy.router, prefix=config.IXC_PROXY_PREFIX)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup():
    await create_indexes()
    task_scheduler.start()
    for account_id in await list_active_accounts():
        task_scheduler.start_monitor(account_id)
    logger.info(f"IXC ERP démarré (proxy: {config.IXC_PROXY_MODE} sur {config.IXC_PROXY_PREFIX})")


@app.on_event("shutdown")
async def shutdown_db_client():
    task_scheduler.stop()
    await ixc_proxy_service.aclose()
    client.close()
