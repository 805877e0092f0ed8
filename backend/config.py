"""
Configuration et utilitaires partagés
"""

import os
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path

# Charger .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'ixc_erp')

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

# Proxy IXC: le client ne parle jamais directement à l'hôte IXC,
# il passe par notre relais /api/ixc
IXC_PROXY_BASE_URL = os.environ.get('IXC_PROXY_BASE_URL', 'http://localhost:8001').rstrip('/')
IXC_PROXY_PREFIX = os.environ.get('IXC_PROXY_PREFIX', '/api/ixc').rstrip('/')
IXC_PROXY_MODE = os.environ.get('IXC_PROXY_MODE', 'router').lower()  # router | middleware
IXC_DEFAULT_PRINCIPAL = os.environ.get('IXC_DEFAULT_PRINCIPAL', '1')
IXC_HTTP_TIMEOUT = float(os.environ.get('IXC_HTTP_TIMEOUT', '60'))

# Moniteur de contrats
MONITOR_ENABLED = os.environ.get('MONITOR_ENABLED', 'true').lower() in ('1', 'true', 'yes')
MONITOR_WARMUP_SECONDS = int(os.environ.get('MONITOR_WARMUP_SECONDS', '10'))
MONITOR_INTERVAL_MINUTES = int(os.environ.get('MONITOR_INTERVAL_MINUTES', '30'))
SCHEDULER_TIMEZONE = os.environ.get('SCHEDULER_TIMEZONE', 'America/Sao_Paulo')

# Auth gérée en amont: chaque requête porte X-Account-Id
DEFAULT_ACCOUNT_ID = os.environ.get('DEFAULT_ACCOUNT_ID', '1')

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')


# ==================== HELPERS ====================

def now_iso() -> str:
    """Retourne la date/heure actuelle en ISO"""
    return datetime.now(timezone.utc).isoformat()

def timestamp() -> int:
    """Retourne le timestamp actuel"""
    return int(datetime.now(timezone.utc).timestamp())

def only_digits(value) -> str:
    """Garde uniquement les chiffres (CPF/CNPJ, téléphones)"""
    return ''.join(ch for ch in str(value or '') if ch.isdigit())

def parse_money(value) -> float:
    """
    Parse un montant texte ("89,90", "1.234,50", "89.90") en float.
    Retourne 0.0 si invalide.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).strip().replace('R$', '').replace(' ', '')
    if not s:
        return 0.0
    if ',' in s:
        s = s.replace('.', '').replace(',', '.')
    try:
        return float(s)
    except ValueError:
        return 0.0
