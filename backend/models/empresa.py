"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  IXC ERP - Empresa IXC (configuration upstream par tenant)                   ║
║                                                                              ║
║  RÈGLES:                                                                     ║
║  - Une empresa = une URL IXC + un token, rattachée à un compte               ║
║  - Une seule empresa ATIVA par compte (activation exclusive)                 ║
║  - Le contexte tenant est passé explicitement, jamais lu en global           ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


def _validate_url(v: str) -> str:
    v = (v or "").strip()
    if not v.lower().startswith(("http://", "https://")):
        raise ValueError(f"URL IXC invalide (http/https requis): {v}")
    return v.rstrip("/")


class EmpresaCreate(BaseModel):
    """Création d'une configuration IXC"""
    id: Optional[str] = None  # généré si absent
    nome: str
    url: str  # ex: https://erp.suaempresa.com.br
    token: str  # "Basic ..." ou clé brute

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        return _validate_url(v)


class EmpresaUpdate(BaseModel):
    """Mise à jour d'une configuration IXC"""
    nome: Optional[str] = None
    url: Optional[str] = None
    token: Optional[str] = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        if v is None:
            return v
        return _validate_url(v)


class Empresa(BaseModel):
    """Configuration IXC stockée (TenantConfig)"""
    id: str
    account_id: str
    nome: str
    url: str
    token: str
    ativa: bool = False
    created_at: str = ""
    updated_at: str = ""


class TenantContext(BaseModel):
    """Compte + empresa IXC ciblée, passé à chaque appel client/sync/resolver"""
    account_id: str
    empresa: Empresa

    @property
    def empresa_id(self) -> str:
        return self.empresa.id

    @property
    def base_url(self) -> str:
        return self.empresa.url.rstrip("/")
