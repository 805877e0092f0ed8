"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  IXC ERP - Modèles IXC Soft (webservice v1)                                  ║
║                                                                              ║
║  Convention IXC:                                                             ║
║  - POST /webservice/v1/<table>, header "ixcsoft: listar"                     ║
║  - Body: {qtype, query, oper, page, rp, sortname?, sortorder?}               ║
║  - Réponse: {type, total: "123", registros: [...]}                           ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


# Tables IXC utilisées
TABLE_CLIENTE = "cliente"
TABLE_FIBRA_ONU = "fibra_onu_cliente"
TABLE_RADIO = "raio_cliente"
TABLE_CONTRATO = "cliente_contrato"
TABLE_ARECEBER = "fn_areceber"


class IXCQuery(BaseModel):
    """Filtre d'une requête IXC"""
    qtype: str  # ex: cliente.razao
    query: str
    oper: str = "="  # "=" ou "like"
    page: int = 1
    rp: int = 50
    sortname: Optional[str] = None
    sortorder: Optional[str] = None

    def to_body(self) -> Dict[str, Any]:
        body = {
            "qtype": self.qtype,
            "query": self.query,
            "oper": self.oper,
            "page": self.page,
            "rp": self.rp,
        }
        if self.sortname:
            body["sortname"] = self.sortname
        if self.sortorder:
            body["sortorder"] = self.sortorder
        return body


class IXCPage(BaseModel):
    """Page de résultats IXC normalisée"""
    total: int = 0
    registros: List[Dict[str, Any]] = []


class ClienteSync(BaseModel):
    """
    Client IXC synchronisé localement (UpstreamCustomerRecord).
    Clé primaire: (id, empresa_id)
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    empresa_id: str = ""
    razao: str = ""
    fn_cgccpf: str = ""
    fone_celular: str = ""
    fone: str = ""
    email: str = ""
    ativo: str = "S"  # S / N
    cidade: str = ""
    bairro: str = ""
    endereco: str = ""
    numero: str = ""
    tipo_pessoa: str = "F"  # F physique / J juridique
    valor_mensalidade: Optional[str] = None
    sincronizado_em: str = ""

    @classmethod
    def from_ixc(cls, r: Dict[str, Any]) -> "ClienteSync":
        """Mappe un enregistrement brut IXC vers nos champs internes"""
        def s(key):
            v = r.get(key)
            return "" if v is None else str(v)

        return cls(
            id=s("id"),
            razao=s("razao"),
            fn_cgccpf=s("cnpj_cpf") or s("fn_cgccpf"),
            fone_celular=s("telefone_celular") or s("fone_celular"),
            fone=s("telefone_comercial") or s("fone"),
            email=s("email"),
            ativo=s("ativo") or "S",
            cidade=s("cidade"),
            bairro=s("bairro"),
            endereco=s("endereco"),
            numero=s("numero"),
            tipo_pessoa=s("tipo_pessoa") or "F",
            valor_mensalidade=None if r.get("valor_mensalidade") is None else str(r["valor_mensalidade"]),
        )


class ClienteListResponse(BaseModel):
    registros: List[ClienteSync]
    total: int


class ConnectionTestResult(BaseModel):
    ok: bool
    erro: Optional[str] = None


class EquipamentosCliente(BaseModel):
    """ONUs + rádios + contratos + boletos d'un client IXC"""
    onus: List[Dict[str, Any]] = Field(default_factory=list)
    radios: List[Dict[str, Any]] = Field(default_factory=list)
    servicos: List[Dict[str, Any]] = Field(default_factory=list)
    boletos: List[Dict[str, Any]] = Field(default_factory=list)
