"""
IXC ERP — Store par compte (requêtes MongoDB)
Run: cd backend && pytest tests/test_tenant_store.py -v
"""

from services.tenant_store import TenantStore
from tests.conftest import run


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs
        self.length = "unset"

    def sort(self, key, direction):
        self.docs = sorted(self.docs, key=lambda d: d[key], reverse=direction < 0)
        return self

    async def to_list(self, length):
        self.length = length
        return self.docs if length is None else self.docs[:length]


class FakeCollection:
    def __init__(self, docs):
        self.docs = docs
        self.cursors = []
        self.queries = []

    def find(self, query, projection=None):
        self.queries.append(query)
        docs = [d for d in self.docs if all(d.get(k) == v for k, v in query.items())]
        cursor = FakeCursor(docs)
        self.cursors.append(cursor)
        return cursor


class FakeDatabase:
    def __init__(self, equipamentos):
        self.equipamentos = FakeCollection(equipamentos)


def _equipamentos(n, status="No Cliente"):
    return [
        {"id": i, "account_id": "1", "categoria": "ONU", "modelo": "F601", "status": status, "ixc_cliente_id": str(i)}
        for i in range(1, n + 1)
    ]


class TestListEquipamentos:
    def test_no_silent_cap(self):
        """Tout l'inventaire est lu, même au-delà de 10 000 équipements"""
        database = FakeDatabase(_equipamentos(12000))
        result = run(TenantStore("1", database=database).list_equipamentos(status="No Cliente"))

        assert len(result) == 12000
        assert database.equipamentos.cursors[0].length is None
        assert result[0].id == 12000

    def test_scoped_to_account_and_status(self):
        database = FakeDatabase(_equipamentos(2) + [{"id": 9, "account_id": "2", "status": "No Cliente"}])
        result = run(TenantStore("1", database=database).list_equipamentos(status="No Cliente"))

        assert [e.id for e in result] == [2, 1]
        assert database.equipamentos.queries[0] == {"account_id": "1", "status": "No Cliente"}
