import json
from typing import Any, Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from certidoes.gateway import RemoteGateway
from certidoes.main import create_app

UPSTREAM_URL = "https://script.example.test/macros/s/abc/exec"

SAMPLE_ROWS = [
    {
        "id": "1",
        "empresa": "Acme Ltda",
        "cnpj": "11.111.111/0001-11",
        "email": "fiscal@acme.com.br",
        "tipoDocumento": "CND Federal",
        "orgao": "Receita Federal",
        "dataEmissao": "2024-01-10",
        "fimVigencia": "2099-12-31",
        "antecedenciaDias": 30,
        "statusNovoVenc": "NO PRAZO",
        "gestor": "Marta",
        "responsavel": "Paulo",
        "taxRenovacao": "R$ 0,00",
    },
    {
        "id": "2",
        "empresa": "Beta S/A",
        "cnpj": "22.222.222/0001-22",
        "email": "",
        "tipoDocumento": "CND Estadual",
        "orgao": "SEFAZ",
        "dataEmissao": "2019-07-01",
        "fimVigencia": "2020-01-31",
        "antecedenciaDias": "15",
        "statusNovoVenc": "vencido",
        "gestor": "João",
        "responsavel": "",
        "taxRenovacao": "R$ 50,00",
    },
    {
        "id": 3,
        "empresa": "Gama Comércio",
        "cnpj": "33.333.333/0001-33",
        "email": "adm@gama.com.br",
        "tipoDocumento": "Alvará de Funcionamento",
        "orgao": "Prefeitura",
        "dataEmissao": "",
        "fimVigencia": "INDETERMINADO",
        "antecedenciaDias": "",
        "statusNovoVenc": " no prazo ",
        "gestor": "Ana",
        "responsavel": "Rita",
        "taxRenovacao": "R$ 120,00",
    },
]


class FakeSheet:
    """Apps Script em memória: GET lista, POST {action, data, id}."""

    def __init__(self, rows: list[dict[str, Any]] | None = None):
        self.rows = [dict(r) for r in (rows or [])]
        self.next_id = 100
        self.requests: list[httpx.Request] = []
        self.fail_status: int | None = None
        self.fail_text: str | None = None

    def posted(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.method == "POST"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_status is not None:
            return httpx.Response(self.fail_status, json={"ok": False, "error": "falha simulada"})
        if self.fail_text is not None:
            return httpx.Response(200, text=self.fail_text)
        if request.method == "GET":
            return httpx.Response(200, json=self.rows)

        body = json.loads(request.content)
        action = body.get("action")
        if action == "create":
            row = dict(body["data"], id=str(self.next_id))
            self.next_id += 1
            self.rows.append(row)
            return httpx.Response(200, json=row)
        if action == "update":
            data = body["data"]
            for index, row in enumerate(self.rows):
                if str(row["id"]) == data.get("id"):
                    self.rows[index] = dict(data)
                    return httpx.Response(200, json=data)
            return httpx.Response(200, json={"ok": False, "error": "id não encontrado"})
        if action == "delete":
            remaining = [r for r in self.rows if str(r["id"]) != body.get("id")]
            if len(remaining) == len(self.rows):
                return httpx.Response(200, json={"ok": False, "error": "id não encontrado"})
            self.rows = remaining
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(400, json={"ok": False, "error": "ação desconhecida"})


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def sheet() -> FakeSheet:
    return FakeSheet(SAMPLE_ROWS)


@pytest.fixture
def http_client(sheet: FakeSheet) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(sheet))


@pytest.fixture
def gateway(http_client: httpx.AsyncClient) -> RemoteGateway:
    return RemoteGateway(http_client, UPSTREAM_URL)


@pytest.fixture
def client(http_client: httpx.AsyncClient) -> Generator[TestClient, None, None]:
    app = create_app(http_client=http_client, upstream_url=UPSTREAM_URL)
    with TestClient(app) as c:
        yield c
