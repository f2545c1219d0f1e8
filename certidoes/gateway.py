"""Comunicação com o Apps Script que guarda as certidões na planilha."""
import json
import logging
from typing import Any, NamedTuple

import httpx
from pydantic import ValidationError

from certidoes.schemas import Certificate

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Falha ao falar com o Apps Script."""


class GatewayTransportError(GatewayError):
    """Sem resposta: rede, DNS, timeout ou URL não configurada."""


class GatewayStatusError(GatewayError):
    """Resposta HTTP fora de 2xx, ou {ok: false} do script."""

    def __init__(self, status_code: int, body: Any):
        self.status_code = status_code
        self.body = body
        detail = body.get("error") or body.get("raw") if isinstance(body, dict) else None
        super().__init__(f"HTTP {status_code}: {detail or body}")


class GatewayPayloadError(GatewayError):
    """Corpo da resposta ilegível ou com formato inesperado."""


class UpstreamResponse(NamedTuple):
    status_code: int
    body: Any
    parsed: bool

    @property
    def ok(self) -> bool:
        if not 200 <= self.status_code < 300:
            return False
        return not (self.parsed and isinstance(self.body, dict) and self.body.get("ok") is False)


def _unwrap(body: Any) -> Any:
    """Aceita tanto o valor puro quanto o envelope {ok, data}."""
    if isinstance(body, dict) and isinstance(body.get("data"), (list, dict)):
        return body["data"]
    return body


class RemoteGateway:
    """
    Cliente do contrato GET (lista) / POST {action, data, id} do Apps Script.
    Sem retry: uma falha vira exceção na hora.
    """

    def __init__(self, client: httpx.AsyncClient, url: str):
        self.client = client
        self.url = url

    async def _send(self, method: str, payload: dict[str, Any] | None = None) -> UpstreamResponse:
        if not self.url:
            raise GatewayTransportError("CERTIDOES_UPSTREAM_URL não configurada")
        try:
            if method == "GET":
                resp = await self.client.get(self.url)
            else:
                resp = await self.client.post(self.url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise GatewayTransportError(f"Falha de conexão com o Apps Script: {e}") from e
        text = resp.text
        try:
            return UpstreamResponse(resp.status_code, json.loads(text), True)
        except ValueError:
            return UpstreamResponse(resp.status_code, {"ok": False, "raw": text}, False)

    async def relay_get(self) -> UpstreamResponse:
        return await self._send("GET")

    async def relay_post(self, payload: dict[str, Any]) -> UpstreamResponse:
        return await self._send("POST", payload)

    @staticmethod
    def _check(response: UpstreamResponse) -> None:
        if not 200 <= response.status_code < 300:
            raise GatewayStatusError(response.status_code, response.body)
        if not response.parsed:
            raise GatewayPayloadError(f"Resposta não é JSON: {response.body.get('raw', '')[:200]!r}")
        if not response.ok:
            raise GatewayStatusError(response.status_code, response.body)

    async def list(self) -> list[Certificate]:
        """Lista todas as certidões. Itens sem id ou inválidos são descartados."""
        response = await self.relay_get()
        self._check(response)
        items = _unwrap(response.body)
        if not isinstance(items, list):
            raise GatewayPayloadError(f"Esperada uma lista de certidões, recebido {type(items).__name__}")

        certificates: list[Certificate] = []
        seen: set[str] = set()
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                logger.warning("Item %d ignorado: não é um objeto (%r)", index, item)
                continue
            try:
                cert = Certificate.model_validate(item)
            except ValidationError as e:
                logger.warning("Item %d ignorado: %s", index, e)
                continue
            if cert.id is None:
                logger.warning("Item %d ignorado: sem id (%s)", index, cert.empresa)
                continue
            if cert.id in seen:
                logger.warning("Item %d ignorado: id duplicado %s", index, cert.id)
                continue
            seen.add(cert.id)
            certificates.append(cert)
        return certificates

    async def create(self, cert: Certificate) -> Certificate:
        """Cria o registro; o Apps Script devolve a certidão com id."""
        data = cert.to_sheet()
        data.pop("id", None)
        response = await self.relay_post({"action": "create", "data": data})
        self._check(response)
        created = self._record(response.body, data)
        if created.id is None:
            raise GatewayPayloadError("Apps Script não devolveu o id da certidão criada")
        logger.info("Certidão criada: id=%s empresa=%s", created.id, created.empresa)
        return created

    async def update(self, cert: Certificate) -> Certificate:
        """Atualiza pelo id. O id enviado é mantido mesmo que a resposta traga outro."""
        if not cert.id:
            raise ValueError("update requer uma certidão com id")
        data = cert.to_sheet()
        response = await self.relay_post({"action": "update", "data": data})
        self._check(response)
        updated = self._record(response.body, data).model_copy(update={"id": cert.id})
        logger.info("Certidão atualizada: id=%s", updated.id)
        return updated

    async def delete(self, cert_id: str) -> None:
        """Exclui pelo id; qualquer falha é levantada."""
        response = await self.relay_post({"action": "delete", "id": cert_id})
        if not response.ok:
            raise GatewayStatusError(response.status_code, response.body)
        logger.info("Certidão excluída: id=%s", cert_id)

    @staticmethod
    def _record(body: Any, sent: dict[str, Any]) -> Certificate:
        """Registro devolvido; campos ausentes na resposta vêm do que foi enviado."""
        data = _unwrap(body)
        returned = {k: v for k, v in data.items() if k not in ("ok", "error")} if isinstance(data, dict) else {}
        try:
            return Certificate.model_validate({**sent, **returned})
        except ValidationError as e:
            raise GatewayPayloadError(f"Certidão inválida na resposta: {e}") from e
