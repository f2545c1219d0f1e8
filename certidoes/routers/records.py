"""Proxy /api/records: repassa as chamadas para o Apps Script."""
import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from certidoes.gateway import RemoteGateway, UpstreamResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/records", tags=["records"])

_FORWARDED_KEYS = ("action", "data", "id")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"ok": False, "error": message}, status_code=status_code)


def _relay(upstream: UpstreamResponse) -> JSONResponse:
    return JSONResponse(upstream.body, status_code=upstream.status_code)


async def _read_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@router.get("")
async def list_records(request: Request):
    """Lista todas as certidões (repasse do GET do script)."""
    gateway: RemoteGateway = request.app.state.gateway
    try:
        upstream = await gateway.relay_get()
    except Exception as e:
        logger.exception("Erro no proxy GET /api/records")
        return _error(500, str(e))
    return _relay(upstream)


@router.post("")
async def record_action(request: Request):
    """Recebe {action, data, id} e repassa sem alterar."""
    gateway: RemoteGateway = request.app.state.gateway
    try:
        body = await _read_body(request)
        if not body.get("action"):
            return _error(400, "action required")
        payload = {key: body[key] for key in _FORWARDED_KEYS if body.get(key) is not None}
        upstream = await gateway.relay_post(payload)
    except Exception as e:
        logger.exception("Erro no proxy POST /api/records")
        return _error(500, str(e))
    return _relay(upstream)


async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Qualquer outro método em /api/records responde 405 no formato {ok, error}."""
    if exc.status_code == 405 and request.url.path.rstrip("/") == router.prefix:
        response = _error(405, "method not allowed")
        response.headers.update(exc.headers or {})
        return response
    return await http_exception_handler(request, exc)
