"""Aplicação FastAPI."""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any

import httpx
from fastapi import FastAPI
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from certidoes.config import (
    LOG_LEVEL,
    RECOMPUTE_STATUS_ON_LOAD,
    SPREADSHEET_URL,
    TEMPLATES_DIR,
    UPSTREAM_TIMEOUT_SECONDS,
    UPSTREAM_URL,
)
from certidoes.crud import load_certificates
from certidoes.gateway import RemoteGateway
from certidoes.routers import certificates, records
from certidoes.status import NO_EXPIRATION, Status

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

STATUS_BADGES = {
    Status.CURRENT: "badge-current",
    Status.DUE_SOON: "badge-due-soon",
    Status.EXPIRED: "badge-expired",
}


def format_date_br(value: Any) -> str:
    """Data no formato dd/mm/aaaa; vazio vira '-'."""
    if value is None or value == "":
        return "-"
    if value == NO_EXPIRATION:
        return "Indet."
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    return str(value)


def format_time_br(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.astimezone().strftime("%H:%M:%S")


templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.filters["data_br"] = format_date_br
templates.env.filters["hora_br"] = format_time_br
templates.env.globals["Status"] = Status
templates.env.globals["STATUS_BADGES"] = STATUS_BADGES
templates.env.globals["SPREADSHEET_URL"] = SPREADSHEET_URL


def create_app(
    http_client: httpx.AsyncClient | None = None,
    upstream_url: str = UPSTREAM_URL,
    recompute_on_load: bool = RECOMPUTE_STATUS_ON_LOAD,
) -> FastAPI:
    """Monta a aplicação. Um http_client externo não é fechado no shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Início/fim da aplicação: cliente HTTP e carga inicial."""
        client = http_client or httpx.AsyncClient(timeout=UPSTREAM_TIMEOUT_SECONDS, follow_redirects=True)
        app.state.templates = templates
        app.state.gateway = RemoteGateway(client, upstream_url)
        app.state.recompute_on_load = recompute_on_load
        app.state.records_lock = asyncio.Lock()
        if not upstream_url:
            logger.warning("CERTIDOES_UPSTREAM_URL não configurada; o painel ficará vazio")
        app.state.records = await load_certificates(app.state.gateway, recompute=recompute_on_load)
        yield
        if http_client is None:
            await client.aclose()

    app = FastAPI(
        title="Certidões",
        description="Controle de vencimentos de certidões (Google Sheets via Apps Script)",
        lifespan=lifespan,
    )
    app.include_router(records.router)
    app.include_router(certificates.router)
    app.add_exception_handler(StarletteHTTPException, records.method_not_allowed_handler)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
