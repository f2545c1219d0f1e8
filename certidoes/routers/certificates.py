"""Painel de certidões: páginas, formulário e API de leitura."""
import asyncio
import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError

from certidoes.crud import (
    CertificateNotFound,
    RecordStore,
    create_certificate,
    delete_certificate,
    get_certificate,
    load_certificates,
    update_certificate,
)
from certidoes.filters import ALL, count_by_status, filter_certificates, parse_status_filter
from certidoes.gateway import GatewayError
from certidoes.schemas import Certificate, CertificateForm, DashboardResponse
from certidoes.status import NO_EXPIRATION

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["certidoes"])

ERROR_MESSAGES = {
    "required_fields": "Empresa e Tipo de Documento são obrigatórios.",
    "invalid_form": "Dados inválidos. Verifique as datas informadas.",
    "save_failed": "Erro ao salvar. Verifique a conexão com a API.",
    "delete_failed": "Erro ao excluir a certidão. Verifique a conexão com a API.",
}

FORM_FIELDS = (
    "empresa",
    "cnpj",
    "email",
    "tipo_documento",
    "orgao",
    "data_emissao",
    "fim_vigencia",
    "antecedencia_dias",
    "gestor",
    "responsavel",
    "taxa_renovacao",
)
_REQUIRED = {"empresa", "tipo_documento", "tipoDocumento"}


def _store(request: Request) -> RecordStore:
    return request.app.state.records


def _records_lock(request: Request) -> asyncio.Lock:
    """Serializa ler-enviar-gravar da coleção entre requisições."""
    return request.app.state.records_lock


def _form_values(cert: Certificate | None) -> dict[str, Any]:
    """Valores do formulário (strings, como o navegador envia)."""
    if cert is None:
        form_defaults = CertificateForm.model_fields
        return {
            "antecedencia_dias": form_defaults["antecedencia_dias"].default,
            "taxa_renovacao": form_defaults["taxa_renovacao"].default,
        }
    values = cert.model_dump(include=set(FORM_FIELDS))
    for name in ("data_emissao", "fim_vigencia"):
        # model_dump já serializou as datas; o input date precisa de ISO ou vazio
        value = getattr(cert, name)
        values[name] = value.isoformat() if isinstance(value, date) else ""
    values["indeterminado"] = cert.sem_vencimento
    return values


def _form_error(exc: ValidationError) -> str:
    fields = {err["loc"][0] for err in exc.errors() if err.get("loc")}
    return "required_fields" if fields & _REQUIRED else "invalid_form"


async def _read_values(request: Request) -> dict[str, Any]:
    """Lê o formulário. O arquivo anexado (campo 'anexo') é ignorado."""
    form = await request.form()
    values: dict[str, Any] = {name: form[name] for name in FORM_FIELDS if isinstance(form.get(name), str)}
    values["indeterminado"] = bool(form.get("indeterminado"))
    return values


def _validate(values: dict[str, Any]) -> CertificateForm:
    data = {k: v for k, v in values.items() if k != "indeterminado"}
    if values.get("indeterminado"):
        data["fim_vigencia"] = NO_EXPIRATION
    return CertificateForm.model_validate(data)


def _render_form(
    request: Request,
    values: dict[str, Any],
    cert: Certificate | None = None,
    error: str | None = None,
    status_code: int = 200,
) -> HTMLResponse:
    tmpl = request.app.state.templates
    return tmpl.TemplateResponse(
        request,
        "form.html",
        {
            "cert": cert,
            "values": values,
            "error": ERROR_MESSAGES.get(error or "", error),
        },
        status_code=status_code,
    )


@router.get("/", response_class=HTMLResponse)
async def index(request: Request, q: str = "", status: str = ALL, error: str | None = None):
    """Página principal: resumo, busca e tabela."""
    store = _store(request)
    status_filter = parse_status_filter(status)
    tmpl = request.app.state.templates
    return tmpl.TemplateResponse(
        request,
        "index.html",
        {
            "store": store,
            "stats": count_by_status(store.certificates),
            "certificates": filter_certificates(store.certificates, q, status_filter),
            "query": q,
            "status_filter": status_filter,
            "error": ERROR_MESSAGES.get(error or "", error),
        },
    )


@router.get("/api/dashboard", response_model=DashboardResponse)
async def api_dashboard(request: Request, q: str = "", status: str = ALL):
    """API: contagens (sem filtro) e lista filtrada."""
    store = _store(request)
    return DashboardResponse(
        stats=count_by_status(store.certificates),
        certificates=filter_certificates(store.certificates, q, parse_status_filter(status)),
    )


@router.post("/certidoes/refresh", response_class=RedirectResponse)
async def refresh_certificates(request: Request):
    """Busca de novo a planilha inteira."""
    async with _records_lock(request):
        request.app.state.records = await load_certificates(
            request.app.state.gateway,
            recompute=request.app.state.recompute_on_load,
        )
    return RedirectResponse(url=request.url_for("index"), status_code=303)


@router.get("/certidoes/new", response_class=HTMLResponse)
async def new_certificate_page(request: Request):
    """Formulário de nova certidão."""
    return _render_form(request, _form_values(None))


@router.post("/certidoes/add")
async def add_certificate(request: Request):
    """Cria a certidão na planilha."""
    values = await _read_values(request)
    try:
        form = _validate(values)
    except ValidationError as e:
        return _render_form(request, values, error=_form_error(e), status_code=400)
    try:
        async with _records_lock(request):
            request.app.state.records = await create_certificate(_store(request), request.app.state.gateway, form)
    except GatewayError as e:
        logger.error("Erro ao criar certidão: %s", e)
        return _render_form(request, values, error="save_failed", status_code=502)
    return RedirectResponse(url=request.url_for("index"), status_code=303)


@router.get("/certidoes/{cert_id}/edit", response_class=HTMLResponse)
async def edit_certificate_page(request: Request, cert_id: str):
    """Formulário de edição."""
    cert = get_certificate(_store(request), cert_id)
    if not cert:
        raise HTTPException(status_code=404, detail="Certidão não encontrada")
    return _render_form(request, _form_values(cert), cert=cert)


@router.post("/certidoes/{cert_id}/edit")
async def edit_certificate(request: Request, cert_id: str):
    """Atualiza a certidão na planilha."""
    cert = get_certificate(_store(request), cert_id)
    if not cert:
        raise HTTPException(status_code=404, detail="Certidão não encontrada")
    values = await _read_values(request)
    try:
        form = _validate(values)
    except ValidationError as e:
        return _render_form(request, values, cert=cert, error=_form_error(e), status_code=400)
    try:
        async with _records_lock(request):
            request.app.state.records = await update_certificate(
                _store(request), request.app.state.gateway, cert_id, form
            )
    except CertificateNotFound:
        raise HTTPException(status_code=404, detail="Certidão não encontrada")
    except GatewayError as e:
        logger.error("Erro ao atualizar certidão %s: %s", cert_id, e)
        return _render_form(request, values, cert=cert, error="save_failed", status_code=502)
    return RedirectResponse(url=request.url_for("index"), status_code=303)


@router.post("/certidoes/{cert_id}/delete", response_class=RedirectResponse)
async def remove_certificate(request: Request, cert_id: str):
    """Exclui a certidão."""
    if not get_certificate(_store(request), cert_id):
        raise HTTPException(status_code=404, detail="Certidão não encontrada")
    url = str(request.url_for("index"))
    try:
        async with _records_lock(request):
            request.app.state.records = await delete_certificate(
                _store(request), request.app.state.gateway, cert_id
            )
    except GatewayError as e:
        logger.error("Erro ao excluir certidão %s: %s", cert_id, e)
        return RedirectResponse(url=url + "?error=delete_failed", status_code=303)
    return RedirectResponse(url=url, status_code=303)
