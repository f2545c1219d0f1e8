"""Coleção de certidões em memória e as operações que a sincronizam com a planilha."""
import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone

from certidoes.gateway import GatewayError, RemoteGateway
from certidoes.schemas import Certificate, CertificateForm
from certidoes.status import classify_status

logger = logging.getLogger(__name__)


class CertificateNotFound(LookupError):
    pass


@dataclass(frozen=True)
class RecordStore:
    """Estado do painel. Cada operação devolve um novo RecordStore."""

    certificates: tuple[Certificate, ...] = ()
    loaded_at: datetime | None = None
    load_error: str | None = None

    @property
    def connected(self) -> bool:
        return self.loaded_at is not None and self.load_error is None


def get_certificate(store: RecordStore, cert_id: str) -> Certificate | None:
    """Certidão pelo id, ou None."""
    for cert in store.certificates:
        if cert.id == cert_id:
            return cert
    return None


def recompute_status(cert: Certificate, today: date | None = None) -> Certificate:
    status = classify_status(cert.fim_vigencia, cert.antecedencia_dias, today)
    if status == cert.status:
        return cert
    return cert.model_copy(update={"status": status})


async def load_certificates(
    gateway: RemoteGateway,
    recompute: bool = True,
    today: date | None = None,
) -> RecordStore:
    """
    Busca a coleção inteira. Nunca levanta exceção: em caso de falha
    devolve um painel vazio com o erro registrado.
    """
    now = datetime.now(timezone.utc)
    try:
        certificates = await gateway.list()
    except GatewayError as e:
        logger.error("Erro ao buscar certidões: %s", e, exc_info=e)
        return RecordStore(certificates=(), loaded_at=now, load_error=str(e))
    if recompute:
        certificates = [recompute_status(c, today) for c in certificates]
    logger.info("%d certidões carregadas", len(certificates))
    return RecordStore(certificates=tuple(certificates), loaded_at=now)


async def create_certificate(
    store: RecordStore,
    gateway: RemoteGateway,
    form: CertificateForm,
    today: date | None = None,
) -> RecordStore:
    """Calcula o status, envia e acrescenta o registro confirmado."""
    status = classify_status(form.fim_vigencia, form.antecedencia_dias, today)
    created = await gateway.create(Certificate.from_form(form, status))
    return replace(store, certificates=store.certificates + (created,))


async def update_certificate(
    store: RecordStore,
    gateway: RemoteGateway,
    cert_id: str,
    form: CertificateForm,
    today: date | None = None,
) -> RecordStore:
    """Calcula o status, envia e substitui o registro no mesmo lugar."""
    current = get_certificate(store, cert_id)
    if current is None:
        raise CertificateNotFound(cert_id)
    status = classify_status(form.fim_vigencia, form.antecedencia_dias, today)
    cert = Certificate.from_form(form, status, cert_id=cert_id).model_copy(update={"anexo_url": current.anexo_url})
    updated = await gateway.update(cert)
    return replace(
        store,
        certificates=tuple(updated if c.id == cert_id else c for c in store.certificates),
    )


async def delete_certificate(store: RecordStore, gateway: RemoteGateway, cert_id: str) -> RecordStore:
    """Remove localmente só depois da confirmação da planilha."""
    await gateway.delete(cert_id)
    return replace(store, certificates=tuple(c for c in store.certificates if c.id != cert_id))
