"""Busca, filtro por status e contagens do painel."""
from typing import Iterable, Literal, Sequence

from certidoes.schemas import Certificate, DashboardStats
from certidoes.status import Status, normalize_status

ALL = "ALL"
StatusFilter = Status | Literal["ALL"]


def parse_status_filter(raw: str | None) -> StatusFilter:
    """Seletor vindo da query string: ALL, nome do membro ou rótulo."""
    text = (raw or "").strip().upper()
    if not text or text == ALL:
        return ALL
    if text in Status.__members__:
        return Status[text]
    text = " ".join(text.replace("_", " ").split())
    if any(status.value in text for status in Status):
        return normalize_status(text)
    return ALL


def matches_query(cert: Certificate, query: str) -> bool:
    if not query:
        return True
    lowered = query.lower()
    return (
        lowered in cert.empresa.lower()
        or query in cert.cnpj
        or lowered in cert.tipo_documento.lower()
        or lowered in cert.orgao.lower()
    )


def filter_certificates(
    certificates: Iterable[Certificate],
    query: str = "",
    status_filter: StatusFilter = ALL,
) -> list[Certificate]:
    """Mantém a ordem original; não altera a coleção recebida."""
    return [
        cert
        for cert in certificates
        if (status_filter == ALL or cert.status == status_filter) and matches_query(cert, query)
    ]


def count_by_status(certificates: Sequence[Certificate]) -> DashboardStats:
    """Contagens sempre sobre a coleção completa, sem filtro."""
    return DashboardStats(
        total=len(certificates),
        no_prazo=sum(1 for c in certificates if c.status == Status.CURRENT),
        a_renovar=sum(1 for c in certificates if c.status == Status.DUE_SOON),
        vencidos=sum(1 for c in certificates if c.status == Status.EXPIRED),
    )
