"""Status de vencimento das certidões: cálculo e normalização."""
import logging
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

# Valor que a planilha usa para "sem vencimento"
NO_EXPIRATION = "INDETERMINADO"


class Status(str, Enum):
    CURRENT = "NO PRAZO"
    DUE_SOON = "A RENOVAR"
    EXPIRED = "VENCIDO"


# Ordem importa: "A RENOVAR" antes de "NO PRAZO"
_LABEL_MATCHES = (
    ("A RENOVAR", Status.DUE_SOON),
    ("VENCIDO", Status.EXPIRED),
    ("NO PRAZO", Status.CURRENT),
)


def lead_time_days(value: Any) -> int:
    """Antecedência em dias; valores inválidos ou negativos viram 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    try:
        days = int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(days, 0)


def classify_status(
    fim_vigencia: date | str | None,
    antecedencia_dias: Any,
    today: date | None = None,
) -> Status:
    """
    Calcula o status a partir do fim da vigência e da antecedência.
    Sem vencimento (INDETERMINADO ou vazio) é sempre NO PRAZO.
    """
    if not isinstance(fim_vigencia, date):
        return Status.CURRENT
    if isinstance(fim_vigencia, datetime):
        fim_vigencia = fim_vigencia.date()
    today = today or date.today()
    warning_start = fim_vigencia - timedelta(days=lead_time_days(antecedencia_dias))
    if today > fim_vigencia:
        return Status.EXPIRED
    if today >= warning_start:
        return Status.DUE_SOON
    return Status.CURRENT


def normalize_status(raw: Any) -> Status:
    """Texto livre da planilha -> um dos três status; desconhecido vira NO PRAZO."""
    if isinstance(raw, Status):
        return raw
    if raw is None:
        return Status.CURRENT
    text = " ".join(str(raw).split()).upper()
    for label, status in _LABEL_MATCHES:
        if label in text:
            return status
    if text:
        logger.debug("Status desconhecido %r, usando %s", raw, Status.CURRENT.value)
    return Status.CURRENT
