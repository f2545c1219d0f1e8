"""Esquemas Pydantic."""
import logging
import re
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from certidoes.config import DEFAULT_WARN_DAYS
from certidoes.status import NO_EXPIRATION, Status, lead_time_days, normalize_status

logger = logging.getLogger(__name__)

_TEXT_FIELDS = (
    "empresa",
    "cnpj",
    "email",
    "tipo_documento",
    "orgao",
    "gestor",
    "responsavel",
    "taxa_renovacao",
)
# 'dd/mm/aaaa' (formato brasileiro digitado direto na planilha)
_BR_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def parse_sheet_date(value: Any) -> date | None:
    """Data vinda da planilha; vazio ou ilegível vira None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    # Apps Script serializa datas como '2024-06-30T03:00:00.000Z'
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    match = _BR_DATE.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            pass
    logger.warning("Data inválida ignorada: %r", value)
    return None


def parse_expiration(value: Any) -> date | str | None:
    """Fim da vigência: data, INDETERMINADO ou None."""
    if isinstance(value, str) and value.strip().upper() == NO_EXPIRATION:
        return NO_EXPIRATION
    return parse_sheet_date(value)


class CertificateFields(BaseModel):
    """Campos editáveis de uma certidão (nomes da planilha em camelCase)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    empresa: str = ""
    cnpj: str = ""
    email: str = ""
    tipo_documento: str = ""
    orgao: str = ""
    data_emissao: date | None = None
    fim_vigencia: date | Literal["INDETERMINADO"] | None = None
    antecedencia_dias: int = 0
    gestor: str = ""
    responsavel: str = ""
    taxa_renovacao: str = Field("R$ 0,00", alias="taxRenovacao")

    @field_serializer("data_emissao", "fim_vigencia")
    def _dump_date(self, value: date | str | None) -> str:
        if isinstance(value, date):
            return value.isoformat()
        return value or ""

    @property
    def sem_vencimento(self) -> bool:
        return self.fim_vigencia == NO_EXPIRATION


class Certificate(CertificateFields):
    """Registro como está na planilha. Normaliza tudo na entrada."""

    id: str | None = None
    status: Status = Field(Status.CURRENT, alias="statusNovoVenc")
    anexo_url: str | None = None

    @field_validator("id", "anexo_url", mode="before")
    @classmethod
    def _optional_text(cls, v: Any) -> str | None:
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("data_emissao", mode="before")
    @classmethod
    def _issue_date(cls, v: Any) -> date | None:
        return parse_sheet_date(v)

    @field_validator("fim_vigencia", mode="before")
    @classmethod
    def _expiration(cls, v: Any) -> date | str | None:
        return parse_expiration(v)

    @field_validator("antecedencia_dias", mode="before")
    @classmethod
    def _lead_time(cls, v: Any) -> int:
        return lead_time_days(v)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v: Any) -> Status:
        return normalize_status(v)

    @model_validator(mode="after")
    def _no_expiration_is_current(self) -> "Certificate":
        if self.sem_vencimento:
            self.status = Status.CURRENT
        return self

    @classmethod
    def from_form(cls, form: "CertificateForm", status: Status, cert_id: str | None = None) -> "Certificate":
        return cls(id=cert_id, status=status, **form.model_dump())

    def to_sheet(self) -> dict[str, Any]:
        """Payload no formato que o Apps Script espera."""
        exclude = {name for name in ("id", "anexo_url") if getattr(self, name) is None}
        return self.model_dump(by_alias=True, mode="json", exclude=exclude)


class CertificateForm(CertificateFields):
    """Entrada do formulário. Empresa e tipo de documento são obrigatórios."""

    model_config = ConfigDict(str_strip_whitespace=True)

    empresa: str = Field(..., min_length=1, max_length=255)
    tipo_documento: str = Field(..., min_length=1, max_length=255)
    antecedencia_dias: int = DEFAULT_WARN_DAYS

    @field_validator("antecedencia_dias", mode="before")
    @classmethod
    def _lead_time(cls, v: Any) -> int:
        return lead_time_days(v)

    @field_validator("data_emissao", "fim_vigencia", mode="before")
    @classmethod
    def _empty_date(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class DashboardStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total: int = 0
    no_prazo: int = 0
    a_renovar: int = 0
    vencidos: int = 0


class DashboardResponse(BaseModel):
    stats: DashboardStats
    certificates: list[Certificate]
