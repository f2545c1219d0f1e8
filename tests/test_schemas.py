from datetime import date, datetime

import pytest
from pydantic import ValidationError

from certidoes.schemas import Certificate, CertificateForm, parse_expiration, parse_sheet_date
from certidoes.status import NO_EXPIRATION, Status


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2024-06-30", date(2024, 6, 30)),
        ("2024-06-30T03:00:00.000Z", date(2024, 6, 30)),
        ("30/06/2024", date(2024, 6, 30)),
        ("1/2/2025", date(2025, 2, 1)),
        (datetime(2024, 6, 30, 12, 0), date(2024, 6, 30)),
        (date(2024, 6, 30), date(2024, 6, 30)),
        ("", None),
        ("   ", None),
        (None, None),
        ("amanhã", None),
        ("31/02/2024", None),
    ],
)
def test_parse_sheet_date(raw, expected):
    assert parse_sheet_date(raw) == expected


@pytest.mark.parametrize("raw", ["INDETERMINADO", "indeterminado", " Indeterminado "])
def test_parse_expiration_sentinel(raw: str):
    assert parse_expiration(raw) == NO_EXPIRATION


def test_certificate_ingestion_normalizes_loose_payload():
    cert = Certificate.model_validate(
        {
            "id": 7,
            "empresa": "Acme",
            "cnpj": 11222333000144,
            "email": None,
            "tipoDocumento": "CND",
            "fimVigencia": "2024-06-30T03:00:00.000Z",
            "dataEmissao": "lixo",
            "antecedenciaDias": "abc",
            "statusNovoVenc": "VENCIDO!!",
            "anexoUrl": "",
            "colunaExtra": "ignorada",
        }
    )
    assert cert.id == "7"
    assert cert.cnpj == "11222333000144"
    assert cert.email == ""
    assert cert.orgao == ""
    assert cert.fim_vigencia == date(2024, 6, 30)
    assert cert.data_emissao is None
    assert cert.antecedencia_dias == 0
    assert cert.status == Status.EXPIRED
    assert cert.anexo_url is None
    assert cert.taxa_renovacao == "R$ 0,00"


@pytest.mark.parametrize("stored", ["VENCIDO", "A RENOVAR"])
def test_certificate_without_expiration_is_always_current(stored: str):
    cert = Certificate.model_validate({"id": "1", "fimVigencia": "indeterminado", "statusNovoVenc": stored})
    assert cert.fim_vigencia == NO_EXPIRATION
    assert cert.status == Status.CURRENT


def test_certificate_negative_lead_time_becomes_zero():
    assert Certificate.model_validate({"antecedenciaDias": -5}).antecedencia_dias == 0


def test_certificate_to_sheet_uses_wire_names():
    cert = Certificate(
        id="9",
        empresa="Acme",
        tipo_documento="CND",
        fim_vigencia=NO_EXPIRATION,
        antecedencia_dias=10,
        status=Status.DUE_SOON,
        taxa_renovacao="R$ 10,00",
    )
    data = cert.to_sheet()
    assert data["id"] == "9"
    assert data["tipoDocumento"] == "CND"
    assert data["fimVigencia"] == "INDETERMINADO"
    assert data["dataEmissao"] == ""
    assert data["antecedenciaDias"] == 10
    assert data["statusNovoVenc"] == "A RENOVAR"
    assert data["taxRenovacao"] == "R$ 10,00"
    assert "anexoUrl" not in data


def test_certificate_to_sheet_without_id():
    data = Certificate(empresa="Acme", fim_vigencia=date(2025, 1, 2)).to_sheet()
    assert "id" not in data
    assert data["fimVigencia"] == "2025-01-02"


def test_form_requires_company_and_document_type():
    with pytest.raises(ValidationError):
        CertificateForm.model_validate({"empresa": "   ", "tipo_documento": "CND"})
    with pytest.raises(ValidationError):
        CertificateForm.model_validate({"empresa": "Acme"})


def test_form_parses_values():
    form = CertificateForm.model_validate(
        {
            "empresa": " Acme ",
            "tipo_documento": "CND",
            "data_emissao": "",
            "fim_vigencia": "2024-06-30",
            "antecedencia_dias": "x",
        }
    )
    assert form.empresa == "Acme"
    assert form.data_emissao is None
    assert form.fim_vigencia == date(2024, 6, 30)
    assert form.antecedencia_dias == 0


def test_form_rejects_bad_date():
    with pytest.raises(ValidationError):
        CertificateForm.model_validate({"empresa": "Acme", "tipo_documento": "CND", "fim_vigencia": "30/06/2024"})


def test_form_default_lead_time():
    form = CertificateForm.model_validate({"empresa": "Acme", "tipo_documento": "CND"})
    assert form.antecedencia_dias == 30
    assert form.taxa_renovacao == "R$ 0,00"
