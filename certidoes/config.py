"""Configuração da aplicação."""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"

# URL /exec do Apps Script que guarda as certidões na planilha
UPSTREAM_URL = os.environ.get("CERTIDOES_UPSTREAM_URL", "").strip()
UPSTREAM_TIMEOUT_SECONDS = float(os.environ.get("UPSTREAM_TIMEOUT", "30"))
# Antecedência padrão (dias) de uma certidão nova
DEFAULT_WARN_DAYS = int(os.environ.get("WARN_DAYS", "30"))
RECOMPUTE_STATUS_ON_LOAD = os.environ.get("RECOMPUTE_STATUS_ON_LOAD", "true").strip().lower() in (
    "1",
    "true",
    "yes",
    "y",
)
SPREADSHEET_URL = os.environ.get("SPREADSHEET_URL", "https://docs.google.com/spreadsheets")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
