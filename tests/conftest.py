# Shared pytest fixtures
from __future__ import annotations
import logging
import tempfile
from pathlib import Path

import pandas as pd
import pytest

from lead_import.logging.init import LOGGER_NAME, reset_logging


@pytest.fixture(autouse=True)
def _clean_logging():
    # setup_logging() は stdout をハンドラに保持するので、テスト毎に作り直す
    reset_logging()
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """target:
  collection: leads
  tenant_id: acme
  profile: lead
batch_size: 450
assignment:
  mode: round_robin
  members:
    - {id: u1, name: Ana}
    - {id: u2, name: Ben}
actor:
  id: admin-1
  name: Dana Admin
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def sample_csv_bytes() -> bytes:
    return (
        "First Name,Last Name,Email,Phone,Driver Type,Experience,City,State\n"
        "Ana,Lopez,ana@example.com,(555) 010-0001,Company Driver,3 years,Dallas,TX\n"
        "Ben,Ng,,555.010.0002,Owner Operator,,Austin,TX\n"
        "Cy,Ray,cy@example.com,,undefined,,,\n"
    ).encode("utf-8")


@pytest.fixture()
def sample_csv_file(temp_workdir: Path, sample_csv_bytes: bytes) -> Path:
    f = temp_workdir / "data" / "leads.csv"
    f.write_bytes(sample_csv_bytes)
    return f


@pytest.fixture()
def make_xlsx():
    """Factory: write rows (first row = header) as the only sheet of an xlsx file."""
    def _make(path: Path, rows: list[list[object]]) -> Path:
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            pd.DataFrame(rows).to_excel(writer, sheet_name="Sheet1", header=False, index=False)
        return path
    return _make


@pytest.fixture()
def make_csv():
    """Factory: rows (first row = header) -> UTF-8 CSV bytes."""
    def _make(rows: list[list[object]]) -> bytes:
        lines = [",".join("" if c is None else str(c) for c in row) for row in rows]
        return ("\n".join(lines) + "\n").encode("utf-8")
    return _make
