from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from contractpress import config, models
from contractpress.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_out_dir():
    out_dir = config.OUT_DIR
    yield
    models.engine.dispose()
    config.set_out_dir(out_dir)
    models.reset_engine()


FORM_STATE = {
    "documentTitle": "Logo Design",
    "freelancerName": "Asha Rao",
    "clientName": "Vikram Shah",
    "totalAmount": 20000,
}


def _write(tmp_path, data: dict):
    path = tmp_path / "contract.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_paginate_prints_page_assignment(tmp_path) -> None:
    result = runner.invoke(app, ["paginate", str(_write(tmp_path, FORM_STATE))])
    assert result.exit_code == 0, result.output
    assert "Page 1: header.title, header.subtitle" in result.stdout


def test_export_writes_pdf(tmp_path) -> None:
    out = tmp_path / "out"
    result = runner.invoke(app, ["export", str(_write(tmp_path, FORM_STATE)), "--out", str(out)])
    assert result.exit_code == 0, result.output
    pdfs = list((out / "logo-design").glob("logo-design-*.pdf"))
    assert len(pdfs) == 1
    assert pdfs[0].read_bytes().startswith(b"%PDF")


def test_save_then_export_saved(tmp_path) -> None:
    out = tmp_path / "out"
    saved = runner.invoke(app, ["save", str(_write(tmp_path, FORM_STATE)), "--out", str(out)])
    assert saved.exit_code == 0, saved.output
    contract_id = saved.stdout.strip().splitlines()[-1]
    exported = runner.invoke(app, ["export-saved", contract_id, "--out", str(out)])
    assert exported.exit_code == 0, exported.output
    assert "READY: 1" in exported.stdout
    missing = runner.invoke(app, ["export-saved", "missing", "--out", str(out)])
    assert missing.exit_code == 1
