from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer

from . import config
from .document import ContractDocument
from .models import init_db, reset_engine
from .pipeline.export_pdf import slug_from_title
from .pipeline.paginate import page_assignment
from .pipeline.render_preview import render_previews
from .pipeline.run import export_document, paginate_document, preview_document, run_exports
from .storage import save_contract, write_pdf

app = typer.Typer(help="Contract pagination, preview and PDF export")

FORM_STATE_KEYS = ("documentTitle", "freelancerName", "clientName", "includeNDA", "isRetainer")


def _use_out_dir(out: Optional[Path]) -> None:
    if out:
        config.set_out_dir(out)
        reset_engine()


def _read_document(path: Path) -> ContractDocument:
    data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    if any(key in data for key in FORM_STATE_KEYS):
        return ContractDocument.from_form_state(data)
    return ContractDocument.model_validate(data)


def _echo_warnings(messages: list[str]) -> None:
    for message in messages:
        typer.echo(f"WARNING: {message}", err=True)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def paginate(file: Path = typer.Argument(..., exists=True, help="Contract JSON")) -> None:
    pagination = paginate_document(_read_document(file))
    _echo_warnings(pagination.warnings)
    for number, keys in enumerate(page_assignment(pagination.pages), start=1):
        typer.echo(f"Page {number}: {', '.join(keys)}")


@app.command()
def preview(
    file: Path = typer.Argument(..., exists=True, help="Contract JSON"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
) -> None:
    _use_out_dir(out)
    document = _read_document(file)
    result = preview_document(document)
    _echo_warnings(result.warnings)
    paths = render_previews(result.rendered, slug_from_title(document.title))
    for path in paths:
        typer.echo(str(path))


@app.command()
def export(
    file: Path = typer.Argument(..., exists=True, help="Contract JSON"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
    oversampling: float = typer.Option(config.OVERSAMPLING, "--oversampling", min=2.0),
) -> None:
    _use_out_dir(out)
    document = _read_document(file)
    result = export_document(document, oversampling=oversampling)
    _echo_warnings(result.warnings)
    path = write_pdf(slug_from_title(document.title), result.filename, result.pdf_bytes)
    typer.echo(f"{path} ({result.page_count} pages)")


@app.command()
def save(
    file: Path = typer.Argument(..., exists=True, help="Contract JSON"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
) -> None:
    _use_out_dir(out)
    init_db()
    record = save_contract(_read_document(file))
    typer.echo(record.id)


@app.command("export-saved")
def export_saved(
    contract_ids: list[str] = typer.Argument(..., help="Stored contract ids"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output directory"),
) -> None:
    _use_out_dir(out)
    results = run_exports(contract_ids)
    typer.echo(f"READY: {len(results['READY'])}")
    typer.echo(f"FAILED: {len(results['FAILED'])}")
    for contract_id in results["FAILED"]:
        typer.echo(f"FAILED: {contract_id}")
    if results["FAILED"]:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
