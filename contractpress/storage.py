from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from sqlmodel import select

from . import config
from .document import ContractDocument
from .exceptions import ContractNotFound
from .models import ContractRecord, ContractStatus, ExportArtifact, utcnow, get_session


ARTIFACT_NAMES = {
    "preview": "preview_{index}.png",
    "error": "error.log",
}


def contract_dir(slug: str, base_dir: Path | None = None, include_slug: bool = True) -> Path:
    root = base_dir or config.OUT_DIR
    path = root / slug if include_slug else root
    path.mkdir(parents=True, exist_ok=True)
    return path


def artifact_path(
    slug: str,
    artifact_type: str,
    base_dir: Path | None = None,
    include_slug: bool = True,
    index: Optional[int] = None,
) -> Path:
    name = ARTIFACT_NAMES[artifact_type].format(index=index or 1)
    return contract_dir(slug, base_dir=base_dir, include_slug=include_slug) / name


def write_pdf(slug: str, filename: str, pdf_bytes: bytes, base_dir: Path | None = None) -> Path:
    # PDF names carry the export date, see export_pdf.pdf_filename
    path = contract_dir(slug, base_dir=base_dir) / filename
    path.write_bytes(pdf_bytes)
    return path


def write_error(slug: str, message: str, base_dir: Path | None = None) -> Path:
    path = artifact_path(slug, "error", base_dir=base_dir)
    path.write_text(message, encoding="utf-8")
    return path


def save_contract(document: ContractDocument) -> ContractRecord:
    """Insert or update the stored copy of ``document``; status goes back to DRAFT."""
    payload = document.model_dump_json(by_alias=True)
    with get_session() as session:
        record = session.get(ContractRecord, document.id)
        if record is None:
            record = ContractRecord(id=document.id, title=document.title, payload=payload)
        else:
            record.title = document.title
            record.payload = payload
            record.status = ContractStatus.DRAFT
            record.fail_code = None
            record.fail_detail = None
            record.updated_at = utcnow()
        session.add(record)
        session.commit()
        session.refresh(record)
        return record


def get_record(contract_id: str) -> ContractRecord:
    with get_session() as session:
        record = session.get(ContractRecord, contract_id)
    if record is None:
        raise ContractNotFound(contract_id)
    return record


def load_contract(contract_id: str) -> ContractDocument:
    return ContractDocument.model_validate_json(get_record(contract_id).payload)


def _set_status(
    contract_id: str,
    status: ContractStatus,
    fail_code: Optional[str] = None,
    fail_detail: Optional[str] = None,
) -> ContractRecord:
    with get_session() as session:
        record = session.get(ContractRecord, contract_id)
        if record is None:
            raise ContractNotFound(contract_id)
        record.status = status
        record.fail_code = fail_code
        record.fail_detail = fail_detail
        record.updated_at = utcnow()
        session.add(record)
        session.commit()
        session.refresh(record)
        return record


def mark_failed(contract_id: str, fail_code: str, fail_detail: str) -> ContractRecord:
    return _set_status(contract_id, ContractStatus.FAILED, fail_code, fail_detail)


def record_export(
    contract_id: str,
    artifacts: Iterable[tuple[str, Path]],
    page_count: int,
) -> list[ExportArtifact]:
    """Record exported files (paths relative to the output dir) and mark the contract READY."""
    rows: list[ExportArtifact] = []
    with get_session() as session:
        if session.get(ContractRecord, contract_id) is None:
            raise ContractNotFound(contract_id)
        for artifact_type, path in artifacts:
            row = ExportArtifact(
                contract_id=contract_id,
                type=artifact_type,
                path=str(path.relative_to(config.OUT_DIR)),
                page_count=page_count,
            )
            session.add(row)
            rows.append(row)
        session.commit()
        for row in rows:
            session.refresh(row)
    _set_status(contract_id, ContractStatus.READY)
    return rows


def list_exports(contract_id: str) -> list[ExportArtifact]:
    with get_session() as session:
        statement = select(ExportArtifact).where(ExportArtifact.contract_id == contract_id)
        return list(session.exec(statement).all())
