from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel, create_engine, Session

from . import config


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContractStatus(str, Enum):
    DRAFT = "DRAFT"
    READY = "READY"
    FAILED = "FAILED"


class ContractRecord(SQLModel, table=True):
    id: str = Field(primary_key=True)
    title: str = ""
    payload: str
    status: ContractStatus = Field(default=ContractStatus.DRAFT)
    fail_code: Optional[str] = None
    fail_detail: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ExportArtifact(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    contract_id: str = Field(foreign_key="contractrecord.id", index=True)
    type: str
    path: str
    page_count: int = 0
    created_at: datetime = Field(default_factory=utcnow)


engine = create_engine(f"sqlite:///{config.DB_PATH}")


def reset_engine() -> None:
    global engine
    engine.dispose()
    engine = create_engine(f"sqlite:///{config.DB_PATH}")


def init_db() -> None:
    config.OUT_DIR.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(engine)


def get_session() -> Session:
    return Session(engine, expire_on_commit=False)
