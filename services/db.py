from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from models.schemas import Workbook
from services.settings import DATA_DIR, get_settings


Base = declarative_base()

engine = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


class WorkbookRecord(Base):
    __tablename__ = "workbooks"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    json = Column(Text, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


def init_db(database_url: Optional[str] = None) -> None:
    """Bind the session factory and create tables if they don't exist."""
    global engine

    url = database_url or get_settings().database_url
    connect_args = {}
    if url.startswith("sqlite"):
        if f"/{DATA_DIR}/" in url:
            DATA_DIR.mkdir(parents=True, exist_ok=True)
        connect_args["check_same_thread"] = False  # SQLite-specific

    engine = create_engine(url, connect_args=connect_args)
    SessionLocal.configure(bind=engine)
    Base.metadata.create_all(bind=engine)


@contextmanager
def get_session() -> Session:
    if engine is None:
        init_db()
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def save_workbook(workbook_id: str, workbook: Workbook) -> int:
    """Upsert the workbook JSON and return its new version."""
    with get_session() as db:
        row = db.get(WorkbookRecord, workbook_id)
        if row is None:
            row = WorkbookRecord(
                id=workbook_id,
                name=workbook.name,
                json=workbook.model_dump_json(),
                version=1,
            )
            db.add(row)
        else:
            row.name = workbook.name
            row.json = workbook.model_dump_json()
            row.version = (row.version or 1) + 1
        return row.version


def load_workbook(workbook_id: str) -> Optional[Workbook]:
    with get_session() as db:
        row = db.get(WorkbookRecord, workbook_id)
        if row is None:
            return None
        return Workbook.model_validate_json(row.json)
