# listing_optimizer/crud.py
"""Keyed get/upsert for the two listing kinds.

`kind` is either "original" or "optimized". Upserts replace every column
except the key and `created_at`, so repeating a write leaves one row that
matches the latest input.
"""
from contextlib import contextmanager
from typing import Dict, Any
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from .errors import ConfigurationError, PersistenceError
from .models import OriginalListing, OptimizedListing
from .utils import logger

KINDS = {
    "original": OriginalListing,
    "optimized": OptimizedListing,
}

_FIXED_COLUMNS = ("id", "created_at")

def model_for(kind: str):
    try:
        return KINDS[kind]
    except KeyError:
        raise ValueError(f"unknown listing kind {kind!r}")

def _upsert_statement(db: Session, model, data: Dict[str, Any]):
    table = model.__table__
    dialect = db.get_bind().dialect.name
    if dialect in ("postgresql", "sqlite"):
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        stmt = insert(table).values(**data)
        # copy all updatable columns from EXCLUDED, but refresh updated_at
        excluded = {c.name: stmt.excluded[c.name] for c in table.columns if c.name not in _FIXED_COLUMNS}
        excluded["updated_at"] = func.now()
        return stmt.on_conflict_do_update(index_elements=["id"], set_=excluded)
    if dialect in ("mysql", "mariadb"):
        stmt = mysql_insert(table).values(**data)
        inserted = {c.name: stmt.inserted[c.name] for c in table.columns if c.name not in _FIXED_COLUMNS}
        inserted["updated_at"] = func.now()
        return stmt.on_duplicate_key_update(**inserted)
    raise ConfigurationError(f"Unsupported database backend: {dialect}")

def get_listing(db: Session, kind: str, listing_id: str):
    model = model_for(kind)
    try:
        # populate_existing so a row rewritten by a core upsert is re-read
        stmt = select(model).where(model.id == listing_id).execution_options(populate_existing=True)
        return db.execute(stmt).scalar_one_or_none()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to read {kind} listing {listing_id}: {e.__class__.__name__}") from e

def upsert_listing(db: Session, kind: str, data: Dict[str, Any], commit: bool = True):
    if not data.get("id"):
        raise ValueError("listing id missing")
    stmt = _upsert_statement(db, model_for(kind), data)
    try:
        db.execute(stmt)
        if commit:
            db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to store {kind} listing {data['id']}: {e.__class__.__name__}") from e
    if commit:
        logger.info("Upserted %s listing %s", kind, data["id"])
    else:
        logger.debug("Staged %s listing %s", kind, data["id"])

@contextmanager
def transaction(db: Session):
    """Group several `upsert_listing(..., commit=False)` calls into one commit."""
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Transaction failed: {e.__class__.__name__}") from e
    except Exception:
        db.rollback()
        raise
