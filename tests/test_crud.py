# tests/test_crud.py
import logging
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select
from sqlalchemy.dialects import mysql
from listing_optimizer import crud
from listing_optimizer.errors import ConfigurationError
from listing_optimizer.models import OriginalListing, decode_bullets, encode_bullets


def _original(**overrides):
    payload = {
        "id": "B000TEST01",
        "title": "Widget Pro",
        "bullets": ["Durable steel frame", "Fits most desks"],
        "description": "A sturdy widget.",
    }
    payload.update(overrides)
    return payload


def test_upsert_and_get(db):
    crud.upsert_listing(db, "original", _original())
    obj = crud.get_listing(db, "original", "B000TEST01")
    assert obj is not None
    assert obj.title == "Widget Pro"
    assert obj.bullets == ["Durable steel frame", "Fits most desks"]
    assert obj.created_at is not None


def test_get_missing_returns_none(db):
    assert crud.get_listing(db, "original", "B0MISSING0") is None
    assert crud.get_listing(db, "optimized", "B0MISSING0") is None


def test_upsert_twice_keeps_one_row_with_latest_fields(db):
    crud.upsert_listing(db, "original", _original())
    crud.upsert_listing(db, "original", _original(title="Widget Pro 2", bullets=["only one"], description="new"))

    count = db.execute(select(func.count()).select_from(OriginalListing)).scalar_one()
    assert count == 1
    obj = crud.get_listing(db, "original", "B000TEST01")
    assert (obj.title, obj.bullets, obj.description) == ("Widget Pro 2", ["only one"], "new")


def test_upsert_same_record_is_idempotent(db):
    crud.upsert_listing(db, "original", _original())
    crud.upsert_listing(db, "original", _original())
    count = db.execute(select(func.count()).select_from(OriginalListing)).scalar_one()
    assert count == 1


def test_upsert_optimized(db):
    crud.upsert_listing(db, "optimized", {
        "id": "B000TEST01",
        "opt_title": "Widget Pro Max",
        "opt_bullets": ["x", "y"],
        "opt_description": "better",
        "keywords": "a,b",
    })
    obj = crud.get_listing(db, "optimized", "B000TEST01")
    assert obj.opt_bullets == ["x", "y"]
    assert obj.keywords == "a,b"


def test_unknown_kind_rejected(db):
    with pytest.raises(ValueError):
        crud.get_listing(db, "draft", "B000TEST01")


def test_transaction_rolls_back_every_write(db):
    crud.upsert_listing(db, "original", _original())
    with pytest.raises(RuntimeError):
        with crud.transaction(db):
            crud.upsert_listing(db, "original", _original(title="half written"), commit=False)
            raise RuntimeError("boom")
    assert crud.get_listing(db, "original", "B000TEST01").title == "Widget Pro"


@pytest.mark.parametrize("bullets", [
    [],
    ["one"],
    ["comma, separated", "quote \" inside", "new\nline"],
    ["", "  padded  ", ""],
    ["ünïcödé ✓", "日本語"],
    ["same", "same", "same"],
])
def test_bullets_round_trip(bullets):
    assert decode_bullets(encode_bullets(bullets)) == bullets


def test_decode_tolerates_legacy_encodings():
    assert decode_bullets('"[\\"a\\", \\"b\\"]"') == ["a", "b"]
    assert decode_bullets("plain text bullet") == ["plain text bullet"]
    assert decode_bullets(None) == []


def _bound_to(dialect_name):
    return SimpleNamespace(get_bind=lambda: SimpleNamespace(dialect=SimpleNamespace(name=dialect_name)))


def test_mysql_upsert_uses_on_duplicate_key_update():
    stmt = crud._upsert_statement(_bound_to("mysql"), OriginalListing, _original())
    sql = str(stmt.compile(dialect=mysql.dialect()))
    assert "ON DUPLICATE KEY UPDATE" in sql
    update_clause = sql.split("ON DUPLICATE KEY UPDATE", 1)[1]
    for column in ("title", "bullets", "description", "updated_at"):
        assert f"{column} =" in update_clause
    assert "created_at" not in update_clause
    assert " id =" not in update_clause


def test_unsupported_backend_is_configuration_error():
    with pytest.raises(ConfigurationError, match="oracle"):
        crud._upsert_statement(_bound_to("oracle"), OriginalListing, _original())


def test_deferred_write_is_not_logged_as_stored(db, caplog):
    caplog.set_level(logging.INFO, logger="listing-optimizer")
    with pytest.raises(RuntimeError):
        with crud.transaction(db):
            crud.upsert_listing(db, "original", _original(), commit=False)
            raise RuntimeError("boom")
    assert not [r for r in caplog.records if "Upserted" in r.getMessage()]

    crud.upsert_listing(db, "original", _original())
    assert [r for r in caplog.records if r.getMessage() == "Upserted original listing B000TEST01"]
