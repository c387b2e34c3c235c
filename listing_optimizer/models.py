# listing_optimizer/models.py
"""SQLAlchemy ORM models for persisted entities.

`OriginalListing` holds the scraped (or user-edited) content for an ASIN and
`OptimizedListing` the rewritten version. Bullet lists are stored through the
`BulletList` column type, so every backend gets the same JSON-array text.
"""
import json
from typing import List
from sqlalchemy import Column, String, Text, TIMESTAMP, func
from sqlalchemy.types import TypeDecorator
from .db import Base


def encode_bullets(bullets: List[str]) -> str:
    return json.dumps([str(b) for b in bullets], ensure_ascii=False)


def decode_bullets(raw) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, list):
        return [str(b) for b in raw]
    try:
        value = json.loads(raw)
    except ValueError:
        # legacy plain-text column
        return [raw]
    if isinstance(value, str):
        # legacy double-encoded JSON
        return decode_bullets(value)
    if isinstance(value, list):
        return [str(b) for b in value]
    return [str(value)]


class BulletList(TypeDecorator):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return encode_bullets(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return decode_bullets(value)


class OriginalListing(Base):
    __tablename__ = "original_listings"
    id = Column(String(64), primary_key=True)
    title = Column(Text, nullable=False)
    bullets = Column(BulletList, nullable=False)
    description = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())


class OptimizedListing(Base):
    __tablename__ = "optimized_listings"
    id = Column(String(64), primary_key=True)
    opt_title = Column(Text, nullable=False)
    opt_bullets = Column(BulletList, nullable=False)
    opt_description = Column(Text, nullable=False)
    keywords = Column(Text, nullable=False, default="")
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())
