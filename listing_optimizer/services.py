# listing_optimizer/services.py
"""Cache-or-scrape resolution and the optimize write path."""
from typing import Optional, Tuple
from sqlalchemy.orm import Session
from . import crud
from .errors import ValidationError
from .schemas import ListingContent, OptimizedContent
from .utils import logger

MISSING_FIELDS = "Missing fields"


def _require_id(asin) -> str:
    if not isinstance(asin, str) or not asin.strip():
        raise ValidationError(MISSING_FIELDS)
    return asin.strip()


def validate_content(content) -> ListingContent:
    if isinstance(content, ListingContent):
        content = content.model_dump()
    content = content or {}
    title, bullets, description = content.get("title"), content.get("bullets"), content.get("description")
    for value in (title, description):
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(MISSING_FIELDS)
    if not isinstance(bullets, (list, tuple)) or not bullets or not all(isinstance(b, str) for b in bullets):
        raise ValidationError(MISSING_FIELDS)
    return ListingContent(title=title, bullets=list(bullets), description=description)


def resolve_listing(db: Session, asin: str, scraper) -> Tuple[ListingContent, Optional[OptimizedContent]]:
    asin = _require_id(asin)
    original = crud.get_listing(db, "original", asin)
    if original is not None:
        logger.info("Cache hit for %s", asin)
        optimized = crud.get_listing(db, "optimized", asin)
        return (
            ListingContent.model_validate(original),
            OptimizedContent.model_validate(optimized) if optimized is not None else None,
        )

    logger.info("Cache miss for %s, scraping", asin)
    scraped = scraper.fetch(asin)
    # upsert rather than insert: two first requests for one ASIN may race
    crud.upsert_listing(db, "original", {"id": asin, **scraped.model_dump()})
    return scraped, None


def optimize_listing(db: Session, asin: str, content, optimizer) -> OptimizedContent:
    asin = _require_id(asin)
    content = validate_content(content)

    optimized = optimizer.run(content)

    with crud.transaction(db):
        crud.upsert_listing(db, "original", {"id": asin, **content.model_dump()}, commit=False)
        crud.upsert_listing(db, "optimized", {"id": asin, **optimized.model_dump()}, commit=False)
    logger.info("Stored optimized listing %s", asin)
    return optimized
