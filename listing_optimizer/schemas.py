# listing_optimizer/schemas.py
from pydantic import AliasChoices, BaseModel, Field
from typing import List, Optional


class ListingContent(BaseModel):
    title: str
    bullets: List[str]
    description: str

    class Config:
        from_attributes = True


class OptimizedContent(BaseModel):
    opt_title: str
    opt_bullets: List[str]
    opt_description: str
    keywords: str = ""

    class Config:
        from_attributes = True


class OptimizeRequest(BaseModel):
    # fields are optional here so that missing ones produce the service's own 400
    id: Optional[str] = Field(None, validation_alias=AliasChoices("id", "asin"))
    title: Optional[str] = None
    bullets: Optional[List[str]] = None
    description: Optional[str] = None


class ListingOut(BaseModel):
    original: ListingContent
    optimized: Optional[OptimizedContent] = None


class OptimizeOut(BaseModel):
    optimized: OptimizedContent


class ErrorOut(BaseModel):
    error: str
