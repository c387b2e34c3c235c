# listing_optimizer/api/routes.py
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from .. import schemas, services
from ..db import get_db

router = APIRouter()

def get_scraper(request: Request):
    return request.app.state.scraper

def get_optimizer(request: Request):
    return request.app.state.optimizer

@router.get("/health")
def health():
    return {"status": "ok"}


# registered ahead of /listing/{listing_id} so "optimize" is never taken for an ASIN
@router.get("/listing/optimize", include_in_schema=False)
def optimize_listing_wrong_method():
    raise HTTPException(status_code=405, detail="Method Not Allowed", headers={"Allow": "POST"})


@router.get("/listing/{listing_id}", response_model=schemas.ListingOut)
def get_listing(listing_id: str, db: Session = Depends(get_db), scraper=Depends(get_scraper)):
    original, optimized = services.resolve_listing(db, listing_id, scraper)
    return {"original": original, "optimized": optimized}


@router.post("/listing/optimize", response_model=schemas.OptimizeOut)
def optimize_listing(
    payload: schemas.OptimizeRequest,
    db: Session = Depends(get_db),
    optimizer=Depends(get_optimizer)
):
    content = payload.model_dump(include={"title", "bullets", "description"})
    optimized = services.optimize_listing(db, payload.id, content, optimizer)
    return {"optimized": optimized}
