# listing_optimizer/db.py
"""Database engine and session utilities.

The engine is built once at startup from `Settings` and handed to the app;
each request leases its own session through `get_db`.
"""
from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from .config import normalize_database_url

Base = declarative_base()

def create_db_engine(url, pool_size=5, max_overflow=10):
    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        # sqlite has no server pool to tune
        return create_engine(url, connect_args={"check_same_thread": False})
    # tuned pool settings for cloud DB
    return create_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True
    )

def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
