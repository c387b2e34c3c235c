# tests/conftest.py
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from listing_optimizer import models  # noqa: F401 register tables
from listing_optimizer.db import Base, make_session_factory
from listing_optimizer.errors import UpstreamTransportError


class FakeFetcher:
    """Stands in for the scraping intermediary; replays queued HTML or errors."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.urls = []

    def fetch_html(self, url):
        self.urls.append(url)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


class FakeModels:
    def __init__(self, replies):
        self.replies = replies
        self.calls = []

    def generate_content(self, model, contents):
        self.calls.append((model, contents))
        reply = self.replies[model]
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(text=reply)


class FakeGeminiClient:
    def __init__(self, replies):
        self.models = FakeModels(replies)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = make_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def transport_error():
    return UpstreamTransportError("Scraper returned HTTP 503 for https://www.amazon.com/dp/B000TEST01")
