# listing_optimizer/scrape.py
"""Product page fetching and selector-fallback extraction.

Fetching goes through a backend (the ScraperAPI intermediary by default, or a
headless Chromium via Playwright). Extraction never raises: a field whose
selectors all come up empty degrades to its sentinel string.
"""
import re
from typing import Iterable, List, Optional, Tuple
import requests
from bs4 import BeautifulSoup
from playwright.sync_api import sync_playwright, Error as PWError
from .errors import UpstreamTransportError
from .schemas import ListingContent
from .utils import logger, retry

PRODUCT_URL = "https://www.amazon.com/dp/{asin}"
SCRAPER_API_URL = "http://api.scraperapi.com"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

TITLE_NOT_FOUND = "Title not found"
BULLETS_NOT_FOUND = "No bullet points found"
DESCRIPTION_NOT_FOUND = "Description not found"

TITLE_SELECTORS = (
    "#productTitle",
    "#title",
    "h1.a-size-large",
    "h1#title span",
    "#ebooksProductTitle",
)
BULLET_SELECTORS = (
    "#feature-bullets ul li span.a-list-item",
    "#featurebullets_feature_div li span.a-list-item",
)
# broader pass when the span-restricted selectors find nothing
BULLET_FALLBACK_SELECTORS = (
    "#feature-bullets li",
    "#featurebullets_feature_div li",
)
DESCRIPTION_SELECTORS = (
    "#productDescription p",
    "#productDescription",
    ".productDescriptionWrapper",
    "#productDescription_feature_div",
    "#bookDescription_feature_div",
)
# boilerplate lines Amazon mixes into the bullet list
FILLER_PATTERNS = (
    re.compile(r"^make sure this fits", re.I),
    re.compile(r"^›?\s*see more", re.I),
)


def product_url(asin: str) -> str:
    return PRODUCT_URL.format(asin=asin)


def _clean(text: str) -> str:
    return " ".join(text.split())


def _is_filler(line: str) -> bool:
    return any(p.search(line) for p in FILLER_PATTERNS)


def _first_text(soup, selectors: Iterable[str]) -> Tuple[Optional[str], Optional[str]]:
    for sel in selectors:
        text = _clean(" ".join(el.get_text(" ", strip=True) for el in soup.select(sel)))
        if text:
            return text, sel
    return None, None


def _collect_bullets(soup, selectors: Iterable[str]) -> List[str]:
    bullets: List[str] = []
    for sel in selectors:
        for el in soup.select(sel):
            line = _clean(el.get_text(" ", strip=True))
            if line and not _is_filler(line) and line not in bullets:
                bullets.append(line)
        if bullets:
            break
    return bullets


def extract_title(soup) -> str:
    title, sel = _first_text(soup, TITLE_SELECTORS)
    if title is None:
        logger.warning("No title selector matched")
        return TITLE_NOT_FOUND
    logger.debug("Title matched %s", sel)
    return title


def extract_bullets(soup) -> List[str]:
    bullets = _collect_bullets(soup, BULLET_SELECTORS)
    if not bullets:
        bullets = _collect_bullets(soup, BULLET_FALLBACK_SELECTORS)
    if not bullets:
        logger.warning("No bullet selector matched")
        return [BULLETS_NOT_FOUND]
    return bullets


def extract_description(soup) -> str:
    description, sel = _first_text(soup, DESCRIPTION_SELECTORS)
    if description is None:
        logger.warning("No description selector matched")
        return DESCRIPTION_NOT_FOUND
    logger.debug("Description matched %s", sel)
    return description


def parse_listing(html: Optional[str]) -> ListingContent:
    soup = BeautifulSoup(html or "", "lxml")
    return ListingContent(
        title=extract_title(soup),
        bullets=extract_bullets(soup),
        description=extract_description(soup),
    )


class ScraperApiFetcher:
    """Fetches rendered markup through the ScraperAPI intermediary."""

    def __init__(self, api_key: str, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_html(self, url: str) -> str:
        try:
            resp = self.session.get(
                SCRAPER_API_URL,
                params={"api_key": self.api_key, "url": url},
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise UpstreamTransportError(f"Scraper request timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise UpstreamTransportError(f"Scraper request failed: {e}") from e
        if not resp.ok:
            raise UpstreamTransportError(f"Scraper returned HTTP {resp.status_code} for {url}")
        return resp.text


class PlaywrightFetcher:
    """Loads the product page directly in headless Chromium."""

    def __init__(self, headless: bool = True, timeout: float = 10.0):
        self.headless = headless
        self.timeout = timeout

    def fetch_html(self, url: str) -> str:
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(headless=self.headless)
                try:
                    context = browser.new_context(user_agent=USER_AGENT)
                    page = context.new_page()
                    response = page.goto(url, timeout=self.timeout * 1000)
                    page.wait_for_load_state("domcontentloaded")
                    if response is not None and not response.ok:
                        raise UpstreamTransportError(f"Page returned HTTP {response.status} for {url}")
                    return page.content()
                finally:
                    browser.close()
        except PWError as e:
            raise UpstreamTransportError(f"Browser fetch failed: {e}") from e


class ListingScraper:
    def __init__(self, fetcher, tries: int = 1, delay: float = 1.0, backoff: float = 2.0):
        self.fetcher = fetcher
        self._fetch_html = retry(UpstreamTransportError, tries=tries, delay=delay, backoff=backoff)(
            fetcher.fetch_html
        )

    def fetch(self, asin: str) -> ListingContent:
        url = product_url(asin)
        logger.info("Scraping %s", url)
        html = self._fetch_html(url)
        return parse_listing(html)


def build_scraper(settings) -> ListingScraper:
    if settings.scraper_backend == "playwright":
        fetcher = PlaywrightFetcher(headless=settings.headless, timeout=settings.scrape_timeout)
    else:
        fetcher = ScraperApiFetcher(settings.scraper_api_key, timeout=settings.scrape_timeout)
    return ListingScraper(
        fetcher,
        tries=settings.retry_attempts,
        delay=settings.retry_delay,
        backoff=settings.retry_backoff,
    )
