# listing_optimizer/optimizer.py
"""Listing rewrite through the Gemini completion service.

The model is asked for a bare JSON object, but replies routinely wrap it in
prose or a fenced code block, so `extract_json` searches the reply before
parsing and `normalize_optimized` fills whatever the model left out.
"""
import json
import re
from typing import Any, Dict, Iterable, List, Optional
from google import genai
from .errors import OptimizationParseError, UpstreamTransportError
from .schemas import ListingContent, OptimizedContent
from .utils import logger, retry

OPTIMIZED_KEYS = ("opt_title", "opt_bullets", "opt_description", "keywords")
FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.S | re.I)

PROMPT_TEMPLATE = """You are an expert Amazon listing optimizer.

Original Title:
{title}

Original Bullets:
{bullets}

Original Description:
{description}

Rewrite the listing to be clearer and more persuasive, and suggest search keywords.
Return ONLY valid JSON with exactly these keys:
{{
  "opt_title": "",
  "opt_bullets": [],
  "opt_description": "",
  "keywords": ""
}}
"""


def build_prompt(content: ListingContent) -> str:
    return PROMPT_TEMPLATE.format(
        title=content.title,
        bullets="\n".join(content.bullets),
        description=content.description,
    )


def _parse_candidate(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(candidate)
    except ValueError:
        return None
    if isinstance(data, dict) and any(k in data for k in OPTIMIZED_KEYS):
        return data
    return None


def extract_json(text: str) -> Dict[str, Any]:
    """Return the first object in `text` that looks like an optimized listing.

    Tries the greedy span from the first "{" to the last "}", then the
    interior of each ``` fence. Raises OptimizationParseError otherwise.
    """
    text = text or ""
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        data = _parse_candidate(text[start:end + 1])
        if data is not None:
            return data
    for match in FENCE_RE.finditer(text):
        data = _parse_candidate(match.group(1).strip())
        if data is not None:
            return data
    raise OptimizationParseError("Gemini returned no JSON")


def _as_text(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v).strip() for v in value if str(v).strip())
    text = str(value).strip()
    return text or None


def _as_bullets(value) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        value = [value]
    return [str(b).strip() for b in value if b is not None and str(b).strip()]


def normalize_optimized(data: Dict[str, Any], content: ListingContent) -> OptimizedContent:
    return OptimizedContent(
        opt_title=_as_text(data.get("opt_title")) or content.title,
        opt_bullets=_as_bullets(data.get("opt_bullets")) or list(content.bullets),
        opt_description=_as_text(data.get("opt_description")) or content.description,
        keywords=_as_text(data.get("keywords")) or "",
    )


class ListingOptimizer:
    def __init__(self, client, models: Iterable[str], tries: int = 1, delay: float = 1.0, backoff: float = 2.0):
        self.client = client
        self.models = tuple(models)
        if not self.models:
            raise ValueError("at least one model is required")
        self._generate = retry(UpstreamTransportError, tries=tries, delay=delay, backoff=backoff)(self._generate_once)

    def _generate_once(self, model: str, prompt: str) -> str:
        try:
            response = self.client.models.generate_content(model=model, contents=prompt)
        except Exception as e:
            raise UpstreamTransportError(f"Gemini error ({model}): {e}") from e
        text = getattr(response, "text", None)
        if not text:
            raise UpstreamTransportError(f"Gemini error ({model}): empty response")
        return text

    def complete(self, prompt: str) -> str:
        last_error = None
        for model in self.models:
            try:
                return self._generate(model, prompt)
            except UpstreamTransportError as e:
                logger.warning("Model %s failed: %s", model, e)
                last_error = e
        raise last_error

    def run(self, content: ListingContent) -> OptimizedContent:
        text = self.complete(build_prompt(content))
        return normalize_optimized(extract_json(text), content)


def build_optimizer(settings) -> ListingOptimizer:
    client = genai.Client(api_key=settings.gemini_api_key)
    return ListingOptimizer(
        client,
        settings.gemini_models,
        tries=settings.retry_attempts,
        delay=settings.retry_delay,
        backoff=settings.retry_backoff,
    )
