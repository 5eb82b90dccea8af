"""
MDN Web Docs search.

Queries the MDN search API through an injected `httpx.Client`. When MDN cannot
be reached, a few curated reference pages matching the query are returned
instead.
"""

from datetime import datetime
from typing import Any

import httpx

from adapters.registry import create_http_client
from core.models import DocumentationResult, SearchOptions
from models import SupportedLanguage
from plugins.documentation import (
    API_REFERENCE_RESULTS,
    EXAMPLE_RESULTS,
    api_reference_queries,
    example_queries,
    run_queries,
)
from utils import warn

MDN_URL = "https://developer.mozilla.org"
SEARCH_PATH = "/api/v1/search"
SOURCE = "MDN"

LANGUAGES = (SupportedLanguage.JS, SupportedLanguage.TS)

FRAMEWORK_KEYWORDS: dict[str, tuple[str, ...]] = {
    "react": ("react", "jsx", "component", "hook", "state"),
    "vue": ("vue", "vuejs", "component", "directive", "reactive"),
    "angular": ("angular", "typescript", "component", "service", "directive"),
    "svelte": ("svelte", "component", "reactive", "store"),
    "express": ("express", "nodejs", "server", "middleware", "route"),
    "fastify": ("fastify", "nodejs", "server", "plugin", "hook"),
}

FALLBACK_ENTRIES: tuple[DocumentationResult, ...] = (
    DocumentationResult(
        title="JavaScript Reference",
        url=f"{MDN_URL}/en-US/docs/Web/JavaScript/Reference",
        content="Complete JavaScript language reference",
        relevance=0.8,
        source=SOURCE,
        tags=("javascript", "reference"),
    ),
    DocumentationResult(
        title="Web APIs",
        url=f"{MDN_URL}/en-US/docs/Web/API",
        content="Web API reference documentation",
        relevance=0.7,
        source=SOURCE,
        tags=("javascript", "reference"),
    ),
    DocumentationResult(
        title="JavaScript Guide",
        url=f"{MDN_URL}/en-US/docs/Web/JavaScript/Guide",
        content="JavaScript programming guide and tutorials",
        relevance=0.6,
        source=SOURCE,
        tags=("javascript", "reference"),
    ),
)


def framework_keywords(framework: str | None) -> tuple[str, ...]:
    """Keywords for a framework name; "Express.js" and "express" are equivalent."""
    if not framework:
        return ()
    key = framework.lower().removesuffix(".js")
    return FRAMEWORK_KEYWORDS.get(key, ())


def score_document(doc: dict[str, Any], options: SearchOptions) -> float:
    """
    Relevance of an MDN search hit, capped at 1.0.

    Starts at 0.5. Adds 0.3 when the query appears in the title and 0.2 when it
    appears in the summary. JavaScript pages get 0.2 for javascript searches.
    Each framework keyword found adds 0.1. Example pages get 0.15 when examples
    are requested, reference pages 0.15 when API docs are requested.
    """
    query = options.query.lower()
    title = str(doc.get("title") or "").lower()
    summary = str(doc.get("summary") or "").lower()
    url = str(doc.get("mdn_url") or "")

    relevance = 0.5
    if query in title:
        relevance += 0.3
    if summary and query in summary:
        relevance += 0.2
    if options.language == SupportedLanguage.JS and "/JavaScript/" in url:
        relevance += 0.2
    for keyword in framework_keywords(options.framework):
        if keyword in title or keyword in summary:
            relevance += 0.1
    if options.include_examples and "/Examples" in url:
        relevance += 0.15
    if options.include_api and "/Reference/" in url:
        relevance += 0.15
    return min(relevance, 1.0)


def _parse_date(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def fallback_results(options: SearchOptions) -> list[DocumentationResult]:
    query = options.query.lower()
    return [
        entry
        for entry in FALLBACK_ENTRIES
        if query in entry.title.lower() or query in entry.content.lower()
    ]


class MDNDocumentationProvider:
    """
    DocumentationProvider backed by MDN Web Docs.

    Attributes:
        client: HTTP client used for search requests.
        base_url: MDN origin; result URLs are built from it.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        timeout: float = 5.0,
        base_url: str = MDN_URL,
    ):
        self.client = client or create_http_client(timeout)
        self.base_url = base_url.rstrip("/")

    def _fetch(self, query: str) -> dict[str, Any]:
        response = self.client.get(
            f"{self.base_url}{SEARCH_PATH}", params={"q": query, "locale": "en-US"}
        )
        response.raise_for_status()
        data = response.json()
        return data if isinstance(data, dict) else {}

    def search(self, options: SearchOptions) -> list[DocumentationResult]:
        try:
            data = self._fetch(options.query)
        except (httpx.HTTPError, ValueError) as e:
            warn(f"MDN search failed: {e}")
            return fallback_results(options)

        results = []
        for doc in (data.get("documents") or [])[: options.max_results]:
            results.append(
                DocumentationResult(
                    title=str(doc.get("title") or ""),
                    url=f"{self.base_url}{doc.get('mdn_url') or ''}",
                    content=doc.get("summary") or "",
                    relevance=score_document(doc, options),
                    source=SOURCE,
                    tags=tuple(doc.get("tags") or ()),
                    last_updated=_parse_date(doc.get("last_edit")),
                )
            )
        return results

    def get_api_reference(
        self, language: str, framework: str | None = None, symbol: str | None = None
    ) -> list[DocumentationResult]:
        if language not in LANGUAGES:
            return []
        return run_queries(
            self.search,
            api_reference_queries("JavaScript", framework, symbol),
            language,
            framework,
            API_REFERENCE_RESULTS,
            include_api=True,
        )

    def get_examples(
        self, language: str, framework: str | None = None, topic: str | None = None
    ) -> list[DocumentationResult]:
        if language not in LANGUAGES:
            return []
        return run_queries(
            self.search,
            example_queries("JavaScript", framework, topic),
            language,
            framework,
            EXAMPLE_RESULTS,
            include_examples=True,
        )
