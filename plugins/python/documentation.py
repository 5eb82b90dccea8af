"""
Curated Python documentation.

docs.python.org has no JSON search API, so searches run against a small
catalog of official documentation entries, extended by framework and topic.
"""

from core.models import DocumentationResult, SearchOptions
from models import SupportedLanguage
from plugins.documentation import (
    API_REFERENCE_RESULTS,
    EXAMPLE_RESULTS,
    api_reference_queries,
    example_queries,
    run_queries,
)

BASE_ENTRIES: tuple[DocumentationResult, ...] = (
    DocumentationResult(
        title="Python Standard Library",
        url="https://docs.python.org/3/library/index.html",
        content="Complete Python standard library reference",
        relevance=0.8,
        source="Python Docs",
        tags=("python", "stdlib"),
    ),
    DocumentationResult(
        title="Python Language Reference",
        url="https://docs.python.org/3/reference/index.html",
        content="Python language syntax and semantics",
        relevance=0.7,
        source="Python Docs",
        tags=("python", "language"),
    ),
    DocumentationResult(
        title="Python Tutorial",
        url="https://docs.python.org/3/tutorial/index.html",
        content="Official Python tutorial and examples",
        relevance=0.6,
        source="Python Docs",
        tags=("python", "tutorial"),
    ),
)

FRAMEWORK_ENTRIES: dict[str, DocumentationResult] = {
    "django": DocumentationResult(
        title="Django Documentation",
        url="https://docs.djangoproject.com/",
        content="Complete Django web framework documentation",
        relevance=0.9,
        source="Django Docs",
        tags=("django", "web", "framework"),
    ),
    "flask": DocumentationResult(
        title="Flask Documentation",
        url="https://flask.palletsprojects.com/",
        content="Flask micro web framework documentation",
        relevance=0.9,
        source="Flask Docs",
        tags=("flask", "web", "framework"),
    ),
    "fastapi": DocumentationResult(
        title="FastAPI Documentation",
        url="https://fastapi.tiangolo.com/",
        content="Modern, fast web framework for building APIs with Python",
        relevance=0.9,
        source="FastAPI Docs",
        tags=("fastapi", "api", "framework"),
    ),
}

# (query triggers, entry)
TOPIC_ENTRIES: tuple[tuple[tuple[str, ...], DocumentationResult], ...] = (
    (
        ("async", "asyncio"),
        DocumentationResult(
            title="Python asyncio",
            url="https://docs.python.org/3/library/asyncio.html",
            content="Asynchronous I/O, event loop, coroutines and tasks",
            relevance=0.9,
            source="Python Docs",
            tags=("python", "async", "asyncio"),
        ),
    ),
    (
        ("dataclass", "typing"),
        DocumentationResult(
            title="Python typing",
            url="https://docs.python.org/3/library/typing.html",
            content="Support for type hints and annotations",
            relevance=0.8,
            source="Python Docs",
            tags=("python", "typing", "annotations"),
        ),
    ),
    (
        ("test", "pytest"),
        DocumentationResult(
            title="pytest Documentation",
            url="https://docs.pytest.org/",
            content="Python testing framework documentation",
            relevance=0.8,
            source="pytest Docs",
            tags=("python", "testing", "pytest"),
        ),
    ),
)


def _matches(entry: DocumentationResult, query: str) -> bool:
    return (
        query in entry.title.lower()
        or query in entry.content.lower()
        or any(tag in query for tag in entry.tags)
    )


class PythonDocumentationProvider:
    """DocumentationProvider over the curated Python catalog."""

    def search(self, options: SearchOptions) -> list[DocumentationResult]:
        query = options.query.lower()
        candidates = list(BASE_ENTRIES)
        if options.framework and options.framework.lower() in FRAMEWORK_ENTRIES:
            candidates.append(FRAMEWORK_ENTRIES[options.framework.lower()])
        candidates.extend(
            entry for triggers, entry in TOPIC_ENTRIES if any(t in query for t in triggers)
        )

        matched = [entry for entry in candidates if _matches(entry, query)]
        matched.sort(key=lambda entry: entry.relevance, reverse=True)
        return matched[: options.max_results]

    def get_api_reference(
        self, language: str, framework: str | None = None, symbol: str | None = None
    ) -> list[DocumentationResult]:
        if language != SupportedLanguage.PY:
            return []
        return run_queries(
            self.search,
            api_reference_queries("Python", framework, symbol),
            language,
            framework,
            API_REFERENCE_RESULTS,
            include_api=True,
        )

    def get_examples(
        self, language: str, framework: str | None = None, topic: str | None = None
    ) -> list[DocumentationResult]:
        if language != SupportedLanguage.PY:
            return []
        return run_queries(
            self.search,
            example_queries("Python", framework, topic),
            language,
            framework,
            EXAMPLE_RESULTS,
            include_examples=True,
        )
