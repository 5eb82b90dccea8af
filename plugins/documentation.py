"""
Query building shared by the documentation providers.

API reference and example lookups are expressed as plain searches: one query
for the symbol or topic in the language, plus one for the framework when one
is given.
"""

from typing import Callable

from core.models import DocumentationResult, SearchOptions

API_REFERENCE_RESULTS = 5
EXAMPLE_RESULTS = 3


def api_reference_queries(
    label: str, framework: str | None, symbol: str | None
) -> list[str]:
    queries = [f"{symbol} {label}" if symbol else f"{label} API"]
    if framework:
        queries.append(f"{framework} {symbol or 'API'}")
    return queries


def example_queries(label: str, framework: str | None, topic: str | None) -> list[str]:
    queries = [f"{topic} {label} examples" if topic else f"{label} examples"]
    if framework:
        queries.append(f"{framework} examples")
    return queries


def run_queries(
    search: Callable[[SearchOptions], list[DocumentationResult]],
    queries: list[str],
    language: str,
    framework: str | None,
    max_results: int,
    include_api: bool = False,
    include_examples: bool = False,
) -> list[DocumentationResult]:
    results: list[DocumentationResult] = []
    for query in queries:
        results.extend(
            search(
                SearchOptions(
                    query=query,
                    language=language,
                    framework=framework,
                    max_results=max_results,
                    include_api=include_api,
                    include_examples=include_examples,
                )
            )
        )
    return results
