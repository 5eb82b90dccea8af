"""
The JavaScript/TypeScript language plugin.
"""

import httpx

from adapters.registry import PackageRegistry
from constants import JAVASCRIPT_FILE_KIND_WEIGHTS, LANGUAGES_HEURISTICS
from core.file_io import FileReader
from core.scoring import RelevanceScorer, ScorerConfig
from models import SupportedLanguage
from plugins.interfaces import LanguagePlugin, PluginMetadata
from plugins.javascript.dependencies import NpmDependencyAnalyzer
from plugins.javascript.documentation import MDNDocumentationProvider
from plugins.javascript.parser import (
    JavaScriptProjectParser,
    classify_javascript_file,
    javascript_complexity,
)

PLUGIN_NAME = "javascript"
PLUGIN_VERSION = "1.0.0"

JAVASCRIPT_SCORER_CONFIG = ScorerConfig(
    language=SupportedLanguage.JS,
    file_kind_weights=JAVASCRIPT_FILE_KIND_WEIGHTS,
    language_weights={SupportedLanguage.JS: 1.0, SupportedLanguage.TS: 1.0},
    classify_kind=classify_javascript_file,
    estimate_complexity=javascript_complexity,
)


def create_javascript_plugin(
    registry: PackageRegistry,
    file_reader: FileReader | None = None,
    docs_client: httpx.Client | None = None,
) -> LanguagePlugin:
    heuristics = LANGUAGES_HEURISTICS[SupportedLanguage.JS]
    languages = (SupportedLanguage.JS, SupportedLanguage.TS)
    return LanguagePlugin(
        name=PLUGIN_NAME,
        display_name="JavaScript/TypeScript",
        languages=languages,
        file_extensions=heuristics["extensions"],
        manifests=heuristics["manifests"],
        ignore_dirs=heuristics["ignore_dirs"],
        priority=heuristics["priority"],
        parser=JavaScriptProjectParser(file_reader),
        dependency_analyzer=NpmDependencyAnalyzer(registry, file_reader),
        context_scorer=RelevanceScorer(JAVASCRIPT_SCORER_CONFIG, file_reader),
        documentation_provider=MDNDocumentationProvider(docs_client),
        metadata=PluginMetadata(
            name=PLUGIN_NAME,
            version=PLUGIN_VERSION,
            description="JavaScript and TypeScript projects: package.json and tsconfig.json",
            supported_languages=languages,
        ),
    )
