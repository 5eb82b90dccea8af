"""
The Python language plugin.
"""

from adapters.registry import PackageRegistry
from constants import LANGUAGES_HEURISTICS, PYTHON_FILE_KIND_WEIGHTS
from core.file_io import FileReader
from core.scoring import RelevanceScorer, ScorerConfig
from models import SupportedLanguage
from plugins.interfaces import LanguagePlugin, PluginMetadata
from plugins.python.dependencies import PipDependencyAnalyzer
from plugins.python.documentation import PythonDocumentationProvider
from plugins.python.parser import (
    PythonProjectParser,
    classify_python_file,
    python_complexity,
)

PLUGIN_NAME = "python"
PLUGIN_VERSION = "1.0.0"

PYTHON_SCORER_CONFIG = ScorerConfig(
    language=SupportedLanguage.PY,
    file_kind_weights=PYTHON_FILE_KIND_WEIGHTS,
    language_weights={SupportedLanguage.PY: 1.0},
    classify_kind=classify_python_file,
    estimate_complexity=python_complexity,
)


def create_python_plugin(
    registry: PackageRegistry, file_reader: FileReader | None = None
) -> LanguagePlugin:
    heuristics = LANGUAGES_HEURISTICS[SupportedLanguage.PY]
    return LanguagePlugin(
        name=PLUGIN_NAME,
        display_name="Python",
        languages=(SupportedLanguage.PY,),
        file_extensions=heuristics["extensions"],
        manifests=heuristics["manifests"],
        ignore_dirs=heuristics["ignore_dirs"],
        priority=heuristics["priority"],
        parser=PythonProjectParser(file_reader),
        dependency_analyzer=PipDependencyAnalyzer(registry, file_reader),
        context_scorer=RelevanceScorer(PYTHON_SCORER_CONFIG, file_reader),
        documentation_provider=PythonDocumentationProvider(),
        metadata=PluginMetadata(
            name=PLUGIN_NAME,
            version=PLUGIN_VERSION,
            description="Python projects: pyproject.toml, setup.py and requirements.txt",
            supported_languages=(SupportedLanguage.PY,),
        ),
    )
