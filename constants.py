"""
Application-wide constants and configuration mappings.

This module defines the core heuristics used throughout ctxforge: language
manifest and extension definitions used for plugin applicability, file-kind
weights and framework conventions used by the relevance scorer, task
classification keywords and declaration markers used by the optimizer, and
the cache and token accounting parameters.
"""

from datetime import timedelta
from typing import Final, Mapping

from models import FileKind, LanguagesHeuristics, SupportedLanguage, TaskClass


# Language-specific heuristics for plugin applicability and source discovery.
# Manifests are checked first at the project root; extensions are only sniffed
# over the tree when no manifest matched. Priority resolves polyglot projects.
LANGUAGES_HEURISTICS: Final[Mapping[SupportedLanguage, LanguagesHeuristics]] = {
    SupportedLanguage.PY: {
        "manifests": frozenset(
            {
                "pyproject.toml",
                "setup.py",
                "requirements.txt",
                "pipfile",
            }
        ),
        "extensions": frozenset({".py", ".pyx", ".pyi", ".pyw"}),
        "ignore_dirs": frozenset(
            {
                "venv",
                ".venv",
                "env",
                ".env",
                "site-packages",
                "__pycache__",
                "build",
                "dist",
                ".pytest_cache",
                ".mypy_cache",
                ".tox",
                ".git",
                "node_modules",
            }
        ),
        "priority": 75,
    },
    SupportedLanguage.JS: {
        "manifests": frozenset(
            {
                "package.json",
                "tsconfig.json",
                "jsconfig.json",
            }
        ),
        "extensions": frozenset({".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs"}),
        "ignore_dirs": frozenset(
            {
                "node_modules",
                "dist",
                "build",
                ".next",
                "coverage",
                ".git",
            }
        ),
        "priority": 80,
    },
}

# Per-kind weights for the relevance scorer's type factor.
PYTHON_FILE_KIND_WEIGHTS: Final[Mapping[FileKind, float]] = {
    FileKind.SOURCE: 1.0,
    FileKind.MODULE: 0.9,
    FileKind.TYPES: 0.8,
    FileKind.CONFIG: 0.7,
    FileKind.TEST: 0.3,
    FileKind.DOCUMENTATION: 0.2,
}

JAVASCRIPT_FILE_KIND_WEIGHTS: Final[Mapping[FileKind, float]] = {
    FileKind.SOURCE: 1.0,
    FileKind.COMPONENT: 0.95,
    FileKind.TYPES: 0.8,
    FileKind.CONFIG: 0.6,
    FileKind.TEST: 0.3,
    FileKind.DOCUMENTATION: 0.2,
}

# Weight used when a file kind has no configured weight.
DEFAULT_KIND_WEIGHT: Final[float] = 0.5

# Path markers that identify conventional files of a framework, keyed by the
# lowercase framework name reported by the parser.
FRAMEWORK_CONVENTIONS: Final[Mapping[str, tuple[str, ...]]] = {
    "django": ("models.py", "views.py", "urls.py", "admin.py"),
    "flask": ("app.py", "routes.py", "blueprints"),
    "fastapi": ("main.py", "router", "api"),
    "react": ("components", "hooks", "pages", ".jsx", ".tsx"),
    "next.js": ("pages", "app/", "components", "api"),
    "vue.js": ("components", "views", "store", ".vue"),
    "express.js": ("routes", "middleware", "controllers", "app.js", "server.js"),
}

# Words ignored when turning a task description into keywords.
STOP_WORDS: Final[frozenset[str]] = frozenset(
    {
        "the",
        "and",
        "or",
        "but",
        "in",
        "on",
        "at",
        "to",
        "for",
        "of",
        "with",
        "by",
        "a",
        "an",
        "this",
        "that",
        "from",
        "into",
    }
)

# Fixed bonuses awarded when the task and the file basename share a category.
# Each entry: (task words, basename markers, bonus, factor name, description).
CATEGORY_BONUSES: Final[
    tuple[tuple[tuple[str, ...], tuple[str, ...], float, str, str], ...]
] = (
    (("test",), ("test", "spec"), 0.5, "test_relevance", "Test file for testing task"),
    (("model",), ("model",), 0.4, "model_relevance", "Model file for model-related task"),
    (("api",), ("api", "view", "route"), 0.4, "api_relevance", "API/view file for API task"),
    (
        ("login", "auth", "signin", "password"),
        ("auth", "login", "session"),
        0.4,
        "auth_relevance",
        "Authentication file for auth task",
    ),
    (
        ("component", "ui"),
        ("component",),
        0.3,
        "component_relevance",
        "Component file for UI task",
    ),
)

# Keywords used to classify tasks, checked in order; first match wins.
TASK_CLASS_KEYWORDS: Final[tuple[tuple[TaskClass, tuple[str, ...]], ...]] = (
    (TaskClass.DEBUG, ("debug", "fix", "error", "bug")),
    (TaskClass.IMPLEMENTATION, ("implement", "add", "create")),
    (TaskClass.REFACTORING, ("refactor", "improve", "optimize")),
    (TaskClass.TESTING, ("test", "unit", "spec")),
)

# Declaration keywords recognised in summaries and secondary compression.
DECLARATION_KEYWORDS: Final[tuple[str, ...]] = (
    "class",
    "def",
    "func",
    "function",
    "struct",
    "enum",
    "protocol",
    "interface",
)

# Line prefixes treated as comments.
COMMENT_PREFIXES: Final[tuple[str, ...]] = ("//", "#", "/*", "*", '"""')

# A cached project snapshot is reused for this long.
CACHE_TTL: Final[timedelta] = timedelta(hours=24)

# Fixed characters-to-tokens ratio (4 characters per token).
TOKEN_RATIO: Final[float] = 0.25

# Nominal price per token used for savings accounting.
COST_PER_TOKEN: Final[float] = 0.0003

# Context mode -> (time constraint in ms, quality requirement).
CONTEXT_MODES: Final[Mapping[str, tuple[int, float]]] = {
    "fast": (1000, 0.7),
    "speed": (1000, 0.7),
    "balance": (2000, 0.8),
    "quality": (5000, 0.9),
    "auto": (5000, 0.7),
}

# Optimize mode -> time limit in ms.
OPTIMIZE_MODES: Final[Mapping[str, int]] = {
    "speed": 1000,
    "balance": 2000,
    "quality": 5000,
}

# Scan level -> maximum number of files listed in the scan summary.
SCAN_LEVELS: Final[Mapping[str, int]] = {
    "extreme": 10,
    "advanced": 25,
    "basic": 50,
}

# Documentation type -> files written to the project root.
DOC_TYPES: Final[Mapping[str, tuple[str, ...]]] = {
    "readme": ("README.md",),
    "api": ("API.md",),
    "all": ("README.md", "API.md"),
}
