"""
JavaScript and TypeScript project parser.

Project metadata comes from package.json and tsconfig.json; source files are
described with regex heuristics (import/require specifiers, exports, classes,
functions and a cyclomatic complexity estimate).
"""

from pathlib import Path, PurePosixPath
import re
from typing import Any, Callable

from adapters.filesystem import discover_files
from constants import LANGUAGES_HEURISTICS
from core.file_io import FileReader, FilesystemFileReader
from core.models import ProjectStructure, ProjectTarget, SourceFileDescriptor
from models import FileKind, SupportedLanguage
from plugins.source_files import (
    FileFacts,
    count_patterns,
    describe_source_files,
    read_json,
    read_text,
    unique,
)

HEURISTICS = LANGUAGES_HEURISTICS[SupportedLanguage.JS]

# Checked in order against dependencies and devDependencies.
FRAMEWORKS: tuple[tuple[str, str], ...] = (
    ("react", "React"),
    ("vue", "Vue.js"),
    ("angular", "Angular"),
    ("svelte", "Svelte"),
    ("express", "Express.js"),
    ("fastify", "Fastify"),
    ("next", "Next.js"),
    ("nuxt", "Nuxt.js"),
)

# (package, project type, include devDependencies)
PROJECT_TYPES: tuple[tuple[str, str, bool], ...] = (
    ("react", "react-app", True),
    ("vue", "vue-app", True),
    ("angular", "angular-app", True),
    ("next", "nextjs-app", True),
    ("express", "express-app", False),
)

BUILD_FILES = (
    "webpack.config.js",
    "vite.config.js",
    "rollup.config.js",
    "esbuild.config.js",
    "tsup.config.js",
    "package.json",
)
BUILD_TOOLS = (
    ("vite", "vite"),
    ("webpack", "webpack"),
    ("rollup", "rollup"),
    ("esbuild", "esbuild"),
    ("tsup", "tsup"),
)
TYPESCRIPT_SUFFIXES = frozenset({".ts", ".tsx"})

_IMPORT = re.compile(
    r"""import\s+(?:[\w*{}\s,]+?\s+from\s+)?['"]([^'"]+)['"]|require\s*\(\s*['"]([^'"]+)['"]\s*\)"""
)
_EXPORT = re.compile(
    r"export\s+(?:default\s+)?(?:async\s+)?(?:class|function\*?|const|let|var)\s+(\w+)"
    r"|export\s*\{\s*([^}]+)\s*\}"
)
_CLASS = re.compile(r"^\s*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+(\w+)", re.MULTILINE)
_FUNCTION = re.compile(
    r"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\*?\s+(\w+)"
    r"|^\s*(?:export\s+)?(?:const|let)\s+(\w+)\s*=\s*(?:async\s+)?(?:\([^)]*\)|\w+)\s*=>",
    re.MULTILINE,
)

_BRANCHES = tuple(
    re.compile(p)
    for p in (
        r"\bif\s*\(",
        r"\belse\s+if\s*\(",
        r"\bwhile\s*\(",
        r"\bfor\s*\(",
        r"\bswitch\s*\(",
        r"\bcase\s+",
        r"\bcatch\s*\(",
        r"\?\s*[^:?]+?\s*:",
        r"&&",
        r"\|\|",
    )
)


def classify_javascript_file(path: str) -> FileKind:
    name = PurePosixPath(path).name
    suffix = PurePosixPath(path).suffix
    if ".test." in name or ".spec." in name:
        return FileKind.TEST
    if ".config." in name:
        return FileKind.CONFIG
    if name.endswith(".d.ts"):
        return FileKind.TYPES
    if suffix in (".tsx", ".jsx"):
        return FileKind.COMPONENT
    if suffix in (".ts", ".js", ".mjs", ".cjs"):
        return FileKind.SOURCE
    return FileKind.UNKNOWN


def javascript_language(path: Path) -> str:
    if path.suffix.lower() in TYPESCRIPT_SUFFIXES:
        return SupportedLanguage.TS
    return SupportedLanguage.JS


def javascript_complexity(content: str) -> int:
    return 1 + count_patterns(content, _BRANCHES)


def extract_imports(content: str) -> tuple[str, ...]:
    return unique(m.group(1) or m.group(2) for m in _IMPORT.finditer(content))


def extract_exports(content: str) -> frozenset[str]:
    exports: set[str] = set()
    for match in _EXPORT.finditer(content):
        if match.group(1):
            exports.add(match.group(1))
        elif match.group(2):
            for item in match.group(2).split(","):
                name = item.strip().split(" as ")[0].strip()
                if name:
                    exports.add(name)
    return frozenset(exports)


def analyze_javascript_source(path: str, content: str) -> FileFacts:
    return FileFacts(
        kind=classify_javascript_file(path),
        complexity=javascript_complexity(content),
        dependencies=extract_imports(content),
        exports=extract_exports(content),
        classes=unique(_CLASS.findall(content)),
        functions=unique(a or b for a, b in _FUNCTION.findall(content)),
    )


def detect_framework(package_json: dict[str, Any]) -> str | None:
    deps = {**(package_json.get("dependencies") or {}), **(package_json.get("devDependencies") or {})}
    for package, framework in FRAMEWORKS:
        if package in deps:
            return framework
    return None


def detect_project_type(package_json: dict[str, Any]) -> str:
    deps = package_json.get("dependencies") or {}
    dev_deps = package_json.get("devDependencies") or {}
    for package, project_type, include_dev in PROJECT_TYPES:
        if package in deps or (include_dev and package in dev_deps):
            return project_type
    if package_json.get("bin"):
        return "cli-tool"
    if package_json.get("main"):
        return "library"
    return "node-app"


def detect_package_manager(project_path: Path) -> str:
    if (project_path / "yarn.lock").exists():
        return "yarn"
    if (project_path / "pnpm-lock.yaml").exists():
        return "pnpm"
    return "npm"


class JavaScriptProjectParser:
    """
    ProjectParser for JavaScript and TypeScript projects.

    The project language is "typescript" when a tsconfig.json is present.
    Test files are described like any other file and tagged with FileKind.TEST.
    """

    def __init__(
        self,
        file_reader: FileReader | None = None,
        discover: Callable[..., list[Path]] = discover_files,
    ):
        self.file_reader = file_reader or FilesystemFileReader()
        self.discover = discover

    def read_package_json(self, project_path: Path) -> dict[str, Any]:
        return read_json(self.file_reader, project_path / "package.json") or {}

    def has_tsconfig(self, project_path: Path) -> bool:
        return (project_path / "tsconfig.json").is_file()

    def parse_project(self, project_path: Path) -> ProjectStructure:
        package_json = self.read_package_json(project_path)
        source_files = self.get_source_files(project_path)
        language = (
            SupportedLanguage.TS if self.has_tsconfig(project_path) else SupportedLanguage.JS
        )

        return ProjectStructure(
            name=package_json.get("name") or project_path.resolve().name,
            root_path=str(project_path.resolve()),
            language=language,
            project_type=detect_project_type(package_json),
            framework=detect_framework(package_json),
            version=package_json.get("version"),
            targets=_targets(package_json),
            source_files=tuple(source_files),
            metadata=self.extract_metadata(project_path),
        )

    def get_source_files(self, project_path: Path) -> list[SourceFileDescriptor]:
        rel_paths = self.discover(
            project_path,
            extensions=HEURISTICS["extensions"],
            ignore_dirs=HEURISTICS["ignore_dirs"],
        )
        return describe_source_files(
            project_path,
            rel_paths,
            self.file_reader,
            language_for=javascript_language,
            analyze=analyze_javascript_source,
        )

    def analyze_complexity(self, file_path: Path) -> int:
        text = read_text(self.file_reader, file_path)
        return javascript_complexity(text) if text is not None else 0

    def extract_metadata(self, project_path: Path) -> dict[str, Any]:
        package_json = self.read_package_json(project_path)
        dev_deps = package_json.get("devDependencies") or {}

        def exists(name: str) -> bool:
            return (project_path / name).exists()

        return {
            "package_manager": detect_package_manager(project_path),
            "node_version": (package_json.get("engines") or {}).get("node"),
            "build_tool": _build_tool(package_json),
            "build_files": [f for f in BUILD_FILES if exists(f)],
            "scripts": dict(package_json.get("scripts") or {}),
            "has_typescript": self.has_tsconfig(project_path),
            "has_eslint": exists(".eslintrc.js") or exists(".eslintrc.json"),
            "has_prettier": exists("prettier.config.js") or "prettier" in dev_deps,
        }


def _build_tool(package_json: dict[str, Any]) -> str:
    deps = {**(package_json.get("dependencies") or {}), **(package_json.get("devDependencies") or {})}
    for package, tool in BUILD_TOOLS:
        if package in deps:
            return tool
    return "npm"


def _targets(package_json: dict[str, Any]) -> tuple[ProjectTarget, ...]:
    dependencies = tuple(package_json.get("dependencies") or {})
    targets = []
    if main := package_json.get("main"):
        targets.append(
            ProjectTarget(
                name="main", kind="library", source_files=(main,), dependencies=dependencies
            )
        )
    if bin_entry := package_json.get("bin"):
        if isinstance(bin_entry, dict):
            entries = tuple(bin_entry.values())
        elif isinstance(bin_entry, list):
            entries = tuple(bin_entry)
        else:
            entries = (bin_entry,)
        targets.append(
            ProjectTarget(
                name="cli", kind="executable", source_files=entries, dependencies=dependencies
            )
        )
    return tuple(targets)
