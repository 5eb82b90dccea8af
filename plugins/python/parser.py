"""
Python project parser.

Reads project metadata from pyproject.toml, setup.py and requirements.txt and
describes every Python source file with regex heuristics: imports, exports,
classes, functions and a cyclomatic complexity estimate.
"""

from pathlib import Path, PurePosixPath
import re
import tomllib
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
    read_text,
    unique,
)
from utils import warn

HEURISTICS = LANGUAGES_HEURISTICS[SupportedLanguage.PY]

# Checked in order; the first framework whose name appears in a dependency wins.
FRAMEWORKS: tuple[tuple[str, str], ...] = (
    ("django", "Django"),
    ("flask", "Flask"),
    ("fastapi", "FastAPI"),
    ("tornado", "Tornado"),
    ("pyramid", "Pyramid"),
    ("bottle", "Bottle"),
    ("streamlit", "Streamlit"),
    ("dash", "Dash"),
)
WEB_FRAMEWORKS = ("django", "flask", "fastapi", "tornado", "pyramid")

DEFAULT_PYTHON_VERSION = "3.9+"
BUILD_FILES = ("pyproject.toml", "setup.py", "setup.cfg", "Makefile", "tox.ini")
VIRTUALENV_DIRS = ("venv", ".venv", "env", ".env")
MYPY_FILES = ("mypy.ini", ".mypy.ini", "setup.cfg")
PYTEST_FILES = ("pytest.ini", ".pytest.ini", "setup.cfg", "tox.ini")

_IMPORT = re.compile(r"^(?:from\s+(\S+)\s+import|import\s+(\S+))", re.MULTILINE)
_ALL = re.compile(r"__all__\s*=\s*[\[(](.*?)[\])]", re.DOTALL)
_QUOTED = re.compile(r"""['"]([^'"]+)['"]""")
_TOP_DEF = re.compile(r"^(?:async\s+)?def\s+([A-Za-z_]\w*)", re.MULTILINE)
_TOP_CLASS = re.compile(r"^class\s+([A-Za-z_]\w*)", re.MULTILINE)
_ANY_DEF = re.compile(r"^\s*(?:async\s+)?def\s+([A-Za-z_]\w*)", re.MULTILINE)
_ANY_CLASS = re.compile(r"^\s*class\s+([A-Za-z_]\w*)", re.MULTILINE)
_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")
_SETUP_CALL = re.compile(r"setup\s*\((.*)\)", re.DOTALL)
_SETUP_NAME = re.compile(r"""\bname\s*=\s*['"]([^'"]+)['"]""")
_SETUP_VERSION = re.compile(r"""\bversion\s*=\s*['"]([^'"]+)['"]""")
_RUNTIME_VERSION = re.compile(r"python-(\d+\.\d+)")

_BRANCHES = tuple(
    re.compile(p)
    for p in (
        r"\bif\s+",
        r"\belif\s+",
        r"\bwhile\s+",
        r"\bfor\s+",
        r"\btry\s*:",
        r"\bexcept\b",
        r"\band\b",
        r"\bor\b",
    )
)


def classify_python_file(path: str) -> FileKind:
    name = PurePosixPath(path).name
    if name.startswith("test_") or name.endswith("_test.py"):
        return FileKind.TEST
    if name in ("setup.py", "conftest.py"):
        return FileKind.CONFIG
    if name == "__init__.py":
        return FileKind.MODULE
    if name.endswith(".pyi"):
        return FileKind.TYPES
    return FileKind.SOURCE


def python_complexity(content: str) -> int:
    return 1 + count_patterns(content, _BRANCHES)


def extract_imports(content: str) -> tuple[str, ...]:
    """Top-level module names imported by absolute imports, first-seen order."""
    names = []
    for match in _IMPORT.finditer(content):
        name = match.group(1) or match.group(2)
        if name and not name.startswith("."):
            names.append(name.split(".")[0].rstrip(","))
    return unique(names)


def extract_exports(content: str) -> frozenset[str]:
    exports: set[str] = set()
    all_match = _ALL.search(content)
    if all_match:
        exports.update(_QUOTED.findall(all_match.group(1)))
    for pattern in (_TOP_DEF, _TOP_CLASS):
        exports.update(n for n in pattern.findall(content) if not n.startswith("_"))
    return frozenset(exports)


def analyze_python_source(path: str, content: str) -> FileFacts:
    return FileFacts(
        kind=classify_python_file(path),
        complexity=python_complexity(content),
        dependencies=extract_imports(content),
        exports=extract_exports(content),
        classes=unique(_ANY_CLASS.findall(content)),
        functions=unique(_ANY_DEF.findall(content)),
    )


def requirement_name(requirement: str) -> str | None:
    """Distribution name of a PEP 508 requirement line."""
    match = _REQUIREMENT_NAME.match(requirement)
    return match.group(1) if match else None


def parse_requirements_text(text: str) -> list[str]:
    """Requirement lines of a requirements.txt, without comments or pip options."""
    lines = []
    for raw in text.splitlines():
        line = raw.split("#", 1)[0].strip()
        if line and not line.startswith("-"):
            lines.append(line)
    return lines


class PythonProjectParser:
    """
    ProjectParser for Python projects.

    Attributes:
        file_reader: Reader for manifests and sources.
        discover: Source discovery function (git ls-files or directory walk).
    """

    def __init__(
        self,
        file_reader: FileReader | None = None,
        discover: Callable[..., list[Path]] = discover_files,
    ):
        self.file_reader = file_reader or FilesystemFileReader()
        self.discover = discover

    # Manifests

    def read_pyproject(self, project_path: Path) -> dict[str, Any]:
        text = read_text(self.file_reader, project_path / "pyproject.toml")
        if text is None:
            return {}
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            warn(f"Ignoring malformed pyproject.toml: {e}")
            return {}

    def read_setup_py(self, project_path: Path) -> dict[str, str]:
        text = read_text(self.file_reader, project_path / "setup.py")
        if text is None:
            return {}
        call = _SETUP_CALL.search(text)
        if call is None:
            return {}
        setup: dict[str, str] = {}
        if name := _SETUP_NAME.search(call.group(1)):
            setup["name"] = name.group(1)
        if version := _SETUP_VERSION.search(call.group(1)):
            setup["version"] = version.group(1)
        return setup

    def read_requirements(self, project_path: Path) -> list[str]:
        text = read_text(self.file_reader, project_path / "requirements.txt")
        return parse_requirements_text(text) if text else []

    # ProjectParser

    def parse_project(self, project_path: Path) -> ProjectStructure:
        pyproject = self.read_pyproject(project_path)
        setup = self.read_setup_py(project_path)
        requirements = self.read_requirements(project_path)
        source_files = self.get_source_files(project_path)
        project = pyproject.get("project") or {}

        dependency_names = _declared_names(project.get("dependencies")) + [
            n for n in map(requirement_name, requirements) if n
        ]
        name = project.get("name") or setup.get("name") or project_path.resolve().name
        metadata = self.extract_metadata(project_path)
        metadata["requirements"] = dependency_names

        return ProjectStructure(
            name=name,
            root_path=str(project_path.resolve()),
            language=SupportedLanguage.PY,
            project_type=_project_type(project, setup, dependency_names, source_files),
            framework=detect_framework(dependency_names),
            version=project.get("version") or setup.get("version"),
            targets=_targets(project, setup, dependency_names),
            source_files=tuple(source_files),
            metadata=metadata,
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
            language_for=lambda _: SupportedLanguage.PY,
            analyze=analyze_python_source,
        )

    def analyze_complexity(self, file_path: Path) -> int:
        text = read_text(self.file_reader, file_path)
        return python_complexity(text) if text is not None else 0

    def extract_metadata(self, project_path: Path) -> dict[str, Any]:
        pyproject = self.read_pyproject(project_path)
        tool = pyproject.get("tool") or {}
        build_system = pyproject.get("build-system") or {}

        def exists(name: str) -> bool:
            return (project_path / name).exists()

        return {
            "package_manager": detect_package_manager(project_path),
            "python_version": self.detect_python_version(project_path, pyproject),
            "build_tool": _build_tool(build_system),
            "build_files": [f for f in BUILD_FILES if exists(f)],
            "scripts": dict((pyproject.get("project") or {}).get("scripts") or {}),
            "has_poetry": exists("poetry.lock"),
            "has_pipenv": exists("Pipfile"),
            "has_virtualenv": any(exists(d) for d in VIRTUALENV_DIRS),
            "has_mypy": any(exists(f) for f in MYPY_FILES) or "mypy" in tool,
            "has_pytest": any(exists(f) for f in PYTEST_FILES) or "pytest" in tool,
        }

    def detect_python_version(
        self, project_path: Path, pyproject: dict[str, Any] | None = None
    ) -> str:
        if pyproject is None:
            pyproject = self.read_pyproject(project_path)
        requires = (pyproject.get("project") or {}).get("requires-python")
        if requires:
            return str(requires)
        runtime = read_text(self.file_reader, project_path / "runtime.txt")
        if runtime and (match := _RUNTIME_VERSION.search(runtime)):
            return match.group(1)
        return DEFAULT_PYTHON_VERSION


def detect_framework(dependency_names: list[str]) -> str | None:
    lowered = [d.lower() for d in dependency_names]
    for needle, framework in FRAMEWORKS:
        if any(needle in dep for dep in lowered):
            return framework
    return None


def detect_package_manager(project_path: Path) -> str:
    if (project_path / "poetry.lock").exists():
        return "poetry"
    if (project_path / "Pipfile").exists():
        return "pipenv"
    return "pip"


def _declared_names(declared: Any) -> list[str]:
    # PEP 621 lists requirement strings; some tools use a name -> spec table
    if isinstance(declared, dict):
        return [str(k) for k in declared]
    if isinstance(declared, list):
        return [n for n in map(requirement_name, map(str, declared)) if n]
    return []


def _build_tool(build_system: dict[str, Any]) -> str:
    backend = str(build_system.get("build-backend") or "")
    for tool in ("poetry", "hatchling", "flit", "pdm", "maturin"):
        if tool in backend:
            return tool
    return "setuptools"


def _project_type(
    project: dict[str, Any],
    setup: dict[str, str],
    dependency_names: list[str],
    source_files: list[SourceFileDescriptor],
) -> str:
    if project.get("scripts"):
        return "cli-tool"
    lowered = [d.lower() for d in dependency_names]
    if any(fw in dep for fw in WEB_FRAMEWORKS for dep in lowered):
        return "web-app"
    if any(f.kind == FileKind.TEST for f in source_files):
        return "library-with-tests"
    if project.get("name") or setup.get("name"):
        return "library"
    return "script"


def _targets(
    project: dict[str, Any], setup: dict[str, str], dependency_names: list[str]
) -> tuple[ProjectTarget, ...]:
    targets = [
        ProjectTarget(name=name, kind="executable", source_files=(str(entry),))
        for name, entry in (project.get("scripts") or {}).items()
    ]
    if project.get("name") or setup.get("name"):
        targets.append(
            ProjectTarget(
                name="package",
                kind="library",
                dependencies=tuple(dependency_names),
            )
        )
    return tuple(targets)
