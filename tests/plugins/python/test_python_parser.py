"""
Tests for the Python project parser.

Tests cover:
- File classification, complexity, imports and exports
- Requirement parsing helpers
- parse_project on pyproject.toml, requirements.txt and setup.py projects
- Project type, framework, targets and metadata detection
- Malformed manifests degrade to defaults
"""

from pathlib import Path

import pytest

from core.file_io import MockFileReader
from models import FileKind
from plugins.python.parser import (
    DEFAULT_PYTHON_VERSION,
    PythonProjectParser,
    analyze_python_source,
    classify_python_file,
    detect_framework,
    detect_package_manager,
    extract_exports,
    extract_imports,
    parse_requirements_text,
    python_complexity,
    requirement_name,
)

PYPROJECT = """\
[project]
name = "acme"
version = "1.2.0"
requires-python = ">=3.11"
dependencies = ["flask>=3.0", "requests"]

[project.scripts]
acme = "acme.cli:main"

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"
"""


def _write(root: Path, files: dict[str, str]) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


@pytest.fixture
def parser(walk_discover):
    return PythonProjectParser(discover=walk_discover)


# ============================================================================
# Tests for source analysis
# ============================================================================


@pytest.mark.unit
@pytest.mark.parametrize(
    "path, expected",
    [
        ("tests/test_app.py", FileKind.TEST),
        ("acme/app_test.py", FileKind.TEST),
        ("setup.py", FileKind.CONFIG),
        ("tests/conftest.py", FileKind.CONFIG),
        ("acme/__init__.py", FileKind.MODULE),
        ("acme/stubs.pyi", FileKind.TYPES),
        ("acme/app.py", FileKind.SOURCE),
    ],
)
def test_classify_python_file(path, expected):
    assert classify_python_file(path) == expected


@pytest.mark.unit
def test_python_complexity_counts_branches():
    """Each branch keyword or boolean operator should add one."""
    source = "def f(x, y):\n    if x and y:\n        return 1\n    for i in x:\n        pass\n"

    assert python_complexity(source) == 4


@pytest.mark.unit
def test_python_complexity_of_straight_line_code():
    assert python_complexity("x = 1\nprint(x)\n") == 1


@pytest.mark.unit
def test_extract_imports_keeps_top_level_absolute_names():
    """Relative imports should be skipped and names deduplicated."""
    source = (
        "import os\n"
        "from collections.abc import Mapping\n"
        "from .local import thing\n"
        "from os import path\n"
        "import xml.etree.ElementTree\n"
    )

    assert extract_imports(source) == ("os", "collections", "xml")


@pytest.mark.unit
def test_extract_exports_uses_all_and_public_top_level_names():
    source = (
        '__all__ = ["public_api", "Helper"]\n'
        "def public_api():\n    pass\n"
        "def _private():\n    pass\n"
        "class Helper:\n    def method(self):\n        pass\n"
        "async def fetch():\n    pass\n"
        "class _Hidden:\n    pass\n"
    )

    assert extract_exports(source) == {"public_api", "Helper", "fetch"}


@pytest.mark.unit
def test_analyze_python_source_collects_nested_definitions():
    """Classes and functions should include nested definitions."""
    source = "class Outer:\n    class Inner:\n        pass\n    def method(self):\n        pass\n"

    facts = analyze_python_source("acme/shapes.py", source)

    assert facts.kind == FileKind.SOURCE
    assert facts.classes == ("Outer", "Inner")
    assert facts.functions == ("method",)
    assert facts.exports == {"Outer"}


# ============================================================================
# Tests for requirement helpers
# ============================================================================


@pytest.mark.unit
@pytest.mark.parametrize(
    "line, expected",
    [
        ("requests>=2.31", "requests"),
        ("rich[jupyter]~=13.7", "rich"),
        ("zope.interface", "zope.interface"),
        ("typing-extensions; python_version<'3.11'", "typing-extensions"),
        ("--index-url https://example.org", None),
    ],
)
def test_requirement_name(line, expected):
    assert requirement_name(line) == expected


@pytest.mark.unit
def test_parse_requirements_text_drops_comments_and_options():
    text = "# pinned\ndjango>=4.2  # lts\n\n-r base.txt\n--hash sha256:abc\ngunicorn\n"

    assert parse_requirements_text(text) == ["django>=4.2", "gunicorn"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "names, expected",
    [
        (["Django", "celery"], "Django"),
        (["Flask-Login"], "Flask"),
        (["fastapi", "uvicorn"], "FastAPI"),
        (["streamlit"], "Streamlit"),
        (["requests"], None),
        ([], None),
    ],
)
def test_detect_framework(names, expected):
    assert detect_framework(names) == expected


@pytest.mark.unit
@pytest.mark.parametrize(
    "marker, expected",
    [("poetry.lock", "poetry"), ("Pipfile", "pipenv"), (None, "pip")],
)
def test_detect_package_manager(tmp_path, marker, expected):
    if marker:
        (tmp_path / marker).write_text("")

    assert detect_package_manager(tmp_path) == expected


# ============================================================================
# Tests for parse_project
# ============================================================================


@pytest.mark.unit
def test_parse_pyproject_project(parser, tmp_path):
    """A pyproject.toml project should yield metadata, targets and sources."""
    _write(
        tmp_path,
        {
            "pyproject.toml": PYPROJECT,
            "acme/__init__.py": "",
            "acme/app.py": "from flask import Flask\napp = Flask(__name__)\n",
            "tests/test_app.py": "def test_app():\n    assert True\n",
            "venv/lib/site.py": "ignored = True\n",
        },
    )

    structure = parser.parse_project(tmp_path)

    assert structure.name == "acme"
    assert structure.version == "1.2.0"
    assert structure.language == "python"
    assert structure.project_type == "cli-tool"
    assert structure.framework == "Flask"
    assert [f.path for f in structure.source_files] == [
        "acme/__init__.py",
        "acme/app.py",
        "tests/test_app.py",
    ]
    assert structure.source_files[1].dependencies == ("flask",)
    assert structure.source_files[2].kind == FileKind.TEST

    cli, package = structure.targets
    assert (cli.name, cli.kind, cli.source_files) == ("acme", "executable", ("acme.cli:main",))
    assert (package.name, package.kind) == ("package", "library")
    assert package.dependencies == ("flask", "requests")

    metadata = structure.metadata
    assert metadata["requirements"] == ["flask", "requests"]
    assert metadata["python_version"] == ">=3.11"
    assert metadata["build_tool"] == "hatchling"
    assert metadata["build_files"] == ["pyproject.toml"]
    assert metadata["scripts"] == {"acme": "acme.cli:main"}
    assert metadata["has_virtualenv"] is True
    assert metadata["package_manager"] == "pip"


@pytest.mark.unit
def test_parse_requirements_project(parser, tmp_path):
    """Without pyproject.toml, requirements.txt should drive detection."""
    _write(
        tmp_path,
        {
            "requirements.txt": "django>=4.2\ngunicorn\n",
            "manage.py": "import django\n",
        },
    )

    structure = parser.parse_project(tmp_path)

    assert structure.name == tmp_path.resolve().name
    assert structure.version is None
    assert structure.framework == "Django"
    assert structure.project_type == "web-app"
    assert structure.targets == ()
    assert structure.metadata["requirements"] == ["django", "gunicorn"]


@pytest.mark.unit
def test_parse_setup_py_project(parser, tmp_path):
    """Name and version should be read from a setup() call."""
    _write(
        tmp_path,
        {
            "setup.py": 'from setuptools import setup\nsetup(\n    name="legacy",\n    version="0.3",\n)\n',
            "legacy.py": "def run():\n    pass\n",
        },
    )

    structure = parser.parse_project(tmp_path)

    assert structure.name == "legacy"
    assert structure.version == "0.3"
    assert structure.project_type == "library"
    assert [t.name for t in structure.targets] == ["package"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "files, expected",
    [
        (
            {"pyproject.toml": '[project]\nname = "lib"\n', "tests/test_lib.py": ""},
            "library-with-tests",
        ),
        ({"pyproject.toml": '[project]\nname = "lib"\n', "lib.py": ""}, "library"),
        ({"main.py": "print('hi')\n"}, "script"),
    ],
)
def test_project_type(parser, tmp_path, files, expected):
    _write(tmp_path, files)

    assert parser.parse_project(tmp_path).project_type == expected


@pytest.mark.mock
def test_malformed_pyproject_is_ignored(parser, tmp_path, mocker):
    """A pyproject.toml that is not valid TOML should be warned about and skipped."""
    mock_warn = mocker.patch("plugins.python.parser.warn")
    _write(tmp_path, {"pyproject.toml": "[project\nname = ", "app.py": "x = 1\n"})

    structure = parser.parse_project(tmp_path)

    assert structure.name == tmp_path.resolve().name
    assert structure.project_type == "script"
    assert structure.metadata["python_version"] == DEFAULT_PYTHON_VERSION
    assert mock_warn.called


# ============================================================================
# Tests for metadata helpers
# ============================================================================


@pytest.mark.unit
def test_detect_python_version_from_runtime_txt(parser, tmp_path):
    (tmp_path / "runtime.txt").write_text("python-3.10.4\n")

    assert parser.detect_python_version(tmp_path) == "3.10"


@pytest.mark.unit
def test_detect_python_version_default(parser, tmp_path):
    assert parser.detect_python_version(tmp_path) == DEFAULT_PYTHON_VERSION


@pytest.mark.unit
def test_extract_metadata_tooling_flags(parser, tmp_path):
    """Tool tables and config files should set the tooling flags."""
    _write(
        tmp_path,
        {
            "pyproject.toml": "[tool.mypy]\nstrict = true\n",
            "pytest.ini": "[pytest]\n",
            "poetry.lock": "",
        },
    )

    metadata = parser.extract_metadata(tmp_path)

    assert metadata["has_mypy"] is True
    assert metadata["has_pytest"] is True
    assert metadata["has_poetry"] is True
    assert metadata["package_manager"] == "poetry"
    assert metadata["build_tool"] == "setuptools"
    assert metadata["has_virtualenv"] is False


@pytest.mark.unit
def test_analyze_complexity_reads_through_file_reader(tmp_path):
    """Complexity should be computed from the reader's content."""
    path = tmp_path / "branchy.py"
    path.write_text("placeholder")
    parser = PythonProjectParser(file_reader=MockFileReader(return_value="if a or b:\n    pass\n"))

    assert parser.analyze_complexity(path) == 3
    assert parser.analyze_complexity(tmp_path / "missing.py") == 0
