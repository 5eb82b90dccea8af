"""
Dependency analysis for pip-style Python projects.

Production dependencies come from `[project].dependencies` in pyproject.toml,
falling back to requirements.txt. Development and optional dependencies come
from the `dev` and `optional` groups of `[project.optional-dependencies]`.
"""

from pathlib import Path
import re
import tomllib
from typing import Any

from adapters.registry import PackageRegistry
from core.file_io import FileReader, FilesystemFileReader
from core.models import (
    DependencyGraph,
    DependencyInfo,
    OutdatedDependency,
    SecurityVulnerability,
)
from plugins.dependencies import UNPINNED, check_updates, enrich, find_conflicts
from plugins.python.parser import parse_requirements_text
from plugins.source_files import read_text
from utils import warn

SOURCE = "pypi"

_REQUIREMENT = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)\s*(?:\[[^\]]*\])?\s*(.*)$")


def parse_requirement(requirement: str) -> tuple[str, str]:
    """
    Split a requirement into (name, version spec).

    "requests>=2.31" -> ("requests", ">=2.31"); "rich" -> ("rich", "latest").
    Environment markers are dropped.
    """
    spec = requirement.split(";", 1)[0].strip()
    match = _REQUIREMENT.match(spec)
    if not match:
        return spec, UNPINNED
    version = match.group(2).strip()
    return match.group(1), version or UNPINNED


class PipDependencyAnalyzer:
    """
    DependencyAnalyzer for Python projects.

    Attributes:
        registry: PyPI client used by update checks and tree resolution.
        file_reader: Reader for manifests.
    """

    def __init__(self, registry: PackageRegistry, file_reader: FileReader | None = None):
        self.registry = registry
        self.file_reader = file_reader or FilesystemFileReader()

    def _pyproject(self, project_path: Path) -> dict[str, Any]:
        text = read_text(self.file_reader, project_path / "pyproject.toml")
        if text is None:
            return {}
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            warn(f"Ignoring malformed pyproject.toml: {e}")
            return {}

    def _requirements(self, project_path: Path) -> list[str]:
        text = read_text(self.file_reader, project_path / "requirements.txt")
        return parse_requirements_text(text) if text else []

    def _declared(self, project_path: Path) -> dict[str, list[DependencyInfo]]:
        project = self._pyproject(project_path).get("project") or {}
        optional = project.get("optional-dependencies") or {}
        groups = {
            "production": project.get("dependencies") or self._requirements(project_path),
            "development": optional.get("dev") or [],
            "optional": optional.get("optional") or [],
        }
        declared: dict[str, list[DependencyInfo]] = {}
        for scope, requirements in groups.items():
            infos = []
            for requirement in requirements:
                name, version = parse_requirement(str(requirement))
                infos.append(
                    DependencyInfo(name=name, version=version, scope=scope, source=SOURCE)
                )
            declared[scope] = infos
        return declared

    def analyze_dependencies(self, project_path: Path) -> DependencyGraph:
        """Parse the manifests into a graph. Makes no network calls."""
        declared = self._declared(project_path)
        every = [d for group in declared.values() for d in group]
        return DependencyGraph(
            dependencies=tuple(declared["production"]),
            dev_dependencies=tuple(declared["development"]),
            optional_dependencies=tuple(declared["optional"]),
            conflicts=tuple(find_conflicts(every)),
        )

    def check_for_updates(self, project_path: Path) -> list[OutdatedDependency]:
        return check_updates(self._declared(project_path)["production"], self.registry)

    def find_vulnerabilities(self, project_path: Path) -> list[SecurityVulnerability]:
        # No vulnerability database is consulted
        return []

    def resolve_dependency_tree(self, project_path: Path) -> list[DependencyInfo]:
        return [enrich(d, self.registry) for d in self._declared(project_path)["production"]]
