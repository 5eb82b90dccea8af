"""
Dependency analysis for npm-style JavaScript projects.

All three dependency groups come from package.json. Tree resolution walks the
production and development dependencies through the npm registry, adding one
level of indirect dependencies for each direct one.
"""

from dataclasses import replace
from pathlib import Path
from typing import Any

from adapters.registry import PackageRegistry, clean_version
from core.exceptions import RegistryLookupError
from core.file_io import FileReader, FilesystemFileReader
from core.models import (
    DependencyGraph,
    DependencyInfo,
    OutdatedDependency,
    SecurityVulnerability,
)
from plugins.dependencies import UNPINNED, check_updates, enrich, find_conflicts
from plugins.source_files import read_json

SOURCE = "npm"

SCOPES = (
    ("production", "dependencies"),
    ("development", "devDependencies"),
    ("optional", "optionalDependencies"),
)


class NpmDependencyAnalyzer:
    """
    DependencyAnalyzer for JavaScript and TypeScript projects.

    Attributes:
        registry: npm registry client used by update checks and tree resolution.
        file_reader: Reader for package.json.
    """

    def __init__(self, registry: PackageRegistry, file_reader: FileReader | None = None):
        self.registry = registry
        self.file_reader = file_reader or FilesystemFileReader()

    def _package_json(self, project_path: Path) -> dict[str, Any]:
        return read_json(self.file_reader, project_path / "package.json") or {}

    def _declared(self, project_path: Path) -> dict[str, list[DependencyInfo]]:
        package_json = self._package_json(project_path)
        declared: dict[str, list[DependencyInfo]] = {}
        for scope, key in SCOPES:
            group = package_json.get(key) or {}
            declared[scope] = [
                DependencyInfo(name=name, version=str(version), scope=scope, source=SOURCE)
                for name, version in group.items()
            ]
        return declared

    def analyze_dependencies(self, project_path: Path) -> DependencyGraph:
        """Parse package.json into a graph. Makes no network calls."""
        declared = self._declared(project_path)
        every = [d for group in declared.values() for d in group]
        return DependencyGraph(
            dependencies=tuple(declared["production"]),
            dev_dependencies=tuple(declared["development"]),
            optional_dependencies=tuple(declared["optional"]),
            conflicts=tuple(find_conflicts(every)),
        )

    def check_for_updates(self, project_path: Path) -> list[OutdatedDependency]:
        declared = self._declared(project_path)
        every = [d for group in declared.values() for d in group]
        return check_updates(every, self.registry)

    def find_vulnerabilities(self, project_path: Path) -> list[SecurityVulnerability]:
        # No advisory database is consulted
        return []

    def resolve_dependency_tree(self, project_path: Path) -> list[DependencyInfo]:
        declared = self._declared(project_path)
        resolved: list[DependencyInfo] = []
        seen: set[tuple[str, str]] = set()

        def add(dep: DependencyInfo) -> DependencyInfo | None:
            key = (dep.name, dep.version)
            if key in seen:
                return None
            seen.add(key)
            enriched = enrich(dep, self.registry)
            resolved.append(enriched)
            return enriched

        for dep in declared["production"] + declared["development"]:
            if add(dep) is None:
                continue
            for name, version in self._indirect(dep).items():
                add(
                    replace(
                        dep,
                        name=name,
                        version=str(version),
                        kind="indirect",
                        description=None,
                        license=None,
                        homepage=None,
                        size_bytes=0,
                    )
                )
        return resolved

    def _indirect(self, dep: DependencyInfo) -> dict[str, str]:
        version = None if dep.version == UNPINNED else clean_version(dep.version)
        try:
            return self.registry.package_info(dep.name, version).dependencies
        except RegistryLookupError:
            # enrich() already warned about this package
            return {}
