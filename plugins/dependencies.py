"""
Registry-backed dependency checks shared by the language analyzers.

Analyzers parse their own manifests into DependencyInfo records; the helpers
here detect version conflicts and, through an injected PackageRegistry, look
up newer releases and package metadata. A failed lookup is reported and
skipped so one unreachable package never hides the rest of the report.
"""

from dataclasses import replace
from typing import Iterable

from adapters.registry import PackageRegistry, clean_version, is_outdated
from core.exceptions import RegistryLookupError
from core.models import DependencyConflict, DependencyInfo, OutdatedDependency
from plugins.source_files import unique
from utils import warn

UNPINNED = "latest"


def find_conflicts(dependencies: Iterable[DependencyInfo]) -> list[DependencyConflict]:
    """Report every package declared with more than one version."""
    versions: dict[str, list[str]] = {}
    for dep in dependencies:
        versions.setdefault(dep.name, []).append(dep.version)

    conflicts = []
    for name, declared in versions.items():
        distinct = unique(declared)
        if len(distinct) > 1:
            conflicts.append(
                DependencyConflict(
                    package=name,
                    versions=distinct,
                    cause="Multiple versions required",
                    resolution=f"Use {distinct[0]}",
                )
            )
    return conflicts


def check_updates(
    dependencies: Iterable[DependencyInfo], registry: PackageRegistry
) -> list[OutdatedDependency]:
    """
    Compare declared versions against the registry's latest releases.

    Unpinned dependencies are never reported as outdated.
    """
    outdated = []
    for dep in dependencies:
        try:
            latest = registry.latest_version(dep.name)
        except RegistryLookupError as e:
            warn(f"Failed to check updates for {dep.name}: {e.message}")
            continue
        if is_outdated(dep.version, latest):
            outdated.append(
                OutdatedDependency(
                    name=dep.name,
                    current_version=dep.version,
                    latest_version=latest,
                    wanted_version=latest,
                    scope=dep.scope,
                )
            )
    return outdated


def enrich(dep: DependencyInfo, registry: PackageRegistry) -> DependencyInfo:
    """Fill description, license, homepage and size from the registry."""
    version = None if dep.version == UNPINNED else clean_version(dep.version)
    try:
        info = registry.package_info(dep.name, version)
    except RegistryLookupError as e:
        warn(f"Failed to fetch package info for {dep.name}: {e.message}")
        return dep
    return replace(
        dep,
        description=info.description,
        license=info.license,
        homepage=info.homepage,
        size_bytes=info.size,
    )
