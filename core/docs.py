"""
Markdown documents rendered from a cached project snapshot.

Nothing here touches the project tree: the README and the API reference are
built only from what the language plugin recorded at scan time.
"""

from core.models import DependencyInfo, ProjectSnapshot, SourceFileDescriptor
from models import FileKind

# File kinds that never appear in the API reference.
_NON_API_KINDS = frozenset({FileKind.TEST, FileKind.CONFIG, FileKind.DOCUMENTATION})


def _dependency_lines(deps: tuple[DependencyInfo, ...]) -> list[str]:
    return [f"- `{d.name}` {d.version}" for d in deps]


def render_readme(snapshot: ProjectSnapshot) -> str:
    structure = snapshot.structure
    graph = snapshot.dependency_graph

    intro = f"A {structure.language} {structure.project_type} project"
    if structure.framework:
        intro += f" built with {structure.framework}"
    lines = [f"# {structure.name}", "", f"{intro}."]
    if structure.version:
        lines += ["", f"Version: {structure.version}"]

    lines += [
        "",
        "## Overview",
        "",
        f"- Source files: {len(structure.source_files)}",
        f"- Targets: {len(structure.targets)}",
        f"- Dependencies: {len(graph.dependencies)}",
    ]

    if structure.targets:
        lines += ["", "## Targets", ""]
        lines += [
            f"- `{t.name}` ({t.kind}, {len(t.source_files)} files)" for t in structure.targets
        ]

    if graph.dependencies:
        lines += ["", "## Dependencies", ""] + _dependency_lines(graph.dependencies)
    if graph.dev_dependencies:
        lines += ["", "### Development", ""] + _dependency_lines(graph.dev_dependencies)

    lines += ["", "## Getting Started", ""]
    package_manager = structure.metadata.get("package_manager")
    if package_manager:
        lines.append(f"1. Install dependencies with `{package_manager}`.")
    else:
        lines.append("1. Install the dependencies listed above.")
    lines.append("2. Build and run the targets.")
    return "\n".join(lines) + "\n"


def _has_api(descriptor: SourceFileDescriptor) -> bool:
    if descriptor.kind in _NON_API_KINDS:
        return False
    return bool(descriptor.classes or descriptor.functions or descriptor.exports)


def render_api_reference(snapshot: ProjectSnapshot) -> str:
    """List the declared classes, functions and exports of each source file."""
    lines = [f"# {snapshot.name} API reference"]
    documented = [f for f in snapshot.source_files if _has_api(f)]
    if not documented:
        lines += ["", "No public symbols were found."]
    for descriptor in documented:
        lines += ["", f"## `{descriptor.path}`", ""]
        if descriptor.classes:
            lines.append(f"- Classes: {', '.join(descriptor.classes)}")
        if descriptor.functions:
            lines.append(f"- Functions: {', '.join(descriptor.functions)}")
        if descriptor.exports:
            lines.append(f"- Exports: {', '.join(sorted(descriptor.exports))}")
    return "\n".join(lines) + "\n"


RENDERERS = {
    "README.md": render_readme,
    "API.md": render_api_reference,
}
