"""
Plugin registry: registration, applicability detection and primary plugin choice.
"""

from dataclasses import dataclass
from pathlib import Path

from core.exceptions import DuplicatePluginError, NoApplicablePluginError
from core.models import ProjectStructure
from plugins.interfaces import LanguagePlugin
from utils import debug, warn


@dataclass(frozen=True)
class RegistryStats:
    total_plugins: int
    plugin_names: tuple[str, ...]


class PluginRegistry:
    """
    Holds language plugins in registration order.

    Detection checks every plugin sequentially. A plugin whose check raises is
    reported and treated as not applicable; it never aborts detection.
    """

    def __init__(self) -> None:
        self._plugins: dict[str, LanguagePlugin] = {}

    def register_plugin(self, plugin: LanguagePlugin) -> None:
        """
        Raises:
            DuplicatePluginError: If a plugin with the same name is already registered.
        """
        if plugin.name in self._plugins:
            raise DuplicatePluginError(plugin.name)
        self._plugins[plugin.name] = plugin

    def unregister_plugin(self, name: str) -> bool:
        return self._plugins.pop(name, None) is not None

    def clear(self) -> None:
        self._plugins.clear()

    def get_plugin(self, name: str) -> LanguagePlugin | None:
        return self._plugins.get(name)

    def all_plugins(self) -> list[LanguagePlugin]:
        return list(self._plugins.values())

    def plugins_for_language(self, language: str) -> list[LanguagePlugin]:
        language = language.lower()
        return [
            p
            for p in self._plugins.values()
            if language in p.metadata.supported_languages
        ]

    def plugins_for_extension(self, extension: str) -> list[LanguagePlugin]:
        extension = extension.lower()
        if not extension.startswith("."):
            extension = f".{extension}"
        return [p for p in self._plugins.values() if extension in p.file_extensions]

    @staticmethod
    def validate_plugin(plugin: LanguagePlugin) -> bool:
        """Return True when the plugin carries a name, extensions and all required capabilities."""
        if not plugin.name or not plugin.file_extensions:
            return False
        return all(
            cap is not None
            for cap in (plugin.parser, plugin.dependency_analyzer, plugin.context_scorer)
        )

    def detect_applicable_plugins(self, project_path: Path) -> list[LanguagePlugin]:
        """
        Return the plugins applicable to a project, highest priority first.

        Ties keep registration order.
        """
        applicable: list[LanguagePlugin] = []
        for plugin in self._plugins.values():
            try:
                if plugin.is_applicable(project_path):
                    applicable.append(plugin)
            except Exception as e:
                warn(f"Plugin {plugin.name} failed applicability check: {e}")

        # sorted() is stable, so equal priorities keep registration order
        ordered = sorted(applicable, key=lambda p: p.get_priority(), reverse=True)
        debug("Applicable plugins:", [p.name for p in ordered])
        return ordered

    def detect_primary_plugin(self, project_path: Path) -> LanguagePlugin | None:
        applicable = self.detect_applicable_plugins(project_path)
        return applicable[0] if applicable else None

    def analyze_project(self, project_path: Path) -> ProjectStructure:
        """
        Parse a project with its primary plugin.

        Raises:
            NoApplicablePluginError: If no registered plugin applies to the project.
        """
        plugin = self.detect_primary_plugin(project_path)
        if plugin is None:
            raise NoApplicablePluginError(str(project_path))
        return plugin.parser.parse_project(project_path)

    def stats(self) -> RegistryStats:
        return RegistryStats(len(self._plugins), tuple(self._plugins))

    def __len__(self) -> int:
        return len(self._plugins)
