"""
The registry of built-in language plugins.
"""

import httpx

from adapters.registry import NpmRegistry, PyPIRegistry, create_http_client
from core.config import EngineSettings
from core.file_io import FileReader
from plugins.javascript.plugin import create_javascript_plugin
from plugins.python.plugin import create_python_plugin
from plugins.registry import PluginRegistry


def create_default_registry(
    settings: EngineSettings | None = None,
    client: httpx.Client | None = None,
    file_reader: FileReader | None = None,
) -> PluginRegistry:
    """
    Register the JavaScript/TypeScript and Python plugins, in that order.

    One HTTP client is shared by the package registries and MDN search.
    """
    settings = settings or EngineSettings()
    client = client or create_http_client(settings.registry_timeout)

    registry = PluginRegistry()
    registry.register_plugin(
        create_javascript_plugin(NpmRegistry(client), file_reader, docs_client=client)
    )
    registry.register_plugin(create_python_plugin(PyPIRegistry(client), file_reader))
    return registry
