from dataclasses import asdict, dataclass, fields
import json
import os
from pathlib import Path
from typing import Any

from core.file_io import FilesystemFileReader, FilesystemFileWriter
from utils import warn


def get_config_dir() -> Path:
    override = os.environ.get("CTXFORGE_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".ctxforge"


def get_config_path() -> Path:
    return get_config_dir() / "settings.json"


@dataclass(frozen=True)
class EngineSettings:
    """
    User-tunable engine settings.

    Attributes:
        cache_path: Location of the project cache document. Defaults to
            `<config dir>/cache.json` when empty.
        token_counter: "ratio" (4 characters per token) or "tiktoken".
        tiktoken_model: Model name handed to tiktoken.
        daily_limit: Default daily token limit for a fresh usage tracker.
        monthly_limit: Default monthly token limit for a fresh usage tracker.
        max_file_chars: Per-file content cap when loading files for optimization.
        registry_timeout: Seconds before a package registry request is abandoned.
    """

    cache_path: str = ""
    token_counter: str = "ratio"
    tiktoken_model: str = "gpt-4o"
    daily_limit: int = 50_000
    monthly_limit: int = 1_000_000
    max_file_chars: int = 20_000
    registry_timeout: float = 5.0

    def resolved_cache_path(self) -> Path:
        if self.cache_path:
            return Path(self.cache_path).expanduser()
        return get_config_dir() / "cache.json"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EngineSettings":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def get_config_file() -> dict[str, Any]:
    config_file = get_config_path()
    if not config_file.exists():
        return {}
    file_content = FilesystemFileReader().read_file(config_file)
    if not file_content.strip():
        return {}
    try:
        data = json.loads(file_content)
    except json.JSONDecodeError:
        warn(f"Ignoring malformed settings file: {config_file}")
        return {}
    return data if isinstance(data, dict) else {}


def load_settings() -> EngineSettings:
    return EngineSettings.from_dict(get_config_file())


def save_config(settings: EngineSettings) -> None:
    fw = FilesystemFileWriter.from_path(get_config_path(), create_parents=True)
    fw.write_json(asdict(settings))
