"""
Package registry clients.

This module queries public package registries (the PyPI JSON API and the npm
registry) for release metadata. Dependency analyzers use it to flag outdated
dependencies and to enrich the resolved dependency tree. All network access
goes through an injected `httpx.Client`, so tests can swap in an
`httpx.MockTransport`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from itertools import zip_longest
import re
from typing import Any, Protocol

import httpx

from core.exceptions import RegistryLookupError

USER_AGENT = "ctxforge/0.1"

PYPI_URL = "https://pypi.org/pypi"
NPM_URL = "https://registry.npmjs.org"

_VERSION_PREFIX = re.compile(r"^[\s^~=<>!v]+")
_NUMERIC_PART = re.compile(r"\d+")


@dataclass(frozen=True)
class PackageInfo:
    """Release metadata for one package version."""

    name: str
    version: str
    description: str | None = None
    license: str | None = None
    homepage: str | None = None
    size: int = 0
    dependencies: dict[str, str] = field(default_factory=dict)


class PackageRegistry(Protocol):
    """Protocol for package registry lookups."""

    source: str

    def latest_version(self, name: str) -> str:
        """
        Return the latest published version of a package.

        Raises:
            RegistryLookupError: If the registry cannot be reached or the package is unknown.
        """

    def package_info(self, name: str, version: str | None = None) -> PackageInfo:
        """
        Return metadata for a package version (latest when version is None).

        Raises:
            RegistryLookupError: If the registry cannot be reached or the package is unknown.
        """


def create_http_client(timeout: float = 5.0) -> httpx.Client:
    return httpx.Client(
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
    )


def clean_version(spec: str) -> str:
    """
    Strip range operators from a version requirement.

    "^1.2.3" -> "1.2.3", ">=2.0,<3" -> "2.0", "latest" -> "latest".
    """
    first = re.split(r"[,;|\s]", spec.strip(), maxsplit=1)[0] if spec.strip() else ""
    return _VERSION_PREFIX.sub("", first) or spec.strip()


def version_key(version: str) -> tuple[int, ...]:
    """Numeric release components of a version string, for ordering."""
    return tuple(int(p) for p in _NUMERIC_PART.findall(clean_version(version)))


def is_outdated(current: str, latest: str) -> bool:
    """
    Return True when `latest` is a newer release than the declared `current`.

    Unpinned requirements ("latest", "*", empty) are never outdated.
    """
    current_key = version_key(current)
    latest_key = version_key(latest)
    if not current_key or not latest_key:
        return False
    for latest_part, current_part in zip_longest(latest_key, current_key, fillvalue=0):
        if latest_part != current_part:
            return latest_part > current_part
    return False


class _HttpRegistry(ABC):
    """Shared HTTP plumbing: JSON fetching, error mapping and per-run memoization."""

    source = ""

    def __init__(self, client: httpx.Client | None = None, timeout: float = 5.0):
        self.client = client or create_http_client(timeout)
        self._info_cache: dict[tuple[str, str | None], PackageInfo] = {}

    def _get_json(self, name: str, url: str) -> dict[str, Any]:
        try:
            response = self.client.get(url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise RegistryLookupError(
                name,
                message=f"{self.source} lookup failed for {name}: {e}",
                original_exception=e,
            ) from e
        except ValueError as e:
            raise RegistryLookupError(
                name,
                message=f"{self.source} returned malformed JSON for {name}",
                original_exception=e,
            ) from e
        if not isinstance(data, dict):
            raise RegistryLookupError(
                name, message=f"{self.source} returned an unexpected payload for {name}"
            )
        return data

    def package_info(self, name: str, version: str | None = None) -> PackageInfo:
        key = (name, version)
        if key not in self._info_cache:
            self._info_cache[key] = self._fetch_info(name, version)
        return self._info_cache[key]

    def latest_version(self, name: str) -> str:
        return self.package_info(name).version

    @abstractmethod
    def _fetch_info(self, name: str, version: str | None) -> PackageInfo: ...


class PyPIRegistry(_HttpRegistry):
    """PyPI JSON API client."""

    source = "pypi"

    def __init__(
        self,
        client: httpx.Client | None = None,
        timeout: float = 5.0,
        base_url: str = PYPI_URL,
    ):
        super().__init__(client, timeout)
        self.base_url = base_url.rstrip("/")

    def _fetch_info(self, name: str, version: str | None) -> PackageInfo:
        url = f"{self.base_url}/{name}/json"
        if version and version_key(version):
            url = f"{self.base_url}/{name}/{clean_version(version)}/json"
        data = self._get_json(name, url)

        info = data.get("info") or {}
        if "version" not in info:
            raise RegistryLookupError(name, message=f"No version info for {name}")
        size = sum(int(u.get("size", 0)) for u in data.get("urls") or [])
        return PackageInfo(
            name=name,
            version=str(info["version"]),
            description=info.get("summary"),
            license=info.get("license"),
            homepage=info.get("home_page") or info.get("project_url"),
            size=size,
        )


class NpmRegistry(_HttpRegistry):
    """npm registry client."""

    source = "npm"

    def __init__(
        self,
        client: httpx.Client | None = None,
        timeout: float = 5.0,
        base_url: str = NPM_URL,
    ):
        super().__init__(client, timeout)
        self.base_url = base_url.rstrip("/")

    def _fetch_info(self, name: str, version: str | None) -> PackageInfo:
        tag = clean_version(version) if version else "latest"
        if not version_key(tag):
            tag = "latest"
        data = self._get_json(name, f"{self.base_url}/{name}/{tag}")

        if "version" not in data:
            raise RegistryLookupError(name, message=f"No version info for {name}")
        license_field = data.get("license")
        if isinstance(license_field, dict):
            license_field = license_field.get("type")
        return PackageInfo(
            name=name,
            version=str(data["version"]),
            description=data.get("description"),
            license=license_field,
            homepage=data.get("homepage"),
            size=int((data.get("dist") or {}).get("unpackedSize", 0)),
            dependencies=dict(data.get("dependencies") or {}),
        )


class MockPackageRegistry:
    """
    Mock implementation of PackageRegistry for testing.

    Attributes (for test inspection):
        lookups: Package names passed to latest_version() and package_info().
    """

    def __init__(
        self,
        source: str = "pypi",
        packages: dict[str, PackageInfo] | None = None,
        failing: set[str] | None = None,
    ):
        self.source = source
        self.packages = packages or {}
        self.failing = failing or set()
        self.lookups: list[str] = []

    def package_info(self, name: str, version: str | None = None) -> PackageInfo:
        self.lookups.append(name)
        if name in self.failing or name not in self.packages:
            raise RegistryLookupError(name)
        return self.packages[name]

    def latest_version(self, name: str) -> str:
        return self.package_info(name).version
