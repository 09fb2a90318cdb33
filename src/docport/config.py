"""Settings and playbook helpers for the backport runner.

The runner never consults the ambient working directory on its own: the
project root, playbook location and source tree are captured once in
:class:`BackportSettings` and validated before any file is touched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Iterable, Iterator, List, Sequence, Tuple

import yaml

from .errors import ConfigurationError, MappingError, ValidationError

LOGGER = logging.getLogger(__name__)

DEFAULT_PLAYBOOK_NAME = "playbook-remote.yml"
DEFAULT_SOURCE_ROOT = "versions/latest/modules/"
DEFAULT_VERSIONS_ROOT = "versions"
DEFAULT_VERSION_PREFIX = "v"
DEFAULT_LATEST_NAME = "latest"
START_PATHS_KEY = "start_paths"

VersionSet = Tuple[str, ...]


@dataclass(slots=True, frozen=True)
class BackportSettings:
    """Explicit configuration passed into the runner at start-up."""

    project_root: Path
    playbook_path: Path
    source_root: PurePosixPath = PurePosixPath(DEFAULT_SOURCE_ROOT)
    versions_root: str = DEFAULT_VERSIONS_ROOT
    version_prefix: str = DEFAULT_VERSION_PREFIX
    latest_name: str = DEFAULT_LATEST_NAME

    @classmethod
    def from_root(
        cls,
        root: Path | str | None = None,
        *,
        playbook: str = DEFAULT_PLAYBOOK_NAME,
        source_root: str = DEFAULT_SOURCE_ROOT,
    ) -> "BackportSettings":
        """Build settings anchored at ``root`` (defaults to the current directory)."""

        project_root = Path(root or Path.cwd()).resolve()
        playbook_path = Path(playbook)
        if not playbook_path.is_absolute():
            playbook_path = project_root / playbook_path
        return cls(
            project_root=project_root,
            playbook_path=playbook_path,
            source_root=PurePosixPath(source_root),
        )

    @property
    def source_pathspec(self) -> str:
        """Return the source root as a git pathspec with a trailing slash."""

        return f"{self.source_root.as_posix().rstrip('/')}/"

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` unless the settings are usable."""

        if not (self.project_root / ".git").exists():
            raise ConfigurationError(
                "This script must be run from the root of your Git repository."
            )
        if not self.playbook_path.is_file():
            raise ConfigurationError(
                f"Antora playbook '{self.playbook_path.name}' not found. "
                "Please run this script from the root of your repository."
            )
        occurrences = self.source_root.parts.count(self.latest_name)
        if occurrences != 1:
            raise ConfigurationError(
                f"Source root '{self.source_pathspec}' must contain the "
                f"'{self.latest_name}' segment exactly once (found {occurrences})."
            )

    def destination_for(self, staged: PurePosixPath | str, version: str) -> PurePosixPath:
        """Map a staged path under the source root onto ``version``'s tree.

        Only the ``latest`` segment of the source root is substituted, so the
        word may still appear further down the path without being rewritten.
        """

        staged_path = PurePosixPath(staged)
        root_parts = self.source_root.parts
        if len(staged_path.parts) <= len(root_parts) or staged_path.parts[: len(root_parts)] != root_parts:
            raise MappingError(
                f"'{staged_path.as_posix()}' is not inside '{self.source_pathspec}'."
            )
        if not version or "/" in version or version in {".", ".."}:
            raise MappingError(f"'{version}' is not a usable version directory name.")
        index = root_parts.index(self.latest_name)
        parts = list(staged_path.parts)
        parts[index] = version
        return PurePosixPath(*parts)


def _iter_start_paths(node: Any) -> Iterator[Any]:
    if isinstance(node, dict):
        for key, value in node.items():
            if key == START_PATHS_KEY:
                yield value
            else:
                yield from _iter_start_paths(value)
    elif isinstance(node, list):
        for item in node:
            yield from _iter_start_paths(item)


def _split_start_paths(value: Any) -> List[str]:
    """Normalise a ``start_paths`` value into a list of path strings."""

    if isinstance(value, str):
        text = value.strip()
        if text.startswith("[") and text.endswith("]"):
            text = text[1:-1]
        return [item.strip() for item in text.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    return []


def version_from_path(path: str, settings: BackportSettings) -> str | None:
    """Return the version identifier encoded in ``path`` or ``None``."""

    cleaned = path.strip().strip("'\"").rstrip("/")
    prefix = f"{settings.versions_root}/{settings.version_prefix}"
    if not cleaned.startswith(prefix):
        return None
    return PurePosixPath(cleaned).name or None


def parse_versions(start_paths: Iterable[str], settings: BackportSettings) -> VersionSet:
    """Filter content roots down to their ordered, distinct version identifiers."""

    versions: List[str] = []
    for path in start_paths:
        version = version_from_path(path, settings)
        if version and version not in versions:
            versions.append(version)
    return tuple(versions)


def load_playbook(path: Path) -> Any:
    """Load the playbook YAML or raise :class:`ConfigurationError`."""

    try:
        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}
    except FileNotFoundError as error:
        raise ConfigurationError(f"Antora playbook '{path.name}' not found.") from error
    except OSError as error:
        raise ConfigurationError(f"Unable to read playbook '{path}': {error}") from error
    except yaml.YAMLError as error:
        raise ConfigurationError(f"Failed to parse playbook '{path}': {error}") from error


def discover_versions(settings: BackportSettings) -> VersionSet:
    """Read every declared content root from the playbook and extract versions."""

    document = load_playbook(settings.playbook_path)
    start_paths: List[str] = []
    for value in _iter_start_paths(document):
        start_paths.extend(_split_start_paths(value))
    versions = parse_versions(start_paths, settings)
    LOGGER.debug("Discovered %d version(s) in %s: %s", len(versions), settings.playbook_path, versions)
    return versions


def select_targets(
    requested: Sequence[str],
    available: VersionSet,
    *,
    source: str = "the playbook",
) -> VersionSet:
    """Validate explicit version arguments against the discovered defaults."""

    if not requested:
        return tuple(available)

    selected: List[str] = []
    for version in requested:
        if version not in available:
            options = " ".join(available) or "(none)"
            raise ValidationError(
                f"Target version '{version}' is not a valid version found in {source}. "
                f"Valid versions are: {options}",
                valid_versions=available,
            )
        if version not in selected:
            selected.append(version)
    return tuple(selected)


__all__ = [
    "BackportSettings",
    "DEFAULT_PLAYBOOK_NAME",
    "DEFAULT_SOURCE_ROOT",
    "VersionSet",
    "discover_versions",
    "load_playbook",
    "parse_versions",
    "select_targets",
    "version_from_path",
]
