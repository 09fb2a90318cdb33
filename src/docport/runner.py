"""Backport staged module changes from ``latest`` into older version trees."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, List, Sequence

from .config import BackportSettings, VersionSet, discover_versions, select_targets
from .errors import MappingError
from .tools.patch import DiffTool, PatchError, PatchTool, SystemDiff, SystemPatch
from .tools.vcs import GitRepository

LOGGER = logging.getLogger(__name__)


class Outcome(str, Enum):
    """Result of syncing one staged file into one version."""

    COPIED = "COPIED"
    PATCHED_CLEAN = "PATCHED_CLEAN"
    PATCHED_NO_CHANGES = "PATCHED_NO_CHANGES"
    PATCH_FAILED = "PATCH_FAILED"
    SKIPPED = "SKIPPED"
    ERROR = "ERROR"


FAILURE_OUTCOMES = frozenset({Outcome.PATCH_FAILED, Outcome.ERROR})


@dataclass(slots=True)
class PairOutcome:
    """Outcome recorded for a single (staged file, version) pair."""

    staged: PurePosixPath
    version: str
    destination: PurePosixPath | None
    outcome: Outcome
    detail: str = ""
    created_dirs: tuple[PurePosixPath, ...] = ()
    reject_path: PurePosixPath | None = None

    @property
    def failed(self) -> bool:
        return self.outcome in FAILURE_OUTCOMES


@dataclass(slots=True)
class BackportReport:
    """Everything a run produced, in processing order."""

    targets: VersionSet = ()
    staged: tuple[PurePosixPath, ...] = ()
    outcomes: List[PairOutcome] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return any(item.failed for item in self.outcomes)

    @property
    def nothing_to_do(self) -> bool:
        return not self.staged

    def counts(self) -> Dict[Outcome, int]:
        totals: Dict[Outcome, int] = {outcome: 0 for outcome in Outcome}
        for item in self.outcomes:
            totals[item.outcome] += 1
        return totals


class Reporter:
    """Receives progress callbacks while the runner works.

    The default implementation discards everything; the CLI subclasses it to
    print operator-facing lines.
    """

    def targets_selected(self, targets: VersionSet, *, explicit: bool) -> None:
        pass

    def nothing_staged(self, source_root: str) -> None:
        pass

    def no_targets(self, staged: Sequence[PurePosixPath]) -> None:
        pass

    def file_started(self, staged: PurePosixPath) -> None:
        pass

    def file_missing(self, staged: PurePosixPath) -> None:
        pass

    def pair_finished(self, result: PairOutcome) -> None:
        pass


class BackportRunner:
    """Copy or patch staged files from the ``latest`` tree into version trees.

    Collaborators are injected so tests can substitute fakes for git, ``diff``
    and ``patch``.  Every pair is processed independently: a failure is
    recorded as an outcome and the loop moves on.
    """

    def __init__(
        self,
        settings: BackportSettings,
        *,
        repo: GitRepository | None = None,
        differ: DiffTool | None = None,
        patcher: PatchTool | None = None,
        reporter: Reporter | None = None,
        copier: Callable[[Path, Path], object] = shutil.copyfile,
    ) -> None:
        self.settings = settings
        self._repo = repo
        self.differ: DiffTool = differ or SystemDiff()
        self.patcher: PatchTool = patcher or SystemPatch()
        self.reporter = reporter or Reporter()
        self._copier = copier

    @property
    def repo(self) -> GitRepository:
        if self._repo is None:
            self._repo = GitRepository(self.settings.project_root)
        return self._repo

    # ----------------------------------------------------------- preparation
    def resolve_targets(self, requested: Sequence[str] = ()) -> VersionSet:
        """Validate settings, read the playbook and pick the target versions.

        Raises :class:`ConfigurationError` or :class:`ValidationError` before
        anything on disk is modified.
        """

        self.settings.validate()
        available = discover_versions(self.settings)
        targets = select_targets(
            requested,
            available,
            source=f"'{self.settings.playbook_path.name}'",
        )
        self.reporter.targets_selected(targets, explicit=bool(requested))
        return targets

    def staged_files(self) -> List[PurePosixPath]:
        """Return staged paths under the source root, in git's order."""

        paths = self.repo.staged_paths(self.settings.source_pathspec)
        return [PurePosixPath(path.as_posix()) for path in paths]

    # ------------------------------------------------------------------ run
    def run(self, requested: Sequence[str] = ()) -> BackportReport:
        targets = self.resolve_targets(requested)
        staged = self.staged_files()
        report = BackportReport(targets=targets, staged=tuple(staged))

        if not staged:
            self.reporter.nothing_staged(self.settings.source_pathspec)
            return report

        if not targets:
            LOGGER.warning("No target versions for %d staged file(s)", len(staged))
            self.reporter.no_targets(staged)
            return report

        for path in staged:
            source = self.settings.project_root / path
            if not source.is_file():
                LOGGER.debug("Skipping %s: not a file on disk", path)
                self.reporter.file_missing(path)
                continue
            self.reporter.file_started(path)
            for version in targets:
                result = self.sync_pair(path, version)
                report.outcomes.append(result)
                self.reporter.pair_finished(result)

        return report

    def sync_pair(self, staged: PurePosixPath, version: str) -> PairOutcome:
        """Copy or patch ``staged`` into ``version`` and record what happened."""

        try:
            destination = self.settings.destination_for(staged, version)
        except MappingError as error:
            return PairOutcome(staged, version, None, Outcome.SKIPPED, str(error))

        source_path = self.settings.project_root / staged
        dest_path = self.settings.project_root / destination

        if not dest_path.exists():
            return self._copy(staged, version, source_path, dest_path, destination)
        if not dest_path.is_file():
            return PairOutcome(
                staged,
                version,
                destination,
                Outcome.SKIPPED,
                "Target exists but is not a regular file.",
            )
        return self._patch(staged, version, source_path, dest_path, destination)

    def _relative(self, path: Path) -> PurePosixPath:
        return PurePosixPath(path.relative_to(self.settings.project_root).as_posix())

    def _copy(
        self,
        staged: PurePosixPath,
        version: str,
        source_path: Path,
        dest_path: Path,
        destination: PurePosixPath,
    ) -> PairOutcome:
        created: List[PurePosixPath] = []
        try:
            missing = [parent for parent in dest_path.parents if not parent.exists()]
            if missing:
                dest_path.parent.mkdir(parents=True, exist_ok=True)
                created = [self._relative(parent) for parent in reversed(missing)]
            self._copier(source_path, dest_path)
        except OSError as error:
            LOGGER.warning("Copy of %s to %s failed: %s", staged, destination, error)
            return PairOutcome(
                staged,
                version,
                destination,
                Outcome.ERROR,
                f"Copy failed: {error}",
                created_dirs=tuple(created),
            )
        return PairOutcome(staged, version, destination, Outcome.COPIED, created_dirs=tuple(created))

    def _patch(
        self,
        staged: PurePosixPath,
        version: str,
        source_path: Path,
        dest_path: Path,
        destination: PurePosixPath,
    ) -> PairOutcome:
        try:
            diff = self.differ.unified_diff(dest_path, source_path)
            if not diff:
                return PairOutcome(
                    staged,
                    version,
                    destination,
                    Outcome.PATCHED_NO_CHANGES,
                    "No differences found. File is already in sync.",
                )
            result = self.patcher.apply(dest_path, diff)
        except (PatchError, OSError) as error:
            LOGGER.warning("Patching %s failed: %s", destination, error)
            return PairOutcome(staged, version, destination, Outcome.ERROR, str(error))

        if result.ok:
            return PairOutcome(staged, version, destination, Outcome.PATCHED_CLEAN, "Patch applied.")

        reject = self._relative(result.reject_path) if result.reject_path else None
        return PairOutcome(
            staged,
            version,
            destination,
            Outcome.PATCH_FAILED,
            result.message or "Patch could not be applied.",
            reject_path=reject,
        )


__all__ = [
    "BackportReport",
    "BackportRunner",
    "Outcome",
    "PairOutcome",
    "Reporter",
]
