"""Minimal git helpers
The helpers below provide just enough structure to list the paths staged
for the next commit.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

import subprocess


class GitError(RuntimeError):
    """Raised when a git command fails or the repository cannot be used."""


class GitRepository:
    """Lightweight wrapper around ``git`` commands."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()
        if not (self.root / ".git").exists():
            raise GitError(f"Not a git repository: {self.root}")

    # ------------------------------------------------------------------ git IO
    def _run_git(self, args: Sequence[str]) -> subprocess.CompletedProcess[str]:
        command = ["git", *args]
        try:
            process = subprocess.run(
                command,
                cwd=self.root,
                capture_output=True,
                text=False,
                check=False,
            )
        except FileNotFoundError as error:
            raise GitError("git executable not found on PATH") from error
        stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
        stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
        return subprocess.CompletedProcess(process.args, process.returncode, stdout, stderr)

    # ------------------------------------------------------------------ index
    def staged_paths(self, *pathspecs: str) -> List[Path]:
        """Return paths staged for the next commit, restricted to ``pathspecs``.

        Paths are reported relative to the repository root in the order git
        lists them.  Staged deletions are included; callers decide whether the
        path still exists on disk.
        """

        args: List[str] = ["diff", "--name-only", "--cached", "-z"]
        if pathspecs:
            args.extend(["--", *pathspecs])

        result = self._run_git(args)
        if result.returncode != 0:
            message = result.stderr.strip() or result.stdout.strip() or "unable to list staged paths"
            raise GitError(f"git diff --cached failed: {message}")

        payload = result.stdout
        if not payload:
            return []

        entries = [entry for entry in payload.split("\0") if entry]
        return [Path(entry) for entry in entries]


__all__ = ["GitError", "GitRepository"]
