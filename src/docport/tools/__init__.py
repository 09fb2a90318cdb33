"""Wrappers around the external tools the backport runner drives."""

from .patch import DiffTool, PatchError, PatchResult, PatchTool, SystemDiff, SystemPatch
from .vcs import GitError, GitRepository

__all__ = [
    "DiffTool",
    "GitError",
    "GitRepository",
    "PatchError",
    "PatchResult",
    "PatchTool",
    "SystemDiff",
    "SystemPatch",
]
