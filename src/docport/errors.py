"""Exception types raised by the backport tooling."""

from __future__ import annotations

from typing import Sequence


class DocportError(RuntimeError):
    """Base class for fatal backport errors."""


class ConfigurationError(DocportError):
    """Raised when the playbook or working directory cannot be used."""


class ValidationError(DocportError):
    """Raised when an explicitly requested version is not declared."""

    def __init__(self, message: str, *, valid_versions: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.valid_versions: tuple[str, ...] = tuple(valid_versions)


class MappingError(DocportError):
    """Raised when a staged path cannot be mapped onto a version tree."""


__all__ = ["ConfigurationError", "DocportError", "MappingError", "ValidationError"]
