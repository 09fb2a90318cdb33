"""Backport documentation module changes across versions and convert admonitions."""

from .config import BackportSettings, discover_versions, select_targets
from .errors import ConfigurationError, DocportError, MappingError, ValidationError
from .runner import BackportReport, BackportRunner, Outcome, PairOutcome, Reporter

__all__ = [
    "BackportReport",
    "BackportRunner",
    "BackportSettings",
    "ConfigurationError",
    "DocportError",
    "MappingError",
    "Outcome",
    "PairOutcome",
    "Reporter",
    "ValidationError",
    "discover_versions",
    "select_targets",
]
