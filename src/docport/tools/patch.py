"""Unified diff helpers backed by the system ``diff`` and ``patch`` tools."""

from __future__ import annotations

import json
import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence, Tuple


class PatchError(RuntimeError):
    """Raised when a diff cannot be produced or the patch tool cannot run."""

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})


@dataclass(slots=True)
class PatchResult:
    """Outcome of applying a patch to a single file."""

    command: Tuple[str, ...]
    target: Path
    returncode: int
    stdout: str
    stderr: str
    reject_path: Path | None = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def message(self) -> str:
        return self.stderr.strip() or self.stdout.strip()


class DiffTool(Protocol):
    """Produces a unified diff turning ``old`` into ``new``, as raw bytes."""

    def unified_diff(self, old: Path, new: Path) -> bytes:
        ...


class PatchTool(Protocol):
    """Applies a unified diff to ``target`` in place."""

    def apply(self, target: Path, patch: bytes) -> PatchResult:
        ...


TELEMETRY_LOGGER = logging.getLogger("docport.telemetry")


def _serialise_event_value(value: Any) -> Any:
    """Convert telemetry payload values into JSON-friendly representations."""
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, (list, tuple, set)):
        return [_serialise_event_value(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): _serialise_event_value(child) for key, child in value.items()}
    return str(value)


def _emit_patch_event(event: str, **fields: Any) -> None:
    """Log structured telemetry events for diff and patch runs."""
    payload = {"event": event, "timestamp": datetime.now(timezone.utc).isoformat()}
    for key, value in fields.items():
        payload[key] = _serialise_event_value(value)
    TELEMETRY_LOGGER.info(json.dumps(payload, separators=(",", ":"), ensure_ascii=True))


def _decode(data: bytes | None) -> str:
    """Decode tool output for messages and telemetry only."""
    return data.decode("utf-8", errors="replace") if data else ""


def _run_tool(command: Sequence[str], *, cwd: Path | None = None) -> subprocess.CompletedProcess[bytes]:
    try:
        process = subprocess.run(
            list(command),
            cwd=cwd,
            capture_output=True,
            text=False,
            check=False,
        )
    except FileNotFoundError as error:
        raise PatchError(
            f"{command[0]} executable not found on PATH",
            details={"command": list(command)},
        ) from error
    return process


class SystemDiff:
    """``diff -u`` wrapper.  Exit 0 means identical, 1 means different."""

    def __init__(self, executable: str = "diff") -> None:
        self.executable = executable

    def unified_diff(self, old: Path, new: Path) -> bytes:
        command = (self.executable, "-u", str(old), str(new))
        result = _run_tool(command)
        if result.returncode == 0:
            return b""
        if result.returncode == 1:
            _emit_patch_event(
                "diff_generated",
                old=old,
                new=new,
                lines=len(result.stdout.splitlines()),
            )
            return result.stdout
        message = _decode(result.stderr).strip() or _decode(result.stdout).strip() or "unknown error"
        raise PatchError(
            f"diff failed for {old}: {message}",
            details={"command": list(command), "returncode": result.returncode},
        )


class SystemPatch:
    """``patch`` wrapper applying a unified diff to one explicit file."""

    def __init__(self, executable: str = "patch") -> None:
        self.executable = executable

    def apply(self, target: Path, patch: bytes) -> PatchResult:
        with tempfile.NamedTemporaryFile("wb", suffix=".diff", delete=False) as handle:
            handle.write(patch)
            handle.flush()
            temp_path = Path(handle.name)

        reject_path = target.with_name(f"{target.name}.rej")
        command = (self.executable, "--quiet", "--force", "-i", str(temp_path), str(target))
        try:
            result = _run_tool(command)
        finally:
            temp_path.unlink(missing_ok=True)

        outcome = PatchResult(
            command=command,
            target=target,
            returncode=result.returncode,
            stdout=_decode(result.stdout),
            stderr=_decode(result.stderr),
            reject_path=reject_path if result.returncode != 0 and os.path.exists(reject_path) else None,
        )
        if outcome.ok:
            _emit_patch_event("patch_apply_succeeded", target=target)
        else:
            _emit_patch_event(
                "patch_apply_failed",
                target=target,
                returncode=outcome.returncode,
                message=outcome.message,
                reject_path=outcome.reject_path,
            )
        return outcome


__all__ = [
    "DiffTool",
    "PatchError",
    "PatchResult",
    "PatchTool",
    "SystemDiff",
    "SystemPatch",
]
