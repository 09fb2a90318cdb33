"""CLI entry points for backporting module changes and filtering admonitions."""

from __future__ import annotations

import sys
from pathlib import Path, PurePosixPath
from typing import List, Optional, Sequence

import typer

from .admonitions import FilterError, run_filter
from .config import BackportSettings, VersionSet
from .errors import ConfigurationError, ValidationError
from .runner import FAILURE_OUTCOMES, BackportReport, BackportRunner, Outcome, PairOutcome, Reporter
from .tools.vcs import GitError

APP_HELP = (
    "Copy or patch staged files from versions/latest/modules/ into other version "
    "directories. Pass version names (e.g. v2.11 v2.12) to limit the targets; "
    "with no arguments every version declared in the playbook is used."
)
FILTER_HELP = "Pandoc JSON filter rewriting Asciidoctor admonitions as GitHub alerts."
RULE = "-----------------------------------------------------"


def print_message(message: str) -> None:
    """Echo a headline message with the standard prefix."""
    typer.echo(f"=> {message}")


class EchoReporter(Reporter):
    """Reporter that prints human-readable progress through ``typer.echo``."""

    def targets_selected(self, targets: VersionSet, *, explicit: bool) -> None:
        if explicit:
            print_message("Using specified target versions from command line.")
        else:
            print_message("No versions specified, using dynamically detected default versions.")
        print_message("Starting sync of staged files...")
        print_message(f"Target versions: {' '.join(targets) or '(none)'}")
        typer.echo(RULE)

    def nothing_staged(self, source_root: str) -> None:
        print_message(f"No staged files found in '{source_root}'. Nothing to do.")

    def no_targets(self, staged: Sequence[PurePosixPath]) -> None:
        print_message(
            f"Warning: {len(staged)} staged file(s) found but no target versions are declared. "
            "Nothing was copied or patched."
        )

    def file_started(self, staged: PurePosixPath) -> None:
        typer.echo()
        print_message(f"Processing: {staged.as_posix()}")

    def file_missing(self, staged: PurePosixPath) -> None:
        typer.echo()
        print_message(f"Skipping: {staged.as_posix()} (not present on disk)")

    def pair_finished(self, result: PairOutcome) -> None:
        destination = result.destination.as_posix() if result.destination else "(unmapped)"
        for directory in result.created_dirs:
            typer.echo(f"  - Created directory: {directory.as_posix()}")
        typer.echo(f"  - [{result.version}] {result.outcome.value}: {destination}")
        if result.outcome is Outcome.COPIED:
            typer.echo("  - Target was new; copied file.")
        elif result.outcome is Outcome.PATCHED_CLEAN:
            typer.echo("  - SUCCESS: Patch applied.")
        elif result.outcome is Outcome.PATCHED_NO_CHANGES:
            typer.echo("  - INFO: No differences found. File is already in sync.")
        elif result.outcome is Outcome.PATCH_FAILED:
            typer.echo("  - FAILED: Patch could not be applied. Manual merge required.")
            if result.reject_path:
                typer.echo(
                    f"  - Review {result.reject_path.as_posix()} and the changes in {destination} manually."
                )
            else:
                typer.echo(f"  - Check for a .rej file and review the changes in {destination} manually.")
            if result.detail:
                typer.echo(f"    {result.detail}")
        else:
            typer.echo(f"  - {result.outcome.value}: {result.detail or 'no details'}")


def _render_summary(report: BackportReport) -> None:
    typer.echo(RULE)
    print_message("Sync complete!")
    counts = report.counts()
    summary = ", ".join(f"{outcome.value} {count}" for outcome, count in counts.items() if count)
    print_message(f"Outcomes: {summary or 'none'}")
    if report.failed:
        failed = sum(counts[outcome] for outcome in FAILURE_OUTCOMES)
        print_message(f"{failed} file(s) need manual attention; see the FAILED/ERROR lines above.")
    print_message(
        "Note: The files are copied/patched but not staged for commit. "
        "Please review and 'git add' them manually."
    )


app = typer.Typer(help=APP_HELP, add_completion=False)


@app.command()
def backport(
    versions: Optional[List[str]] = typer.Argument(
        None,
        help="Version directories to sync (defaults to every version in the playbook).",
        show_default=False,
    ),
) -> None:
    """Backport staged module changes into older version directories."""
    requested = list(versions or [])
    settings = BackportSettings.from_root(Path.cwd())
    runner = BackportRunner(settings, reporter=EchoReporter())

    if requested:
        print_message("Validating specified target versions...")
    try:
        report = runner.run(requested)
    except (ConfigurationError, ValidationError, GitError) as error:
        print_message(f"Error: {error}")
        raise typer.Exit(code=1) from error

    if report.nothing_to_do or not report.targets:
        return
    _render_summary(report)


filter_app = typer.Typer(help=FILTER_HELP, add_completion=False)


@filter_app.command()
def admonitions(
    output_format: Optional[str] = typer.Argument(
        None,
        help="Target format passed by pandoc when used with --filter.",
        show_default=False,
    ),
) -> None:
    """Read a pandoc JSON AST on stdin and write the rewritten AST to stdout."""
    try:
        run_filter(sys.stdin, sys.stdout)
    except FilterError as error:
        typer.echo(f"admonition filter: {error}", err=True)
        raise typer.Exit(code=1) from error


if __name__ == "__main__":
    app()
