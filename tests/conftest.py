from __future__ import annotations

import shutil
import subprocess
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from docport.config import BackportSettings  # noqa: E402

PLAYBOOK = textwrap.dedent(
    """
    site:
      title: Product Docs
    content:
      sources:
      - url: .
        branches: HEAD
        # start_paths: [versions/v1.0]
        start_paths: [versions/latest, versions/v2.12, versions/v2.11]
    ui:
      bundle:
        url: https://example.com/ui-bundle.zip
    """
).lstrip()

@dataclass(slots=True)
class DocsTree:
    """Fixture payload describing a versioned documentation checkout."""

    root: Path

    @property
    def settings(self) -> BackportSettings:
        return BackportSettings.from_root(self.root)

    def write(self, relative: str, content: str | bytes) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    def run_git(self, *cmd: str) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            ["git", *cmd],
            cwd=self.root,
            check=True,
            capture_output=True,
            text=True,
        )

    def stage(self, *relative: str) -> None:
        self.run_git("add", "--", *relative)

    def staged(self) -> list[str]:
        return self.run_git("diff", "--name-only", "--cached").stdout.split()


def _build_tree(root: Path) -> DocsTree:
    root.mkdir()
    tree = DocsTree(root=root)
    tree.write("playbook-remote.yml", PLAYBOOK)
    tree.write("versions/latest/modules/ROOT/pages/index.adoc", "= Index\n\nLatest.\n")
    tree.write("versions/v2.12/modules/ROOT/pages/index.adoc", "= Index\n\nLatest.\n")
    tree.write("versions/v2.11/modules/ROOT/pages/index.adoc", "= Index\n\nOlder.\n")
    return tree


@pytest.fixture()
def docs_tree(tmp_path: Path) -> DocsTree:
    """Versioned docs layout with a bare ``.git`` marker (no git required)."""

    tree = _build_tree(tmp_path / "docs")
    (tree.root / ".git").mkdir()
    return tree


@pytest.fixture()
def docs_repo(tmp_path: Path) -> DocsTree:
    """Versioned docs layout inside a real git repository with one commit."""

    if shutil.which("git") is None:
        pytest.skip("git executable is required")
    tree = _build_tree(tmp_path / "docs-repo")
    tree.run_git("init")
    tree.run_git("config", "user.email", "docs@example.com")
    tree.run_git("config", "user.name", "Docs Maintainer")
    tree.run_git("add", ".")
    tree.run_git("commit", "-m", "Initial docs layout")
    return tree
