"""Pandoc JSON filter turning Asciidoctor admonitions into GFM alerts.

Asciidoctor renders an admonition as a ``div.admonitionblock.<type>`` that
holds a one-row table; the body lives in the cell with class ``content``.
Pandoc reads that HTML as a ``Div`` wrapping a ``Table``.  The filter lifts
the cell's blocks out, prefixes a ``[!TYPE]`` marker and wraps everything in
a ``BlockQuote`` so the markdown writer emits::

    > [!NOTE]
    > Body text.

Nodes follow pandoc's JSON AST (``{"t": ..., "c": ...}``) and the table model
introduced in pandoc 2.10.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterator, List, Optional, TextIO

LOGGER = logging.getLogger(__name__)

ADMONITION_CLASS = "admonitionblock"
CONTENT_CLASS = "content"
ADMONITION_TYPES: tuple[tuple[str, str], ...] = (
    ("note", "NOTE"),
    ("important", "IMPORTANT"),
    ("tip", "TIP"),
    ("warning", "WARNING"),
    ("caution", "CAUTION"),
)

Block = Dict[str, Any]


class FilterError(ValueError):
    """Raised when the input is not a pandoc JSON document."""


def _classes(attr: Any) -> List[str]:
    if isinstance(attr, list) and len(attr) >= 2 and isinstance(attr[1], list):
        return [str(item) for item in attr[1]]
    return []


def _table_cells(table: Block) -> Iterator[list]:
    """Yield every cell of a pandoc >= 2.10 ``Table`` node."""

    content = table.get("c") or []
    if len(content) < 6:
        return
    _attr, _caption, _colspecs, head, bodies, foot = content[:6]
    rows: List[list] = []
    rows.extend(head[1] if isinstance(head, list) and len(head) > 1 else [])
    for body in bodies or []:
        if isinstance(body, list) and len(body) >= 4:
            rows.extend(body[2])
            rows.extend(body[3])
    rows.extend(foot[1] if isinstance(foot, list) and len(foot) > 1 else [])
    for row in rows:
        if isinstance(row, list) and len(row) >= 2:
            for cell in row[1]:
                if isinstance(cell, list) and len(cell) >= 5:
                    yield cell


def _child_block_lists(block: Block) -> Iterator[list]:
    """Yield the nested block lists of container nodes."""

    kind = block.get("t")
    content = block.get("c")
    if kind == "Div":
        yield content[1]
    elif kind == "BlockQuote":
        yield content
    elif kind == "BulletList":
        yield from content
    elif kind == "OrderedList":
        yield from content[1]
    elif kind == "DefinitionList":
        for _term, definitions in content:
            yield from definitions
    elif kind == "Figure":
        yield content[2]
    elif kind == "Table":
        for cell in _table_cells(block):
            yield cell[4]


def find_content_cell(block: Block) -> Optional[list]:
    """Return the blocks of the first cell classed ``content`` inside ``block``."""

    if block.get("t") == "Table":
        for cell in _table_cells(block):
            if CONTENT_CLASS in _classes(cell[0]):
                return cell[4]
    for blocks in _child_block_lists(block):
        for child in blocks:
            if isinstance(child, dict):
                found = find_content_cell(child)
                if found is not None:
                    return found
    return None


def admonition_type(div: Block) -> Optional[str]:
    """Return the alert name for an admonition ``Div`` or ``None``."""

    classes = _classes(div["c"][0])
    if ADMONITION_CLASS not in classes:
        return None
    for css_class, alert in ADMONITION_TYPES:
        if css_class in classes:
            return alert
    return None


def _flatten(blocks: list) -> list:
    extracted: list = []
    for block in blocks:
        if block.get("t") == "Div":
            extracted.extend(block["c"][1])
        else:
            extracted.append(block)
    return extracted


def rewrite_div(div: Block) -> Block:
    """Convert an admonition ``Div`` into a GFM alert ``BlockQuote``."""

    alert = admonition_type(div)
    if alert is None:
        return div
    cell_blocks = find_content_cell(div)
    if cell_blocks is None:
        LOGGER.debug("Admonition %s has no content cell; leaving it unchanged", alert)
        return div
    header: Block = {
        "t": "Para",
        "c": [{"t": "RawInline", "c": ["markdown", f"[!{alert}]"]}],
    }
    return {"t": "BlockQuote", "c": [header, *_flatten(cell_blocks)]}


def _walk_blocks(blocks: list) -> list:
    return [_walk_block(block) if isinstance(block, dict) else block for block in blocks]


def _walk_block(block: Block) -> Block:
    # Children first so nested admonitions are converted before their parent.
    for blocks in _child_block_lists(block):
        blocks[:] = _walk_blocks(blocks)
    if block.get("t") == "Div":
        return rewrite_div(block)
    return block


def filter_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """Rewrite every admonition block in a pandoc JSON document in place."""

    if not isinstance(document, dict) or not isinstance(document.get("blocks"), list):
        raise FilterError("Input is not a pandoc JSON document (missing 'blocks').")
    document["blocks"] = _walk_blocks(document["blocks"])
    return document


def run_filter(source: TextIO, sink: TextIO) -> None:
    """Read a pandoc JSON AST from ``source`` and write the filtered AST to ``sink``."""

    try:
        document = json.load(source)
    except json.JSONDecodeError as error:
        raise FilterError(f"Invalid pandoc JSON: {error}") from error
    json.dump(filter_document(document), sink, ensure_ascii=False, separators=(",", ":"))


__all__ = [
    "ADMONITION_TYPES",
    "FilterError",
    "admonition_type",
    "filter_document",
    "find_content_cell",
    "rewrite_div",
    "run_filter",
]
