from __future__ import annotations

import copy
import io
import json
from typing import Any

import pytest

from docport.admonitions import (
    FilterError,
    admonition_type,
    filter_document,
    find_content_cell,
    rewrite_div,
    run_filter,
)

ATTR: list = ["", [], []]


def _para(text: str) -> dict[str, Any]:
    return {"t": "Para", "c": [{"t": "Str", "c": text}]}


def _div(classes: list[str], blocks: list) -> dict[str, Any]:
    return {"t": "Div", "c": [["", classes, []], blocks]}


def _cell(classes: list[str], blocks: list) -> list:
    return [["", classes, []], {"t": "AlignDefault"}, 1, 1, blocks]


def _table(*cells: list) -> dict[str, Any]:
    row = [ATTR, list(cells)]
    return {
        "t": "Table",
        "c": [
            ATTR,
            [None, []],
            [[{"t": "AlignDefault"}, {"t": "ColWidthDefault"}] for _ in cells],
            [ATTR, []],
            [[ATTR, 0, [], [row]]],
            [ATTR, []],
        ],
    }


def _admonition(kind: str, *blocks: dict) -> dict[str, Any]:
    icon = _cell(["icon"], [_div(["title"], [_para(kind.capitalize())])])
    content = _cell(["content"], list(blocks))
    return _div(["admonitionblock", kind], [_table(icon, content)])


def _document(*blocks: dict) -> dict[str, Any]:
    return {"pandoc-api-version": [1, 23, 1], "meta": {}, "blocks": list(blocks)}


def _header(alert: str) -> dict[str, Any]:
    return {"t": "Para", "c": [{"t": "RawInline", "c": ["markdown", f"[!{alert}]"]}]}


@pytest.mark.parametrize(
    ("kind", "alert"),
    [("note", "NOTE"), ("important", "IMPORTANT"), ("tip", "TIP"), ("warning", "WARNING"), ("caution", "CAUTION")],
)
def test_admonition_types_map_to_alerts(kind: str, alert: str) -> None:
    assert admonition_type(_admonition(kind, _para("x"))) == alert


def test_rewrite_div_flattens_paragraph_wrappers() -> None:
    div = _admonition(
        "note",
        _div(["paragraph"], [_para("First.")]),
        _div(["ulist"], [{"t": "BulletList", "c": [[_para("item")]]}]),
        _para("Loose."),
    )

    quote = rewrite_div(div)

    assert quote == {
        "t": "BlockQuote",
        "c": [
            _header("NOTE"),
            _para("First."),
            {"t": "BulletList", "c": [[_para("item")]]},
            _para("Loose."),
        ],
    }


def test_non_admonition_divs_are_unchanged() -> None:
    div = _div(["sidebarblock"], [_para("aside")])

    assert rewrite_div(copy.deepcopy(div)) == div


def test_unknown_admonition_type_is_unchanged() -> None:
    div = _admonition("danger", _para("boom"))

    assert admonition_type(div) is None
    assert rewrite_div(copy.deepcopy(div)) == div


def test_admonition_without_content_cell_is_unchanged() -> None:
    div = _div(["admonitionblock", "warning"], [_para("no table here")])

    assert find_content_cell(div) is None
    assert rewrite_div(copy.deepcopy(div)) == div


def test_filter_document_walks_nested_containers() -> None:
    nested = _admonition("warning", _para("Careful."))
    document = _document(
        _para("Intro."),
        {"t": "BulletList", "c": [[_para("item"), nested]]},
        {"t": "BlockQuote", "c": [_admonition("tip", _para("Quoted tip."))]},
    )

    result = filter_document(document)

    intro, bullet, quote = result["blocks"]
    assert intro == _para("Intro.")
    assert bullet["c"][0][1] == {"t": "BlockQuote", "c": [_header("WARNING"), _para("Careful.")]}
    assert quote["c"][0] == {"t": "BlockQuote", "c": [_header("TIP"), _para("Quoted tip.")]}


def test_nested_admonitions_are_converted_inside_out() -> None:
    inner = _admonition("caution", _para("Inner."))
    outer = _admonition("important", _div(["paragraph"], [_para("Outer.")]), inner)

    result = filter_document(_document(outer))

    [quote] = result["blocks"]
    assert quote["c"][0] == _header("IMPORTANT")
    assert quote["c"][1] == _para("Outer.")
    assert quote["c"][2] == {"t": "BlockQuote", "c": [_header("CAUTION"), _para("Inner.")]}


def test_filter_document_requires_blocks() -> None:
    with pytest.raises(FilterError):
        filter_document({"meta": {}})


def test_run_filter_round_trips_through_json_streams() -> None:
    source = io.StringIO(json.dumps(_document(_admonition("note", _para("Body.")))))
    sink = io.StringIO()

    run_filter(source, sink)

    payload = json.loads(sink.getvalue())
    assert payload["pandoc-api-version"] == [1, 23, 1]
    assert payload["blocks"] == [{"t": "BlockQuote", "c": [_header("NOTE"), _para("Body.")]}]
