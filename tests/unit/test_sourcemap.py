"""Tests for source-map formatting."""

from __future__ import annotations

import base64
import json

from stitch.core.sourcemap import identity_map, to_comment, to_url_comment


def _decode(comment: str) -> dict:
    payload = comment.split("base64,", 1)[1].removesuffix(" */")
    return json.loads(base64.b64decode(payload))


def test_identity_map_lines():
    source_map = identity_map("index.js", "a;\nb;\nc;", "a;\nb;\nc;")
    assert source_map["version"] == 3
    assert source_map["sources"] == ["index.js"]
    assert source_map["sourcesContent"] == ["a;\nb;\nc;"]
    assert source_map["mappings"] == "AAAA;AACA;AACA"


def test_identity_map_offset_for_wrappers():
    source_map = identity_map("index.js", "a;", "a;", offset=2)
    assert source_map["mappings"] == ";;AAAA"


def test_js_comment():
    source_map = identity_map("index.js", "a;", "a;")
    comment = to_comment(source_map, "js")
    assert comment.startswith("//# sourceMappingURL=data:application/json;charset=utf-8;base64,")
    assert _decode(comment) == source_map


def test_css_comment():
    comment = to_comment(identity_map("a.css", "a{}", "a{}"), "css")
    assert comment.startswith("/*# sourceMappingURL=")
    assert comment.endswith(" */")


def test_url_comment():
    assert to_url_comment("index.js.map", "js") == "//# sourceMappingURL=index.js.map"
    assert to_url_comment("a.css.map", "css") == "/*# sourceMappingURL=a.css.map */"
