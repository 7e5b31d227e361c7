"""Source-map formatting helpers."""

from __future__ import annotations

import base64
import json
from typing import Any

_CSS_TYPES = frozenset({"css", "less", "scss", "styl"})


def identity_map(
    source: str,
    content: str,
    code: str,
    offset: int = 0,
) -> dict[str, Any]:
    """Version-3 map mapping each generated line to the same source line.

    Args:
        source: Source name recorded in ``sources``
        content: Original source text (embedded as ``sourcesContent``)
        code: Generated code
        offset: Generated lines preceding the first mapped line (wrappers)
    """
    mapped = min(code.count("\n") + 1, content.count("\n") + 1)
    segments = ["AAAA"] + ["AACA"] * (mapped - 1)
    return {
        "version": 3,
        "sources": [source],
        "sourcesContent": [content],
        "names": [],
        "mappings": ";" * offset + ";".join(segments),
    }


def to_comment(source_map: dict[str, Any], type: str | None = None) -> str:
    """Render ``source_map`` as an inline ``sourceMappingURL`` comment."""
    payload = base64.b64encode(
        json.dumps(source_map, separators=(",", ":")).encode("utf-8")
    ).decode("ascii")
    url = f"sourceMappingURL=data:application/json;charset=utf-8;base64,{payload}"
    if type in _CSS_TYPES:
        return f"/*# {url} */"
    return f"//# {url}"


def to_url_comment(filename: str, type: str | None = None) -> str:
    """Comment pointing at a sidecar map file."""
    if type in _CSS_TYPES:
        return f"/*# sourceMappingURL={filename} */"
    return f"//# sourceMappingURL={filename}"
