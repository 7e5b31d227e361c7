"""Type detection for entries.

Files get their type from the extension. Piped input has no name, so its
type is sniffed from the content; unknown content yields None.
"""

from __future__ import annotations

import json
import re
from pathlib import Path

_MARKUP = re.compile(r"^\s*<(!doctype|html|[a-z][\w-]*)[\s>/]", re.IGNORECASE)
_CSS_AT_RULE = re.compile(r"@(import|media|charset|font-face|keyframes)\b")
# Selector followed by one brace-delimited block; no nested quantifiers.
_CSS_BLOCK = re.compile(r"[#.:\w\[\]*>+~,\s-]+\{([^{}]*)\}")
_CSS_DECLARATION = re.compile(r"\s*[\w-]+\s*:")
_JS_SHAPES = (
    re.compile(r"\b(var|let|const)\s+[\w$]+\s*="),
    re.compile(r"\bfunction\b\s*[\w$]*\s*\("),
    re.compile(r"\brequire\s*\(\s*['\"]"),
    re.compile(r"^\s*(import|export)\b", re.MULTILINE),
    re.compile(r"\bmodule\.exports\b"),
    re.compile(r"=>"),
    re.compile(r"^\s*[\w$.]+\s*\(.*\)\s*;?\s*$", re.MULTILINE),
)


def type_from_path(path: str | Path) -> str | None:
    """Type of a file from its extension.

    Examples:
        >>> type_from_path("lib/index.JS")
        'js'
        >>> type_from_path("Makefile") is None
        True
    """
    suffix = Path(path).suffix
    if not suffix:
        return None
    return suffix[1:].lower()


def _looks_like_css(text: str) -> bool:
    if _CSS_AT_RULE.match(text):
        return True
    block = _CSS_BLOCK.match(text)
    if block is None or "=" in text.split("{", 1)[0]:
        return False
    declarations = [d for d in block.group(1).split(";") if d.strip()]
    return all(_CSS_DECLARATION.match(d) for d in declarations)

def detect_type(source: str) -> str | None:
    """Sniff the type of ``source``.

    Checks run from most to least specific: JSON, markup, CSS, JavaScript.
    """
    text = source.strip()
    if not text:
        return None

    if text[0] in "{[":
        try:
            json.loads(text)
            return "json"
        except ValueError:
            pass

    if _MARKUP.match(text):
        return "html"

    if _looks_like_css(text):
        return "css"

    if any(pattern.search(text) for pattern in _JS_SHAPES):
        return "js"

    return None
