"""Minify plugin - line-level whitespace and comment stripping.

Only whole lines are removed, so code on a line is never rewritten.
"""

from __future__ import annotations

import re
from typing import Any

_LINE_COMMENT = re.compile(r"^\s*//")
_BLOCK_COMMENT_LINE = re.compile(r"^\s*/\*(?:(?!\*/).)*\*/\s*$")


class MinifyPlugin:
    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self.config = config or {}
        self.keep_license = bool(self.config.get("keep_license", True))

    def _keep(self, line: str, file_type: str) -> bool:
        if not line.strip():
            return False
        if self.keep_license and line.lstrip().startswith("/*!"):
            return True
        if file_type != "css" and _LINE_COMMENT.match(line):
            return False
        return not _BLOCK_COMMENT_LINE.match(line)

    def __call__(self, file: Any, engine: Any) -> None:
        lines = [line.rstrip() for line in file.code.splitlines()]
        file.code = "\n".join(line for line in lines if self._keep(line, file.type))
