"""Banner plugin - prepend a header comment."""

from __future__ import annotations

from typing import Any


class BannerPlugin:
    """Prepend ``/* <text> */`` to every file it is applied to."""

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self.config = config or {}
        self.text = str(self.config.get("text", "")).replace("*/", "* /")

    def __call__(self, file: Any, engine: Any) -> None:
        if not self.text:
            return
        file.code = f"/* {self.text} */\n{file.code}"
