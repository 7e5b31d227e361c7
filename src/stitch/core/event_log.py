"""Render engine lifecycle events through the build log."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Any, Union

from stitch.core.interfaces import IEngine, INamed
from stitch.core.logging import BuildLog

STDIN_LABEL = "from stdin"

# engine event -> build log level
EVENT_LEVELS = {
    "plugin": "using",
    "install": "installed",
    "running": "building",
    "run": "built",
    "write": "wrote",
    "error": "error",
}

VERBOSE_EVENT_LEVELS = {
    "resolving": "finding",
    "resolve": "found",
    "installing": "installing",
}


@dataclass(frozen=True)
class NamedEntity:
    slug: str


@dataclass(frozen=True)
class LabelString:
    text: str


EventLabel = Union[NamedEntity, LabelString]


def _relative(path: PurePath, cwd: Path) -> str:
    try:
        return os.path.relpath(path, cwd)
    except ValueError:
        return str(path)


def to_label(payload: Any, cwd: Path | None = None) -> EventLabel:
    if isinstance(payload, INamed):
        return NamedEntity(payload.slug())
    if isinstance(payload, PurePath):
        return LabelString(_relative(payload, cwd or Path.cwd()))
    if isinstance(payload, str):
        return LabelString(payload)
    return LabelString(str(payload))


def display_label(payload: Any, declared_type: str | None = None, cwd: Path | None = None) -> str:
    """Text shown for an event payload.

    The synthetic stdin entry is called ``source.<type>``; it is shown as
    "from stdin" instead. Paths are shown relative to ``cwd``.
    """
    label = to_label(payload, cwd)
    text = label.slug if isinstance(label, NamedEntity) else label.text
    if text == f"source.{declared_type or 'js'}":
        return STDIN_LABEL
    return text


class EventLogAdapter:
    """Subscribe to an engine's events and log them at their level."""

    def __init__(
        self,
        log: BuildLog,
        declared_type: str | None = None,
        verbose: bool = False,
        cwd: Path | None = None,
    ):
        self.log = log
        self.declared_type = declared_type
        self.verbose = verbose
        self.cwd = cwd

    def log_event(self, level: str, payload: Any) -> None:
        self.log.log(level, display_label(payload, self.declared_type, self.cwd))

    def listener(self, level: str):
        def _on_event(payload: Any) -> None:
            self.log_event(level, payload)

        return _on_event

    def attach(self, engine: IEngine) -> IEngine:
        levels = dict(EVENT_LEVELS)
        if self.verbose:
            levels.update(VERBOSE_EVENT_LEVELS)
        for event, level in levels.items():
            engine.on(event, self.listener(level))
        return engine
