"""Event bus used by engines to emit lifecycle events.

Listeners receive the event payload as-is: engines emit either objects that
expose ``slug()`` (files, dependencies) or plain strings (paths, names).
"""

from __future__ import annotations

import traceback
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from stitch.core.logging import get_logger

_logger = get_logger(__name__)

Listener = Callable[[Any], None]


class EventBus:
    """Simple pub/sub.

    Example:
        bus = EventBus()
        bus.subscribe("write", lambda path: print("wrote", path))
        bus.publish("write", "build/index.js")
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, event: str, callback: Listener) -> None:
        self._subscribers[event].append(callback)

    def publish(self, event: str, payload: Any = None) -> None:
        """Publish an event.

        Args:
            event: Event name
            payload: Event payload (optional)
        """
        for callback in list(self._subscribers.get(event, [])):
            try:
                callback(payload)
            except Exception as e:
                # A broken listener must not abort the build.
                _logger.error(
                    f"Error in event handler for '{event}' (callback={callback}): "
                    f"{type(e).__name__}: {e}\n{traceback.format_exc()}"
                )
