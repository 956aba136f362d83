"""
Progress callbacks through which the sync engine reports to its presentation layer.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

log = logging.getLogger(__name__)

# Sent in place of a fraction when the total size of a transfer is unknown.
INDETERMINATE: Optional[float] = None


def _ignore_text(message: str) -> None:
    pass


def _ignore_fraction(fraction: Optional[float]) -> None:
    pass


@dataclass
class ProgressCallbacks:
    """
    Fire-and-forget progress sinks.

    Both callbacks are invoked synchronously from the worker. ``on_fraction``
    receives a value in ``[0, 1]`` or ``INDETERMINATE``.
    """

    on_text: Callable[[str], None] = _ignore_text
    on_fraction: Callable[[Optional[float]], None] = _ignore_fraction
    last_text: str = field(default="", init=False)

    def text(self, message: str) -> None:
        self.last_text = message
        log.debug(f"Progress: {message}")
        self.on_text(message)

    def fraction(self, value: Optional[float]) -> None:
        if value is not None:
            value = min(max(value, 0.0), 1.0)
        self.on_fraction(value)
