"""Utility helpers for relchart."""

from __future__ import annotations

import logging
from typing import Dict, Hashable, Iterable, Iterator, List, MutableSet, Optional, TypeVar

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "relchart"

T = TypeVar("T", bound=Hashable)


def get_logger() -> logging.Logger:
    """Return a module-level logger configured with rich if not already."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)
    return logger


logger = get_logger()


def set_log_level(level: str) -> None:
    """Allow callers (e.g. CLI) to adjust logging verbosity at runtime."""

    level_value = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(level_value)


console = Console()


class OrderedSet(MutableSet[T]):
    """Set that iterates in first-insertion order, backed by a plain dict.

    Iteration walks a snapshot, so members may be discarded while looping.
    """

    def __init__(self, values: Optional[Iterable[T]] = None) -> None:
        self._members: Dict[T, None] = {}
        if values is not None:
            for value in values:
                self.add(value)

    def __contains__(self, value: object) -> bool:
        return value in self._members

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._members))

    def __len__(self) -> int:
        return len(self._members)

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"OrderedSet({list(self._members)!r})"

    def add(self, value: T) -> None:
        if value not in self._members:
            self._members[value] = None

    def discard(self, value: T) -> None:
        self._members.pop(value, None)

    def update(self, values: Iterable[T]) -> None:
        for value in values:
            self.add(value)

    def difference_update(self, values: Iterable[T]) -> None:
        for value in list(values):
            self.discard(value)

    def first(self) -> Optional[T]:
        return next(iter(self._members), None)

    def values(self) -> List[T]:
        """Snapshot of the values in insertion order."""
        return list(self._members)


def append_unique(value: object, items: list) -> int:
    """Append ``value`` to ``items`` unless it is already there (by identity).

    Returns the index where the value was found or added.
    """

    for index, item in enumerate(items):
        if item is value:
            return index
    items.append(value)
    return len(items) - 1


def remove_first(value: object, items: list) -> bool:
    """Remove the first element of ``items`` that is ``value``."""

    for index, item in enumerate(items):
        if item is value:
            del items[index]
            return True
    return False


__all__ = [
    "LOGGER_NAME",
    "OrderedSet",
    "append_unique",
    "console",
    "get_logger",
    "logger",
    "remove_first",
    "set_log_level",
]
