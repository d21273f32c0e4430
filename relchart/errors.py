"""Exceptions raised by relchart when an internal invariant breaks."""

from __future__ import annotations

from typing import Optional


class StructureError(RuntimeError):
    """The graph or chart builder produced an impossible structure.

    Bad input never raises this; it means a builder step is wrong.
    """


class LayoutConstraintError(RuntimeError):
    """A computed position violates a spacing or ordering constraint."""

    def __init__(self, message: str, first: object = None, second: Optional[object] = None) -> None:
        super().__init__(message)
        self.first = first
        self.second = second


__all__ = ["StructureError", "LayoutConstraintError"]
