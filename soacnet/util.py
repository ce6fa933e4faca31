"""Small numeric helpers shared across the package."""

from __future__ import annotations

from collections.abc import Iterable


def mean(values: Iterable[float]) -> float:
    """Return the arithmetic mean of ``values``.

    Raises ValueError when ``values`` is empty.
    """
    items = list(values)
    if not items:
        raise ValueError("mean of an empty sequence")
    return sum(items, 0.0) / len(items)


def maximum(values: Iterable[float]) -> float:
    """Return the largest of ``values``.

    Raises ValueError when ``values`` is empty.
    """
    items = list(values)
    if not items:
        raise ValueError("maximum of an empty sequence")
    return max(items)


def all_false(values: Iterable[bool]) -> bool:
    """Return True when no element of ``values`` is true."""
    return not any(values)