"""Snake tips and the relations used when linking snakes at junctions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .snake import Snake


def _show(vec: np.ndarray) -> str:
    return " ".join(f"{v:g}" for v in vec)


@dataclass(eq=False)
class SnakeTip:
    """The head or tail end of a snake, optionally linked to a neighbour tip."""

    snake: Snake
    is_head: bool
    neighbor: Optional["SnakeTip"] = None

    def location(self) -> np.ndarray:
        """Coordinates of this tip."""
        return self.snake.tip(self.is_head)

    def opposite_location(self) -> np.ndarray:
        """Coordinates of the other end of the snake."""
        return self.snake.tip(not self.is_head)

    def direction(self, delta: int) -> np.ndarray:
        """Outward unit tangent at this tip."""
        return self.snake.tip_tangent(self.is_head, delta)

    def describe(self) -> str:
        """Return a multi-line human-readable summary of the tip and its snake."""
        neighbor = hex(id(self.neighbor)) if self.neighbor is not None else "0"
        header = (
            f"******** Snake tip {id(self):#x} ********\n"
            f"snake: {id(self.snake):#x}\n"
            f"is_head: {int(self.is_head)}\n"
            f"neighbor: {neighbor}\n"
            f"location: {_show(self.location())}\n"
        )
        return header + self.snake.describe()


def compute_distance(first: SnakeTip, second: SnakeTip) -> float:
    """Euclidean distance between two tips."""
    return float(np.linalg.norm(first.location() - second.location()))


def compute_angle(first: SnakeTip, second: SnakeTip, delta: int) -> float:
    """Angle in radians between the outward directions of two tips."""
    cosine = float(np.dot(first.direction(delta), second.direction(delta)))
    return math.acos(min(1.0, max(-1.0, cosine)))


def link(first: SnakeTip, second: SnakeTip) -> None:
    """Make two tips each other's neighbour."""
    first.neighbor = second
    second.neighbor = first


def are_linked(first: SnakeTip, second: SnakeTip) -> bool:
    """True if the two tips are each other's neighbour."""
    return first.neighbor is second and second.neighbor is first


def are_tightest_link(first: SnakeTip, second: SnakeTip) -> bool:
    """True if these two tips are the closest pair of ends of their snakes.

    Two tips of the same snake always qualify.
    """
    if first.snake is second.snake:
        return True
    p1, p2 = first.location(), second.location()
    p1_op, p2_op = first.opposite_location(), second.opposite_location()
    dist1 = np.linalg.norm(p1 - p2)
    dist2 = np.linalg.norm(p1_op - p2_op)
    dist3 = np.linalg.norm(p1_op - p2)
    dist4 = np.linalg.norm(p1 - p2_op)
    return bool(dist1 <= dist2 and dist1 <= dist3 and dist1 <= dist4)