"""Distances between snakes and snake length comparisons."""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

from .snake import Snake
from .util import mean


def compute_curve_distance(first: Snake, second: Snake) -> float:
    """Mean of the nearest-vertex distances taken in both directions.

    Every vertex of ``first`` contributes its distance to the closest vertex
    of ``second`` and vice versa. A vertex with no counterpart contributes
    infinity.
    """
    n1, n2 = first.size(), second.size()
    if n1 and n2:
        diffs = first.vertices[:, None, :] - second.vertices[None, :, :]
        pairwise = np.linalg.norm(diffs, axis=2)
        distances = pairwise.min(axis=1).tolist() + pairwise.min(axis=0).tolist()
    else:
        distances = [math.inf] * (n1 + n2)
    return mean(distances)


def compute_one_way_curve_distance(snake: Snake, target: Snake) -> float:
    """Mean tangent-weighted distance from the vertices of ``snake`` to ``target``."""
    distances = [
        target.euclidean_and_angle_distance_to(vertex, snake.vertex_tangent(i, 2))
        for i, vertex in enumerate(snake.vertices)
    ]
    return mean(distances)


def closest_snake(
    snake: Snake, snakes: Sequence[Snake]
) -> tuple[Optional[Snake], float]:
    """Return the snake of ``snakes`` closest to ``snake`` and its distance.

    The distance is the one-way curve distance from ``snake``. With no
    candidates the result is ``(None, inf)``.
    """
    best: Optional[Snake] = None
    min_dist = math.inf
    for candidate in snakes:
        d = compute_one_way_curve_distance(snake, candidate)
        if d < min_dist:
            min_dist = d
            best = candidate
    return best, min_dist


def is_shorter(first: Snake, second: Snake) -> bool:
    """True if ``first`` is strictly shorter than ``second``."""
    return first.length() < second.length()


def is_longer(first: Snake, second: Snake) -> bool:
    """True if ``first`` is strictly longer than ``second``."""
    return first.length() > second.length()