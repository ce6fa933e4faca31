"""Sets of snake tips that meet at a junction, and how they are linked."""

from __future__ import annotations

import math
from itertools import combinations
from typing import Optional, Sequence

import numpy as np

from .metrics import closest_snake
from .snake import Snake
from .tips import SnakeTip, are_tightest_link, compute_angle, compute_distance, link

# Reduced costs closer to zero than this count as zero during assignment,
# so that mathematically equal costs are treated as ties.
_ZERO_TOLERANCE = 1e-10


def _is_zero(value: float) -> bool:
    return abs(value) <= _ZERO_TOLERANCE


def _find_uncovered_zero(
    matrix: np.ndarray, row_covered: np.ndarray, col_covered: np.ndarray
) -> Optional[tuple[int, int]]:
    rows, cols = matrix.shape
    for i in range(rows):
        if row_covered[i]:
            continue
        for j in range(cols):
            if not col_covered[j] and _is_zero(matrix[i, j]):
                return i, j
    return None


def _solve_assignment(cost: np.ndarray) -> np.ndarray:
    """Return a boolean matrix marking a minimum-cost assignment.

    Uses the Munkres algorithm with row-major scanning, so that among equally
    good assignments the choice is deterministic.
    """
    matrix = np.array(cost, dtype=float)
    rows, cols = matrix.shape

    for i in range(rows):
        low = matrix[i].min()
        if low > _ZERO_TOLERANCE:
            matrix[i] -= low
    for j in range(cols):
        low = matrix[:, j].min()
        if low > _ZERO_TOLERANCE:
            matrix[:, j] -= low

    star = np.zeros((rows, cols), dtype=bool)
    prime = np.zeros((rows, cols), dtype=bool)
    for i in range(rows):
        for j in range(cols):
            if _is_zero(matrix[i, j]) and not star[:, j].any() and not star[i].any():
                star[i, j] = True

    target = min(rows, cols)
    while True:
        col_covered = star.any(axis=0)
        row_covered = np.zeros(rows, dtype=bool)
        if int(col_covered.sum()) >= target:
            return star

        while True:
            found = _find_uncovered_zero(matrix, row_covered, col_covered)
            if found is None:
                uncovered = matrix[np.ix_(~row_covered, ~col_covered)]
                candidates = uncovered[uncovered > _ZERO_TOLERANCE]
                step = float(candidates.min())
                matrix[row_covered] += step
                matrix[:, ~col_covered] -= step
                continue

            r, c = found
            prime[r, c] = True
            starred = np.flatnonzero(star[r])
            if starred.size:
                row_covered[r] = True
                col_covered[starred[0]] = False
                continue

            path = [(r, c)]
            col = c
            while True:
                star_rows = [i for i in np.flatnonzero(star[:, col])
                             if (int(i), col) not in path]
                if not star_rows:
                    break
                row = int(star_rows[0])
                path.append((row, col))
                prime_cols = [j for j in np.flatnonzero(prime[row])
                              if (row, int(j)) not in path]
                if not prime_cols:
                    break
                col = int(prime_cols[0])
                path.append((row, col))
            for i, j in path:
                star[i, j] = bool(prime[i, j])
            prime[:] = False
            break


class SnakeTipSet:
    """Tips of snakes gathered around one candidate junction."""

    def __init__(self, tip: Optional[SnakeTip] = None) -> None:
        self.tips: list[SnakeTip] = []
        self.centroid: Optional[np.ndarray] = None
        if tip is not None:
            self.add(tip)

    def __len__(self) -> int:
        return len(self.tips)

    def add(self, tip: SnakeTip) -> None:
        """Append ``tip`` to the set."""
        self.tips.append(tip)

    def has(self, tip: SnakeTip) -> bool:
        """True if this very tip belongs to the set."""
        return any(t is tip for t in self.tips)

    def distance_to(self, tip: SnakeTip) -> float:
        """Smallest distance from ``tip`` to a tip of the set."""
        if not self.tips:
            raise ValueError("tip set is empty")
        return min(compute_distance(t, tip) for t in self.tips)

    def combine(self, other: "SnakeTipSet") -> None:
        """Append all tips of ``other`` to this set."""
        for tip in list(other.tips):
            self.add(tip)

    def update_centroid(self) -> None:
        """Recompute the mean location of the tips; no-op for an empty set."""
        if not self.tips:
            return
        locations = np.array([t.location() for t in self.tips], dtype=float)
        self.centroid = locations.mean(axis=0)

    def configure_greedy(
        self, delta: int, direction_threshold: float, distance_threshold: float
    ) -> None:
        """Repeatedly link the smoothest pair of tips and drop it from the set.

        Stops when the smoothest remaining pair meets at an angle smaller than
        ``direction_threshold``.
        """
        while len(self.tips) >= 2:
            angle, pair = self._find_smoothest_pair(delta, distance_threshold)
            if pair is None or angle < direction_threshold:
                return
            first, second = pair
            link(first, second)
            self._remove_tip(first)
            self._remove_tip(second)

    def configure(
        self,
        previous_snakes: Sequence[Snake],
        delta: int,
        direction_threshold: float,
        distance_threshold: float,
    ) -> bool:
        """Link tips by an optimal assignment of smooth continuations.

        With ``previous_snakes`` the assignment also favours tips whose snakes
        resemble the same earlier snake; if that leads to an inconsistent
        assignment, the links are undone and the angle-only assignment is used.
        Returns False if the chosen assignment cannot be linked consistently.
        """
        if len(self.tips) < 2:
            return True
        angle_costs = self._angle_difference(
            delta, direction_threshold, distance_threshold)
        angle_assignment = _solve_assignment(angle_costs)
        if not previous_snakes:
            return self._link_tips(angle_assignment)

        combined = angle_costs + self._label_difference(previous_snakes)
        if self._link_tips(_solve_assignment(combined)):
            return True
        self._unlink_tips()
        return self._link_tips(angle_assignment)

    def is_junction(self, grouped: Sequence[Snake], threshold: float) -> bool:
        """True if more than one of ``grouped`` passes near the centroid."""
        if self.centroid is None:
            raise ValueError("centroid has not been computed")
        count = sum(1 for s in grouped if s.pass_through(self.centroid, threshold))
        return count > 1

    def describe(self) -> str:
        """Return a multi-line human-readable summary of the set."""
        centroid = "" if self.centroid is None else " ".join(
            f"{v:g}" for v in self.centroid)
        parts = [
            f"************* SnakeTipSet {id(self):#x} *************\n",
            f"centroid: {centroid}\n",
            "Snake tips: \n",
        ]
        parts.extend(tip.describe() + "\n" for tip in self.tips)
        return "".join(parts)

    # ---------------------------------------------------------------- private

    def _eligible(self, first: SnakeTip, second: SnakeTip, threshold: float) -> bool:
        return first.snake is not second.snake or first.snake.length() > threshold

    def _find_smoothest_pair(
        self, delta: int, threshold: float
    ) -> tuple[float, Optional[tuple[SnakeTip, SnakeTip]]]:
        max_angle = 0.0
        best: Optional[tuple[SnakeTip, SnakeTip]] = None
        for first, second in combinations(self.tips, 2):
            if not self._eligible(first, second, threshold):
                continue
            angle = compute_angle(first, second, delta)
            if angle > max_angle and are_tightest_link(first, second):
                max_angle = angle
                best = (first, second)
        return max_angle, best

    def _remove_tip(self, tip: SnakeTip) -> None:
        for index, t in enumerate(self.tips):
            if t is tip:
                del self.tips[index]
                return

    def _angle_difference(
        self, delta: int, direction_threshold: float, distance_threshold: float
    ) -> np.ndarray:
        n = len(self.tips)
        costs = np.full((n, n), -1.0)
        for i in range(n):
            costs[i, i] = 1.0 - direction_threshold / math.pi
            for j in range(i + 1, n):
                first, second = self.tips[i], self.tips[j]
                if (self._eligible(first, second, distance_threshold)
                        and are_tightest_link(first, second)):
                    angle = compute_angle(first, second, delta)
                    costs[i, j] = costs[j, i] = 1.0 - angle / math.pi
                else:
                    costs[i, j] = costs[j, i] = 1.0
        return costs

    def _label_difference(self, previous_snakes: Sequence[Snake]) -> np.ndarray:
        n = len(self.tips)
        closest = [closest_snake(t.snake, previous_snakes) for t in self.tips]
        labels = np.full((n, n), -1.0)
        for i in range(n):
            for j in range(i + 1, n):
                if self.tips[i].snake is self.tips[j].snake:
                    continue
                snake_i, diff_i = closest[i]
                snake_j, diff_j = closest[j]
                if snake_i is not None and snake_i is snake_j:
                    labels[i, j] = labels[j, i] = abs(diff_i - diff_j)
        largest = labels.max()
        if largest > 1.0:
            labels /= largest
        labels[labels < 0] = 1.0
        return labels

    def _link_tips(self, assignment: np.ndarray) -> bool:
        n = assignment.shape[0]
        for i in range(n):
            for j in range(i + 1, assignment.shape[1]):
                if assignment[i, j]:
                    if assignment[j, i]:
                        link(self.tips[i], self.tips[j])
                    else:
                        return False
        return True

    def _unlink_tips(self) -> None:
        for tip in self.tips:
            tip.neighbor = None