"""Stretching open active contours and closed parametric active contours."""

from __future__ import annotations

import math
from bisect import bisect_left
from collections import deque
from itertools import product
from typing import TYPE_CHECKING, Optional, Sequence, Union

import numpy as np

from .forces import Sampler, local_stretch, solve_system, stiffness_matrix

if TYPE_CHECKING:
    from .parameters import SnakeParameters

MINIMUM_EVOLVING_SIZE = 3
_MIN_LOOP_SIZE = 20

Tag = tuple[int, int]
ArrayLike = Union[Sequence[float], np.ndarray]


def _normalized(vector: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(vector))
    if norm > 0.0:
        return vector / norm
    return np.zeros(np.shape(vector), dtype=float)


class NeighborGrid:
    """Spatial bins of tagged points, for fast neighbourhood queries.

    Tags are ``(snake_index, vertex_index)`` pairs. Points outside the grid
    are placed in the nearest border bin.
    """

    def __init__(self, cell_size: float, shape: Sequence[int]) -> None:
        dims = [int(n) for n in shape]
        if cell_size <= 0:
            raise ValueError("cell size must be positive")
        if not dims or len(dims) > 3 or any(n < 1 for n in dims):
            raise ValueError(f"invalid grid shape {tuple(shape)!r}")
        dims += [1] * (3 - len(dims))
        self.cell_size = float(cell_size)
        self.shape: tuple[int, int, int] = (dims[0], dims[1], dims[2])
        self._bins: dict[tuple[int, ...], list[Tag]] = {}

    @classmethod
    def from_snakes(
        cls, snakes: Sequence["Snake"], cell_size: float, shape: Sequence[int]
    ) -> "NeighborGrid":
        """Build a grid holding every vertex of ``snakes``."""
        grid = cls(cell_size, shape)
        for index, snake in enumerate(snakes):
            grid.add_snake(index, snake)
        return grid

    def bin_of(self, point: ArrayLike) -> tuple[int, ...]:
        """Return the bin that ``point`` falls into."""
        coords = list(np.asarray(point, dtype=float).ravel()[:3])
        coords += [0.0] * (3 - len(coords))
        return tuple(
            min(max(int(c / self.cell_size), 0), n - 1)
            for c, n in zip(coords, self.shape)
        )

    def add(self, tag: Tag, point: ArrayLike) -> None:
        """Insert ``tag`` at ``point``."""
        self._bins.setdefault(self.bin_of(point), []).append(tag)

    def add_snake(self, snake_index: int, snake: "Snake") -> None:
        """Insert every vertex of ``snake`` under ``snake_index``."""
        for vertex_index, vertex in enumerate(snake.vertices):
            self.add((snake_index, vertex_index), vertex)

    def neighboring_tags(self, point: ArrayLike, level: int = 1) -> list[Tag]:
        """Return the tags in bins within ``level`` bins of ``point``'s bin."""
        center = self.bin_of(point)
        ranges = [
            range(max(c - level, 0), min(c + level, n - 1) + 1)
            for c, n in zip(center, self.shape)
        ]
        tags: list[Tag] = []
        for key in product(*ranges):
            tags.extend(self._bins.get(key, ()))
        return tags

    def largest_dimension(self) -> int:
        """Return the largest number of bins along any axis."""
        return max(self.shape)


def compute_size(length: float, spacing: float) -> int:
    """Number of vertices for a curve of ``length`` with about ``spacing`` apart."""
    ncells = length / spacing
    residue = length - math.floor(ncells) * spacing
    if residue > spacing / 2:
        return int(math.ceil(ncells)) + 1
    return int(math.floor(ncells)) + 1


class Snake:
    """An active contour: a polyline evolving under internal and image forces."""

    def __init__(
        self,
        vertices: Optional[ArrayLike] = None,
        dimension: int = 3,
        image_interp: Optional[Sampler] = None,
        gradient_interp: Optional[Sampler] = None,
        parameters: Optional["SnakeParameters"] = None,
        is_open: bool = True,
        snake_id: int = 0,
    ) -> None:
        if vertices is None:
            array = np.empty((0, dimension), dtype=float)
        else:
            array = np.array(vertices, dtype=float)
            if array.ndim == 1:
                rows = array.size // dimension
                array = array[: rows * dimension].reshape(rows, dimension)
            elif array.ndim != 2 or array.shape[1] != dimension:
                raise ValueError(
                    f"vertices of shape {array.shape} do not match dimension {dimension}"
                )
        self.vertices: np.ndarray = array
        self.dimension = dimension
        self.image_interp = image_interp
        self.gradient_interp = gradient_interp
        self.parameters = parameters
        self.is_open = is_open
        self.id = snake_id

        self.spacing = 0.0
        self.iterations = 0
        self.fixed_head: Optional[np.ndarray] = None
        self.fixed_tail: Optional[np.ndarray] = None
        self.head_hooked_snake: Optional[Snake] = None
        self.tail_hooked_snake: Optional[Snake] = None
        self.head_hooked_index = 0
        self.tail_hooked_index = 0
        self.subsnakes: list[Snake] = []
        self.junction_indices: list[int] = []
        self.last_vertices = np.empty((0, dimension), dtype=float)
        self.original_vertices = np.empty((0, dimension), dtype=float)
        self.centroid: Optional[np.ndarray] = None
        self.previous_snake: Optional[Snake] = None

    @classmethod
    def from_blocks(
        cls,
        blocks: Sequence[ArrayLike],
        dimension: int = 3,
        image_interp: Optional[Sampler] = None,
        gradient_interp: Optional[Sampler] = None,
        parameters: Optional["SnakeParameters"] = None,
        is_open: bool = True,
        snake_id: int = 0,
    ) -> "Snake":
        """Build a snake whose vertices are the row blocks stacked in order."""
        arrays = [np.asarray(b, dtype=float).reshape(-1, dimension) for b in blocks]
        stacked = np.vstack(arrays) if arrays else np.empty((0, dimension))
        return cls(stacked, dimension, image_interp, gradient_interp,
                   parameters, is_open, snake_id)

    # ------------------------------------------------------------------ basics

    @property
    def _params(self) -> "SnakeParameters":
        if self.parameters is None:
            raise ValueError("snake has no parameters")
        return self.parameters

    def size(self) -> int:
        """Number of vertices."""
        return int(self.vertices.shape[0])

    def length(self) -> float:
        """Total length of the polyline."""
        if self.size() < 2:
            return 0.0
        return float(np.linalg.norm(np.diff(self.vertices, axis=0), axis=1).sum())

    def compute_centroid(self) -> np.ndarray:
        """Update and return the mean of all vertices."""
        self.centroid = self.vertices.mean(axis=0)
        return self.centroid

    def vertex(self, index: int) -> np.ndarray:
        """Return vertex ``index``."""
        return self.vertices[index]

    def tip(self, is_head: bool) -> np.ndarray:
        """Return the first vertex if ``is_head``, else the last."""
        return self.vertices[0] if is_head else self.vertices[-1]

    def head_is_fixed(self) -> bool:
        return self.fixed_head is not None

    def tail_is_fixed(self) -> bool:
        return self.fixed_tail is not None

    # --------------------------------------------------------------- evolution

    def evolve(self, snakes: Sequence["Snake"], grid: NeighborGrid) -> bool:
        """Evolve against converged ``snakes``; False if the snake is dropped."""
        params = self._params
        while self.iterations < params.maximum_iterations:
            if not self.resample():
                return False
            if self.iterations % params.check_period == 0 and self._is_converged():
                break
            if self._self_intersect():
                return False
            if not self._check_head_overlap(snakes, grid):
                return False
            if not self._check_tail_overlap(snakes, grid):
                return False
            self.iterate_once()
        return self._check_body_overlap(snakes, grid)

    def evolve_with_tip_fixed(self, max_iter: int) -> bool:
        """Evolve with both tips held in place for up to ``max_iter`` steps."""
        if self.iterations != 0:
            raise ValueError("snake has already been evolved")
        params = self._params
        self.fixed_head = self.vertices[0].copy()
        self.fixed_tail = self.vertices[-1].copy()
        while self.iterations < max_iter:
            if self.iterations % params.check_period == 0 and self._is_converged():
                break
            self.iterate_once()
            if not self.resample():
                return False
        return True

    def evolve_final(
        self, snakes: Sequence["Snake"], length: float, grid: NeighborGrid
    ) -> bool:
        """Final evolution with free tips; False if the snake becomes too short."""
        params = self._params
        self.fixed_head = None
        self.fixed_tail = None
        if self.iterations == 0:
            self.iterations = params.check_period
        while self.iterations < params.maximum_iterations:
            if self.iterations % params.check_period == 0 and self._is_converged():
                return True
            if not self._check_head_overlap(snakes, grid):
                return False
            if not self._check_tail_overlap(snakes, grid):
                return False
            self.iterate_once()
            if not self.resample(length):
                return False
        return True

    def iterate_once(self) -> None:
        """Advance the snake by one implicit time step."""
        params = self._params
        rhs = params.gamma * self.vertices
        self._add_external_force(rhs)
        self._add_stretching_force(rhs)
        matrix = stiffness_matrix(self.size(), params.alpha, params.beta,
                                  params.gamma, self.spacing, self.is_open)
        self.vertices = np.asarray(solve_system(matrix, rhs), dtype=float).reshape(
            self.size(), -1)
        if self.fixed_head is not None:
            self.vertices[0] = self.fixed_head
        if self.fixed_tail is not None:
            self.vertices[-1] = self.fixed_tail
        self.iterations += 1

    def resample(self, min_length: float = 0.0) -> bool:
        """Respace the vertices evenly; False if the snake is too short."""
        if self.size() < 2:
            return False
        length = self.length()
        if length < min_length:
            return False
        params = self._params
        count = compute_size(length, params.spacing)
        if count < MINIMUM_EVOLVING_SIZE:
            if self.iterations <= params.check_period:
                count = MINIMUM_EVOLVING_SIZE
            else:
                return False
        self.spacing = length / (count - 1)
        self._interpolate_vertices(count)
        return True

    def _interpolate_vertices(self, size: int) -> None:
        old = self.vertices
        steps = np.linalg.norm(np.diff(old, axis=0), axis=1)
        lengths = np.concatenate(([0.0], np.cumsum(steps))).tolist()
        last = len(lengths) - 1
        new = np.empty((size, old.shape[1]), dtype=float)
        new[0] = old[0]
        new[-1] = old[-1]
        for j in range(old.shape[1]):
            partial = list(zip(lengths, old[:, j].tolist()))
            upper = 0
            for i in range(1, size - 1):
                target = self.spacing * i
                upper = bisect_left(partial, (target, 0.0), lo=upper)
                upper = min(max(upper, 1), last)
                low_len, low_val = partial[upper - 1]
                up_len, up_val = partial[upper]
                if low_len == up_len:
                    new[i, j] = up_val
                else:
                    new[i, j] = up_val + (low_val - up_val) * (
                        target - up_len) / (low_len - up_len)
        self.vertices = new

    def _is_converged(self) -> bool:
        if self.size() != self.last_vertices.shape[0]:
            self.last_vertices = self.vertices.copy()
            return False
        changes = np.linalg.norm(self.vertices - self.last_vertices, axis=1)
        if np.any(changes > self._params.change_threshold):
            self.last_vertices = self.vertices.copy()
            return False
        return True

    def _self_intersect(self) -> bool:
        if not self.is_open:
            return False
        rows = self.size()
        if rows <= _MIN_LOOP_SIZE:
            return False
        for i in range(rows - _MIN_LOOP_SIZE):
            for j in range(i + _MIN_LOOP_SIZE, rows):
                d = np.linalg.norm(self.vertices[i] - self.vertices[j])
                if d < 1.0 and not self._tips_stop_at_same_location():
                    self._initialize_from_part(0, i, True, self.subsnakes)
                    self._initialize_from_part(j, rows, True, self.subsnakes)
                    self._initialize_from_part(i, j, False, self.subsnakes)
                    return True
        return False

    def _tips_stop_at_same_location(self) -> bool:
        if (self.head_hooked_snake is not None and self.tail_hooked_snake is not None
                and self.fixed_head is not None and self.fixed_tail is not None):
            return bool(np.linalg.norm(self.fixed_head - self.fixed_tail) < 1.0)
        return False

    def _initialize_from_part(
        self, start: int, end: int, is_open: bool, container: list["Snake"]
    ) -> None:
        params = self._params
        part = Snake(self.vertices[start:end].copy(), self.dimension,
                     self.image_interp, self.gradient_interp, params, is_open,
                     params.next_snake_id())
        if part.resample():
            container.append(part)

    # ----------------------------------------------------------------- overlap

    def _vertex_overlap(
        self, index: int, snakes: Sequence["Snake"], grid: NeighborGrid
    ) -> bool:
        point = self.vertices[index]
        threshold = self._params.overlap_threshold
        for snake_index, vertex_index in grid.neighboring_tags(
                (point[0], point[1], 0.0)):
            other = snakes[snake_index].vertex(vertex_index)
            if np.linalg.norm(point - other) < threshold:
                return True
        return False

    def _find_hooked_snake(
        self, last_touch: int, snakes: Sequence["Snake"], grid: NeighborGrid
    ) -> tuple[Optional["Snake"], int]:
        point = self.vertices[last_touch]
        tags: list[Tag] = []
        level = 1
        while not tags and level < grid.largest_dimension():
            tags = grid.neighboring_tags((point[0], point[1], 0.0), level)
            level += 1
        best: Optional[Snake] = None
        best_index = 0
        min_d = math.inf
        for snake_index, vertex_index in tags:
            d = float(np.linalg.norm(point - snakes[snake_index].vertex(vertex_index)))
            if d < min_d:
                min_d = d
                best = snakes[snake_index]
                best_index = vertex_index
        return best, best_index

    def _check_head_overlap(self, snakes: Sequence["Snake"], grid: NeighborGrid) -> bool:
        if not snakes:
            return True
        start = 0
        if self.head_is_fixed():
            start += int(self._params.overlap_threshold / self.spacing)
        first_detach = start
        while first_detach < self.size() and self._vertex_overlap(
                first_detach, snakes, grid):
            first_detach += 1
        if first_detach == start:
            return True
        if first_detach == self.size():
            return False
        hooked, index = self._find_hooked_snake(first_detach - 1, snakes, grid)
        if hooked is None:
            return False
        self.head_hooked_snake, self.head_hooked_index = hooked, index
        self.fixed_head = hooked.vertices[index].copy()
        self.vertices = np.vstack((self.fixed_head, self.vertices[first_detach:]))
        self.is_open = True
        return self.resample()

    def _check_tail_overlap(self, snakes: Sequence["Snake"], grid: NeighborGrid) -> bool:
        if not snakes:
            return True
        start = self.size() - 1
        if self.tail_is_fixed():
            start -= int(self._params.overlap_threshold / self.spacing)
        first_detach = start
        while first_detach >= 0 and self._vertex_overlap(first_detach, snakes, grid):
            first_detach -= 1
        if first_detach == start:
            return True
        if first_detach < 0:
            return False
        hooked, index = self._find_hooked_snake(first_detach + 1, snakes, grid)
        if hooked is None:
            return False
        self.tail_hooked_snake, self.tail_hooked_index = hooked, index
        self.fixed_tail = hooked.vertices[index].copy()
        self.vertices = np.vstack((self.vertices[: first_detach + 1], self.fixed_tail))
        self.is_open = True
        return self.resample()

    def _check_body_overlap(self, snakes: Sequence["Snake"], grid: NeighborGrid) -> bool:
        if not snakes:
            return True
        rows = self.size()
        last_is_overlap = True
        overlap_start = rows
        overlap_end = rows
        for i in range(rows):
            overlap = self._vertex_overlap(i, snakes, grid)
            if overlap and not last_is_overlap:
                overlap_start = i
            elif not overlap and last_is_overlap and i > overlap_start:
                overlap_end = i
                break
            last_is_overlap = overlap
        if overlap_end != rows:
            self._initialize_from_part(overlap_end - 1, rows, True, self.subsnakes)
            self._initialize_from_part(0, overlap_start + 1, True, self.subsnakes)
            return False
        return True

    # ------------------------------------------------------------------ forces

    def _add_external_force(self, rhs: np.ndarray) -> None:
        if self.gradient_interp is None:
            return
        factor = self._params.external_factor
        for i, vertex in enumerate(self.vertices):
            gradient = self.gradient_interp.interpolate(vertex)
            if gradient is not None:
                rhs[i] += factor * np.asarray(gradient, dtype=float)[: rhs.shape[1]]

    def _add_stretching_force(self, rhs: np.ndarray) -> None:
        params = self._params
        for is_head, fixed, row in ((True, self.fixed_head, 0),
                                    (False, self.fixed_tail, -1)):
            if fixed is not None:
                continue
            stretch = params.stretch_factor * self._local_stretch(is_head)
            tangent = self.tip_tangent(is_head, params.delta)
            if params.damp_z and self.dimension == 3:
                stretch *= math.exp(-abs(tangent[2]))
            rhs[row] += stretch * tangent

    def _local_stretch(self, is_head: bool) -> float:
        if self.image_interp is None:
            return 0.0
        return local_stretch(self.image_interp, self.tip(is_head),
                             self.tip_tangent(is_head, self._params.delta),
                             self._params)

    def _check_nan(self) -> bool:
        return bool(np.isnan(self.vertices).any())

    def _keep_vertices_inside_image(self, padding: float) -> None:
        if self.image_interp is None:
            return
        for j in range(self.dimension):
            bound = self.image_interp.extent(j)
            self.vertices[:, j] = np.clip(self.vertices[:, j], padding, bound - padding)

    # -------------------------------------------------------------- bookkeeping

    def describe(self) -> str:
        """Return a multi-line human-readable summary of the snake."""
        def show(vec: Optional[np.ndarray]) -> str:
            return "" if vec is None else " ".join(f"{v:g}" for v in vec)

        lines = [
            f"======== snake {id(self):#x} ======== ",
            f"id: {self.id}",
            f"dimension: {self.dimension}",
            f"open: {int(self.is_open)}",
            f"spacing: {self.spacing:g}",
            f"size: {self.size()}",
            f"length: {self.length():g}",
            f"iterations: {self.iterations}",
            f"fixed head: {show(self.fixed_head)}",
            f"fixed tail: {show(self.fixed_tail)}",
            f"head hooked snake: {self.head_hooked_snake and hex(id(self.head_hooked_snake))}",
            f"tail hooked snake: {self.tail_hooked_snake and hex(id(self.tail_hooked_snake))}",
            f"head hooked index: {self.head_hooked_index}",
            f"tail hooked index: {self.tail_hooked_index}",
            f"# of subsnakes: {len(self.subsnakes)}",
        ]
        if self.previous_snake is not None:
            lines.append(f"previous snake id: {self.previous_snake.id}")
        lines.append("~~~~~~~~ Current vertices ~~~~~~~~")
        lines.extend(show(row) for row in self.vertices)
        return "\n".join(lines) + "\n"

    def update_hooked_indices(self) -> None:
        """Record this snake's hook points as junctions on the hooked snakes."""
        if self.head_hooked_snake is not None:
            self.head_hooked_snake.junction_indices.append(self.head_hooked_index)
        if self.tail_hooked_snake is not None:
            self.tail_hooked_snake.junction_indices.append(self.tail_hooked_index)

    def copy_segments(self) -> list["Snake"]:
        """Split the snake at its junctions and return the resampled pieces."""
        segments: list[Snake] = []
        start = 0
        self.junction_indices.sort()
        for junction in self.junction_indices:
            self._initialize_from_part(start, junction + 1, True, segments)
            start = junction
        self._initialize_from_part(start, self.size(), True, segments)
        return segments

    def coordinates_out(self, blocks: deque, prepend: bool, reverse: bool) -> None:
        """Add a copy of the vertices to ``blocks`` at the front or back."""
        block = self.vertices[::-1].copy() if reverse else self.vertices.copy()
        if prepend:
            blocks.appendleft(block)
        else:
            blocks.append(block)

    def save_vertex_state(self) -> None:
        """Remember the current vertices for a later change check."""
        self.original_vertices = self.vertices.copy()

    def vertex_changed(self, threshold: float) -> bool:
        """True if any vertex moved more than ``threshold`` since the saved state."""
        if self.size() != self.original_vertices.shape[0]:
            return True
        moves = np.linalg.norm(self.vertices - self.original_vertices, axis=1)
        return bool(np.any(moves > threshold))

    # --------------------------------------------------------------- distances

    def pass_through(self, point: ArrayLike, threshold: float) -> bool:
        """True if some vertex lies closer than ``threshold`` to ``point``."""
        if self.size() == 0:
            return False
        distances = np.linalg.norm(self.vertices - np.asarray(point, float), axis=1)
        return bool(np.any(distances < threshold))

    def find_closest_index_to(self, point: ArrayLike) -> tuple[float, int]:
        """Return ``(distance, index)`` of the vertex closest to ``point``."""
        distances = np.linalg.norm(self.vertices - np.asarray(point, float), axis=1)
        index = int(np.argmin(distances))
        return float(distances[index]), index

    def distance_to(self, point: ArrayLike) -> float:
        """Smallest distance from ``point`` to a vertex."""
        if self.size() == 0:
            raise ValueError("snake has no vertices")
        return self.find_closest_index_to(point)[0]

    def translated_distance_to(self, point: ArrayLike) -> float:
        """Smallest distance from ``point`` to a centroid-relative vertex."""
        if self.size() == 0:
            raise ValueError("snake has no vertices")
        if self.centroid is None:
            raise ValueError("centroid has not been computed")
        relative = self.vertices - self.centroid
        return float(np.linalg.norm(relative - np.asarray(point, float), axis=1).min())

    def euclidean_and_angle_distance_to(
        self, point: ArrayLike, tangent: ArrayLike
    ) -> float:
        """Closest-vertex distance damped by alignment with the local tangent."""
        if self.size() == 0:
            raise ValueError("snake has no vertices")
        min_d, index = self.find_closest_index_to(point)
        local = self.vertex_tangent(index, 2)
        return min_d * math.exp(-abs(float(np.dot(np.asarray(tangent, float), local))))

    # ---------------------------------------------------------------- tangents

    def tip_tangent(self, is_head: bool, delta: int) -> np.ndarray:
        """Outward unit tangent at the head or tail."""
        return self.head_tangent(delta) if is_head else self.tail_tangent(delta)

    def head_tangent(self, delta: int) -> np.ndarray:
        """Unit vector pointing out of the head, measured ``delta`` vertices in."""
        v = self.vertices
        if self.size() > delta:
            return _normalized(v[0] - v[delta])
        return _normalized(v[0] - v[-1])

    def tail_tangent(self, delta: int) -> np.ndarray:
        """Unit vector pointing out of the tail, measured ``delta`` vertices in."""
        v = self.vertices
        if self.size() > delta:
            return _normalized(v[-1] - v[-1 - delta])
        return _normalized(v[-1] - v[0])

    def vertex_tangent(self, index: int, delta: int) -> np.ndarray:
        """Unit tangent at vertex ``index`` over a window of ``delta`` vertices."""
        v = self.vertices
        back = delta // 2
        ahead = (delta + 1) // 2
        if index < back:
            return _normalized(v[0] - v[index + ahead])
        if index + ahead >= self.size():
            return _normalized(v[index - back] - v[-1])
        return _normalized(v[index - back] - v[index + ahead])