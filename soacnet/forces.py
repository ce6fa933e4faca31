"""Internal and external forces acting on an open or closed snake."""

from __future__ import annotations

import math
from itertools import product
from typing import TYPE_CHECKING, Optional, Sequence, Union

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import splu

from .util import mean

if TYPE_CHECKING:
    from .parameters import SnakeParameters

EPSILON = 1e-8

ArrayLike = Union[Sequence[float], np.ndarray]


class Sampler:
    """Multilinear interpolation of a scalar or vector image.

    The image array is indexed by point coordinates in order, so a 2D image
    is ``data[x, y]`` and a 3D image ``data[x, y, z]``. With ``vector=True``
    the last axis holds the components of each voxel.
    """

    def __init__(self, data: ArrayLike, *, vector: bool = False) -> None:
        array = np.asarray(data, dtype=float)
        spatial = array.ndim - 1 if vector else array.ndim
        if spatial < 1:
            raise ValueError("image needs at least one spatial axis")
        self.data = array
        self.vector = vector
        self.ndim = spatial
        self.shape = tuple(array.shape[:spatial])

    def extent(self, axis: int) -> float:
        """Return the number of samples along ``axis``."""
        return float(self.shape[axis])

    def interpolate(self, point: ArrayLike) -> Optional[Union[float, np.ndarray]]:
        """Return the interpolated value at ``point``, or None outside the image.

        Coordinates beyond the image's own dimension are ignored.
        """
        coords = np.asarray(point, dtype=float).ravel()
        if coords.size < self.ndim:
            raise ValueError(
                f"point has {coords.size} coordinates, image needs {self.ndim}"
            )
        coords = coords[: self.ndim]
        upper = np.array(self.shape) - 1
        if np.any(np.isnan(coords)) or np.any(coords < 0) or np.any(coords > upper):
            return None

        base = np.minimum(np.floor(coords).astype(int), np.maximum(upper - 1, 0))
        frac = coords - base
        result: Union[float, np.ndarray] = 0.0
        for offsets in product((0, 1), repeat=self.ndim):
            weight = 1.0
            index = []
            for offset, f, b, top in zip(offsets, frac, base, upper):
                weight *= f if offset else 1.0 - f
                if weight == 0.0:
                    break
                index.append(min(int(b) + offset, int(top)))
            if weight != 0.0:
                result = result + weight * self.data[tuple(index)]

        if self.vector:
            return np.asarray(result, dtype=float) * np.ones(self.data.shape[-1])
        return float(result)


def stiffness_matrix(
    size: int,
    alpha: float,
    beta: float,
    gamma: float,
    spacing: float,
    is_open: bool,
) -> sparse.csc_matrix:
    """Build the pentadiagonal system matrix for a snake of ``size`` vertices.

    ``alpha`` and ``beta`` are scaled by the squared and fourth power of the
    vertex spacing. Closed snakes wrap around; open snakes use the free-end
    boundary rows.
    """
    if size < (2 if is_open else 1):
        raise ValueError(f"cannot build a system for {size} vertices")
    spacing_squared = spacing * spacing
    a = alpha / spacing_squared
    b = beta / (spacing_squared * spacing_squared)
    g = gamma
    diag0 = 2 * a + 6 * b + g
    diag1 = -a - 4 * b
    order = size
    entries: list[tuple[int, int, float]] = []

    if is_open:
        entries.append((0, 0, a + b + g))
        entries.append((1, 1, 2 * a + 5 * b + g))
        entries.extend((i, i, diag0) for i in range(2, order - 2))
        entries.append((order - 2, order - 2, 2 * a + 5 * b + g))
        entries.append((order - 1, order - 1, a + b + g))

        entries.append((0, 1, -a - 2 * b))
        entries.append((1, 0, -a - 2 * b))
        for i in range(1, order - 2):
            entries.append((i, i + 1, diag1))
            entries.append((i + 1, i, diag1))
        entries.append((order - 2, order - 1, -a - 2 * b))
        entries.append((order - 1, order - 2, -a - 2 * b))

        for i in range(2, order):
            entries.append((i, i - 2, b))
            entries.append((i - 2, i, b))
    else:
        for i in range(order):
            entries.append((i, (i + order - 2) % order, b))
            entries.append((i, (i + order - 1) % order, diag1))
            entries.append((i, i, diag0))
            entries.append((i, (i + order + 1) % order, diag1))
            entries.append((i, (i + order + 2) % order, b))

    rows, cols, values = zip(*entries)
    # Duplicate entries are summed, as happens for very short snakes.
    return sparse.coo_matrix((values, (rows, cols)), shape=(order, order)).tocsc()


def solve_system(matrix: sparse.spmatrix, rhs: ArrayLike) -> np.ndarray:
    """Solve ``matrix @ x = rhs`` for ``x``; ``rhs`` may hold several columns."""
    factor = splu(sparse.csc_matrix(matrix, dtype=float))
    return factor.solve(np.asarray(rhs, dtype=float))


def pod_x(x: float, tangent: ArrayLike, dist: float, plus_root: bool) -> float:
    """X coordinate of a point at ``dist`` from ``x`` perpendicular to ``tangent``."""
    tx, ty = float(tangent[0]), float(tangent[1])
    if abs(tx) < EPSILON:
        return x + dist if plus_root else x - dist
    frac = ty / tx
    step = frac * dist / math.sqrt(1 + frac * frac)
    return x + step if plus_root else x - step


def pod_y(y: float, tangent: ArrayLike, dist: float, plus_root: bool) -> float:
    """Y coordinate of a point at ``dist`` from ``y`` perpendicular to ``tangent``."""
    tx, ty = float(tangent[0]), float(tangent[1])
    if abs(tx) < EPSILON:
        return y
    frac = ty / tx
    step = dist / math.sqrt(1 + frac * frac)
    return y + step if plus_root else y - step


def background_intensity_2d(
    sampler: Sampler,
    vertex: ArrayLike,
    normal: ArrayLike,
    parameters: "SnakeParameters",
) -> Optional[float]:
    """Mean intensity sampled on both sides of a 2D tip, or None if none sampled."""
    x, y = float(vertex[0]), float(vertex[1])
    samples: list[float] = []
    radial_step = 1.0
    d = float(parameters.radial_near)
    while d < parameters.radial_far:
        for x_plus, y_plus in ((True, False), (False, True)):
            pod = (pod_x(x, normal, d, x_plus), pod_y(y, normal, d, y_plus), 0.0)
            intensity = sampler.interpolate(pod)
            if intensity is not None:
                samples.append(float(intensity))
        d += radial_step
    return mean(samples) if samples else None


def background_intensity_3d(
    sampler: Sampler,
    vertex: ArrayLike,
    normal: ArrayLike,
    parameters: "SnakeParameters",
) -> Optional[float]:
    """Mean intensity on rings around a 3D tip, or None if none sampled.

    Only samples brighter than the minimum foreground are counted.
    """
    normal = np.asarray(normal, dtype=float)
    vertex = np.asarray(vertex, dtype=float)
    projection = np.array([0.0, 0.0, 1.0]) - normal[2] * normal
    long_axis = np.array([1.0, 0.0, 0.0])
    short_axis = np.array([0.0, 1.0, 0.0])
    if np.linalg.norm(projection) > EPSILON:
        long_axis = projection / np.linalg.norm(projection)
        short_axis = np.cross(long_axis, normal)
        short_axis = short_axis / np.linalg.norm(short_axis)

    samples: list[float] = []
    sectors = parameters.number_of_sectors
    angle_step = 2 * math.pi / sectors
    d = int(parameters.radial_near)
    while d < parameters.radial_far:
        for s in range(sectors):
            angle = s * angle_step
            v = d * (math.cos(angle) * long_axis + math.sin(angle) * short_axis)
            v[2] *= parameters.zspacing
            intensity = sampler.interpolate(vertex + v)
            if intensity is not None and intensity > parameters.minimum_foreground:
                samples.append(float(intensity))
        d += 1
    return mean(samples) if samples else None


def local_stretch(
    sampler: Sampler,
    vertex: ArrayLike,
    tangent: ArrayLike,
    parameters: "SnakeParameters",
) -> float:
    """Relative contrast of a tip against its local background, in [0, 1)."""
    vertex = np.asarray(vertex, dtype=float)
    point = np.zeros(max(3, vertex.size))
    point[: vertex.size] = vertex
    foreground = sampler.interpolate(point)
    if foreground is None:
        return 0.0
    foreground = float(foreground)
    if (foreground < parameters.minimum_foreground
            or foreground > parameters.maximum_foreground):
        return 0.0

    background: Optional[float] = 0.0
    if vertex.size == 2:
        background = background_intensity_2d(sampler, vertex, tangent, parameters)
    elif vertex.size == 3:
        background = background_intensity_3d(sampler, vertex, tangent, parameters)
    if background is None:
        return 0.0

    if foreground > background:
        return 1.0 - background / foreground
    return 0.0