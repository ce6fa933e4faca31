import math

import numpy as np
import pytest

from soacnet.forces import (
    Sampler,
    background_intensity_2d,
    background_intensity_3d,
    local_stretch,
    pod_x,
    pod_y,
    solve_system,
    stiffness_matrix,
)
from soacnet.parameters import SnakeParameters


def _ramp_2d(shape=(8, 6)):
    xs, ys = np.meshgrid(np.arange(shape[0]), np.arange(shape[1]), indexing="ij")
    return (xs + 2 * ys).astype(float)


def test_sampler_returns_grid_values():
    data = np.arange(24, dtype=float).reshape(2, 3, 4)
    sampler = Sampler(data)
    assert sampler.interpolate((1, 2, 3)) == data[1, 2, 3]
    assert sampler.interpolate((0, 1, 2)) == data[0, 1, 2]


def test_sampler_is_exact_for_linear_image():
    sampler = Sampler(_ramp_2d())
    for x, y in [(0.5, 0.25), (3.3, 4.7), (7.0, 5.0), (6.9, 0.1)]:
        assert sampler.interpolate((x, y)) == pytest.approx(x + 2 * y)


def test_sampler_outside_returns_none():
    sampler = Sampler(np.ones((5, 5, 5)))
    assert sampler.interpolate((15, 100, 100)) is None
    assert sampler.interpolate((-0.1, 1, 1)) is None


def test_sampler_ignores_extra_coordinates():
    data = _ramp_2d()
    sampler = Sampler(data)
    assert sampler.interpolate((2, 3, 0.0)) == data[2, 3]


def test_sampler_rejects_short_points():
    sampler = Sampler(np.ones((4, 4, 4)))
    with pytest.raises(ValueError):
        sampler.interpolate((1, 1))


def test_sampler_vector_components():
    data = np.stack([_ramp_2d(), -_ramp_2d()], axis=-1)
    sampler = Sampler(data, vector=True)
    value = sampler.interpolate((2.5, 1.5))
    assert value.shape == (2,)
    assert value[0] == pytest.approx(2.5 + 3.0)
    assert value[1] == pytest.approx(-(2.5 + 3.0))


@pytest.mark.parametrize("is_open", [True, False])
@pytest.mark.parametrize("size", [5, 8, 13])
def test_stiffness_matrix_is_symmetric_with_gamma_row_sums(is_open, size):
    matrix = stiffness_matrix(size, 0.01, 0.1, 2.0, 0.7, is_open).toarray()
    assert matrix.shape == (size, size)
    np.testing.assert_allclose(matrix, matrix.T)
    np.testing.assert_allclose(matrix.sum(axis=1), np.full(size, 2.0), atol=1e-9)


def test_open_stiffness_matrix_is_pentadiagonal():
    matrix = stiffness_matrix(9, 0.5, 0.3, 1.0, 1.0, True).toarray()
    assert int(np.count_nonzero(np.triu(matrix, 3))) == 0
    assert int(np.count_nonzero(np.tril(matrix, -3))) == 0
    assert matrix[0, 3] == 0.0
    assert matrix[0, 2] == pytest.approx(0.3)
    assert matrix[0, 0] == pytest.approx(0.5 + 0.3 + 1.0)


def test_closed_stiffness_matrix_wraps_around():
    matrix = stiffness_matrix(9, 0.5, 0.3, 1.0, 1.0, False).toarray()
    assert matrix[0, 8] == matrix[0, 1]
    assert matrix[0, 7] == matrix[0, 2]


def test_stiffness_matrix_without_internal_forces_is_scaled_identity():
    matrix = stiffness_matrix(6, 0.0, 0.0, 2.0, 1.0, True).toarray()
    np.testing.assert_allclose(matrix, 2.0 * np.eye(6))


def test_stiffness_matrix_rejects_tiny_open_snake():
    with pytest.raises(ValueError):
        stiffness_matrix(1, 0.01, 0.1, 2.0, 1.0, True)


def test_solve_system_satisfies_equations():
    matrix = stiffness_matrix(10, 0.01, 0.1, 2.0, 1.0, True)
    rng = np.random.default_rng(0)
    rhs = rng.normal(size=(10, 3))
    solution = solve_system(matrix, rhs)
    np.testing.assert_allclose(matrix @ solution, rhs, atol=1e-9)


def test_solve_system_keeps_constant_positions():
    matrix = stiffness_matrix(12, 0.01, 0.1, 2.0, 1.0, False)
    positions = np.tile([4.0, 10.0, 4.0], (12, 1))
    solution = solve_system(matrix, 2.0 * positions)
    np.testing.assert_allclose(solution, positions, atol=1e-9)


@pytest.mark.parametrize("tangent", [(1.0, 0.0), (0.6, 0.8), (-0.3, 0.9)])
@pytest.mark.parametrize("plus", [True, False])
def test_pod_points_are_perpendicular_and_at_distance(tangent, plus):
    x, y, dist = 3.0, -2.0, 5.0
    px = pod_x(x, tangent, dist, plus)
    py = pod_y(y, tangent, dist, not plus)
    offset = np.array([px - x, py - y])
    assert np.linalg.norm(offset) == pytest.approx(dist)
    assert offset @ np.array(tangent) == pytest.approx(0.0, abs=1e-12)


def test_pod_for_vertical_tangent():
    assert pod_x(3.0, (0.0, 1.0), 2.0, True) == 5.0
    assert pod_x(3.0, (0.0, 1.0), 2.0, False) == 1.0
    assert pod_y(7.0, (0.0, 1.0), 2.0, True) == 7.0


def test_background_2d_of_constant_image():
    sampler = Sampler(np.full((21, 21), 42.0))
    bg = background_intensity_2d(sampler, (10.0, 10.0), (0.6, 0.8), SnakeParameters())
    assert bg == pytest.approx(42.0)


def test_background_2d_outside_image_is_none():
    sampler = Sampler(np.full((3, 3), 42.0))
    bg = background_intensity_2d(sampler, (1.0, 1.0), (1.0, 0.0), SnakeParameters())
    assert bg is None


def test_background_3d_of_constant_image():
    sampler = Sampler(np.full((21, 21, 21), 30.0))
    bg = background_intensity_3d(
        sampler, (10.0, 10.0, 10.0), (0.0, 0.0, 1.0), SnakeParameters()
    )
    assert bg == pytest.approx(30.0)


def test_background_3d_ignores_samples_below_minimum_foreground():
    sampler = Sampler(np.full((21, 21, 21), 30.0))
    params = SnakeParameters(minimum_foreground=30)
    bg = background_intensity_3d(sampler, (10.0, 10.0, 10.0), (1.0, 0.0, 0.0), params)
    assert bg is None


def test_background_with_empty_radial_range_is_none():
    sampler = Sampler(np.full((21, 21, 21), 30.0))
    params = SnakeParameters(radial_near=8, radial_far=8)
    assert background_intensity_3d(
        sampler, (10.0, 10.0, 10.0), (1.0, 0.0, 0.0), params
    ) is None


def test_local_stretch_of_constant_image_is_zero():
    sampler = Sampler(np.full((21, 21, 21), 30.0))
    result = local_stretch(
        sampler, (10.0, 10.0, 10.0), (1.0, 0.0, 0.0), SnakeParameters()
    )
    assert result == 0.0


def test_local_stretch_on_bright_ridge():
    xs = np.arange(21)[:, None] * np.ones((1, 21))
    data = 100.0 - 10.0 * np.abs(xs - 10)
    sampler = Sampler(data)
    result = local_stretch(sampler, (10.0, 10.0), (0.0, 1.0), SnakeParameters())
    assert result == pytest.approx(0.55)


def test_local_stretch_above_maximum_foreground_is_zero():
    xs = np.arange(21)[:, None] * np.ones((1, 21))
    data = 100.0 - 10.0 * np.abs(xs - 10)
    params = SnakeParameters(maximum_foreground=50)
    assert local_stretch(Sampler(data), (10.0, 10.0), (0.0, 1.0), params) == 0.0


def test_local_stretch_outside_image_is_zero():
    sampler = Sampler(np.full((5, 5), 10.0))
    assert local_stretch(sampler, (50.0, 50.0), (1.0, 0.0), SnakeParameters()) == 0.0


def test_local_stretch_is_below_one():
    xs = np.arange(31)[:, None] * np.ones((1, 31))
    data = np.exp(-((xs - 15) ** 2) / 8.0) * 200.0 + 1.0
    result = local_stretch(Sampler(data), (15.0, 15.0), (0.0, 1.0), SnakeParameters())
    assert 0.0 < result < 1.0
    assert not math.isnan(result)