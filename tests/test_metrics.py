import math

import pytest

from soacnet.metrics import (
    closest_snake,
    compute_curve_distance,
    compute_one_way_curve_distance,
    is_longer,
    is_shorter,
)
from soacnet.parameters import SnakeParameters
from soacnet.snake import Snake


@pytest.fixture
def params():
    return SnakeParameters()


def make(points, params, dim=3):
    return Snake(points, dim, None, None, params, True)


def test_compute_curve_distance_from_source(params):
    s1 = make([4, 10, 4, 4, 12, 4, 4, 15, 4, 4, 18, 4], params)
    s2 = make([4, 10, 4, 4, 12, 4, 4, 15, 4], params)
    assert compute_curve_distance(s1, s2) == 3.0 / 7.0


def test_compute_curve_distance_is_symmetric(params):
    s1 = make([0, 0, 0, 3, 0, 0], params)
    s2 = make([0, 1, 0, 1, 1, 0, 2, 1, 0], params)
    assert compute_curve_distance(s1, s2) == pytest.approx(
        compute_curve_distance(s2, s1))


def test_compute_curve_distance_of_identical_snakes_is_zero(params):
    s1 = make([0, 0, 1, 0, 2, 0], params, dim=2)
    s2 = make([0, 0, 1, 0, 2, 0], params, dim=2)
    assert compute_curve_distance(s1, s2) == 0.0


def test_compute_curve_distance_with_empty_snake_is_infinite(params):
    s1 = make([0, 0, 1, 0], params, dim=2)
    empty = Snake(None, 2, None, None, params, True)
    assert compute_curve_distance(s1, empty) == math.inf


def test_one_way_distance_of_parallel_lines(params):
    snake = make([0, 0, 1, 0, 2, 0], params, dim=2)
    target = make([0, 1, 1, 1, 2, 1], params, dim=2)
    assert compute_one_way_curve_distance(snake, target) == pytest.approx(
        math.exp(-1.0))


def test_closest_snake_picks_nearest(params):
    snake = make([0, 0, 1, 0, 2, 0], params, dim=2)
    near = make([0, 1, 1, 1, 2, 1], params, dim=2)
    far = make([0, 3, 1, 3, 2, 3], params, dim=2)
    best, distance = closest_snake(snake, [far, near])
    assert best is near
    assert distance == pytest.approx(math.exp(-1.0))


def test_closest_snake_without_candidates(params):
    snake = make([0, 0, 1, 0], params, dim=2)
    best, distance = closest_snake(snake, [])
    assert best is None
    assert distance == math.inf


def test_length_comparisons(params):
    short = make([0, 0, 1, 0], params, dim=2)
    long = make([0, 0, 5, 0], params, dim=2)
    assert is_shorter(short, long)
    assert not is_shorter(long, short)
    assert is_longer(long, short)
    assert not is_longer(short, short)