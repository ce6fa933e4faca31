import pytest

from soacnet.parameters import SnakeParameters
from soacnet.snake import Snake
from soacnet.track import SnakeTrack


def make(points, snake_id):
    return Snake(points, 2, None, None, SnakeParameters(), True, snake_id)


def test_constructor():
    t = SnakeTrack(5)
    for i in range(5):
        assert t.get_snake(i) is None
    assert t.track_length() == 0
    assert t.first_frame() == -1
    assert t.first_snake() is None


def test_set_and_query():
    a = make([0, 0, 3, 0], 1)
    b = make([0, 0, 0, 4], 2)
    t = SnakeTrack(4)
    t.set_snake(1, a)
    t.set_snake(3, b)
    assert t.track_length() == 2
    assert t.total_curve_length() == pytest.approx(7.0)
    assert t.first_frame() == 1
    assert t.first_snake() is a
    assert a in t
    assert make([0, 0, 3, 0], 1) not in t
    assert str(t) == "0 1 0 2 "


def test_set_snake_invalid_frame():
    t = SnakeTrack(2)
    with pytest.raises(IndexError):
        t.set_snake(2, make([0, 0, 1, 0], 1))


def test_append_and_contains():
    t = SnakeTrack()
    s = make([0, 0, 1, 0], 24)
    assert s not in t
    t.append(s)
    assert s in t
    assert t.get_snake(0) is s


def test_sorting_puts_longer_tracks_first():
    short, long = SnakeTrack(1), SnakeTrack(1)
    short.set_snake(0, make([0, 0, 1, 0], 1))
    long.set_snake(0, make([0, 0, 5, 0], 2))
    empty = SnakeTrack(1)
    assert sorted([empty, short, long]) == [long, short, empty]
    assert long < short
    assert not short < long


def test_equality_compares_snake_identity():
    s = make([0, 0, 1, 0], 1)
    t1, t2 = SnakeTrack(2), SnakeTrack(2)
    t1.set_snake(0, s)
    t2.set_snake(0, s)
    assert t1 == t2
    t2.set_snake(0, make([0, 0, 1, 0], 1))
    assert not t1 == t2