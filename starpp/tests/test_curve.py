import math

import pytest

from starpp import Position
from starpp.curve import (
    BezierPath,
    CatmullPath,
    Curve,
    LinearPath,
    Perfect,
    circumcenter,
    split_at_dupes,
)


def assert_position(actual, expected):
    assert actual.x == pytest.approx(expected[0], abs=1e-6)
    assert actual.y == pytest.approx(expected[1], abs=1e-6)


def test_linear_is_exact():
    curve = Curve.from_kind_and_points(
        'L',
        [Position(100, 100), Position(240, 100)],
        140,
    )
    assert isinstance(curve, LinearPath)
    assert curve(1) == Position(240, 100)
    assert curve.end == Position(240, 100)
    assert curve(0.5) == Position(170, 100)


def test_linear_is_cut_and_extended():
    points = [Position(0, 0), Position(100, 0), Position(100, 100)]

    curve = LinearPath(points, 150)
    assert curve(1) == Position(100, 50)
    assert curve(0.5) == Position(75, 0)

    extended = LinearPath(points[:2], 150)
    assert extended(1) == Position(150, 0)


def test_perfect_quarter_circle():
    diagonal = 100 * math.sqrt(0.5)
    head = Position(200, 100)
    middle = Position(100 + diagonal, 100 + diagonal)
    tail = Position(100, 200)

    curve = Curve.from_kind_and_points(
        'P',
        [head, middle, tail],
        math.pi * 50,
    )
    assert isinstance(curve, Perfect)
    assert_position(curve(0), head)
    assert_position(curve(0.5), middle)
    assert_position(curve.end, tail)

    # a shorter slider stops part of the way around the arc
    half = Perfect([head, middle, tail], math.pi * 25)
    assert_position(half.end, middle)


def test_perfect_clockwise():
    diagonal = 100 * math.sqrt(0.5)
    curve = Perfect(
        [
            Position(200, 100),
            Position(100 + diagonal, 100 - diagonal),
            Position(100, 0),
        ],
        math.pi * 50,
    )
    assert_position(curve.end, (100, 0))


def test_perfect_falls_back_to_bezier():
    collinear = [Position(0, 0), Position(50, 0), Position(100, 0)]
    curve = Curve.from_kind_and_points('P', collinear, 100)
    assert isinstance(curve, BezierPath)
    assert_position(curve.end, (100, 0))

    with pytest.raises(ValueError):
        circumcenter(*collinear)

    curve = Perfect([Position(0, 0), Position(100, 100)], 50)
    assert isinstance(curve, BezierPath)


def test_bezier_segments():
    a = Position(0, 0)
    b = Position(100, 0)
    c = Position(100, 100)
    assert split_at_dupes([a, b, b, c]) == [[a, b], [b, c]]
    assert split_at_dupes([a, b, c]) == [[a, b, c]]

    # a repeated point makes a sharp corner
    curve = BezierPath([a, b, b, c], 200)
    assert len(curve.segments) == 2
    assert_position(curve(0.5), b)
    assert_position(curve.end, c)


def test_catmull():
    points = [Position(0, 0), Position(100, 0), Position(200, 100)]
    length = sum(
        segment.length for segment in CatmullPath(points, 0).segments
    )

    curve = Curve.from_kind_and_points('C', points, length)
    assert curve(0) == Position(0, 0)
    assert_position(curve.end, (200, 100))


def test_single_point():
    curve = LinearPath([Position(10, 20)], 0)
    assert curve.end == Position(10, 20)


def test_transform():
    curve = Curve.from_kind_and_points(
        'L',
        [Position(100, 100), Position(240, 100)],
        140,
    )
    flipped = curve.transform(Position.flip_y)
    assert isinstance(flipped, LinearPath)
    assert flipped.req_length == 140
    assert flipped.end == Position(240, 284)


def test_unknown_kind():
    with pytest.raises(ValueError):
        Curve.from_kind_and_points('X', [Position(0, 0)], 0)
