from abc import ABCMeta, abstractmethod
import math

import numpy as np
from scipy.special import comb
from toolz import sliding_window

from .position import Position, distance
from .utils import lazyval


class Curve(metaclass=ABCMeta):
    """The path a slider ball follows.

    Parameters
    ----------
    points : list[Position]
        The control points, including the slider head.
    req_length : float
        The length of the slider in osu! pixels. Paths which are
        geometrically longer are cut short at this length.
    """
    kind = None
    _kinds = {}

    def __init__(self, points, req_length):
        self.points = points
        self.req_length = req_length

    def __init_subclass__(cls):
        if cls.kind is not None:
            cls._kinds[cls.kind] = cls

    @classmethod
    def from_kind_and_points(cls, kind, points, req_length):
        """Construct the curve for a path type letter.

        Parameters
        ----------
        kind : {'B', 'L', 'P', 'C'}
            The path type.
        points : list[Position]
            The control points, including the slider head.
        req_length : float
            The length of the slider in osu! pixels.

        Returns
        -------
        curve : Curve
            The curve. Perfect curves through points which do not describe
            a circle are returned as bezier curves.

        Raises
        ------
        ValueError
            Raised when ``kind`` is not a known path type.
        """
        try:
            subcls = cls._kinds[kind]
        except KeyError:
            raise ValueError(f'unknown curve type: {kind!r}')

        return subcls(points, req_length)

    @abstractmethod
    def __call__(self, t):
        """The position after travelling ``t * req_length`` along the path.

        Parameters
        ----------
        t : float
            The progress along the slider in the range [0, 1].

        Returns
        -------
        position : Position
            The position of the slider ball.
        """
        raise NotImplementedError('__call__')

    @lazyval
    def end(self):
        """The position of the slider tail.
        """
        return self(1)

    def transform(self, f):
        """Apply a function to every control point.

        Parameters
        ----------
        f : callable[Position, Position]
            The point transformation, for example :meth:`Position.flip_y`.

        Returns
        -------
        curve : Curve
            A new curve of the same kind through the transformed points.
        """
        return self.from_kind_and_points(
            self.kind,
            [f(p) for p in self.points],
            self.req_length,
        )

    def __repr__(self):
        return (
            f'<{type(self).__qualname__}: {len(self.points)} points,'
            f' {self.req_length:g}px>'
        )


def _polyline_length(at, samples):
    xs, ys = np.array(
        [at(u) for u in np.linspace(0, 1, samples)],
        dtype=np.float64,
    ).T
    return float(np.sum(np.hypot(np.diff(xs), np.diff(ys))))


class Bezier:
    """A single bezier segment of a path.

    Parameters
    ----------
    points : list[Position]
        The control points of the segment.
    """
    # curved segments are measured along a polyline through this many points
    length_samples = 32

    def __init__(self, points):
        self.points = points
        self._coordinates = np.array(points, dtype=np.float64).T
        order = len(points) - 1
        self._order = order
        self._ixs = np.arange(order + 1)
        self._coefficients = comb(order, self._ixs)

    def at(self, u):
        """The position at the curve parameter ``u``.
        """
        order = self._order
        ixs = self._ixs
        weights = self._coefficients * (1 - u) ** (order - ixs) * u ** ixs
        x, y = np.sum(weights * self._coordinates, axis=1)
        return Position(float(x), float(y))

    @lazyval
    def length(self):
        if self._order == 0:
            return 0.0
        if self._order == 1:
            return distance(*self.points)
        return _polyline_length(self.at, self.length_samples)


class CatmullSegment:
    """The uniform catmull-rom segment between ``p1`` and ``p2``.
    """
    length_samples = 8

    def __init__(self, p0, p1, p2, p3):
        self._coordinates = np.array([p0, p1, p2, p3], dtype=np.float64).T

    def at(self, u):
        a, b, c, d = self._coordinates.T
        return Position(*(0.5 * (
            2 * b +
            (c - a) * u +
            (2 * a - 5 * b + 4 * c - d) * u ** 2 +
            (3 * b - a - 3 * c + d) * u ** 3
        )).tolist())

    @lazyval
    def length(self):
        return _polyline_length(self.at, self.length_samples)


class Chain(Curve):
    """A path made of segments laid end to end.

    Subclasses provide ``segments``, a list of objects with an ``at(u)``
    method and a ``length``.
    """
    @lazyval
    def _ends(self):
        return np.cumsum([segment.length for segment in self.segments])

    def __call__(self, t):
        segments = self.segments
        if not segments:
            return Position(*self.points[0])

        ends = self._ends
        travelled = t * self.req_length
        ix = min(
            int(np.searchsorted(ends, travelled)),
            len(segments) - 1,
        )
        segment = segments[ix]
        if not segment.length:
            return segment.at(0)

        start = ends[ix] - segment.length
        # past the end of the last segment the path is extended
        return segment.at((travelled - start) / segment.length)


def split_at_dupes(points):
    """Split bezier control points into segments.

    A control point which is repeated marks the boundary between two
    segments.
    """
    out = []
    start = 0
    for ix in range(1, len(points)):
        if points[ix] == points[ix - 1]:
            out.append(points[start:ix])
            start = ix
    out.append(points[start:])
    return out


class BezierPath(Chain):
    kind = 'B'

    @lazyval
    def segments(self):
        return [Bezier(segment) for segment in split_at_dupes(self.points)]


class LinearPath(Chain):
    kind = 'L'

    @lazyval
    def segments(self):
        return [Bezier(pair) for pair in sliding_window(2, self.points)]


class CatmullPath(Chain):
    kind = 'C'

    @lazyval
    def segments(self):
        points = self.points
        padded = [points[0], *points, points[-1]]
        return [
            CatmullSegment(*window) for window in sliding_window(4, padded)
        ]


class Perfect(Curve):
    """A circular arc through three points.
    """
    kind = 'P'

    def __new__(cls, points, req_length):
        # osu! falls back to a bezier curve unless the points describe a
        # circle
        if len(points) == 3:
            try:
                center = circumcenter(*points)
            except ValueError:
                pass
            else:
                self = super().__new__(cls)
                self._center = center
                return self

        return BezierPath(points, req_length)

    def __init__(self, points, req_length):
        super().__init__(points, req_length)

        head, middle, tail = (
            math.atan2(p.y - self._center.y, p.x - self._center.x)
            for p in points
        )
        tau = 2 * math.pi

        # counter-clockwise unless the middle point is on the other side
        sweep = (tail - head) % tau
        if (middle - head) % tau > sweep:
            sweep -= tau

        arc_length = abs(sweep) * distance(points[0], self._center)
        if arc_length > req_length:
            sweep *= req_length / arc_length
        self._sweep = sweep

    def __call__(self, t):
        return rotate(self.points[0], self._center, self._sweep * t)


def circumcenter(a, b, c):
    """The center of the circle through three points.

    Parameters
    ----------
    a, b, c : Position
        The three positions.

    Returns
    -------
    center : Position
        The center of the circle.

    Raises
    ------
    ValueError
        Raised when the points are not distinct or are collinear.
    """
    a, b, c = np.array([a, b, c], dtype=np.float64)

    a_squared = np.sum(np.square(b - c))
    b_squared = np.sum(np.square(a - c))
    c_squared = np.sum(np.square(a - b))

    if np.isclose([a_squared, b_squared, c_squared], 0).any():
        raise ValueError('points are not distinct')

    # barycentric weights of the circumcenter
    s = a_squared * (b_squared + c_squared - a_squared)
    t = b_squared * (a_squared + c_squared - b_squared)
    u = c_squared * (a_squared + b_squared - c_squared)
    total = s + t + u

    if np.isclose(total, 0):
        raise ValueError('points are collinear')

    return Position(*((s * a + t * b + u * c) / total).tolist())


def rotate(position, center, radians):
    """Rotate ``position`` counter-clockwise about ``center``.
    """
    dx = position.x - center.x
    dy = position.y - center.y
    cos = math.cos(radians)
    sin = math.sin(radians)

    return Position(
        center.x + dx * cos - dy * sin,
        center.y + dx * sin + dy * cos,
    )
