from collections import namedtuple
import math


class Position(namedtuple('Position', 'x y')):
    """A position on the osu! screen.

    Parameters
    ----------
    x : int or float
        The x coordinate in the range.
    y : int or float
        The y coordinate in the range.

    Notes
    -----
    The visible region of the osu! standard playfield is [0, 512] by [0, 384].
    Positions may fall outside of this range for slider curve control points.
    """
    x_max = 512
    y_max = 384

    def __add__(self, other):
        return type(self)(self.x + other.x, self.y + other.y)

    def __sub__(self, other):
        return type(self)(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar):
        return type(self)(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar):
        return type(self)(self.x / scalar, self.y / scalar)

    def length(self):
        """The distance from the origin to this position.
        """
        return math.hypot(self.x, self.y)

    def dot(self, other):
        return self.x * other.x + self.y * other.y

    def is_finite(self):
        return math.isfinite(self.x) and math.isfinite(self.y)

    def flip_y(self):
        """This position reflected over the horizontal center line, as with
        :data:`~starpp.mod.Mod.hard_rock`.
        """
        return type(self)(self.x, self.y_max - self.y)

    def flip_x(self):
        """This position reflected over the vertical center line, as with
        :data:`~starpp.mod.Mod.mirror`.
        """
        return type(self)(self.x_max - self.x, self.y)


class Point(namedtuple('Point', 'x y offset')):
    """A position and time on the osu! screen.

    Parameters
    ----------
    x : int or float
        The x coordinate in the range.
    y : int or float
        The y coordinate in the range.
    offset : timedelta
        The time
    """


def distance(start, end):
    return math.hypot(start.x - end.x, start.y - end.y)
