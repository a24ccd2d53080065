"""Strain skills for osu!catch.
"""
from collections import namedtuple
import math

from ..utils import clamp
from .strain import strain_decay


class Fruit(namedtuple('Fruit', 'start_time x is_droplet')):
    """An object the catcher has to catch to keep combo.

    Parameters
    ----------
    start_time : float
        When the object must be caught in milliseconds.
    x : float
        The horizontal position in osu! pixels.
    is_droplet : bool
        Whether this is a droplet from a slider rather than a fruit.
    """


def catch_objects(hit_objects):
    """Flatten normalized objects into the fruits and droplets which must be
    caught.

    Parameters
    ----------
    hit_objects : sequence[NormalizedObject]
        The normalized objects ordered by time.

    Returns
    -------
    fruits : list[Fruit]
        The fruits and droplets ordered by time.
    tiny_droplets : int
        The number of tiny droplets, which give accuracy but no combo.
    """
    fruits = []
    tiny_droplets = 0

    for ob in hit_objects:
        if ob.is_slider:
            fruits.append(Fruit(ob.start_time, ob.position.x, False))

            previous_time = ob.start_time
            last = len(ob.path) - 1
            for n, (time, position) in enumerate(ob.path):
                # the slider tail is a full fruit
                fruits.append(Fruit(time, position.x, n != last))
                tiny_droplets += _tiny_droplets_between(previous_time, time)
                previous_time = time

        elif ob.is_circle:
            fruits.append(Fruit(ob.start_time, ob.position.x, False))

    fruits.sort(key=lambda f: f.start_time)
    return fruits, tiny_droplets


def _tiny_droplets_between(start, end):
    gap = end - start
    if gap <= 0:
        return 0

    interval = gap
    while interval > 100:
        interval /= 2

    return max(0, int(round(gap / interval)) - 1)


def catcher_width(cs):
    """The width of the area of the catcher which can catch fruit.
    """
    return 106.75 * abs(1 - 0.7 * (cs - 5) / 5) * 0.8


class CatchDifficultyObject:
    """A fruit paired with the fruit before it.

    Parameters
    ----------
    base : Fruit
        The fruit being caught.
    last : Fruit
        The fruit before ``base``.
    half_catcher_width : float
        Half of the catcher width in osu! pixels.
    index : int
        The index of this object in ``objects``.
    objects : list[CatchDifficultyObject]
        All of the difficulty objects of the map.
    """
    normalized_radius = 41
    min_strain_time = 40

    def __init__(self, base, last, half_catcher_width, index, objects):
        self.base = base
        self.index = index
        self._objects = objects

        scaling_factor = self.normalized_radius / half_catcher_width
        self.normalized_position = base.x * scaling_factor
        self.last_normalized_position = last.x * scaling_factor

        self.start_time = base.start_time
        self.delta_time = base.start_time - last.start_time
        self.strain_time = max(self.min_strain_time, self.delta_time)

    def previous(self, n):
        ix = self.index - (n + 1)
        if ix < 0:
            return None
        return self._objects[ix]


def difficulty_objects(fruits, cs):
    """Pair each fruit with the fruit before it.

    Parameters
    ----------
    fruits : list[Fruit]
        The fruits ordered by time.
    cs : float
        The circle size after mods.

    Returns
    -------
    difficulty_objects : list[CatchDifficultyObject]
        One difficulty object for every fruit after the first.
    """
    half_catcher_width = catcher_width(cs) / 2
    # the catcher is harder to position with small fruit
    half_catcher_width *= 1 - max(0, cs - 5.5) * 0.0625

    objects = []
    for n in range(1, len(fruits)):
        objects.append(CatchDifficultyObject(
            fruits[n],
            fruits[n - 1],
            half_catcher_width,
            len(objects),
            objects,
        ))
    return objects


class Movement:
    """Movement, the difficulty of moving the catcher between fruits.

    Parameters
    ----------
    clock_rate : float
        The speed multiplier of the map.
    """
    name = 'movement'
    section_length = 750
    skill_multiplier = 900
    decay_base = 0.2
    decay_weight = 0.94

    absolute_player_positioning_error = 16
    normalized_radius = 41
    direction_change_bonus = 21

    def __init__(self, clock_rate):
        self.catcher_speed_multiplier = clock_rate
        self._current_strain = 0.0
        self._last_player_position = None
        self._last_distance_moved = 0.0
        self._last_strain_time = 0.0

    def strain_value_at(self, current):
        self._current_strain *= strain_decay(
            self.decay_base,
            current.delta_time,
        )
        self._current_strain += (
            self._strain_value_of(current) * self.skill_multiplier
        )
        return self._current_strain

    def initial_strain(self, time, current):
        return self._current_strain * strain_decay(
            self.decay_base,
            time - current.previous(0).start_time,
        )

    def _strain_value_of(self, current):
        error = self.absolute_player_positioning_error
        radius = self.normalized_radius

        if self._last_player_position is None:
            self._last_player_position = current.last_normalized_position

        player_position = clamp(
            self._last_player_position,
            current.normalized_position - (radius - error),
            current.normalized_position + (radius - error),
        )
        distance_moved = player_position - self._last_player_position

        weighted_strain_time = (
            current.strain_time + 13 + (3 / self.catcher_speed_multiplier)
        )

        distance_addition = abs(distance_moved) ** 1.3 / 510
        sqrt_strain = math.sqrt(weighted_strain_time)

        if abs(distance_moved) > 0.1:
            last_distance_moved = self._last_distance_moved
            if abs(last_distance_moved) > 0.1 and (
                    math.copysign(1, distance_moved) !=
                    math.copysign(1, last_distance_moved)):
                # changing direction is harder than continuing
                bonus_factor = min(50, abs(distance_moved) - error) / 50
                antiflow_factor = max(
                    min(70, abs(last_distance_moved) - error) / 70,
                    0.38,
                )
                distance_addition += (
                    self.direction_change_bonus /
                    math.sqrt(self._last_strain_time + 16) *
                    bonus_factor *
                    antiflow_factor *
                    max(1 - (weighted_strain_time / 1000) ** 3, 0)
                )

            distance_addition += (
                12.5 *
                min(abs(distance_moved), radius * 2) /
                (radius * 6) /
                sqrt_strain
            )

        self._last_player_position = player_position
        self._last_distance_moved = distance_moved
        self._last_strain_time = current.strain_time

        return distance_addition / weighted_strain_time
