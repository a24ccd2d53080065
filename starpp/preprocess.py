from collections import namedtuple
from fractions import Fraction
import logging

from .beatmap import Circle, Slider, Spinner, HoldNote
from .errors import ComputationFailed
from .game_mode import GameMode
from .mod import Mod, ModifierSet, MapAttributes, ar_to_ms, circle_radius
from .position import Position, distance
from .utils import clamp, milliseconds


log = logging.getLogger(__name__)


class NormalizedObject(namedtuple('NormalizedObject', [
        'index',
        'kind',
        'start_time',
        'end_time',
        'position',
        'end_position',
        'path',
        'column',
        'hitsound',
])):
    """A hit object after mods have been applied.

    Parameters
    ----------
    index : int
        The position of the source object in the beatmap.
    kind : {'circle', 'slider', 'spinner', 'hold'}
        The kind of the source object.
    start_time : float
        When the object starts in milliseconds, after the clock rate.
    end_time : float
        When the object ends in milliseconds, after the clock rate.
    position : Position
        The position after flips and stacking.
    end_position : Position
        Where the object ends. This is ``position`` for everything except
        sliders.
    path : tuple[tuple[float, Position]]
        The time and position of each slider tick, repeat and the slider
        tail. Empty for everything except sliders.
    column : int or None
        The osu!mania column of the object.
    hitsound : int
        The hitsound of the source object.
    """

    @property
    def is_circle(self):
        return self.kind == 'circle'

    @property
    def is_slider(self):
        return self.kind == 'slider'

    @property
    def is_spinner(self):
        return self.kind == 'spinner'

    @property
    def is_hold(self):
        return self.kind == 'hold'

    @property
    def duration(self):
        return self.end_time - self.start_time


def map_attributes(beatmap, mods):
    """The beatmap settings after applying ``mods``.

    Parameters
    ----------
    beatmap : Beatmap
        The beatmap.
    mods : ModifierSet
        The mods to apply.

    Returns
    -------
    attributes : MapAttributes
        The adjusted settings.
    """
    attributes = MapAttributes.from_settings(
        beatmap.approach_rate,
        beatmap.overall_difficulty,
        beatmap.circle_size,
        beatmap.hp_drain_rate,
        mods,
    )
    if beatmap.mode == GameMode.mania:
        # the circle size of an osu!mania map is the number of keys
        attributes = attributes._replace(cs=beatmap.circle_size)
    return attributes


def key_count(beatmap):
    """The number of columns in an osu!mania map.
    """
    return max(1, int(round(beatmap.circle_size)))


def _stack_threshold(beatmap, mods):
    # stacking uses the approach rate without the clock rate
    ar = min(beatmap.approach_rate * mods.od_ar_hp_multiplier, 10)
    return ar_to_ms(ar) * beatmap.stack_leniency


def _end_ms(ob):
    return milliseconds(ob.end_time)


def stack_heights(hit_objects, threshold):
    """Compute the stack height of each object for beatmap versions 6 and
    up.

    Parameters
    ----------
    hit_objects : list[HitObject]
        The objects to resolve stacking for, sorted by time.
    threshold : float
        The maximum number of milliseconds between stacked objects.

    Returns
    -------
    heights : list[int]
        The stack height of each object. Positive heights move an object up
        and to the left.
    """
    stack_dist = 3
    count = len(hit_objects)
    heights = [0] * count

    # walk backwards through the map
    for i in reversed(range(count)):
        ob_i = hit_objects[i]
        if heights[i] != 0 or isinstance(ob_i, Spinner):
            continue

        if isinstance(ob_i, Circle):
            base = i
            for n in reversed(range(i)):
                ob_n = hit_objects[n]
                if isinstance(ob_n, Spinner):
                    continue

                if milliseconds(hit_objects[base].time) - _end_ms(ob_n) > (
                        threshold):
                    break

                if (isinstance(ob_n, Slider) and
                        distance(ob_n.curve.end,
                                 hit_objects[base].position) < stack_dist):
                    offset = heights[base] - heights[n] + 1

                    # objects declared under this slider are moved below the
                    # slider end
                    for j in range(n + 1, i + 1):
                        if distance(ob_n.curve.end,
                                    hit_objects[j].position) < stack_dist:
                            heights[j] -= offset

                    # the slider is still at height 0 and will be visited as
                    # the base of its own stack
                    break

                if distance(ob_n.position,
                            hit_objects[base].position) < stack_dist:
                    heights[n] = heights[base] + 1
                    base = n

        elif isinstance(ob_i, Slider):
            base = i
            for n in reversed(range(i)):
                ob_n = hit_objects[n]
                if isinstance(ob_n, Spinner):
                    continue

                if milliseconds(hit_objects[base].time - ob_n.time) > (
                        threshold):
                    break

                if isinstance(ob_n, Slider):
                    end_position = ob_n.curve.end
                else:
                    end_position = ob_n.position

                if distance(end_position,
                            hit_objects[base].position) < stack_dist:
                    heights[n] = heights[base] + 1
                    base = n

    return heights


def stack_heights_old(hit_objects, threshold):
    """Compute the stack height of each object for beatmap versions 5 and
    below.

    Parameters
    ----------
    hit_objects : list[HitObject]
        The objects to resolve stacking for, sorted by time.
    threshold : float
        The maximum number of milliseconds between stacked objects.

    Returns
    -------
    heights : list[int]
        The stack height of each object.
    """
    stack_dist = 3
    count = len(hit_objects)
    heights = [0] * count

    for i, ob_i in enumerate(hit_objects):
        if heights[i] != 0 and not isinstance(ob_i, Slider):
            continue

        start_time = _end_ms(ob_i)
        slider_stack = 0

        for j in range(i + 1, count):
            ob_j = hit_objects[j]
            if milliseconds(ob_j.time) - threshold > start_time:
                break

            if distance(ob_j.position, ob_i.position) < stack_dist:
                heights[i] += 1
                start_time = _end_ms(ob_j)

            elif (isinstance(ob_i, Slider) and
                  distance(ob_j.position, ob_i.curve.end) < stack_dist):
                # notes after a slider end are bumped down and right
                slider_stack += 1
                heights[j] -= slider_stack
                start_time = _end_ms(ob_j)

    return heights


def _kind(ob):
    if isinstance(ob, Slider):
        return 'slider'
    if isinstance(ob, HoldNote):
        return 'hold'
    if isinstance(ob, Spinner):
        return 'spinner'
    return 'circle'


def normalize(beatmap, mods=None):
    """Apply mods to the hit objects of a beatmap.

    Parameters
    ----------
    beatmap : Beatmap
        The beatmap to normalize.
    mods : ModifierSet or any, optional
        The mods to apply. Anything accepted by :class:`ModifierSet` may be
        passed.

    Returns
    -------
    objects : tuple[NormalizedObject]
        The objects ordered by start time. Objects with the same start time
        keep their order in the beatmap.

    Raises
    ------
    InvalidModifierCombination
        Raised when ``mods`` is not a valid modifier set.
    ComputationFailed
        Raised when a difficulty setting is out of range or a hit object is
        malformed.
    """
    if not isinstance(mods, ModifierSet):
        mods = ModifierSet(mods)

    problem = beatmap.validate()
    if problem is not None:
        raise ComputationFailed(f'{beatmap!r} is malformed: {problem}')

    source = beatmap.hit_objects()
    for n, ob in enumerate(source):
        problem = ob.validate()
        if problem is not None:
            raise ComputationFailed(f'hit object {n} is malformed: {problem}')

    # ``sorted`` is stable so ties keep their input order
    order = sorted(range(len(source)), key=lambda n: source[n].time)
    hit_objects = [source[n] for n in order]

    mode = beatmap.mode
    if mode == GameMode.standard and Mod.hard_rock in mods:
        hit_objects = [ob.transformed(Position.flip_y) for ob in hit_objects]
    if mode in (GameMode.standard, GameMode.ctb) and Mod.mirror in mods:
        hit_objects = [ob.transformed(Position.flip_x) for ob in hit_objects]

    if mode == GameMode.standard and hit_objects:
        threshold = _stack_threshold(beatmap, mods)
        if beatmap.format_version >= 6:
            heights = stack_heights(hit_objects, threshold)
        else:
            heights = stack_heights_old(hit_objects, threshold)
        stack_offset = circle_radius(map_attributes(beatmap, mods).cs) / 10
    else:
        heights = [0] * len(hit_objects)
        stack_offset = 0

    passed_objects = mods.passed_objects
    if passed_objects is not None:
        hit_objects = hit_objects[:passed_objects]

    if mode == GameMode.mania:
        keys = key_count(beatmap)
    coefficient = mods.time_coefficient

    def scale(delta):
        return float(Fraction(milliseconds(delta)) * coefficient)

    out = []
    for n, ob in enumerate(hit_objects):
        offset = stack_offset * heights[n]
        shift = Position(offset, offset)
        position = Position(*ob.position) - shift

        if isinstance(ob, Slider):
            end_position = Position(*ob.end_position) - shift
            path = tuple(
                (scale(p.offset), Position(p.x, p.y) - shift)
                for p in ob.tick_points
            )
        else:
            end_position = position
            path = ()

        if mode == GameMode.mania:
            column = clamp(int(ob.position.x * keys / 512), 0, keys - 1)
            if Mod.mirror in mods:
                column = keys - 1 - column
        else:
            column = None

        out.append(NormalizedObject(
            index=order[n],
            kind=_kind(ob),
            start_time=scale(ob.time),
            end_time=scale(ob.end_time),
            position=position,
            end_position=end_position,
            path=path,
            column=column,
            hitsound=ob.hitsound,
        ))

    log.debug(
        'normalized %d objects of %r with %s',
        len(out),
        beatmap,
        mods,
    )
    return tuple(out)
