from datetime import timedelta
import inspect
from itertools import chain, islice, cycle
import json
import math
import uuid

import numpy as np

from .curve import Curve
from .game_mode import GameMode
from .position import Position, Point
from .utils import clamp, lazyval


class TimingPoint:
    """A change of tempo or slider velocity at an offset into a beatmap.

    Parameters
    ----------
    offset : timedelta
        When this point takes effect.
    ms_per_beat : float
        For an uninherited point, the length of a beat in milliseconds. An
        inherited point stores a negative percentage of the slider velocity
        instead: ``-50`` makes sliders twice as fast.
    parent : TimingPoint, optional
        The uninherited point which an inherited point takes its beat length
        from.
    """
    # osu! clamps the velocity of inherited points to this range
    min_velocity = 0.1
    max_velocity = 10.0

    def __init__(self, offset, ms_per_beat, parent=None):
        self.offset = offset
        self.ms_per_beat = ms_per_beat
        self.parent = parent

    @property
    def inherited(self):
        return self.parent is not None

    @property
    def beat_length(self):
        """The milliseconds per beat in effect at this point.
        """
        if self.parent is not None:
            return self.parent.beat_length
        return self.ms_per_beat

    @property
    def velocity_multiplier(self):
        """How much faster than the base slider velocity sliders move.
        """
        if self.parent is None:
            return 1.0
        return clamp(
            -100 / self.ms_per_beat,
            self.min_velocity,
            self.max_velocity,
        )

    @property
    def bpm(self):
        return 60000 / self.beat_length

    def __repr__(self):
        if self.parent is None:
            inherited = ''
        else:
            inherited = 'inherited '
        return (
            f'<{type(self).__qualname__}:'
            f' {inherited}{self.offset.total_seconds() * 1000:g}ms>'
        )


def timing_point_at(timing_points, time):
    """The timing point in effect at ``time``.

    Parameters
    ----------
    timing_points : sequence[TimingPoint]
        The timing points of a map, ordered by offset.
    time : timedelta
        The time to look up.

    Returns
    -------
    timing_point : TimingPoint
        The last point at or before ``time``, or the first point when
        ``time`` is before every point.
    """
    for tp in reversed(timing_points):
        if tp.offset <= time:
            return tp
    return timing_points[0]


class HitObject:
    """An abstract hit element.

    Parameters
    ----------
    position : Position
        Where this element appears on the screen.
    time : timedelta
        When this element appears in the map.
    hitsound : int
        The hitsound to play when this object is hit. osu!taiko uses this to
        decide the colour of a note.

    Notes
    -----
    Hit objects are never modified after construction. Mods are applied by
    building new objects, see :meth:`transformed`.
    """

    def __init__(self, position, time, hitsound=0):
        self.position = position
        self.time = time
        self.hitsound = hitsound

    def __repr__(self):
        return (
            f'<{type(self).__qualname__}: {self.position},'
            f' {self.time.total_seconds() * 1000:g}ms>'
        )

    @property
    def end_time(self):
        return self.time

    def _modify(self, **changes):
        kwargs = {}
        for name in inspect.signature(type(self)).parameters:
            kwargs[name] = changes.get(name, getattr(self, name))
        return type(self)(**kwargs)

    def transformed(self, f):
        """This ``HitObject`` with ``f`` applied to its position, for example
        :meth:`Position.flip_y` for :data:`~starpp.mod.Mod.hard_rock`.

        Parameters
        ----------
        f : callable[Position, Position]
            The transformation.

        Returns
        -------
        modified : HitObject
            The modified hit object.
        """
        return self._modify(position=f(self.position))

    def validate(self):
        """Check that this object is well formed.

        Returns
        -------
        problem : str or None
            A description of the first problem found, or None.
        """
        if not Position(*self.position).is_finite():
            return f'position is not finite: {self.position}'
        if self.end_time < self.time:
            return (
                f'end time {self.end_time} is before start time {self.time}'
            )
        return None

    def to_json(self):
        return {
            'type': self.type_name,
            'x': self.position.x,
            'y': self.position.y,
            'time': self.time.total_seconds() * 1000,
            'hitsound': self.hitsound,
        }


class Circle(HitObject):
    """A circle hit element.

    Parameters
    ----------
    position : Position
        Where this circle appears on the screen.
    time : timedelta
        When this circle appears in the map.
    """
    type_code = 1
    type_name = 'circle'


class Spinner(HitObject):
    """A spinner hit element

    Parameters
    ----------
    position : Position
        Where this spinner appears on the screen.
    time : timedelta
        When this spinner appears in the map.
    end_time : timedelta
        When this spinner ends in the map.
    """
    type_code = 8
    type_name = 'spinner'

    def __init__(self, position, time, end_time, hitsound=0):
        super().__init__(position, time, hitsound)
        self._end_time = end_time

    @property
    def end_time(self):
        return self._end_time

    def to_json(self):
        out = super().to_json()
        out['end_time'] = self.end_time.total_seconds() * 1000
        return out


class HoldNote(Spinner):
    """A HoldNote hit element.

    Parameters
    ----------
    position : Position
        Where this HoldNote appears on the screen. Only ``x`` is used, it
        picks the column.
    time : timedelta
        When this HoldNote appears in the map.
    end_time : timedelta
        When this HoldNote must be released.

    Notes
    -----
    A ``HoldNote`` can only appear in an osu!mania map.
    """
    type_code = 128
    type_name = 'hold'


class Slider(HitObject):
    """A slider hit element.

    Parameters
    ----------
    position : Position
        Where this slider appears on the screen.
    time : datetime.timedelta
        When this slider appears in the map.
    end_time : datetime.timedelta
        When this slider ends in the map
    hitsound : int
        The sound played on the ticks of the slider.
    curve : Curve
        The slider's curve function.
    repeat : int
        The number of times the slider is traversed; 1 means no repeats.
    length : float
        The length of this slider in osu! pixels.
    num_beats : float
        The number of beats that this slider spans.
    tick_rate : float
        The number of slider ticks per beat.
    ms_per_beat : float
        The milliseconds per beat during the segment of the beatmap that this
        slider appears in.
    """
    type_code = 2
    type_name = 'slider'

    def __init__(self,
                 position,
                 time,
                 end_time,
                 hitsound,
                 curve,
                 repeat,
                 length,
                 num_beats,
                 tick_rate,
                 ms_per_beat):
        super().__init__(position, time, hitsound)
        self._end_time = end_time
        self.curve = curve
        self.repeat = repeat
        self.length = length
        self.num_beats = num_beats
        self.tick_rate = tick_rate
        self.ms_per_beat = ms_per_beat

    @property
    def end_time(self):
        return self._end_time

    def transformed(self, f):
        return self._modify(
            position=f(self.position),
            curve=self.curve.transform(f),
        )

    @lazyval
    def end_position(self):
        """Where the slider ends: the tail for an odd number of spans, the
        head for an even number.
        """
        if self.repeat % 2:
            return self.curve.end
        return self.position

    @lazyval
    def ticks(self):
        """The number of combo-giving parts of the slider: the head, each
        tick, each repeat and the tail.
        """
        return 1 + len(self.tick_points)

    @lazyval
    def tick_points(self):
        """The position and time of each slider tick, repeat and the tail.
        """
        repeat = self.repeat

        time = self.time
        repeat_duration = (self.end_time - time) / repeat

        curve = self.curve

        pre_repeat_ticks = []
        append_tick = pre_repeat_ticks.append

        beats_per_repeat = self.num_beats / repeat
        # tick_rate is the number of ticks per beat
        for n in range(1, math.ceil(beats_per_repeat * self.tick_rate)):
            t = n / self.tick_rate
            if np.isclose(t, beats_per_repeat):
                # a tick on the tail is the tail
                break

            pos = curve(t / beats_per_repeat)
            timediff = timedelta(milliseconds=t * self.ms_per_beat)
            append_tick(Point(pos.x, pos.y, time + timediff))

        pos = curve.end
        timediff = repeat_duration
        append_tick(Point(pos.x, pos.y, time + timediff))

        repeat_ticks = [
            Point(p.x, p.y, pre_repeat_tick.offset)
            for pre_repeat_tick, p in zip(
                pre_repeat_ticks,
                chain(pre_repeat_ticks[-2::-1], [self.position])
            )
        ]

        tick_sequences = islice(
            cycle([pre_repeat_ticks, repeat_ticks]),
            repeat,
        )
        return list(
            chain.from_iterable(
                (
                    Point(p.x, p.y, p.offset + n * repeat_duration)
                    for p in tick_sequence
                )
                for n, tick_sequence in enumerate(tick_sequences)
            ),
        )

    def validate(self):
        problem = super().validate()
        if problem is not None:
            return problem
        if self.repeat < 1:
            return f'slider repeat must be at least 1, got {self.repeat!r}'
        if not np.isfinite(self.length) or self.length < 0:
            return f'slider length must be finite, got {self.length!r}'
        if self.ms_per_beat <= 0 or self.tick_rate <= 0:
            return (
                'slider timing must be positive, got'
                f' ms_per_beat={self.ms_per_beat!r}'
                f' tick_rate={self.tick_rate!r}'
            )
        return None

    @classmethod
    def from_timing(cls,
                    position,
                    time,
                    hitsound,
                    curve_kind,
                    points,
                    repeat,
                    length,
                    timing_points,
                    slider_multiplier,
                    slider_tick_rate):
        """Build a slider, deriving its duration and ticks from the timing
        points of the map.

        Parameters
        ----------
        position : Position
            The slider head.
        time : timedelta
            When the slider starts.
        hitsound : int
            The slider hitsound.
        curve_kind : {'B', 'L', 'P', 'C'}
            The curve type.
        points : list[Position]
            The control points after the head.
        repeat : int
            The number of spans.
        length : float
            The length of one span in osu! pixels.
        timing_points : list[TimingPoint]
            The timing points in the map.
        slider_multiplier : float
            The slider multiplier for computing slider end_time and ticks.
        slider_tick_rate : float
            The slider tick rate for computing slider end_time and ticks.

        Returns
        -------
        slider : Slider
            The slider.
        """
        if not timing_points:
            raise ValueError('a slider needs at least one timing point')

        tp = timing_point_at(timing_points, time)
        ms_per_beat = tp.beat_length
        pixels_per_beat = slider_multiplier * 100 * tp.velocity_multiplier
        num_beats = (
            (length * repeat) / pixels_per_beat
        )
        duration = timedelta(milliseconds=int(num_beats * ms_per_beat))

        return cls(
            position,
            time,
            time + duration,
            hitsound,
            Curve.from_kind_and_points(
                curve_kind,
                [position, *points],
                length,
            ),
            repeat,
            length,
            num_beats,
            slider_tick_rate,
            ms_per_beat,
        )

    def to_json(self):
        out = super().to_json()
        out.update(
            curve=self.curve.kind,
            points=[[p.x, p.y] for p in self.curve.points[1:]],
            repeat=self.repeat,
            length=self.length,
        )
        return out


_hit_object_types = {
    tp.type_name: tp for tp in (Circle, Slider, Spinner, HoldNote)
}


class Beatmap:
    """The parts of a beatmap needed to compute difficulty and performance.

    Parameters
    ----------
    mode : GameMode
        The game mode.
    hp_drain_rate : float
        The ``HP`` attribute of the beatmap.
    circle_size : float
        The ``CS`` attribute of the beatmap. For osu!mania this is the number
        of keys.
    overall_difficulty : float
        The ``OD`` attribute of the beatmap.
    approach_rate : float
        The ``AR`` attribute of the beatmap.
    hit_objects : list[HitObject]
        The hit objects in the map.
    slider_multiplier : float, optional
        The multiplier for slider velocity.
    slider_tick_rate : float, optional
        How often slider ticks appear.
    stack_leniency : float, optional
        How often closely placed hit objects will be placed together.
    format_version : int, optional
        The version of the beatmap file, this changes how stacks are
        resolved.
    timing_points : list[TimingPoint], optional
        The timing points the the map.
    beatmap_id : int, optional
        The id of this single beatmap.
    beatmap_md5 : str, optional
        The md5 of the beatmap file.
    identity : hashable, optional
        The identity used to cache difficulty results. Defaults to
        ``beatmap_md5``, then ``beatmap_id``. A beatmap with none of these
        gets a random uuid, so it never shares cache entries.
    """
    def __init__(self,
                 *,
                 mode,
                 hp_drain_rate,
                 circle_size,
                 overall_difficulty,
                 approach_rate,
                 hit_objects,
                 slider_multiplier=1.4,
                 slider_tick_rate=1.0,
                 stack_leniency=0.7,
                 format_version=14,
                 timing_points=(),
                 beatmap_id=None,
                 beatmap_md5=None,
                 identity=None):
        self.mode = GameMode.parse(mode)
        self.hp_drain_rate = hp_drain_rate
        self.circle_size = circle_size
        self.overall_difficulty = overall_difficulty
        self.approach_rate = approach_rate
        self.slider_multiplier = slider_multiplier
        self.slider_tick_rate = slider_tick_rate
        self.stack_leniency = stack_leniency
        self.format_version = format_version
        self.timing_points = tuple(timing_points)
        self._hit_objects = tuple(hit_objects)
        self.beatmap_id = beatmap_id
        self.beatmap_md5 = beatmap_md5
        if identity is None and beatmap_md5 is None and beatmap_id is None:
            # anonymous beatmaps never share an identity
            identity = uuid.uuid4()
        self._identity = identity

    @property
    def identity(self):
        """The hashable identity of this beatmap.
        """
        if self._identity is not None:
            return self._identity
        if self.beatmap_md5 is not None:
            return self.beatmap_md5
        return self.beatmap_id

    def __repr__(self):
        return (
            f'<{type(self).__qualname__}: {self.mode.name},'
            f' {len(self._hit_objects)} objects, identity={self.identity!r}>'
        )

    # the ranges the game allows for the difficulty settings
    setting_ranges = {
        'hp_drain_rate': (0, 10),
        'circle_size': (0, 10),
        'overall_difficulty': (0, 10),
        'approach_rate': (0, 10),
    }
    # in osu!mania the circle size is the number of keys
    mania_key_range = (1, 18)

    def validate(self):
        """Check that the difficulty settings of this beatmap are in range.

        Returns
        -------
        problem : str or None
            A description of the first problem found, or None.
        """
        for name, (lower, upper) in self.setting_ranges.items():
            if name == 'circle_size' and self.mode == GameMode.mania:
                lower, upper = self.mania_key_range

            value = getattr(self, name)
            if not (np.isfinite(value) and lower <= value <= upper):
                return (
                    f'{name} must be in [{lower}, {upper}], got {value!r}'
                )
        return None

    def hit_objects(self,
                    *,
                    circles=True,
                    sliders=True,
                    spinners=True,
                    hold_notes=True):
        """Retrieve hit_objects.

        Parameters
        ----------
        circles : bool, optional
            If circles should be included.
        sliders : bool, optional
            If sliders should be included.
        spinners : bool, optional
            If spinners should be included.
        hold_notes : bool, optional
            If hold notes should be included.

        Returns
        -------
        hit_objects : tuple[HitObject]
            The objects in the order they were given.
        """
        keep_classes = []
        if spinners:
            keep_classes.append(Spinner)
        if circles:
            keep_classes.append(Circle)
        if sliders:
            keep_classes.append(Slider)
        if hold_notes:
            keep_classes.append(HoldNote)

        keep_classes = tuple(keep_classes)
        return tuple(
            ob for ob in self._hit_objects
            if isinstance(ob, keep_classes) and (
                # HoldNote subclasses Spinner
                spinners or not type(ob) is Spinner
            ) and (
                hold_notes or not isinstance(ob, HoldNote)
            )
        )

    def __len__(self):
        return len(self._hit_objects)

    @lazyval
    def circles(self):
        return self.hit_objects(
            sliders=False,
            spinners=False,
            hold_notes=False,
        )

    @lazyval
    def sliders(self):
        return self.hit_objects(
            circles=False,
            spinners=False,
            hold_notes=False,
        )

    @lazyval
    def spinners(self):
        return self.hit_objects(circles=False, sliders=False, hold_notes=False)

    @lazyval
    def max_combo(self):
        """The highest combo that can be achieved on this beatmap in
        osu!standard.
        """
        max_combo = 0

        for hit_object in self._hit_objects:
            if isinstance(hit_object, Slider):
                max_combo += hit_object.ticks
            else:
                max_combo += 1

        return max_combo

    @classmethod
    def from_json(cls, data):
        """Build a beatmap from the JSON description used by the command line
        interface.

        Parameters
        ----------
        data : str or dict
            The JSON document or an already decoded mapping.

        Returns
        -------
        beatmap : Beatmap
            The beatmap.

        Raises
        ------
        ValueError
            Raised when the description is malformed.
        """
        if isinstance(data, (str, bytes)):
            data = json.loads(data)

        try:
            timing_points = []
            parent = None
            for raw in data.get('timing_points', ()):
                inherited = raw.get('inherited', False)
                tp = TimingPoint(
                    offset=timedelta(milliseconds=raw['offset']),
                    ms_per_beat=raw['ms_per_beat'],
                    parent=parent if inherited else None,
                )
                if not inherited:
                    parent = tp
                timing_points.append(tp)

            slider_multiplier = data.get('slider_multiplier', 1.4)
            slider_tick_rate = data.get('slider_tick_rate', 1.0)
            hit_objects = [
                _hit_object_from_json(
                    raw,
                    timing_points,
                    slider_multiplier,
                    slider_tick_rate,
                )
                for raw in data['hit_objects']
            ]

            return cls(
                mode=data.get('mode', GameMode.standard),
                hp_drain_rate=data['hp'],
                circle_size=data['cs'],
                overall_difficulty=data['od'],
                approach_rate=data.get('ar', data['od']),
                slider_multiplier=slider_multiplier,
                slider_tick_rate=slider_tick_rate,
                stack_leniency=data.get('stack_leniency', 0.7),
                format_version=data.get('format_version', 14),
                timing_points=timing_points,
                hit_objects=hit_objects,
                beatmap_id=data.get('beatmap_id'),
                beatmap_md5=data.get('beatmap_md5'),
            )
        except KeyError as e:
            raise ValueError(f'missing field {e} in beatmap description')

    def to_json(self):
        """The JSON compatible description of this beatmap.

        See Also
        --------
        :meth:`starpp.beatmap.Beatmap.from_json`
        """
        timing_points = []
        for tp in self.timing_points:
            timing_points.append({
                'offset': tp.offset.total_seconds() * 1000,
                'ms_per_beat': tp.ms_per_beat,
                'inherited': tp.inherited,
            })

        return {
            'mode': int(self.mode),
            'hp': self.hp_drain_rate,
            'cs': self.circle_size,
            'od': self.overall_difficulty,
            'ar': self.approach_rate,
            'slider_multiplier': self.slider_multiplier,
            'slider_tick_rate': self.slider_tick_rate,
            'stack_leniency': self.stack_leniency,
            'format_version': self.format_version,
            'beatmap_id': self.beatmap_id,
            'beatmap_md5': self.beatmap_md5,
            'timing_points': timing_points,
            'hit_objects': [ob.to_json() for ob in self._hit_objects],
        }


def _hit_object_from_json(raw,
                          timing_points,
                          slider_multiplier,
                          slider_tick_rate):
    try:
        type_ = _hit_object_types[raw.get('type', 'circle')]
    except KeyError:
        raise ValueError(f'unknown hit object type: {raw.get("type")!r}')

    position = Position(raw.get('x', 0), raw.get('y', 0))
    time = timedelta(milliseconds=raw['time'])
    hitsound = raw.get('hitsound', 0)

    if type_ is Circle:
        return Circle(position, time, hitsound)

    if type_ is Slider:
        return Slider.from_timing(
            position,
            time,
            hitsound,
            raw.get('curve', 'B'),
            [Position(x, y) for x, y in raw['points']],
            raw.get('repeat', 1),
            raw['length'],
            timing_points,
            slider_multiplier,
            slider_tick_rate,
        )

    return type_(
        position,
        time,
        timedelta(milliseconds=raw['end_time']),
        hitsound,
    )
