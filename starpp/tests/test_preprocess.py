from datetime import timedelta
import math

import pytest

from starpp import (
    Beatmap,
    Circle,
    ComputationFailed,
    GameMode,
    HoldNote,
    ModifierSet,
    Position,
    Slider,
    Spinner,
    TimingPoint,
)
from starpp.preprocess import key_count, map_attributes, normalize


def ms(n):
    return timedelta(milliseconds=n)


def make_beatmap(hit_objects, mode=GameMode.standard, **kwargs):
    kwargs.setdefault('circle_size', 4)
    kwargs.setdefault('hp_drain_rate', 5)
    kwargs.setdefault('overall_difficulty', 8)
    kwargs.setdefault('approach_rate', 9)
    return Beatmap(
        mode=mode,
        timing_points=[TimingPoint(ms(0), 500)],
        hit_objects=hit_objects,
        **kwargs,
    )


def test_sorted_stably():
    beatmap = make_beatmap([
        Circle(Position(10, 10), ms(500)),
        Circle(Position(200, 10), ms(100)),
        Circle(Position(300, 10), ms(500)),
    ])
    objects = normalize(beatmap)

    assert [ob.index for ob in objects] == [1, 0, 2]
    assert [ob.start_time for ob in objects] == [100, 500, 500]


def test_hard_rock_flips():
    beatmap = make_beatmap([Circle(Position(100, 50), ms(0))])

    ob, = normalize(beatmap, 'HR')
    assert ob.position == Position(100, 334)

    # the source beatmap is not modified
    assert beatmap.circles[0].position == Position(100, 50)

    ob, = normalize(beatmap, 'MR')
    assert ob.position == Position(412, 50)


def test_flips_only_in_standard():
    beatmap = make_beatmap(
        [Circle(Position(100, 50), ms(0))],
        mode=GameMode.taiko,
    )
    ob, = normalize(beatmap, 'HR')
    assert ob.position == Position(100, 50)


def test_clock_rate():
    beatmap = make_beatmap([
        Circle(Position(0, 0), ms(300)),
        Spinner(Position(256, 192), ms(600), ms(1500)),
    ])

    fast = normalize(beatmap, 'DT')
    assert [ob.start_time for ob in fast] == [200, 400]
    assert fast[1].end_time == 1000
    assert fast[1].duration == 600

    slow = normalize(beatmap, 'HT')
    assert [ob.start_time for ob in slow] == [400, 800]


def test_passed_objects():
    beatmap = make_beatmap([
        Circle(Position(0, 0), ms(n * 1000)) for n in range(5)
    ])
    assert len(normalize(beatmap, ModifierSet(passed_objects=2))) == 2
    assert len(normalize(beatmap, ModifierSet(passed_objects=0))) == 0
    assert len(normalize(beatmap, ModifierSet(passed_objects=50))) == 5


def test_stacking():
    beatmap = make_beatmap([
        Circle(Position(100, 100), ms(0)),
        Circle(Position(100, 100), ms(100)),
    ])
    first, second = normalize(beatmap)

    # cs 4 gives a radius of 36.48
    assert first.position.x == pytest.approx(100 - 3.648)
    assert first.position.y == pytest.approx(100 - 3.648)
    assert second.position == Position(100, 100)


def test_no_stacking_outside_threshold():
    beatmap = make_beatmap([
        Circle(Position(100, 100), ms(0)),
        Circle(Position(100, 100), ms(5000)),
    ])
    first, second = normalize(beatmap)
    assert first.position == second.position == Position(100, 100)


def test_stacking_old_format():
    beatmap = make_beatmap(
        [
            Circle(Position(100, 100), ms(0)),
            Circle(Position(100, 100), ms(100)),
        ],
        format_version=5,
    )
    first, second = normalize(beatmap)
    assert first.position.x == pytest.approx(100 - 3.648)
    assert second.position == Position(100, 100)


def test_slider_path():
    slider = Slider.from_timing(
        Position(100, 100),
        ms(1000),
        0,
        'L',
        [Position(240, 100)],
        2,
        140,
        [TimingPoint(ms(0), 500)],
        1.4,
        1.0,
    )
    ob, = normalize(make_beatmap([slider]), 'DT')

    assert ob.is_slider
    assert ob.start_time == pytest.approx(1000 / 1.5)
    assert ob.end_time == pytest.approx(2000 / 1.5)
    # one repeat and the tail
    assert len(ob.path) == 2
    repeat, tail = ob.path
    assert repeat[0] == pytest.approx(1500 / 1.5)
    assert repeat[1].x == pytest.approx(240)
    assert tail[1].x == pytest.approx(100)
    assert ob.end_position.x == pytest.approx(100)


def test_mania_columns():
    beatmap = make_beatmap(
        [
            Circle(Position(0, 192), ms(0)),
            HoldNote(Position(200, 192), ms(0), ms(400)),
            Circle(Position(511, 192), ms(0)),
        ],
        mode=GameMode.mania,
    )
    assert key_count(beatmap) == 4

    objects = normalize(beatmap)
    assert [ob.column for ob in objects] == [0, 1, 3]
    assert [ob.kind for ob in objects] == ['circle', 'hold', 'circle']

    mirrored = normalize(beatmap, 'MR')
    assert [ob.column for ob in mirrored] == [3, 2, 0]


def test_mania_circle_size_is_key_count():
    beatmap = make_beatmap([], mode=GameMode.mania, circle_size=7)
    assert map_attributes(beatmap, ModifierSet('HR')).cs == 7


def test_malformed_object():
    beatmap = make_beatmap([
        Circle(Position(0, 0), ms(0)),
        Circle(Position(math.inf, 0), ms(10)),
    ])
    with pytest.raises(ComputationFailed):
        normalize(beatmap)


@pytest.mark.parametrize('setting,value', [
    ('approach_rate', 13),
    ('approach_rate', -1),
    ('overall_difficulty', 11),
    ('circle_size', math.nan),
    ('hp_drain_rate', math.inf),
])
def test_out_of_range_settings(setting, value):
    beatmap = make_beatmap(
        [Circle(Position(0, 0), ms(0))],
        **{setting: value},
    )
    assert setting in beatmap.validate()
    with pytest.raises(ComputationFailed):
        normalize(beatmap)


def test_mania_key_count_range():
    notes = [Circle(Position(0, 0), ms(0))]
    normalize(make_beatmap(notes, mode=GameMode.mania, circle_size=18))

    with pytest.raises(ComputationFailed):
        normalize(make_beatmap(notes, mode=GameMode.mania, circle_size=0))


def test_empty():
    assert normalize(make_beatmap([])) == ()
