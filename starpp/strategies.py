from datetime import timedelta

from hypothesis.strategies import (
    booleans,
    composite,
    floats as _floats,
    integers,
    just,
    lists,
    none,
    one_of,
    sampled_from,
    timedeltas as _timedeltas,
)

from starpp import (
    Beatmap,
    Circle,
    GameMode,
    HoldNote,
    ModifierSet,
    Position,
    ScoreParams,
    Slider,
    Spinner,
    TimingPoint,
)


def floats(*args, **kwargs):
    return _floats(*args, allow_nan=False, allow_infinity=False, **kwargs)


def timedeltas(*, max_seconds=120):
    return _timedeltas(timedelta(0), timedelta(seconds=max_seconds))


@composite
def positions(draw):
    return Position(
        x=draw(integers(0, Position.x_max)),
        y=draw(integers(0, Position.y_max)),
    )


@composite
def timing_points(draw):
    return TimingPoint(
        offset=timedelta(0),
        ms_per_beat=draw(floats(150, 1000)),
    )


@composite
def circles(draw):
    return Circle(
        position=draw(positions()),
        time=draw(timedeltas()),
        hitsound=draw(sampled_from([0, 2, 4, 8, 12])),
    )


@composite
def spinners(draw):
    time = draw(timedeltas())
    return Spinner(
        position=Position(256, 192),
        time=time,
        end_time=time + draw(timedeltas(max_seconds=5)),
    )


@composite
def hold_notes(draw):
    time = draw(timedeltas())
    return HoldNote(
        position=draw(positions()),
        time=time,
        end_time=time + draw(timedeltas(max_seconds=2)),
    )


@composite
def sliders(draw, timing_point):
    # linear sliders always have a well defined path
    return Slider.from_timing(
        position=draw(positions()),
        time=draw(timedeltas()),
        hitsound=0,
        curve_kind='L',
        points=[draw(positions())],
        repeat=draw(integers(1, 3)),
        length=draw(floats(10, 300)),
        timing_points=[timing_point],
        slider_multiplier=1.4,
        slider_tick_rate=draw(sampled_from([0.5, 1.0, 2.0, 3.0, 4.0])),
    )


def _hit_objects(mode, timing_point):
    if mode == GameMode.mania:
        return one_of(circles(), hold_notes())
    return one_of(circles(), sliders(timing_point), spinners())


@composite
def beatmaps(draw, *, mode=None, min_size=0, max_size=30):
    """Generate beatmaps.

    Parameters
    ----------
    mode : GameMode, optional
        The game mode. Any mode is drawn when not given.
    min_size, max_size : int, optional
        The bounds on the number of hit objects.
    """
    if mode is None:
        mode = draw(sampled_from(GameMode))

    timing_point = draw(timing_points())
    hit_objects = draw(lists(
        _hit_objects(mode, timing_point),
        min_size=min_size,
        max_size=max_size,
    ))

    return Beatmap(
        mode=mode,
        hp_drain_rate=draw(floats(0, 10)),
        circle_size=(
            draw(integers(4, 7)) if mode == GameMode.mania else
            draw(floats(0, 10))
        ),
        overall_difficulty=draw(floats(0, 10)),
        approach_rate=draw(floats(0, 10)),
        stack_leniency=draw(floats(0.2, 1)),
        format_version=draw(sampled_from([5, 14])),
        timing_points=[timing_point],
        hit_objects=hit_objects,
        beatmap_id=draw(integers(1, 2 ** 31)),
    )


@composite
def mods(draw, *, passed_objects=False):
    """Generate valid modifier sets.
    """
    acronyms = [
        draw(sampled_from(['', 'EZ', 'HR'])),
        draw(sampled_from(['', 'DT', 'NC', 'HT'])),
    ]
    for acronym in ('HD', 'FL', 'SO', 'TD'):
        if draw(booleans()):
            acronyms.append(acronym)
    if draw(booleans()):
        acronyms.append(draw(sampled_from(['NF', 'SD', 'PF'])))

    return ModifierSet(
        ''.join(acronyms),
        passed_objects=draw(
            one_of(none(), integers(0, 40)) if passed_objects else just(None),
        ),
    )


@composite
def scores(draw, mods, *, max_count=100):
    """Generate plays with ``mods``, either from hit counts or from an
    accuracy.
    """
    counts = integers(0, max_count)
    combo = draw(one_of(none(), integers(0, 2 * max_count)))
    misses = draw(counts)

    if draw(booleans()):
        return ScoreParams(
            mods=mods,
            combo=combo,
            misses=misses,
            accuracy=draw(one_of(none(), floats(0, 1))),
        )

    return ScoreParams(
        mods=mods,
        combo=combo,
        n300=draw(one_of(none(), counts)),
        n100=draw(counts),
        n50=draw(counts),
        n_geki=draw(one_of(none(), counts)),
        n_katu=draw(counts),
        misses=misses,
    )
