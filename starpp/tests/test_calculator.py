from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
import math

import pytest

from starpp import difficulty
from starpp import (
    Beatmap,
    Calculator,
    Circle,
    ComputationFailed,
    GameMode,
    InvalidModifierCombination,
    ModifierMismatch,
    ModifierSet,
    Position,
    ScoreParams,
    TimingPoint,
)


def ms(n):
    return timedelta(milliseconds=n)


def make_beatmap(identity='map', hit_objects=None):
    if hit_objects is None:
        hit_objects = [
            Circle(Position((n * 97) % 512, (n * 61) % 384), ms(n * 180))
            for n in range(30)
        ]
    return Beatmap(
        mode=GameMode.standard,
        hp_drain_rate=5,
        circle_size=4,
        overall_difficulty=8,
        approach_rate=9,
        timing_points=[TimingPoint(ms(0), 500)],
        hit_objects=hit_objects,
        identity=identity,
    )


@pytest.fixture
def calculator():
    with Calculator() as calculator:
        yield calculator


def test_compute_difficulty_is_cached(calculator):
    beatmap = make_beatmap()

    nomod = calculator.compute_difficulty(beatmap)
    assert nomod.stars > 0

    # hidden does not change the difficulty so it shares the entry
    assert calculator.compute_difficulty(beatmap, 'HD') is nomod
    assert calculator.compute_difficulty(beatmap, ModifierSet()) is nomod

    double_time = calculator.compute_difficulty(beatmap, 'DT')
    assert double_time is not nomod
    assert double_time.stars > nomod.stars

    stats = calculator.cache.stats
    assert stats.computations == 2
    assert stats.hits == 2


def test_identity_is_the_key(calculator):
    a = calculator.compute_difficulty(make_beatmap('a'))
    # a different object with the same identity is served from the cache
    assert calculator.compute_difficulty(make_beatmap('a')) is a
    assert calculator.compute_difficulty(make_beatmap('b')) is not a


def test_dropped_anonymous_beatmaps_do_not_share_entries(calculator):
    for n in range(60):
        beatmap = make_beatmap(
            identity=None,
            hit_objects=[
                Circle(Position((k * (7 * n + 1)) % 512, 192), ms(k * 150))
                for k in range(3 + n)
            ],
        )
        cached = calculator.compute_difficulty(beatmap)
        assert cached == difficulty.calculate(beatmap)
        del beatmap

    assert calculator.cache.stats.computations == 60


def test_invalid_mods(calculator):
    with pytest.raises(InvalidModifierCombination):
        calculator.compute_difficulty(make_beatmap(), 'EZHR')

    assert calculator.cache.stats.misses == 0


def test_malformed_beatmap(calculator):
    beatmap = make_beatmap(hit_objects=[
        Circle(Position(0, 0), ms(0)),
        Circle(Position(math.nan, 0), ms(100)),
    ])
    with pytest.raises(ComputationFailed):
        calculator.compute_difficulty(beatmap)

    assert len(calculator.cache) == 0


def test_concurrent_requests_compute_once(calculator):
    beatmap = make_beatmap()

    with ThreadPoolExecutor(8) as executor:
        results = list(executor.map(
            lambda _: calculator.compute_difficulty(beatmap, 'HR'),
            range(32),
        ))

    assert all(result is results[0] for result in results)
    assert calculator.cache.stats.computations == 1


def test_performance(calculator):
    beatmap = make_beatmap()
    score = ScoreParams(mods='HDHR', accuracy=0.97, misses=1, combo=20)

    result = calculator.performance(beatmap, score)
    assert result.pp > 0
    assert result.combo == 20
    assert result.difficulty.mods == ModifierSet('HR')

    attributes = calculator.compute_difficulty(beatmap, 'HR')
    assert calculator.compute_performance(attributes, score) == result

    best = calculator.max_performance(beatmap, 'HDHR')
    assert best.pp > result.pp


def test_invalidate(calculator):
    beatmap = make_beatmap()
    first = calculator.compute_difficulty(beatmap)
    calculator.compute_difficulty(beatmap, 'DT')

    assert calculator.invalidate('map') == 2
    second = calculator.compute_difficulty(beatmap)
    assert second is not first
    assert second == first


def test_strains(calculator):
    curves = calculator.strains(make_beatmap(), 'DT')
    assert set(curves) == {'aim', 'aim_no_sliders', 'speed', 'flashlight'}
    # strains are not cached
    assert len(calculator.cache) == 0


def test_gradual(calculator):
    beatmap = make_beatmap()
    count = len(beatmap)

    steps = list(calculator.gradual_difficulty(beatmap, 'HDDT'))
    assert len(steps) == count
    assert steps[-1].stars == calculator.compute_difficulty(
        beatmap,
        'DT',
    ).stars

    scores = [
        ScoreParams(mods='HDDT', n300=n, combo=n)
        for n in range(1, count + 1)
    ]
    results = list(calculator.gradual_performance(beatmap, scores, 'HDDT'))
    assert len(results) == count
    assert all(result.pp >= 0 for result in results)
    assert results[-1].pp == pytest.approx(
        calculator.performance(beatmap, scores[-1]).pp,
    )

    # a score with mods that change the difficulty differently is rejected
    with pytest.raises(ModifierMismatch):
        list(calculator.gradual_performance(
            beatmap,
            [ScoreParams(mods='HR')],
            'DT',
        ))


def test_executor():
    beatmap = make_beatmap()
    with ThreadPoolExecutor(4) as executor:
        with Calculator(executor=executor, cache_size=None) as calculator:
            parallel = calculator.compute_difficulty(beatmap)

    assert parallel == Calculator().compute_difficulty(beatmap)


def test_close_clears_the_cache():
    calculator = Calculator(cache_size=10, timeout=1.0)
    with calculator:
        calculator.compute_difficulty(make_beatmap())
        assert len(calculator.cache) == 1
    assert len(calculator.cache) == 0
