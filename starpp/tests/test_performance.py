import pytest

from starpp import ModifierMismatch, ModifierSet, ScoreParams
from starpp import performance
from starpp.difficulty import (
    CatchDifficultyAttributes,
    ManiaDifficultyAttributes,
    OsuDifficultyAttributes,
    TaikoDifficultyAttributes,
)
from starpp.game_mode import GameMode
from starpp.performance import HitCounts, hit_accuracy, max_performance


def osu_attributes(mods='', **kwargs):
    fields = dict(
        mods=ModifierSet(mods),
        stars=5.2,
        aim=2.6,
        speed=2.3,
        flashlight=1.8,
        slider_factor=0.97,
        speed_note_count=180.0,
        ar=9.0,
        od=8.0,
        cs=4.0,
        hp=6.0,
        clock_rate=1.0,
        great_hit_window=32.0,
        n_circles=400,
        n_sliders=100,
        n_spinners=2,
        max_combo=720,
    )
    fields.update(kwargs)
    return OsuDifficultyAttributes(**fields)


def taiko_attributes(mods=''):
    return TaikoDifficultyAttributes(
        mods=ModifierSet(mods),
        stars=4.5,
        stamina=2.0,
        rhythm=0.8,
        colour=1.5,
        peak=4.1,
        great_hit_window=35.0,
        clock_rate=1.0,
        n_circles=800,
        max_combo=800,
    )


def catch_attributes(mods=''):
    return CatchDifficultyAttributes(
        mods=ModifierSet(mods),
        stars=4.0,
        ar=9.0,
        cs=4.0,
        clock_rate=1.0,
        n_fruits=500,
        n_droplets=100,
        n_tiny_droplets=300,
        max_combo=600,
    )


def mania_attributes(mods=''):
    return ManiaDifficultyAttributes(
        mods=ModifierSet(mods),
        stars=3.5,
        strain=190.0,
        great_hit_window=40.0,
        clock_rate=1.0,
        n_notes=1000,
        n_hold_notes=200,
        max_combo=1200,
    )


def test_score_params_defaults():
    score = ScoreParams()
    assert score.mods == ModifierSet()
    assert score.misses == 0
    assert not score.has_hit_counts

    assert ScoreParams(mods='HDDT').mods == ModifierSet('HDDT')
    assert ScoreParams(n_katu=0).has_hit_counts


def test_max_performance():
    attributes = osu_attributes()
    best = max_performance(attributes)

    assert best.mode == GameMode.standard
    assert best.pp > 0
    assert best.combo == attributes.max_combo
    assert best.hits == HitCounts(502, 0, 0, 0, 0, 0)
    assert best.effective_miss_count == 0
    assert best.flashlight == 0


def test_worse_plays_are_worth_less():
    attributes = osu_attributes()
    best = max_performance(attributes).pp

    def pp(**kwargs):
        return performance.calculate(attributes, ScoreParams(**kwargs)).pp

    assert pp(misses=3) < best
    assert pp(misses=10) < pp(misses=3)
    assert pp(accuracy=0.95) < best
    assert pp(combo=300) < best
    assert pp(n300=480, n100=22) < best


@pytest.mark.parametrize('make', [
    osu_attributes,
    taiko_attributes,
    catch_attributes,
    mania_attributes,
])
def test_every_mode(make):
    attributes = make()
    best = max_performance(attributes)

    assert best.mode == attributes.mode
    assert best.difficulty is attributes
    assert best.pp > 0

    worse = performance.calculate(
        attributes,
        ScoreParams(accuracy=0.9, misses=5),
    )
    assert 0 <= worse.pp < best.pp


def test_mismatched_mods():
    with pytest.raises(ModifierMismatch) as e:
        performance.calculate(osu_attributes(), ScoreParams(mods='HR'))

    assert e.value.expected == ModifierSet()
    assert e.value.got == ModifierSet('HR')

    with pytest.raises(ValueError):
        performance.calculate(osu_attributes('DT'), ScoreParams())


def test_compatible_mods():
    attributes = osu_attributes('HR')
    hidden = performance.calculate(attributes, ScoreParams(mods='HDHR'))
    nomod = performance.calculate(attributes, ScoreParams(mods='HR'))
    assert hidden.pp > nomod.pp


@pytest.mark.parametrize('kwargs', [
    {'misses': -1},
    {'n300': -1},
    {'n100': -2},
    {'n_katu': -1},
    {'combo': -5},
    {'accuracy': 1.5},
    {'accuracy': -0.1},
])
def test_invalid_score(kwargs):
    with pytest.raises(ValueError):
        performance.calculate(osu_attributes(), ScoreParams(**kwargs))


def test_counts_are_clamped():
    attributes = osu_attributes()
    result = performance.calculate(
        attributes,
        ScoreParams(n300=10000, n100=5, misses=2, combo=10000),
    )
    assert result.hits == HitCounts(495, 5, 0, 0, 0, 2)
    assert result.combo == attributes.max_combo

    result = performance.calculate(attributes, ScoreParams(misses=1000))
    assert result.hits.misses == 502
    assert result.hits.n300 == 0
    assert result.pp >= 0


def test_counts_from_accuracy():
    attributes = osu_attributes()
    result = performance.calculate(attributes, ScoreParams(accuracy=0.95))
    hits = result.hits

    assert sum(hits) == 502
    assert hit_accuracy(GameMode.standard, hits) == pytest.approx(
        0.95,
        abs=0.005,
    )


def test_auto_pilot_and_relax():
    auto_pilot = performance.calculate(
        osu_attributes(),
        ScoreParams(mods='AP'),
    )
    assert auto_pilot.aim == 0
    assert auto_pilot.speed > 0

    relax = performance.calculate(osu_attributes(), ScoreParams(mods='RX'))
    assert relax.speed == 0
    assert relax.aim > 0


def test_flashlight():
    attributes = osu_attributes('FL')
    result = max_performance(attributes)
    assert result.flashlight > 0
    assert result.pp > max_performance(osu_attributes()).pp


def test_slider_breaks():
    attributes = osu_attributes()
    result = performance.calculate(attributes, ScoreParams(combo=200))
    assert result.hits.misses == 0
    assert result.effective_miss_count > 0


def test_no_objects():
    attributes = osu_attributes(
        n_circles=0,
        n_sliders=0,
        n_spinners=0,
        max_combo=0,
        aim=0.0,
        speed=0.0,
        stars=0.0,
    )
    assert max_performance(attributes).pp == 0


def test_taiko_counts():
    attributes = taiko_attributes()
    result = performance.calculate(
        attributes,
        ScoreParams(accuracy=0.98, misses=4),
    )
    hits = result.hits
    assert hits.misses == 4
    assert hits.n300 + hits.n100 + hits.misses == 800
    assert hit_accuracy(GameMode.taiko, hits) == pytest.approx(
        0.98,
        abs=0.001,
    )


def test_catch_counts():
    attributes = catch_attributes()
    best = max_performance(attributes)
    assert best.hits == HitCounts(500, 100, 300, 0, 0, 0)

    result = performance.calculate(
        attributes,
        ScoreParams(n300=490, n100=100, n50=250, n_katu=50, misses=10),
    )
    assert result.hits == HitCounts(490, 100, 250, 0, 50, 10)
    assert hit_accuracy(GameMode.ctb, result.hits) == pytest.approx(
        840 / 900,
    )


def test_mania_counts():
    attributes = mania_attributes()
    best = max_performance(attributes)
    assert best.hits == HitCounts(0, 0, 0, 1000, 0, 0)
    assert hit_accuracy(GameMode.mania, best.hits) == 1

    result = performance.calculate(
        attributes,
        ScoreParams(n_geki=900, n300=50, n_katu=20, n100=10, n50=5, misses=5),
    )
    assert result.hits == HitCounts(50, 10, 5, 900, 20, 5)


def test_mania_easy_is_worth_less():
    easy = max_performance(mania_attributes('EZ'))
    assert easy.pp == pytest.approx(max_performance(mania_attributes()).pp / 2)


def test_hit_accuracy():
    nothing = HitCounts(0, 0, 0, 0, 0, 0)
    for mode in GameMode:
        assert hit_accuracy(mode, nothing) == 0

    assert hit_accuracy(
        GameMode.standard,
        HitCounts(1, 1, 1, 0, 0, 1),
    ) == pytest.approx(450 / 1200)
    assert hit_accuracy(
        GameMode.standard,
        HitCounts(982, 100, 43, 0, 0, 14),
    ) == pytest.approx(0.8977, abs=1e-4)
    assert hit_accuracy(
        GameMode.standard,
        HitCounts(0, 1, 0, 0, 0, 0),
    ) == pytest.approx(1 / 3)
    assert hit_accuracy(
        GameMode.taiko,
        HitCounts(3, 2, 0, 0, 0, 1),
    ) == pytest.approx(4 / 6)
