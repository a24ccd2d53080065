from collections import namedtuple
import logging
import math

from .errors import ModifierMismatch
from .game_mode import GameMode
from .mod import Mod, ModifierSet
from .utils import clamp


log = logging.getLogger(__name__)

osu_final_multiplier = 1.12
taiko_final_multiplier = 1.1
catch_final_multiplier = 1.0
mania_final_multiplier = 8.0


class ScoreParams(namedtuple('ScoreParams', [
        'mods',
        'combo',
        'n300',
        'n100',
        'n50',
        'n_geki',
        'n_katu',
        'misses',
        'accuracy',
        'score',
])):
    """The statistics of a recorded play.

    Parameters
    ----------
    mods : ModifierSet or any, optional
        The mods the play was set with.
    combo : int, optional
        The highest combo reached. Defaults to the max combo of the map.
    n300, n100, n50 : int, optional
        The hit counts. When none of the hit counts are given they are
        derived from ``accuracy``.
    n_geki, n_katu : int, optional
        The extra judgements. In osu!mania these are the rainbow 300s and
        the 200s, in osu!catch ``n_katu`` is the number of missed tiny
        droplets.
    misses : int, optional
        The number of misses.
    accuracy : float, optional
        The accuracy in the range [0, 1] used to derive hit counts. Defaults
        to 1.0.
    score : int, optional
        The score. This is carried for the caller and does not change the
        performance.
    """
    def __new__(cls,
                mods=None,
                combo=None,
                n300=None,
                n100=None,
                n50=None,
                n_geki=None,
                n_katu=None,
                misses=0,
                accuracy=None,
                score=None):
        if not isinstance(mods, ModifierSet):
            mods = ModifierSet(mods)

        return super().__new__(
            cls,
            mods,
            combo,
            n300,
            n100,
            n50,
            n_geki,
            n_katu,
            misses,
            accuracy,
            score,
        )

    @property
    def has_hit_counts(self):
        return not (
            self.n300 is None and
            self.n100 is None and
            self.n50 is None and
            self.n_geki is None and
            self.n_katu is None
        )


class HitCounts(namedtuple('HitCounts', 'n300 n100 n50 n_geki n_katu misses')):
    """The resolved judgements of a play.
    """


class OsuPerformanceAttributes(namedtuple('OsuPerformanceAttributes', [
        'difficulty',
        'pp',
        'aim',
        'speed',
        'accuracy',
        'flashlight',
        'effective_miss_count',
        'hits',
        'combo',
])):
    """The performance of an osu!standard play.

    Parameters
    ----------
    difficulty : OsuDifficultyAttributes
        The difficulty the play was rated against.
    pp : float
        The performance points.
    aim, speed, accuracy, flashlight : float
        The contribution of each skill before the final multiplier.
    effective_miss_count : float
        The misses plus the estimated slider breaks.
    hits : HitCounts
        The judgements used.
    combo : int
        The combo used.
    """
    mode = GameMode.standard


class TaikoPerformanceAttributes(namedtuple('TaikoPerformanceAttributes', [
        'difficulty',
        'pp',
        'strain',
        'accuracy',
        'hits',
        'combo',
])):
    """The performance of an osu!taiko play.
    """
    mode = GameMode.taiko


class CatchPerformanceAttributes(namedtuple('CatchPerformanceAttributes', [
        'difficulty',
        'pp',
        'hits',
        'combo',
])):
    """The performance of an osu!catch play.
    """
    mode = GameMode.ctb


class ManiaPerformanceAttributes(namedtuple('ManiaPerformanceAttributes', [
        'difficulty',
        'pp',
        'strain',
        'hits',
        'combo',
])):
    """The performance of an osu!mania play.
    """
    mode = GameMode.mania


def _check_non_negative(score):
    for field in ('combo', 'n300', 'n100', 'n50', 'n_geki', 'n_katu',
                  'misses'):
        value = getattr(score, field)
        if value is not None and value < 0:
            raise ValueError(f'{field} must be non-negative, got {value!r}')

    if score.accuracy is not None and not 0 <= score.accuracy <= 1:
        raise ValueError(
            f'accuracy must be in the range [0, 1], got {score.accuracy!r}',
        )


def _fill_counts(total, counts, fill):
    """Clamp the given counts so they do not exceed ``total`` and put the
    remaining judgements into ``fill``.

    ``counts`` is ordered from the first count to clamp to the last.
    """
    out = {}
    left = total
    for name, value in counts:
        if name == fill:
            continue
        value = min(value or 0, left)
        out[name] = value
        left -= value

    given = dict(counts)[fill]
    out[fill] = left if given is None else min(given, left)
    return out


def _round_hitcounts(total, accuracy, misses):
    """Round an osu!standard accuracy to the nearest hit counts.

    Parameters
    ----------
    total : int
        The number of hit objects.
    accuracy : float
        The accuracy to round in the range [0, 1].
    misses : int
        The number of misses.

    Returns
    -------
    n300, n100, n50 : int
        The hit counts.
    """
    max_300 = total - misses
    best = max_300 / total if total else 0.0

    accuracy = max(0.0, min(best * 100.0, accuracy * 100))

    n50 = 0
    n100 = round(-3.0 * ((accuracy * 0.01 - 1.0) * total + misses) * 0.5)

    if n100 > max_300:
        n100 = 0
        n50 = round(-6.0 * ((accuracy * 0.01 - 1.0) * total + misses) * 0.2)
        n50 = min(max_300, n50)
    else:
        n100 = min(max_300, n100)

    n300 = total - n100 - n50 - misses
    return n300, n100, n50


def _osu_hits(attributes, score):
    total = attributes.n_objects
    misses = min(score.misses, total)

    if not score.has_hit_counts:
        accuracy = 1.0 if score.accuracy is None else score.accuracy
        n300, n100, n50 = _round_hitcounts(total, accuracy, misses)
        return HitCounts(n300, n100, n50, 0, 0, misses)

    counts = _fill_counts(
        total,
        [
            ('misses', misses),
            ('n50', score.n50),
            ('n100', score.n100),
            ('n300', score.n300),
        ],
        'n300',
    )
    return HitCounts(counts['n300'], counts['n100'], counts['n50'], 0, 0,
                     counts['misses'])


def _taiko_hits(attributes, score):
    total = attributes.n_objects
    misses = min(score.misses, total)

    if not score.has_hit_counts:
        accuracy = 1.0 if score.accuracy is None else score.accuracy
        # a good is worth half of a great
        n100 = round(2 * (total - misses - accuracy * total))
        n100 = clamp(n100, 0, total - misses)
        return HitCounts(total - misses - n100, n100, 0, 0, 0, misses)

    counts = _fill_counts(
        total,
        [('misses', misses), ('n100', score.n100), ('n300', score.n300)],
        'n300',
    )
    return HitCounts(counts['n300'], counts['n100'], 0, 0, 0,
                     counts['misses'])


def _catch_hits(attributes, score):
    n_fruits = attributes.n_fruits
    n_droplets = attributes.n_droplets
    n_tiny = attributes.n_tiny_droplets
    total = n_fruits + n_droplets
    misses = min(score.misses, total)

    if not score.has_hit_counts:
        accuracy = 1.0 if score.accuracy is None else score.accuracy
        # misses are taken from the fruits first, then the droplets
        n300 = max(0, n_fruits - misses)
        n100 = n_droplets - max(0, misses - n_fruits)

        caught = round(accuracy * (total + n_tiny))
        n50 = clamp(caught - n300 - n100, 0, n_tiny)
        return HitCounts(n300, n100, n50, 0, n_tiny - n50, misses)

    counts = _fill_counts(
        total,
        [('misses', misses), ('n100', score.n100), ('n300', score.n300)],
        'n300',
    )
    tiny = _fill_counts(
        n_tiny,
        [('n_katu', score.n_katu), ('n50', score.n50)],
        'n50',
    )
    return HitCounts(
        counts['n300'],
        counts['n100'],
        tiny['n50'],
        0,
        tiny['n_katu'],
        counts['misses'],
    )


def _mania_hits(attributes, score):
    total = attributes.n_objects
    misses = min(score.misses, total)

    if not score.has_hit_counts:
        accuracy = 1.0 if score.accuracy is None else score.accuracy
        hits = total - misses
        # turning a max into a 100 loses 22 of 32 points
        deficit = hits * 32 - accuracy * total * 32
        n100 = clamp(round(deficit / 22), 0, hits)
        return HitCounts(0, n100, 0, hits - n100, 0, misses)

    counts = _fill_counts(
        total,
        [
            ('misses', misses),
            ('n50', score.n50),
            ('n100', score.n100),
            ('n_katu', score.n_katu),
            ('n300', score.n300),
            ('n_geki', score.n_geki),
        ],
        'n_geki',
    )
    return HitCounts(
        counts['n300'],
        counts['n100'],
        counts['n50'],
        counts['n_geki'],
        counts['n_katu'],
        counts['misses'],
    )


def hit_accuracy(mode, hits):
    """The accuracy of a set of judgements.

    Parameters
    ----------
    mode : GameMode
        The game mode the judgements are from.
    hits : HitCounts
        The judgements.

    Returns
    -------
    accuracy : float
        The accuracy in the range [0, 1]. No judgements at all is an
        accuracy of 0.
    """
    if mode == GameMode.standard:
        total = hits.n300 + hits.n100 + hits.n50 + hits.misses
        if not total:
            return 0.0
        return (hits.n300 * 6 + hits.n100 * 2 + hits.n50) / (total * 6)

    if mode == GameMode.taiko:
        total = hits.n300 + hits.n100 + hits.misses
        if not total:
            return 0.0
        return (hits.n300 + 0.5 * hits.n100) / total

    if mode == GameMode.ctb:
        caught = hits.n300 + hits.n100 + hits.n50
        total = caught + hits.n_katu + hits.misses
        if not total:
            return 0.0
        return caught / total

    total = (
        hits.n_geki +
        hits.n300 +
        hits.n_katu +
        hits.n100 +
        hits.n50 +
        hits.misses
    )
    if not total:
        return 0.0
    return (
        hits.n_geki * 32 +
        hits.n300 * 30 +
        hits.n_katu * 20 +
        hits.n100 * 10 +
        hits.n50 * 5
    ) / (total * 32)


def _power_mean(*values):
    return sum(value ** 1.1 for value in values) ** (1 / 1.1)


def _base(rating):
    return (5 * max(1, rating / 0.0675) - 4) ** 3 / 100000


def _osu(attributes, score, hits, combo):
    mods = score.mods
    total_hits = hits.n300 + hits.n100 + hits.n50 + hits.misses
    if not total_hits:
        return OsuPerformanceAttributes(
            attributes, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, hits, combo,
        )

    accuracy = hit_accuracy(GameMode.standard, hits)
    ar = attributes.ar
    od = attributes.od
    max_combo = attributes.max_combo

    # slider breaks are not misses, estimate them from the combo
    combo_based_miss_count = 0.0
    if attributes.n_sliders:
        full_combo_threshold = max_combo - 0.1 * attributes.n_sliders
        if combo < full_combo_threshold:
            combo_based_miss_count = full_combo_threshold / max(1, combo)
    effective_miss_count = max(
        hits.misses,
        min(combo_based_miss_count, total_hits),
    )

    combo_scaling = 1.0
    if max_combo > 0:
        combo_scaling = min(combo ** 0.8 / max_combo ** 0.8, 1.0)

    length_bonus = 0.95 + 0.4 * min(1.0, total_hits / 2000)
    if total_hits > 2000:
        length_bonus += math.log10(total_hits / 2000) * 0.5

    def miss_penalty(exponent):
        if effective_miss_count <= 0:
            return 1.0
        return 0.97 * (
            1 - (effective_miss_count / total_hits) ** 0.775
        ) ** exponent

    # aim
    if Mod.auto_pilot in mods:
        aim = 0.0
    else:
        aim = _base(attributes.aim) * length_bonus
        aim *= miss_penalty(effective_miss_count)
        aim *= combo_scaling

        ar_factor = 0.0
        if ar > 10.33:
            ar_factor = 0.3 * (ar - 10.33)
        elif ar < 8:
            ar_factor = 0.1 * (8 - ar)
        aim *= 1 + ar_factor * length_bonus

        if Mod.hidden in mods:
            aim *= 1 + 0.04 * (12 - ar)

        if attributes.n_sliders:
            difficult_sliders = attributes.n_sliders * 0.15
            dropped_slider_ends = clamp(
                min(hits.n100 + hits.n50 + hits.misses, max_combo - combo),
                0,
                difficult_sliders,
            )
            slider_nerf = (
                (1 - attributes.slider_factor) *
                (1 - dropped_slider_ends / difficult_sliders) ** 3 +
                attributes.slider_factor
            )
            aim *= slider_nerf

        aim *= accuracy
        aim *= 0.98 + od ** 2 / 2500

    # speed
    if Mod.relax in mods:
        speed = 0.0
    else:
        speed = _base(attributes.speed) * length_bonus
        speed *= miss_penalty(effective_miss_count ** 0.875)
        speed *= combo_scaling

        if ar > 10.33:
            speed *= 1 + 0.3 * (ar - 10.33) * length_bonus

        if Mod.hidden in mods:
            speed *= 1 + 0.04 * (12 - ar)

        # only the notes which are hard to tap count towards accuracy
        speed_notes = attributes.speed_note_count
        relevant_total_diff = total_hits - speed_notes
        relevant_300 = max(0, hits.n300 - relevant_total_diff)
        relevant_100 = max(
            0,
            hits.n100 - max(0, relevant_total_diff - hits.n300),
        )
        relevant_50 = max(
            0,
            hits.n50 - max(0, relevant_total_diff - hits.n300 - hits.n100),
        )
        if speed_notes > 0:
            relevant_accuracy = (
                relevant_300 * 6 + relevant_100 * 2 + relevant_50
            ) / (speed_notes * 6)
        else:
            relevant_accuracy = 0.0

        speed *= (
            (0.95 + od ** 2 / 750) *
            ((accuracy + relevant_accuracy) / 2) ** ((14.5 - max(od, 8)) / 2)
        )

        if hits.n50 >= total_hits / 500:
            speed *= 0.98 ** (hits.n50 - total_hits / 500)

    # accuracy
    n_circles = attributes.n_circles
    better_accuracy = 0.0
    if n_circles > 0:
        better_accuracy = max(
            0.0,
            (
                (hits.n300 - (total_hits - n_circles)) * 6 +
                hits.n100 * 2 +
                hits.n50
            ) / (n_circles * 6),
        )
    accuracy_value = 1.52163 ** od * better_accuracy ** 24 * 2.83
    accuracy_value *= min(1.15, (n_circles / 1000) ** 0.3)
    if Mod.hidden in mods:
        accuracy_value *= 1.08
    if Mod.flashlight in mods:
        accuracy_value *= 1.02

    # flashlight
    if Mod.flashlight in mods:
        flashlight = attributes.flashlight ** 2 * 25
        flashlight *= miss_penalty(effective_miss_count ** 0.875)
        flashlight *= combo_scaling
        length_factor = 0.7 + 0.1 * min(1.0, total_hits / 200)
        if total_hits > 200:
            length_factor += 0.2 * min(1.0, (total_hits - 200) / 200)
        flashlight *= length_factor
        flashlight *= 0.5 + accuracy / 2
        flashlight *= 0.98 + od ** 2 / 2500
    else:
        flashlight = 0.0

    multiplier = osu_final_multiplier
    if Mod.no_fail in mods:
        multiplier *= max(0.9, 1 - 0.02 * effective_miss_count)
    if Mod.spun_out in mods:
        multiplier *= 1 - (attributes.n_spinners / total_hits) ** 0.85

    pp = _power_mean(aim, speed, accuracy_value, flashlight) * multiplier
    return OsuPerformanceAttributes(
        difficulty=attributes,
        pp=max(0.0, pp),
        aim=aim,
        speed=speed,
        accuracy=accuracy_value,
        flashlight=flashlight,
        effective_miss_count=effective_miss_count,
        hits=hits,
        combo=combo,
    )


def _taiko(attributes, score, hits, combo):
    mods = score.mods
    total_hits = hits.n300 + hits.n100 + hits.misses
    accuracy = hit_accuracy(GameMode.taiko, hits)

    strain = (5 * max(1, attributes.stars / 0.175) - 4) ** 2.25 / 450
    length_bonus = 1 + 0.1 * min(1.0, total_hits / 1500)
    strain *= length_bonus
    strain *= 0.985 ** hits.misses
    if Mod.hidden in mods:
        strain *= 1.025
    if Mod.flashlight in mods:
        strain *= 1.05 * length_bonus
    strain *= accuracy

    accuracy_value = 0.0
    if attributes.great_hit_window > 0:
        accuracy_value = (
            (150 / attributes.great_hit_window) ** 1.1 *
            accuracy ** 15 *
            22
        )
        accuracy_value *= min(1.15, (total_hits / 1500) ** 0.3)

    multiplier = taiko_final_multiplier
    if Mod.no_fail in mods:
        multiplier *= 0.9
    if Mod.hidden in mods:
        multiplier *= 1.1

    pp = _power_mean(strain, accuracy_value) * multiplier
    return TaikoPerformanceAttributes(
        difficulty=attributes,
        pp=max(0.0, pp),
        strain=strain,
        accuracy=accuracy_value,
        hits=hits,
        combo=combo,
    )


def _catch(attributes, score, hits, combo):
    mods = score.mods
    ar = attributes.ar

    value = (5 * max(1, attributes.stars / 0.0049) - 4) ** 2 / 100000

    combo_hits = hits.misses + hits.n100 + hits.n300
    length_bonus = 0.95 + 0.3 * min(1.0, combo_hits / 2500)
    if combo_hits > 2500:
        length_bonus += math.log10(combo_hits / 2500) * 0.475
    value *= length_bonus

    value *= 0.97 ** hits.misses

    if attributes.max_combo > 0:
        value *= min(combo ** 0.8 / attributes.max_combo ** 0.8, 1.0)

    ar_factor = 1.0
    if ar > 9:
        ar_factor += 0.1 * (ar - 9)
    if ar > 10:
        ar_factor += 0.1 * (ar - 10)
    elif ar < 8:
        ar_factor += 0.025 * (8 - ar)
    value *= ar_factor

    if Mod.hidden in mods:
        if ar <= 10:
            value *= 1.05 + 0.075 * (10 - ar)
        else:
            value *= 1.01 + 0.04 * (11 - min(11, ar))

    if Mod.flashlight in mods:
        value *= 1.35 * length_bonus

    value *= hit_accuracy(GameMode.ctb, hits) ** 5.5

    if Mod.no_fail in mods:
        value *= 0.9

    return CatchPerformanceAttributes(
        difficulty=attributes,
        pp=max(0.0, value * catch_final_multiplier),
        hits=hits,
        combo=combo,
    )


def _mania(attributes, score, hits, combo):
    mods = score.mods
    total_hits = sum(hits)

    strain = (
        max(attributes.stars - 0.15, 0.05) ** 2.2 *
        max(0.0, 5 * hit_accuracy(GameMode.mania, hits) - 4) *
        (1 + 0.1 * min(1.0, total_hits / 1500))
    )

    multiplier = mania_final_multiplier
    if Mod.no_fail in mods:
        multiplier *= 0.75
    if Mod.easy in mods:
        multiplier *= 0.5

    return ManiaPerformanceAttributes(
        difficulty=attributes,
        pp=max(0.0, strain * multiplier),
        strain=strain,
        hits=hits,
        combo=combo,
    )


_modes = {
    GameMode.standard: (_osu_hits, _osu),
    GameMode.taiko: (_taiko_hits, _taiko),
    GameMode.ctb: (_catch_hits, _catch),
    GameMode.mania: (_mania_hits, _mania),
}


def calculate(attributes, score):
    """Compute the performance of a play.

    Parameters
    ----------
    attributes : DifficultyAttributes
        The difficulty of the map the play was set on.
    score : ScoreParams
        The play.

    Returns
    -------
    performance : PerformanceAttributes
        The performance attributes for the map's game mode.

    Raises
    ------
    ModifierMismatch
        Raised when the mods of ``score`` change the difficulty in a
        different way than the mods ``attributes`` were computed with.
    ValueError
        Raised when a hit count or the combo is negative or the accuracy is
        out of range.

    Notes
    -----
    Hit counts which add up to more than the number of objects are clamped,
    the misses first and the best judgement last. When no hit counts are
    given they are derived from ``score.accuracy``.
    """
    if not attributes.mods.is_compatible(score.mods):
        raise ModifierMismatch(attributes.mods, score.mods)

    _check_non_negative(score)

    hits_for, performance_for = _modes[attributes.mode]
    hits = hits_for(attributes, score)

    max_combo = attributes.max_combo
    combo = max_combo if score.combo is None else min(score.combo, max_combo)

    performance = performance_for(attributes, score, hits, combo)
    log.debug(
        'computed %s performance with %s: %.4fpp',
        attributes.mode.name,
        score.mods,
        performance.pp,
    )
    return performance


def max_performance(attributes, mods=None):
    """The performance of a full combo play with perfect accuracy.

    Parameters
    ----------
    attributes : DifficultyAttributes
        The difficulty of the map.
    mods : ModifierSet or any, optional
        The mods of the play. Defaults to the mods of ``attributes``.

    Returns
    -------
    performance : PerformanceAttributes
        The best possible performance.
    """
    if mods is None:
        mods = attributes.mods
    return calculate(attributes, ScoreParams(mods=mods, accuracy=1.0))


def gradual(attributes, scores):
    """Compute the performance of a play as it progresses.

    Parameters
    ----------
    attributes : iterable[DifficultyAttributes]
        The difficulty after each hit object, see
        :func:`starpp.difficulty.gradual`.
    scores : iterable[ScoreParams]
        The state of the play after each hit object. The ``passed_objects``
        of each score's mods is replaced by the one of the matching
        attributes.

    Yields
    ------
    performance : PerformanceAttributes
        The performance after each hit object. This stops when either
        ``attributes`` or ``scores`` runs out.

    Raises
    ------
    ModifierMismatch
        Raised when the mods of a score change the difficulty in a
        different way than the mods of its attributes.
    """
    for difficulty, score in zip(attributes, scores):
        passed = score.mods.with_passed_objects(
            difficulty.mods.passed_objects,
        )
        yield calculate(difficulty, score._replace(mods=passed))
