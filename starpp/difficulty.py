from collections import namedtuple
import logging
import math
import time

import numpy as np

from .errors import ComputationFailed, EmptyBeatmap
from .game_mode import GameMode
from .mod import Mod, ModifierSet, circle_radius
from .preprocess import normalize, map_attributes, key_count
from .skills import catch, mania, osu, taiko
from .skills.strain import empty_curve, gradual_strain_curve, strain_curve
from .utils import clamp, lerp


log = logging.getLogger(__name__)

# osu!standard
difficulty_multiplier = 0.0675
performance_base_multiplier = 1.14

# osu!taiko
taiko_final_multiplier = 0.0625
taiko_colour_multiplier = 0.375 * taiko_final_multiplier
taiko_rhythm_multiplier = 0.2 * taiko_final_multiplier
taiko_stamina_multiplier = 0.375 * taiko_final_multiplier

# osu!catch
catch_star_scaling_factor = 0.153

# osu!mania
mania_star_scaling_factor = 0.018


def difficulty_value(peaks,
                     decay_weight=0.9,
                     reduced_section_count=0,
                     reduced_strain_baseline=0.75,
                     multiplier=1.0):
    """Aggregate the section peaks of a skill into a single value.

    Parameters
    ----------
    peaks : array-like[float]
        The peak strain of each section.
    decay_weight : float, optional
        The weight of the ``n``th hardest section is ``decay_weight ** n``.
    reduced_section_count : int, optional
        The number of hardest sections to soften. Short, extremely hard
        sections are usually outliers.
    reduced_strain_baseline : float, optional
        The factor applied to the hardest section when softening.
    multiplier : float, optional
        The final multiplier.

    Returns
    -------
    value : float
        The weighted sum of the peaks, hardest first.
    """
    peaks = np.asarray(peaks, dtype=np.float64)
    peaks = np.sort(peaks[peaks > 0])[::-1]

    if reduced_section_count and len(peaks):
        peaks = peaks.copy()
        for i in range(min(len(peaks), reduced_section_count)):
            scale = math.log10(
                lerp(1, 10, clamp(i / reduced_section_count, 0, 1)),
            )
            peaks[i] *= lerp(reduced_strain_baseline, 1.0, scale)
        peaks = np.sort(peaks)[::-1]

    weights = decay_weight ** np.arange(len(peaks))
    return float(np.sum(peaks * weights)) * multiplier


def osu_stars(aim, speed, flashlight, has_flashlight):
    """Combine the osu!standard skill ratings into a star rating.

    Parameters
    ----------
    aim, speed, flashlight : float
        The skill ratings.
    has_flashlight : bool
        Whether flashlight counts towards the rating.

    Returns
    -------
    stars : float
        The star rating.
    """
    if not (aim or speed or (has_flashlight and flashlight)):
        return 0.0

    def base(rating):
        return (5 * max(1, rating / difficulty_multiplier) - 4) ** 3 / 100000

    base_flashlight = flashlight ** 2 * 25 if has_flashlight else 0.0
    base_performance = (
        base(aim) ** 1.1 +
        base(speed) ** 1.1 +
        base_flashlight ** 1.1
    ) ** (1 / 1.1)

    return (
        np.cbrt(performance_base_multiplier) *
        0.027 *
        (np.cbrt(100000 / 2 ** (1 / 1.1) * base_performance) + 4)
    ).item()


def taiko_rescale(stars):
    """Rescale the combined taiko rating onto the star scale.
    """
    if stars < 0:
        return stars
    return 10.43 * math.log(stars / 8 + 1)


def taiko_combined(colour, rhythm, stamina):
    """Combine the taiko skill peaks section by section.

    Parameters
    ----------
    colour, rhythm, stamina : np.ndarray[float64]
        The section peaks of each skill.

    Returns
    -------
    value : float
        The weighted sum of the combined peaks.
    """
    colour = colour * taiko_colour_multiplier
    rhythm = rhythm * taiko_rhythm_multiplier
    stamina = stamina * taiko_stamina_multiplier

    peaks = (
        (colour ** 1.5 + stamina ** 1.5) ** (2 / 1.5) + rhythm ** 2
    ) ** 0.5
    return difficulty_value(peaks)


class OsuDifficultyAttributes(namedtuple('OsuDifficultyAttributes', [
        'mods',
        'stars',
        'aim',
        'speed',
        'flashlight',
        'slider_factor',
        'speed_note_count',
        'ar',
        'od',
        'cs',
        'hp',
        'clock_rate',
        'great_hit_window',
        'n_circles',
        'n_sliders',
        'n_spinners',
        'max_combo',
])):
    """The difficulty of an osu!standard map.

    Parameters
    ----------
    mods : ModifierSet
        The difficulty relevant mods these attributes were computed with.
    stars : float
        The star rating.
    aim, speed, flashlight : float
        The skill ratings.
    slider_factor : float
        The share of the aim rating which does not come from sliders.
    speed_note_count : float
        The number of notes which are relevant to the speed rating.
    ar, od, cs, hp : float
        The map settings after mods. ``od`` includes the clock rate.
    clock_rate : float
        The speed multiplier of the map.
    great_hit_window : float
        The 300 hit window in milliseconds after the clock rate.
    n_circles, n_sliders, n_spinners : int
        The object counts.
    max_combo : int
        The highest reachable combo.
    """
    mode = GameMode.standard

    @property
    def n_objects(self):
        return self.n_circles + self.n_sliders + self.n_spinners


class TaikoDifficultyAttributes(namedtuple('TaikoDifficultyAttributes', [
        'mods',
        'stars',
        'stamina',
        'rhythm',
        'colour',
        'peak',
        'great_hit_window',
        'clock_rate',
        'n_circles',
        'max_combo',
])):
    """The difficulty of an osu!taiko map.

    Parameters
    ----------
    mods : ModifierSet
        The difficulty relevant mods these attributes were computed with.
    stars : float
        The star rating.
    stamina, rhythm, colour : float
        The skill ratings.
    peak : float
        The rating of the combined section peaks.
    great_hit_window : float
        The great hit window in milliseconds after the clock rate.
    clock_rate : float
        The speed multiplier of the map.
    n_circles : int
        The number of notes.
    max_combo : int
        The highest reachable combo.
    """
    mode = GameMode.taiko

    @property
    def n_objects(self):
        return self.n_circles


class CatchDifficultyAttributes(namedtuple('CatchDifficultyAttributes', [
        'mods',
        'stars',
        'ar',
        'cs',
        'clock_rate',
        'n_fruits',
        'n_droplets',
        'n_tiny_droplets',
        'max_combo',
])):
    """The difficulty of an osu!catch map.

    Parameters
    ----------
    mods : ModifierSet
        The difficulty relevant mods these attributes were computed with.
    stars : float
        The star rating.
    ar, cs : float
        The map settings after mods.
    clock_rate : float
        The speed multiplier of the map.
    n_fruits, n_droplets, n_tiny_droplets : int
        The object counts.
    max_combo : int
        The highest reachable combo.
    """
    mode = GameMode.ctb

    @property
    def n_objects(self):
        return self.n_fruits + self.n_droplets


class ManiaDifficultyAttributes(namedtuple('ManiaDifficultyAttributes', [
        'mods',
        'stars',
        'strain',
        'great_hit_window',
        'clock_rate',
        'n_notes',
        'n_hold_notes',
        'max_combo',
])):
    """The difficulty of an osu!mania map.

    Parameters
    ----------
    mods : ModifierSet
        The difficulty relevant mods these attributes were computed with.
    stars : float
        The star rating.
    strain : float
        The strain value.
    great_hit_window : float
        The great hit window in milliseconds after the clock rate.
    clock_rate : float
        The speed multiplier of the map.
    n_notes, n_hold_notes : int
        The object counts. ``n_notes`` includes hold notes.
    max_combo : int
        The highest reachable combo.
    """
    mode = GameMode.mania

    @property
    def n_objects(self):
        return self.n_notes


def _fold(skills, objects, executor):
    if executor is None:
        return [strain_curve(skill, objects) for skill in skills]

    # skills share no state so they may be folded at the same time
    futures = [
        executor.submit(strain_curve, skill, objects) for skill in skills
    ]
    return [future.result() for future in futures]


def _check_finite(name, value):
    if not math.isfinite(value):
        raise ComputationFailed(f'{name} is not finite: {value!r}')
    return value


def _osu_skills(beatmap, mods, hit_objects):
    attributes = map_attributes(beatmap, mods)
    radius = circle_radius(attributes.cs)

    objects = osu.difficulty_objects(hit_objects, radius)
    skills = [
        osu.Aim(),
        osu.Aim(with_sliders=False),
        osu.Speed(attributes.great_hit_window),
        osu.Flashlight(radius, attributes.preempt),
    ]
    return skills, objects


def _osu_attributes(beatmap, mods, hit_objects, skills, curves):
    aim_skill, _, speed_skill, _ = skills
    aim_curve, aim_no_sliders_curve, speed_curve, flashlight_curve = curves

    def rating(skill, curve):
        value = difficulty_value(
            curve.peaks,
            skill.decay_weight,
            skill.reduced_section_count,
            skill.reduced_strain_baseline,
            skill.difficulty_multiplier,
        )
        return math.sqrt(value) * difficulty_multiplier

    aim = rating(aim_skill, aim_curve)
    aim_no_sliders = rating(aim_skill, aim_no_sliders_curve)
    speed = rating(speed_skill, speed_curve)
    flashlight = math.sqrt(
        float(np.sum(flashlight_curve.peaks)) *
        osu.Flashlight.difficulty_multiplier,
    ) * difficulty_multiplier

    if Mod.touch_device in mods:
        aim **= 0.8
        aim_no_sliders **= 0.8
        flashlight **= 0.8

    stars = osu_stars(aim, speed, flashlight, Mod.flashlight in mods)

    attributes = map_attributes(beatmap, mods)
    kinds = [ob.kind for ob in hit_objects]
    return OsuDifficultyAttributes(
        mods=mods.difficulty_mods(),
        stars=_check_finite('stars', stars),
        aim=_check_finite('aim', aim),
        speed=_check_finite('speed', speed),
        flashlight=_check_finite('flashlight', flashlight),
        slider_factor=osu.slider_factor(aim, aim_no_sliders),
        speed_note_count=speed_skill.relevant_note_count(),
        ar=attributes.ar,
        od=attributes.effective_od,
        cs=attributes.cs,
        hp=attributes.hp,
        clock_rate=attributes.clock_rate,
        great_hit_window=attributes.great_hit_window,
        n_circles=kinds.count('circle'),
        n_sliders=kinds.count('slider'),
        n_spinners=kinds.count('spinner'),
        max_combo=sum(
            1 + len(ob.path) if ob.is_slider else 1 for ob in hit_objects
        ),
    )


def _taiko_skills(beatmap, mods, hit_objects):
    objects = taiko.difficulty_objects(hit_objects)
    skills = [taiko.Colour(), taiko.RhythmSkill(), taiko.Stamina()]
    return skills, objects


def _taiko_attributes(beatmap, mods, hit_objects, skills, curves):
    colour_curve, rhythm_curve, stamina_curve = curves

    colour = difficulty_value(colour_curve.peaks) * taiko_colour_multiplier
    rhythm = difficulty_value(rhythm_curve.peaks) * taiko_rhythm_multiplier
    stamina = difficulty_value(stamina_curve.peaks) * taiko_stamina_multiplier

    peak = taiko_combined(
        colour_curve.peaks,
        rhythm_curve.peaks,
        stamina_curve.peaks,
    )
    stars = taiko_rescale(peak * 1.4)

    attributes = map_attributes(beatmap, mods)
    n_circles = sum(1 for ob in hit_objects if ob.is_circle)
    return TaikoDifficultyAttributes(
        mods=mods.difficulty_mods(),
        stars=_check_finite('stars', stars),
        stamina=_check_finite('stamina', stamina),
        rhythm=_check_finite('rhythm', rhythm),
        colour=_check_finite('colour', colour),
        peak=peak,
        great_hit_window=attributes.taiko_great_hit_window,
        clock_rate=attributes.clock_rate,
        n_circles=n_circles,
        max_combo=n_circles,
    )


def _catch_skills(beatmap, mods, hit_objects):
    attributes = map_attributes(beatmap, mods)
    fruits, _ = catch.catch_objects(hit_objects)
    objects = catch.difficulty_objects(fruits, attributes.cs)
    skills = [catch.Movement(attributes.clock_rate)]
    return skills, objects


def _catch_attributes(beatmap, mods, hit_objects, skills, curves):
    movement_skill, = skills
    movement_curve, = curves

    stars = math.sqrt(
        difficulty_value(movement_curve.peaks, movement_skill.decay_weight),
    ) * catch_star_scaling_factor

    attributes = map_attributes(beatmap, mods)
    fruits, tiny_droplets = catch.catch_objects(hit_objects)
    n_droplets = sum(1 for f in fruits if f.is_droplet)
    return CatchDifficultyAttributes(
        mods=mods.difficulty_mods(),
        stars=_check_finite('stars', stars),
        ar=attributes.ar,
        cs=attributes.cs,
        clock_rate=attributes.clock_rate,
        n_fruits=len(fruits) - n_droplets,
        n_droplets=n_droplets,
        n_tiny_droplets=tiny_droplets,
        max_combo=len(fruits),
    )


def _mania_skills(beatmap, mods, hit_objects):
    objects = mania.difficulty_objects(hit_objects)
    skills = [mania.Strain(key_count(beatmap))]
    return skills, objects


def mania_great_hit_window(beatmap, mods):
    """The osu!mania great hit window in milliseconds after mods.
    """
    window = 64 - 3 * beatmap.overall_difficulty
    if Mod.hard_rock in mods:
        window /= 1.4
    elif Mod.easy in mods:
        window *= 1.4
    return window / mods.clock_rate


def _mania_attributes(beatmap, mods, hit_objects, skills, curves):
    strain_curve, = curves

    strain = difficulty_value(strain_curve.peaks)
    stars = strain * mania_star_scaling_factor

    n_hold_notes = sum(1 for ob in hit_objects if ob.is_hold)
    return ManiaDifficultyAttributes(
        mods=mods.difficulty_mods(),
        stars=_check_finite('stars', stars),
        strain=_check_finite('strain', strain),
        great_hit_window=mania_great_hit_window(beatmap, mods),
        clock_rate=mods.clock_rate,
        n_notes=len(hit_objects),
        n_hold_notes=n_hold_notes,
        # hold notes give combo when pressed and when released
        max_combo=len(hit_objects) + n_hold_notes,
    )


def _skip(first):
    # every object after the first ``first`` objects is a difficulty object
    def counts(hit_objects):
        return [max(0, n - first) for n in range(1, len(hit_objects) + 1)]
    return counts


def _catch_counts(hit_objects):
    # every fruit and droplet after the first is a difficulty object
    fruits = 0
    out = []
    for ob in hit_objects:
        if ob.is_slider:
            fruits += 1 + len(ob.path)
        elif ob.is_circle:
            fruits += 1
        out.append(max(0, fruits - 1))
    return out


_modes = {
    GameMode.standard: (_osu_skills, _osu_attributes, _skip(1)),
    GameMode.taiko: (_taiko_skills, _taiko_attributes, _skip(2)),
    GameMode.ctb: (_catch_skills, _catch_attributes, _catch_counts),
    GameMode.mania: (_mania_skills, _mania_attributes, _skip(1)),
}


def _normalized(beatmap, mods):
    hit_objects = normalize(beatmap, mods)
    if not hit_objects:
        raise EmptyBeatmap(f'{beatmap!r} has no hit objects with {mods}')
    return hit_objects


def calculate(beatmap, mods=None, *, executor=None, allow_empty=True):
    """Compute the difficulty of a beatmap.

    Parameters
    ----------
    beatmap : Beatmap
        The beatmap.
    mods : ModifierSet or any, optional
        The mods to compute the difficulty with.
    executor : concurrent.futures.Executor, optional
        Fold the skills in parallel with this executor.
    allow_empty : bool, optional
        Return all-zero attributes for a map without hit objects instead of
        raising :class:`~starpp.errors.EmptyBeatmap`.

    Returns
    -------
    attributes : DifficultyAttributes
        The difficulty attributes for the beatmap's game mode.

    Raises
    ------
    InvalidModifierCombination
        Raised when ``mods`` is not a valid modifier set.
    EmptyBeatmap
        Raised when the map has no hit objects and ``allow_empty`` is false.
    ComputationFailed
        Raised when the map is malformed.
    """
    if not isinstance(mods, ModifierSet):
        mods = ModifierSet(mods)

    start = time.perf_counter()
    try:
        hit_objects = _normalized(beatmap, mods)
    except EmptyBeatmap:
        if not allow_empty:
            raise
        log.debug('%r is empty with %s, difficulty is zero', beatmap, mods)
        hit_objects = ()

    skills_for, attributes_for, _ = _modes[beatmap.mode]
    skills, objects = skills_for(beatmap, mods, hit_objects)
    curves = _fold(skills, objects, executor)
    attributes = attributes_for(beatmap, mods, hit_objects, skills, curves)

    log.debug(
        'computed %s difficulty of %r with %s in %.3fs: %.4f stars',
        beatmap.mode.name,
        beatmap,
        mods,
        time.perf_counter() - start,
        attributes.stars,
    )
    return attributes


def strains(beatmap, mods=None, *, executor=None):
    """Compute the strain curve of each skill of a beatmap.

    Parameters
    ----------
    beatmap : Beatmap
        The beatmap.
    mods : ModifierSet or any, optional
        The mods to compute the strains with.
    executor : concurrent.futures.Executor, optional
        Fold the skills in parallel with this executor.

    Returns
    -------
    curves : dict[str, StrainCurve]
        The strain curve of each skill by name.
    """
    if not isinstance(mods, ModifierSet):
        mods = ModifierSet(mods)

    hit_objects = normalize(beatmap, mods)
    skills_for, _, _ = _modes[beatmap.mode]
    skills, objects = skills_for(beatmap, mods, hit_objects)
    curves = _fold(skills, objects, executor)
    return {curve.skill: curve for curve in curves}


def gradual(beatmap, mods=None):
    """Compute the difficulty of a beatmap after each hit object.

    The skills are folded over the map once instead of once per prefix.

    Parameters
    ----------
    beatmap : Beatmap
        The beatmap.
    mods : ModifierSet or any, optional
        The mods to compute the difficulty with. When ``passed_objects`` is
        set only that many objects are rated.

    Yields
    ------
    attributes : DifficultyAttributes
        The difficulty of the first ``n`` objects of the map, for each ``n``
        from 1 to the number of objects. The ``passed_objects`` of
        ``attributes.mods`` is ``n``.

    Raises
    ------
    InvalidModifierCombination
        Raised when ``mods`` is not a valid modifier set.
    ComputationFailed
        Raised when the map is malformed.

    Notes
    -----
    Difficulty objects are built from the whole map. A skill which looks
    at the object after the current one, like osu!standard speed, sees the
    true next object where :func:`calculate` with ``passed_objects`` sees
    the end of the map.
    """
    if not isinstance(mods, ModifierSet):
        mods = ModifierSet(mods)

    hit_objects = normalize(beatmap, mods)
    skills_for, attributes_for, counts_for = _modes[beatmap.mode]
    skills, objects = skills_for(beatmap, mods, hit_objects)

    folds = zip(*(gradual_strain_curve(skill, objects) for skill in skills))
    curves = [empty_curve(skill) for skill in skills]
    folded = 0

    for n, count in enumerate(counts_for(hit_objects), 1):
        while folded < count:
            curves = next(folds)
            folded += 1

        yield attributes_for(
            beatmap,
            mods.with_passed_objects(n),
            hit_objects[:n],
            skills,
            curves,
        )
