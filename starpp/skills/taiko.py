"""Strain skills for osu!taiko.
"""
from collections import deque
from enum import IntEnum, unique

from ..utils import clamp
from .strain import strain_decay


@unique
class HitType(IntEnum):
    """The colour of a taiko note.
    """
    centre = 0
    rim = 1

    @classmethod
    def from_hitsound(cls, hitsound):
        """Whistle and clap make a rim (kat) note, everything else is a centre
        (don) note.
        """
        if hitsound & (2 | 8):
            return cls.rim
        return cls.centre


class Rhythm:
    """A ratio between two consecutive note intervals and how hard it is to
    play.
    """
    def __init__(self, numerator, denominator, difficulty):
        self.ratio = numerator / denominator
        self.difficulty = difficulty

    def __repr__(self):
        return (
            f'<{type(self).__qualname__}: {self.ratio:.3f},'
            f' difficulty={self.difficulty}>'
        )


common_rhythms = (
    Rhythm(1, 1, 0.0),
    Rhythm(2, 1, 0.3),
    Rhythm(1, 2, 0.5),
    Rhythm(3, 1, 0.3),
    Rhythm(1, 3, 0.35),
    Rhythm(3, 2, 0.6),
    Rhythm(2, 3, 0.4),
    Rhythm(5, 4, 0.5),
    Rhythm(4, 5, 0.7),
)


def closest_rhythm(ratio):
    return min(common_rhythms, key=lambda r: abs(r.ratio - ratio))


class TaikoDifficultyObject:
    """A normalized taiko object paired with the objects before it.

    Parameters
    ----------
    base : NormalizedObject
        The object being hit.
    last : NormalizedObject
        The object before ``base``.
    last_last : NormalizedObject
        The object before ``last``.
    index : int
        The index of this object in ``objects``.
    objects : list[TaikoDifficultyObject]
        All of the difficulty objects of the map.
    mono : dict[HitType, list[TaikoDifficultyObject]]
        The hit objects of each colour seen so far.
    """
    def __init__(self, base, last, last_last, index, objects, mono):
        self.base = base
        self.last = last
        self.index = index
        self._objects = objects

        self.start_time = base.start_time
        self.delta_time = base.start_time - last.start_time

        last_delta = last.start_time - last_last.start_time
        if last_delta > 0:
            self.rhythm = closest_rhythm(self.delta_time / last_delta)
        else:
            self.rhythm = common_rhythms[0]

        self.is_hit = base.is_circle
        self.is_strong = bool(base.hitsound & 4)
        if self.is_hit:
            self.hit_type = HitType.from_hitsound(base.hitsound)
            self._mono = mono[self.hit_type]
            self.mono_index = len(self._mono)
            self._mono.append(self)
        else:
            self.hit_type = None
            self._mono = None
            self.mono_index = None

    def previous(self, n):
        ix = self.index - (n + 1)
        if ix < 0:
            return None
        return self._objects[ix]

    def previous_mono(self, n):
        """The ``n``th previous hit of the same colour.
        """
        if self._mono is None:
            return None
        ix = self.mono_index - (n + 1)
        if ix < 0:
            return None
        return self._mono[ix]


def difficulty_objects(hit_objects):
    """Pair each normalized object with the two objects before it.

    Parameters
    ----------
    hit_objects : sequence[NormalizedObject]
        The normalized objects ordered by time.

    Returns
    -------
    difficulty_objects : list[TaikoDifficultyObject]
        One difficulty object for every hit object after the second.
    """
    objects = []
    mono = {hit_type: [] for hit_type in HitType}
    for n in range(2, len(hit_objects)):
        objects.append(TaikoDifficultyObject(
            hit_objects[n],
            hit_objects[n - 1],
            hit_objects[n - 2],
            len(objects),
            objects,
            mono,
        ))
    return objects


def _repetition_penalty(notes_since):
    return min(1.0, 0.032 * notes_since)


def _decay_and_add(skill, current, value):
    skill._current_strain *= strain_decay(skill.decay_base, current.delta_time)
    skill._current_strain += value * skill.skill_multiplier
    return skill._current_strain


def _initial_strain(skill, time, current):
    return skill._current_strain * strain_decay(
        skill.decay_base,
        time - current.previous(0).start_time,
    )


class Colour:
    """Colour, the difficulty of switching between don and kat.
    """
    name = 'colour'
    section_length = 400
    skill_multiplier = 1
    decay_base = 0.4

    mono_history_max_length = 5
    most_recent_patterns_to_compare = 2

    def __init__(self):
        self._current_strain = 0.0
        self._mono_history = deque(maxlen=self.mono_history_max_length)
        self._previous_hit_type = None
        self._current_mono_length = 0

    def strain_value_at(self, current):
        return _decay_and_add(self, current, self._strain_value_of(current))

    initial_strain = _initial_strain

    def _strain_value_of(self, current):
        if not (current.last.is_circle and
                current.is_hit and
                current.delta_time < 1000):
            self._mono_history.clear()
            self._current_mono_length = 1 if current.is_hit else 0
            self._previous_hit_type = current.hit_type
            return 0.0

        object_strain = 0.0
        if (self._previous_hit_type is not None and
                current.hit_type != self._previous_hit_type):
            # the colour changed
            object_strain = 1.0

            history = self._mono_history
            if len(history) < 2:
                object_strain = 0.0
            elif (history[-1] + self._current_mono_length) % 2 == 0:
                object_strain = 0.0

            object_strain *= self._repetition_penalties()
            self._current_mono_length = 1
        else:
            self._current_mono_length += 1

        self._previous_hit_type = current.hit_type
        return object_strain

    def _repetition_penalties(self):
        penalty = 1.0
        history = self._mono_history
        history.append(self._current_mono_length)

        compare = self.most_recent_patterns_to_compare
        for start in range(len(history) - compare - 1, -1, -1):
            if not self._is_same_pattern(start, compare):
                continue

            notes_since = sum(list(history)[start:])
            penalty *= _repetition_penalty(notes_since)
            break

        return penalty

    def _is_same_pattern(self, start, compare):
        history = self._mono_history
        return all(
            history[start + i] == history[len(history) - compare + i]
            for i in range(compare)
        )


class RhythmSkill:
    """Rhythm, the difficulty of changing between note intervals.
    """
    name = 'rhythm'
    section_length = 400
    skill_multiplier = 10
    decay_base = 0

    # the strain of this skill decays per note, not over time
    rhythm_decay = 0.96
    rhythm_history_max_length = 8

    def __init__(self):
        self._current_strain = 0.0
        self._rhythm_strain = 0.0
        self._notes_since_rhythm_change = 0
        self._rhythm_history = deque(maxlen=self.rhythm_history_max_length)

    def strain_value_at(self, current):
        return _decay_and_add(self, current, self._strain_value_of(current))

    initial_strain = _initial_strain

    def _reset(self):
        self._rhythm_strain = 0.0
        self._notes_since_rhythm_change = 0

    def _strain_value_of(self, current):
        if not current.is_hit:
            self._reset()
            return 0.0

        self._rhythm_strain *= self.rhythm_decay
        self._notes_since_rhythm_change += 1

        # rhythm didn't change
        if current.rhythm.difficulty == 0.0:
            return 0.0

        object_strain = current.rhythm.difficulty
        object_strain *= self._repetition_penalties(current)
        object_strain *= self._pattern_length_penalty(
            self._notes_since_rhythm_change,
        )
        object_strain *= self._speed_penalty(current.delta_time)

        self._notes_since_rhythm_change = 0
        self._rhythm_strain += object_strain
        return self._rhythm_strain

    def _repetition_penalties(self, current):
        penalty = 1.0
        history = self._rhythm_history
        history.append(current)

        for compare in range(2, self.rhythm_history_max_length // 2 + 1):
            for start in range(len(history) - compare - 1, -1, -1):
                if not self._same_pattern(start, compare):
                    continue

                notes_since = current.index - history[start].index
                penalty *= _repetition_penalty(notes_since)
                break

        return penalty

    def _same_pattern(self, start, compare):
        history = self._rhythm_history
        return all(
            history[start + i].rhythm is
            history[len(history) - compare + i].rhythm
            for i in range(compare)
        )

    @staticmethod
    def _pattern_length_penalty(pattern_length):
        short_pattern_penalty = min(0.15 * pattern_length, 1.0)
        long_pattern_penalty = clamp(2.5 - 0.15 * pattern_length, 0.0, 1.0)
        return min(short_pattern_penalty, long_pattern_penalty)

    def _speed_penalty(self, delta_time):
        if delta_time < 80:
            return 1.0
        if delta_time < 210:
            return max(0.0, 1.4 - 0.005 * delta_time)

        self._reset()
        return 0.0


class Stamina:
    """Stamina, the difficulty of hitting fast with the same key.
    """
    name = 'stamina'
    section_length = 400
    skill_multiplier = 1.1
    decay_base = 0.4

    def __init__(self):
        self._current_strain = 0.0

    def strain_value_at(self, current):
        return _decay_and_add(self, current, evaluate_stamina(current))

    initial_strain = _initial_strain


def _speed_bonus(interval):
    # cap to a 50ms key interval
    return 30 / max(interval, 50)


def evaluate_stamina(current):
    """The stamina difficulty of ``current``.

    Notes alternate between two keys of each colour, so the previous note on
    the same key is the second previous note of the same colour.
    """
    if not current.is_hit:
        return 0.0

    key_previous = current.previous_mono(1)
    if key_previous is None:
        return 0.0

    return 0.5 + _speed_bonus(current.start_time - key_previous.start_time)
