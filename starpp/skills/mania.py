"""Strain skills for osu!mania.
"""
from .strain import strain_decay


class ManiaDifficultyObject:
    """A normalized mania note paired with the note before it.

    Parameters
    ----------
    base : NormalizedObject
        The note being hit.
    last : NormalizedObject
        The note before ``base``.
    index : int
        The index of this object in ``objects``.
    objects : list[ManiaDifficultyObject]
        All of the difficulty objects of the map.
    """
    def __init__(self, base, last, index, objects):
        self.base = base
        self.index = index
        self._objects = objects

        self.start_time = base.start_time
        self.end_time = base.end_time
        self.column = base.column
        self.delta_time = base.start_time - last.start_time

    def previous(self, n):
        ix = self.index - (n + 1)
        if ix < 0:
            return None
        return self._objects[ix]


def difficulty_objects(hit_objects):
    """Pair each note with the note before it.

    Parameters
    ----------
    hit_objects : sequence[NormalizedObject]
        The normalized notes ordered by time.

    Returns
    -------
    difficulty_objects : list[ManiaDifficultyObject]
        One difficulty object for every note after the first.
    """
    objects = []
    for n in range(1, len(hit_objects)):
        objects.append(ManiaDifficultyObject(
            hit_objects[n],
            hit_objects[n - 1],
            len(objects),
            objects,
        ))
    return objects


class Strain:
    """Strain, the difficulty of pressing keys in each column and across the
    whole keyboard.

    Parameters
    ----------
    columns : int
        The number of keys.
    """
    name = 'strain'
    section_length = 400
    individual_decay_base = 0.125
    overall_decay_base = 0.3

    def __init__(self, columns):
        self._hold_end_times = [0.0] * columns
        self._individual_strains = [0.0] * columns
        self._individual_strain = 0.0
        self._overall_strain = 1.0

    def strain_value_at(self, current):
        end_time = current.end_time
        column = current.column

        hold_factor = 1.0
        hold_addition = 0.0

        hold_end_times = self._hold_end_times
        for end in hold_end_times:
            # the current note ends after a hold in another column
            if current.start_time < end < end_time:
                hold_addition = 1.0

            if end_time == end:
                hold_addition = 0.0

            # the current note is played while another key is held
            if end > end_time:
                hold_factor = 1.25

        hold_end_times[column] = end_time

        strains = self._individual_strains
        strains[column] = (
            strains[column] *
            strain_decay(self.individual_decay_base, current.delta_time) +
            2.0 * hold_factor
        )
        self._individual_strain = strains[column]

        self._overall_strain = (
            self._overall_strain *
            strain_decay(self.overall_decay_base, current.delta_time) +
            (1 + hold_addition) * hold_factor
        )

        return self._individual_strain + self._overall_strain

    def initial_strain(self, time, current):
        offset = time - current.previous(0).start_time
        return (
            self._individual_strain *
            strain_decay(self.individual_decay_base, offset) +
            self._overall_strain *
            strain_decay(self.overall_decay_base, offset)
        )
