from collections import namedtuple
import math

import numpy as np

from ..errors import ComputationFailed


_StrainCurve = namedtuple(
    'StrainCurve',
    'skill section_length start peaks',
)


class StrainCurve(_StrainCurve):
    """The peak strain of one skill in fixed width sections of a map.

    Parameters
    ----------
    skill : str
        The name of the skill.
    section_length : float
        The width of each section in milliseconds.
    start : float
        The end time of the first section in milliseconds.
    peaks : np.ndarray[float64]
        The highest strain reached in each section.
    """

    @property
    def times(self):
        """The end time of each section in milliseconds.
        """
        return self.start + self.section_length * np.arange(len(self.peaks))

    def __eq__(self, other):
        if not isinstance(other, StrainCurve):
            return NotImplemented
        return (
            self.skill == other.skill and
            self.section_length == other.section_length and
            self.start == other.start and
            np.array_equal(self.peaks, other.peaks)
        )

    def __ne__(self, other):
        eq = self.__eq__(other)
        if eq is NotImplemented:
            return eq
        return not eq

    __hash__ = None


def strain_decay(decay_base, ms):
    """The factor a strain decays by over ``ms`` milliseconds.
    """
    return decay_base ** (ms / 1000)


def empty_curve(skill):
    """A strain curve with no sections.
    """
    return StrainCurve(
        skill.name,
        skill.section_length,
        0.0,
        np.zeros(0, dtype=np.float64),
    )


def _sections(skill, difficulty_objects):
    # yields the closed section peaks and the open section's peak after
    # each object
    section_length = skill.section_length

    first = difficulty_objects[0].start_time
    start = math.ceil(first / section_length) * section_length
    section_end = start

    peaks = []
    append_peak = peaks.append
    peak = 0.0

    for current in difficulty_objects:
        while current.start_time > section_end:
            append_peak(peak)
            peak = skill.initial_strain(section_end, current)
            section_end += section_length

        strain = skill.strain_value_at(current)
        if not math.isfinite(strain):
            raise ComputationFailed(
                f'{skill.name} strain is not finite at'
                f' {current.start_time:g}ms: {strain!r}',
            )
        peak = max(strain, peak)
        yield start, peaks, peak


def _curve(skill, start, peaks, peak):
    return StrainCurve(
        skill.name,
        skill.section_length,
        start,
        np.array(peaks + [peak], dtype=np.float64),
    )


def strain_curve(skill, difficulty_objects):
    """Fold a skill over a sequence of difficulty objects.

    Parameters
    ----------
    skill : skill
        The skill to fold. A skill has a ``name``, a ``section_length`` and
        the methods ``strain_value_at(current)``, which adds ``current`` to
        the running strain and returns the new strain, and
        ``initial_strain(time, current)``, which returns the decayed strain at
        the start of a new section.
    difficulty_objects : list
        The difficulty objects ordered by time. Each object has a
        ``start_time`` in milliseconds.

    Returns
    -------
    curve : StrainCurve
        The peak strain in each section.

    Raises
    ------
    ComputationFailed
        Raised when the skill produces a strain which is not finite.
    """
    if not difficulty_objects:
        return empty_curve(skill)

    for start, peaks, peak in _sections(skill, difficulty_objects):
        pass
    return _curve(skill, start, peaks, peak)


def gradual_strain_curve(skill, difficulty_objects):
    """Fold a skill over a sequence of difficulty objects one object at a
    time.

    Parameters
    ----------
    skill : skill
        The skill to fold, see :func:`strain_curve`.
    difficulty_objects : iterable
        The difficulty objects ordered by time.

    Yields
    ------
    curve : StrainCurve
        The curve of the objects folded so far. The ``n``th curve is equal
        to ``strain_curve(skill, difficulty_objects[:n])``.

    Notes
    -----
    The skill is left in the state it has after the last yielded object,
    so attributes read from the skill between steps describe the same
    prefix as the curve.
    """
    difficulty_objects = list(difficulty_objects)
    if not difficulty_objects:
        return

    for start, peaks, peak in _sections(skill, difficulty_objects):
        yield _curve(skill, start, peaks, peak)
