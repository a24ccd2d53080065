"""The perceptual skills which make up the difficulty of a map.

Every skill exposes a ``name``, a ``section_length`` in milliseconds and two
methods: ``strain_value_at(current)`` which adds an object to the running
strain and returns the new strain, and ``initial_strain(time, current)`` which
returns the decayed strain at the start of a new section. Skills are folded
over difficulty objects by :func:`starpp.skills.strain.strain_curve`, or one
object at a time by :func:`starpp.skills.strain.gradual_strain_curve`.
"""
from .strain import (
    StrainCurve,
    gradual_strain_curve,
    strain_curve,
    strain_decay,
)

__all__ = [
    'StrainCurve',
    'gradual_strain_curve',
    'strain_curve',
    'strain_decay',
]
