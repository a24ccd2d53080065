class StarppError(Exception):
    """Base class for errors raised while computing difficulty or
    performance.
    """


class InvalidModifierCombination(StarppError, ValueError):
    """Raised when a modifier set contains mutually exclusive modifiers or
    modifiers that cannot be parsed.

    Parameters
    ----------
    message : str
        The description of the problem.
    conflicts : tuple[str], optional
        The names of the conflicting modifiers.
    """
    def __init__(self, message, conflicts=()):
        super().__init__(message)
        self.conflicts = tuple(conflicts)


class ModifierMismatch(StarppError, ValueError):
    """Raised when a score is paired with difficulty attributes that were
    computed under an incompatible modifier set.

    Parameters
    ----------
    expected : ModifierSet
        The modifiers baked into the difficulty attributes.
    got : ModifierSet
        The modifiers of the score.
    """
    def __init__(self, expected, got):
        super().__init__(
            f'score modifiers {got} are incompatible with difficulty'
            f' attributes computed for {expected}',
        )
        self.expected = expected
        self.got = got


class EmptyBeatmap(StarppError):
    """Raised when a beatmap has too few objects for a difficulty
    calculation to be meaningful.

    Notes
    -----
    :func:`starpp.difficulty.calculate` turns this into all-zero difficulty
    attributes unless ``allow_empty=False`` is passed.
    """


class ComputationFailed(StarppError, RuntimeError):
    """Raised when an invariant is violated while computing strains, for
    example because of malformed object geometry.
    """
