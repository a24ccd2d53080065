from enum import IntEnum, unique


@unique
class GameMode(IntEnum):
    """The various game modes in osu!.
    """
    standard = 0
    taiko = 1
    ctb = 2
    mania = 3

    @classmethod
    def parse(cls, value):
        """Parse a game mode from its id or one of its common names.

        Parameters
        ----------
        value : int or str
            The mode id, or a name like ``'osu'``, ``'taiko'``, ``'fruits'``,
            ``'catch'`` or ``'mania'``.

        Returns
        -------
        mode : GameMode
            The parsed game mode.

        Raises
        ------
        ValueError
            Raised when ``value`` does not name a game mode.
        """
        if isinstance(value, cls):
            return value

        if isinstance(value, int):
            return cls(value)

        try:
            return _aliases[value.strip().lower()]
        except KeyError:
            raise ValueError(f'unknown game mode: {value!r}')


_aliases = {
    'standard': GameMode.standard,
    'std': GameMode.standard,
    'osu': GameMode.standard,
    '0': GameMode.standard,
    'taiko': GameMode.taiko,
    '1': GameMode.taiko,
    'ctb': GameMode.ctb,
    'catch': GameMode.ctb,
    'fruits': GameMode.ctb,
    '2': GameMode.ctb,
    'mania': GameMode.mania,
    '3': GameMode.mania,
}
