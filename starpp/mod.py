from collections import namedtuple
from fractions import Fraction
from numbers import Integral

from .bit_enum import BitEnum
from .errors import InvalidModifierCombination


class Mod(BitEnum):
    """The mods in osu!
    """
    no_fail = 1
    easy = 1 << 1
    touch_device = 1 << 2  # used to be no_video
    hidden = 1 << 3
    hard_rock = 1 << 4
    sudden_death = 1 << 5
    double_time = 1 << 6
    relax = 1 << 7
    half_time = 1 << 8
    nightcore = 1 << 9  # always used with double_time
    flashlight = 1 << 10
    autoplay = 1 << 11
    spun_out = 1 << 12
    auto_pilot = 1 << 13
    relax2 = 1 << 13  # same as auto_pilot
    perfect = 1 << 14  # always used with sudden_death
    key4 = 1 << 15
    key5 = 1 << 16
    key6 = 1 << 17
    key7 = 1 << 18
    key8 = 1 << 19
    fade_in = 1 << 20
    random = 1 << 21
    cinema = 1 << 22
    last_mod = 1 << 22  # same as cinema
    target_practice = 1 << 23
    key9 = 1 << 24
    coop = 1 << 25
    key1 = 1 << 26
    key3 = 1 << 27
    key2 = 1 << 28
    scoreV2 = 1 << 29
    mirror = 1 << 30

    @classmethod
    def parse(cls, cs):
        """Parse a mod mask out of a list of shortened mod names.

        Parameters
        ----------
        cs : str
            The mod string, for example ``'HDDT'``. ``'NM'`` means no mods.

        Returns
        -------
        mod_mask : int
            The mod mask.

        Raises
        ------
        InvalidModifierCombination
            Raised when the string is malformed or names an unknown mod.
        """
        cs = cs.replace(',', '').replace(' ', '').replace('+', '')
        if len(cs) % 2 != 0:
            raise InvalidModifierCombination(f'malformed mods: {cs!r}')

        cs = cs.upper()
        mod = 0
        for n in range(0, len(cs), 2):
            try:
                mod |= _acronym_to_mod[cs[n:n + 2]]
            except KeyError:
                raise InvalidModifierCombination(
                    f'unknown mod: {cs[n:n + 2]!r}',
                )

        return mod

    @property
    def acronym(self):
        return _mod_to_acronym[self]


_acronym_to_mod = {
    'NM': 0,
    'NF': Mod.no_fail,
    'EZ': Mod.easy,
    'TD': Mod.touch_device,
    'HD': Mod.hidden,
    'HR': Mod.hard_rock,
    'SD': Mod.sudden_death,
    'DT': Mod.double_time,
    'RX': Mod.relax,
    'HT': Mod.half_time,
    'NC': Mod.nightcore,
    'FL': Mod.flashlight,
    'AT': Mod.autoplay,
    'SO': Mod.spun_out,
    'AP': Mod.auto_pilot,
    'PF': Mod.perfect,
    '4K': Mod.key4,
    '5K': Mod.key5,
    '6K': Mod.key6,
    '7K': Mod.key7,
    '8K': Mod.key8,
    'FI': Mod.fade_in,
    'RD': Mod.random,
    'CN': Mod.cinema,
    'TP': Mod.target_practice,
    '9K': Mod.key9,
    'CP': Mod.coop,
    '1K': Mod.key1,
    '3K': Mod.key3,
    '2K': Mod.key2,
    'V2': Mod.scoreV2,
    'MR': Mod.mirror,
}
_mod_to_acronym = {
    mod: acronym for acronym, mod in _acronym_to_mod.items() if mod
}

_key_mods = Mod.combine(
    Mod.key1,
    Mod.key2,
    Mod.key3,
    Mod.key4,
    Mod.key5,
    Mod.key6,
    Mod.key7,
    Mod.key8,
    Mod.key9,
)

# pairs of mods which may not be enabled at the same time; checked after
# nightcore and perfect have been expanded into double_time and sudden_death
_conflicts = (
    (Mod.easy, Mod.hard_rock),
    (Mod.double_time, Mod.half_time),
    (Mod.hard_rock, Mod.mirror),
    (Mod.relax, Mod.auto_pilot),
    (Mod.no_fail, Mod.sudden_death),
    (Mod.autoplay, Mod.relax),
    (Mod.autoplay, Mod.auto_pilot),
)

# the mods which change the difficulty of a map; all other mods only change
# how a play is scored
_difficulty_mods = Mod.combine(
    Mod.easy,
    Mod.hard_rock,
    Mod.double_time,
    Mod.half_time,
    Mod.flashlight,
    Mod.touch_device,
    Mod.mirror,
)


class ModifierSet:
    """A canonical, immutable set of mods.

    Parameters
    ----------
    mods : int, str, iterable[Mod or str] or ModifierSet, optional
        The mods to enable. Strings are parsed as acronyms (``'HDDT'``),
        iterables may hold :class:`Mod` members, member names or acronyms.
    passed_objects : int, optional
        Only consider the first ``passed_objects`` hit objects. This is used
        for failed or partial plays.

    Raises
    ------
    InvalidModifierCombination
        Raised when the mods cannot be parsed or contain mods which are
        mutually exclusive.

    Notes
    -----
    Equivalent combinations compare and hash equal no matter how they were
    spelled: ``ModifierSet('DTHD') == ModifierSet('HDDT')`` and nightcore
    always implies double time.
    """
    __slots__ = ('_mask', '_passed_objects')

    def __init__(self, mods=0, *, passed_objects=None):
        if isinstance(mods, ModifierSet):
            if passed_objects is None:
                passed_objects = mods.passed_objects
            mods = mods.mask

        mask = _canonicalize(_to_mask(mods))

        if passed_objects is not None:
            if (isinstance(passed_objects, bool) or
                    not isinstance(passed_objects, Integral) or
                    passed_objects < 0):
                raise InvalidModifierCombination(
                    'passed_objects must be a non-negative int,'
                    f' got {passed_objects!r}',
                )
            passed_objects = int(passed_objects)

        object.__setattr__(self, '_mask', mask)
        object.__setattr__(self, '_passed_objects', passed_objects)

    def __setattr__(self, name, value):
        raise AttributeError(f'{type(self).__qualname__} is immutable')

    @classmethod
    def parse(cls, cs, *, passed_objects=None):
        """Parse a modifier set from a string of acronyms like ``'HDHR'``.
        """
        return cls(Mod.parse(cs), passed_objects=passed_objects)

    @property
    def mask(self):
        """The mod bitmask.
        """
        return self._mask

    @property
    def passed_objects(self):
        return self._passed_objects

    @property
    def key(self):
        """A hashable value identifying this modifier set.
        """
        return self._mask, self._passed_objects

    @property
    def difficulty_key(self):
        """A hashable value identifying the part of this modifier set that
        changes the difficulty of a map.
        """
        return self._mask & _difficulty_mods, self._passed_objects

    def difficulty_mods(self):
        """The modifier set with only the mods that change difficulty.

        Returns
        -------
        mods : ModifierSet
            The difficulty relevant modifier set.
        """
        mask = self._mask & _difficulty_mods
        if mask == self._mask:
            return self
        return type(self)(mask, passed_objects=self._passed_objects)

    def is_compatible(self, other):
        """Whether a score under ``other`` may be rated against difficulty
        attributes computed under this modifier set.
        """
        return self.difficulty_key == other.difficulty_key

    def with_passed_objects(self, passed_objects):
        return type(self)(self._mask, passed_objects=passed_objects)

    @property
    def clock_rate(self):
        """The speed multiplier applied to the map.
        """
        if self._mask & Mod.double_time:
            return 1.5
        if self._mask & Mod.half_time:
            return 0.75
        return 1.0

    @property
    def time_coefficient(self):
        """The exact factor every timestamp is multiplied by.
        """
        if self._mask & Mod.double_time:
            return Fraction(2, 3)
        if self._mask & Mod.half_time:
            return Fraction(4, 3)
        return Fraction(1)

    @property
    def od_ar_hp_multiplier(self):
        if self._mask & Mod.hard_rock:
            return 1.4
        if self._mask & Mod.easy:
            return 0.5
        return 1.0

    @property
    def changes_map(self):
        """Whether these mods change the map attributes (AR, OD, CS, HP).
        """
        return bool(
            self._mask &
            (Mod.easy | Mod.hard_rock | Mod.double_time | Mod.half_time),
        )

    def __contains__(self, mod):
        return bool(self._mask & mod) and (self._mask & mod) == mod

    def __iter__(self):
        return iter(Mod.flags(self._mask))

    def __len__(self):
        return len(Mod.flags(self._mask))

    def __bool__(self):
        return bool(self._mask) or self._passed_objects is not None

    def __eq__(self, other):
        if not isinstance(other, ModifierSet):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)

    def acronyms(self):
        """The acronyms of the enabled mods in canonical order.

        ``nightcore`` replaces ``double_time`` and ``perfect`` replaces
        ``sudden_death`` when set.
        """
        mask = self._mask
        if mask & Mod.nightcore:
            mask &= ~Mod.double_time
        if mask & Mod.perfect:
            mask &= ~Mod.sudden_death
        return ''.join(mod.acronym for mod in Mod.flags(mask)) or 'NM'

    def __str__(self):
        acronyms = self.acronyms()
        if self._passed_objects is not None:
            return f'{acronyms}@{self._passed_objects}'
        return acronyms

    def __repr__(self):
        if self._passed_objects is None:
            return f'{type(self).__qualname__}({self.acronyms()!r})'
        return (
            f'{type(self).__qualname__}({self.acronyms()!r},'
            f' passed_objects={self._passed_objects})'
        )

    def __reduce__(self):
        return _restore_modifier_set, (self._mask, self._passed_objects)


def _restore_modifier_set(mask, passed_objects):
    return ModifierSet(mask, passed_objects=passed_objects)


def _to_mask(mods):
    if mods is None:
        return 0

    if isinstance(mods, bool):
        raise InvalidModifierCombination(f'invalid mods: {mods!r}')

    if isinstance(mods, int):
        if mods < 0 or Mod.unknown_bits(mods):
            raise InvalidModifierCombination(f'invalid mod mask: {mods!r}')
        return mods

    if isinstance(mods, str):
        return Mod.parse(mods)

    mask = 0
    for mod in mods:
        if isinstance(mod, Mod):
            mask |= mod
        elif isinstance(mod, str):
            try:
                mask |= Mod[mod]
            except KeyError:
                mask |= Mod.parse(mod)
        else:
            raise InvalidModifierCombination(f'invalid mod: {mod!r}')
    return mask


def _canonicalize(mask):
    if mask & Mod.nightcore:
        mask |= Mod.double_time
    if mask & Mod.perfect:
        mask |= Mod.sudden_death

    conflicts = [
        (a, b) for a, b in _conflicts if mask & a and mask & b
    ]
    if conflicts:
        a, b = conflicts[0]
        raise InvalidModifierCombination(
            f'{a.name} and {b.name} cannot be combined',
            conflicts=(a.name, b.name),
        )

    keys = Mod.flags(mask & _key_mods)
    if len(keys) > 1:
        raise InvalidModifierCombination(
            f'only one key mod may be enabled, got'
            f' {[k.name for k in keys]}',
            conflicts=[k.name for k in keys],
        )

    return mask


def ar_to_ms(ar):
    """Convert an approach rate value to milliseconds of time that an element
    appears on the screen before being hit.

    Parameters
    ----------
    ar : float
        The approach rate.

    Returns
    -------
    milliseconds : float
        The number of milliseconds that an element appears on the screen before
         being hit at the given approach rate.

    See Also
    --------
    :func:`starpp.mod.ms_to_ar`
    """
    # NOTE: The formula for ar_to_ms is different for ar >= 5 and ar < 5
    # see: https://osu.ppy.sh/wiki/Song_Setup#Approach_Rate
    if ar >= 5:
        return 1950 - (ar * 150)
    else:
        return 1800 - (ar * 120)


def ms_to_ar(ms):
    """Convert milliseconds to hit an element into an approach rate value.

    Parameters
    ----------
    ms : float
        The number of milliseconds that an element appears on the screen before
        being hit.

    Returns
    -------
    ar : float
        The approach rate value that produces the given millisecond value.

    See Also
    --------
    :func:`starpp.mod.ar_to_ms`
    """
    ar = (ms - 1950) / -150
    if ar < 5:
        # the ar lines cross at 5 but we use a different formula for the slower
        # approach rates.
        return (ms - 1800) / -120
    return ar


def circle_radius(cs):
    """Compute the ``CS`` attribute into a circle radius in osu! pixels.

    Parameters
    ----------
    cs : float
        The circle size.

    Returns
    -------
    radius : float
        The radius in osu! pixels.
    """
    return (512 / 16) * (1 - 0.7 * (cs - 5) / 5)


def od_to_ms_300(od):
    """Convert an overall difficulty value into the milliseconds of the 300
    hit window.

    Parameters
    ----------
    od : float
        The overall difficulty.

    Returns
    -------
    ms : float
        The number of milliseconds to hit an object at maximum accuracy.

    See Also
    --------
    :func:`starpp.mod.ms_300_to_od`
    """
    return 80 - 6 * od


def ms_300_to_od(ms):
    """Convert the milliseconds to score a 300 into an OD value.

    See Also
    --------
    :func:`starpp.mod.od_to_ms_300`
    """
    return (ms - 80) / -6


def difficulty_range(value, min_, mid, max_):
    """Map a 0-10 difficulty setting onto the range ``[min_, max_]`` through
    ``mid`` at 5.
    """
    if value > 5:
        return mid + (max_ - mid) * (value - 5) / 5
    if value < 5:
        return mid - (mid - min_) * (5 - value) / 5
    return mid


class MapAttributes(namedtuple('MapAttributes', 'ar od cs hp clock_rate')):
    """The beatmap settings after mods have been applied.

    Parameters
    ----------
    ar : float
        The effective approach rate, including the clock rate.
    od : float
        The overall difficulty. This is *not* adjusted by the clock rate.
    cs : float
        The circle size.
    hp : float
        The health drain rate.
    clock_rate : float
        The speed multiplier of the map.
    """
    _ar0_ms = 1800
    _ar5_ms = 1200
    _ar10_ms = 450

    @classmethod
    def from_settings(cls, ar, od, cs, hp, mods):
        """Apply mods to raw difficulty settings.

        Parameters
        ----------
        ar, od, cs, hp : float
            The unmodified settings.
        mods : ModifierSet
            The mods to apply.

        Returns
        -------
        attributes : MapAttributes
            The adjusted settings.
        """
        if not mods.changes_map:
            return cls(ar, od, cs, hp, 1.0)

        clock_rate = mods.clock_rate
        multiplier = mods.od_ar_hp_multiplier

        preempt = ar_to_ms(ar * multiplier)
        preempt = min(max(preempt, cls._ar10_ms), cls._ar0_ms) / clock_rate
        ar = ms_to_ar(preempt)

        od = min(od * multiplier, 10)

        if Mod.hard_rock in mods:
            cs = cs * 1.3
        elif Mod.easy in mods:
            cs = cs * 0.5
        cs = min(cs, 10)

        hp = min(hp * multiplier, 10)

        return cls(ar, od, cs, hp, clock_rate)

    @property
    def preempt(self):
        """The milliseconds an object is visible before it must be hit.
        """
        return ar_to_ms(self.ar)

    @property
    def great_hit_window(self):
        """The osu!standard 300 hit window in real time.
        """
        return od_to_ms_300(self.od) / self.clock_rate

    @property
    def effective_od(self):
        """The OD which would produce the same 300 window without the clock
        rate.
        """
        return ms_300_to_od(self.great_hit_window)

    @property
    def taiko_great_hit_window(self):
        """The osu!taiko great hit window in real time.
        """
        return difficulty_range(self.od, 50, 35, 20) / self.clock_rate
