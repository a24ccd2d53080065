from contextlib import contextmanager
import json

import click

from .beatmap import Beatmap
from .errors import InvalidModifierCombination
from .mod import ModifierSet


def maybe_show_progress(it, show_progress, **kwargs):
    """Optionally show a progress bar for the given iterator.

    Parameters
    ----------
    it : iterable
        The underlying iterator.
    show_progress : bool
        Should progress be shown.
    **kwargs
        Forwarded to the click progress bar.

    Returns
    -------
    itercontext : context manager
        A context manager whose enter is the actual iterator to use.

    Examples
    --------
    .. code-block:: python

       with maybe_show_progress([1, 2, 3], True) as ns:
            for n in ns:
                ...
    """
    if show_progress:
        return click.progressbar(it, **kwargs)

    @contextmanager
    def ctx():
        yield it

    return ctx()


def parse_mods(ctx, param, value):
    """Click callback which turns an acronym string like ``HDDT`` into a
    :class:`~starpp.mod.ModifierSet`.
    """
    try:
        return ModifierSet(value or 0)
    except InvalidModifierCombination as e:
        raise click.BadParameter(str(e))


def read_beatmap(path):
    """Read a JSON beatmap description.

    Parameters
    ----------
    path : path-like
        The path to the JSON file.

    Returns
    -------
    beatmap : Beatmap
        The beatmap.

    Raises
    ------
    ValueError
        Raised when the file is not a valid beatmap description.
    """
    with open(path) as f:
        return Beatmap.from_json(json.load(f))


def to_json(attributes):
    """Convert difficulty or performance attributes into a JSON compatible
    mapping.
    """
    out = {}
    mode = getattr(attributes, 'mode', None)
    if mode is not None:
        out['mode'] = mode.name

    for name, value in attributes._asdict().items():
        if isinstance(value, ModifierSet):
            value = str(value)
        elif hasattr(value, '_asdict'):
            value = to_json(value)
        out[name] = value

    return out


def curves_to_json(curves):
    """Convert the strain curves of a map into a JSON compatible mapping.
    """
    return {
        name: {
            'section_length': curve.section_length,
            'start': curve.start,
            'peaks': curve.peaks.tolist(),
        }
        for name, curve in curves.items()
    }
