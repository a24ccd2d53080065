import json
import logging
import pathlib

import click

from . import Calculator, ScoreParams
from .cli import (
    curves_to_json,
    maybe_show_progress,
    parse_mods,
    read_beatmap,
    to_json,
)
from .errors import StarppError


def _load(path):
    try:
        return read_beatmap(path)
    except ValueError as e:
        raise click.ClickException(f'Failed to read "{path}": {e}')


def _echo_json(value):
    click.echo(json.dumps(value, indent=2))


mods_option = click.option(
    '--mods',
    callback=parse_mods,
    default='',
    help='The mods as acronyms, for example HDDT.',
)


@click.group()
@click.option(
    '--verbose/--no-verbose',
    help='Log debug information to stderr?',
    default=False,
)
@click.option(
    '--cache-size',
    type=click.IntRange(min=0),
    default=Calculator.DEFAULT_CACHE_SIZE,
    envvar='STARPP_CACHE_SIZE',
    show_default=True,
    help='The number of difficulty results to keep in memory.',
)
@click.pass_context
def main(ctx, verbose, cache_size):
    """Difficulty and performance calculation for osu! beatmaps.

    Beatmaps are read from JSON descriptions.
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)

    ctx.obj = calculator = Calculator(cache_size=cache_size)
    ctx.call_on_close(calculator.close)


@main.command()
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@mods_option
@click.pass_obj
def difficulty(calculator, path, mods):
    """Compute the difficulty of a beatmap.
    """
    beatmap = _load(path)
    try:
        attributes = calculator.compute_difficulty(beatmap, mods)
    except StarppError as e:
        raise click.ClickException(str(e))
    _echo_json(to_json(attributes))


@main.command()
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@mods_option
@click.option('--combo', type=click.IntRange(min=0), help='The max combo.')
@click.option('--n300', type=click.IntRange(min=0))
@click.option('--n100', type=click.IntRange(min=0))
@click.option('--n50', type=click.IntRange(min=0))
@click.option('--n-geki', type=click.IntRange(min=0))
@click.option('--n-katu', type=click.IntRange(min=0))
@click.option('--misses', type=click.IntRange(min=0), default=0)
@click.option(
    '--accuracy',
    type=click.FloatRange(0, 1),
    help='The accuracy used when no hit counts are given.',
)
@click.pass_obj
def performance(calculator,
                path,
                mods,
                combo,
                n300,
                n100,
                n50,
                n_geki,
                n_katu,
                misses,
                accuracy):
    """Compute the performance of a play on a beatmap.
    """
    beatmap = _load(path)
    score = ScoreParams(
        mods=mods,
        combo=combo,
        n300=n300,
        n100=n100,
        n50=n50,
        n_geki=n_geki,
        n_katu=n_katu,
        misses=misses,
        accuracy=accuracy,
    )
    try:
        result = calculator.performance(beatmap, score)
    except StarppError as e:
        raise click.ClickException(str(e))
    _echo_json(to_json(result))


@main.command()
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@mods_option
@click.pass_obj
def strains(calculator, path, mods):
    """Print the strain curve of each skill of a beatmap.
    """
    beatmap = _load(path)
    try:
        curves = calculator.strains(beatmap, mods)
    except StarppError as e:
        raise click.ClickException(str(e))
    _echo_json(curves_to_json(curves))


@main.command()
@click.argument(
    'beatmaps',
    type=click.Path(exists=True, file_okay=False),
)
@mods_option
@click.option(
    '--recurse/--no-recurse',
    help='Recurse through ``beatmaps`` searching for beatmaps?',
    default=True,
)
@click.option(
    '--progress/--no-progress',
    help='Show a progress bar?',
    default=True,
)
@click.option(
    '--skip-exceptions/--no-skip-exceptions',
    help='Skip beatmap files that cause exceptions rather than exiting?',
    default=False,
)
@click.pass_obj
def batch(calculator, beatmaps, mods, recurse, progress, skip_exceptions):
    """Compute the star rating of every beatmap in a directory.
    """
    directory = pathlib.Path(beatmaps)
    paths = sorted(
        directory.rglob('*.json') if recurse else directory.glob('*.json'),
    )

    results = []
    with maybe_show_progress(
            paths,
            progress,
            label='Computing difficulty: ',
            item_show_func=lambda p: 'Done!' if p is None else str(p),
            file=click.get_text_stream('stderr'),
    ) as it:
        for path in it:
            try:
                beatmap = read_beatmap(path)
                attributes = calculator.compute_difficulty(beatmap, mods)
            except (ValueError, StarppError):
                if not skip_exceptions:
                    raise
                logging.exception(f'Failed to compute "{path}"')
                continue

            results.append((path, attributes))

    for path, attributes in results:
        click.echo(f'{path}\t{attributes.stars:.4f}')


if __name__ == '__main__':
    main()
