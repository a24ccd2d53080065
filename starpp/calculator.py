from functools import partial

from . import difficulty, performance
from .cache import DifficultyCache
from .mod import ModifierSet
from .performance import ScoreParams


class Calculator:
    """Compute and cache the difficulty and performance of beatmaps.

    Parameters
    ----------
    cache_size : int or None, optional
        The number of difficulty attributes to keep in memory. ``None`` keeps
        everything.
    timeout : float, optional
        The default number of seconds to wait for a difficulty computation
        started by another thread.
    executor : concurrent.futures.Executor, optional
        Fold the skills of a map in parallel with this executor. The
        calculator does not shut it down.

    Notes
    -----
    A calculator may be shared between threads. Concurrent requests for the
    same beatmap and difficulty mods run the computation once.

    Examples
    --------
    >>> with Calculator() as calculator:
    ...     attributes = calculator.compute_difficulty(beatmap, 'HDDT')
    ...     pp = calculator.compute_performance(
    ...         attributes,
    ...         ScoreParams(mods='HDDT', accuracy=0.98),
    ...     ).pp
    """
    DEFAULT_CACHE_SIZE = DifficultyCache.DEFAULT_SIZE

    def __init__(self,
                 *,
                 cache_size=DEFAULT_CACHE_SIZE,
                 timeout=None,
                 executor=None):
        self.timeout = timeout
        self._executor = executor
        self._cache = DifficultyCache(cache_size)

    @property
    def cache(self):
        """The :class:`~starpp.cache.DifficultyCache` of this calculator.
        """
        return self._cache

    def close(self):
        """Drop every cached difficulty.
        """
        self._cache.clear()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def compute_difficulty(self, beatmap, mods=None, *, timeout=None):
        """Compute the difficulty of a beatmap, using the cache.

        Parameters
        ----------
        beatmap : Beatmap
            The beatmap.
        mods : ModifierSet or any, optional
            The mods. Only the mods which change the difficulty are used.
        timeout : float, optional
            The number of seconds to wait for the same computation started by
            another thread. Defaults to the calculator's timeout.

        Returns
        -------
        attributes : DifficultyAttributes
            The difficulty attributes for the beatmap's game mode.

        Raises
        ------
        InvalidModifierCombination
            Raised when ``mods`` is not a valid modifier set. The cache is not
            touched.
        ComputationFailed
            Raised when the beatmap is malformed. Nothing is cached.
        concurrent.futures.TimeoutError
            Raised when the wait for another thread times out.
        """
        if not isinstance(mods, ModifierSet):
            mods = ModifierSet(mods)

        mods = mods.difficulty_mods()
        return self._cache.get_or_compute(
            (beatmap.identity, mods.difficulty_key),
            partial(
                difficulty.calculate,
                beatmap,
                mods,
                executor=self._executor,
            ),
            timeout=self.timeout if timeout is None else timeout,
        )

    def compute_performance(self, attributes, score):
        """Compute the performance of a play.

        Parameters
        ----------
        attributes : DifficultyAttributes
            The difficulty of the map the play was set on.
        score : ScoreParams
            The play.

        Returns
        -------
        performance : PerformanceAttributes
            The performance attributes.

        Raises
        ------
        ModifierMismatch
            Raised when the mods of ``score`` do not match the mods of
            ``attributes``.
        """
        return performance.calculate(attributes, score)

    def performance(self, beatmap, score, *, timeout=None):
        """Compute the performance of a play on a beatmap, computing the
        difficulty for the play's mods.

        Parameters
        ----------
        beatmap : Beatmap
            The beatmap.
        score : ScoreParams
            The play.
        timeout : float, optional
            The number of seconds to wait for the difficulty computation of
            another thread.

        Returns
        -------
        performance : PerformanceAttributes
            The performance attributes.
        """
        attributes = self.compute_difficulty(
            beatmap,
            score.mods,
            timeout=timeout,
        )
        return self.compute_performance(attributes, score)

    def max_performance(self, beatmap, mods=None, *, timeout=None):
        """The performance of a full combo play with perfect accuracy.
        """
        if not isinstance(mods, ModifierSet):
            mods = ModifierSet(mods)

        return self.performance(
            beatmap,
            ScoreParams(mods=mods, accuracy=1.0),
            timeout=timeout,
        )

    def strains(self, beatmap, mods=None):
        """The strain curve of each skill of a beatmap. These are not cached.

        Parameters
        ----------
        beatmap : Beatmap
            The beatmap.
        mods : ModifierSet or any, optional
            The mods.

        Returns
        -------
        curves : dict[str, StrainCurve]
            The strain curve of each skill by name.
        """
        return difficulty.strains(beatmap, mods, executor=self._executor)

    def gradual_difficulty(self, beatmap, mods=None):
        """The difficulty of a beatmap after each hit object. These are not
        cached.

        Parameters
        ----------
        beatmap : Beatmap
            The beatmap.
        mods : ModifierSet or any, optional
            The mods.

        Returns
        -------
        attributes : iterator[DifficultyAttributes]
            The difficulty of the first ``n`` objects for each ``n``.
        """
        return difficulty.gradual(beatmap, mods)

    def gradual_performance(self, beatmap, scores, mods=None):
        """The performance of a play after each hit object.

        Parameters
        ----------
        beatmap : Beatmap
            The beatmap.
        scores : iterable[ScoreParams]
            The state of the play after each hit object.
        mods : ModifierSet or any, optional
            The mods of the play.

        Returns
        -------
        performance : iterator[PerformanceAttributes]
            The performance after each hit object.
        """
        return performance.gradual(
            self.gradual_difficulty(beatmap, mods),
            scores,
        )

    def invalidate(self, identity):
        """Drop the cached difficulty of a beatmap for every set of mods.

        Parameters
        ----------
        identity : hashable
            The beatmap identity, see :attr:`Beatmap.identity`.

        Returns
        -------
        dropped : int
            The number of cache entries dropped.
        """
        return self._cache.invalidate(identity)
