from collections import OrderedDict, namedtuple
from concurrent.futures import Future, TimeoutError
import itertools
import logging
import threading


log = logging.getLogger(__name__)


class CacheEntry(namedtuple('CacheEntry', 'value generation')):
    """A published cache value.

    Parameters
    ----------
    value : any
        The computed value.
    generation : int
        The cache-wide publication counter at the time ``value`` was
        published. Later publications always have a larger generation.
    """


class CacheStats(namedtuple('CacheStats', [
        'hits',
        'misses',
        'computations',
        'evictions',
])):
    """Counters describing how a :class:`DifficultyCache` has been used.

    Parameters
    ----------
    hits : int
        Lookups answered by a published entry.
    misses : int
        Lookups which had to wait for or start a computation.
    computations : int
        Computations started.
    evictions : int
        Entries dropped to stay within the size limit.
    """


class DifficultyCache:
    """A bounded least-recently-used cache which runs at most one
    computation per key at a time.

    Parameters
    ----------
    size : int or None, optional
        The number of entries to keep. ``None`` keeps everything and ``0``
        keeps nothing while still collapsing concurrent computations.

    Notes
    -----
    Keys are tuples whose first element is the beatmap identity. This is how
    :meth:`invalidate` finds every entry of one beatmap.

    Callers which ask for a key that is being computed by another thread wait
    on that computation instead of starting their own. The owning thread runs
    the computation without holding the cache lock. A failed computation is
    never published, the next lookup runs it again.
    """
    DEFAULT_SIZE = 2048

    def __init__(self, size=DEFAULT_SIZE):
        if size is not None and size < 0:
            raise ValueError(
                f'size must be non-negative or None, got {size!r}',
            )

        self.size = size

        self._lock = threading.RLock()
        self._entries = OrderedDict()
        self._in_flight = {}
        self._generation = itertools.count(1)

        self._hits = 0
        self._misses = 0
        self._computations = 0
        self._evictions = 0

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def __contains__(self, key):
        with self._lock:
            return key in self._entries

    def __repr__(self):
        return (
            f'<{type(self).__qualname__}: {len(self)} entries,'
            f' size={self.size}>'
        )

    @property
    def stats(self):
        """The usage counters of this cache.
        """
        with self._lock:
            return CacheStats(
                self._hits,
                self._misses,
                self._computations,
                self._evictions,
            )

    def entry(self, key):
        """Look up the published entry for a key without changing its
        recency.

        Parameters
        ----------
        key : tuple
            The key to look up.

        Returns
        -------
        entry : CacheEntry or None
            The entry, or None if nothing is published for ``key``.
        """
        with self._lock:
            return self._entries.get(key)

    def get_or_compute(self, key, compute, *, timeout=None):
        """Return the value for ``key``, computing it if needed.

        Parameters
        ----------
        key : tuple
            The key. The first element is the beatmap identity.
        compute : callable[[], any]
            The function which produces the value.
        timeout : float, optional
            The number of seconds to wait for a computation started by another
            caller. The computation itself is not affected when the wait times
            out.

        Returns
        -------
        value : any
            The cached or newly computed value.

        Raises
        ------
        concurrent.futures.TimeoutError
            Raised when the wait for another caller's computation times out.
        Exception
            Any exception raised by ``compute``, whether it ran on this thread
            or another.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries.move_to_end(key)
                self._hits += 1
                log.debug('cache hit for %r', key)
                return entry.value

            self._misses += 1
            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                future = self._in_flight[key] = Future()
                self._computations += 1

        if not owner:
            log.debug('waiting for in-flight computation of %r', key)
            try:
                return future.result(timeout)
            except TimeoutError:
                log.warning(
                    'timed out after %ss waiting for %r',
                    timeout,
                    key,
                )
                raise

        log.debug('cache miss for %r, computing', key)
        try:
            value = compute()
        except BaseException as e:
            with self._lock:
                if self._in_flight.get(key) is future:
                    del self._in_flight[key]
            future.set_exception(e)
            raise

        with self._lock:
            # invalidate drops the in-flight future of a stale computation
            if self._in_flight.get(key) is future:
                del self._in_flight[key]
                self._publish(key, value)
            else:
                log.debug(
                    '%r was invalidated while computing, not publishing',
                    key,
                )

        future.set_result(value)
        return value

    def _publish(self, key, value):
        if self.size == 0:
            return

        entries = self._entries
        entries[key] = CacheEntry(value, next(self._generation))
        entries.move_to_end(key)

        if self.size is None:
            return

        while len(entries) > self.size:
            evicted, _ = entries.popitem(last=False)
            self._evictions += 1
            log.debug('evicted %r', evicted)

    def invalidate(self, identity):
        """Drop every entry of a beatmap.

        Parameters
        ----------
        identity : hashable
            The beatmap identity.

        Returns
        -------
        dropped : int
            The number of entries dropped.

        Notes
        -----
        Computations for ``identity`` which are running when this is called
        still return their value to their callers but do not publish it.
        """
        with self._lock:

            stale = [key for key in self._entries if key[0] == identity]
            for key in stale:
                del self._entries[key]

            for key in [key for key in self._in_flight if key[0] == identity]:
                del self._in_flight[key]

        log.debug('invalidated %d entries of %r', len(stale), identity)
        return len(stale)

    def clear(self):
        """Drop every published entry.
        """
        with self._lock:
            self._entries.clear()
