from concurrent.futures import ThreadPoolExecutor, TimeoutError
import threading
import time

import pytest

from starpp import DifficultyCache


def wait_for(predicate, timeout=5):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError('condition not reached')
        time.sleep(0.001)


class Blocking:
    """A computation which blocks until it is released.
    """
    def __init__(self, value='value', error=None):
        self.value = value
        self.error = error
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def __call__(self):
        self.calls += 1
        self.started.set()
        assert self.release.wait(5)
        if self.error is not None:
            raise self.error
        return self.value


def test_hit_and_miss():
    cache = DifficultyCache()
    calls = []

    def compute():
        calls.append(None)
        return 42

    assert cache.get_or_compute(('map', 0), compute) == 42
    assert cache.get_or_compute(('map', 0), compute) == 42
    assert len(calls) == 1
    assert ('map', 0) in cache
    assert len(cache) == 1

    stats = cache.stats
    assert stats.hits == 1
    assert stats.misses == 1
    assert stats.computations == 1
    assert stats.evictions == 0


def test_single_flight():
    cache = DifficultyCache()
    compute = Blocking()
    waiters = 8

    with ThreadPoolExecutor(waiters + 1) as executor:
        owner = executor.submit(cache.get_or_compute, ('map', 0), compute)
        assert compute.started.wait(5)

        futures = [
            executor.submit(cache.get_or_compute, ('map', 0), compute)
            for _ in range(waiters)
        ]
        wait_for(lambda: cache.stats.misses == waiters + 1)
        compute.release.set()

        assert owner.result(5) == 'value'
        assert [f.result(5) for f in futures] == ['value'] * waiters

    assert compute.calls == 1
    assert cache.stats.computations == 1


def test_different_keys_compute_independently():
    cache = DifficultyCache()
    slow = Blocking('slow')

    with ThreadPoolExecutor(2) as executor:
        future = executor.submit(cache.get_or_compute, ('map', 0), slow)
        assert slow.started.wait(5)

        # another key is not blocked by the running computation
        assert cache.get_or_compute(('map', 1), lambda: 'fast') == 'fast'

        slow.release.set()
        assert future.result(5) == 'slow'


def test_failure_is_not_cached():
    cache = DifficultyCache()

    def fail():
        raise ValueError('bad map')

    with pytest.raises(ValueError):
        cache.get_or_compute(('map', 0), fail)

    assert ('map', 0) not in cache
    assert cache.get_or_compute(('map', 0), lambda: 1) == 1
    assert cache.stats.computations == 2


def test_failure_reaches_waiters():
    cache = DifficultyCache()
    compute = Blocking(error=RuntimeError('boom'))

    with ThreadPoolExecutor(2) as executor:
        owner = executor.submit(cache.get_or_compute, ('map', 0), compute)
        assert compute.started.wait(5)

        waiter = executor.submit(cache.get_or_compute, ('map', 0), compute)
        wait_for(lambda: cache.stats.misses == 2)
        compute.release.set()

        with pytest.raises(RuntimeError):
            owner.result(5)
        with pytest.raises(RuntimeError):
            waiter.result(5)

    assert compute.calls == 1
    assert len(cache) == 0


def test_timeout():
    cache = DifficultyCache()
    compute = Blocking()

    with ThreadPoolExecutor(1) as executor:
        owner = executor.submit(cache.get_or_compute, ('map', 0), compute)
        assert compute.started.wait(5)

        with pytest.raises(TimeoutError):
            cache.get_or_compute(('map', 0), compute, timeout=0.01)

        compute.release.set()
        assert owner.result(5) == 'value'

    # the computation was not abandoned
    assert cache.get_or_compute(('map', 0), compute) == 'value'
    assert compute.calls == 1


def test_lru_eviction():
    cache = DifficultyCache(size=2)
    cache.get_or_compute(('a', 0), lambda: 'a')
    cache.get_or_compute(('b', 0), lambda: 'b')

    # touching 'a' makes 'b' the least recently used
    cache.get_or_compute(('a', 0), lambda: 'unused')
    cache.get_or_compute(('c', 0), lambda: 'c')

    assert ('a', 0) in cache
    assert ('b', 0) not in cache
    assert ('c', 0) in cache
    assert cache.stats.evictions == 1


def test_entry_does_not_touch_recency():
    cache = DifficultyCache(size=2)
    cache.get_or_compute(('a', 0), lambda: 'a')
    cache.get_or_compute(('b', 0), lambda: 'b')

    assert cache.entry(('a', 0)).value == 'a'
    assert cache.entry(('missing', 0)) is None
    assert cache.entry(('b', 0)).generation > cache.entry(('a', 0)).generation

    cache.get_or_compute(('c', 0), lambda: 'c')
    assert ('a', 0) not in cache


def test_size_zero():
    cache = DifficultyCache(size=0)
    assert cache.get_or_compute(('a', 0), lambda: 1) == 1
    assert cache.get_or_compute(('a', 0), lambda: 2) == 2
    assert len(cache) == 0


def test_unbounded():
    cache = DifficultyCache(size=None)
    for n in range(5000):
        cache.get_or_compute(('map', n), lambda: n)
    assert len(cache) == 5000
    assert cache.stats.evictions == 0


def test_negative_size():
    with pytest.raises(ValueError):
        DifficultyCache(size=-1)


def test_invalidate():
    cache = DifficultyCache()
    cache.get_or_compute(('a', 0), lambda: 1)
    cache.get_or_compute(('a', 1), lambda: 2)
    cache.get_or_compute(('b', 0), lambda: 3)

    assert cache.invalidate('a') == 2
    assert ('a', 0) not in cache
    assert ('a', 1) not in cache
    assert ('b', 0) in cache

    assert cache.invalidate('missing') == 0
    assert cache.get_or_compute(('a', 0), lambda: 4) == 4


def test_invalidate_while_computing():
    cache = DifficultyCache()
    compute = Blocking('stale')

    with ThreadPoolExecutor(1) as executor:
        owner = executor.submit(cache.get_or_compute, ('a', 0), compute)
        assert compute.started.wait(5)

        cache.invalidate('a')
        compute.release.set()

        # the caller still gets its value
        assert owner.result(5) == 'stale'

    assert ('a', 0) not in cache
    assert cache.get_or_compute(('a', 0), lambda: 'fresh') == 'fresh'
    assert cache.entry(('a', 0)).value == 'fresh'


def test_stale_computation_does_not_replace_fresh():
    cache = DifficultyCache()
    stale = Blocking('stale')

    with ThreadPoolExecutor(1) as executor:
        owner = executor.submit(cache.get_or_compute, ('a', 0), stale)
        assert stale.started.wait(5)

        cache.invalidate('a')
        assert cache.get_or_compute(('a', 0), lambda: 'fresh') == 'fresh'

        stale.release.set()
        assert owner.result(5) == 'stale'

    assert cache.entry(('a', 0)).value == 'fresh'


def test_invalidate_keeps_no_state():
    cache = DifficultyCache(4)
    for n in range(10000):
        cache.invalidate(('map', n))

    assert len(cache) == 0
    for value in vars(cache).values():
        if isinstance(value, (dict, list, set)):
            assert not value


def test_clear():
    cache = DifficultyCache()
    cache.get_or_compute(('a', 0), lambda: 1)
    cache.clear()
    assert len(cache) == 0
    assert 'entries' in repr(cache)
