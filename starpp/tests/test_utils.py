from datetime import timedelta

from starpp.utils import clamp, lazyval, milliseconds


def test_clamp():
    assert clamp(5, 0, 10) == 5
    assert clamp(-1, 0, 10) == 0
    assert clamp(11, 0, 10) == 10


def test_milliseconds():
    assert milliseconds(timedelta(seconds=1.5)) == 1500


def test_lazyval():
    class C:
        calls = 0

        @lazyval
        def value(self):
            type(self).calls += 1
            return 'value'

    ob = C()
    assert ob.value == 'value'
    assert ob.value == 'value'
    assert C.calls == 1
    assert isinstance(C.value, lazyval)
