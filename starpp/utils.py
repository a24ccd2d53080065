class lazyval:
    """Decorator to lazily compute and cache a value.
    """
    def __init__(self, fget):
        self._fget = fget
        self._name = None

    def __set_name__(self, owner, name):
        self._name = name

    def __get__(self, instance, owner):
        if instance is None:
            return self

        value = self._fget(instance)
        vars(instance)[self._name] = value
        return value

    def __set__(self, instance, value):
        vars(instance)[self._name] = value


def clamp(value, lower, upper):
    return max(lower, min(value, upper))


def lerp(start, end, amount):
    return start + (end - start) * amount


def milliseconds(delta):
    """Convert a :class:`datetime.timedelta` to float milliseconds.
    """
    return delta.total_seconds() * 1000
