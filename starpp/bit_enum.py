import enum
from functools import reduce
import operator as op


class BitEnum(enum.IntEnum):
    """An int enum whose members are single bits of a mask.
    """
    @classmethod
    def combine(cls, *members):
        """Or members together into a single mask.

        Parameters
        ----------
        *members : BitEnum
            The members to set.

        Returns
        -------
        bitmask : int
            The mask with every given bit set. With no members this is 0.
        """
        return reduce(op.or_, members, 0)

    @classmethod
    def flags(cls, bitmask):
        """The canonical members set in a bitmask.

        Aliases (members which share a value with an earlier member) are
        only reported once, under the first name defined.

        Parameters
        ----------
        bitmask : int
            The bitmask to inspect.

        Returns
        -------
        members : list[BitEnum]
            The set members ordered by bit value.
        """
        return [member for member in cls if bitmask & member]

    @classmethod
    def unknown_bits(cls, bitmask):
        """The bits of ``bitmask`` which no member names.
        """
        return bitmask & ~reduce(op.or_, cls, 0)
