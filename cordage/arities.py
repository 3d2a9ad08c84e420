"""
Cordage ranges (arity and positional index).

Overview
- Range(min, max=Unset)
  • min: int >= 0; max: int >= min, or None for unbounded ("*").
  • Range(n) is exactly n.
  • Doubles as the arity of an argument (how many values it consumes) and as
    the index of a positional parameter (which raw slots bind to it).

- Range.parse(text)
  • "n", "a..b", "a..*" and "*" (same as "0..*"); ints are accepted too.

- Range.default(type, multi, option)
  • boolean scalar option → 0, multi-value option → 1 (values accumulate
    across occurrences), multi-value positional → 0..*, anything else → 1.

Notes
- Ranges are immutable, hashable and compare by value.
- str(range) is the canonical textual form ("1", "0..1", "1..*").
"""
import re

from .utils import Unset


class Range:
    """
    Closed range of non-negative integers with an optional unbounded top.
    """
    __slots__ = ("_min", "_max")

    def __init__(self, min, max=Unset, /):
        if not isinstance(min, int) or isinstance(min, bool):
            raise TypeError("range 'min' must be an integer")
        if min < 0:
            raise ValueError("range 'min' cannot be negative")
        if max is Unset:
            max = min
        elif max is not None:
            if not isinstance(max, int) or isinstance(max, bool):
                raise TypeError("range 'max' must be an integer or None")
            if max < min:
                raise ValueError("range 'max' cannot be lower than 'min' (%d < %d)" % (max, min))
        object.__setattr__(self, "_min", min)
        object.__setattr__(self, "_max", max)

    def __setattr__(self, name, value):
        raise AttributeError("range objects are immutable")

    @property
    def min(self):
        return self._min

    @property
    def max(self):
        return self._max

    @property
    def variable(self):
        """True when the top of the range is unbounded."""
        return self._max is None

    unbounded = variable

    @classmethod
    def parse(cls, text, /):
        """
        Build a range from its textual form ("2", "0..1", "1..*", "*") or an int.
        """
        if isinstance(text, Range):
            return text
        if isinstance(text, int) and not isinstance(text, bool):
            return cls(text)
        if not isinstance(text, str):
            raise TypeError("range must be a string, an integer or a range")
        if not (match := re.fullmatch(r"\s*(?:(\*)|(\d+)(?:\s*\.\.\s*(\*|\d+))?)\s*", text)):
            raise ValueError("invalid range %r (expected 'n', 'a..b' or 'a..*')" % text)
        star, low, high = match.groups()
        if star:
            return cls(0, None)
        if high is None:
            return cls(int(low))
        return cls(int(low), None if high == "*" else int(high))

    @classmethod
    def default(cls, type, /, multi=False, option=True):
        if multi:
            return cls(1) if option else cls(0, None)
        if option and type is bool:
            return cls(0)
        return cls(1)

    def admits(self, count, /):
        """Whether an argument holding `count` values may take one more."""
        return self._max is None or count < self._max

    def contains(self, value, /):
        return value >= self._min and (self._max is None or value <= self._max)

    def at_least(self, minimum, /):
        """Return a range whose min is raised to `minimum` (max follows when needed)."""
        if self._min >= minimum:
            return self
        high = self._max if self._max is None or self._max >= minimum else minimum
        return Range(minimum, high)

    def __contains__(self, value):
        return self.contains(value)

    def __eq__(self, other):
        if not isinstance(other, Range):
            return NotImplemented
        return (self._min, self._max) == (other._min, other._max)

    def __hash__(self):
        return hash((Range, self._min, self._max))

    def __str__(self):
        if self._max is None:
            return "%d..*" % self._min
        if self._min == self._max:
            return str(self._min)
        return "%d..%d" % (self._min, self._max)

    def __repr__(self):
        return "Range(%r)" % str(self)

    def __rich_repr__(self):
        yield str(self)


__all__ = (
    "Range",
)
