"""
OptArgs type registry.

Every declaration names its logical type with an `isa` tag. The tags form a
closed enumeration (Isa); each member knows:
- whether it consumes a value token (Bool and Counter are self-contained),
- how to coerce raw token text into a typed value,
- how repeated occurrences combine (Counter increments, ArrayRef appends,
  HashRef inserts `key=value` pairs, everything else keeps the last value),
- how a greedy argument folds all remaining tokens into one value.

SubCmd is reserved for arguments: its "coercion" is a child-command lookup
performed by the matcher, so coerce() returns the token unchanged.

Quick example:
    >>> Isa.resolve("Int").coerce("42")
    42
    >>> Isa.ARRAYREF.bind(["a"], "b")
    ['a', 'b']
"""
import math
import re
from enum import Enum


_INTEGER = re.compile(r"[+-]?\d+")
_NUMBER = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


class Isa(Enum):
    BOOL = "Bool"
    COUNTER = "Counter"
    STR = "Str"
    INT = "Int"
    NUM = "Num"
    ARRAYREF = "ArrayRef"
    HASHREF = "HashRef"
    SUBCMD = "SubCmd"

    @classmethod
    def resolve(cls, tag, /):
        """
        Map a tag ("Str", "Int", ...) or an Isa member to its member.

        Raises ValueError for unknown tags and TypeError for anything that is
        neither a string nor a member.
        """
        if isinstance(tag, cls):
            return tag
        if not isinstance(tag, str):
            raise TypeError("isa must be a string or an Isa member")
        return cls(tag)

    @property
    def valued(self):
        """True when an option of this type consumes a value token."""
        return self not in (Isa.BOOL, Isa.COUNTER)

    @property
    def accumulates(self):
        """True when repeated occurrences combine instead of overriding."""
        return self in (Isa.COUNTER, Isa.ARRAYREF, Isa.HASHREF)

    def coerce(self, token, /):
        """
        Convert one raw token.

        Returns the typed scalar (HashRef returns a (key, value) pair).
        Raises ValueError with a user-facing reason on rejection.
        """
        match self:
            case Isa.STR | Isa.ARRAYREF | Isa.SUBCMD:
                return token
            case Isa.INT:
                if not _INTEGER.fullmatch(token):
                    raise ValueError("%r is not an integer" % token)
                return int(token)
            case Isa.NUM:
                if not _NUMBER.fullmatch(token) or not math.isfinite(number := float(token)):
                    raise ValueError("%r is not a number" % token)
                return number
            case Isa.HASHREF:
                key, sep, value = token.partition("=")
                if not sep or not key:
                    raise ValueError("%r is not a key=value pair" % token)
                return key, value
            case Isa.BOOL | Isa.COUNTER:
                raise ValueError("%s does not take a value" % self.value)

    def bind(self, current, token=None, /):
        """
        Fold one occurrence into the value bound so far.

        `current` is the previously bound value (None when unbound); `token`
        is the raw value text for valued types and ignored otherwise. A new
        object is always returned; `current` is never mutated.
        """
        match self:
            case Isa.BOOL:
                return True
            case Isa.COUNTER:
                return (current or 0) + 1
            case Isa.ARRAYREF:
                return [*(current or ()), self.coerce(token)]
            case Isa.HASHREF:
                key, value = self.coerce(token)
                return {**(current or {}), key: value}
            case _:
                return self.coerce(token)

    def collect(self, tokens, /):
        """
        Fold every remaining token into a greedy argument value.

        Str joins with single spaces, ArrayRef keeps the list and HashRef
        builds a mapping; other types cannot be greedy.
        """
        match self:
            case Isa.STR:
                return " ".join(tokens)
            case Isa.ARRAYREF:
                return list(tokens)
            case Isa.HASHREF:
                return dict(map(self.coerce, tokens))
            case _:
                raise TypeError("%s cannot be greedy" % self.value)


OPTION_TYPES = frozenset(Isa) - {Isa.SUBCMD}
ARGUMENT_TYPES = frozenset(Isa) - {Isa.BOOL, Isa.COUNTER}
GREEDY_TYPES = frozenset({Isa.STR, Isa.ARRAYREF, Isa.HASHREF})


__all__ = (
    "Isa",
    "OPTION_TYPES",
    "ARGUMENT_TYPES",
    "GREEDY_TYPES",
)
