"""
OptArgs utilities (internal helpers shared by every layer).

Overview
- UnsetType / Unset
  • Sentinel for "parameter not given", distinct from None (None is a valid
    default value for declarations).
- coalesce(value, default=None)
  • Materialize Unset into a concrete default while preserving falsey values.
- rename(callable, name) / @rename("name")
  • Stable __name__/__qualname__ for generated callables.
- mirror("attr")
  • Read-only property over a private backing field, handing out copies of
    containers so the public surface of a frozen tree cannot be mutated.
- ordinal(number)
  • Human-friendly position labels used by parse faults ("third position").

Names not in __all__ are internal and may change without notice.
"""
import builtins
import functools
from collections.abc import Sequence, Mapping, Set
from typing import final


@final
class UnsetType:
    """
    Sentinel type representing a parameter that was not provided.

    - Falsey, printable as "Unset", sealed against subclassing.
    - A single instance per process (see __new__).
    - Participates in PEP 604 unions so `str | Unset` works in isinstance().
    """

    def __or__(self, other, /):
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Return `object` unless it is Unset, in which case return `default`.

    Falsey values (None, 0, "", []) are preserved; only Unset is replaced.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set __name__/__qualname__ on a callable, or return a decorator doing so.

    Forms
    - rename(callable, name) -> callable
    - rename(name)           -> decorator
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _detach(object):
    # Fresh containers all the way down; keys and leaves are shared.
    if isinstance(object, tuple):
        return tuple(map(_detach, object))
    elif isinstance(object, Sequence) and not isinstance(object, str | bytes):
        return list(map(_detach, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(_detach, object.values())))
    elif isinstance(object, Set):
        return set(map(_detach, object))
    return object


def mirror(name, /):
    """
    Define a read-only property exposing `self._{name}`.

    Container values are copied on every read so callers cannot mutate the
    declaration tree through the returned object.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _detach(getattr(self, "_" + name))

    return property(getter)


@functools.cache
def ordinal(number, /):
    """
    Return an ordinal label for a 1-based position.

    1..10 are spelled out ("first" .. "tenth"); other numbers use numeric
    suffixes with the usual teens exception (11th, 12th, 13th).
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    if 10 < number % 100 < 20:
        return f"{number}th"

    return f"{number}%s" % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


Unset = UnsetType()
"""
Singleton "not provided" marker. Use `coalesce(value, default)` to
materialize a fallback only when the value is Unset.
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "ordinal",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
