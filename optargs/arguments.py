r"""
OptArgs declarations.

Overview
- Declarations
  • Option: a named, flag-prefixed parameter (`--name`, `-a`), typed via `isa`.
  • Argument: a positional parameter, matched in declaration order.
  Both are immutable once constructed; every field is exposed through a
  read-only property.

- Defaults
  • Literal(value): a plain value, deep-copied for every parse so mutable
    defaults are never shared between two results.
  • Computed(function): called once per parse with the merged result built
    so far (earlier defaults included) and returning the value.
  Plain functions, lambdas and bound methods given as `default` are wrapped
  in Computed automatically; any other object becomes a Literal.

Metadata (sanitized on construction)
- Shared
  • name: identifier (`[^\W\d]\w*`), used as the key of the merged result.
  • isa: one of the Isa tags, restricted per kind (OPTION_TYPES/ARGUMENT_TYPES).
  • comment: non-empty text shown by usage rendering.
  • default / required: mutually exclusive.
  • hidden: omitted from usage unless help was requested.
- Option only
  • alias: "n" or "n|dry" (single-character aliases render as `-n`, longer
    ones as `--dry`). Names containing "_" also match their hyphenated form.
  • ishelp: presence short-circuits parsing with a help request (Bool or
    Counter only).
- Argument only
  • greedy: consume every remaining token (Str, ArrayRef and HashRef only).
  • fallback: SubCmd only; a mapping describing the Argument bound when the
    token names no sub-command.

Every rejection raises a DeclarationError subclass (see optargs.faults).
"""
import copy
import functools
import inspect
import itertools
import operator
import re
from collections.abc import Mapping

from .faults import *
from .isa import *
from .utils import *


# Declaration order across the whole process; defaults resolve in this order.
_sequence = itertools.count()


class Literal:
    """A default value; resolve() hands out an independent deep copy."""

    __slots__ = ("value",)

    def __init__(self, value, /):
        self.value = value

    def resolve(self, result, /):
        return copy.deepcopy(self.value)

    def __repr__(self):
        return f"Literal({self.value!r})"


class Computed:
    """
    A deferred default: `function(result)` where `result` is a copy of the
    merged mapping resolved so far.
    """

    __slots__ = ("function",)

    def __init__(self, function, /):
        if not callable(function):
            raise TypeError("Computed() argument must be callable")
        self.function = function

    def resolve(self, result, /):
        return self.function(dict(result))

    def __repr__(self):
        return f"Computed({getattr(self.function, '__qualname__', self.function)!r})"


def _sanitize_default(default, /):
    if default is Unset or isinstance(default, Literal | Computed):
        return default
    if inspect.isfunction(default) or inspect.ismethod(default) or isinstance(default, functools.partial):
        return Computed(default)
    return Literal(default)


class DeclarationType(type):
    """
    Metaclass for declarations.

    - __typename__ is derived from the class name ("option", "argument").
    - Every name listed in __introspectable__ becomes a read-only property
      mirroring the private "_name" field.
    - __repr__/__rich_repr__ show the introspectable fields in order.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return "%s(%s)" % (
                type(self).__typename__,
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__())),
            )
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate the fields shared by Option and Argument.

    Mutates `metadata` in place (isa resolved to an Isa member, default
    wrapped in Literal/Computed, booleans normalized).
    """
    typename = cls.__typename__

    if not isinstance(name := metadata["name"], str) or not name.strip():
        raise MissingNameError(f"{typename} name must be a non-empty string")
    elif not re.fullmatch(r"[^\W\d]\w*", name):
        raise InvalidParameterError(f"{typename} name {name!r} must be an identifier")

    if (isa := metadata["isa"]) is Unset:
        raise MissingTypeError(f"{typename} {name!r} must specify 'isa'")
    try:
        isa = Isa.resolve(isa)
    except (TypeError, ValueError):
        raise UnknownTypeError(f"{typename} {name!r} has unknown type {isa!r}") from None
    if isa not in cls.__types__:
        raise InvalidParameterError(f"{typename} {name!r} cannot be of type {isa.value!r}")
    metadata["isa"] = isa

    if not isinstance(comment := metadata["comment"], str) or not comment.strip():
        raise InvalidParameterError(f"{typename} {name!r} must specify a non-empty 'comment'")
    metadata["comment"] = comment.strip()

    metadata["required"] = bool(metadata["required"])
    if metadata["required"] and metadata["default"] is not Unset:
        raise ConflictingDefaultsError(f"{typename} {name!r} cannot be both 'required' and have a 'default'")
    metadata["default"] = _sanitize_default(metadata["default"])
    metadata["hidden"] = bool(metadata["hidden"])


def _sanitize_option_metadata(cls, metadata, /):
    """
    Internal: validate alias/ishelp and derive the matching names.

    - names: the declared name plus its hyphenated spelling when it contains "_".
    - aliases: split on "|", each a word of letters, digits and hyphens.
    """
    name = metadata["name"]

    names = [name]
    if "_" in name:
        names.append(name.replace("_", "-"))
    metadata["names"] = tuple(names)

    aliases = []
    if (alias := metadata["alias"]) is not Unset:
        if not isinstance(alias, str):
            raise InvalidParameterError(f"option {name!r} 'alias' must be a string")
        for alias in alias.split("|"):
            if not re.fullmatch(r"[^\W_][\w-]*", alias := alias.strip()):
                raise InvalidParameterError(f"option {name!r} has an invalid alias {alias!r}")
            if alias in names or alias in aliases:
                raise DuplicateNameError(f"option {name!r} alias {alias!r} is already in use")
            aliases.append(alias)
    metadata["alias"] = tuple(aliases)

    metadata["ishelp"] = bool(metadata["ishelp"])
    if metadata["ishelp"] and metadata["isa"] not in (Isa.BOOL, Isa.COUNTER):
        raise InvalidParameterError(f"option {name!r} with 'ishelp' must be a Bool or a Counter")


def _sanitize_argument_metadata(cls, metadata, /):
    """
    Internal: validate greedy/fallback for positional arguments.

    - greedy is limited to GREEDY_TYPES.
    - SubCmd arguments take no default; only they may carry a fallback, which
      is built into a standalone Argument (never a SubCmd itself).
    """
    name = metadata["name"]
    isa = metadata["isa"]

    metadata["greedy"] = bool(metadata["greedy"])
    if metadata["greedy"] and isa not in GREEDY_TYPES:
        raise InvalidParameterError(f"argument {name!r} of type {isa.value!r} cannot be greedy")

    if isa is Isa.SUBCMD and metadata["default"] is not Unset:
        raise InvalidParameterError(f"argument {name!r} of type 'SubCmd' cannot have a default")

    if (fallback := metadata["fallback"]) is Unset:
        return
    if isa is not Isa.SUBCMD:
        raise InvalidParameterError(f"argument {name!r} of type {isa.value!r} cannot have a 'fallback'")
    if not isinstance(fallback, Mapping):
        raise InvalidParameterError(f"argument {name!r} 'fallback' must be a mapping")
    if unknown := set(fallback) - {"name", "isa", "comment", "greedy", "hidden"}:
        raise InvalidParameterError(
            f"argument {name!r} 'fallback' has invalid parameter(s): {', '.join(sorted(unknown))}"
        )
    fallback = dict(fallback)
    fallback = Argument(fallback.pop("name", Unset), **fallback)
    if fallback.isa is Isa.SUBCMD:
        raise InvalidParameterError(f"argument {name!r} 'fallback' cannot be a SubCmd")
    if fallback.name == name:
        raise DuplicateNameError(f"argument {name!r} 'fallback' must use a different name")
    metadata["fallback"] = fallback


class Declaration(metaclass=DeclarationType):
    """
    Common base of Option and Argument.

    `order` is a process-wide sequence number fixed at construction; it
    defines "declaration order" across kinds and nodes.
    """
    __types__ = frozenset()
    __parameters__ = frozenset()

    def __init__(self, metadata, /):
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        self._order = next(_sequence)

    @property
    def order(self):
        return self._order

    @property
    def kind(self):
        return type(self).__typename__

    def resolve(self, result, /):
        """Resolve this declaration's default against the merged result."""
        return self._default.resolve(result) if self._default is not Unset else Unset


class Option(Declaration):
    """
    Named, flag-prefixed parameter.

    Properties
    - name, isa, comment, default, required, alias, ishelp, hidden (declared).
    - names: long spellings matched after "--" (name, and name with "-" for "_").
    - keys: every spelling that selects this option (names + aliases).
    - label: the usage label, e.g. "--dry-run, -n".
    """

    __introspectable__ = (
        "name",
        "isa",
        "comment",
        "default",
        "required",
        "alias",
        "ishelp",
        "hidden",
    )
    __types__ = OPTION_TYPES
    __parameters__ = frozenset({"isa", "comment", "default", "required", "alias", "ishelp", "hidden"})

    def __init__(
            self,
            name,
            /,
            isa=Unset,
            comment=Unset,
            default=Unset,
            required=False,
            alias=Unset,
            *,
            ishelp=False,
            hidden=False,
    ):
        metadata = {
            "name": name,
            "isa": isa,
            "comment": comment,
            "default": default,
            "required": required,
            "alias": alias,
            "ishelp": ishelp,
            "hidden": hidden,
        }
        _sanitize_metadata(type(self), metadata)
        _sanitize_option_metadata(type(self), metadata)
        super().__init__(metadata)

    @property
    def names(self):
        return self._names

    @property
    def keys(self):
        return frozenset(self._names + self._alias)

    @property
    def label(self):
        spellings = ["--" + self._names[-1]]
        spellings.extend(("-" if len(alias) == 1 else "--") + alias for alias in self._alias)
        return ", ".join(spellings)


class Argument(Declaration):
    """
    Positional parameter.

    Properties
    - name, isa, comment, default, required, greedy, fallback, hidden (declared).
    - label: the usage label, the upper-cased name ("FILE").
    """

    __introspectable__ = (
        "name",
        "isa",
        "comment",
        "default",
        "required",
        "greedy",
        "fallback",
        "hidden",
    )
    __types__ = ARGUMENT_TYPES
    __parameters__ = frozenset({"isa", "comment", "default", "required", "greedy", "fallback", "hidden"})

    def __init__(
            self,
            name,
            /,
            isa=Unset,
            comment=Unset,
            default=Unset,
            required=False,
            greedy=False,
            fallback=Unset,
            *,
            hidden=False,
    ):
        metadata = {
            "name": name,
            "isa": isa,
            "comment": comment,
            "default": default,
            "required": required,
            "greedy": greedy,
            "fallback": fallback,
            "hidden": hidden,
        }
        _sanitize_metadata(type(self), metadata)
        _sanitize_argument_metadata(type(self), metadata)
        super().__init__(metadata)

    @property
    def label(self):
        return self._name.upper()


__all__ = (
    "Declaration",
    "Option",
    "Argument",
    "Literal",
    "Computed",
)

# The metaclass is an implementation detail.
del DeclarationType
