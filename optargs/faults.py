"""
OptArgs faults (errors and warnings) and rendering.

Scope
- FaultCode: stable numeric identifiers for every failure kind, grouped by the
  phase that raises them (declaration, parse, help, dispatch, warnings).
- OptArgsError: the single "usage failure" channel. Every fault carries the
  human message, a machine-distinguishable code and the fully rendered usage
  text of the command it concerns, so a caller can print it unmodified.
- OptArgsWarning: soft notices emitted through the standard warnings module.
- trigger(): print a fault through rich and terminate with the exit status
  that matches its kind (help exits 0).

Phases
- Declaration faults are programmer errors raised while the tree is built.
- Parse faults are end-user errors raised while matching tokens.
- HelpRequested travels through the same channel but is not a failure;
  callers tell it apart by type or by `code`.

Integration
- Host applications may expose `__styles__` (palette overrides) and `__prog__`
  (program label used in fault headers) from __main__.
"""
import sys
import warnings
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - declaration (211xx): raised by the builder, never by a parse.
    - parse (221xx): unexpected/invalid/missing input.
    - help (231xx): explicit help request.
    - dispatch (241xx): handler or namespace resolution.
    - warnings (251xx): non-fatal notices.
    """
    # --- declaration errors (21xxx) ---
    MISSING_NAME                = 21101
    DUPLICATE_NAME              = 21102
    MISSING_TYPE                = 21103
    UNKNOWN_TYPE                = 21104
    INVALID_PARAMETER           = 21105
    CONFLICTING_DEFAULTS        = 21106
    GREEDY_ARGUMENT             = 21107
    MISSING_SUBCMD_ARGUMENT     = 21108
    FROZEN_TREE                 = 21109

    # --- parse errors (22xxx) ---
    UNEXPECTED_OPTION           = 22101
    UNEXPECTED_ARGUMENT         = 22102
    INVALID_VALUE               = 22103
    MISSING_VALUE               = 22104
    UNKNOWN_SUBCMD              = 22105
    MISSING_ARGUMENT            = 22106
    MISSING_OPTION              = 22107

    # --- help (23xxx) ---
    HELP_REQUESTED              = 23101

    # --- dispatch errors (24xxx) ---
    NO_HANDLER                  = 24101
    UNKNOWN_NAMESPACE           = 24102

    # --- warnings (25xxx) ---
    OVERRIDDEN_OPTION           = 25101

    def normalize(self):
        """
        return the host label for this code (`__codes__` in __main__) or the
        numeric value as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _styles(defaults):
    return defaultdict(str, defaults | getattr(__import__("__main__"), "__styles__", {}))


def _header(self, styles, style, title):
    colorful = self.options.get("colorful", True)

    def text(fragment, style):
        return Text(str(fragment), styles[style] if colorful else "")

    prog = getattr(__import__("__main__"), "__prog__", self.options.get("prog", "optargs"))
    return Text.assemble(
        "[ ",
        text(prog, "prog-name"),
        " - ",
        text(self.code.normalize(), "code"),
        " | ",
        text(title, style),
        " ]"
    )


class OptArgsError(Exception):
    """
    Base class of every failure raised by declare, parse and dispatch calls.

    Construction
    - OptArgsError(message, **options). Recognized options:
      • usage: rendered usage text (already prefixed with the message).
      • styled: the same usage as a rich Text (optional).
      • title/hint: short copy used by __rich__.
      • colorful/fancy/prog: rendering flags forwarded by the builder.
      Any other key is kept as context (input, index, argument, ...).

    Contract
    - str(error) is the rendered usage when one is attached, otherwise the
      bare message.
    - error.code is the FaultCode of the concrete class unless overridden.
    """
    code = Unset
    status = 1

    def __init_subclass__(cls, code=Unset, **options):
        super().__init_subclass__(**options)
        if code is not Unset:
            cls.code = code

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)
        if "code" in options:
            self.code = options["code"]

    @property
    def usage(self):
        return self.options.get("usage", "")

    def __str__(self):
        return self.usage or (self.message or "")

    def __rich__(self):
        styles = _styles({
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "help-title": "bold #22C55E",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        })
        title = "help-title" if isinstance(self, HelpRequested) else "error-title"
        header = _header(self, styles, title, self.options.get("title", type(self).__name__).lower())

        body = self.options.get("styled") or Text(str(self))
        renders = [body]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(
                Text(" -> ", styles["hint-arrow"]),
                Text(hint, styles["hint"]),
            ))

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")
        return Group(header, *renders)

    def __trigger__(self):
        console = Console(stderr=not isinstance(self, HelpRequested))
        console.print(self)
        sys.exit(self.status)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class DeclarationError(OptArgsError):
    """Invalid declaration (programmer error, aborts the build)."""


class MissingNameError(DeclarationError, code=FaultCode.MISSING_NAME): ...
class DuplicateNameError(DeclarationError, code=FaultCode.DUPLICATE_NAME): ...
class MissingTypeError(DeclarationError, code=FaultCode.MISSING_TYPE): ...
class UnknownTypeError(DeclarationError, code=FaultCode.UNKNOWN_TYPE): ...
class InvalidParameterError(DeclarationError, code=FaultCode.INVALID_PARAMETER): ...
class ConflictingDefaultsError(DeclarationError, code=FaultCode.CONFLICTING_DEFAULTS): ...
class GreedyArgumentError(DeclarationError, code=FaultCode.GREEDY_ARGUMENT): ...
class MissingSubCmdArgumentError(DeclarationError, code=FaultCode.MISSING_SUBCMD_ARGUMENT): ...
class FrozenTreeError(DeclarationError, code=FaultCode.FROZEN_TREE): ...


class ParseError(OptArgsError):
    """Command line does not match the declarations (end-user error)."""
    status = 2


class UnexpectedOptionError(ParseError, code=FaultCode.UNEXPECTED_OPTION): ...
class UnexpectedArgumentError(ParseError, code=FaultCode.UNEXPECTED_ARGUMENT): ...
class InvalidValueError(ParseError, code=FaultCode.INVALID_VALUE): ...
class MissingValueError(ParseError, code=FaultCode.MISSING_VALUE): ...
class UnknownSubCmdError(ParseError, code=FaultCode.UNKNOWN_SUBCMD): ...
class MissingArgumentError(ParseError, code=FaultCode.MISSING_ARGUMENT): ...
class MissingOptionError(ParseError, code=FaultCode.MISSING_OPTION): ...


class HelpRequested(OptArgsError, code=FaultCode.HELP_REQUESTED):
    """
    An `ishelp` option was given. Carries the help rendering of the deepest
    resolved command (hidden items included); triggering it exits 0.
    """
    status = 0


class DispatchError(OptArgsError):
    """Parsing succeeded but the resolved command cannot be invoked."""


class NoHandlerError(DispatchError, code=FaultCode.NO_HANDLER): ...
class UnknownNamespaceError(DispatchError, code=FaultCode.UNKNOWN_NAMESPACE): ...


class OptArgsWarning(Warning):
    """
    Base class of non-fatal notices. Emitted via warnings.warn() so hosts can
    filter, record or escalate them with the standard machinery.
    """
    code = Unset

    def __init_subclass__(cls, code=Unset, **options):
        super().__init_subclass__(**options)
        if code is not Unset:
            cls.code = code

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message or ""

    def __rich__(self):
        styles = _styles({
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",
            "warning-title": "bold #FFC2E0",
            "warning-message": "#D6D6DE",
        })
        header = _header(self, styles, "warning-title", self.options.get("title", "warning"))
        return Group(header, Text(str(self), styles["warning-message"]))

    def __trigger__(self):
        warnings.warn(self, stacklevel=3)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class OverriddenOptionWarning(OptArgsWarning, code=FaultCode.OVERRIDDEN_OPTION): ...

def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ (see the base classes).
    - options are merged into the fault before triggering.
    - errors print through rich and exit with their status (help exits 0);
      warnings go through warnings.warn().
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    if options:
        fault = fault.__replace__(**options)
    fault.__trigger__()


__all__ = (
    "FaultCode",
    "OptArgsError",
    "DeclarationError",
    "MissingNameError",
    "DuplicateNameError",
    "MissingTypeError",
    "UnknownTypeError",
    "InvalidParameterError",
    "ConflictingDefaultsError",
    "GreedyArgumentError",
    "MissingSubCmdArgumentError",
    "FrozenTreeError",
    "ParseError",
    "UnexpectedOptionError",
    "UnexpectedArgumentError",
    "InvalidValueError",
    "MissingValueError",
    "UnknownSubCmdError",
    "MissingArgumentError",
    "MissingOptionError",
    "HelpRequested",
    "DispatchError",
    "NoHandlerError",
    "UnknownNamespaceError",
    "OptArgsWarning",
    "OverriddenOptionWarning",
    "trigger",
)
