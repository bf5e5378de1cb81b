"""
OptArgs matcher: bind a token stream against a command tree.

Algorithm (one left-to-right pass, then a resolution pass)
1. Start at the root. The active options are the current command's inherited
   options (root first), keyed by every spelling (names and aliases).
2. An option marker (`-x`, `--name`, `--name=value`, `--no-name`) binds the
   matching active option; value-taking types consume the inline value or the
   next token. An `ishelp` option stops everything with HelpRequested.
3. Any other token fills the next argument slot of the current command:
   - SubCmd: the token names a child command (descend, reset the slot cursor)
     or binds the fallback argument, which ends sub-command resolution.
   - greedy: the token and every remaining token are folded into one value.
   - otherwise: coerce and bind.
4. `--` makes every later token positional.
5. Required declarations in scope are checked (they never carry a default);
   then defaults of every unbound declaration resolve in declaration order,
   each seeing the merged result built so far.

Mapping items in the token stream bind options directly (see _bind_mapping).

The tree is only read; every match produces fresh result dictionaries.
"""
import difflib
import logging
import re
import shlex
import sys
from collections import deque
from collections.abc import Iterable, Mapping

from .faults import *
from .isa import Isa
from .utils import *

logger = logging.getLogger(__name__)

_NUMERIC = re.compile(r"-(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


class Match:
    """
    Result of one parse.

    Properties
    - options: option name -> value (fresh dict on every read).
    - arguments: argument name -> value (fresh dict on every read).
    - combined: options and arguments merged (fresh dict).
    - node: the deepest command resolved.
    - path: names of the commands descended into below the root.
    """

    options = mirror("options")
    arguments = mirror("arguments")

    def __init__(self, node, options, arguments, /):
        self._node = node
        self._options = options
        self._arguments = arguments

    def __repr__(self):
        return f"match({self._node.route!r}, {self.combined!r})"

    def __eq__(self, other):
        if not isinstance(other, Match):
            return NotImplemented
        return self._node is other._node and self.combined == other.combined

    __hash__ = None

    @property
    def node(self):
        return self._node

    @property
    def path(self):
        return tuple(node.name for node in self._node.path[1:])

    @property
    def combined(self):
        return self.options | self.arguments


def tokenize(prompt=Unset, /):
    """
    Normalize a prompt into a list of tokens.

    - Unset: sys.argv[1:].
    - str: shell-like string split with shlex.split.
    - Iterable: items must be strings or mappings (pre-resolved options).
    """
    if prompt is Unset:
        return list(sys.argv[1:])
    if isinstance(prompt, str):
        return shlex.split(prompt)
    if isinstance(prompt, Iterable):
        tokens = list(prompt)
        for token in tokens:
            if not isinstance(token, str | Mapping):
                raise TypeError("tokens must be strings or mappings of pre-resolved options")
        return tokens
    raise TypeError("prompt must be a string or an iterable of tokens")


def _suggest(token, choices):
    if suggestions := difflib.get_close_matches(token, list(choices), 1):
        return "did you mean %r?" % suggestions[0]
    return Unset


class _Matcher:
    """One parse in progress (single use)."""

    def __init__(self, root, tokens):
        self.tokens = deque(tokens)
        self.index = 0
        self.positional = False
        self.options = {}
        self.arguments = {}
        self.enter(root)

    def enter(self, node):
        self.node = node
        self.cursor = 0
        self.switches = {key: option for option in node.inherited for key in option.keys}

    def fault(self, cls, message, /, **options):
        hint = options.pop("hint", Unset)
        if not hint and cls is not HelpRequested:
            if helper := next((option for option in self.node.inherited if option.ishelp), None):
                hint = "try '%s %s' for more information" % (self.node.route, "--" + helper.names[-1])
        return cls(message, command=self.node, index=self.index, hint=hint, **options)

    # ── scanning ───────────────────────────────────────────────────────────

    def run(self):
        while self.tokens:
            token = self.tokens.popleft()
            self.index += 1

            if isinstance(token, Mapping):
                self.bind_mapping(token)
            elif not self.positional and token == "--":
                self.positional = True
            elif not self.positional and self.is_marker(token):
                self.bind_option(token)
            else:
                self.bind_argument(token)

        return self.resolve()

    @staticmethod
    def is_marker(token):
        return token.startswith("-") and len(token) > 1 and not _NUMERIC.fullmatch(token)

    def lookup(self, token):
        key = token[2:] if token.startswith("--") else token[1:]
        key, sep, value = key.partition("=")
        value = value if sep else Unset

        if option := self.switches.get(key):
            return option, value, False
        if key.startswith("no-") and (option := self.switches.get(key[3:])) and option.isa is Isa.BOOL and not option.ishelp:
            return option, value, True

        raise self.fault(
            UnexpectedOptionError,
            "unexpected option or argument %r at %s position" % (token, ordinal(self.index)),
            hint=_suggest(key, self.switches),
            token=token,
        )

    def store(self, option, value):
        if option.name in self.options and not option.isa.accumulates:
            trigger(OverriddenOptionWarning(
                "option %r given more than once; the last value wins" % option.name,
                option=option,
            ))
        self.options[option.name] = value

    def bind_option(self, token):
        option, value, negated = self.lookup(token)

        if option.ishelp:
            raise self.fault(HelpRequested, "help requested", option=option)

        if not option.isa.valued:
            if value is not Unset:
                raise self.fault(
                    InvalidValueError,
                    "option %r does not take a value (got %r)" % (token.partition("=")[0], value),
                    token=token,
                )
            self.store(option, False if negated else option.isa.bind(self.options.get(option.name)))
            return

        if negated:
            raise self.fault(UnexpectedOptionError, "option %r cannot be negated" % option.name, token=token)

        if value is Unset:
            if not self.tokens or not isinstance(self.tokens[0], str) or self.is_marker(self.tokens[0]):
                raise self.fault(
                    MissingValueError,
                    "option %r at %s position requires a value" % (token, ordinal(self.index)),
                    token=token,
                )
            value = self.tokens.popleft()
            self.index += 1

        try:
            self.store(option, option.isa.bind(self.options.get(option.name), value))
        except ValueError as error:
            raise self.fault(
                InvalidValueError,
                "unexpected option or argument %r for option %r: %s" % (value, option.name, error),
                token=value,
            ) from None

    def bind_mapping(self, mapping):
        # Pre-resolved options: None marks a bare flag, anything else binds as-is.
        for key, value in mapping.items():
            if not isinstance(key, str) or not (option := self.switches.get(key)):
                raise self.fault(
                    UnexpectedOptionError,
                    "unexpected option %r in pre-resolved options" % (key,),
                    hint=_suggest(str(key), self.switches),
                )
            if option.ishelp:
                if value is None or value:
                    raise self.fault(HelpRequested, "help requested", option=option)
                continue
            if value is None:
                if option.isa.valued:
                    raise self.fault(MissingValueError, "pre-resolved option %r requires a value" % key)
                value = option.isa.bind(self.options.get(option.name))
            self.store(option, value)

    def bind_argument(self, token):
        arguments = self.node.arguments
        if self.cursor >= len(arguments):
            raise self.fault(
                UnexpectedArgumentError,
                "unexpected option or argument %r at %s position" % (token, ordinal(self.index)),
                token=token,
            )
        argument = arguments[self.cursor]
        self.cursor += 1

        if argument.isa is Isa.SUBCMD:
            if child := self.node.lookup(token):
                self.arguments[argument.name] = child.name
                logger.debug("descending from %r into %r", self.node, child)
                self.enter(child)
                return
            if not (argument := argument.fallback):
                raise self.fault(
                    UnknownSubCmdError,
                    "no such sub-command %r under %r" % (token, self.node.route),
                    hint=_suggest(token, self.node.children),
                    token=token,
                )

        tokens = [token]
        while argument.greedy and self.tokens:
            if isinstance(item := self.tokens.popleft(), Mapping):
                self.bind_mapping(item)
            else:
                tokens.append(item)
            self.index += 1

        try:
            if argument.greedy:
                self.arguments[argument.name] = argument.isa.collect(tokens)
            else:
                self.arguments[argument.name] = argument.isa.bind(None, token)
        except ValueError as error:
            raise self.fault(
                InvalidValueError,
                "unexpected option or argument %r for argument %r: %s" % (token, argument.name, error),
                token=token,
            ) from None

    # ── resolution ─────────────────────────────────────────────────────────

    def scope(self):
        """Every declaration sharing the merged result of the resolved command."""
        declarations = list(self.node.inherited)
        for node in self.node.path:
            for argument in node.arguments:
                declarations.append(argument)
                if argument.fallback:
                    declarations.append(argument.fallback)
        return sorted(declarations, key=lambda declaration: declaration.order)

    def resolve(self):
        declarations = self.scope()

        # Required declarations never carry a default; computed defaults see them.
        for declaration in declarations:
            if not declaration.required:
                continue
            if declaration.kind == "option" and declaration.name not in self.options:
                raise self.fault(MissingOptionError, "missing required option %r" % declaration.label)
            if declaration.kind == "argument" and declaration.name not in self.arguments:
                fallback = getattr(declaration, "fallback", Unset)
                if fallback and fallback.name in self.arguments:
                    continue
                raise self.fault(MissingArgumentError, "missing required argument %s" % declaration.label)

        for declaration in declarations:
            bucket = self.options if declaration.kind == "option" else self.arguments
            if declaration.name in bucket:
                continue
            if (value := declaration.resolve(self.options | self.arguments)) is not Unset:
                bucket[declaration.name] = value

        return Match(self.node, self.options, self.arguments)


def match(root, tokens, /):
    """
    Match `tokens` (already tokenized) against the tree rooted at `root`.

    Returns a Match. Raises a ParseError subclass or HelpRequested; every
    fault carries the deepest resolved command as its `command` option.
    """
    result = _Matcher(root, tokens).run()
    logger.debug("matched %r", result)
    return result


__all__ = (
    "Match",
    "tokenize",
    "match",
)
