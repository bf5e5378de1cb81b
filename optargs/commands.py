"""
OptArgs command layer: declare, compose and parse command trees.

What this module provides
- Command: one node of a command tree. It owns two separately ordered
  sequences of declarations (options and arguments), the child commands
  reachable through its SubCmd argument (keyed by every name and alias, in
  insertion order) and the dispatch handlers registered on it. A node only
  reads its parent (to enumerate inherited options), never writes it.

- OptArgs: the builder. It owns the root Command and a "current" node that
  opt()/arg() append to and subcmd()/enter() move. It enforces every
  registration-time invariant, caches the last parse and exposes the parse,
  usage and dispatch entry points.

Core ideas
- Declaration order is data: options parse and render in the order they were
  declared, arguments match in the order they were declared.
- Options are inherited: a descendant parses every ancestor's options, so
  option names and aliases are unique along every root-to-leaf path (checked
  both ways, whichever side is declared first).
- Any declaration invalidates the cached parse result.

Quick start
    from optargs import OptArgs

    cli = OptArgs("app", "an example application")
    cli.opt("help", isa="Bool", alias="h", ishelp=True, comment="print a help message and exit")
    cli.opt("dry_run", isa="Bool", alias="n", comment="do nothing")
    cli.arg("command", isa="SubCmd", required=True, comment="command to run")

    cli.subcmd("init", comment="create a new workspace")
    cli.arg("path", isa="Str", default=".", comment="where to create it")

    @cli.handler("run", path=("init",))
    def run(result):
        print(result)

    cli.dispatch("run", ["init", "-n", "/tmp/ws"])
"""
import logging
import os.path
import re
import sys
from collections.abc import Set

from .arguments import Argument, Option
from .faults import *
from .isa import Isa
from .utils import *
from . import dispatch as _dispatch
from . import matcher as _matcher
from . import usage as _usage

logger = logging.getLogger(__name__)


class Command:
    """
    A node of the command tree.

    Properties
    - name: primary name (first of `names`); names: every literal that selects it.
    - comment: description shown in the parent's command listing.
    - hidden: omitted from the parent's listing unless help is rendered.
    - parent: enclosing Command, or None for the root.
    - options/arguments: declarations in declaration order (copies).
    - children: name/alias -> Command (copy, insertion order).
    - handlers: handler name -> callable (copy).
    """

    names = mirror("names")
    comment = mirror("comment")
    hidden = mirror("hidden")
    parent = mirror("parent")
    options = mirror("options")
    arguments = mirror("arguments")
    children = mirror("children")
    handlers = mirror("handlers")

    def __init__(self, names, /, comment=Unset, parent=None, *, hidden=False):
        self._names = tuple(names)
        self._comment = coalesce(comment, "")
        self._parent = parent
        self._hidden = bool(hidden)
        self._options = []
        self._arguments = []
        self._children = {}
        self._handlers = {}

    def __repr__(self):
        return f"command({self.route!r})"

    @property
    def name(self):
        return self._names[0]

    @property
    def root(self):
        """Return the topmost command of the tree."""
        node = self
        while node._parent is not None:
            node = node._parent
        return node

    @property
    def path(self):
        """Every command from the root down to this one, as a tuple."""
        path = [node := self]
        while node._parent is not None:
            path.append(node := node._parent)
        return tuple(reversed(path))

    @property
    def route(self):
        """The command line prefix selecting this command ("app init")."""
        return " ".join(node.name for node in self.path)

    @property
    def inherited(self):
        """Every option visible from this command, root first, each level in declaration order."""
        return [option for node in self.path for option in node._options]

    @property
    def subcmd(self):
        """The SubCmd argument of this command, or None."""
        for argument in self._arguments:
            if argument.isa is Isa.SUBCMD:
                return argument
        return None

    @property
    def subcommands(self):
        """Distinct child commands in insertion order (aliases collapsed)."""
        return list({id(child): child for child in self._children.values()}.values())

    def lookup(self, token, /):
        """Return the child command selected by `token`, or None."""
        return self._children.get(token)

    def descendants(self):
        """Yield every command below this one (depth-first, each once)."""
        for child in self.subcommands:
            yield child
            yield from child.descendants()


def _parse_cmd(cmd, /):
    # cmd := name | {aliases} | [parent, ..., name | {aliases}]
    if isinstance(cmd, str):
        return (), (cmd,)
    if isinstance(cmd, Set) and cmd:
        return (), tuple(sorted(cmd))
    if isinstance(cmd, list | tuple) and cmd:
        path, last = tuple(cmd[:-1]), cmd[-1]
        if not all(isinstance(name, str) for name in path):
            raise InvalidParameterError("subcmd 'cmd' path elements must be strings")
        if not isinstance(last, str | Set):
            raise InvalidParameterError("subcmd 'cmd' must end with a name or a set of aliases")
        return path, _parse_cmd(last)[1]
    raise InvalidParameterError("subcmd 'cmd' must be a string, a set of aliases or a path")


class OptArgs:
    """
    Builder and entry point of one command tree.

    Parameters
    - name: program name (root command); defaults to the basename of argv[0].
      The builder registers itself under this name for dispatch().
    - comment: description of the program.
    - colorful: style rich renderings (default True).
    - fancy: frame rich renderings of faults in a panel (default False).

    Lifecycle
    - Build phase: opt()/arg()/subcmd()/enter()/handler() calls, optionally
      closed by freeze(). Declarations are not synchronized; callers must
      serialize them.
    - Parse phase: parse_options()/parse_arguments()/parse_all()/resolve()
      share one cached match per distinct token sequence.
    """

    def __init__(self, name=Unset, /, comment=Unset, *, colorful=Unset, fancy=Unset):
        name = coalesce(name, os.path.basename(sys.argv[0]) or "optargs")
        if not isinstance(name, str) or not name.strip():
            raise MissingNameError("program name must be a non-empty string")
        if not isinstance(comment, str | Unset):
            raise InvalidParameterError("program comment must be a string")

        self._root = self._current = Command((name.strip(),), comment)
        self._colorful = bool(coalesce(colorful, True))
        self._fancy = bool(coalesce(fancy, False))
        self._frozen = False
        self._cached = Unset
        _dispatch.register(self)

    def __repr__(self):
        return f"optargs({self._root.name!r})"

    @property
    def name(self):
        return self._root.name

    @property
    def root(self):
        return self._root

    @property
    def current(self):
        return self._current

    @property
    def frozen(self):
        return self._frozen

    @property
    def colorful(self):
        return self._colorful

    @property
    def fancy(self):
        return self._fancy

    # ── faults ─────────────────────────────────────────────────────────────

    def decorate(self, fault, node, /, *, help=False):
        """Attach the rendered usage of `node` (and rendering flags) to a fault."""
        message = fault.message if not isinstance(fault, HelpRequested) else Unset
        return fault.__replace__(
            usage=_usage.render(node, message, help=help),
            styled=_usage.styled(node, message, help=help, colorful=self._colorful),
            colorful=self._colorful,
            fancy=self._fancy,
            prog=self._root.name,
            command=node,
        )

    def _declaring(self, node):
        if self._frozen:
            raise self.decorate(FrozenTreeError("cannot declare on a frozen command tree"), node)
        self._cached = Unset

    # ── scope checks ───────────────────────────────────────────────────────

    @staticmethod
    def _scope(node):
        """Commands whose declarations share a merged result with `node`."""
        return [*node.path, *node.descendants()]

    def _check_result_name(self, node, name):
        for scope in self._scope(node):
            for declaration in [*scope._options, *scope._arguments]:
                fallback = getattr(declaration, "fallback", Unset) or None
                if name == declaration.name or (fallback and name == fallback.name):
                    raise DuplicateNameError(
                        f"name {name!r} is already used by {declaration.kind} {declaration.name!r}"
                        f" of command {scope.route!r}"
                    )

    def _check_option_keys(self, node, option):
        for scope in self._scope(node):
            for other in scope._options:
                if clash := option.keys & other.keys:
                    raise DuplicateNameError(
                        f"option {option.name!r} spelling {min(clash)!r} is already used by option"
                        f" {other.name!r} of command {scope.route!r}"
                    )

    # ── declarations ───────────────────────────────────────────────────────

    def opt(self, name, /, **params):
        """
        Declare an option on the current command.

        Recognized params: isa, comment, default, required, alias, ishelp,
        hidden. Raises a DeclarationError subclass on any violation.
        """
        node = self._current
        self._declaring(node)
        try:
            if unknown := set(params) - Option.__parameters__:
                raise InvalidParameterError(f"option {name!r} has invalid parameter(s): {', '.join(sorted(unknown))}")
            option = Option(name, **params)
            self._check_result_name(node, option.name)
            self._check_option_keys(node, option)
        except DeclarationError as error:
            raise self.decorate(error, node) from None

        node._options.append(option)
        logger.debug("declared %r on %r", option, node)
        return option

    def arg(self, name, /, **params):
        """
        Declare a positional argument on the current command.

        Recognized params: isa, comment, default, required, greedy, fallback,
        hidden. No argument may follow a greedy or a SubCmd argument, and a
        command holds at most one SubCmd argument.
        """
        node = self._current
        self._declaring(node)
        try:
            if unknown := set(params) - Argument.__parameters__:
                raise InvalidParameterError(f"argument {name!r} has invalid parameter(s): {', '.join(sorted(unknown))}")
            if node._arguments and (last := node._arguments[-1]).greedy:
                raise GreedyArgumentError(f"argument {name!r} cannot follow greedy argument {last.name!r}")
            if node.subcmd:
                raise InvalidParameterError(f"argument {name!r} cannot follow SubCmd argument {node.subcmd.name!r}")
            argument = Argument(name, **params)
            self._check_result_name(node, argument.name)
            if argument.fallback:
                self._check_result_name(node, argument.fallback.name)
        except DeclarationError as error:
            raise self.decorate(error, node) from None

        node._arguments.append(argument)
        logger.debug("declared %r on %r", argument, node)
        return argument

    def subcmd(self, cmd, /, **params):
        """
        Create (or re-enter) a sub-command and make it the current command.

        `cmd` is a name, a set of aliases, or a list/tuple path whose leading
        elements name existing sub-commands from the root and whose last
        element is the new command's name or aliases. Recognized params:
        comment (required), hidden. The parent must declare a SubCmd argument.
        """
        node = self._root
        self._declaring(node)
        try:
            if unknown := set(params) - {"comment", "hidden"}:
                raise InvalidParameterError(f"subcmd {cmd!r} has invalid parameter(s): {', '.join(sorted(unknown))}")
            path, names = _parse_cmd(cmd)
            node = self._locate(path)
            for name in names:
                if not isinstance(name, str) or not re.fullmatch(r"[^\W_][\w.-]*", name):
                    raise InvalidParameterError(f"subcmd name {name!r} must be a word (letters, digits, '.', '-', '_')")
            if not node.subcmd:
                raise MissingSubCmdArgumentError(
                    f"command {node.route!r} must declare a SubCmd argument before sub-command {names[0]!r}"
                )

            existing = {id(child): child for name in names if (child := node.lookup(name))}
            if existing:
                child, = existing.values() if len(existing) == 1 else (None,)
                if child is None or not set(names) <= set(child._names):
                    raise DuplicateNameError(f"sub-command name(s) {', '.join(names)!r} already in use under {node.route!r}")
                self._current = child
                return child

            if not isinstance(comment := params.get("comment"), str) or not comment.strip():
                raise InvalidParameterError(f"subcmd {names[0]!r} must specify a non-empty 'comment'")
        except DeclarationError as error:
            raise self.decorate(error, node) from None

        child = Command(names, comment.strip(), node, hidden=params.get("hidden", False))
        for name in names:
            node._children[name] = child
        self._current = child
        logger.debug("entered new %r", child)
        return child

    def _locate(self, path, /):
        node = self._root
        for name in path:
            if (node := node.lookup(name)) is None:
                raise InvalidParameterError(f"unknown sub-command path {' '.join(path)!r}")
        return node

    def enter(self, path=(), /):
        """Make the command at `path` (names from the root) current."""
        if isinstance(path, str):
            path = (path,)
        try:
            node = self._locate(tuple(path))
        except DeclarationError as error:
            raise self.decorate(error, self._root) from None
        self._cached = Unset
        self._current = node
        return node

    def handler(self, name, /, path=Unset):
        """
        Decorator registering a dispatch handler on the command at `path`
        (default: the current command). The handler receives the merged
        result of the parse.
        """
        if not isinstance(name, str) or not name:
            raise InvalidParameterError("handler name must be a non-empty string")
        try:
            node = self._current if path is Unset else self._locate(tuple([path] if isinstance(path, str) else path))
        except DeclarationError as error:
            raise self.decorate(error, self._root) from None

        @rename("handler")
        def wrapper(callback, /):
            if not callable(callback):
                raise TypeError("@handler() must be applied to a callable")
            node._handlers[name] = callback
            return callback

        return wrapper

    def freeze(self):
        """Forbid any further declaration on this tree."""
        self._frozen = True
        return self

    # ── parsing ────────────────────────────────────────────────────────────

    def resolve(self, prompt=Unset, /):
        """
        Match `prompt` against the tree and return the Match.

        prompt: Unset (sys.argv[1:]), a shell-like string, or an iterable of
        strings and pre-resolved option mappings. The result of the last
        all-string token sequence is cached until the next declaration.
        """
        tokens = _matcher.tokenize(prompt)
        key = tuple(tokens) if all(isinstance(token, str) for token in tokens) else Unset

        if key is not Unset and self._cached is not Unset and self._cached[0] == key:
            logger.debug("cached match for %r", key)
            return self._cached[1]

        try:
            match = _matcher.match(self._root, tokens)
        except OptArgsError as error:
            raise self.decorate(error, error.options["command"], help=isinstance(error, HelpRequested)) from None

        if key is not Unset:
            self._cached = key, match
        return match

    def parse_options(self, prompt=Unset, /):
        """Return the options of the merged result (fresh dict)."""
        return self.resolve(prompt).options

    def parse_arguments(self, prompt=Unset, /):
        """Return the arguments of the merged result (fresh dict)."""
        return self.resolve(prompt).arguments

    def parse_all(self, prompt=Unset, /):
        """Return options and arguments merged (fresh dict)."""
        return self.resolve(prompt).combined

    # ── rendering and dispatch ─────────────────────────────────────────────

    def usage(self, message=Unset, /, *, path=Unset, help=False, indent=_usage.INDENT, spacer=" "):
        """
        Render the usage of the command at `path` (names from the root).

        Without `path` this is the current command: the one last entered by
        subcmd() or enter(), not necessarily the root. Call enter() once the
        tree is built, or pass path=(), to render the program itself.
        """
        node = self._current if path is Unset else self._locate(tuple([path] if isinstance(path, str) else path))
        return _usage.render(node, message, help=help, indent=indent, spacer=spacer)

    def dispatch(self, handler="run", prompt=Unset, /):
        """Parse `prompt` and call the `handler` registered on the resolved command."""
        return _dispatch.dispatch(handler, self, prompt)

    def run(self, handler="run", prompt=Unset, /):
        """
        Executable entry point: dispatch, and on any OptArgsError print it
        through rich and exit (help exits 0, parse errors 2, others 1).
        """
        try:
            return self.dispatch(handler, prompt)
        except OptArgsError as error:
            trigger(error)


__all__ = (
    "Command",
    "OptArgs",
)
