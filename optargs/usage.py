"""
OptArgs usage rendering.

Layout (plain form; the styled form carries the same characters)

    [<message>
    ]
    usage: <route> [options] NAME [OPTIONAL] GREEDY...

        --long-name, -a    comment
        --other            comment

        NAME               comment
        COMMAND            comment
            child, alias   comment

- The usage line lists the route (root name + every descended command), an
  `[options]` marker when any option applies, then each argument: required
  ones bare, optional ones bracketed, greedy ones suffixed with "...". A
  SubCmd argument is followed by `[options]` and/or `...` when the commands
  below it declare options or arguments of their own.
- Options (inherited ones first, root to leaf) and arguments are listed in
  declaration order. The rows of one rendering share a single label column:
  the longest label plus PADDING.
- Hidden options, arguments and commands only appear in help renderings.
  Help renderings also expand the whole command subtree below a SubCmd
  argument; normal renderings list the direct children only.

Rendering never mutates the tree.

Customization
- styled() reads `__styles__` from __main__ to override palette entries.
"""
from collections import defaultdict

from rich.text import Text

from .isa import Isa
from .utils import Unset

INDENT = 4
PADDING = 4


def _palette(colorful):
    styles = defaultdict(str, {
        "message": "bold #FF4DA6",
        "usage-label": "bold #00E6FF",
        "program-name": "bold #FF4D94",
        "usage-section": "bold #36C5F0",
        "option-name": "bold #00E6FF",
        "argument-name": "bold #FFD600",
        "command-name": "bold #36C5F0",
        "comment": "#9CA3AF",
    } | getattr(__import__("__main__"), "__styles__", {}))
    return styles if colorful else defaultdict(str)


def visible(items, *, help=False):
    """Filter out hidden declarations/commands unless rendering help."""
    return [item for item in items if help or not item.hidden]


def synopsis(node, /, *, help=False):
    """
    Return the `usage: ...` line of a command (no trailing newline).

    See styled() for the meaning of `help`.
    """
    return _synopsis(node, _palette(False), help=help).plain


def _synopsis(node, styles, *, help):
    line = Text()
    line.append("usage", styles["usage-label"]).append(": ")
    line.append(node.route, styles["program-name"])

    if visible(node.inherited, help=help):
        line.append(" ").append("[options]", styles["usage-section"])

    for argument in visible(node.arguments, help=help):
        label = argument.label + "..." * argument.greedy
        if not argument.required:
            label = "[" + label + "]"
        line.append(" ").append(label, styles["argument-name"])

        if argument.isa is Isa.SUBCMD:
            children = visible(node.subcommands, help=help)
            if any(visible(child.options, help=help) for child in children):
                line.append(" ").append("[options]", styles["usage-section"])
            if any(visible(child.arguments, help=help) for child in children):
                line.append(" ").append("...", styles["argument-name"])

    return line


def _command_rows(node, depth, *, help, indent, spacer):
    # (prefix, label, style, comment) rows for the commands below a SubCmd argument.
    rows = []
    for child in visible(node.subcommands, help=help):
        rows.append((spacer * indent * depth, ", ".join(child.names), "command-name", child.comment))
        if help and child.subcmd:
            rows.extend(_command_rows(child, depth + 1, help=help, indent=indent, spacer=spacer))
    if node.subcmd and (fallback := node.subcmd.fallback) and (help or not fallback.hidden):
        rows.append((spacer * indent * depth, fallback.label, "argument-name", fallback.comment))
    return rows


def styled(node, message=Unset, /, *, help=False, colorful=True, indent=INDENT, spacer=" "):
    """
    Render the usage of `node` as a rich Text.

    Parameters
    - message: text prefixed verbatim (followed by a blank line) before the
      usage line, e.g. the description of a parse error.
    - help: include hidden items and expand the whole command subtree.
    - colorful: apply the palette (the characters are identical either way).
    - indent/spacer: row indentation is `spacer * indent` per level.
    """
    if not isinstance(indent, int) or indent < 0:
        raise ValueError("usage indent must be a non-negative integer")
    if not isinstance(spacer, str) or len(spacer) != 1:
        raise ValueError("usage spacer must be a single character")

    styles = _palette(colorful)
    text = Text()

    if message:
        text.append(message.rstrip("\n"), styles["message"]).append("\n\n")

    text.append(_synopsis(node, styles, help=help)).append("\n")

    blocks = []
    options = [
        ("", option.label, "option-name", option.comment)
        for option in visible(node.inherited, help=help)
    ]
    if options:
        blocks.append(options)

    arguments = []
    for argument in visible(node.arguments, help=help):
        arguments.append(("", argument.label, "argument-name", argument.comment))
        if argument.isa is Isa.SUBCMD:
            arguments.extend(_command_rows(node, 1, help=help, indent=indent, spacer=spacer))
    if arguments:
        blocks.append(arguments)

    margin = spacer * indent
    width = max((len(prefix + label) for block in blocks for prefix, label, _, _ in block), default=0) + PADDING

    for block in blocks:
        text.append("\n")
        for prefix, label, style, comment in block:
            text.append(margin + prefix)
            text.append(label, styles[style])
            text.append(" " * (width - len(prefix + label)))
            text.append(comment, styles["comment"])
            text.append("\n")

    return text


def render(node, message=Unset, /, *, help=False, indent=INDENT, spacer=" "):
    """
    Render the usage of `node` as plain text (see styled()).

    The result is deterministic: it depends only on the declarations, their
    order and the `message`/`help`/`indent`/`spacer` parameters.
    """
    return styled(node, message, help=help, colorful=False, indent=indent, spacer=spacer).plain


def walk(node, /, *, help=False, depth=0):
    """
    Yield (depth, command) pairs depth-first, starting with `node` itself.

    Commands reachable through several aliases are yielded once; hidden
    commands (and everything below them) are skipped unless `help` is set.
    """
    yield depth, node
    for child in visible(node.subcommands, help=help):
        yield from walk(child, help=help, depth=depth + 1)


__all__ = (
    "INDENT",
    "PADDING",
    "synopsis",
    "styled",
    "render",
    "walk",
    "visible",
)
