"""
optargs: print the commands of an OptArgs builder.

    usage: optargs [options] CLASS [SUBCMD...]

CLASS is a registered program name or "module:attribute" naming an OptArgs
instance; SUBCMD... selects the command to start from. Every command below
it is printed depth-first, one usage line each (or the full usage with
--full), indented by depth * indent * spacer.
"""
import sys

from rich.console import Console
from rich.text import Text

from .commands import OptArgs
from .dispatch import lookup
from .faults import *
from .usage import styled, synopsis, walk
from .utils import Unset

cli = OptArgs("optargs", "print the commands of an OptArgs builder")
cli.opt("full", isa="Bool", alias="f", comment="print the full usage of every command")
cli.opt("help", isa="Bool", alias="h", ishelp=True, comment="print a help message and exit")
cli.opt("indent", isa="Int", alias="i", default=4, comment="number of spacers per nesting level")
cli.opt("spacer", isa="Str", alias="s", default=" ", comment="character used for indentation")
cli.arg("class", isa="Str", required=True, comment='builder to enumerate: "module:attribute" or a registered name')
cli.arg("subcmd", isa="ArrayRef", greedy=True, comment="sub-command path to start from")


@cli.handler("run")
def run(result):
    builder = lookup(result["class"])
    indent, spacer = result["indent"], result["spacer"]
    if indent < 0 or len(spacer) != 1:
        raise InvalidValueError(
            "invalid indentation %r * %r" % (indent, spacer),
            hint="--indent must be non-negative and --spacer a single character",
        )

    node = builder.root
    for name in result.get("subcmd", []):
        if (child := node.lookup(name)) is None:
            raise UnknownNamespaceError("no sub-command %r under %r" % (name, node.route))
        node = child

    console = Console(highlight=False, soft_wrap=True)
    for depth, command in walk(node):
        margin = spacer * indent * depth
        if result.get("full"):
            text = styled(command, indent=indent, spacer=spacer, colorful=builder.colorful)
        else:
            text = Text(synopsis(command))
        for line in text.split("\n"):
            console.print(Text(margin) + line if line.plain else line)
    return 0


def main(prompt=Unset, /):
    """Run the enumerator on `prompt` (default: sys.argv[1:]) and return the exit status."""
    try:
        return cli.dispatch("run", prompt)
    except OptArgsError as error:
        Console(stderr=not isinstance(error, HelpRequested), soft_wrap=True).print(error)
        return error.status


if __name__ == "__main__":
    sys.exit(main())
