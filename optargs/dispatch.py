"""
OptArgs dispatcher: from a parse result to a handler call.

Namespaces
- Every OptArgs builder registers itself under its program name when it is
  created (register()); lookup() resolves a namespace identifier to a builder:
  • an OptArgs instance is returned as-is,
  • a registered program name returns the most recent builder of that name,
  • "package.module:attribute" imports the module and returns the attribute.

Handlers
- Handlers are registered per command (OptArgs.handler()). dispatch() parses
  the tokens, takes the deepest resolved command and calls the handler of the
  requested name with the merged result. Missing handlers raise NoHandlerError.
"""
import importlib
import logging
import weakref

from .faults import *
from .utils import *

logger = logging.getLogger(__name__)

_registry = weakref.WeakValueDictionary()


def register(builder, /, name=Unset):
    """Register `builder` under `name` (default: its program name)."""
    _registry[coalesce(name, builder.name)] = builder
    return builder


def lookup(namespace, /):
    """
    Resolve `namespace` to an OptArgs builder.

    Raises UnknownNamespaceError when nothing matches, the import fails or
    the target is not a builder.
    """
    from .commands import OptArgs

    if isinstance(namespace, OptArgs):
        return namespace
    if not isinstance(namespace, str) or not namespace:
        raise UnknownNamespaceError("namespace must be a builder or a non-empty string")

    if (builder := _registry.get(namespace)) is not None:
        return builder

    module, sep, attribute = namespace.partition(":")
    if not sep or not module or not attribute:
        raise UnknownNamespaceError(
            "unknown namespace %r" % namespace,
            hint="use a registered program name or 'module:attribute'",
        )
    try:
        target = importlib.import_module(module)
        for part in attribute.split("."):
            target = getattr(target, part)
    except ImportError as error:
        raise UnknownNamespaceError("cannot import %r: %s" % (module, error)) from None
    except AttributeError:
        raise UnknownNamespaceError("module %r has no attribute %r" % (module, attribute)) from None

    if not isinstance(target, OptArgs):
        raise UnknownNamespaceError("%r is not an OptArgs builder" % namespace)
    return target


def dispatch(handler, namespace, tokens=Unset, /):
    """
    Parse `tokens` with the builder named by `namespace` and call the handler
    registered as `handler` on the resolved command.

    Returns whatever the handler returns. Parse faults propagate unchanged.
    """
    builder = lookup(namespace)
    match = builder.resolve(tokens)

    try:
        callback = match.node.handlers[handler]
    except KeyError:
        raise builder.decorate(
            NoHandlerError(
                "no handler %r registered for command %r" % (handler, match.node.route),
                hint="register one with @%s.handler(%r, path=%r)" % (builder.name, handler, match.path),
            ),
            match.node,
        ) from None

    logger.debug("dispatching %r to %r on %r", handler, callback, match.node)
    return callback(match.combined)


__all__ = (
    "register",
    "lookup",
    "dispatch",
)
