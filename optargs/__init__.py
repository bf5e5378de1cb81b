__title__ = 'optargs'
__author__ = 'OptArgs contributors'
__license__ = 'MIT'
# Placeholder, modified by dynamic-versioning.
__version__ = "0.1.0"

from .utils import *
from .isa import *
from .arguments import *
from .commands import *
from .faults import *
from .matcher import *

VersionInfo = __import__("collections").namedtuple("VersionInfo", (
    "major",
    "minor",
    "micro",
    "releaselevel",
    "serial",
    "metadata"
))

# Placeholder, modified by dynamic-versioning.
version_info = VersionInfo(0, 1, 0, "final", 0, "")

__all__ = (
    "__title__",
    "__author__",
    "__license__",
    "__version__",
    "version_info"
)

# Load the exposed API of the helpers
__all__ += utils.__all__  # type: ignore[attr-defined]
# Load the exposed API of the type registry
__all__ += isa.__all__  # type: ignore[attr-defined]
# Load the exposed API of the declarations
__all__ += arguments.__all__  # type: ignore[attr-defined]
# Load the exposed API of the builder
__all__ += commands.__all__  # type: ignore[attr-defined]
# Load the exposed API of the faults
__all__ += faults.__all__  # type: ignore[attr-defined]
# Load the exposed API of the matcher
__all__ += matcher.__all__  # type: ignore[attr-defined]
