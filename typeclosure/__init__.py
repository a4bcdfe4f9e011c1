"""Up-front validation of a type's transitive dependency closure."""

from .errors import (
    AccessRestricted,
    ClassResolutionFailure,
    ConfigError,
    LinkageFailure,
    TypeNotPresent,
)
from .models import ClosureResult
from .walker import ClosureWalker, WalkerOptions, load_dependencies

__all__ = [
    "AccessRestricted",
    "ClassResolutionFailure",
    "ClosureResult",
    "ClosureWalker",
    "ConfigError",
    "LinkageFailure",
    "TypeNotPresent",
    "WalkerOptions",
    "load_dependencies",
]
