"""Exception taxonomy shared by the walker and metadata providers."""

from __future__ import annotations

from typing import Optional


class ClassResolutionFailure(LookupError):
    """Raised when a type in the closure cannot be loaded or resolved."""

    def __init__(self, type_name: str, cause: Optional[BaseException] = None) -> None:
        message = type_name if cause is None else f"{type_name}: {cause}"
        super().__init__(message)
        self.type_name = type_name
        self.cause = cause


class LinkageFailure(RuntimeError):
    """Raised by providers when a type's backing definition cannot be loaded."""

    def __init__(self, message: str, *, type_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.type_name = type_name


class TypeNotPresent(LookupError):
    """Raised when a lazily referenced type cannot be resolved."""

    def __init__(self, type_name: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Type {type_name} not present")
        self.type_name = type_name
        self.cause = cause


class AccessRestricted(PermissionError):
    """Raised when an annotation attribute may not be read."""


class ConfigError(RuntimeError):
    """Raised when a configuration or graph file cannot be parsed."""


__all__ = [
    "AccessRestricted",
    "ClassResolutionFailure",
    "ConfigError",
    "LinkageFailure",
    "TypeNotPresent",
]
