"""Core data models shared by the walker and metadata providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Hashable, Optional, Set, Tuple, Union

from .errors import ClassResolutionFailure


@dataclass(frozen=True)
class Concrete:
    """Reference to a plain type descriptor."""

    descriptor: Hashable


@dataclass(frozen=True)
class Parameterized:
    """Generic type applied to arguments, e.g. ``Map<K, V>`` or ``dict[str, X]``."""

    owner: Optional["TypeReference"]
    args: Tuple["TypeReference", ...] = ()


@dataclass(frozen=True)
class Wildcard:
    """Bounded type occurrence such as ``? extends A`` or a bound ``TypeVar``."""

    lower_bounds: Tuple["TypeReference", ...] = ()
    upper_bounds: Tuple["TypeReference", ...] = ()


@dataclass(frozen=True)
class GenericArray:
    """Array (or homogeneous sequence) of a generic component type."""

    component: "TypeReference"


TypeReference = Union[Concrete, Parameterized, Wildcard, GenericArray]


@dataclass(frozen=True, eq=False)
class Annotation:
    """A live annotation instance together with the descriptor of its type."""

    descriptor: Hashable
    value: Any


AnnotationSet = Tuple[Annotation, ...]


@dataclass
class Method:
    """Declared method signature."""

    name: str
    return_type: Optional[TypeReference] = None
    exception_types: Tuple[TypeReference, ...] = ()
    parameter_types: Tuple[Optional[TypeReference], ...] = ()
    parameter_annotations: Tuple[AnnotationSet, ...] = ()


@dataclass
class Constructor:
    """Declared constructor signature; constructors have no return type."""

    name: str
    exception_types: Tuple[TypeReference, ...] = ()
    parameter_types: Tuple[Optional[TypeReference], ...] = ()
    parameter_annotations: Tuple[AnnotationSet, ...] = ()


@dataclass
class Field:
    """Declared field with its type and direct annotations."""

    name: str
    type: Optional[TypeReference] = None
    annotations: AnnotationSet = ()


@dataclass
class ClosureResult:
    """Outcome of a closure check that does not raise on resolution failures."""

    root: Hashable
    failure: Optional[ClassResolutionFailure] = None
    visited: Set[Hashable] = field(default_factory=set)

    @property
    def ok(self) -> bool:
        return self.failure is None


__all__ = [
    "Annotation",
    "AnnotationSet",
    "ClosureResult",
    "Concrete",
    "Constructor",
    "Field",
    "GenericArray",
    "Method",
    "Parameterized",
    "TypeReference",
    "Wildcard",
]
