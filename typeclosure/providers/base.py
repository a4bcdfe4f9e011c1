"""Base class for type-metadata providers."""

from abc import ABC, abstractmethod
from typing import Any, Hashable, Optional, Sequence

from ..models import Annotation, AnnotationSet, Constructor, Field, Method, TypeReference


class MetadataProvider(ABC):
    """Contract for the reflection facility the closure walker traverses.

    Member, supertype and annotation lookups may raise ``LinkageFailure`` when a
    type's backing definition is unavailable, or ``TypeNotPresent`` when a lazily
    referenced type cannot be resolved. ``invoke_accessor`` may additionally raise
    ``AccessRestricted`` for attributes that cannot be read.
    """

    name = "provider"

    @abstractmethod
    def resolve(self, type_name: str) -> Hashable:
        """Return the descriptor for a user-supplied type name."""

    @abstractmethod
    def type_name(self, descriptor: Hashable) -> str:
        """Return a human-readable name for the descriptor."""

    @abstractmethod
    def declared_methods(self, descriptor: Hashable) -> Sequence[Method]:
        """Methods declared directly on the type."""

    @abstractmethod
    def declared_constructors(self, descriptor: Hashable) -> Sequence[Constructor]:
        """Constructors declared directly on the type."""

    @abstractmethod
    def declared_fields(self, descriptor: Hashable) -> Sequence[Field]:
        """Fields declared directly on the type."""

    @abstractmethod
    def generic_supertype(self, descriptor: Hashable) -> Optional[TypeReference]:
        """Generic supertype reference, or None for root types."""

    @abstractmethod
    def generic_interfaces(self, descriptor: Hashable) -> Sequence[TypeReference]:
        """Generic references to directly implemented interfaces."""

    @abstractmethod
    def annotations(self, descriptor: Hashable) -> AnnotationSet:
        """Annotations carried by the type itself."""

    @abstractmethod
    def package_annotations(self, descriptor: Hashable) -> Optional[AnnotationSet]:
        """Annotations of the enclosing package, or None when there is no package."""

    @abstractmethod
    def annotation_accessors(self, annotation: Annotation) -> Sequence[str]:
        """Names of the attribute accessors declared by the annotation type."""

    @abstractmethod
    def invoke_accessor(self, annotation: Annotation, accessor: str) -> Any:
        """Read one attribute, forcing resolution of any type it references."""
