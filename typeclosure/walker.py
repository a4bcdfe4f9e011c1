"""Depth-first walker that forces resolution of a type's dependency closure."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import FrozenSet, Hashable, Iterable, Iterator, Optional

from .errors import AccessRestricted, ClassResolutionFailure, LinkageFailure, TypeNotPresent
from .logging import get_logger
from .models import (
    AnnotationSet,
    ClosureResult,
    Concrete,
    GenericArray,
    Parameterized,
    TypeReference,
    Wildcard,
)
from .providers.base import MetadataProvider


@dataclass
class WalkerOptions:
    """Behaviour switches for a closure walk."""

    # False reproduces the historical behaviour where the supertype signature is
    # read but the supertype itself is never walked.
    traverse_supertype: bool = True


class ClosureWalker:
    """Walks every type reachable from a root through members, generics and annotations.

    A walker owns its visited set; allocate a new one per invocation and never
    share it between threads.
    """

    def __init__(
        self, provider: MetadataProvider, options: Optional[WalkerOptions] = None
    ) -> None:
        self._provider = provider
        self._options = options or WalkerOptions()
        self._visited: set[Hashable] = set()
        self.logger = get_logger("walker")

    @property
    def visited(self) -> FrozenSet[Hashable]:
        return frozenset(self._visited)

    def load_dependencies(self, root: Hashable) -> Hashable:
        """Return ``root`` once its whole closure resolved.

        Raises ``ClassResolutionFailure`` naming the first type that could not be
        loaded. Any other exception is a genuine fault and propagates untouched.
        """
        self.traverse_type(root)
        return root

    def check(self, root: Hashable) -> ClosureResult:
        """Like :meth:`load_dependencies` but report resolution failures as a result."""
        try:
            self.traverse_type(root)
        except ClassResolutionFailure as exc:
            return ClosureResult(root=root, failure=exc, visited=set(self._visited))
        return ClosureResult(root=root, visited=set(self._visited))

    def traverse_type(self, descriptor: Hashable) -> None:
        if descriptor in self._visited:
            return
        with self._visiting(descriptor):
            try:
                self._traverse_members(descriptor)
            except LinkageFailure as exc:
                name = exc.type_name or self._provider.type_name(descriptor)
                self.logger.debug("Linkage failure while walking %s: %s", name, exc)
                raise ClassResolutionFailure(name, exc) from exc
            except TypeNotPresent as exc:
                self.logger.debug("Lazy reference to missing type %s", exc.type_name)
                raise ClassResolutionFailure(exc.type_name, exc) from exc

    def traverse_reference(self, reference: Optional[TypeReference]) -> None:
        if reference is None:
            return
        if isinstance(reference, Concrete):
            self.traverse_type(reference.descriptor)
        elif isinstance(reference, Parameterized):
            self.traverse_reference(reference.owner)
            self._traverse_references(reference.args)
        elif isinstance(reference, Wildcard):
            self._traverse_references(reference.lower_bounds)
            self._traverse_references(reference.upper_bounds)
        elif isinstance(reference, GenericArray):
            self.traverse_reference(reference.component)
        else:
            raise TypeError(f"Unsupported type reference: {reference!r}")

    def traverse_annotations(self, annotations: AnnotationSet) -> None:
        provider = self._provider
        for annotation in annotations:
            self.traverse_type(annotation.descriptor)
            for accessor in provider.annotation_accessors(annotation):
                try:
                    provider.invoke_accessor(annotation, accessor)
                except AccessRestricted as exc:
                    self.logger.debug(
                        "Skipping restricted attribute %s.%s: %s",
                        provider.type_name(annotation.descriptor),
                        accessor,
                        exc,
                    )

    def _traverse_members(self, descriptor: Hashable) -> None:
        provider = self._provider
        for method in provider.declared_methods(descriptor):
            self.traverse_reference(method.return_type)
            self._traverse_references(method.exception_types)
            self._traverse_references(method.parameter_types)
            for annotations in method.parameter_annotations:
                self.traverse_annotations(annotations)

        for constructor in provider.declared_constructors(descriptor):
            self._traverse_references(constructor.exception_types)
            self._traverse_references(constructor.parameter_types)
            for annotations in constructor.parameter_annotations:
                self.traverse_annotations(annotations)

        for field in provider.declared_fields(descriptor):
            self.traverse_reference(field.type)
            self.traverse_annotations(field.annotations)

        supertype = provider.generic_supertype(descriptor)
        if supertype is not None and self._options.traverse_supertype:
            self.traverse_reference(supertype)

        self._traverse_references(provider.generic_interfaces(descriptor))

        self.traverse_annotations(provider.annotations(descriptor))
        package_annotations = provider.package_annotations(descriptor)
        if package_annotations is not None:
            self.traverse_annotations(package_annotations)

    def _traverse_references(self, references: Iterable[Optional[TypeReference]]) -> None:
        for reference in references:
            self.traverse_reference(reference)

    @contextmanager
    def _visiting(self, descriptor: Hashable) -> Iterator[None]:
        self._visited.add(descriptor)
        try:
            yield
        except BaseException:
            # Roll back so a later walk can retry this type.
            self._visited.discard(descriptor)
            self.logger.debug("Rolled back visited mark for %r", descriptor)
            raise


def load_dependencies(
    root: Hashable,
    provider: MetadataProvider,
    options: Optional[WalkerOptions] = None,
) -> Hashable:
    """Validate the closure of ``root`` with a fresh walker and return ``root``."""
    return ClosureWalker(provider, options).load_dependencies(root)


__all__ = ["ClosureWalker", "WalkerOptions", "load_dependencies"]
