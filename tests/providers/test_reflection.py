"""Tests for the reflection provider over Python classes."""

from __future__ import annotations

import collections.abc
import sys
from dataclasses import dataclass
from typing import Annotated, Any, Callable, Generic, Literal, Optional, TypeVar, Union

import pytest

from typeclosure import ClassResolutionFailure, ClosureWalker, LinkageFailure, TypeNotPresent, load_dependencies
from typeclosure.models import Annotation, Concrete, GenericArray, Parameterized, Wildcard
from typeclosure.providers.reflection import PythonTypeProvider


@dataclass
class Marker:
    label: str = ""


@dataclass
class KindMarker:
    kind: Any = None


class Restricting:
    @property
    def secret(self) -> str:
        raise PermissionError("reserved attribute")


class Leaf:
    pass


class Node:
    parent: Node
    children: list[Node]
    leaf: Optional[Leaf]


class Broken:
    widget: MissingWidget  # noqa: F821


class Repository:
    items: dict[str, tuple[Node, ...]]


class Service:
    def __init__(self, repository: Repository) -> None:
        self.repository = repository

    def find(self, key: str) -> Node:
        raise NotImplementedError

    @staticmethod
    def build(count: int) -> Service:
        raise NotImplementedError


class Tagged:
    value: Annotated[int, KindMarker("type:MissingKind")]


class Linked:
    value: Annotated[int, KindMarker("type:nonexistent_typeclosure_pkg.Thing")]


class Guarded:
    value: Annotated[int, Restricting()]


class Flagged:
    __metadata__ = (Marker("flagged"),)


class Risky:
    def run(self) -> None:
        raise NotImplementedError

    run.__raises__ = ("type:MissingError",)


T = TypeVar("T", bound=Leaf)


class Box(Generic[T]):
    item: T


class LeafBox(Box[Leaf]):
    pass


class Shapes:
    either: Union[Leaf, Node]
    many: tuple[Leaf, ...]
    choice: Literal["a", "b"]
    anything: Any
    callback: Callable[[Leaf], Node]


# Stands in for a third-party base whose annotations name types that only
# exist in its stub files.
VendorBase = type(
    "VendorBase",
    (),
    {"__module__": "vendorlib.models", "__annotations__": {"hidden": "OnlyInVendorStubs"}},
)


class Mine(VendorBase):
    size: int


@dataclass
class Hooked:
    kind: Any = None
    hook: Any = None


@pytest.fixture
def provider() -> PythonTypeProvider:
    return PythonTypeProvider()


def test_cyclic_class_graph_resolves(provider: PythonTypeProvider) -> None:
    walker = ClosureWalker(provider)

    assert walker.load_dependencies(Node) is Node
    assert {Node, Leaf, list, type(None)} <= walker.visited


def test_unresolvable_forward_reference_is_named(provider: PythonTypeProvider) -> None:
    with pytest.raises(ClassResolutionFailure) as excinfo:
        load_dependencies(Broken, provider)

    assert excinfo.value.type_name == "MissingWidget"
    assert isinstance(excinfo.value.cause, TypeNotPresent)


def test_constructor_and_methods_are_walked(provider: PythonTypeProvider) -> None:
    walker = ClosureWalker(provider)

    walker.load_dependencies(Service)

    assert {Service, Repository, Node, Leaf} <= walker.visited
    [constructor] = provider.declared_constructors(Service)
    assert constructor.parameter_types == (None, Concrete(Repository))
    names = [method.name for method in provider.declared_methods(Service)]
    assert names == ["find", "build"]


def test_lazy_annotation_attribute_is_forced(provider: PythonTypeProvider) -> None:
    with pytest.raises(ClassResolutionFailure) as excinfo:
        load_dependencies(Tagged, provider)

    assert excinfo.value.type_name == "MissingKind"


def test_unimportable_dotted_reference_is_linkage_failure(provider: PythonTypeProvider) -> None:
    with pytest.raises(ClassResolutionFailure) as excinfo:
        load_dependencies(Linked, provider)

    assert excinfo.value.type_name == "nonexistent_typeclosure_pkg.Thing"
    assert isinstance(excinfo.value.cause, LinkageFailure)


def test_restricted_accessor_is_skipped(provider: PythonTypeProvider) -> None:
    assert load_dependencies(Guarded, provider) is Guarded


def test_class_metadata_is_walked(provider: PythonTypeProvider) -> None:
    walker = ClosureWalker(provider)

    walker.load_dependencies(Flagged)

    assert Marker in walker.visited


def test_declared_exception_types_are_walked(provider: PythonTypeProvider) -> None:
    with pytest.raises(ClassResolutionFailure) as excinfo:
        load_dependencies(Risky, provider)

    assert excinfo.value.type_name == "MissingError"


def test_package_metadata_is_walked(provider: PythonTypeProvider, monkeypatch) -> None:
    module = sys.modules[Leaf.__module__]
    monkeypatch.setattr(module, "__metadata__", (KindMarker("type:MissingPackageKind"),), raising=False)

    with pytest.raises(ClassResolutionFailure) as excinfo:
        load_dependencies(Leaf, provider)

    assert excinfo.value.type_name == "MissingPackageKind"


def test_generic_supertype_and_type_variables(provider: PythonTypeProvider) -> None:
    assert provider.generic_supertype(LeafBox) == Parameterized(Concrete(Box), (Concrete(Leaf),))
    assert provider.generic_supertype(Box) is None
    [item] = provider.declared_fields(Box)
    assert item.type == Wildcard(upper_bounds=(Concrete(Leaf),))

    walker = ClosureWalker(provider)
    walker.load_dependencies(LeafBox)
    assert {LeafBox, Box, Leaf} <= walker.visited


def test_reference_shapes(provider: PythonTypeProvider) -> None:
    fields = {field.name: field.type for field in provider.declared_fields(Shapes)}

    assert fields["either"] == Parameterized(None, (Concrete(Leaf), Concrete(Node)))
    assert fields["many"] == GenericArray(Concrete(Leaf))
    assert fields["choice"] is None
    assert fields["anything"] is None
    assert fields["callback"] == Parameterized(
        Concrete(collections.abc.Callable), (Concrete(Leaf), Concrete(Node))
    )


def test_standard_library_and_ignored_modules_are_leaves() -> None:
    provider = PythonTypeProvider(ignored_modules=[Leaf.__module__])

    assert not provider.is_inspectable(dict)
    assert provider.declared_methods(dict) == []
    assert not provider.is_inspectable(Broken)
    assert load_dependencies(Broken, provider) is Broken


def test_ignored_base_annotations_are_not_evaluated() -> None:
    provider = PythonTypeProvider(ignored_modules=["vendorlib"])
    walker = ClosureWalker(provider)

    assert walker.load_dependencies(Mine) is Mine
    assert VendorBase in walker.visited


def test_base_annotations_fail_on_the_base(provider: PythonTypeProvider) -> None:
    [size] = provider.declared_fields(Mine)
    assert size.type == Concrete(int)

    with pytest.raises(ClassResolutionFailure) as excinfo:
        load_dependencies(Mine, provider)

    assert excinfo.value.type_name == "OnlyInVendorStubs"


def test_routines_are_not_accessors(provider: PythonTypeProvider) -> None:
    marker = Hooked(kind=Leaf, hook=len)

    assert provider.annotation_accessors(Annotation(descriptor=Hooked, value=marker)) == ["kind"]


def test_resolve_imports_classes(provider: PythonTypeProvider) -> None:
    module_name = Node.__module__

    assert provider.resolve(f"{module_name}:Node") is Node
    assert provider.resolve("collections.OrderedDict") is collections.OrderedDict
    with pytest.raises(LinkageFailure):
        provider.resolve("nonexistent_typeclosure_pkg:Thing")
    with pytest.raises(TypeNotPresent):
        provider.resolve(f"{module_name}:Nope")
    with pytest.raises(ValueError):
        provider.resolve("NoModule")


def test_type_names_are_qualified(provider: PythonTypeProvider) -> None:
    assert provider.type_name(Node) == f"{Node.__module__}.Node"
