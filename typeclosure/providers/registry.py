"""In-memory type environment and the provider that walks it."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence

import yaml

from ..errors import AccessRestricted, ConfigError, LinkageFailure, TypeNotPresent
from ..logging import get_logger
from ..models import (
    Annotation,
    AnnotationSet,
    Constructor,
    Field,
    Method,
    TypeReference,
)
from .base import MetadataProvider
from .expressions import parse_type_expression

_LOGGER = get_logger("providers.registry")


@dataclass(eq=False)
class TypeHandle:
    """Identity-compared descriptor for a named type in an environment."""

    name: str

    def __repr__(self) -> str:
        return f"TypeHandle({self.name!r})"


@dataclass(frozen=True)
class TypeValue:
    """Annotation attribute value naming a type (class- or enum-valued)."""

    name: str


@dataclass(frozen=True)
class Restricted:
    """Annotation attribute that cannot be read."""

    reason: str = "access denied"


@dataclass
class AnnotationDefinition:
    type: str
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ParameterDefinition:
    type: Optional[str] = None
    annotations: List[AnnotationDefinition] = field(default_factory=list)


@dataclass
class MethodDefinition:
    name: str
    returns: Optional[str] = None
    raises: List[str] = field(default_factory=list)
    parameters: List[ParameterDefinition] = field(default_factory=list)


@dataclass
class ConstructorDefinition:
    raises: List[str] = field(default_factory=list)
    parameters: List[ParameterDefinition] = field(default_factory=list)


@dataclass
class FieldDefinition:
    name: str
    type: Optional[str] = None
    annotations: List[AnnotationDefinition] = field(default_factory=list)


@dataclass
class PackageDefinition:
    name: str
    annotations: List[AnnotationDefinition] = field(default_factory=list)


@dataclass
class TypeDefinition:
    """Declarative description of one type's members and signatures."""

    name: str
    methods: List[MethodDefinition] = field(default_factory=list)
    constructors: List[ConstructorDefinition] = field(default_factory=list)
    fields: List[FieldDefinition] = field(default_factory=list)
    supertype: Optional[str] = None
    interfaces: List[str] = field(default_factory=list)
    annotations: List[AnnotationDefinition] = field(default_factory=list)
    package: Optional[str] = None


class TypeEnvironment:
    """Mutable set of type definitions addressed by name.

    Each name maps to a single ``TypeHandle`` for the lifetime of the
    environment, whether or not a definition exists for it yet.
    """

    def __init__(
        self,
        definitions: Iterable[TypeDefinition] = (),
        packages: Iterable[PackageDefinition] = (),
    ) -> None:
        self._types: Dict[str, TypeDefinition] = {}
        self._packages: Dict[str, PackageDefinition] = {}
        self._handles: Dict[str, TypeHandle] = {}
        for definition in definitions:
            self.define(definition)
        for package in packages:
            self.define_package(package)

    def define(self, definition: TypeDefinition) -> TypeHandle:
        self._types[definition.name] = definition
        return self.handle(definition.name)

    def define_package(self, package: PackageDefinition) -> None:
        self._packages[package.name] = package

    def undefine(self, name: str) -> None:
        self._types.pop(name, None)

    def handle(self, name: str) -> TypeHandle:
        handle = self._handles.get(name)
        if handle is None:
            handle = TypeHandle(name)
            self._handles[name] = handle
        return handle

    def lookup(self, name: str) -> Optional[TypeDefinition]:
        return self._types.get(name)

    def package(self, name: str) -> Optional[PackageDefinition]:
        return self._packages.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __len__(self) -> int:
        return len(self._types)


class RegistryProvider(MetadataProvider):
    """Metadata provider backed by a :class:`TypeEnvironment`."""

    name = "registry"

    def __init__(self, environment: Optional[TypeEnvironment] = None) -> None:
        self.environment = environment if environment is not None else TypeEnvironment()
        self._references: Dict[str, TypeReference] = {}

    def resolve(self, type_name: str) -> TypeHandle:
        return self.environment.handle(type_name)

    def type_name(self, descriptor: Hashable) -> str:
        return descriptor.name if isinstance(descriptor, TypeHandle) else repr(descriptor)

    def declared_methods(self, descriptor: Hashable) -> Sequence[Method]:
        definition = self._definition(descriptor)
        return [
            Method(
                name=method.name,
                return_type=self._reference(method.returns),
                exception_types=self._references_for(method.raises),
                parameter_types=tuple(self._reference(param.type) for param in method.parameters),
                parameter_annotations=tuple(
                    self._annotation_set(param.annotations) for param in method.parameters
                ),
            )
            for method in definition.methods
        ]

    def declared_constructors(self, descriptor: Hashable) -> Sequence[Constructor]:
        definition = self._definition(descriptor)
        return [
            Constructor(
                name=definition.name,
                exception_types=self._references_for(constructor.raises),
                parameter_types=tuple(
                    self._reference(param.type) for param in constructor.parameters
                ),
                parameter_annotations=tuple(
                    self._annotation_set(param.annotations) for param in constructor.parameters
                ),
            )
            for constructor in definition.constructors
        ]

    def declared_fields(self, descriptor: Hashable) -> Sequence[Field]:
        definition = self._definition(descriptor)
        return [
            Field(
                name=item.name,
                type=self._reference(item.type),
                annotations=self._annotation_set(item.annotations),
            )
            for item in definition.fields
        ]

    def generic_supertype(self, descriptor: Hashable) -> Optional[TypeReference]:
        return self._reference(self._definition(descriptor).supertype)

    def generic_interfaces(self, descriptor: Hashable) -> Sequence[TypeReference]:
        return self._references_for(self._definition(descriptor).interfaces)

    def annotations(self, descriptor: Hashable) -> AnnotationSet:
        return self._annotation_set(self._definition(descriptor).annotations)

    def package_annotations(self, descriptor: Hashable) -> Optional[AnnotationSet]:
        package_name = self._definition(descriptor).package
        if package_name is None:
            return None
        package = self.environment.package(package_name)
        if package is None:
            return ()
        return self._annotation_set(package.annotations)

    def annotation_accessors(self, annotation: Annotation) -> Sequence[str]:
        return list(annotation.value.attributes)

    def invoke_accessor(self, annotation: Annotation, accessor: str) -> Any:
        value = annotation.value.attributes[accessor]
        if isinstance(value, Restricted):
            raise AccessRestricted(f"{annotation.value.type}.{accessor}: {value.reason}")
        if isinstance(value, (list, tuple)):
            return tuple(self._force(item) for item in value)
        return self._force(value)

    def _force(self, value: Any) -> Any:
        if isinstance(value, TypeValue):
            if value.name not in self.environment:
                raise TypeNotPresent(value.name)
            return self.environment.handle(value.name)
        return value

    def _definition(self, descriptor: Hashable) -> TypeDefinition:
        name = self.type_name(descriptor)
        definition = self.environment.lookup(name)
        if definition is None:
            raise LinkageFailure(f"No definition found for type {name}", type_name=name)
        return definition

    def _reference(self, expression: Optional[str]) -> Optional[TypeReference]:
        if expression is None:
            return None
        reference = self._references.get(expression)
        if reference is None:
            reference = parse_type_expression(expression, self.environment.handle)
            self._references[expression] = reference
        return reference

    def _references_for(self, expressions: Iterable[str]) -> tuple:
        return tuple(self._reference(expression) for expression in expressions)

    def _annotation_set(self, definitions: Sequence[AnnotationDefinition]) -> AnnotationSet:
        return tuple(
            Annotation(descriptor=self.environment.handle(item.type), value=item)
            for item in definitions
        )


def load_environment(path: Path) -> TypeEnvironment:
    """Load a type environment from a YAML graph file."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read graph file {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    environment = environment_from_mapping(data or {})
    _LOGGER.debug("Loaded %d type definitions from %s", len(environment), path)
    return environment


def environment_from_mapping(data: Any) -> TypeEnvironment:
    """Build an environment from the ``types``/``packages`` mapping of a graph file."""
    if not isinstance(data, Mapping):
        raise ConfigError("Graph file must contain a mapping at the root")
    environment = TypeEnvironment()
    for name, body in _as_mapping(data.get("packages"), "packages").items():
        body = _as_mapping(body, f"package {name}")
        environment.define_package(
            PackageDefinition(name=str(name), annotations=_annotations(body.get("annotations")))
        )
    for name, body in _as_mapping(data.get("types"), "types").items():
        environment.define(_type_definition(str(name), _as_mapping(body, f"type {name}")))
    return environment


def _type_definition(name: str, body: Mapping[str, Any]) -> TypeDefinition:
    methods = [
        _method(str(method_name), _as_mapping(entry, f"method {name}.{method_name}"))
        for method_name, entry in _as_mapping(body.get("methods"), f"{name}.methods").items()
    ]
    constructors = [
        ConstructorDefinition(
            raises=_expressions(entry.get("raises")),
            parameters=_parameters(entry.get("parameters")),
        )
        for entry in (
            _as_mapping(item, f"constructor of {name}") for item in _as_list(body.get("constructors"))
        )
    ]
    fields: List[FieldDefinition] = []
    for field_name, entry in _as_mapping(body.get("fields"), f"{name}.fields").items():
        if isinstance(entry, Mapping):
            fields.append(
                FieldDefinition(
                    name=str(field_name),
                    type=_expression(entry.get("type")),
                    annotations=_annotations(entry.get("annotations")),
                )
            )
        else:
            fields.append(FieldDefinition(name=str(field_name), type=_expression(entry)))
    package = body.get("package")
    return TypeDefinition(
        name=name,
        methods=methods,
        constructors=constructors,
        fields=fields,
        supertype=_expression(body.get("supertype")),
        interfaces=_expressions(body.get("interfaces")),
        annotations=_annotations(body.get("annotations")),
        package=str(package) if package is not None else None,
    )


def _method(name: str, spec: Mapping[str, Any]) -> MethodDefinition:
    return MethodDefinition(
        name=name,
        returns=_expression(spec.get("returns")),
        raises=_expressions(spec.get("raises")),
        parameters=_parameters(spec.get("parameters")),
    )


def _parameters(value: Any) -> List[ParameterDefinition]:
    parameters: List[ParameterDefinition] = []
    for item in _as_list(value):
        if isinstance(item, Mapping):
            parameters.append(
                ParameterDefinition(
                    type=_expression(item.get("type")),
                    annotations=_annotations(item.get("annotations")),
                )
            )
        else:
            parameters.append(ParameterDefinition(type=_expression(item)))
    return parameters


def _annotations(value: Any) -> List[AnnotationDefinition]:
    annotations: List[AnnotationDefinition] = []
    for item in _as_list(value):
        if isinstance(item, str):
            annotations.append(AnnotationDefinition(type=item))
            continue
        item = _as_mapping(item, "annotation")
        if "type" not in item:
            raise ConfigError("Annotation entries require a 'type' key")
        attributes = {
            str(key): _attribute_value(raw)
            for key, raw in _as_mapping(item.get("attributes"), "annotation attributes").items()
        }
        annotations.append(AnnotationDefinition(type=str(item["type"]), attributes=attributes))
    return annotations


def _attribute_value(raw: Any) -> Any:
    if isinstance(raw, Mapping):
        if "type_value" in raw:
            return TypeValue(str(raw["type_value"]))
        if raw.get("restricted"):
            return Restricted(str(raw.get("reason", "access denied")))
        return dict(raw)
    if isinstance(raw, list):
        return [_attribute_value(item) for item in raw]
    return raw


def _expression(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"Type expressions must be strings, got {value!r}")
    # Reject malformed expressions at load time rather than mid-walk.
    parse_type_expression(value, lambda name: name)
    return value


def _expressions(value: Any) -> List[str]:
    return [expression for expression in map(_expression, _as_list(value)) if expression]


def _as_mapping(value: Any, context: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Expected a mapping for {context}")
    return value


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


__all__ = [
    "AnnotationDefinition",
    "ConstructorDefinition",
    "FieldDefinition",
    "MethodDefinition",
    "PackageDefinition",
    "ParameterDefinition",
    "RegistryProvider",
    "Restricted",
    "TypeDefinition",
    "TypeEnvironment",
    "TypeHandle",
    "TypeValue",
    "load_environment",
    "environment_from_mapping",
]
