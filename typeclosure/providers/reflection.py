"""Metadata provider over live Python classes.

Descriptors are classes. Members come from the class ``__dict__``, generic
signatures from :func:`typing.get_type_hints`, and annotation instances from
``typing.Annotated`` metadata and ``__metadata__`` tuples declared on classes
and modules. Forward references that cannot be evaluated surface as
``TypeNotPresent``; dotted references whose module cannot be imported surface
as ``LinkageFailure``.
"""

from __future__ import annotations

import builtins
import dataclasses
import importlib
import inspect
import sys
import types
import typing
from typing import Any, Dict, FrozenSet, Hashable, List, Optional, Sequence, Tuple

from ..errors import AccessRestricted, LinkageFailure, TypeNotPresent
from ..logging import get_logger
from ..models import (
    Annotation,
    AnnotationSet,
    Concrete,
    Constructor,
    Field,
    GenericArray,
    Method,
    Parameterized,
    TypeReference,
    Wildcard,
)
from .base import MetadataProvider

_LOGGER = get_logger("providers.reflection")

_OPAQUE_TOP_LEVEL: FrozenSet[str] = frozenset(sys.stdlib_module_names) | {"builtins"}
_LAZY_PREFIX = "type:"
_METADATA_ATTR = "__metadata__"
_RAISES_ATTR = "__raises__"


class PythonTypeProvider(MetadataProvider):
    """Reflects over classes outside the standard library and ``ignored_modules``."""

    name = "python"

    def __init__(self, ignored_modules: Sequence[str] = ()) -> None:
        self._ignored = tuple(ignored_modules)

    def resolve(self, type_name: str) -> type:
        """Import ``module:Qual.Name`` (or ``module.Name``) and return the class."""
        module_name, sep, qualname = type_name.partition(":")
        if not sep:
            module_name, _, qualname = type_name.rpartition(".")
        if not module_name or not qualname:
            raise ValueError(f"Expected 'module:QualName', got '{type_name}'")
        try:
            target: Any = importlib.import_module(module_name)
        except ImportError as exc:
            raise LinkageFailure(
                f"Cannot import module {module_name}: {exc}", type_name=type_name
            ) from exc
        for part in qualname.split("."):
            try:
                target = getattr(target, part)
            except AttributeError as exc:
                raise TypeNotPresent(type_name, exc) from exc
        if not isinstance(target, type):
            raise TypeError(f"{type_name} does not name a class")
        return target

    def type_name(self, descriptor: Hashable) -> str:
        if isinstance(descriptor, type):
            return f"{descriptor.__module__}.{descriptor.__qualname__}"
        return repr(descriptor)

    def is_inspectable(self, descriptor: Hashable) -> bool:
        if not isinstance(descriptor, type):
            return False
        module = getattr(descriptor, "__module__", None) or ""
        if module.split(".", 1)[0] in _OPAQUE_TOP_LEVEL:
            return False
        return not any(
            module == ignored or module.startswith(ignored + ".") for ignored in self._ignored
        )

    def declared_methods(self, descriptor: Hashable) -> Sequence[Method]:
        if not self.is_inspectable(descriptor):
            return []
        methods: List[Method] = []
        for name, member in vars(descriptor).items():
            function = _unwrap_function(member)
            if function is None or name == "__init__":
                continue
            module = descriptor.__module__
            hints = self._hints(function)
            parameters, parameter_annotations = self._parameters(function, hints, module)
            return_type, _ = self._split(hints.get("return"), module)
            methods.append(
                Method(
                    name=name,
                    return_type=return_type,
                    exception_types=self._raised(function, module),
                    parameter_types=parameters,
                    parameter_annotations=parameter_annotations,
                )
            )
        return methods

    def declared_constructors(self, descriptor: Hashable) -> Sequence[Constructor]:
        if not self.is_inspectable(descriptor) or "__dataclass_fields__" in vars(descriptor):
            # Generated dataclass initialisers only repeat the declared fields.
            return []
        function = _unwrap_function(vars(descriptor).get("__init__"))
        if function is None:
            return []
        module = descriptor.__module__
        parameters, parameter_annotations = self._parameters(function, self._hints(function), module)
        return [
            Constructor(
                name=descriptor.__qualname__,
                exception_types=self._raised(function, module),
                parameter_types=parameters,
                parameter_annotations=parameter_annotations,
            )
        ]

    def declared_fields(self, descriptor: Hashable) -> Sequence[Field]:
        if not self.is_inspectable(descriptor):
            return []
        own = inspect.get_annotations(descriptor)
        if not own:
            return []
        hints = self._own_hints(descriptor, own)
        fields: List[Field] = []
        for name in own:
            reference, metadata = self._split(hints.get(name), descriptor.__module__)
            fields.append(Field(name=name, type=reference, annotations=metadata))
        return fields

    def generic_supertype(self, descriptor: Hashable) -> Optional[TypeReference]:
        bases = self._bases(descriptor)
        return bases[0] if bases else None

    def generic_interfaces(self, descriptor: Hashable) -> Sequence[TypeReference]:
        return self._bases(descriptor)[1:]

    def annotations(self, descriptor: Hashable) -> AnnotationSet:
        if not self.is_inspectable(descriptor):
            return ()
        return _annotation_set(vars(descriptor).get(_METADATA_ATTR, ()))

    def package_annotations(self, descriptor: Hashable) -> Optional[AnnotationSet]:
        if not self.is_inspectable(descriptor):
            return None
        module = sys.modules.get(descriptor.__module__)
        if module is None:
            return None
        return _annotation_set(getattr(module, _METADATA_ATTR, ()))

    def annotation_accessors(self, annotation: Annotation) -> Sequence[str]:
        instance = annotation.value
        names: List[str] = []
        if dataclasses.is_dataclass(instance) and not isinstance(instance, type):
            candidates = [item.name for item in dataclasses.fields(instance)]
        else:
            candidates = [
                name for name in getattr(instance, "__dict__", {}) if not name.startswith("_")
            ]
        # Functions stored on the instance are behaviour, not attribute values.
        names.extend(
            name
            for name in candidates
            if not inspect.isroutine(inspect.getattr_static(instance, name, None))
        )
        for name, member in inspect.getmembers_static(type(instance)):
            if isinstance(member, property) and not name.startswith("_") and name not in names:
                names.append(name)
        return names

    def invoke_accessor(self, annotation: Annotation, accessor: str) -> Any:
        try:
            value = getattr(annotation.value, accessor)
        except PermissionError as exc:
            raise AccessRestricted(str(exc)) from exc
        except NameError as exc:
            raise TypeNotPresent(_missing_name(exc), exc) from exc
        return self._force(value, type(annotation.value).__module__)

    def _force(self, value: Any, module: str) -> Any:
        if isinstance(value, typing.ForwardRef):
            return self._resolve_name(value.__forward_arg__, module)
        if isinstance(value, str) and value.startswith(_LAZY_PREFIX):
            return self._resolve_name(value[len(_LAZY_PREFIX):].strip(), module)
        if isinstance(value, (list, tuple)):
            return type(value)(self._force(item, module) for item in value)
        return value

    def _resolve_name(self, name: str, module_name: str) -> Any:
        module = sys.modules.get(module_name)
        namespace: Dict[str, Any] = vars(module) if module is not None else {}
        head, _, rest = name.partition(".")
        if head in namespace:
            target = namespace[head]
        elif hasattr(builtins, head):
            target = getattr(builtins, head)
        elif rest:
            return self._import_dotted(name)
        else:
            raise TypeNotPresent(name)
        for part in rest.split(".") if rest else ():
            try:
                target = getattr(target, part)
            except AttributeError as exc:
                raise TypeNotPresent(name, exc) from exc
        return target

    def _import_dotted(self, name: str) -> Any:
        module_name, _, attribute = name.rpartition(".")
        try:
            module = importlib.import_module(module_name)
        except ImportError as exc:
            raise LinkageFailure(f"Cannot load {name}: {exc}", type_name=name) from exc
        try:
            return getattr(module, attribute)
        except AttributeError as exc:
            raise TypeNotPresent(name, exc) from exc

    def _hints(self, target: Any, **namespaces: Any) -> Dict[str, Any]:
        try:
            return typing.get_type_hints(target, include_extras=True, **namespaces)
        except NameError as exc:
            _LOGGER.debug("Unresolvable annotation on %r: %s", target, exc)
            raise TypeNotPresent(_missing_name(exc), exc) from exc

    def _own_hints(self, descriptor: type, own: Dict[str, Any]) -> Dict[str, Any]:
        """Evaluate the annotations ``descriptor`` declares itself.

        ``get_type_hints`` on the class would also evaluate every base in the
        MRO, including bases from ignored or standard-library modules.
        """
        holder = type(
            descriptor.__name__,
            (),
            {"__annotations__": dict(own), "__module__": descriptor.__module__},
        )
        module = sys.modules.get(descriptor.__module__)
        globalns: Dict[str, Any] = dict(vars(module)) if module is not None else {}
        return self._hints(holder, globalns=globalns, localns=dict(vars(descriptor)))

    def _parameters(
        self, function: Any, hints: Dict[str, Any], module: str
    ) -> Tuple[Tuple[Optional[TypeReference], ...], Tuple[AnnotationSet, ...]]:
        references: List[Optional[TypeReference]] = []
        annotation_sets: List[AnnotationSet] = []
        for name in inspect.signature(function).parameters:
            reference, metadata = self._split(hints.get(name), module)
            references.append(reference)
            annotation_sets.append(metadata)
        return tuple(references), tuple(annotation_sets)

    def _raised(self, function: Any, module: str) -> Tuple[TypeReference, ...]:
        raised = getattr(function, _RAISES_ATTR, ())
        if not isinstance(raised, (list, tuple)):
            raised = (raised,)
        references = (self._reference(self._force(item, module), module) for item in raised)
        return tuple(reference for reference in references if reference is not None)

    def _bases(self, descriptor: Hashable) -> Tuple[TypeReference, ...]:
        if not self.is_inspectable(descriptor):
            return ()
        bases = vars(descriptor).get("__orig_bases__") or descriptor.__bases__
        references = []
        for base in bases:
            if base is object or typing.get_origin(base) is typing.Generic:
                continue
            reference = self._reference(base, descriptor.__module__)
            if reference is not None:
                references.append(reference)
        return tuple(references)

    def _split(self, hint: Any, module: str) -> Tuple[Optional[TypeReference], AnnotationSet]:
        """Separate ``Annotated`` metadata from the annotated type."""
        if typing.get_origin(hint) is typing.Annotated:
            inner, *metadata = typing.get_args(hint)
            return self._reference(inner, module), _annotation_set(metadata)
        return self._reference(hint, module), ()

    def _reference(
        self, hint: Any, module: str, _active: FrozenSet[int] = frozenset()
    ) -> Optional[TypeReference]:
        if hint is None or hint is typing.Any or hint is Ellipsis:
            return None
        if isinstance(hint, typing.TypeVar):
            if id(hint) in _active:
                return None
            active = _active | {id(hint)}
            bounds = (hint.__bound__,) if hint.__bound__ is not None else hint.__constraints__
            return Wildcard(upper_bounds=self._references(bounds, module, active))
        if isinstance(hint, typing.ForwardRef):
            return self._reference(self._force(hint, module), module, _active)

        origin = typing.get_origin(hint)
        args = typing.get_args(hint)
        if origin is typing.Annotated:
            return self._reference(args[0], module, _active)
        if origin is typing.Literal:
            return None
        if origin in (typing.ClassVar, typing.Final):
            return self._reference(args[0], module, _active) if args else None
        if origin is typing.Union or origin is types.UnionType:
            return Parameterized(None, self._references(args, module, _active))
        if origin is tuple and len(args) == 2 and args[1] is Ellipsis:
            component = self._reference(args[0], module, _active)
            return GenericArray(component) if component is not None else None
        if origin is not None:
            owner = Concrete(origin) if isinstance(origin, type) else None
            return Parameterized(owner, self._references(args, module, _active))
        if isinstance(hint, type):
            return Concrete(hint)
        return None

    def _references(
        self, hints: Sequence[Any], module: str, active: FrozenSet[int]
    ) -> Tuple[TypeReference, ...]:
        references: List[TypeReference] = []
        for hint in hints:
            # Callable[[A, B], R] nests its parameter list.
            items = hint if isinstance(hint, list) else (hint,)
            for item in items:
                reference = self._reference(item, module, active)
                if reference is not None:
                    references.append(reference)
        return tuple(references)


def _unwrap_function(member: Any) -> Any:
    if isinstance(member, (staticmethod, classmethod)):
        member = member.__func__
    elif isinstance(member, property):
        member = member.fget
    return member if inspect.isfunction(member) else None


def _annotation_set(instances: Sequence[Any]) -> AnnotationSet:
    return tuple(Annotation(descriptor=type(instance), value=instance) for instance in instances)


def _missing_name(exc: NameError) -> str:
    return getattr(exc, "name", None) or str(exc)


__all__ = ["PythonTypeProvider"]
