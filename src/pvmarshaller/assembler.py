"""
Reconstruction of Python objects from structured values

A structured value cannot say which Python type it came from, so decoding is
driven by a target annotation: normally the parameter annotation of the
mutator that will receive the value, falling back to the annotation of the
field it sets when the mutator's annotation lacks element types.
"""

from typing import TYPE_CHECKING, Any, Optional, TypeVar, get_args

from .classifier import TypeCategory, is_dynamic, unwrap
from .exceptions import (
    AccessorNotFound,
    ObjectInstantiationError,
    UnresolvableElementType,
    UnsupportedContainerType,
    field_path,
)
from .log import get_logger
from .pvdata import (
    PVField,
    PVScalar,
    PVScalarArray,
    PVStructure,
    PVStructureArray,
    PVUnion,
    PVUnionArray,
)
from .scalars import to_native

if TYPE_CHECKING:
    from .marshaller import Marshaller

logger = get_logger("assembler")

_ARRAY_FIELDS = (PVScalarArray, PVStructureArray, PVUnionArray)
_SEQUENCE_TARGETS = (TypeCategory.ARRAY, TypeCategory.LIST_LIKE, TypeCategory.UNION_VARIANT)


class ObjectAssembler:
    """Builds Python values from PVFields"""

    def __init__(self, marshaller: "Marshaller"):
        self.marshaller = marshaller
        self.classifier = marshaller.classifier
        self.registry = marshaller.registry

    def assemble(self, pv_field: PVField, target: Any = None) -> Any:
        """
        Decode ``pv_field`` into a value of the ``target`` annotation

        A missing, ``Any`` or ``object`` target decodes by the kind of the
        field: structures become the class registered for their type-id, or a
        dict when there is none.
        """
        target, _, _ = unwrap(target)

        if isinstance(pv_field, PVScalar):
            return to_native(pv_field.get(), target)

        if isinstance(target, TypeVar):
            raise UnresolvableElementType(f"type variable {target} is not bound")

        if isinstance(pv_field, PVUnion):
            return self.marshaller.containers.decode_union(pv_field, target)

        if isinstance(pv_field, PVStructure):
            if is_dynamic(target):
                return self._assemble_dynamic(pv_field)
            category = self.classifier.classify(target)
            if category is TypeCategory.MAP:
                return self.marshaller.containers.decode_map(pv_field, target)
            if category is TypeCategory.COMPOSITE:
                return self.assemble_object(pv_field, target)
            raise UnsupportedContainerType(f"a structure cannot be decoded as {target}")

        if isinstance(pv_field, _ARRAY_FIELDS):
            if not is_dynamic(target) and self.classifier.classify(target) not in _SEQUENCE_TARGETS:
                raise UnsupportedContainerType(
                    f"a {pv_field.field.type_name} field cannot be decoded as {target}"
                )
            return self.marshaller.containers.decode_sequence(pv_field, target)

        raise UnsupportedContainerType(f"unknown field kind {type(pv_field).__name__}")

    def _assemble_dynamic(self, pv_structure: PVStructure) -> Any:
        cls = self.registry.class_for_type_id(pv_structure.id)
        if cls is not None:
            return self.assemble_object(pv_structure, cls)
        return self.marshaller.containers.decode_map(pv_structure, dict)

    def assemble_object(self, pv_structure: PVStructure, cls: type) -> Any:
        """Create an instance of ``cls`` and inject every field of ``pv_structure``"""
        registered = self.registry.class_for_type_id(pv_structure.id)
        if registered is not None and registered is not cls and issubclass(registered, cls):
            logger.debug("type-id %r selects %s", pv_structure.id, registered.__qualname__)
            cls = registered

        custom = self.registry.serializer_for(cls)
        if custom is not None and custom.assemble is not None:
            instance = custom.assemble(self.marshaller, pv_structure, cls)
            if instance is not NotImplemented:
                return instance

        instance = self.instantiate(cls)
        for name, pv_field in pv_structure.get_pv_fields():
            with field_path(name):
                self.assemble_into(instance, name, pv_field)
        return instance

    @staticmethod
    def instantiate(cls: type) -> Any:
        try:
            return cls()
        except TypeError as exc:
            raise ObjectInstantiationError(
                f"{cls.__qualname__} cannot be created without arguments: {exc}"
            ) from exc

    def assemble_into(self, target: Any, field_name: str, pv_field: PVField) -> None:
        """Decode ``pv_field`` and hand it to the mutator of ``field_name``"""
        description = self.marshaller.plans.describe(type(target))
        if description.setter(field_name) is None and not description.attribute_fallback:
            raise AccessorNotFound(
                f"no set mutator for '{field_name}' in {type(target).__qualname__}"
            )
        declared = description.field(field_name)
        target_type = self._resolve_target(
            description.setter_parameter_type(field_name),
            declared.annotation if declared is not None else None,
            pv_field,
            field_name,
        )
        description.write(target, field_name, self.assemble(pv_field, target_type))

    @staticmethod
    def _resolve_target(
        parameter_type: Optional[Any],
        field_type: Optional[Any],
        pv_field: PVField,
        field_name: str,
    ) -> Any:
        """
        Pick the annotation to decode with

        The mutator's parameter wins unless it lacks type arguments that the
        declared field supplies (``list`` vs ``List[Point]``).
        """
        candidates = [unwrap(c)[0] for c in (parameter_type, field_type) if c is not None]
        for candidate in candidates:
            if get_args(candidate):
                return candidate
        if candidates:
            return candidates[0]
        if isinstance(pv_field, PVScalar):
            return None
        raise UnresolvableElementType(
            f"neither the mutator nor a declared field gives a type for '{field_name}'"
        )
