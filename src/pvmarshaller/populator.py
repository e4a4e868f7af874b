"""
Copies the values of an object into a structure built for it

The field walk repeats the one used to build the structure, including the
rule that drops None-valued fields, so both enumerate the same
fields in the same order. Writes happen in place: if a write fails partway
the structure is left partially populated and should be discarded.
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .exceptions import StoreAccessError, field_path
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

if TYPE_CHECKING:
    from .marshaller import Marshaller

logger = get_logger("populator")


class ValuePopulator:
    """Writes object values into an existing PVStructure"""

    def __init__(self, marshaller: "Marshaller"):
        self.marshaller = marshaller
        self.classifier = marshaller.classifier
        self.registry = marshaller.registry

    def populate(self, instance: Any, pv_structure: PVStructure) -> None:
        cls = type(instance)
        custom = self.registry.serializer_for(cls)
        if custom is not None:
            logger.debug("custom population for %s", cls.__qualname__)
            custom.populate(self.marshaller, instance, pv_structure)
            return

        if isinstance(instance, Mapping):
            self.marshaller.containers.populate_map(pv_structure, cls, instance)
            return

        description = self.marshaller.plans.describe(cls)
        for descriptor in description.fields:
            with field_path(descriptor.name):
                value = description.read(instance, descriptor.name)
                if value is None:
                    continue
                self.write(pv_structure.get_sub_field(descriptor.name), descriptor.annotation, value)

    def write(self, pv_field: PVField, annotation: Any, value: Any) -> None:
        """Write one value into the field created for it"""
        if isinstance(pv_field, PVScalar):
            pv_field.put(value)
        elif isinstance(pv_field, PVUnion):
            self.marshaller.containers.set_union(pv_field, value)
        elif isinstance(pv_field, PVStructure):
            if isinstance(value, Mapping) and self.registry.serializer_for(type(value)) is None:
                annotation = self.classifier.runtime_annotation(annotation, value)
                self.marshaller.containers.populate_map(pv_field, annotation, value)
            else:
                self.populate(value, pv_field)
        elif isinstance(pv_field, (PVScalarArray, PVStructureArray, PVUnionArray)):
            annotation = self.classifier.runtime_annotation(annotation, value)
            self.marshaller.containers.populate_sequence(pv_field, annotation, value)
        else:
            raise StoreAccessError(f"cannot write into a {pv_field.field.type_name} field")
