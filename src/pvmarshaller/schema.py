"""
Structure synthesis from a class and a live instance

The structure depends on the instance as well as the class: a field whose
getter returns None is left out, whatever its declared type.
"""

from typing import TYPE_CHECKING, Any

from .classifier import TypeCategory
from .exceptions import field_path
from .log import get_logger
from .pvdata import VARIANT_UNION, Field, FieldBuilder, Scalar, Structure
from .scalars import scalar_type_for

if TYPE_CHECKING:
    from .marshaller import Marshaller

logger = get_logger("schema")


class SchemaBuilder:
    """Builds the Structure describing an object"""

    def __init__(self, marshaller: "Marshaller"):
        self.marshaller = marshaller
        self.classifier = marshaller.classifier
        self.registry = marshaller.registry
        self.config = marshaller.config

    def build(self, cls: type, instance: Any) -> Structure:
        """
        Create the Structure for ``instance`` viewed as a ``cls``

        A custom serializer registered for ``cls`` (or an interface/ancestor of
        it) replaces the field walk entirely.
        """
        custom = self.registry.serializer_for(cls)
        if custom is not None:
            logger.debug("custom structure for %s", cls.__qualname__)
            return custom.build(self.marshaller, instance)

        description = self.marshaller.plans.describe(cls)
        builder = FieldBuilder()
        for descriptor in description.fields:
            with field_path(descriptor.name):
                description.require_getter(descriptor.name)
                value = description.read(instance, descriptor.name)
                if value is None:
                    logger.debug("omitting None field %s.%s", cls.__qualname__, descriptor.name)
                    continue
                builder.add(descriptor.name, self.field_for(descriptor.annotation, value))

        type_id = self.registry.type_id_for(cls)
        if type_id is not None:
            builder.set_id(type_id)
        return builder.create_structure()

    def field_for(self, annotation: Any, value: Any) -> Field:
        """Field description for a non-null value declared as ``annotation``"""
        annotation = self.classifier.runtime_annotation(annotation, value)
        category = self.classifier.classify(annotation)

        if category is TypeCategory.SCALAR:
            return Scalar(scalar_type_for(annotation, self.config))
        if category in (TypeCategory.ARRAY, TypeCategory.LIST_LIKE):
            return self.marshaller.containers.sequence_field(annotation, value)
        if category is TypeCategory.MAP:
            return self.marshaller.containers.map_structure(annotation, value)
        if category is TypeCategory.UNION_VARIANT:
            self.marshaller.containers.check_union_payload(value)
            return VARIANT_UNION
        return self.build(type(value), value)
