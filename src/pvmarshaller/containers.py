"""
Container handling shared by the serialize and deserialize paths

Arrays, lists, string-keyed maps, variant unions and union arrays are mapped
onto the value model the same way in both directions:

* a sequence of scalars is a scalar array
* a sequence of objects or maps is a structure array
* a sequence of sequences is a structure array whose elements hold the inner
  array in a single ``value`` field; a third level of nesting is rejected
* a sequence of ``Any`` is a variant-union array
* a map is a structure with one field per key

NumPy arrays must be one-dimensional. A multi-dimensional array is rejected
rather than flattened, since the shape would be lost on the way back; send
it as a list of rows to get a structure array of row arrays.
"""

import collections.abc as abc
from typing import TYPE_CHECKING, Any, List, Optional, Tuple, TypeVar, get_origin

import numpy as np

from .classifier import TypeCategory, is_dynamic, unwrap
from .exceptions import (
    RegularUnionNotSupported,
    StoreAccessError,
    UnionOfArrayNotSupported,
    UnresolvableElementType,
    UnsupportedContainerType,
    UnsupportedKeyType,
    UnsupportedNestedContainer,
    field_path,
)
from .log import get_logger
from .pvdata import (
    VARIANT_UNION,
    Field,
    FieldBuilder,
    PVField,
    PVScalarArray,
    PVStructure,
    PVStructureArray,
    PVUnion,
    PVUnionArray,
    ScalarArray,
    Structure,
    StructureArray,
    UnionArray,
    create_pv_field,
)
from .scalars import is_scalar_type, scalar_type_for, scalar_type_for_dtype, to_native

if TYPE_CHECKING:
    from .marshaller import Marshaller

logger = get_logger("containers")

NESTED_VALUE_FIELD = "value"

_SEQUENCE_CATEGORIES = (TypeCategory.ARRAY, TypeCategory.LIST_LIKE)
_ABSTRACT_SEQUENCES = (
    abc.Sequence,
    abc.MutableSequence,
    abc.Collection,
    abc.Iterable,
)
_ABSTRACT_MAPPINGS = (abc.Mapping, abc.MutableMapping)


def read_all(pv_array: Any) -> List[Any]:
    """
    Read every element of an array field

    The store may hand back fewer elements than requested, so reads are
    repeated until the declared length has been collected.
    """
    length = pv_array.get_length()
    data: List[Any] = [None] * length
    total = 0
    chunks = 0
    while total < length:
        chunk = pv_array.get(total, length - total)
        count = len(chunk.data)
        if count == 0:
            raise StoreAccessError(
                f"array read stalled after {total} of {length} elements"
            )
        data[chunk.offset : chunk.offset + count] = chunk.data
        total += count
        chunks += 1
    if chunks > 1:
        logger.debug("read %d elements in %d chunks", length, chunks)
    return data


class ContainerAdapter:
    """Arrays, lists, maps and unions in both directions"""

    def __init__(self, marshaller: "Marshaller"):
        self.marshaller = marshaller
        self.classifier = marshaller.classifier
        self.config = marshaller.config

    def element_of(
        self, annotation: Any, decoding: bool = False
    ) -> Tuple[Any, TypeCategory]:
        """Element annotation and category of a sequence; unknown elements are Any"""
        element = self.classifier.element_type(annotation)
        if element is not None:
            element, _, _ = unwrap(element)
        if decoding and isinstance(element, TypeVar):
            raise UnresolvableElementType(
                f"element type {element} of {annotation} is not bound"
            )
        if element is None or is_dynamic(element):
            element = Any
        return element, self.classifier.classify(element)

    # Serialize: schema

    def sequence_field(self, annotation: Any, value: Any, depth: int = 0) -> Field:
        """
        Field description for a non-null array or list value

        Raises:
            UnsupportedNestedContainer: for an ndarray with more than one
                dimension, or a third level of sequence nesting
        """
        if isinstance(value, np.ndarray):
            if value.ndim != 1:
                raise UnsupportedNestedContainer(
                    f"only one-dimensional arrays are supported, got shape {value.shape}"
                )
            element = self.classifier.element_type(annotation)
            if is_scalar_type(element):
                return ScalarArray(scalar_type_for(element, self.config))
            return ScalarArray(scalar_type_for_dtype(value.dtype))

        element, category = self.element_of(annotation)
        if category is TypeCategory.SCALAR:
            return ScalarArray(scalar_type_for(element, self.config))
        if category is TypeCategory.UNION_VARIANT:
            for index, item in enumerate(value):
                with field_path(str(index)):
                    self.check_union_payload(item)
            return UnionArray(VARIANT_UNION)

        if self._is_nested(element, category, depth):
            structures = [
                Structure(((NESTED_VALUE_FIELD, self.sequence_field(element, item, depth + 1)),))
                for item in value
                if item is not None
            ]
        else:
            schema_builder = self.marshaller.schema_builder
            structures = [
                schema_builder.field_for(element, item) for item in value if item is not None
            ]
        return StructureArray(self._uniform_structure(structures, annotation))

    def _is_nested(self, element: Any, category: TypeCategory, depth: int = 0) -> bool:
        """
        Whether the elements of a sequence are sequences themselves

        Raises:
            UnsupportedNestedContainer: if the elements hold sequences in turn
        """
        if category not in _SEQUENCE_CATEGORIES:
            return False
        inner = self.classifier.element_type(element)
        if depth >= 1 or (
            inner is not None and self.classifier.classify(inner) in _SEQUENCE_CATEGORIES
        ):
            raise UnsupportedNestedContainer(
                f"{element} holds arrays; arrays of arrays-of-arrays are not supported"
            )
        return True

    @staticmethod
    def _uniform_structure(structures: List[Structure], annotation: Any) -> Structure:
        if not structures:
            return Structure()
        first = structures[0]
        for structure in structures[1:]:
            if structure != first:
                raise UnsupportedContainerType(
                    f"elements of {annotation} do not share one structure; "
                    "declare the elements as Any to send them as a union array"
                )
        return first

    def map_structure(self, annotation: Any, value: Any) -> Structure:
        """Structure with one field per entry of a string-keyed map"""
        if not isinstance(value, abc.Mapping):
            raise UnsupportedContainerType(f"{type(value).__name__} is not a mapping")
        value_type = self.classifier.map_value_type(annotation)
        builder = FieldBuilder()
        for key, item in value.items():
            self._check_key(key)
            if item is None:
                continue
            with field_path(key):
                entry_type = type(item) if is_dynamic(value_type) else value_type
                builder.add(key, self.marshaller.schema_builder.field_for(entry_type, item))
        return builder.create_structure()

    def check_union_payload(self, value: Any) -> None:
        """
        Raises:
            UnionOfArrayNotSupported: if ``value`` would be an array alternative
        """
        if value is None:
            return
        if self.classifier.classify_value(value) in _SEQUENCE_CATEGORIES:
            raise UnionOfArrayNotSupported(
                f"a {type(value).__name__} cannot be the value of a union; "
                "only scalars and structures are supported"
            )

    # Serialize: values

    def populate_sequence(self, pv_field: PVField, annotation: Any, value: Any) -> None:
        if isinstance(pv_field, PVScalarArray):
            items = value.tolist() if isinstance(value, np.ndarray) else list(value)
            pv_field.replace(items)
            return

        if isinstance(pv_field, PVUnionArray):
            elements = []
            for index, item in enumerate(value):
                with field_path(str(index)):
                    pv_union = pv_field.create_element()
                    self.set_union(pv_union, item)
                    elements.append(pv_union)
            pv_field.replace(elements)
            return

        if not isinstance(pv_field, PVStructureArray):
            raise StoreAccessError(
                f"cannot write a {type(value).__name__} into a {pv_field.field.type_name} field"
            )

        element, category = self.element_of(annotation)
        nested = self._is_nested(element, category)
        populator = self.marshaller.populator
        elements: List[Optional[PVStructure]] = []
        for index, item in enumerate(value):
            with field_path(str(index)):
                if item is None:
                    elements.append(None)
                    continue
                pv_element = pv_field.create_element()
                if nested:
                    self.populate_sequence(
                        pv_element.get_sub_field(NESTED_VALUE_FIELD), element, item
                    )
                else:
                    populator.write(pv_element, element, item)
                elements.append(pv_element)
        pv_field.replace(elements)

    def populate_map(self, pv_structure: PVStructure, annotation: Any, value: Any) -> None:
        value_type = self.classifier.map_value_type(annotation)
        populator = self.marshaller.populator
        for key, item in value.items():
            self._check_key(key)
            if item is None:
                continue
            with field_path(key):
                entry_type = type(item) if is_dynamic(value_type) else value_type
                populator.write(pv_structure.get_sub_field(key), entry_type, item)

    def set_union(self, pv_union: PVUnion, value: Any) -> None:
        """Make ``value`` the current alternative of a variant union"""
        if not pv_union.is_variant():
            raise RegularUnionNotSupported("regular unions are not supported")
        self.check_union_payload(value)
        if value is None:
            pv_union.set(None)
            return
        runtime_type = type(value)
        payload = create_pv_field(
            self.marshaller.schema_builder.field_for(runtime_type, value)
        )
        self.marshaller.populator.write(payload, runtime_type, value)
        pv_union.set(payload)

    @staticmethod
    def _check_key(key: Any) -> None:
        if not isinstance(key, str):
            raise UnsupportedKeyType(f"map key {key!r} is not a str")

    # Deserialize

    def decode_sequence(self, pv_field: PVField, target: Any) -> Any:
        """Rebuild an array or list from a scalar, structure or union array"""
        element, category = self.element_of(target, decoding=True)

        if isinstance(pv_field, PVScalarArray):
            values = read_all(pv_field)
            if self._wants_ndarray(target):
                dtype = np.dtype(element) if is_scalar_type(element) else pv_field.element_type.dtype
                return np.array(values, dtype=dtype)
            return self._make_sequence(target, [to_native(v, element) for v in values])

        if isinstance(pv_field, PVStructureArray):
            if self._wants_ndarray(target) and not is_dynamic(target):
                raise UnsupportedContainerType("a structure array cannot be decoded into an ndarray")
            nested = self._is_nested(element, category)
            assembler = self.marshaller.assembler
            items = []
            for index, pv_element in enumerate(read_all(pv_field)):
                with field_path(str(index)):
                    if pv_element is None:
                        items.append(None)
                    elif nested:
                        items.append(
                            self.decode_sequence(pv_element.get_sub_field(NESTED_VALUE_FIELD), element)
                        )
                    else:
                        items.append(assembler.assemble(pv_element, element))
            return self._make_sequence(target, items)

        if isinstance(pv_field, PVUnionArray):
            items = []
            for index, pv_union in enumerate(read_all(pv_field)):
                with field_path(str(index)):
                    items.append(None if pv_union is None else self.decode_union(pv_union, element))
            if self._wants_ndarray(target) and not is_dynamic(target):
                dtype = np.dtype(element) if is_scalar_type(element) else None
                return np.array(items, dtype=dtype)
            return self._make_sequence(target, items)

        raise UnsupportedContainerType(
            f"a {pv_field.field.type_name} field cannot be decoded as a sequence"
        )

    def decode_map(self, pv_structure: PVStructure, target: Any) -> Any:
        """Rebuild a string-keyed map from a structure"""
        value_type = self.classifier.map_value_type(target)
        if value_type is not None:
            value_type, _, _ = unwrap(value_type)
        if isinstance(value_type, TypeVar):
            raise UnresolvableElementType(
                f"value type {value_type} of {target} is not bound"
            )
        if value_type is None:
            value_type = Any

        assembler = self.marshaller.assembler
        result = {}
        for name, pv_field in pv_structure.get_pv_fields():
            with field_path(name):
                result[name] = assembler.assemble(pv_field, value_type)
        return self._make_mapping(target, result)

    def decode_union(self, pv_union: PVUnion, target: Any) -> Any:
        """Decode the current alternative of a variant union"""
        if not pv_union.is_variant():
            raise RegularUnionNotSupported("regular unions are not supported")
        payload = pv_union.get()
        if payload is None:
            return None
        if isinstance(payload, (PVScalarArray, PVStructureArray)):
            raise UnionOfArrayNotSupported(
                f"unions holding a {payload.field.type_name} are not supported"
            )
        if isinstance(payload, (PVUnion, PVUnionArray)):
            raise UnsupportedContainerType("unions nested in unions are not supported")
        return self.marshaller.assembler.assemble(payload, target)

    @staticmethod
    def _container_class(target: Any) -> Optional[type]:
        target, _, _ = unwrap(target)
        if is_dynamic(target):
            return None
        cls = get_origin(target) or target
        return cls if isinstance(cls, type) else None

    def _wants_ndarray(self, target: Any) -> bool:
        cls = self._container_class(target)
        return cls is None or issubclass(cls, np.ndarray)

    def _make_sequence(self, target: Any, items: List[Any]) -> Any:
        cls = self._container_class(target)
        if cls is None or cls in _ABSTRACT_SEQUENCES:
            return items
        if issubclass(cls, np.ndarray):
            return np.array(items)
        return cls(items)

    def _make_mapping(self, target: Any, entries: dict) -> Any:
        cls = self._container_class(target)
        if cls is None or cls is dict or cls in _ABSTRACT_MAPPINGS:
            return entries
        return cls(entries)
