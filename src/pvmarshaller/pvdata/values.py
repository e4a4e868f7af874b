"""
Value instances created from structure descriptions

Array fields hand out their contents in chunks: ``get`` may return fewer
elements than requested, so readers must loop until they have collected
``get_length()`` elements.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

from ..exceptions import StoreAccessError
from .types import (
    Field,
    Scalar,
    ScalarArray,
    ScalarType,
    Structure,
    StructureArray,
    Union,
    UnionArray,
)

PVFieldT = TypeVar("PVFieldT", bound="PVField")


@dataclass
class ArrayData:
    """One chunk returned by an array read"""

    offset: int
    data: List[Any] = field(default_factory=list)


class PVField:
    """Base class of all value instances"""

    def __init__(self, field: Field):
        self.field = field

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.field.type_name}>"


class PVScalar(PVField):
    def __init__(self, field: Scalar):
        super().__init__(field)
        self.scalar_type: ScalarType = field.scalar_type
        self._value: Any = _scalar_default(field.scalar_type)

    def get(self) -> Any:
        return self._value

    def put(self, value: Any) -> None:
        self._value = self.scalar_type.coerce(value)


class _PVArray(PVField):
    """Chunked storage shared by all array kinds"""

    def __init__(self, field: Field):
        super().__init__(field)
        self._data: List[Any] = []

    def get_length(self) -> int:
        return len(self._data)

    def get(self, offset: int, count: int) -> ArrayData:
        """Return up to ``count`` elements starting at ``offset``"""
        if offset < 0 or count < 0 or offset > len(self._data):
            raise StoreAccessError(
                f"invalid array read offset={offset} count={count} length={len(self._data)}"
            )
        return ArrayData(offset=offset, data=self._data[offset : offset + count])

    def replace(self, values: Iterable[Any]) -> None:
        """Replace the whole contents of the array"""
        self._data = [self._convert(value) for value in values]

    def _convert(self, value: Any) -> Any:
        return value


class PVScalarArray(_PVArray):
    def __init__(self, field: ScalarArray):
        super().__init__(field)
        self.element_type: ScalarType = field.element_type

    def _convert(self, value: Any) -> Any:
        return self.element_type.coerce(value)


class PVStructure(PVField):
    def __init__(self, structure: Structure):
        super().__init__(structure)
        self.structure = structure
        self._fields: Dict[str, PVField] = {
            name: create_pv_field(sub_field) for name, sub_field in structure.fields
        }

    @property
    def id(self) -> Optional[str]:
        return self.structure.id

    def get_pv_fields(self) -> List[Tuple[str, PVField]]:
        return list(self._fields.items())

    def get_sub_field(self, name: str) -> PVField:
        """Return a sub-field; dotted names address nested structures"""
        head, _, rest = name.partition(".")
        try:
            sub_field = self._fields[head]
        except KeyError:
            raise StoreAccessError(f"no field named '{head}'") from None
        if not rest:
            return sub_field
        if not isinstance(sub_field, PVStructure):
            raise StoreAccessError(f"field '{head}' is not a structure")
        return sub_field.get_sub_field(rest)

    def get_typed_field(self, name: str, kind: Type[PVFieldT]) -> PVFieldT:
        sub_field = self.get_sub_field(name)
        if not isinstance(sub_field, kind):
            raise StoreAccessError(
                f"field '{name}' is a {type(sub_field).__name__}, not a {kind.__name__}"
            )
        return sub_field

    def get_scalar(self, name: str) -> PVScalar:
        return self.get_typed_field(name, PVScalar)

    def get_scalar_array(self, name: str) -> PVScalarArray:
        return self.get_typed_field(name, PVScalarArray)

    def get_structure_field(self, name: str) -> "PVStructure":
        return self.get_typed_field(name, PVStructure)

    def get_structure_array(self, name: str) -> "PVStructureArray":
        return self.get_typed_field(name, PVStructureArray)

    def get_union_field(self, name: str) -> "PVUnion":
        return self.get_typed_field(name, PVUnion)

    def get_union_array(self, name: str) -> "PVUnionArray":
        return self.get_typed_field(name, PVUnionArray)


class PVStructureArray(_PVArray):
    def __init__(self, field: StructureArray):
        super().__init__(field)
        self.structure: Structure = field.structure

    def create_element(self) -> PVStructure:
        return PVStructure(self.structure)

    def _convert(self, value: Any) -> Any:
        if value is not None and not (
            isinstance(value, PVStructure) and value.structure == self.structure
        ):
            raise StoreAccessError("structure array element does not match its element type")
        return value


class PVUnion(PVField):
    def __init__(self, union: Union):
        super().__init__(union)
        self.union = union
        self._value: Optional[PVField] = None

    def is_variant(self) -> bool:
        return self.union.is_variant()

    def get(self) -> Optional[PVField]:
        return self._value

    def set(self, value: Optional[PVField]) -> None:
        """Set the current alternative of a variant union"""
        if not self.is_variant():
            raise StoreAccessError("only variant unions can be set")
        if value is not None and not isinstance(value, PVField):
            raise StoreAccessError(f"union value must be a PVField, got {value!r}")
        self._value = value


class PVUnionArray(_PVArray):
    def __init__(self, field: UnionArray):
        super().__init__(field)
        self.union: Union = field.union

    def create_element(self) -> PVUnion:
        return PVUnion(self.union)

    def _convert(self, value: Any) -> Any:
        if value is not None and not isinstance(value, PVUnion):
            raise StoreAccessError("union array element must be a PVUnion")
        return value


def _scalar_default(scalar_type: ScalarType) -> Any:
    if scalar_type is ScalarType.BOOLEAN:
        return False
    if scalar_type is ScalarType.STRING:
        return ""
    if scalar_type.is_floating:
        return 0.0
    return 0


def create_pv_field(field: Field) -> PVField:
    """Create an empty value instance for any field description"""
    if isinstance(field, Scalar):
        return PVScalar(field)
    if isinstance(field, ScalarArray):
        return PVScalarArray(field)
    if isinstance(field, Structure):
        return PVStructure(field)
    if isinstance(field, StructureArray):
        return PVStructureArray(field)
    if isinstance(field, Union):
        return PVUnion(field)
    if isinstance(field, UnionArray):
        return PVUnionArray(field)
    raise StoreAccessError(f"unknown field description {field!r}")


def create_pv_structure(structure: Structure) -> PVStructure:
    if not isinstance(structure, Structure):
        raise StoreAccessError(f"expected a Structure, got {structure!r}")
    return PVStructure(structure)
