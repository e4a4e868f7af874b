"""
Introspection interface of the structured value model

These immutable descriptions play the role of a schema: a ``Structure`` is an
ordered set of named fields from which value instances are created.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np

from ..exceptions import StoreAccessError


class ScalarType(Enum):
    """Scalar kinds supported by the value model"""

    BOOLEAN = "boolean"
    BYTE = "byte"
    SHORT = "short"
    INT = "int"
    LONG = "long"
    UBYTE = "ubyte"
    USHORT = "ushort"
    UINT = "uint"
    ULONG = "ulong"
    FLOAT = "float"
    DOUBLE = "double"
    STRING = "string"

    @property
    def dtype(self) -> np.dtype:
        """NumPy dtype with the same width and signedness"""
        return _DTYPES[self]

    @property
    def is_integer(self) -> bool:
        return self in _INTEGER_BOUNDS

    @property
    def is_floating(self) -> bool:
        return self in (ScalarType.FLOAT, ScalarType.DOUBLE)

    def coerce(self, value: Any) -> Any:
        """
        Convert ``value`` to the Python representation stored for this kind

        Raises:
            StoreAccessError: if the value cannot be represented
        """
        if isinstance(value, np.generic):
            value = value.item()

        if self is ScalarType.BOOLEAN:
            if isinstance(value, bool):
                return value
        elif self is ScalarType.STRING:
            if isinstance(value, str):
                return str(value)
        elif self.is_integer:
            if isinstance(value, int):
                low, high = _INTEGER_BOUNDS[self]
                if not low <= value <= high:
                    raise StoreAccessError(
                        f"value {value} out of range for {self.value}"
                    )
                return int(value)
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            if self is ScalarType.FLOAT:
                return float(np.float32(value))
            return float(value)

        raise StoreAccessError(
            f"cannot store {type(value).__name__} value {value!r} as {self.value}"
        )


_DTYPES: Dict[ScalarType, np.dtype] = {
    ScalarType.BOOLEAN: np.dtype(np.bool_),
    ScalarType.BYTE: np.dtype(np.int8),
    ScalarType.SHORT: np.dtype(np.int16),
    ScalarType.INT: np.dtype(np.int32),
    ScalarType.LONG: np.dtype(np.int64),
    ScalarType.UBYTE: np.dtype(np.uint8),
    ScalarType.USHORT: np.dtype(np.uint16),
    ScalarType.UINT: np.dtype(np.uint32),
    ScalarType.ULONG: np.dtype(np.uint64),
    ScalarType.FLOAT: np.dtype(np.float32),
    ScalarType.DOUBLE: np.dtype(np.float64),
    ScalarType.STRING: np.dtype(np.str_),
}

_INTEGER_BOUNDS: Dict[ScalarType, Tuple[int, int]] = {
    scalar_type: (int(np.iinfo(_DTYPES[scalar_type]).min), int(np.iinfo(_DTYPES[scalar_type]).max))
    for scalar_type in (
        ScalarType.BYTE,
        ScalarType.SHORT,
        ScalarType.INT,
        ScalarType.LONG,
        ScalarType.UBYTE,
        ScalarType.USHORT,
        ScalarType.UINT,
        ScalarType.ULONG,
    )
}


class Field:
    """Base class of all field descriptions"""

    type_name = "field"


@dataclass(frozen=True)
class Scalar(Field):
    scalar_type: ScalarType

    @property
    def type_name(self) -> str:
        return self.scalar_type.value


@dataclass(frozen=True)
class ScalarArray(Field):
    element_type: ScalarType

    @property
    def type_name(self) -> str:
        return f"{self.element_type.value}[]"


@dataclass(frozen=True)
class Structure(Field):
    """Ordered, named fields with an optional type-id"""

    fields: Tuple[Tuple[str, Field], ...] = ()
    id: Optional[str] = None

    @property
    def type_name(self) -> str:
        return self.id or "structure"

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.fields)

    def get_field(self, name: str) -> Field:
        for field_name, field in self.fields:
            if field_name == name:
                return field
        raise StoreAccessError(f"structure has no field '{name}'")

    def __len__(self) -> int:
        return len(self.fields)


@dataclass(frozen=True)
class StructureArray(Field):
    structure: Structure

    @property
    def type_name(self) -> str:
        return f"{self.structure.type_name}[]"


@dataclass(frozen=True)
class Union(Field):
    """A union; with no member fields it is a variant union (``any``)"""

    fields: Tuple[Tuple[str, Field], ...] = ()
    id: Optional[str] = None

    @property
    def type_name(self) -> str:
        if self.id:
            return self.id
        return "any" if self.is_variant() else "union"

    def is_variant(self) -> bool:
        return not self.fields


@dataclass(frozen=True)
class UnionArray(Field):
    union: Union

    @property
    def type_name(self) -> str:
        return f"{self.union.type_name}[]"


VARIANT_UNION = Union()
