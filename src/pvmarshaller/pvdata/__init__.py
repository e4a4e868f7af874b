"""
In-memory structured value store

Implements the pvData field/value model the marshaller reads and writes:
scalars, scalar arrays, structures, structure arrays, unions and union arrays.
"""

from .builder import FieldBuilder
from .types import (
    VARIANT_UNION,
    Field,
    Scalar,
    ScalarArray,
    ScalarType,
    Structure,
    StructureArray,
    Union,
    UnionArray,
)
from .values import (
    ArrayData,
    PVField,
    PVScalar,
    PVScalarArray,
    PVStructure,
    PVStructureArray,
    PVUnion,
    PVUnionArray,
    create_pv_field,
    create_pv_structure,
)

__all__ = [
    # Introspection
    "Field",
    "Scalar",
    "ScalarArray",
    "ScalarType",
    "Structure",
    "StructureArray",
    "Union",
    "UnionArray",
    "VARIANT_UNION",
    "FieldBuilder",
    # Values
    "ArrayData",
    "PVField",
    "PVScalar",
    "PVScalarArray",
    "PVStructure",
    "PVStructureArray",
    "PVUnion",
    "PVUnionArray",
    "create_pv_field",
    "create_pv_structure",
]
