"""
Incremental construction of structure descriptions
"""

from typing import List, Optional, Tuple, Union as TypingUnion

from ..exceptions import StoreAccessError
from .types import Field, Scalar, ScalarType, Structure


class FieldBuilder:
    """Collects named fields and finalizes them into an immutable Structure"""

    def __init__(self) -> None:
        self._fields: List[Tuple[str, Field]] = []
        self._id: Optional[str] = None

    def set_id(self, type_id: str) -> "FieldBuilder":
        self._id = type_id
        return self

    def add(self, name: str, field: TypingUnion[Field, ScalarType]) -> "FieldBuilder":
        """Add a field; a bare ScalarType adds a scalar field"""
        if isinstance(field, ScalarType):
            field = Scalar(field)
        if not isinstance(field, Field):
            raise StoreAccessError(f"'{name}' is not a field description: {field!r}")
        self._check_name(name)
        self._fields.append((name, field))
        return self

    def create_structure(self) -> Structure:
        return Structure(fields=tuple(self._fields), id=self._id)

    def _check_name(self, name: str) -> None:
        if not isinstance(name, str) or not name or "." in name:
            raise StoreAccessError(f"invalid field name {name!r}")
        if any(existing == name for existing, _ in self._fields):
            raise StoreAccessError(f"duplicate field name '{name}'")
