"""
Classification of Python types and annotations into marshalling categories
"""

import collections.abc as abc
import types
from enum import Enum
from typing import Annotated, Any, ClassVar, Optional, Tuple, TypeVar, Union, get_args, get_origin

import numpy as np

from .exceptions import RegularUnionNotSupported, UnsupportedContainerType, UnsupportedKeyType
from .scalars import is_scalar_type


class TypeCategory(Enum):
    SCALAR = "scalar"
    ARRAY = "array"
    LIST_LIKE = "list_like"
    MAP = "map"
    UNION_VARIANT = "union_variant"
    COMPOSITE = "composite"


class Transient:
    """Marker excluding a field: ``name: Annotated[int, Transient]``"""


_NONE_TYPE = type(None)
_ABSTRACT_COLLECTIONS = (abc.Collection, abc.Iterable)
_UNSUPPORTED_CONTAINERS = (abc.Set, bytes, bytearray, memoryview)


def unwrap(annotation: Any) -> Tuple[Any, bool, bool]:
    """
    Strip ``Annotated`` and ``Optional`` from an annotation

    Returns:
        (inner annotation, nullable, transient)
    """
    nullable = False
    transient = False
    while True:
        origin = get_origin(annotation)
        if origin is Annotated:
            args = get_args(annotation)
            transient = transient or any(
                meta is Transient or isinstance(meta, Transient) for meta in args[1:]
            )
            annotation = args[0]
        elif origin in (Union, types.UnionType):
            members = [arg for arg in get_args(annotation) if arg is not _NONE_TYPE]
            if len(members) != 1:
                # A fixed-member union; classify() rejects it
                return annotation, nullable, transient
            nullable = True
            annotation = members[0]
        else:
            return annotation, nullable, transient


def is_class_var(annotation: Any) -> bool:
    return annotation is ClassVar or get_origin(annotation) is ClassVar


def is_dynamic(annotation: Any) -> bool:
    """Annotations that say nothing about the runtime type of a value"""
    return (
        annotation is None
        or annotation is Any
        or annotation is object
        or isinstance(annotation, TypeVar)
    )


class TypeClassifier:
    """Sorts annotations into scalar, container, union and composite categories"""

    def __init__(self, registry: Optional[Any] = None):
        self.registry = registry

    def classify(self, annotation: Any) -> TypeCategory:
        """
        Classify an annotation or class

        Raises:
            RegularUnionNotSupported: for a fixed-member union
            UnsupportedContainerType: for containers other than list/map/array
        """
        annotation, _, _ = unwrap(annotation)
        if annotation is Any:
            return TypeCategory.UNION_VARIANT

        origin = get_origin(annotation)
        if origin in (Union, types.UnionType):
            raise RegularUnionNotSupported(
                f"fixed-member union {annotation} is not supported; use Any for a variant union"
            )

        if isinstance(annotation, TypeVar) or annotation is object:
            return TypeCategory.COMPOSITE

        cls = origin if origin is not None else annotation
        if not isinstance(cls, type):
            raise UnsupportedContainerType(f"cannot marshal values annotated {annotation!r}")

        if is_scalar_type(cls):
            return TypeCategory.SCALAR
        if self.has_override(cls):
            return TypeCategory.COMPOSITE
        if issubclass(cls, np.ndarray):
            return TypeCategory.ARRAY
        if issubclass(cls, tuple):
            args = get_args(annotation)
            if args and not (len(args) == 2 and args[1] is Ellipsis):
                raise UnsupportedContainerType(
                    f"fixed-length tuple {annotation} is not supported; use Tuple[T, ...]"
                )
            return TypeCategory.ARRAY
        if issubclass(cls, _UNSUPPORTED_CONTAINERS):
            raise UnsupportedContainerType(
                f"{cls.__name__} cannot be mapped to a list, map or array"
            )
        if issubclass(cls, abc.Mapping):
            return TypeCategory.MAP
        if issubclass(cls, abc.Sequence) or cls in _ABSTRACT_COLLECTIONS:
            return TypeCategory.LIST_LIKE
        return TypeCategory.COMPOSITE

    def runtime_annotation(self, annotation: Any, value: Any) -> Any:
        """
        Annotation a live value is marshalled with

        The runtime class replaces object, type variables and composite
        declarations, so subclasses and generic payloads keep their own shape.
        A value whose class has a custom serializer always uses its class.
        """
        annotation, _, _ = unwrap(annotation)
        if annotation is Any:
            return annotation
        if value is not None and self.has_override(type(value)):
            return type(value)
        if is_dynamic(annotation) or self.classify(annotation) is TypeCategory.COMPOSITE:
            return type(value)
        return annotation

    def classify_value(self, value: Any) -> TypeCategory:
        """Classify a live value by its runtime class"""
        return self.classify(type(value))

    def has_override(self, cls: type) -> bool:
        if self.registry is None:
            return False
        return not self.registry.lookup_serializer(cls).is_missing

    @staticmethod
    def element_type(annotation: Any) -> Optional[Any]:
        """Declared element type of an array or list annotation, if any"""
        annotation, _, _ = unwrap(annotation)
        origin = get_origin(annotation)
        args = get_args(annotation)
        if not args:
            return None
        if origin is not None and isinstance(origin, type) and issubclass(origin, np.ndarray):
            # NDArray[np.float64] is ndarray[Any, dtype[np.float64]]
            dtype_args = get_args(args[-1])
            if dtype_args and isinstance(dtype_args[0], type):
                return dtype_args[0]
            return None
        if origin is tuple:
            return args[0] if len(args) == 2 and args[1] is Ellipsis else None
        return args[0]

    @staticmethod
    def map_value_type(annotation: Any) -> Optional[Any]:
        """
        Declared value type of a map annotation, if any

        Raises:
            UnsupportedKeyType: if the declared key type is not ``str``
        """
        annotation, _, _ = unwrap(annotation)
        args = get_args(annotation)
        if len(args) != 2:
            return None
        key_type, value_type = args
        key_type, _, _ = unwrap(key_type)
        if key_type is not str and key_type is not Any:
            raise UnsupportedKeyType(f"map keys must be str, not {key_type!r}")
        return value_type
