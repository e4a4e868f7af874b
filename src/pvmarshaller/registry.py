"""
Registry of custom serializers and type-ids

Lookups walk the class hierarchy of the value being marshalled. At each class
an exact registration wins; otherwise registrations for interfaces the class
declares directly in its bases are considered, and two or more of them is an
ambiguity rather than an arbitrary pick. The walk then continues with the next
concrete ancestor until ``object`` is reached.
"""

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

from .exceptions import AmbiguousOverride, RegistryFrozenError
from .log import get_logger

logger = get_logger("registry")

T = TypeVar("T")


class PVStructureSerializer(ABC):
    """Base class for hand-written serializers of a type or interface"""

    @abstractmethod
    def build_structure(self, marshaller: Any, obj: Any) -> Any:
        """Return the Structure describing ``obj``"""

    @abstractmethod
    def populate_pv_structure(self, marshaller: Any, obj: Any, pv_structure: Any) -> None:
        """Copy the values of ``obj`` into ``pv_structure``"""

    def create_object(self, marshaller: Any, pv_structure: Any, cls: type) -> Any:
        """Rebuild an instance of ``cls``; the default rebuilds reflectively"""
        return NotImplemented


@dataclass(frozen=True)
class CustomSerializer:
    build: Callable[[Any, Any], Any]
    populate: Callable[[Any, Any, Any], None]
    assemble: Optional[Callable[[Any, Any, type], Any]] = None


class LookupStatus(Enum):
    FOUND = "found"
    AMBIGUOUS = "ambiguous"
    MISSING = "missing"


@dataclass(frozen=True)
class LookupResult(Generic[T]):
    status: LookupStatus
    value: Optional[T] = None
    matched: Tuple[type, ...] = ()
    checked: Optional[type] = None

    @property
    def is_missing(self) -> bool:
        return self.status is LookupStatus.MISSING

    @property
    def is_ambiguous(self) -> bool:
        return self.status is LookupStatus.AMBIGUOUS


_MISSING: LookupResult = LookupResult(LookupStatus.MISSING)


def is_interface(cls: type) -> bool:
    """
    Protocols and classes with abstract methods

    A class that merely derives from ABC but implements everything is
    concrete and takes part in the ancestor walk.
    """
    if cls is object or not isinstance(cls, type):
        return False
    return bool(getattr(cls, "_is_protocol", False)) or inspect.isabstract(cls)


_ROOT_CLASSES = (object, ABC, Generic)


def ancestor_chain(cls: type) -> List[type]:
    """Concrete classes of the MRO, most-derived first, ``object`` excluded"""
    chain = [
        klass
        for klass in cls.__mro__
        if klass not in _ROOT_CLASSES and not is_interface(klass)
    ]
    return chain or [cls]


def _exact_rule(mapping: Dict[type, T], klass: type) -> LookupResult:
    if klass in mapping:
        return LookupResult(LookupStatus.FOUND, mapping[klass], (klass,), klass)
    return _MISSING


def _interface_rule(mapping: Dict[type, T], klass: type) -> LookupResult:
    matched = tuple(
        base for base in klass.__bases__ if base in mapping and is_interface(base)
    )
    if not matched:
        return _MISSING
    if len(matched) > 1:
        return LookupResult(LookupStatus.AMBIGUOUS, None, matched, klass)
    return LookupResult(LookupStatus.FOUND, mapping[matched[0]], matched, klass)


# Evaluated in order at each class of the ancestor chain
_LOOKUP_RULES: Tuple[Callable[[Dict[type, Any], type], LookupResult], ...] = (
    _exact_rule,
    _interface_rule,
)


def lookup(mapping: Dict[type, T], cls: type) -> LookupResult:
    """Find the registration that applies to ``cls``"""
    if not mapping:
        return _MISSING
    for klass in ancestor_chain(cls):
        for rule in _LOOKUP_RULES:
            result = rule(mapping, klass)
            if not result.is_missing:
                return result
    return _MISSING


class OverrideRegistry:
    """Custom serializers and type-ids keyed by class or interface"""

    def __init__(self) -> None:
        self._serializers: Dict[type, CustomSerializer] = {}
        self._type_ids: Dict[type, str] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Disallow further registrations"""
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError("override registry is frozen")

    def register_serializer(
        self,
        type_class: type,
        build: Any,
        populate: Optional[Callable[[Any, Any, Any], None]] = None,
        assemble: Optional[Callable[[Any, Any, type], Any]] = None,
    ) -> None:
        """
        Register a custom serializer for a class or interface

        Args:
            type_class: The class or interface to register
            build: ``build(marshaller, obj) -> Structure``, or a PVStructureSerializer
            populate: ``populate(marshaller, obj, pv_structure)``
            assemble: optional ``assemble(marshaller, pv_structure, cls) -> obj``
        """
        self._check_mutable()
        if isinstance(build, PVStructureSerializer):
            serializer = CustomSerializer(
                build=build.build_structure,
                populate=build.populate_pv_structure,
                assemble=build.create_object,
            )
        else:
            if populate is None:
                raise TypeError("populate is required when build is a callable")
            serializer = CustomSerializer(build=build, populate=populate, assemble=assemble)
        self._serializers[type_class] = serializer
        logger.debug("registered custom serializer for %s", type_class.__qualname__)

    def register_type_id(self, type_class: type, type_id: str) -> None:
        """Register the type-id attached to structures built for a class or interface"""
        self._check_mutable()
        self._type_ids[type_class] = type_id
        logger.debug("registered type-id %r for %s", type_id, type_class.__qualname__)

    def lookup_serializer(self, cls: type) -> LookupResult:
        return lookup(self._serializers, cls)

    def lookup_type_id(self, cls: type) -> LookupResult:
        return lookup(self._type_ids, cls)

    def serializer_for(self, cls: type) -> Optional[CustomSerializer]:
        """
        Custom serializer applying to ``cls``

        Raises:
            AmbiguousOverride: if two interface registrations match at one level
        """
        return self._resolve(self.lookup_serializer(cls), cls, "custom serializer")

    def type_id_for(self, cls: type) -> Optional[str]:
        """
        Type-id applying to ``cls``

        Raises:
            AmbiguousOverride: if two interface registrations match at one level
        """
        return self._resolve(self.lookup_type_id(cls), cls, "type-id")

    def class_for_type_id(self, type_id: Optional[str]) -> Optional[type]:
        """First concrete class registered with ``type_id``"""
        if type_id is None:
            return None
        for type_class, registered_id in self._type_ids.items():
            if registered_id == type_id and not is_interface(type_class):
                return type_class
        return None

    @staticmethod
    def _resolve(result: LookupResult, cls: type, kind: str) -> Any:
        if result.is_ambiguous:
            names = ", ".join(interface.__qualname__ for interface in result.matched)
            raise AmbiguousOverride(
                f"{result.checked.__qualname__} implements more than one interface "
                f"with a registered {kind}: {names}"
            )
        if not result.is_missing:
            logger.debug(
                "%s for %s resolved via %s",
                kind,
                cls.__qualname__,
                result.matched[0].__qualname__,
            )
        return result.value
