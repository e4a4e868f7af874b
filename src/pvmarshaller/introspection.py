"""
Field and accessor discovery for marshalled classes

A class is described by the annotations declared in its body and in the
bodies of its ancestors. Each field is read through a zero-argument method
named ``get<field>`` or ``is<field>`` and written through a one-argument
``set<field>`` method; names are compared case-insensitively with underscores
ignored, so ``get_first_name``, ``getFirstName`` and ``getfirstname`` all
match the field ``first_name``.
"""

import inspect
import typing
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .classifier import TypeCategory, TypeClassifier, is_class_var, unwrap
from .config import MarshallerConfig
from .exceptions import AccessorNotFound, field_path
from .log import get_logger

logger = get_logger("introspection")

GETTER_PREFIXES = ("get", "is")
SETTER_PREFIXES = ("set",)


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    annotation: Any  # Optional/Annotated stripped
    category: TypeCategory
    nullable: bool
    owner: type


def _normalise(name: str) -> str:
    return name.replace("_", "").lower()


def _positional_arity(func: Callable) -> int:
    """Number of required positional parameters, ``self`` excluded"""
    parameters = inspect.signature(func).parameters.values()
    required = [
        p
        for p in parameters
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty
    ]
    return len(required) - 1


def _is_skipped_name(klass: type, name: str) -> bool:
    if name.startswith("__") and name.endswith("__"):
        return True
    return name in getattr(klass, "__transient__", ())


def find_method(
    cls: type, field_name: str, prefixes: Iterable[str], arity: int
) -> Optional[str]:
    """
    Name of the first method along the MRO matching ``<prefix><field_name>``

    Within one class every ``get`` candidate is tried before any ``is``.
    """
    target = _normalise(field_name)
    for klass in cls.__mro__:
        if klass is object:
            break
        members = vars(klass)
        for prefix in prefixes:
            for attr_name, member in members.items():
                if not inspect.isfunction(member):
                    continue
                if _normalise(attr_name) != prefix + target:
                    continue
                if _positional_arity(member) == arity:
                    return attr_name
    return None


def declared_fields(cls: type, classifier: TypeClassifier) -> List[FieldDescriptor]:
    """
    Fields declared by ``cls`` and its ancestors, most-derived class first

    ClassVar and transient annotations are skipped; a name redeclared by a
    subclass is reported once, with the subclass annotation.
    """
    hints = typing.get_type_hints(cls, include_extras=True)
    seen = set()
    fields: List[FieldDescriptor] = []
    for klass in cls.__mro__:
        if klass is object:
            break
        for name in inspect.get_annotations(klass):
            if name in seen:
                continue
            seen.add(name)
            annotation = hints.get(name, Any)
            if is_class_var(annotation) or _is_skipped_name(cls, name):
                continue
            inner, nullable, transient = unwrap(annotation)
            if transient:
                continue
            with field_path(name):
                category = classifier.classify(inner)
            fields.append(FieldDescriptor(name, inner, category, nullable, klass))
    return fields


class ClassDescription:
    """Fields and accessors of one class, the unit cached per type"""

    def __init__(self, cls: type, fields: List[FieldDescriptor], attribute_fallback: bool):
        self.cls = cls
        self.fields: Tuple[FieldDescriptor, ...] = tuple(fields)
        self.attribute_fallback = attribute_fallback
        self._by_name: Dict[str, FieldDescriptor] = {f.name: f for f in self.fields}
        self._getters: Dict[str, Optional[str]] = {}
        self._setters: Dict[str, Optional[str]] = {}

    def field(self, name: str) -> Optional[FieldDescriptor]:
        return self._by_name.get(name)

    def getter(self, name: str) -> Optional[str]:
        if name not in self._getters:
            self._getters[name] = find_method(self.cls, name, GETTER_PREFIXES, 0)
        return self._getters[name]

    def setter(self, name: str) -> Optional[str]:
        if name not in self._setters:
            self._setters[name] = find_method(self.cls, name, SETTER_PREFIXES, 1)
        return self._setters[name]

    def require_getter(self, name: str) -> None:
        """
        Raises:
            AccessorNotFound: if the field cannot be read
        """
        if self.getter(name) is None and not self.attribute_fallback:
            raise AccessorNotFound(
                f"no get/is accessor for '{name}' in {self.cls.__qualname__}"
            )

    def read(self, obj: Any, name: str) -> Any:
        method = self.getter(name)
        if method is not None:
            return getattr(obj, method)()
        if self.attribute_fallback:
            return getattr(obj, name, None)
        raise AccessorNotFound(f"no get/is accessor for '{name}' in {self.cls.__qualname__}")

    def write(self, obj: Any, name: str, value: Any) -> None:
        method = self.setter(name)
        if method is not None:
            getattr(obj, method)(value)
        elif self.attribute_fallback:
            setattr(obj, name, value)
        else:
            raise AccessorNotFound(f"no set mutator for '{name}' in {self.cls.__qualname__}")

    def setter_parameter_type(self, name: str) -> Optional[Any]:
        """Annotation of the mutator's value parameter, if it has one"""
        method = self.setter(name)
        if method is None:
            return None
        func = getattr(self.cls, method)
        hints = typing.get_type_hints(func, include_extras=True)
        hints.pop("return", None)
        parameters = list(inspect.signature(func).parameters)
        if len(parameters) < 2:
            return None
        return hints.get(parameters[1])


class FieldPlanCache:
    """Per-class ClassDescription cache with hit/miss statistics"""

    def __init__(self, config: MarshallerConfig, classifier: TypeClassifier):
        self.config = config
        self.classifier = classifier
        self._cache: Dict[type, ClassDescription] = {}
        self._cache_hits = 0
        self._cache_misses = 0

    def describe(self, cls: type) -> ClassDescription:
        description = self._cache.get(cls)
        if description is not None:
            self._cache_hits += 1
            return description

        self._cache_misses += 1
        description = ClassDescription(
            cls,
            declared_fields(cls, self.classifier),
            self.config.attribute_fallback,
        )
        if self.config.cache_type_plans and len(self._cache) < self.config.type_plan_cache_size:
            self._cache[cls] = description
        logger.debug(
            "described %s: %s", cls.__qualname__, [f.name for f in description.fields]
        )
        return description

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache performance statistics"""
        total_requests = self._cache_hits + self._cache_misses
        hit_rate = (
            (self._cache_hits / total_requests * 100) if total_requests > 0 else 0
        )

        return {
            "cache_size": len(self._cache),
            "cache_hits": self._cache_hits,
            "cache_misses": self._cache_misses,
            "hit_rate_percent": round(hit_rate, 2),
            "total_requests": total_requests,
        }

    def clear(self) -> None:
        """Clear the cache"""
        self._cache.clear()
        self._cache_hits = 0
        self._cache_misses = 0
