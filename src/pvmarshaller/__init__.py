"""
pvmarshaller

Bidirectional marshalling between Python object graphs and pvData structures:
structures are synthesized from the runtime types of objects, populated from
their accessors, and decoded back into objects of a target class.
"""

__version__ = "0.1.0"

from .classifier import Transient, TypeCategory, TypeClassifier
from .config import MarshallerConfig, get_default_config, set_default_config
from .exceptions import (
    AccessorNotFound,
    AmbiguousOverride,
    MarshallingError,
    ObjectInstantiationError,
    RegistryFrozenError,
    RegularUnionNotSupported,
    StoreAccessError,
    UnionOfArrayNotSupported,
    UnresolvableElementType,
    UnsupportedContainerType,
    UnsupportedKeyType,
    UnsupportedNestedContainer,
)
from .introspection import FieldDescriptor, FieldPlanCache
from .log import configure_logging, get_logger
from .marshaller import (
    Marshaller,
    MarshallerContext,
    deserialize,
    deserialize_into,
    get_default_marshaller,
    populate,
    register_serializer,
    register_type_id,
    serialize,
    set_default_marshaller,
)
from .registry import (
    CustomSerializer,
    LookupResult,
    LookupStatus,
    OverrideRegistry,
    PVStructureSerializer,
)

__all__ = [
    # Marshalling
    "Marshaller",
    "MarshallerContext",
    "serialize",
    "populate",
    "deserialize",
    "deserialize_into",
    "register_serializer",
    "register_type_id",
    "get_default_marshaller",
    "set_default_marshaller",
    # Configuration
    "MarshallerConfig",
    "get_default_config",
    "set_default_config",
    "configure_logging",
    "get_logger",
    # Types and overrides
    "Transient",
    "TypeCategory",
    "TypeClassifier",
    "FieldDescriptor",
    "FieldPlanCache",
    "OverrideRegistry",
    "PVStructureSerializer",
    "CustomSerializer",
    "LookupResult",
    "LookupStatus",
    # Errors
    "MarshallingError",
    "AccessorNotFound",
    "AmbiguousOverride",
    "ObjectInstantiationError",
    "RegistryFrozenError",
    "RegularUnionNotSupported",
    "StoreAccessError",
    "UnionOfArrayNotSupported",
    "UnresolvableElementType",
    "UnsupportedContainerType",
    "UnsupportedKeyType",
    "UnsupportedNestedContainer",
]
