"""
Public marshalling entry points
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .assembler import ObjectAssembler
from .classifier import TypeCategory, TypeClassifier
from .config import MarshallerConfig, get_default_config
from .containers import ContainerAdapter
from .exceptions import MarshallingError, UnsupportedContainerType
from .introspection import FieldPlanCache
from .log import configure_logging, get_logger
from .populator import ValuePopulator
from .pvdata import PVField, PVStructure, Structure, create_pv_structure
from .registry import OverrideRegistry
from .schema import SchemaBuilder

logger = get_logger("marshaller")


@dataclass
class MarshallerContext:
    """Everything a marshalling call reads: configuration and overrides"""

    config: MarshallerConfig
    registry: OverrideRegistry = field(default_factory=OverrideRegistry)


class Marshaller:
    """
    Converts Python object graphs to and from pvData structures

    Register custom serializers and type-ids before the first marshalling
    call; the registry is not meant to change while calls are in flight.
    """

    def __init__(
        self,
        config: Optional[MarshallerConfig] = None,
        registry: Optional[OverrideRegistry] = None,
    ):
        self.context = MarshallerContext(
            config=config or get_default_config(),
            registry=registry if registry is not None else OverrideRegistry(),
        )
        configure_logging(self.config)

        self.classifier = TypeClassifier(self.registry)
        self.plans = FieldPlanCache(self.config, self.classifier)
        self.containers = ContainerAdapter(self)
        self.schema_builder = SchemaBuilder(self)
        self.populator = ValuePopulator(self)
        self.assembler = ObjectAssembler(self)

    @property
    def config(self) -> MarshallerConfig:
        return self.context.config

    @property
    def registry(self) -> OverrideRegistry:
        return self.context.registry

    # Configuration

    def register_serializer(
        self,
        type_class: type,
        build: Any,
        populate: Optional[Callable[[Any, Any, Any], None]] = None,
        assemble: Optional[Callable[[Any, Any, type], Any]] = None,
    ) -> None:
        """Register a custom serializer for a class or interface"""
        self.registry.register_serializer(type_class, build, populate, assemble)
        self.plans.clear()

    def register_type_id(self, type_class: type, type_id: str) -> None:
        """Register the type-id attached to structures built for a class or interface"""
        self.registry.register_type_id(type_class, type_id)

    # Serialize

    def build_structure(self, obj: Any) -> Structure:
        """Structure describing ``obj``; also usable from custom serializers"""
        if obj is None:
            raise MarshallingError("cannot build a structure for None")
        category = self.classifier.classify_value(obj)
        if category is TypeCategory.MAP:
            return self.containers.map_structure(type(obj), obj)
        if category is not TypeCategory.COMPOSITE:
            raise UnsupportedContainerType(
                f"a top-level {type(obj).__name__} has no structure; "
                "serialize an object or a string-keyed map"
            )
        return self.schema_builder.build(type(obj), obj)

    def serialize(self, obj: Any) -> PVStructure:
        """Build the structure for ``obj``, create a value from it and populate it"""
        structure = self.build_structure(obj)
        pv_structure = create_pv_structure(structure)
        self.populate(obj, pv_structure)
        logger.debug(
            "serialized %s into %d fields", type(obj).__qualname__, len(structure)
        )
        return pv_structure

    def populate(self, obj: Any, pv_structure: PVStructure) -> None:
        """
        Copy the values of ``obj`` into a compatible existing structure

        On failure ``pv_structure`` may be partially written and should be
        discarded.
        """
        self.populator.populate(obj, pv_structure)

    # Deserialize

    def deserialize(self, pv_field: PVField, target: Any = None) -> Any:
        """Decode ``pv_field`` into a value of the ``target`` class or annotation"""
        return self.assembler.assemble(pv_field, target)

    def deserialize_into(self, target: Any, field_name: str, pv_field: PVField) -> None:
        """Decode ``pv_field`` and pass it to the mutator of ``field_name`` on ``target``"""
        self.assembler.assemble_into(target, field_name, pv_field)

    def get_cache_stats(self) -> dict:
        return self.plans.get_cache_stats()


_default_marshaller: Optional[Marshaller] = None


def get_default_marshaller() -> Marshaller:
    """Get the shared marshaller used by the module-level functions"""
    global _default_marshaller
    if _default_marshaller is None:
        _default_marshaller = Marshaller()
    return _default_marshaller


def set_default_marshaller(marshaller: Optional[Marshaller]) -> None:
    """Replace the shared marshaller; None resets it"""
    global _default_marshaller
    _default_marshaller = marshaller


def serialize(obj: Any) -> PVStructure:
    """Serialize ``obj`` with the shared marshaller"""
    return get_default_marshaller().serialize(obj)


def populate(obj: Any, pv_structure: PVStructure) -> None:
    get_default_marshaller().populate(obj, pv_structure)


def deserialize(pv_field: PVField, target: Any = None) -> Any:
    """Deserialize ``pv_field`` with the shared marshaller"""
    return get_default_marshaller().deserialize(pv_field, target)


def deserialize_into(target: Any, field_name: str, pv_field: PVField) -> None:
    get_default_marshaller().deserialize_into(target, field_name, pv_field)


def register_serializer(
    type_class: type,
    build: Any,
    populate: Optional[Callable[[Any, Any, Any], None]] = None,
    assemble: Optional[Callable[[Any, Any, type], Any]] = None,
) -> None:
    """Register a custom serializer on the shared marshaller"""
    get_default_marshaller().register_serializer(type_class, build, populate, assemble)


def register_type_id(type_class: type, type_id: str) -> None:
    """Register a type-id on the shared marshaller"""
    get_default_marshaller().register_type_id(type_class, type_id)
