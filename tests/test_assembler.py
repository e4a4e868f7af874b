"""
Tests for rebuilding objects from structures
"""

from typing import Any, Dict, Generic, List, Optional, TypeVar

import pytest

from pvmarshaller.exceptions import (
    AccessorNotFound,
    ObjectInstantiationError,
    UnresolvableElementType,
)
from pvmarshaller.pvdata import FieldBuilder, ScalarType, create_pv_structure

T = TypeVar("T")


class Point:
    x: float
    y: float

    def __init__(self, x=0.0, y=0.0):
        self.x = x
        self.y = y

    def get_x(self):
        return self.x

    def set_x(self, x):
        self.x = x

    def get_y(self):
        return self.y

    def set_y(self, y):
        self.y = y

    def __eq__(self, other):
        return type(self) is type(other) and vars(self) == vars(other)


class Point3D(Point):
    z: float

    def __init__(self, x=0.0, y=0.0, z=0.0):
        super().__init__(x, y)
        self.z = z

    def get_z(self):
        return self.z

    def set_z(self, z):
        self.z = z


class Path:
    name: str
    points: List[Point]
    origin: Optional[Point]

    def __init__(self):
        self.name = ""
        self.points = []
        self.origin = None

    def get_name(self):
        return self.name

    def set_name(self, name):
        self.name = name

    def get_points(self):
        return self.points

    # Bare parameter annotation; element type comes from the field
    def set_points(self, points: list):
        self.points = points

    def get_origin(self):
        return self.origin

    def set_origin(self, origin):
        self.origin = origin


class Box(Generic[T]):
    item: T

    def __init__(self):
        self.item = None

    def get_item(self):
        return self.item

    def set_item(self, item):
        self.item = item


class Needy:
    value: int

    def __init__(self, value):
        self.value = value

    def get_value(self):
        return self.value

    def set_value(self, value):
        self.value = value


class ReadOnly:
    value: int

    def __init__(self):
        self.value = 1

    def get_value(self):
        return self.value


class Untyped:
    def __init__(self):
        self.values = None

    def set_values(self, values):
        self.values = values


def point_structure(type_id=None):
    builder = FieldBuilder().add("x", ScalarType.DOUBLE).add("y", ScalarType.DOUBLE)
    if type_id:
        builder.set_id(type_id)
    return builder.create_structure()


class TestObjectAssembler:
    """Tests for ObjectAssembler"""

    def test_assemble_flat_object(self, marshaller):
        pv = create_pv_structure(point_structure())
        pv.get_scalar("x").put(1.5)
        pv.get_scalar("y").put(-2.0)
        assert marshaller.deserialize(pv, Point) == Point(1.5, -2.0)

    def test_assemble_nested_objects(self, marshaller):
        path = Path()
        path.name = "route"
        path.points = [Point(0, 0), Point(1, 1)]
        path.origin = Point(5, 5)
        result = marshaller.deserialize(marshaller.serialize(path), Path)
        assert result.name == "route"
        assert result.points == [Point(0.0, 0.0), Point(1.0, 1.0)]
        assert result.origin == Point(5.0, 5.0)

    def test_omitted_field_keeps_default(self, marshaller):
        path = Path()
        path.points = [Point()]
        result = marshaller.deserialize(marshaller.serialize(path), Path)
        assert result.origin is None

    def test_type_id_selects_subclass(self, marshaller):
        marshaller.register_type_id(Point, "point")
        marshaller.register_type_id(Point3D, "point3d")
        path = Path()
        path.origin = Point3D(1, 2, 3)
        result = marshaller.deserialize(marshaller.serialize(path), Path)
        assert result.origin == Point3D(1.0, 2.0, 3.0)

    def test_dynamic_target_uses_type_id(self, marshaller):
        marshaller.register_type_id(Point, "point")
        pv = create_pv_structure(point_structure("point"))
        assert marshaller.deserialize(pv) == Point()

    def test_dynamic_target_without_type_id_gives_dict(self, marshaller):
        pv = create_pv_structure(point_structure())
        assert marshaller.deserialize(pv, Any) == {"x": 0.0, "y": 0.0}

    def test_no_arg_constructor_required(self, marshaller):
        pv = create_pv_structure(FieldBuilder().add("value", ScalarType.LONG).create_structure())
        with pytest.raises(ObjectInstantiationError):
            marshaller.deserialize(pv, Needy)

    def test_missing_mutator(self, marshaller):
        pv = marshaller.serialize(ReadOnly())
        with pytest.raises(AccessorNotFound) as exc_info:
            marshaller.deserialize(pv, ReadOnly)
        assert exc_info.value.path == "value"

    def test_unbound_type_variable(self, marshaller):
        box = Box()
        box.item = Point()
        pv = marshaller.serialize(box)
        with pytest.raises(UnresolvableElementType) as exc_info:
            marshaller.deserialize(pv, Box)
        assert exc_info.value.path == "item"

    def test_custom_assemble_hook(self, marshaller):
        def assemble(m, pv, cls):
            return cls(pv.get_scalar("x").get() * 10, 0.0)

        marshaller.register_serializer(
            Point,
            lambda m, point: point_structure(),
            lambda m, point, pv: pv.get_scalar("x").put(point.x),
            assemble,
        )
        pv = create_pv_structure(point_structure())
        pv.get_scalar("x").put(2.0)
        assert marshaller.deserialize(pv, Point) == Point(20.0, 0.0)


class TestDeserializeInto:
    """Tests for injecting a single field"""

    def test_scalar_into_field(self, marshaller):
        pv = create_pv_structure(point_structure())
        pv.get_scalar("y").put(4.0)
        point = Point()
        marshaller.deserialize_into(point, "y", pv.get_sub_field("y"))
        assert point.y == 4.0

    def test_field_annotation_supplies_element_type(self, marshaller):
        source = Path()
        source.points = [Point(1, 2)]
        pv = marshaller.serialize(source)
        target = Path()
        marshaller.deserialize_into(target, "points", pv.get_sub_field("points"))
        assert target.points == [Point(1.0, 2.0)]

    def test_no_annotation_anywhere(self, marshaller):
        pv = marshaller.serialize({"values": [1, 2]})
        with pytest.raises(UnresolvableElementType):
            marshaller.deserialize_into(Untyped(), "values", pv.get_sub_field("values"))

    def test_map_into_field(self, marshaller):
        class Settings:
            options: Dict[str, int]

            def __init__(self):
                self.options = {}

            def get_options(self):
                return self.options

            def set_options(self, options):
                self.options = options

        pv = marshaller.serialize({"options": {"a": 1}})
        settings = Settings()
        marshaller.deserialize_into(settings, "options", pv.get_sub_field("options"))
        assert settings.options == {"a": 1}
