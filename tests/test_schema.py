"""
Tests for structure synthesis
"""

from typing import Any, Dict, List, Optional, Set

import numpy as np
import numpy.typing as npt
import pytest

from pvmarshaller.exceptions import (
    AccessorNotFound,
    UnionOfArrayNotSupported,
    UnsupportedContainerType,
    UnsupportedKeyType,
    UnsupportedNestedContainer,
)
from pvmarshaller.pvdata import (
    VARIANT_UNION,
    FieldBuilder,
    Scalar,
    ScalarArray,
    ScalarType,
    Structure,
    StructureArray,
    UnionArray,
)


class Point:
    x: float
    y: float

    def __init__(self, x=0.0, y=0.0):
        self.x = x
        self.y = y

    def get_x(self):
        return self.x

    def get_y(self):
        return self.y


class Point3D(Point):
    z: float

    def __init__(self, x=0.0, y=0.0, z=0.0):
        super().__init__(x, y)
        self.z = z

    def get_z(self):
        return self.z


class Segment:
    label: str
    start: Point
    end: Optional[Point]
    note: Optional[str]

    def __init__(self, start=None, end=None):
        self.label = "segment"
        self.start = start
        self.end = end
        self.note = None

    def get_label(self):
        return self.label

    def get_start(self):
        return self.start

    def get_end(self):
        return self.end

    def get_note(self):
        return self.note


class Holder:
    """Single field of any annotation, set per test"""

    def __init__(self, value):
        self.value = value

    def get_value(self):
        return self.value


def holder(annotation, value):
    cls = type("Holder", (Holder,), {"__annotations__": {"value": annotation}})
    return cls(value)


POINT = FieldBuilder().add("x", ScalarType.DOUBLE).add("y", ScalarType.DOUBLE).create_structure()


class TestSchemaBuilder:
    """Tests for SchemaBuilder"""

    def test_scalar_fields(self, marshaller):
        structure = marshaller.build_structure(Point(1.0, 2.0))
        assert structure == POINT

    def test_nested_structure(self, marshaller):
        structure = marshaller.build_structure(Segment(Point(), Point()))
        assert structure.field_names == ("label", "start", "end")
        assert structure.get_field("label") == Scalar(ScalarType.STRING)
        assert structure.get_field("start") == POINT

    def test_none_composite_omitted(self, marshaller):
        without_end = marshaller.build_structure(Segment(Point()))
        with_end = marshaller.build_structure(Segment(Point(), Point()))
        assert len(with_end) - len(without_end) == 1
        assert "end" not in without_end.field_names

    def test_none_scalar_omitted(self, marshaller):
        segment = Segment(Point())
        segment.label = None
        assert marshaller.build_structure(segment).field_names == ("start",)

    def test_runtime_subclass_structure(self, marshaller):
        structure = marshaller.build_structure(Segment(Point3D()))
        assert structure.get_field("start").field_names == ("z", "x", "y")

    def test_type_id(self, marshaller):
        marshaller.register_type_id(Point, "geometry:point:1.0")
        structure = marshaller.build_structure(Segment(Point()))
        assert structure.id is None
        assert structure.get_field("start").id == "geometry:point:1.0"

    def test_custom_serializer_replaces_walk(self, marshaller):
        def build(m, obj):
            return FieldBuilder().add("coords", ScalarArray(ScalarType.DOUBLE)).create_structure()

        marshaller.register_serializer(Point, build, lambda m, obj, pv: None)
        structure = marshaller.build_structure(Segment(Point()))
        assert structure.get_field("start").field_names == ("coords",)

    def test_missing_getter(self, marshaller):
        class Opaque:
            hidden: int

        with pytest.raises(AccessorNotFound) as exc_info:
            marshaller.build_structure(Opaque())
        assert exc_info.value.path == "hidden"


class TestContainerFields:
    """Tests for array, list, map and union fields"""

    def test_ndarray_uses_dtype(self, marshaller):
        structure = marshaller.build_structure(holder(np.ndarray, np.arange(3, dtype=np.int32)))
        assert structure.get_field("value") == ScalarArray(ScalarType.INT)

    def test_ndarray_annotation_overrides_dtype(self, marshaller):
        obj = holder(npt.NDArray[np.float32], np.zeros(2))
        assert marshaller.build_structure(obj).get_field("value") == ScalarArray(ScalarType.FLOAT)

    def test_list_of_scalars(self, marshaller):
        structure = marshaller.build_structure(holder(List[str], ["a"]))
        assert structure.get_field("value") == ScalarArray(ScalarType.STRING)

    def test_list_of_structures(self, marshaller):
        structure = marshaller.build_structure(holder(List[Point], [Point(), Point(1, 2)]))
        assert structure.get_field("value") == StructureArray(POINT)

    def test_empty_list_of_structures(self, marshaller):
        structure = marshaller.build_structure(holder(List[Point], []))
        assert structure.get_field("value") == StructureArray(Structure())

    def test_mixed_element_structures_rejected(self, marshaller):
        with pytest.raises(UnsupportedContainerType):
            marshaller.build_structure(holder(List[Point], [Point(), Point3D()]))

    def test_list_of_lists(self, marshaller):
        structure = marshaller.build_structure(holder(List[List[int]], [[1, 2], [3]]))
        expected = Structure((("value", ScalarArray(ScalarType.LONG)),))
        assert structure.get_field("value") == StructureArray(expected)

    def test_third_level_rejected(self, marshaller):
        with pytest.raises(UnsupportedNestedContainer) as exc_info:
            marshaller.build_structure(holder(List[List[List[int]]], [[[1]]]))
        assert exc_info.value.path.startswith("value")

    @pytest.mark.parametrize("value", [[], [None], [[], None]])
    def test_third_level_rejected_without_elements(self, marshaller, value):
        with pytest.raises(UnsupportedNestedContainer) as exc_info:
            marshaller.build_structure(holder(List[List[List[int]]], value))
        assert exc_info.value.path == "value"

    def test_multidimensional_array_rejected(self, marshaller):
        with pytest.raises(UnsupportedNestedContainer):
            marshaller.build_structure(holder(np.ndarray, np.zeros((2, 2))))

    def test_array_rows_as_list(self, marshaller):
        rows = list(np.zeros((2, 3)))
        structure = marshaller.build_structure(holder(List[np.ndarray], rows))
        expected = Structure((("value", ScalarArray(ScalarType.DOUBLE)),))
        assert structure.get_field("value") == StructureArray(expected)

    def test_list_of_any_is_union_array(self, marshaller):
        structure = marshaller.build_structure(holder(List[Any], [1, "a"]))
        assert structure.get_field("value") == UnionArray(VARIANT_UNION)

    def test_bare_list_is_union_array(self, marshaller):
        structure = marshaller.build_structure(holder(list, [1, Point()]))
        assert structure.get_field("value") == UnionArray(VARIANT_UNION)

    def test_map_field(self, marshaller):
        structure = marshaller.build_structure(holder(Dict[str, float], {"gain": 2.0, "off": None}))
        assert structure.get_field("value") == Structure((("gain", Scalar(ScalarType.DOUBLE)),))

    def test_map_with_dynamic_values(self, marshaller):
        structure = marshaller.build_structure(holder(dict, {"a": 1, "p": Point()}))
        value = structure.get_field("value")
        assert value.get_field("a") == Scalar(ScalarType.LONG)
        assert value.get_field("p") == POINT

    def test_non_string_keys_rejected(self, marshaller):
        with pytest.raises(UnsupportedKeyType):
            marshaller.build_structure(holder(dict, {1: "a"}))
        with pytest.raises(UnsupportedKeyType):
            marshaller.build_structure(holder(Dict[int, str], {1: "a"}))

    def test_any_field_is_variant_union(self, marshaller):
        structure = marshaller.build_structure(holder(Any, 42))
        assert structure.get_field("value") is VARIANT_UNION

    def test_any_field_rejects_array_payload(self, marshaller):
        with pytest.raises(UnionOfArrayNotSupported):
            marshaller.build_structure(holder(Any, [1, 2]))

    def test_union_array_rejects_array_elements(self, marshaller):
        with pytest.raises(UnionOfArrayNotSupported) as exc_info:
            marshaller.build_structure(holder(List[Any], [1, np.zeros(2)]))
        assert exc_info.value.path == "value.1"

    def test_set_rejected(self, marshaller):
        with pytest.raises(UnsupportedContainerType):
            marshaller.build_structure(holder(Set[int], {1}))
