"""
Shared fixtures for marshaller tests
"""

import pytest

from pvmarshaller import Marshaller, MarshallerConfig
from pvmarshaller.marshaller import set_default_marshaller
from pvmarshaller.pvdata import PVUnion, Scalar, ScalarType, Union
from pvmarshaller.pvdata import values

CHUNK_SIZE = 3


@pytest.fixture
def marshaller():
    """A marshaller with default settings and an empty registry"""
    return Marshaller(MarshallerConfig())


@pytest.fixture
def reset_default_marshaller():
    set_default_marshaller(None)
    yield
    set_default_marshaller(None)


@pytest.fixture
def regular_union():
    """A value of a regular (fixed-member) union with int and string members"""
    union = Union(fields=(("i", Scalar(ScalarType.INT)), ("s", Scalar(ScalarType.STRING))))
    return PVUnion(union)


@pytest.fixture
def chunked_arrays(monkeypatch):
    """Make every array read return at most CHUNK_SIZE elements"""
    full_get = values._PVArray.get

    def get(self, offset, count):
        return full_get(self, offset, min(count, CHUNK_SIZE))

    monkeypatch.setattr(values._PVArray, "get", get)
    return CHUNK_SIZE
