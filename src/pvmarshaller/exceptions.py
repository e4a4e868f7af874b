"""
Exception taxonomy for the marshalling engine

Every error carries the dotted path of the field where it was detected so a
failure deep inside a nested structure can be located from the message alone.
"""

from contextlib import contextmanager
from typing import Iterator


class MarshallingError(Exception):
    """Base class for all marshalling failures"""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.message = message
        self.path = path

    def add_parent(self, name: str) -> "MarshallingError":
        """Prefix the field path with the name of an enclosing field"""
        self.path = f"{name}.{self.path}" if self.path else name
        return self

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} (at {self.path})"
        return self.message


class AccessorNotFound(MarshallingError):
    """No getter/setter matching the naming convention exists for a field"""


class UnsupportedContainerType(MarshallingError):
    """A container shape the engine does not model"""


class UnsupportedNestedContainer(MarshallingError):
    """Arrays nested more than one level deep"""


class UnsupportedKeyType(MarshallingError):
    """A map declared or populated with non-string keys"""


class RegularUnionNotSupported(MarshallingError):
    """Only variant unions can be marshalled"""


class UnionOfArrayNotSupported(MarshallingError):
    """A union whose current alternative is a scalar or structure array"""


class UnresolvableElementType(MarshallingError):
    """The element type of a container could not be recovered for decode"""


class AmbiguousOverride(MarshallingError):
    """More than one interface registration matches at the same level"""


class StoreAccessError(MarshallingError):
    """The structured value store rejected an operation"""


class ObjectInstantiationError(MarshallingError):
    """A target class could not be created with its no-argument constructor"""


class RegistryFrozenError(MarshallingError):
    """The override registry was modified after being frozen"""


@contextmanager
def field_path(name: str) -> Iterator[None]:
    """Attach ``name`` to the path of any marshalling error raised inside"""
    try:
        yield
    except MarshallingError as exc:
        exc.add_parent(name)
        raise
