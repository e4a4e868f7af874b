"""
Mapping between Python/NumPy scalar types and value-model scalar kinds
"""

from typing import Any, Dict, Optional

import numpy as np

from .config import MarshallerConfig
from .exceptions import UnsupportedContainerType
from .pvdata import ScalarType

_PYTHON_SCALARS = (bool, int, float, str)

_DTYPE_KINDS: Dict[np.dtype, ScalarType] = {
    np.dtype(np.bool_): ScalarType.BOOLEAN,
    np.dtype(np.int8): ScalarType.BYTE,
    np.dtype(np.int16): ScalarType.SHORT,
    np.dtype(np.int32): ScalarType.INT,
    np.dtype(np.int64): ScalarType.LONG,
    np.dtype(np.uint8): ScalarType.UBYTE,
    np.dtype(np.uint16): ScalarType.USHORT,
    np.dtype(np.uint32): ScalarType.UINT,
    np.dtype(np.uint64): ScalarType.ULONG,
    np.dtype(np.float32): ScalarType.FLOAT,
    np.dtype(np.float64): ScalarType.DOUBLE,
}


def is_scalar_type(tp: Any) -> bool:
    """True for bool/int/float/str and NumPy scalar classes with a known kind"""
    if not isinstance(tp, type):
        return False
    if issubclass(tp, _PYTHON_SCALARS):
        return True
    if issubclass(tp, np.str_):
        return True
    if issubclass(tp, np.generic):
        return np.dtype(tp) in _DTYPE_KINDS
    return False


def scalar_type_for_dtype(dtype: np.dtype) -> ScalarType:
    dtype = np.dtype(dtype)
    if dtype.kind == "U":
        return ScalarType.STRING
    try:
        return _DTYPE_KINDS[dtype.newbyteorder("=")]
    except KeyError:
        raise UnsupportedContainerType(
            f"arrays of dtype {dtype} have no scalar array equivalent"
        ) from None


def scalar_type_for(tp: type, config: MarshallerConfig) -> ScalarType:
    """Scalar kind for a scalar class; bool is checked before int"""
    if issubclass(tp, (bool, np.bool_)):
        return ScalarType.BOOLEAN
    if issubclass(tp, (str, np.str_)):
        return ScalarType.STRING
    if issubclass(tp, np.generic):
        return scalar_type_for_dtype(np.dtype(tp))
    if issubclass(tp, int):
        return config.default_int_type
    if issubclass(tp, float):
        return config.default_float_type
    raise UnsupportedContainerType(f"{tp.__name__} is not a scalar type")


def to_native(value: Any, target: Optional[Any]) -> Any:
    """
    Convert a stored scalar to the requested Python/NumPy scalar class

    ``None`` or a non-scalar target returns the stored value unchanged.
    """
    if not is_scalar_type(target):
        return value
    if issubclass(target, bool):
        return bool(value)
    return target(value)
