"""Registry of the scalar element types an array can hold.

Every type has a fixed byte width and is stored little endian, matching the
managed buffers handed out by the providers in :mod:`spiral_ndarray.buffers`.
The registry is the only place that knows how a scalar is laid out in memory;
the array core works purely in element counts and byte offsets.
"""

from __future__ import annotations

import operator
from enum import Enum
from typing import Any, Dict, Union

import numpy as np

BYTE_ORDER = "little"
_ORDER_CHAR = "<" if BYTE_ORDER == "little" else ">"


class ElementType(Enum):
    CHAR = ("char", "i1")
    SINT16 = ("sint16", "i2")
    SINT32 = ("sint32", "i4")
    SINT64 = ("sint64", "i8")
    FLOAT = ("float", "f4")
    DOUBLE = ("double", "f8")

    def __init__(self, type_name: str, code: str) -> None:
        self.type_name = type_name
        self.typestr = _ORDER_CHAR + code
        self.numpy_dtype = np.dtype(self.typestr)

    @property
    def size_bytes(self) -> int:
        return int(self.numpy_dtype.itemsize)

    @property
    def is_integer(self) -> bool:
        return self.numpy_dtype.kind == "i"

    @classmethod
    def parse(cls, value: Union["ElementType", str, Any]) -> "ElementType":
        """Resolve an element type from the enum, a type name or a NumPy dtype."""

        if isinstance(value, ElementType):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            if key in _ALIASES:
                return _ALIASES[key]
            raise ValueError(f"unknown element type {value!r}")
        try:
            dtype = np.dtype(value)
        except TypeError as exc:
            raise ValueError(f"unknown element type {value!r}") from exc
        for member in cls:
            if member.numpy_dtype == dtype.newbyteorder(_ORDER_CHAR):
                return member
        raise ValueError(f"unsupported element type {dtype}")

    def decode(self, raw: np.ndarray, byte_offset: int) -> Any:
        """Read one scalar at ``byte_offset`` from a flat ``uint8`` buffer view."""

        end = byte_offset + self.size_bytes
        return raw[byte_offset:end].view(self.numpy_dtype)[0].item()

    def encode(self, raw: np.ndarray, byte_offset: int, value: Any) -> None:
        """Write one scalar at ``byte_offset`` into a flat ``uint8`` buffer view."""

        end = byte_offset + self.size_bytes
        raw[byte_offset:end].view(self.numpy_dtype)[0] = self.coerce(value)

    def coerce(self, value: Any) -> Union[int, float]:
        if self.is_integer:
            if isinstance(value, bool):
                value = int(value)
            try:
                number = operator.index(value)
            except TypeError as exc:
                raise TypeError(
                    f"{self.type_name} elements require an integer value, got {type(value).__name__}"
                ) from exc
            info = np.iinfo(self.numpy_dtype)
            if number < info.min or number > info.max:
                raise OverflowError(
                    f"value {number} does not fit in {self.type_name} [{info.min}, {info.max}]"
                )
            return number
        return float(value)

    def __str__(self) -> str:
        return self.type_name


_ALIASES: Dict[str, ElementType] = {
    "char": ElementType.CHAR,
    "sint8": ElementType.CHAR,
    "int8": ElementType.CHAR,
    "short": ElementType.SINT16,
    "sint16": ElementType.SINT16,
    "int16": ElementType.SINT16,
    "int": ElementType.SINT32,
    "sint32": ElementType.SINT32,
    "int32": ElementType.SINT32,
    "long": ElementType.SINT64,
    "sint64": ElementType.SINT64,
    "int64": ElementType.SINT64,
    "float": ElementType.FLOAT,
    "float32": ElementType.FLOAT,
    "double": ElementType.DOUBLE,
    "float64": ElementType.DOUBLE,
}


def size_bytes(element_type: Union[ElementType, str]) -> int:
    return ElementType.parse(element_type).size_bytes


__all__ = ["BYTE_ORDER", "ElementType", "size_bytes"]
