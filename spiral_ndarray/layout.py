"""Element layout conventions and stride arithmetic.

Strides are expressed in elements, never in bytes, so they depend only on the
shape and the layout.  Byte offsets are derived at the point of access by
multiplying with the element width.
"""

from __future__ import annotations

import operator
import sys
from enum import Enum
from typing import Iterable, Sequence, Tuple, Union

from .errors import InvalidShape

MIN_RANK = 2


class Layout(Enum):
    ROW_MAJOR = "C"
    COLUMN_MAJOR = "F"

    @classmethod
    def parse(cls, value: Union["Layout", str, bool, None]) -> "Layout":
        if value is None:
            return cls.ROW_MAJOR
        if isinstance(value, Layout):
            return value
        if isinstance(value, bool):
            return cls.COLUMN_MAJOR if value else cls.ROW_MAJOR
        if isinstance(value, str):
            key = value.strip().lower()
            if key in {"c", "row", "row-major", "row_major"}:
                return cls.ROW_MAJOR
            if key in {"f", "fortran", "column", "column-major", "column_major"}:
                return cls.COLUMN_MAJOR
        raise ValueError(f"unknown layout {value!r}; expected 'C' or 'F'")

    @property
    def is_column_major(self) -> bool:
        return self is Layout.COLUMN_MAJOR


def normalise_shape(shape: Iterable[int]) -> Tuple[int, ...]:
    """Validate ``shape`` and return it as a tuple of Python ints."""

    try:
        dims = list(shape)
    except TypeError as exc:
        raise InvalidShape(f"shape must be a sequence of integers, got {shape!r}") from exc
    if len(dims) < MIN_RANK:
        raise InvalidShape(
            f"arrays require at least {MIN_RANK} dimensions, got {len(dims)}; "
            "use a one-dimensional array type instead"
        )
    out = []
    for dim in dims:
        if isinstance(dim, bool):
            raise InvalidShape(f"invalid size of dimension {dim!r}")
        try:
            n = operator.index(dim)
        except TypeError as exc:
            raise InvalidShape(f"invalid size of dimension {dim!r}") from exc
        if n < 1:
            raise InvalidShape(f"invalid size of dimension {n}")
        out.append(n)
    return tuple(out)


def element_count(shape: Sequence[int]) -> int:
    prod = 1
    for n in shape:
        prod *= n
    return prod


def check_addressable(count: int, itemsize: int) -> int:
    """Return the byte size of ``count`` elements, rejecting sizes past the address space."""

    size = count * itemsize
    if size > sys.maxsize:
        raise InvalidShape(f"array of {count} elements ({size} bytes) exceeds the address space")
    return size


def compute_strides(shape: Sequence[int], layout: Union[Layout, str] = Layout.ROW_MAJOR) -> Tuple[int, ...]:
    """Strides in elements for ``shape`` stored with ``layout``.

    Row-major walks the dimensions last to first, column-major first to last;
    in both cases each stride is the running product of the extents already
    visited.
    """

    layout = Layout.parse(layout)
    strides = [0] * len(shape)
    if layout.is_column_major:
        order = range(len(shape))
    else:
        order = range(len(shape) - 1, -1, -1)
    prod = 1
    for i in order:
        strides[i] = prod
        prod *= shape[i]
    return tuple(strides)


def flat_offset(index: Sequence[int], strides: Sequence[int]) -> int:
    return sum(i * s for i, s in zip(index, strides))


__all__ = [
    "MIN_RANK",
    "Layout",
    "normalise_shape",
    "element_count",
    "check_addressable",
    "compute_strides",
    "flat_offset",
]
