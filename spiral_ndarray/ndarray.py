"""Multi-dimensional array over a single managed buffer."""

from __future__ import annotations

import logging
import operator
import weakref
from numbers import Integral
from typing import Any, Iterable, Optional, Tuple, Union

import numpy as np

from .buffers import BufferProvider, ManagedBuffer, select_provider
from .element_types import ElementType
from .errors import BufferReleased, InvalidDimension
from .interop import PointerMembersMixin
from .layout import Layout, check_addressable, compute_strides, element_count, normalise_shape
from .view import ArrayLike

LOGGER = logging.getLogger(__name__)


class NDArray(PointerMembersMixin, ArrayLike):
    """Array of rank two or more that owns its buffer.

    The buffer is allocated once in the constructor and released once, by
    :meth:`free`, by leaving a ``with`` block, or as a last resort when the
    array is collected.  Shape and strides are fixed at construction.

    >>> with NDArray("float", (2, 3)) as arr:
    ...     arr[1][2] = 1.5
    ...     arr[1, 2]
    1.5
    """

    __slots__ = (
        "_element_type",
        "_shape",
        "_strides",
        "_layout",
        "_size",
        "_buffer",
        "_finalizer",
        "__weakref__",
    )

    def __init__(
        self,
        element_type: Union[ElementType, str],
        shape: Iterable[int],
        layout: Union[Layout, str, bool, None] = Layout.ROW_MAJOR,
        provider: Optional[Union[BufferProvider, str]] = None,
        zero_fill: Optional[bool] = None,
    ) -> None:
        self._element_type = ElementType.parse(element_type)
        self._layout = Layout.parse(layout)
        self._shape = normalise_shape(shape)
        self._size = element_count(self._shape)
        size_bytes = check_addressable(self._size, self._element_type.size_bytes)
        self._strides = compute_strides(self._shape, self._layout)
        if provider is None or isinstance(provider, str):
            provider = select_provider(provider)
        self._buffer = ManagedBuffer.allocate(size_bytes, provider, zero_fill=zero_fill)
        self._finalizer = weakref.finalize(self, self._buffer.release)
        LOGGER.debug(
            "Created %s array of shape %s (%s order, %d bytes)",
            self._element_type,
            self._shape,
            self._layout.value,
            size_bytes,
        )

    # ------------------------------------------------------------------
    # ArrayLike state: nothing fixed yet
    # ------------------------------------------------------------------
    @property
    def owner(self) -> "NDArray":
        return self

    @property
    def fixed_dimensions(self) -> int:
        return 0

    @property
    def flat_offset(self) -> int:
        return 0

    @property
    def next_stride(self) -> int:
        return self._strides[0]

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def ndim(self) -> int:
        return len(self._shape)

    @property
    def shape(self) -> Tuple[int, ...]:
        return self._shape

    @property
    def strides(self) -> Tuple[int, ...]:
        """Strides in elements."""
        return self._strides

    @property
    def byte_strides(self) -> Tuple[int, ...]:
        itemsize = self.itemsize
        return tuple(s * itemsize for s in self._strides)

    @property
    def size(self) -> int:
        return self._size

    total_element_count = size

    @property
    def itemsize(self) -> int:
        return self._element_type.size_bytes

    @property
    def nbytes(self) -> int:
        return self._buffer.size_bytes

    size_bytes = nbytes

    @property
    def element_type(self) -> ElementType:
        return self._element_type

    @property
    def layout(self) -> Layout:
        return self._layout

    @property
    def is_column_major(self) -> bool:
        return self._layout.is_column_major

    @property
    def provider(self) -> BufferProvider:
        return self._buffer.provider

    @property
    def pointer(self) -> int:
        self._check_live()
        return self._buffer.address

    @property
    def is_released(self) -> bool:
        return self._buffer.released

    def elements_in_dimension(self, dimension: int) -> int:
        return self._shape[self._check_dimension(dimension)]

    def stride_in_dimension(self, dimension: int) -> int:
        return self._strides[self._check_dimension(dimension)]

    def is_index_valid_in_dimension(self, index: int, dimension: int) -> bool:
        extent = self.elements_in_dimension(dimension)
        if isinstance(index, bool) or not isinstance(index, Integral):
            return False
        return 0 <= index < extent

    def _check_dimension(self, dimension: int) -> int:
        if isinstance(dimension, bool):
            raise TypeError("dimension index must be an integer, not bool")
        dimension = operator.index(dimension)
        if dimension < 0 or dimension >= len(self._shape):
            raise InvalidDimension(dimension, len(self._shape))
        return dimension

    # ------------------------------------------------------------------
    # Element access (element offsets are validated by the view chain)
    # ------------------------------------------------------------------
    def _check_live(self) -> None:
        if self._buffer.released:
            raise BufferReleased("array buffer has been released")

    def _read_element(self, offset: int) -> Any:
        return self._element_type.decode(self._buffer.raw, offset * self.itemsize)

    def _write_element(self, offset: int, value: Any) -> None:
        self._element_type.encode(self._buffer.raw, offset * self.itemsize, value)

    def to_numpy(self):
        """Zero-copy NumPy view of the buffer; valid only until :meth:`free`."""

        return np.asarray(self)

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------
    def free(self) -> None:
        """Release the buffer now. Further calls do nothing."""

        if self._finalizer.alive:
            self._finalizer()

    def __enter__(self) -> "NDArray":
        self._check_live()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.free()

    def __copy__(self):
        raise TypeError("NDArray owns its buffer and cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("NDArray owns its buffer and cannot be copied")

    def __reduce_ex__(self, protocol):
        raise TypeError("NDArray owns a native buffer and cannot be pickled")

    def __repr__(self) -> str:
        return (
            f"NDArray(elementType={self._element_type}, dims={list(self._shape)}, "
            f"layout={self._layout.value}, elements={self._size}, size={self.nbytes} bytes, "
            f"buffer={self._buffer!r})"
        )


__all__ = ["NDArray"]
