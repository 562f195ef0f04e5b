"""Indexing state machine shared by owning arrays and partial views.

``NDArray`` (no dimension fixed) and ``ArrayView`` (one or more leading
dimensions fixed) are the two variants of :class:`ArrayLike`.  Indexing either
one fixes the next free dimension: it yields another view while two or more
dimensions remain free and reads or writes a scalar once only one remains.
"""

from __future__ import annotations

import operator
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Tuple, Union

from .errors import IndexOutOfBounds, InvalidDimension
from .interop import ArrayElementsMixin

if TYPE_CHECKING:  # pragma: no cover
    from .ndarray import NDArray


def _as_index(index: Any) -> int:
    if isinstance(index, bool):
        raise TypeError("array indices must be integers, not bool")
    try:
        return operator.index(index)
    except TypeError as exc:
        raise TypeError(f"array indices must be integers, not {type(index).__name__}") from exc


class ArrayLike(ArrayElementsMixin):
    """Common indexing surface of :class:`NDArray` and :class:`ArrayView`."""

    __slots__ = ()

    # Provided by the variants.
    owner: "NDArray"
    fixed_dimensions: int
    flat_offset: int
    next_stride: int

    @property
    def rank_remaining(self) -> int:
        return self.owner.ndim - self.fixed_dimensions

    @property
    def is_terminal(self) -> bool:
        return self.rank_remaining == 1

    @property
    def byte_offset(self) -> int:
        return self.flat_offset * self.owner.itemsize

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.owner.shape[self.fixed_dimensions:]

    @property
    def strides(self) -> Tuple[int, ...]:
        return self.owner.strides[self.fixed_dimensions:]

    def _advance(self, index: Any) -> int:
        """Validate ``index`` against the next free dimension and return the new element offset."""

        owner = self.owner
        owner._check_live()
        k = _as_index(index)
        dim = self.fixed_dimensions
        extent = owner.shape[dim]
        if k < 0 or k >= extent:
            raise IndexOutOfBounds(k, extent, dim)
        return self.flat_offset + k * self.next_stride

    def _step(self, index: Any) -> Union["ArrayView", Any]:
        offset = self._advance(index)
        owner = self.owner
        dim = self.fixed_dimensions + 1
        if dim == owner.ndim:
            return owner._read_element(offset)
        return ArrayView(owner, dim, offset, owner.strides[dim])

    def __getitem__(self, index: Any):
        if not isinstance(index, tuple):
            return self._step(index)
        node: Any = self
        for depth, k in enumerate(index):
            if not isinstance(node, ArrayLike):
                raise InvalidDimension(self.fixed_dimensions + depth, self.owner.ndim)
            node = node._step(k)
        return node

    def __setitem__(self, index: Any, value: Any) -> None:
        if isinstance(index, tuple):
            if not index:
                raise TypeError("cannot assign to an array without an index")
            node: Any = self
            for depth, k in enumerate(index[:-1]):
                if not isinstance(node, ArrayLike):
                    raise InvalidDimension(self.fixed_dimensions + depth, self.owner.ndim)
                node = node._step(k)
            if not isinstance(node, ArrayLike):
                raise InvalidDimension(self.fixed_dimensions + len(index) - 1, self.owner.ndim)
            node[index[-1]] = value
            return
        if not self.is_terminal:
            # Still validate so a bad index reports as out of bounds first.
            self._advance(index)
            raise TypeError(
                f"cannot assign a scalar to a {self.rank_remaining - 1}-dimensional view; "
                "index every dimension first"
            )
        self.owner._write_element(self._advance(index), value)

    def __len__(self) -> int:
        return self.owner.shape[self.fixed_dimensions]

    def __iter__(self) -> Iterator[Any]:
        for k in range(len(self)):
            yield self._step(k)

    def tolist(self) -> List[Any]:
        if self.is_terminal:
            return [self._step(k) for k in range(len(self))]
        return [self._step(k).tolist() for k in range(len(self))]

    @property
    def pointer(self) -> int:
        return self.owner.pointer + self.byte_offset

    @property
    def __array_interface__(self) -> Dict[str, Any]:
        owner = self.owner
        owner._check_live()
        itemsize = owner.itemsize
        return {
            "version": 3,
            "shape": self.shape,
            "typestr": owner.element_type.typestr,
            "data": (self.pointer, False),
            "strides": tuple(s * itemsize for s in self.strides),
        }


class ArrayView(ArrayLike):
    """Non-owning window onto an :class:`NDArray` with leading dimensions fixed.

    Views share the owner's buffer and never release it.  They stay valid only
    while the owner is alive; once the owner frees its buffer every access
    raises :class:`~spiral_ndarray.errors.BufferReleased`.
    """

    __slots__ = ("_owner", "_fixed", "_offset", "_next_stride")

    def __init__(self, owner: "NDArray", fixed_dimensions: int, offset: int, next_stride: int) -> None:
        rank = owner.ndim
        if not 1 <= fixed_dimensions < rank:
            raise ValueError(f"a view must fix between 1 and {rank - 1} dimensions, got {fixed_dimensions}")
        reach = sum((owner.shape[d] - 1) * owner.strides[d] for d in range(fixed_dimensions, rank))
        if offset < 0 or offset + reach >= owner.size:
            raise ValueError(f"view offset {offset} leaves the buffer of {owner.size} elements")
        expected_stride = owner.strides[fixed_dimensions]
        if next_stride != expected_stride:
            raise ValueError(
                f"next stride {next_stride} does not match stride {expected_stride} of dimension {fixed_dimensions}"
            )
        self._owner = owner
        self._fixed = fixed_dimensions
        self._offset = offset
        self._next_stride = next_stride

    @property
    def owner(self) -> "NDArray":
        return self._owner

    @property
    def fixed_dimensions(self) -> int:
        return self._fixed

    @property
    def flat_offset(self) -> int:
        return self._offset

    @property
    def next_stride(self) -> int:
        return self._next_stride

    def __repr__(self) -> str:
        return (
            f"ArrayView(elementType={self._owner.element_type}, fixed={self._fixed}, "
            f"shape={self.shape}, offset={self._offset})"
        )


__all__ = ["ArrayLike", "ArrayView"]
