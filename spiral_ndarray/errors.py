"""Error types raised by the managed array core."""

from __future__ import annotations


class NDArrayError(Exception):
    """Base class for every error raised by :mod:`spiral_ndarray`."""


class InvalidShape(NDArrayError, ValueError):
    """Raised when an array is constructed with an unusable shape."""


class AllocationFailure(NDArrayError, MemoryError):
    """Raised when the buffer provider cannot satisfy an allocation."""

    def __init__(self, size_bytes: int, provider: str, reason: str = "") -> None:
        self.size_bytes = int(size_bytes)
        self.provider = provider
        message = f"unable to allocate {self.size_bytes} bytes with provider {provider!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InvalidDimension(NDArrayError, IndexError):
    def __init__(self, dimension: int, rank: int) -> None:
        self.dimension = dimension
        self.rank = rank
        super().__init__(f"invalid dimension index {dimension}, valid [0, {rank})")


class IndexOutOfBounds(NDArrayError, IndexError):
    """Raised when an index falls outside the extent of the dimension it addresses."""

    def __init__(self, index: int, extent: int, dimension: int) -> None:
        self.index = index
        self.extent = extent
        self.dimension = dimension
        super().__init__(
            f"index {index} out of bounds for dimension {dimension}, valid [0, {extent})"
        )


class BufferReleased(NDArrayError, RuntimeError):
    """Raised when an array, or a view of it, is used after its buffer was freed."""


class UnknownMember(NDArrayError, AttributeError):
    def __init__(self, member: str) -> None:
        self.member = member
        super().__init__(f"unknown member {member!r}")


__all__ = [
    "NDArrayError",
    "InvalidShape",
    "AllocationFailure",
    "InvalidDimension",
    "IndexOutOfBounds",
    "BufferReleased",
    "UnknownMember",
]
