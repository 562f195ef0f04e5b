"""Multi-dimensional arrays over managed native buffers."""

from importlib.metadata import PackageNotFoundError, version

from .buffers import (
    BufferProvider,
    CupyManagedProvider,
    LibcProvider,
    ManagedBuffer,
    NumpyHostProvider,
    get_provider,
    register_provider,
    select_provider,
)
from .config import Settings
from .element_types import ElementType
from .errors import (
    AllocationFailure,
    BufferReleased,
    IndexOutOfBounds,
    InvalidDimension,
    InvalidShape,
    NDArrayError,
    UnknownMember,
)
from .layout import Layout, compute_strides, element_count
from .ndarray import NDArray
from .view import ArrayLike, ArrayView

try:  # pragma: no cover - metadata is provided at build time
    __version__ = version("spiralreality-ndarray")
except PackageNotFoundError:  # pragma: no cover - fallback during development
    __version__ = "0.0.0.dev0"


__all__ = [
    "__version__",
    "AllocationFailure",
    "ArrayLike",
    "ArrayView",
    "BufferProvider",
    "BufferReleased",
    "CupyManagedProvider",
    "ElementType",
    "IndexOutOfBounds",
    "InvalidDimension",
    "InvalidShape",
    "Layout",
    "LibcProvider",
    "ManagedBuffer",
    "NDArray",
    "NDArrayError",
    "NumpyHostProvider",
    "Settings",
    "UnknownMember",
    "compute_strides",
    "element_count",
    "get_provider",
    "register_provider",
    "select_provider",
]
