"""Native buffer providers backing managed arrays.

A provider hands out one contiguous block per array and takes it back exactly
once; :class:`ManagedBuffer` is the single owner of the handle in between.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import importlib
import importlib.util
import logging
import os
import threading
from typing import Any, Dict, Optional, Protocol, Tuple, runtime_checkable

import numpy as np

from .config import Settings
from .errors import AllocationFailure, BufferReleased

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class BufferProvider(Protocol):
    name: str

    def is_available(self) -> bool:
        ...

    def allocate(self, size_bytes: int) -> Tuple[Any, int]:
        ...

    def release(self, handle: Any) -> None:
        ...


class _AccountingProvider:
    """Bookkeeping shared by the concrete providers."""

    name = "base"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._allocated_bytes = 0
        self._peak_bytes = 0
        self._allocation_count = 0
        self._release_count = 0
        self._sizes: Dict[int, int] = {}

    @property
    def allocated_bytes(self) -> int:
        return self._allocated_bytes

    @property
    def peak_bytes(self) -> int:
        return self._peak_bytes

    @property
    def allocation_count(self) -> int:
        return self._allocation_count

    @property
    def release_count(self) -> int:
        return self._release_count

    @property
    def live_allocations(self) -> int:
        return len(self._sizes)

    def _track_allocate(self, address: int, size_bytes: int) -> None:
        with self._lock:
            self._sizes[address] = size_bytes
            self._allocated_bytes += size_bytes
            self._allocation_count += 1
            self._peak_bytes = max(self._peak_bytes, self._allocated_bytes)

    def _track_release(self, address: int) -> None:
        with self._lock:
            size = self._sizes.pop(address, 0)
            self._allocated_bytes -= size
            self._release_count += 1

    def is_available(self) -> bool:
        return True

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(allocated_bytes={self._allocated_bytes}, "
            f"live={self.live_allocations})"
        )


class NumpyHostProvider(_AccountingProvider):
    """Host memory owned by a flat ``uint8`` NumPy array."""

    name = "numpy"

    def allocate(self, size_bytes: int) -> Tuple[np.ndarray, int]:
        block = np.empty(int(size_bytes), dtype=np.uint8)
        address = int(block.ctypes.data)
        self._track_allocate(address, size_bytes)
        return block, address

    def release(self, handle: np.ndarray) -> None:
        # The block is freed once the last reference (held by ManagedBuffer) is dropped.
        self._track_release(int(handle.ctypes.data))


class LibcProvider(_AccountingProvider):
    """``malloc``/``free`` from the C runtime, loaded through :mod:`ctypes`."""

    name = "libc"

    def __init__(self) -> None:
        super().__init__()
        self._libc = self._load_libc()
        if self._libc is not None:
            self._libc.malloc.argtypes = [ctypes.c_size_t]
            self._libc.malloc.restype = ctypes.c_void_p
            self._libc.free.argtypes = [ctypes.c_void_p]
            self._libc.free.restype = None

    @staticmethod
    def _load_libc() -> Optional[ctypes.CDLL]:
        name = ctypes.util.find_library("msvcrt" if os.name == "nt" else "c")
        try:
            return ctypes.CDLL(name)
        except OSError:
            LOGGER.debug("C runtime could not be loaded (find_library returned %r)", name)
            return None

    def is_available(self) -> bool:
        return self._libc is not None

    def allocate(self, size_bytes: int) -> Tuple[int, int]:
        if self._libc is None:
            raise RuntimeError("C runtime allocator unavailable")
        ptr = self._libc.malloc(int(size_bytes))
        if not ptr:
            raise MemoryError(f"malloc({size_bytes}) returned NULL")
        self._track_allocate(ptr, size_bytes)
        return ptr, ptr

    def release(self, handle: int) -> None:
        self._libc.free(handle)
        self._track_release(handle)


class CupyManagedProvider(_AccountingProvider):
    """CUDA managed (unified) memory through CuPy, addressable from the host."""

    name = "cupy"

    def __init__(self) -> None:
        super().__init__()
        self._cupy: Any = None

    def _module(self):
        if self._cupy is None:
            self._cupy = importlib.import_module("cupy")
        return self._cupy

    def is_available(self) -> bool:
        if importlib.util.find_spec("cupy") is None:
            return False
        try:
            return bool(self._module().cuda.is_available())
        except Exception:
            LOGGER.debug("CuPy is installed but CUDA is not usable", exc_info=True)
            return False

    def allocate(self, size_bytes: int) -> Tuple[Any, int]:
        memptr = self._module().cuda.malloc_managed(int(size_bytes))
        address = int(memptr.ptr)
        self._track_allocate(address, size_bytes)
        return memptr, address

    def release(self, handle: Any) -> None:
        # CuPy frees managed memory when the MemoryPointer is no longer referenced.
        self._track_release(int(handle.ptr))


_PROVIDER_TYPES = {
    "numpy": NumpyHostProvider,
    "libc": LibcProvider,
    "cupy": CupyManagedProvider,
}
_PROVIDERS: Dict[str, BufferProvider] = {}
_AUTO_ORDER = ("cupy", "numpy")


def get_provider(name: str) -> BufferProvider:
    """Return the shared provider instance registered under ``name``."""

    key = name.strip().lower()
    if key not in _PROVIDER_TYPES:
        raise ValueError(f"unknown buffer provider {name!r}; expected one of {sorted(_PROVIDER_TYPES)}")
    provider = _PROVIDERS.get(key)
    if provider is None:
        provider = _PROVIDER_TYPES[key]()
        _PROVIDERS[key] = provider
    return provider


def register_provider(provider: BufferProvider) -> None:
    """Make ``provider`` selectable by its ``name``."""

    if not isinstance(provider, BufferProvider):
        raise TypeError("provider must implement allocate/release/is_available")
    _PROVIDER_TYPES.setdefault(provider.name, type(provider))
    _PROVIDERS[provider.name] = provider


def select_provider(preference: Optional[str] = None, strict: Optional[bool] = None) -> BufferProvider:
    settings = Settings.from_env()
    preference = (preference or settings.provider or "auto").strip().lower()
    strict = settings.strict if strict is None else strict
    if preference in {"auto", "default"}:
        order = _AUTO_ORDER
    else:
        order = (preference,)

    for name in order:
        provider = get_provider(name)
        if provider.is_available():
            LOGGER.debug("Using %s buffer provider", provider.name)
            return provider
    if strict:
        raise RuntimeError(f"buffer provider {preference!r} is unavailable")
    LOGGER.warning("Buffer provider %s unavailable; falling back to numpy", preference)
    return get_provider("numpy")


class ManagedBuffer:
    """Exclusive owner of one provider allocation.

    The handle is released at most once, by whichever of :meth:`release` or the
    owning array's finalizer runs first.
    """

    __slots__ = ("_provider", "_handle", "_address", "_size_bytes", "_raw", "_lock")

    def __init__(self, provider: BufferProvider, handle: Any, address: int, size_bytes: int) -> None:
        self._provider = provider
        self._handle = handle
        self._address = int(address)
        self._size_bytes = int(size_bytes)
        self._lock = threading.Lock()
        storage = (ctypes.c_ubyte * self._size_bytes).from_address(self._address)
        self._raw: Optional[np.ndarray] = np.ctypeslib.as_array(storage)

    @classmethod
    def allocate(
        cls,
        size_bytes: int,
        provider: Optional[BufferProvider] = None,
        zero_fill: Optional[bool] = None,
    ) -> "ManagedBuffer":
        provider = provider or select_provider()
        if zero_fill is None:
            zero_fill = Settings.from_env().zero_fill
        try:
            handle, address = provider.allocate(size_bytes)
        except Exception as exc:
            raise AllocationFailure(size_bytes, getattr(provider, "name", "?"), str(exc)) from exc
        try:
            if not address:
                raise ValueError("provider returned a null address")
            buf = cls(provider, handle, address, size_bytes)
            if zero_fill:
                buf.raw[:] = 0
        except Exception as exc:
            try:
                provider.release(handle)
            except Exception:
                LOGGER.exception("Failed to release %d bytes after a failed allocation via %s", size_bytes, provider.name)
            raise AllocationFailure(size_bytes, getattr(provider, "name", "?"), str(exc)) from exc
        LOGGER.debug("Allocated %d bytes at 0x%x via %s", size_bytes, address, provider.name)
        return buf

    @property
    def address(self) -> int:
        return self._address

    @property
    def size_bytes(self) -> int:
        return self._size_bytes

    @property
    def provider(self) -> BufferProvider:
        return self._provider

    @property
    def released(self) -> bool:
        return self._handle is None

    @property
    def raw(self) -> np.ndarray:
        """Flat ``uint8`` view over the whole block."""

        raw = self._raw
        if raw is None:
            raise BufferReleased(f"buffer at 0x{self._address:x} has been released")
        return raw

    def release(self) -> bool:
        """Give the block back to its provider; return ``False`` if already released."""

        with self._lock:
            handle = self._handle
            if handle is None:
                return False
            self._handle = None
            self._raw = None
        try:
            self._provider.release(handle)
        except Exception:
            LOGGER.exception("Failed to release %d bytes at 0x%x via %s", self._size_bytes, self._address, self._provider.name)
            return True
        LOGGER.debug("Released %d bytes at 0x%x via %s", self._size_bytes, self._address, self._provider.name)
        return True

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"ManagedBuffer(provider={self._provider.name}, address=0x{self._address:x}, size={self._size_bytes}, {state})"


__all__ = [
    "BufferProvider",
    "NumpyHostProvider",
    "LibcProvider",
    "CupyManagedProvider",
    "ManagedBuffer",
    "get_provider",
    "register_provider",
    "select_provider",
]
