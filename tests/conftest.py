from __future__ import annotations

import importlib.util
from types import SimpleNamespace
from typing import Optional

import numpy as real_numpy
import pytest

from spiral_ndarray import buffers
from spiral_ndarray.buffers import NumpyHostProvider

_real_find_spec = importlib.util.find_spec


class CountingProvider(NumpyHostProvider):
    """Host provider that records every allocate/release call."""

    name = "counting"

    def __init__(
        self,
        fail_allocate: bool = False,
        fail_release: bool = False,
        fill: Optional[int] = None,
        null_address: bool = False,
    ) -> None:
        super().__init__()
        self.fail_allocate = fail_allocate
        self.fail_release = fail_release
        self.fill = fill
        self.null_address = null_address
        self.allocate_calls: list[int] = []
        self.release_calls = 0

    def allocate(self, size_bytes: int):
        self.allocate_calls.append(size_bytes)
        if self.fail_allocate:
            raise MemoryError("out of device memory")
        block, address = super().allocate(size_bytes)
        if self.fill is not None:
            block[:] = self.fill
        if self.null_address:
            return block, 0
        return block, address

    def release(self, handle) -> None:
        self.release_calls += 1
        if self.fail_release:
            raise RuntimeError("driver refused to free")
        super().release(handle)


class FakeManagedPointer:
    """Stands in for ``cupy.cuda.MemoryPointer`` over host memory."""

    def __init__(self, size: int) -> None:
        self.block = real_numpy.full(size, 0xAB, dtype=real_numpy.uint8)
        self.ptr = int(self.block.ctypes.data)


def make_fake_cupy(cuda_available=True):
    def is_available():
        if isinstance(cuda_available, Exception):
            raise cuda_available
        return cuda_available

    return SimpleNamespace(cuda=SimpleNamespace(is_available=is_available, malloc_managed=FakeManagedPointer))


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch):
    for key in ("SPIRAL_NDARRAY_PROVIDER", "SPIRAL_NDARRAY_STRICT", "SPIRAL_NDARRAY_ZERO_FILL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(buffers, "_PROVIDERS", {})

    # Hide any real CuPy install so provider selection is deterministic.
    def find_spec(name, *args, **kwargs):
        if name == "cupy":
            return None
        return _real_find_spec(name, *args, **kwargs)

    monkeypatch.setattr(importlib.util, "find_spec", find_spec)


@pytest.fixture
def counting_provider() -> CountingProvider:
    return CountingProvider()


@pytest.fixture
def fake_cupy(monkeypatch: pytest.MonkeyPatch):
    """Install a fake CuPy module on the shared ``cupy`` provider."""

    module = make_fake_cupy()

    def find_spec(name, *args, **kwargs):
        if name == "cupy":
            return SimpleNamespace(name="cupy")
        return _real_find_spec(name, *args, **kwargs)

    monkeypatch.setattr(importlib.util, "find_spec", find_spec)
    provider = buffers.get_provider("cupy")
    monkeypatch.setattr(provider, "_cupy", module)
    return provider
