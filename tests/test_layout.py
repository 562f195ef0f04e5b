from __future__ import annotations

import sys

import pytest

from spiral_ndarray.errors import InvalidShape
from spiral_ndarray.layout import (
    Layout,
    check_addressable,
    compute_strides,
    element_count,
    flat_offset,
    normalise_shape,
)

SHAPES = [(1, 1), (2, 3), (3, 2), (4, 5, 6), (1, 7, 1), (2, 3, 4, 5), (6, 1, 2, 1, 3)]


@pytest.mark.parametrize("shape", SHAPES)
@pytest.mark.parametrize("layout", list(Layout))
def test_strides_span_the_whole_buffer(shape, layout):
    strides = compute_strides(shape, layout)
    total = element_count(shape)
    assert sum((n - 1) * s for n, s in zip(shape, strides)) == total - 1


@pytest.mark.parametrize("shape", SHAPES)
def test_unit_stride_dimension_depends_on_layout(shape):
    assert compute_strides(shape, Layout.ROW_MAJOR)[-1] == 1
    assert compute_strides(shape, Layout.COLUMN_MAJOR)[0] == 1


def test_reference_strides():
    assert compute_strides((2, 3), "C") == (3, 1)
    assert compute_strides((2, 3), "F") == (1, 2)
    assert compute_strides((4, 5, 6), Layout.ROW_MAJOR) == (30, 6, 1)
    assert compute_strides((4, 5, 6), Layout.COLUMN_MAJOR) == (1, 4, 20)


def test_flat_offset_matches_manual_sum():
    strides = compute_strides((4, 5, 6), "C")
    assert flat_offset((3, 4, 5), strides) == 3 * 30 + 4 * 6 + 5
    assert flat_offset((0, 0, 0), strides) == 0


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, Layout.ROW_MAJOR),
        ("C", Layout.ROW_MAJOR),
        ("row-major", Layout.ROW_MAJOR),
        ("F", Layout.COLUMN_MAJOR),
        ("fortran", Layout.COLUMN_MAJOR),
        (True, Layout.COLUMN_MAJOR),
        (False, Layout.ROW_MAJOR),
        (Layout.COLUMN_MAJOR, Layout.COLUMN_MAJOR),
    ],
)
def test_layout_parse(value, expected):
    assert Layout.parse(value) is expected


def test_layout_parse_rejects_unknown():
    with pytest.raises(ValueError):
        Layout.parse("K")


@pytest.mark.parametrize("shape", [(), (5,), (2, 0), (3, -1, 2), (2, 2.5), (True, 2), None])
def test_normalise_shape_rejects_invalid(shape):
    with pytest.raises(InvalidShape):
        normalise_shape(shape)


def test_normalise_shape_returns_tuple_of_ints():
    assert normalise_shape([2, 3]) == (2, 3)


def test_check_addressable_rejects_oversized_arrays():
    assert check_addressable(120, 8) == 960
    with pytest.raises(InvalidShape):
        check_addressable(sys.maxsize, 8)
