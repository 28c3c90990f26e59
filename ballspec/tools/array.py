"""Tools for array manipulations."""

import numpy as np


def axindex(axis, index):
    """Index array along specified axis."""
    if axis < 0:
        raise ValueError("`axis` must be positive")
    return (slice(None),)*axis + (index,)


def axslice(axis, start, stop, step=None):
    """Slice array along a specified axis."""
    return axindex(axis, slice(start, stop, step))


def resize_axis(array, size, axis):
    """Zero-pad or truncate an array along one axis."""
    old_size = array.shape[axis]
    if size <= old_size:
        return array[axslice(axis, 0, size)].copy()
    shape = list(array.shape)
    shape[axis] = size
    out = np.zeros(shape, dtype=array.dtype)
    out[axslice(axis, 0, old_size)] = array
    return out


def readonly(array):
    """Return a read-only view of an array."""
    view = array.view()
    view.flags.writeable = False
    return view

