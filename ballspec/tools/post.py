"""Checkpointing helpers for field coefficients in HDF5."""

import pathlib
import h5py
import numpy as np

import logging
logger = logging.getLogger(__name__.split('.')[-1])

FORMAT_VERSION = 1

__all__ = ['save_field', 'load_field']


def save_field(field, path, mode='w'):
    """
    Write a ScalarField or VectorField to an HDF5 file.

    The file stores the coefficient tensor under 'coeffs' and the grid
    metadata (radial_size, Lmax, dealias), physical dtype and kind as
    attributes.

    Parameters
    ----------
    field : ScalarField or VectorField
        Field to save.
    path : str or pathlib.Path
        Output file path.
    mode : str, optional
        h5py file mode (default: 'w').

    """
    from ..core.field import ScalarField, VectorField
    if isinstance(field, ScalarField):
        kind = 'scalar'
    elif isinstance(field, VectorField):
        kind = 'vector'
    else:
        raise TypeError("Can only save ScalarField or VectorField, not %s." % type(field).__name__)
    path = pathlib.Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug("Saving %s field to %s", kind, path)
    grid = field.grid
    with h5py.File(str(path), mode=mode) as file:
        file.attrs['format_version'] = FORMAT_VERSION
        file.attrs['kind'] = kind
        file.attrs['radial_size'] = grid.radial_size
        file.attrs['Lmax'] = grid.Lmax
        file.attrs['dealias'] = grid.dealias
        file.attrs['dtype'] = np.dtype(field.dtype).name
        file.attrs['name'] = field.name or ''
        file.create_dataset('coeffs', data=np.asarray(field['c']))
        if kind == 'scalar' and field.invalid_modes:
            file.create_dataset('invalid_modes', data=np.array(field.invalid_modes, dtype=np.int64))


def load_field(path):
    """Read a field written by save_field."""
    from ..core.grid import Grid
    from ..core.field import ScalarField, VectorField
    path = pathlib.Path(path)
    logger.debug("Loading field from %s", path)
    with h5py.File(str(path), mode='r') as file:
        version = file.attrs.get('format_version', None)
        if version != FORMAT_VERSION:
            raise ValueError("Unsupported checkpoint format version: %r" % (version,))
        kind = file.attrs['kind']
        grid = Grid(int(file.attrs['radial_size']), int(file.attrs['Lmax']), float(file.attrs['dealias']))
        dtype = np.dtype(str(file.attrs['dtype']))
        name = str(file.attrs['name']) or None
        coeffs = file['coeffs'][:]
        if 'invalid_modes' in file:
            invalid_modes = [tuple(int(i) for i in mode) for mode in file['invalid_modes'][:]]
        else:
            invalid_modes = []
    if kind == 'scalar':
        return ScalarField(grid, coeffs, dtype=dtype, name=name, invalid_modes=invalid_modes)
    elif kind == 'vector':
        return VectorField([ScalarField(grid, c, dtype=dtype) for c in coeffs], name=name)
    else:
        raise ValueError("Unknown field kind: %r" % (kind,))

