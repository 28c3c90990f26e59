"""Spectral transform classes."""

import numpy as np
import scipy.fft

from ..tools import sphere
from ..tools.array import axindex, resize_axis
from ..tools.cache import CachedAttribute, CachedClass
from ..tools.parallel import map_modes, resolve_workers
from ..tools.config import config

import logging
logger = logging.getLogger(__name__.split('.')[-1])

PARALLEL_COLATITUDE = config['transforms'].getboolean('PARALLEL_COLATITUDE')

__all__ = ['forward_transform',
           'backward_transform',
           'sphere_forward',
           'sphere_backward']


class Transform:
    """Abstract base class for all transforms."""

    def forward(self, gdata):
        """Apply forward transform."""
        # Subclasses must implement
        raise NotImplementedError("%s has not implemented 'forward' method" %type(self))

    def backward(self, cdata):
        """Apply backward transform."""
        # Subclasses must implement
        raise NotImplementedError("%s has not implemented 'backward' method" %type(self))


class AzimuthalTransform(Transform, metaclass=CachedClass):
    """
    Complex FFT in longitude using scipy.fft.

    Coefficients are ordered m = -Lmax..Lmax along the transform axis and
    scaled so that forward gives the integral of f exp(-i m phi) over phi.

    Parameters
    ----------
    Nphi : int
        Number of longitude nodes.
    Lmax : int
        Maximum wavenumber.
    axis : int
        Transform axis.

    """

    def __init__(self, Nphi, Lmax, axis):
        if Nphi <= 2 * Lmax:
            raise ValueError("Nphi must exceed 2*Lmax to resolve |m| <= Lmax.")
        self.Nphi = Nphi
        self.Lmax = Lmax
        self.axis = axis

    @CachedAttribute
    def _fft_indices(self):
        m = np.arange(-self.Lmax, self.Lmax+1)
        return m % self.Nphi

    def forward(self, gdata):
        temp = scipy.fft.fft(gdata, axis=self.axis)
        cdata = np.take(temp, self._fft_indices, axis=self.axis)
        cdata *= 2 * np.pi / self.Nphi
        return cdata

    def backward(self, cdata):
        shape = list(cdata.shape)
        shape[self.axis] = self.Nphi
        temp = np.zeros(shape, dtype=np.complex128)
        temp[axindex(self.axis % cdata.ndim, self._fft_indices)] = cdata
        return scipy.fft.ifft(temp, axis=self.axis, overwrite_x=True) * self.Nphi


class ColatitudeTransform(Transform, metaclass=CachedClass):
    """
    Gauss-Legendre matrix transform in colatitude, one matrix per m.

    Acts on data of shape (R, Ntheta, 2*Lmax+1) <-> (R, Lmax+1, 2*Lmax+1).

    Parameters
    ----------
    Ntheta : int
        Number of colatitude nodes.
    Lmax : int
        Maximum spherical-harmonic degree.

    """

    def __init__(self, Ntheta, Lmax):
        if Ntheta < Lmax + 1:
            raise ValueError("Ntheta must be at least Lmax+1 for exact quadrature.")
        self.Ntheta = Ntheta
        self.Lmax = Lmax

    @CachedAttribute
    def _matrices(self):
        logger.debug("Building colatitude matrices for Lmax=%i, Ntheta=%i", self.Lmax, self.Ntheta)
        return sphere.transform_matrices(self.Lmax, self.Ntheta)

    def _apply(self, matrices, data, workers):
        if not PARALLEL_COLATITUDE or resolve_workers(workers) == 1:
            return np.einsum('mij,rjm->rim', matrices, data, optimize=True)
        # Split the m range into contiguous slices
        nm = matrices.shape[0]
        bounds = np.linspace(0, nm, min(resolve_workers(workers), nm) + 1).astype(int)
        slices = [slice(a, b) for a, b in zip(bounds[:-1], bounds[1:])]
        def task(ms):
            return np.einsum('mij,rjm->rim', matrices[ms], data[:, :, ms], optimize=True)
        return np.concatenate(map_modes(task, slices, workers), axis=2)

    def forward(self, gdata, workers=None):
        return self._apply(self._matrices[0], gdata, workers)

    def backward(self, cdata, workers=None):
        return self._apply(self._matrices[1], cdata, workers)


class RadialTransform(Transform, metaclass=CachedClass):
    """
    Fast Chebyshev transform of parity-extended radial profiles using scipy.fft.dct.

    Grid data holds the positive half (r > 0) of a Chebyshev-Gauss grid of
    size 2*Nr_grid. The profile of degree ell is extended to r < 0 with the
    parity (-1)**ell before the DCT.

    Parameters
    ----------
    grid_size : int
        Number of radial nodes in (0, 1).
    coeff_size : int
        Number of Chebyshev coefficients.
    Lmax : int
        Maximum spherical-harmonic degree (axis 1 of the data).

    """

    def __init__(self, grid_size, coeff_size, Lmax):
        self.grid_size = grid_size
        self.coeff_size = coeff_size
        self.Lmax = Lmax
        self.full_size = 2 * grid_size
        # Standard scaling factors for unit-amplitude normalization from DCT-II
        self.forward_rescale_zero = 1 / self.full_size / 2
        self.forward_rescale_pos = 1 / self.full_size
        self.backward_rescale_zero = 1
        self.backward_rescale_pos = 1 / 2

    @CachedAttribute
    def _parity(self):
        ell = np.arange(self.Lmax+1)
        return ((-1.0)**ell)[None, :, None]

    @staticmethod
    def _dct(data, type):
        # Real transforms of real and imaginary parts
        out = scipy.fft.dct(data.real, type=type, axis=0)
        if np.iscomplexobj(data):
            out = out + 1j * scipy.fft.dct(data.imag, type=type, axis=0)
        return out

    def forward(self, gdata):
        full = np.concatenate([gdata, self._parity * gdata[::-1]], axis=0)
        temp = self._dct(full, 2)
        temp[0] *= self.forward_rescale_zero
        temp[1:] *= self.forward_rescale_pos
        return resize_axis(temp, self.coeff_size, 0)

    def backward(self, cdata):
        temp = resize_axis(cdata, self.full_size, 0)
        temp[0] *= self.backward_rescale_zero
        temp[1:] *= self.backward_rescale_pos
        full = self._dct(temp, 3)
        return full[:self.grid_size]


def _transforms(grid):
    radial = RadialTransform(grid.radial_grid_size, grid.radial_size, grid.Lmax)
    colatitude = ColatitudeTransform(grid.Ntheta, grid.Lmax)
    azimuthal = AzimuthalTransform(grid.Nphi, grid.Lmax, 2)
    return radial, colatitude, azimuthal


def forward_transform(grid, gdata, workers=None):
    """
    Transform grid data to ball coefficients.

    The result is projected onto the admissible modes: coefficients with
    |m| > ell or n of the wrong parity are exactly zero.
    """
    gdata = np.asarray(gdata)
    if gdata.shape != grid.grid_shape:
        raise ValueError("Grid data shape %s does not match %s." % (gdata.shape, grid.grid_shape))
    radial, colatitude, azimuthal = _transforms(grid)
    data = azimuthal.forward(gdata)
    data = colatitude.forward(data, workers)
    cdata = radial.forward(data)
    cdata[~grid.valid_modes] = 0
    return cdata


def backward_transform(grid, cdata, workers=None):
    """Transform ball coefficients to complex grid data."""
    cdata = np.asarray(cdata)
    if cdata.shape != grid.coeff_shape:
        raise ValueError("Coefficient shape %s does not match %s." % (cdata.shape, grid.coeff_shape))
    radial, colatitude, azimuthal = _transforms(grid)
    data = radial.backward(cdata)
    data = colatitude.backward(data, workers)
    return azimuthal.backward(data)


def sphere_forward(grid, gdata):
    """Transform (theta, phi) data on a sphere to (ell, m + Lmax) coefficients."""
    gdata = np.asarray(gdata)
    if gdata.shape != grid.grid_shape[1:]:
        raise ValueError("Sphere data shape %s does not match %s." % (gdata.shape, grid.grid_shape[1:]))
    colatitude = ColatitudeTransform(grid.Ntheta, grid.Lmax)
    azimuthal = AzimuthalTransform(grid.Nphi, grid.Lmax, 1)
    data = azimuthal.forward(gdata)
    cdata = colatitude.forward(data[None])[0]
    cdata[~grid.valid_sphere_modes] = 0
    return cdata


def sphere_backward(grid, cdata):
    """Transform (ell, m + Lmax) coefficients to complex (theta, phi) data."""
    cdata = np.asarray(cdata)
    colatitude = ColatitudeTransform(grid.Ntheta, grid.Lmax)
    azimuthal = AzimuthalTransform(grid.Nphi, grid.Lmax, 1)
    data = colatitude.backward(cdata[None])[0]
    return azimuthal.backward(data)

