"""
Ball grid class and sampling.

"""

import numpy as np
from math import ceil

from ..tools import chebyshev
from ..tools import sphere
from ..tools.cache import CachedAttribute, CachedClass
from ..tools.array import readonly
from ..tools.config import config

import logging
logger = logging.getLogger(__name__.split('.')[-1])

DEALIAS_DEFAULT = config['grid'].getfloat('DEALIAS')

__all__ = ['Grid', 'build_grid', 'sample']


class Grid(metaclass=CachedClass):
    """
    Spectral basis and physical grid for the unit ball.

    Coefficients are indexed by [n, ell, m + Lmax], where n labels Chebyshev
    polynomials T_n(r) of the doubled-up radius r in [-1, 1], and (ell, m)
    label orthonormal spherical harmonics. Grid data is indexed by
    [r, theta, phi]. Grids are cached: equal arguments return the same object.

    Parameters
    ----------
    radial_size : int
        Number of Chebyshev coefficients (even, at least 4).
    Lmax : int
        Maximum spherical-harmonic degree (at least 1).
    dealias : float, optional
        Physical grid scale factor (default: [grid] DEALIAS).

    """

    @classmethod
    def _preprocess_args(cls, radial_size, Lmax, dealias=None):
        if dealias is None:
            dealias = DEALIAS_DEFAULT
        if int(radial_size) != radial_size or int(Lmax) != Lmax:
            raise ValueError("Grid sizes must be integers.")
        return (int(radial_size), int(Lmax), float(dealias)), {}

    def __init__(self, radial_size, Lmax, dealias=None):
        if radial_size < 4 or radial_size % 2:
            raise ValueError("radial_size must be an even integer >= 4, not %s." % radial_size)
        if Lmax < 1:
            raise ValueError("Lmax must be >= 1, not %s." % Lmax)
        if dealias < 1:
            raise ValueError("dealias must be >= 1, not %s." % dealias)
        self.radial_size = radial_size
        self.Lmax = Lmax
        self.dealias = dealias
        # Physical sizes
        self.full_radial_grid_size = 2 * ceil(dealias * radial_size / 2)
        self.radial_grid_size = self.full_radial_grid_size // 2
        self.Ntheta = ceil(dealias * (Lmax + 1))
        self.Nphi = 2 * self.Ntheta
        self.coeff_shape = (radial_size, Lmax+1, 2*Lmax+1)
        self.grid_shape = (self.radial_grid_size, self.Ntheta, self.Nphi)
        logger.debug("Built %r with grid shape %s", self, self.grid_shape)

    def __repr__(self):
        return "Grid(radial_size=%i, Lmax=%i, dealias=%g)" % (self.radial_size, self.Lmax, self.dealias)

    def __reduce__(self):
        return (Grid, (self.radial_size, self.Lmax, self.dealias))

    @property
    def order(self):
        """
        Radial size. Equal to the order passed to build_grid when that order
        is even. Odd orders round up here but keep Lmax = order // 2, so
        build_grid(grid.order) need not return the same grid.
        """
        return self.radial_size

    ## Physical grids

    @CachedAttribute
    def radius(self):
        """Radial nodes in (0, 1), decreasing."""
        r = chebyshev.build_grid(self.full_radial_grid_size)[:self.radial_grid_size]
        return readonly(r)

    @CachedAttribute
    def _colatitude_quadrature(self):
        return sphere.quadrature(self.Ntheta)

    @CachedAttribute
    def cos_theta(self):
        return readonly(self._colatitude_quadrature[0])

    @CachedAttribute
    def colatitude_weights(self):
        return readonly(self._colatitude_quadrature[1])

    @CachedAttribute
    def theta(self):
        """Colatitude nodes in (0, pi), increasing."""
        return readonly(np.arccos(self.cos_theta))

    @CachedAttribute
    def phi(self):
        """Longitude nodes in [0, 2 pi)."""
        return readonly(2 * np.pi * np.arange(self.Nphi) / self.Nphi)

    def local_grids(self):
        """Broadcastable (r, theta, phi) grids."""
        r = self.radius[:, None, None]
        theta = self.theta[None, :, None]
        phi = self.phi[None, None, :]
        return r, theta, phi

    def cartesian_grids(self):
        """Full-shape (x, y, z) grids."""
        r, theta, phi = self.local_grids()
        x = r * np.sin(theta) * np.cos(phi)
        y = r * np.sin(theta) * np.sin(phi)
        z = r * np.cos(theta) * np.ones_like(phi)
        return x, y, z

    def sphere_grids(self):
        """Broadcastable (theta, phi) grids on the unit sphere."""
        return self.theta[:, None], self.phi[None, :]

    ## Coefficient layout

    @CachedAttribute
    def ell(self):
        return readonly(np.arange(self.Lmax+1))

    @CachedAttribute
    def m(self):
        return readonly(np.arange(-self.Lmax, self.Lmax+1))

    @CachedAttribute
    def valid_modes(self):
        """Boolean tensor of admissible coefficients: |m| <= ell and n = ell (mod 2)."""
        n = np.arange(self.radial_size)[:, None, None]
        ell = self.ell[None, :, None]
        m = self.m[None, None, :]
        return readonly((np.abs(m) <= ell) & ((n - ell) % 2 == 0))

    @CachedAttribute
    def valid_sphere_modes(self):
        """Boolean matrix of admissible (ell, m) pairs."""
        return readonly(np.abs(self.m[None, :]) <= self.ell[:, None])

    def parity_indices(self, ell):
        """Chebyshev indices with the parity of degree ell."""
        return np.arange(ell % 2, self.radial_size, 2)

    ## Radial matrices

    @CachedAttribute
    def derivative_matrix(self):
        return readonly(chebyshev.derivative_matrix(self.radial_size))

    @CachedAttribute
    def division_matrix(self):
        return readonly(chebyshev.division_matrix(self.radial_size))

    @CachedAttribute
    def gram_matrix(self):
        return readonly(chebyshev.gram_matrix(self.radial_size))


def build_grid(order, dealias=None):
    """
    Build the ball grid for a nominal order.

    The radial size is the order rounded up to even, and Lmax = order // 2.
    """
    order = int(order)
    return Grid(order + order % 2, max(order // 2, 1), dealias)


def sample(grid, function):
    """
    Evaluate function(x, y, z) on the physical grid.

    The function is called once on broadcast Cartesian grids and may return a
    scalar or an array broadcastable to the grid shape.
    """
    x, y, z = grid.cartesian_grids()
    data = np.asarray(function(x, y, z))
    return np.array(np.broadcast_to(data, grid.grid_shape))

