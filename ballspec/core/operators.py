"""
Differential operators on ball coefficients.

For f = F(r) Y_lm, Cartesian derivatives couple degree l to l +/- 1 through
the radial ladder operators

    D- F = F' - l F / r        (l -> l+1)
    D+ F = F' + (l+1) F / r    (l -> l-1)

and closed-form angular coefficients (see tools.sphere). The radial
operators are applied exactly on Chebyshev coefficients. Content raised above
Lmax is truncated, except in curl, which first discards the ell = Lmax part of
its input so that its output is represented without truncation. The divergence
of a curl therefore vanishes identically on the stored degrees.

"""

import numpy as np

from .field import ScalarField, VectorField
from ..tools import sphere
from ..tools.array import readonly
from ..tools.cache import CachedAttribute, CachedClass

import logging
logger = logging.getLogger(__name__.split('.')[-1])

# Public interface
__all__ = ['gradient',
           'divergence',
           'curl',
           'laplacian',
           'vector_laplacian',
           'partial']

AXES = {'x': 0, 'y': 1, 'z': 2}


class BallDerivatives(metaclass=CachedClass):
    """
    Cached derivative matrices for one grid.

    Parameters
    ----------
    grid : Grid
        Ball grid.

    """

    def __init__(self, grid):
        self.grid = grid

    @CachedAttribute
    def raising(self):
        """Stack of D- matrices per degree, shape (Lmax+1, N, N)."""
        D = self.grid.derivative_matrix
        R = self.grid.division_matrix
        ell = self.grid.ell[:, None, None]
        return readonly(D[None] - ell * R[None])

    @CachedAttribute
    def lowering(self):
        """Stack of D+ matrices per degree, shape (Lmax+1, N, N)."""
        D = self.grid.derivative_matrix
        R = self.grid.division_matrix
        ell = self.grid.ell[:, None, None]
        return readonly(D[None] + (ell + 1) * R[None])

    @CachedAttribute
    def laplacian_matrices(self):
        """Stack of (D+)_{l+1} (D-)_l matrices per degree."""
        D = self.grid.derivative_matrix
        R = self.grid.division_matrix
        ell = self.grid.ell[:, None, None]
        outer = D[None] + (ell + 2) * R[None]
        return readonly(np.matmul(outer, self.raising))

    @CachedAttribute
    def angular_coefficients(self):
        """Ladder coefficients for dz, dx + i dy and dx - i dy on the (l, m) layout."""
        ell = self.grid.ell[:, None]
        m = self.grid.m[None, :]
        return {'z': sphere.z_coefficients(ell, m),
                'plus': sphere.plus_coefficients(ell, m),
                'minus': sphere.minus_coefficients(ell, m)}

    def ladder(self, coeffs):
        """Apply D- and D+ to every degree of a coefficient tensor."""
        raised = np.einsum('lij,jlm->ilm', self.raising, coeffs, optimize=True)
        lowered = np.einsum('lij,jlm->ilm', self.lowering, coeffs, optimize=True)
        return raised, lowered

    def spherical_derivatives(self, coeffs):
        """Coefficients of (dz, dx + i dy, dx - i dy) applied to a scalar."""
        up, down = self.ladder(coeffs)
        coef = self.angular_coefficients
        out_z = np.zeros_like(up)
        out_plus = np.zeros_like(up)
        out_minus = np.zeros_like(up)
        # dz: (l, m) -> (l +/- 1, m)
        A, B = coef['z']
        out_z[:, 1:, :] += A[:-1] * up[:, :-1]
        out_z[:, :-1, :] += B[1:] * down[:, 1:]
        # dx + i dy: (l, m) -> (l +/- 1, m + 1)
        A, B = coef['plus']
        out_plus[:, 1:, 1:] += A[:-1, :-1] * up[:, :-1, :-1]
        out_plus[:, :-1, 1:] += B[1:, :-1] * down[:, 1:, :-1]
        # dx - i dy: (l, m) -> (l +/- 1, m - 1)
        A, B = coef['minus']
        out_minus[:, 1:, :-1] += A[:-1, 1:] * up[:, :-1, 1:]
        out_minus[:, :-1, :-1] += B[1:, 1:] * down[:, 1:, 1:]
        valid = self.grid.valid_modes
        for out in (out_z, out_plus, out_minus):
            out[~valid] = 0
        return out_z, out_plus, out_minus

    def cartesian_derivatives(self, coeffs):
        """Coefficients of (dx, dy, dz) applied to a scalar."""
        dz, dplus, dminus = self.spherical_derivatives(coeffs)
        dx = (dplus + dminus) / 2
        dy = (dplus - dminus) / 2j
        return dx, dy, dz

    def drop_top_degree(self, coeffs):
        """Copy of a coefficient tensor without its ell = Lmax part."""
        out = np.array(coeffs)
        out[:, -1, :] = 0
        return out

    def laplacian(self, coeffs):
        out = np.einsum('lij,jlm->ilm', self.laplacian_matrices, coeffs, optimize=True)
        out[~self.grid.valid_modes] = 0
        return out


def _require(arg, cls, name):
    if not isinstance(arg, cls):
        raise TypeError("%s requires a %s, not %s." % (name, cls.__name__, type(arg).__name__))


def gradient(field):
    """Gradient of a scalar field as Cartesian vector components."""
    _require(field, ScalarField, 'gradient')
    derivs = BallDerivatives(field.grid).cartesian_derivatives(field['c'])
    return VectorField([ScalarField(field.grid, d, dtype=field.dtype) for d in derivs])


def partial(field, axis):
    """Cartesian partial derivative of a scalar field along 'x', 'y', 'z' (or 0, 1, 2)."""
    _require(field, ScalarField, 'partial')
    axis = AXES.get(axis, axis)
    if axis not in (0, 1, 2):
        raise ValueError("Unknown axis: %r" % (axis,))
    dz, dplus, dminus = BallDerivatives(field.grid).spherical_derivatives(field['c'])
    if axis == 0:
        data = (dplus + dminus) / 2
    elif axis == 1:
        data = (dplus - dminus) / 2j
    else:
        data = dz
    return ScalarField(field.grid, data, dtype=field.dtype)


def divergence(field):
    """Divergence of a Cartesian vector field."""
    _require(field, VectorField, 'divergence')
    derivs = BallDerivatives(field.grid)
    vx, vy, vz = (c['c'] for c in field)
    # div v = (d+ (vx - i vy) + d- (vx + i vy)) / 2 + dz vz
    dplus = derivs.spherical_derivatives(vx - 1j*vy)[1]
    dminus = derivs.spherical_derivatives(vx + 1j*vy)[2]
    dz = derivs.spherical_derivatives(vz)[0]
    return ScalarField(field.grid, (dplus + dminus) / 2 + dz, dtype=field.dtype)


def curl(field):
    """
    Curl of a Cartesian vector field.

    The ell = Lmax part of the input is discarded, so every degree of the
    result is exact and divergence(curl(v)) vanishes to roundoff.
    """
    _require(field, VectorField, 'curl')
    derivs = BallDerivatives(field.grid)
    vx, vy, vz = (derivs.drop_top_degree(c['c']) for c in field)
    dx_vy, dy_vy, dz_vy = derivs.cartesian_derivatives(vy)
    dx_vx, dy_vx, dz_vx = derivs.cartesian_derivatives(vx)
    dx_vz, dy_vz, dz_vz = derivs.cartesian_derivatives(vz)
    components = (dy_vz - dz_vy, dz_vx - dx_vz, dx_vy - dy_vx)
    return VectorField([ScalarField(field.grid, c, dtype=field.dtype) for c in components])


def laplacian(field):
    """Scalar Laplacian, applied per degree without angular coupling."""
    if isinstance(field, VectorField):
        return vector_laplacian(field)
    _require(field, ScalarField, 'laplacian')
    data = BallDerivatives(field.grid).laplacian(field['c'])
    return ScalarField(field.grid, data, dtype=field.dtype)


def vector_laplacian(field):
    """Laplacian of each Cartesian component."""
    _require(field, VectorField, 'vector_laplacian')
    return VectorField([laplacian(c) for c in field])


# Aliases
grad = gradient
div = divergence
lap = laplacian
