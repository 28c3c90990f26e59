"""Classes for representing Helmholtz boundary-value problems."""

import enum
import inspect
import numbers
import numpy as np

from .field import ScalarField, SphereScalarField
from .grid import build_grid
from .transforms import sphere_forward
from ..tools.exceptions import InvalidBoundaryConditionError

import logging
logger = logging.getLogger(__name__.split('.')[-1])

# Public interface
__all__ = ['BoundaryType',
           'HelmholtzProblem']


class BoundaryType(enum.Enum):
    """Boundary condition type on the unit sphere."""

    DIRICHLET = 'dirichlet'
    NEUMANN = 'neumann'

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidBoundaryConditionError("Unknown boundary type: %r. Options: dirichlet, neumann" % (value,)) from None


class HelmholtzProblem:
    """
    Helmholtz problem lap(u) + K**2 u = rhs in the unit ball, with boundary
    data for u (Dirichlet) or du/dr (Neumann) on r = 1.

    Parameters
    ----------
    rhs : ScalarField
        Forcing.
    K : number
        Wavenumber (real or complex).
    boundary : number, callable g(phi, theta), array or SphereScalarField, optional
        Boundary data (default: 0).
    boundary_type : str or BoundaryType, optional
        'dirichlet' (default) or 'neumann'.
    order : int, optional
        Solve resolution (default: resolution of rhs). The rhs is resampled
        when the order differs.

    """

    def __init__(self, rhs, K, boundary=0, boundary_type=BoundaryType.DIRICHLET, order=None):
        if not isinstance(rhs, ScalarField):
            raise TypeError("rhs must be a ScalarField, not %s." % type(rhs).__name__)
        if not isinstance(K, numbers.Number) or not np.isfinite(K):
            raise ValueError("K must be a finite number, not %r." % (K,))
        self.boundary_type = BoundaryType.parse(boundary_type)
        if order is None:
            self.grid = rhs.grid
        else:
            self.grid = build_grid(order, rhs.grid.dealias)
        if self.grid is not rhs.grid:
            logger.debug("Resampling rhs from %r to %r", rhs.grid, self.grid)
        self.rhs = rhs.resample(self.grid)
        self.K = K
        self.boundary_coeffs, boundary_real = self._build_boundary(boundary)
        K2 = K**2
        if rhs.is_real and boundary_real and np.imag(K2) == 0:
            self.dtype = np.dtype(np.float64)
        else:
            self.dtype = np.dtype(np.complex128)

    @property
    def K2(self):
        return self.K**2

    def _build_boundary(self, boundary):
        """Validate boundary data and return its spherical-harmonic coefficients."""
        grid = self.grid
        shape = grid.grid_shape[1:]
        if isinstance(boundary, SphereScalarField):
            if boundary.radius != 1:
                raise InvalidBoundaryConditionError("Boundary field must live on the unit sphere, not radius %g." % boundary.radius)
            L0, L1 = boundary.grid.Lmax, grid.Lmax
            L = min(L0, L1)
            coeffs = np.zeros(grid.coeff_shape[1:], dtype=np.complex128)
            coeffs[:L+1, L1-L:L1+L+1] = boundary['c'][:L+1, L0-L:L0+L+1]
            return coeffs, boundary.is_real
        if isinstance(boundary, numbers.Number) and not isinstance(boundary, bool):
            if not np.isfinite(boundary):
                raise InvalidBoundaryConditionError("Boundary value must be finite, not %r." % (boundary,))
            coeffs = np.zeros(grid.coeff_shape[1:], dtype=np.complex128)
            coeffs[0, grid.Lmax] = boundary * np.sqrt(4 * np.pi)
            return coeffs, not np.iscomplexobj(boundary)
        if callable(boundary):
            theta, phi = grid.sphere_grids()
            try:
                inspect.signature(boundary).bind(phi, theta)
            except TypeError as error:
                raise InvalidBoundaryConditionError("Boundary function must accept (phi, theta): %s" % error) from None
            except ValueError:
                # Builtins without introspectable signatures are called directly
                pass
            values = boundary(phi, theta)
        elif isinstance(boundary, np.ndarray):
            values = boundary
        else:
            raise InvalidBoundaryConditionError("Boundary data must be a number, a callable g(phi, theta), an array, or a SphereScalarField, not %s." % type(boundary).__name__)
        values = np.asarray(values)
        if not np.issubdtype(values.dtype, np.number):
            raise InvalidBoundaryConditionError("Boundary values must be numeric, not %s." % values.dtype)
        try:
            values = np.broadcast_to(values, shape)
        except ValueError:
            raise InvalidBoundaryConditionError("Boundary values of shape %s do not match the sphere grid %s." % (values.shape, shape)) from None
        if not np.all(np.isfinite(values)):
            raise InvalidBoundaryConditionError("Boundary values must be finite.")
        return sphere_forward(grid, values), not np.iscomplexobj(values)

