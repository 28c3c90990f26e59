"""
Classes for data fields on the ball and on spheres.

"""

import numpy as np
from numbers import Number

from .grid import sample
from .transforms import forward_transform, backward_transform, sphere_forward, sphere_backward
from ..tools import chebyshev
from ..tools import sphere
from ..tools.array import readonly, resize_axis
from ..tools.cache import CachedAttribute
from ..tools.config import config
from ..tools.exceptions import BasisResolutionError, BasisConsistencyError

import logging
logger = logging.getLogger(__name__.split('.')[-1])

RESOLUTION_CHECK = config['fields'].get('RESOLUTION_CHECK')
RESOLUTION_TOLERANCE = config['fields'].getfloat('RESOLUTION_TOLERANCE')
EVALUATION_CHUNK_SIZE = config['fields'].getint('EVALUATION_CHUNK_SIZE')

# Public interface
__all__ = ['ScalarField',
           'VectorField',
           'SphereScalarField',
           'SphereVectorField',
           'unit_normal',
           'check_resolution']

FRAMES = ('cartesian', 'spherical')


def check_resolution(coeffs, mode=None, tolerance=None, radial=True, name=None):
    """
    Check the decay of trailing coefficients.

    Compares the largest trailing radial (last two Chebyshev indices) and
    angular (ell = Lmax) coefficient against the largest coefficient.
    Returns True when resolved. Under-resolved data logs a warning or raises
    BasisResolutionError depending on `mode` (default: [fields] RESOLUTION_CHECK).
    """
    if mode is None:
        mode = RESOLUTION_CHECK
    if tolerance is None:
        tolerance = RESOLUTION_TOLERANCE
    mode = mode.lower()
    if mode == 'none':
        return True
    if mode not in ('warn', 'raise'):
        raise ValueError("Unknown resolution check mode: %s" % mode)
    magnitude = np.abs(coeffs)
    scale = np.max(magnitude)
    if scale == 0:
        return True
    angular_tail = np.max(magnitude[..., -1, :])
    radial_tail = np.max(magnitude[..., -2:, :, :]) if radial else 0
    tail = max(angular_tail, radial_tail)
    if tail <= tolerance * scale:
        return True
    message = ("%s is under-resolved: trailing coefficients %.2e relative to maximum "
               "(radial %.2e, angular %.2e, tolerance %.1e)"
               % (name or "Field", tail / scale, radial_tail / scale, angular_tail / scale, tolerance))
    if mode == 'raise':
        raise BasisResolutionError(message)
    logger.warning(message)
    return False


def _check_dtype(dtype):
    dtype = np.dtype(dtype)
    if dtype not in (np.dtype(np.float64), np.dtype(np.complex128)):
        raise ValueError("Field dtype must be float64 or complex128, not %s." % dtype)
    return dtype


def _points_to_spherical(points, coords):
    """Convert an (P, 3) or (3,) point array to flat (r, theta, phi)."""
    points = np.asarray(points, dtype=np.float64)
    single = (points.ndim == 1)
    points = np.atleast_2d(points)
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError("Points must have shape (3,) or (P, 3), not %s." % (points.shape,))
    if coords == 'cartesian':
        x, y, z = points.T
        r = np.sqrt(x**2 + y**2 + z**2)
        with np.errstate(invalid='ignore', divide='ignore'):
            theta = np.where(r > 0, np.arccos(np.clip(z / r, -1, 1)), 0)
        phi = np.arctan2(y, x) % (2 * np.pi)
    elif coords == 'spherical':
        r, theta, phi = points.T
        if np.any(r < 0):
            raise ValueError("Spherical radii must be non-negative.")
    else:
        raise ValueError("Unknown coordinates: %s" % coords)
    if not np.all(np.isfinite(points)):
        raise ValueError("Points must be finite.")
    if np.any(r > 1 + 1e-12):
        raise ValueError("Points must lie in the closed unit ball.")
    return np.minimum(r, 1), theta, phi, single


def _spherical_basis(theta, phi):
    """Spherical unit vectors (e_r, e_theta, e_phi) in Cartesian components."""
    st, ct = np.sin(theta), np.cos(theta)
    sp, cp = np.sin(phi), np.cos(phi)
    e_r = (st*cp, st*sp, ct + 0*phi)
    e_theta = (ct*cp, ct*sp, -st + 0*phi)
    e_phi = (-sp + 0*theta, cp + 0*theta, 0*theta + 0*phi)
    return e_r, e_theta, e_phi


class Operand:
    """Base class for field classes, dispatching arithmetic to the arithmetic module."""

    __array_priority__ = 100.

    def __call__(self, *args, **kw):
        """Evaluate field."""
        return self.evaluate(*args, **kw)

    def __neg__(self):
        # Call: -self
        return ((-1) * self)

    def __pos__(self):
        return self

    def __add__(self, other):
        # Call: self + other
        from .arithmetic import add
        return add(self, other)

    def __radd__(self, other):
        # Call: other + self
        from .arithmetic import add
        return add(other, self)

    def __sub__(self, other):
        # Call: self - other
        return (self + (-other))

    def __rsub__(self, other):
        # Call: other - self
        return (other + (-self))

    def __mul__(self, other):
        # Call: self * other
        from .arithmetic import multiply
        return multiply(self, other)

    def __rmul__(self, other):
        # Call: other * self
        from .arithmetic import multiply
        return multiply(other, self)

    def __matmul__(self, other):
        # Call: self @ other
        from .arithmetic import dot
        return dot(self, other)

    def __truediv__(self, other):
        # Call: self / other
        from .arithmetic import divide
        return divide(self, other)

    @property
    def is_real(self):
        return self.dtype == np.float64

    @property
    def is_complex(self):
        return self.dtype == np.complex128


class ScalarField(Operand):
    """
    Scalar field on the unit ball.

    Fields are immutable: the coefficient tensor is stored read-only and
    operations return new fields. Grid values are computed on first access.

    Parameters
    ----------
    grid : Grid
        Ball grid.
    coeffs : array
        Coefficient tensor of shape grid.coeff_shape.
    dtype : dtype, optional
        Physical dtype, float64 or complex128 (default: complex128).
    name : str, optional
        Field name.
    invalid_modes : sequence of (ell, m) tuples, optional
        Modes flagged as unreliable by a permissive solve.

    """

    def __init__(self, grid, coeffs, dtype=np.complex128, name=None, invalid_modes=()):
        coeffs = np.array(coeffs, dtype=np.complex128)
        if coeffs.shape != grid.coeff_shape:
            raise ValueError("Coefficient shape %s does not match %s." % (coeffs.shape, grid.coeff_shape))
        if not np.all(np.isfinite(coeffs)):
            raise ValueError("Coefficients must be finite.")
        if np.any(coeffs[~grid.valid_modes]):
            raise BasisConsistencyError("Coefficients with |m| > ell or radial parity different from ell must vanish.")
        coeffs.flags.writeable = False
        self.grid = grid
        self.dtype = _check_dtype(dtype)
        self.name = name
        self.invalid_modes = tuple(invalid_modes)
        self._coeffs = coeffs

    def __repr__(self):
        return "ScalarField(%s, %r, dtype=%s)" % (self.name or id(self), self.grid, self.dtype)

    def __getitem__(self, layout):
        """Coefficient ('c') or grid ('g') data."""
        if layout == 'c':
            return self._coeffs
        elif layout == 'g':
            return self._gdata
        else:
            raise KeyError("Layout must be 'c' or 'g', not %r." % (layout,))

    @CachedAttribute
    def _gdata(self):
        gdata = backward_transform(self.grid, self._coeffs)
        if self.is_real:
            gdata = gdata.real.copy()
        return readonly(gdata)

    ## Constructors

    @classmethod
    def zeros(cls, grid, dtype=np.float64, name=None):
        return cls(grid, np.zeros(grid.coeff_shape, dtype=np.complex128), dtype=dtype, name=name)

    @classmethod
    def from_coeffs(cls, grid, coeffs, dtype=np.complex128, name=None):
        """Build field from a coefficient tensor, validating the regularity constraints."""
        return cls(grid, coeffs, dtype=dtype, name=name)

    @classmethod
    def from_grid_data(cls, grid, data, name=None, check=None):
        """
        Build field from values on the physical grid.

        The data is projected onto the basis and its trailing coefficients are
        checked for decay (see check_resolution).
        """
        data = np.asarray(data)
        if data.shape != grid.grid_shape:
            raise ValueError("Grid data shape %s does not match %s." % (data.shape, grid.grid_shape))
        if not np.all(np.isfinite(data)):
            raise ValueError("Grid data must be finite.")
        dtype = np.complex128 if np.iscomplexobj(data) else np.float64
        coeffs = forward_transform(grid, data)
        check_resolution(coeffs, mode=check, name=name)
        return cls(grid, coeffs, dtype=dtype, name=name)

    @classmethod
    def from_function(cls, grid, function, name=None, check=None):
        """Build field by sampling function(x, y, z) on the physical grid."""
        return cls.from_grid_data(grid, sample(grid, function), name=name, check=check)

    @classmethod
    def constant(cls, grid, value, name=None):
        coeffs = np.zeros(grid.coeff_shape, dtype=np.complex128)
        coeffs[0, 0, grid.Lmax] = value * np.sqrt(4 * np.pi)
        dtype = np.complex128 if np.iscomplexobj(value) else np.float64
        return cls(grid, coeffs, dtype=dtype, name=name)

    def copy(self, name=None, invalid_modes=None):
        if invalid_modes is None:
            invalid_modes = self.invalid_modes
        return ScalarField(self.grid, self._coeffs, self.dtype, name or self.name, invalid_modes)

    ## Evaluation

    def evaluate(self, points, coords='cartesian'):
        """
        Evaluate the field at arbitrary points in the closed unit ball.

        Parameters
        ----------
        points : array
            Points of shape (3,) or (P, 3), as (x, y, z) or (r, theta, phi).
        coords : {'cartesian', 'spherical'}
            Coordinates of the points.

        """
        r, theta, phi, single = _points_to_spherical(points, coords)
        grid = self.grid
        out = np.zeros(r.shape, dtype=np.complex128)
        for start in range(0, r.size, EVALUATION_CHUNK_SIZE):
            chunk = slice(start, start + EVALUATION_CHUNK_SIZE)
            T = chebyshev.polynomials(grid.radial_size, r[chunk])
            Y = sphere.harmonics(grid.Lmax, theta[chunk], phi[chunk])
            out[chunk] = np.einsum('nlm,np,lmp->p', self._coeffs, T, Y, optimize=True)
        if self.is_real:
            out = out.real
        return out[0] if single else out

    def restrict(self, radius=1.0):
        """Restrict to the sphere of the given radius."""
        if not 0 <= radius <= 1:
            raise ValueError("Restriction radius must lie in [0, 1].")
        coeffs = chebyshev.clenshaw(self._coeffs, radius)
        coeffs[~self.grid.valid_sphere_modes] = 0
        return SphereScalarField(self.grid, coeffs, dtype=self.dtype, radius=radius, name=self.name)

    ## Norms

    def inner(self, other):
        """L2 inner product over the ball, conjugate-linear in self."""
        if not isinstance(other, ScalarField):
            raise TypeError("Inner product requires a ScalarField.")
        if other.grid is not self.grid:
            raise ValueError("Fields must share a grid.")
        G = self.grid.gram_matrix
        return np.einsum('nlm,nk,klm->', self._coeffs.conj(), G, other._coeffs, optimize=True) / 2

    def norm(self):
        """L2 norm over the unit ball."""
        return np.sqrt(max(self.inner(self).real, 0))

    ## Transformations

    def resample(self, grid):
        """Zero-pad or truncate coefficients onto another grid."""
        if grid is self.grid:
            return self
        coeffs = _resize_coeffs(self._coeffs, self.grid, grid)
        return ScalarField(grid, coeffs, dtype=self.dtype, name=self.name)

    def conjugate(self):
        """Complex conjugate, using conj(Y_lm) = (-1)**m Y_l(-m)."""
        if self.is_real:
            return self
        sign = (-1.0)**np.abs(self.grid.m)
        coeffs = sign * self._coeffs[:, :, ::-1].conj()
        return ScalarField(self.grid, coeffs, dtype=self.dtype, name=self.name)

    @property
    def real(self):
        if self.is_real:
            return self
        coeffs = (self._coeffs + self.conjugate()._coeffs) / 2
        return ScalarField(self.grid, coeffs, dtype=np.float64, name=self.name)

    @property
    def imag(self):
        if self.is_real:
            return ScalarField.zeros(self.grid, name=self.name)
        coeffs = (self._coeffs - self.conjugate()._coeffs) / 2j
        return ScalarField(self.grid, coeffs, dtype=np.float64, name=self.name)


def _resize_coeffs(coeffs, old, new):
    """Pad or truncate a coefficient tensor between grids, keeping m centered."""
    Lmin = min(old.Lmax, new.Lmax)
    data = resize_axis(coeffs, new.radial_size, 0)
    data = resize_axis(data, new.Lmax+1, 1)
    out = np.zeros(new.coeff_shape, dtype=np.complex128)
    out[:, :, new.Lmax-Lmin:new.Lmax+Lmin+1] = data[:, :, old.Lmax-Lmin:old.Lmax+Lmin+1]
    out[~new.valid_modes] = 0
    return out


class VectorField(Operand):
    """
    Vector field on the unit ball stored as Cartesian (x, y, z) components.

    Parameters
    ----------
    components : sequence of 3 ScalarFields
        Components sharing one grid.
    name : str, optional
        Field name.

    """

    def __init__(self, components, name=None):
        components = tuple(components)
        if len(components) != 3:
            raise ValueError("VectorField requires 3 components.")
        if not all(isinstance(c, ScalarField) for c in components):
            raise TypeError("VectorField components must be ScalarFields.")
        grid = components[0].grid
        if any(c.grid is not grid for c in components):
            raise ValueError("VectorField components must share a grid.")
        self.components = components
        self.grid = grid
        self.name = name
        if any(c.is_complex for c in components):
            self.dtype = np.dtype(np.complex128)
        else:
            self.dtype = np.dtype(np.float64)

    def __repr__(self):
        return "VectorField(%s, %r, dtype=%s)" % (self.name or id(self), self.grid, self.dtype)

    def __iter__(self):
        return iter(self.components)

    def __len__(self):
        return 3

    def __getitem__(self, key):
        """Component (0, 1, 2) or stacked coefficient ('c') / grid ('g') data."""
        if key == 'c':
            return self._coeffs
        elif key == 'g':
            return self._gdata
        else:
            return self.components[key]

    @CachedAttribute
    def _coeffs(self):
        return readonly(np.stack([c['c'] for c in self.components]))

    @CachedAttribute
    def _gdata(self):
        return readonly(np.stack([c['g'] for c in self.components]).astype(self.dtype, copy=False))

    @property
    def x(self):
        return self.components[0]

    @property
    def y(self):
        return self.components[1]

    @property
    def z(self):
        return self.components[2]

    ## Constructors

    @classmethod
    def zeros(cls, grid, dtype=np.float64, name=None):
        return cls([ScalarField.zeros(grid, dtype) for i in range(3)], name=name)

    @classmethod
    def from_coeffs(cls, grid, coeffs, dtype=np.complex128, name=None):
        coeffs = np.asarray(coeffs)
        if coeffs.shape != (3,) + grid.coeff_shape:
            raise ValueError("Coefficient shape %s does not match %s." % (coeffs.shape, (3,) + grid.coeff_shape))
        return cls([ScalarField(grid, c, dtype=dtype) for c in coeffs], name=name)

    @classmethod
    def from_grid_data(cls, grid, data, name=None, check=None):
        data = np.asarray(data)
        if data.shape != (3,) + grid.grid_shape:
            raise ValueError("Grid data shape %s does not match %s." % (data.shape, (3,) + grid.grid_shape))
        components = [ScalarField.from_grid_data(grid, d, check='none') for d in data]
        check_resolution(np.stack([c['c'] for c in components]), mode=check, name=name)
        return cls(components, name=name)

    @classmethod
    def from_functions(cls, grid, fx, fy, fz, name=None, check=None):
        """Build field by sampling one function(x, y, z) per Cartesian component."""
        data = np.stack([sample(grid, f) for f in (fx, fy, fz)])
        return cls.from_grid_data(grid, data, name=name, check=check)

    @classmethod
    def from_function(cls, grid, function, name=None, check=None):
        """Build field by sampling function(x, y, z) returning a 3-sequence."""
        x, y, z = grid.cartesian_grids()
        values = function(x, y, z)
        if len(values) != 3:
            raise ValueError("Vector function must return 3 components.")
        data = np.stack([np.broadcast_to(np.asarray(v), grid.grid_shape) for v in values])
        return cls.from_grid_data(grid, data, name=name, check=check)

    ## Evaluation

    def evaluate(self, points, coords='cartesian'):
        """Evaluate Cartesian components at points; returns shape (3,) or (P, 3)."""
        values = [c.evaluate(points, coords) for c in self.components]
        return np.stack(values, axis=-1)

    def restrict(self, radius=1.0, frame='cartesian'):
        """Restrict to the sphere of the given radius, in the requested frame."""
        if frame not in FRAMES:
            raise ValueError("Unknown frame: %s" % frame)
        data = np.stack([c.restrict(radius)['g'] for c in self.components])
        field = SphereVectorField(self.grid, data, frame='cartesian', radius=radius, name=self.name)
        return field.to_frame(frame)

    ## Norms

    def inner(self, other):
        if not isinstance(other, VectorField):
            raise TypeError("Inner product requires a VectorField.")
        return sum(a.inner(b) for a, b in zip(self.components, other.components))

    def norm(self):
        return np.sqrt(sum(c.norm()**2 for c in self.components))

    ## Transformations

    def resample(self, grid):
        return VectorField([c.resample(grid) for c in self.components], name=self.name)

    def conjugate(self):
        return VectorField([c.conjugate() for c in self.components], name=self.name)

    @property
    def real(self):
        return VectorField([c.real for c in self.components], name=self.name)

    @property
    def imag(self):
        return VectorField([c.imag for c in self.components], name=self.name)


class SphereScalarField(Operand):
    """
    Scalar field on a sphere of given radius, stored as spherical-harmonic
    coefficients indexed by [ell, m + Lmax].
    """

    def __init__(self, grid, coeffs, dtype=np.complex128, radius=1.0, name=None):
        coeffs = np.array(coeffs, dtype=np.complex128)
        shape = grid.coeff_shape[1:]
        if coeffs.shape != shape:
            raise ValueError("Coefficient shape %s does not match %s." % (coeffs.shape, shape))
        if not np.all(np.isfinite(coeffs)):
            raise ValueError("Coefficients must be finite.")
        if np.any(coeffs[~grid.valid_sphere_modes]):
            raise BasisConsistencyError("Coefficients with |m| > ell must vanish.")
        coeffs.flags.writeable = False
        self.grid = grid
        self.dtype = _check_dtype(dtype)
        self.radius = radius
        self.name = name
        self._coeffs = coeffs

    def __repr__(self):
        return "SphereScalarField(%s, %r, radius=%g)" % (self.name or id(self), self.grid, self.radius)

    def __getitem__(self, layout):
        if layout == 'c':
            return self._coeffs
        elif layout == 'g':
            return self._gdata
        else:
            raise KeyError("Layout must be 'c' or 'g', not %r." % (layout,))

    @CachedAttribute
    def _gdata(self):
        gdata = sphere_backward(self.grid, self._coeffs)
        if self.is_real:
            gdata = gdata.real.copy()
        return readonly(gdata)

    @classmethod
    def zeros(cls, grid, dtype=np.float64, radius=1.0, name=None):
        return cls(grid, np.zeros(grid.coeff_shape[1:]), dtype=dtype, radius=radius, name=name)

    @classmethod
    def from_grid_data(cls, grid, data, radius=1.0, name=None, check=None):
        data = np.asarray(data)
        if data.shape != grid.grid_shape[1:]:
            raise ValueError("Sphere data shape %s does not match %s." % (data.shape, grid.grid_shape[1:]))
        if not np.all(np.isfinite(data)):
            raise ValueError("Sphere data must be finite.")
        dtype = np.complex128 if np.iscomplexobj(data) else np.float64
        coeffs = sphere_forward(grid, data)
        check_resolution(coeffs, mode=check, radial=False, name=name)
        return cls(grid, coeffs, dtype=dtype, radius=radius, name=name)

    @classmethod
    def from_function(cls, grid, function, radius=1.0, name=None, check=None):
        """Build field by sampling function(phi, theta) on the sphere grid."""
        theta, phi = grid.sphere_grids()
        data = np.asarray(function(phi, theta))
        data = np.array(np.broadcast_to(data, grid.grid_shape[1:]))
        return cls.from_grid_data(grid, data, radius=radius, name=name, check=check)

    def evaluate(self, theta, phi):
        """Evaluate at colatitudes and longitudes of equal shape."""
        Y = sphere.harmonics(self.grid.Lmax, theta, phi)
        out = np.einsum('lm,lm...->...', self._coeffs, Y)
        return out.real if self.is_real else out

    def inner(self, other):
        """L2 inner product over the unit-sphere angles."""
        if not isinstance(other, SphereScalarField):
            raise TypeError("Inner product requires a SphereScalarField.")
        return np.vdot(self._coeffs, other._coeffs)

    def norm(self):
        """L2 norm over the unit-sphere angles."""
        return np.linalg.norm(self._coeffs)


class SphereVectorField(Operand):
    """
    Vector field on a sphere of given radius, stored as grid values of three
    components in a named frame: 'cartesian' (x, y, z) or 'spherical'
    (r, theta, phi).
    """

    def __init__(self, grid, data, frame='cartesian', radius=1.0, name=None):
        if frame not in FRAMES:
            raise ValueError("Unknown frame: %s" % frame)
        data = np.array(data)
        shape = (3,) + grid.grid_shape[1:]
        if data.shape != shape:
            raise ValueError("Sphere vector data shape %s does not match %s." % (data.shape, shape))
        if not np.all(np.isfinite(data)):
            raise ValueError("Sphere vector data must be finite.")
        if not np.iscomplexobj(data):
            data = data.astype(np.float64)
        data.flags.writeable = False
        self.grid = grid
        self.frame = frame
        self.radius = radius
        self.name = name
        self.dtype = data.dtype
        self._gdata = data

    def __repr__(self):
        return "SphereVectorField(%s, %r, frame=%s)" % (self.name or id(self), self.grid, self.frame)

    def __getitem__(self, key):
        if key == 'g':
            return self._gdata
        else:
            return self._gdata[key]

    def to_frame(self, frame):
        """Rotate components to another frame."""
        if frame not in FRAMES:
            raise ValueError("Unknown frame: %s" % frame)
        if frame == self.frame:
            return self
        theta, phi = self.grid.sphere_grids()
        basis = _spherical_basis(theta, phi)
        v = self._gdata
        if frame == 'spherical':
            # Project Cartesian components onto (e_r, e_theta, e_phi)
            data = [sum(e[i] * v[i] for i in range(3)) for e in basis]
        else:
            data = [sum(basis[j][i] * v[j] for j in range(3)) for i in range(3)]
        return SphereVectorField(self.grid, np.stack(data), frame=frame, radius=self.radius, name=self.name)

    def norm(self):
        """L2 norm over the unit-sphere angles by Gauss-Legendre and trapezoid quadrature."""
        weights = self.grid.colatitude_weights[:, None] * (2 * np.pi / self.grid.Nphi)
        return np.sqrt(np.sum(weights * np.sum(np.abs(self._gdata)**2, axis=0)))


def unit_normal(grid, frame='cartesian', radius=1.0):
    """Outward unit normal on the sphere of given radius."""
    theta, phi = grid.sphere_grids()
    e_r = _spherical_basis(theta, phi)[0]
    shape = grid.grid_shape[1:]
    if frame == 'cartesian':
        data = np.stack([np.broadcast_to(e, shape) for e in e_r])
    elif frame == 'spherical':
        data = np.zeros((3,) + shape)
        data[0] = 1
    else:
        raise ValueError("Unknown frame: %s" % frame)
    return SphereVectorField(grid, data, frame=frame, radius=radius, name='n')

