"""
Spherical-harmonic tools: Gauss quadrature, orthonormal associated Legendre
functions, and the ladder coefficients coupling neighbouring degrees.

Harmonics are Y_lm(theta, phi) = P_lm(cos theta) exp(i m phi), orthonormal on
the unit sphere, with the Condon-Shortley phase and P_l(-m) = (-1)**m P_lm.

"""

import numpy as np

from .cache import CachedFunction

internal_dtype = np.longdouble


def quadrature(N):
    """
    Gauss-Legendre quadrature in cos(theta), ordered by increasing colatitude.
    Returns cos_theta, weights.

    Integrates polynomials on (-1, +1) exactly up to degree 2*N-1.

    Parameters
    ----------
    N : int
        Number of nodes.

    """
    x, w = np.polynomial.legendre.leggauss(N)
    return x[::-1].copy(), w[::-1].copy()


def legendre(Lmax, m, cos_theta, dtype=np.float64):
    """
    Orthonormal associated Legendre functions P_lm(cos theta) for l = 0..Lmax.
    Rows with l < |m| are zero. Internal dtype = longdouble.

    Returns an array with shape (Lmax+1,) + cos_theta.shape.

    Parameters
    ----------
    Lmax : int >= 0
        Maximum spherical-harmonic degree.
    m : int
        Azimuthal wavenumber.
    cos_theta : np.ndarray or float

    """
    x = np.asarray(cos_theta, dtype=internal_dtype)
    sin_theta = np.sqrt((1 - x) * (1 + x))
    am = abs(m)
    P = np.zeros((Lmax+1,) + x.shape, dtype=internal_dtype)
    if am > Lmax:
        return P.astype(dtype)
    # Diagonal recursion up to P_mm
    Pmm = np.full(x.shape, 1 / np.sqrt(4 * np.pi, dtype=internal_dtype), dtype=internal_dtype)
    for k in range(1, am+1):
        Pmm = -np.sqrt((2*k + 1) / (2*k), dtype=internal_dtype) * sin_theta * Pmm
    P[am] = Pmm
    if am + 1 <= Lmax:
        P[am+1] = np.sqrt(2*am + 3, dtype=internal_dtype) * x * Pmm
    # Upward recursion in degree
    for ell in range(am+2, Lmax+1):
        a = np.sqrt((4*ell**2 - 1) / (ell**2 - am**2), dtype=internal_dtype)
        b = np.sqrt(((ell-1)**2 - am**2) / (4*(ell-1)**2 - 1), dtype=internal_dtype)
        P[ell] = a * (x * P[ell-1] - b * P[ell-2])
    if m < 0:
        P *= (-1)**am
    return P.astype(dtype)


@CachedFunction
def transform_matrices(Lmax, N):
    """
    Forward and backward colatitude matrices for every m = -Lmax..Lmax.

    Returns (forward, backward) with shapes (2*Lmax+1, Lmax+1, N) and
    (2*Lmax+1, N, Lmax+1); forward includes the quadrature weights.
    """
    cos_theta, weights = quadrature(N)
    backward = np.zeros((2*Lmax+1, N, Lmax+1), dtype=np.float64)
    for m in range(-Lmax, Lmax+1):
        backward[m+Lmax] = legendre(Lmax, m, cos_theta).T
    forward = np.transpose(backward, (0, 2, 1)) * weights
    forward.flags.writeable = False
    backward.flags.writeable = False
    return forward, backward


def harmonics(Lmax, theta, phi):
    """
    Spherical harmonics Y_lm at arbitrary points.

    Returns an array with shape (Lmax+1, 2*Lmax+1) + theta.shape indexed by
    [l, m + Lmax], zero where |m| > l.

    Parameters
    ----------
    Lmax : int >= 0
    theta, phi : np.ndarray
        Colatitude and longitude of the points (same shape).

    """
    theta = np.asarray(theta, dtype=np.float64)
    phi = np.asarray(phi, dtype=np.float64)
    cos_theta = np.cos(theta)
    Y = np.zeros((Lmax+1, 2*Lmax+1) + theta.shape, dtype=np.complex128)
    for m in range(-Lmax, Lmax+1):
        Y[:, m+Lmax] = legendre(Lmax, m, cos_theta) * np.exp(1j * m * phi)
    return Y


## Ladder coefficients
# For f = F(r) Y_lm, the Cartesian derivatives couple (l, m) to l +/- 1
# through the radial ladder operators D- F = F' - l F / r (raising) and
# D+ F = F' + (l+1) F / r (lowering):
#   dz f       = A_z  (D- F) Y_{l+1,m}   + B_z  (D+ F) Y_{l-1,m}
#   (dx+idy) f = A_p  (D- F) Y_{l+1,m+1} + B_p  (D+ F) Y_{l-1,m+1}
#   (dx-idy) f = A_m  (D- F) Y_{l+1,m-1} + B_m  (D+ F) Y_{l-1,m-1}

def _ratio(num, den):
    num = np.asarray(num, dtype=np.float64)
    den = np.asarray(den, dtype=np.float64)
    out = np.zeros(np.broadcast(num, den).shape, dtype=np.float64)
    mask = (num > 0) & (den > 0)
    np.divide(num, den, out=out, where=mask)
    return np.sqrt(out)


def z_coefficients(ell, m):
    """Coefficients (A_z, B_z) of the z derivative."""
    ell = np.asarray(ell)
    m = np.asarray(m)
    A = _ratio((ell+1)**2 - m**2, (2*ell+1)*(2*ell+3))
    B = _ratio(ell**2 - m**2, (2*ell-1)*(2*ell+1))
    return A, B


def plus_coefficients(ell, m):
    """Coefficients (A_p, B_p) of dx + i dy."""
    ell = np.asarray(ell)
    m = np.asarray(m)
    A = -_ratio((ell+m+1)*(ell+m+2), (2*ell+1)*(2*ell+3))
    B = _ratio((ell-m)*(ell-m-1), (2*ell-1)*(2*ell+1))
    return A, B


def minus_coefficients(ell, m):
    """Coefficients (A_m, B_m) of dx - i dy."""
    ell = np.asarray(ell)
    m = np.asarray(m)
    A = _ratio((ell-m+1)*(ell-m+2), (2*ell+1)*(2*ell+3))
    B = -_ratio((ell+m)*(ell+m-1), (2*ell-1)*(2*ell+1))
    return A, B

