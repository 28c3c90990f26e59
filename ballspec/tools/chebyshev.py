"""
Chebyshev and ultraspherical tools for the doubled-up radial variable.

Radial profiles are expanded as F(r) = sum_n c_n T_n(r) on r in [-1, 1],
where a profile of spherical-harmonic degree ell has the parity of r**ell.
Dense matrices act on T coefficients; the sparse ultraspherical matrices map
T coefficients into the C(1) = U and C(2) bases, where differentiation and
multiplication by r are banded.

"""

import numpy as np
from scipy import sparse

from .cache import CachedFunction

dtype = np.float64


@CachedFunction
def build_grid(N):
    """Chebyshev-Gauss (first-kind roots) grid on (-1, 1), in decreasing order."""
    j = np.arange(N, dtype=np.longdouble)
    return np.cos(np.pi * (j + 0.5) / N).astype(dtype)


def polynomials(N, x):
    """
    Chebyshev polynomials T_n(x) for n < N by three-term recursion.

    Returns an array of shape (N,) + x.shape.
    """
    x = np.asarray(x, dtype=dtype)
    T = np.zeros((N,) + x.shape, dtype=dtype)
    if N > 0:
        T[0] = 1
    if N > 1:
        T[1] = x
    for n in range(2, N):
        T[n] = 2*x*T[n-1] - T[n-2]
    return T


def polynomial_derivatives(N, x):
    """Derivatives T_n'(x) for n < N, from T_n' = n U_{n-1}."""
    x = np.asarray(x, dtype=dtype)
    U = np.zeros((N,) + x.shape, dtype=dtype)
    if N > 0:
        U[0] = 1
    if N > 1:
        U[1] = 2*x
    for n in range(2, N):
        U[n] = 2*x*U[n-1] - U[n-2]
    dT = np.zeros_like(U)
    n = np.arange(1, N).reshape((-1,) + (1,)*x.ndim)
    dT[1:] = n * U[:-1]
    return dT


def clenshaw(coeffs, x):
    """
    Evaluate sum_n coeffs[n] T_n(x) by Clenshaw recurrence.

    Parameters
    ----------
    coeffs : array
        Coefficients with the Chebyshev index along axis 0.
    x : float
        Evaluation point.

    """
    b1 = np.zeros_like(coeffs[0])
    b2 = np.zeros_like(coeffs[0])
    for n in reversed(range(1, coeffs.shape[0])):
        b1, b2 = coeffs[n] + 2*x*b1 - b2, b1
    return coeffs[0] + x*b1 - b2


@CachedFunction
def derivative_matrix(N):
    """Dense T -> T differentiation matrix."""
    D = np.zeros((N, N), dtype=dtype)
    for n in range(1, N):
        D[n-1::-2, n] = 2 * n
        if n % 2 == 1:
            D[0, n] = n
    return D


@CachedFunction
def division_matrix(N):
    """
    Dense T -> T matrix for division by r.

    Exact for profiles vanishing at the origin; for even profiles it returns
    (F(r) - F(0)) / r, dropping the singular part.
    """
    F = np.identity(N, dtype=dtype)
    G = np.zeros((N+1, N), dtype=dtype)
    # r G = F gives f_n = (g_{n-1} + g_{n+1}) / 2 for n >= 2
    for n in range(N-1, 1, -1):
        G[n-1] = 2*F[n] - G[n+1]
    if N > 1:
        G[0] = F[1] - G[2] / 2
    return G[:N]


def integrals(n):
    """Integrals of T_n over [-1, 1]."""
    n = np.asarray(n)
    out = np.zeros(n.shape, dtype=dtype)
    even = (n % 2 == 0)
    out[even] = 2 / (1 - n[even].astype(dtype)**2)
    return out


@CachedFunction
def gram_matrix(N):
    """
    Gram matrix G[j, k] = int_{-1}^{1} T_j T_k r**2 dr.

    Half of this integrates the ball measure r**2 dr over [0, 1] for
    profiles of definite parity.
    """
    def weighted(n):
        # r**2 T_n = (T_{n+2} + 2 T_n + T_{|n-2|}) / 4
        return (integrals(n+2) + 2*integrals(n) + integrals(np.abs(n-2))) / 4
    j = np.arange(N)[:, None]
    k = np.arange(N)[None, :]
    return (weighted(j+k) + weighted(np.abs(j-k))) / 2


@CachedFunction
def dirichlet_row(N):
    """Row evaluating a T series at r = 1."""
    return np.ones(N, dtype=dtype)


@CachedFunction
def neumann_row(N):
    """Row evaluating the derivative of a T series at r = 1."""
    return np.arange(N, dtype=dtype)**2


## Ultraspherical matrices (square, size N)

@CachedFunction
def conversion_T_to_U(N):
    """T_n = (U_n - U_{n-2}) / 2, with T_0 = U_0."""
    diag0 = np.full(N, 0.5, dtype=dtype)
    diag0[0] = 1
    diag2 = np.full(max(N-2, 0), -0.5, dtype=dtype)
    return sparse.diags([diag0, diag2], [0, 2], shape=(N, N), format='csr')


@CachedFunction
def conversion_U_to_C2(N):
    """U_n = (C2_n - C2_{n-2}) / (n + 1)."""
    n = np.arange(N, dtype=dtype)
    diag0 = 1 / (n + 1)
    diag2 = -1 / (n[2:] + 1)
    return sparse.diags([diag0, diag2], [0, 2], shape=(N, N), format='csr')


@CachedFunction
def differentiation_T_to_U(N):
    """T_n' = n U_{n-1}."""
    n = np.arange(1, N, dtype=dtype)
    return sparse.diags([n], [1], shape=(N, N), format='csr')


@CachedFunction
def differentiation_T_to_C2(N):
    """T_n'' = 2 n C2_{n-2}."""
    n = np.arange(2, N, dtype=dtype)
    return sparse.diags([2*n], [2], shape=(N, N), format='csr')


@CachedFunction
def multiplication_C2(N):
    """r C2_n = ((n+1) C2_{n+1} + (n+3) C2_{n-1}) / (2 (n+2))."""
    n = np.arange(N, dtype=dtype)
    lower = (n[:-1] + 1) / (2 * (n[:-1] + 2))
    upper = (n[1:] + 3) / (2 * (n[1:] + 2))
    return sparse.diags([lower, upper], [-1, 1], shape=(N, N), format='csr')

