"""
Custom exception classes.

"""


class BasisResolutionError(Exception):
    """Exception for inputs that the requested basis cannot resolve."""
    pass

class BasisConsistencyError(ValueError):
    """Exception for coefficients violating the pole or origin regularity constraints."""
    pass

class InvalidBoundaryConditionError(Exception):
    """Exception for boundary data inconsistent with the declared boundary type."""
    pass

class SingularSystemError(Exception):
    """
    Exception for singular or ill-conditioned Helmholtz modes.

    Parameters
    ----------
    modes : sequence of (ell, m) tuples
        Spherical-harmonic modes whose radial systems failed.
    rcond : dict, optional
        Estimated reciprocal condition number per failed degree ell.

    """

    def __init__(self, modes, rcond=None):
        self.modes = tuple(modes)
        self.rcond = dict(rcond or {})
        ells = sorted(set(ell for ell, m in self.modes))
        super().__init__(f"Singular Helmholtz system for degrees ell = {ells} ({len(self.modes)} modes)")

