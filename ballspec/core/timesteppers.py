"""
Time-stepping driver for advection-diffusion in the ball.

"""

import time
import numpy as np

from .field import ScalarField, VectorField
from .arithmetic import dot
from .operators import gradient, divergence
from .solvers import SolverConfig, helmholtz
from .problems import BoundaryType

import logging
logger = logging.getLogger(__name__.split('.')[-1])

# Public interface
__all__ = ['AdvectionDiffusion']


class AdvectionDiffusion:
    """
    IMEX-BDF1 integrator for dc/dt + v.grad(c) = D lap(c) with no-flux walls.

    Each step treats diffusion implicitly through a Helmholtz solve with
    imaginary wavenumber K = i / sqrt(D dt) and advection explicitly:

        lap(c') + K**2 c' = K**2 c + dot(v, grad(c)) / D,   dc'/dr = 0 on r = 1.

    Parameters
    ----------
    c0 : ScalarField
        Initial concentration.
    velocity : VectorField
        Steady velocity on the same grid.
    diffusivity : float
        Diffusivity D > 0.
    timestep : float
        Timestep dt > 0.
    config : SolverConfig, optional
        Helmholtz options; the boundary type is always Neumann.
    stop_sim_time : float, optional
        Simulation stop time (default: infinity).
    stop_iteration : int, optional
        Stop iteration (default: infinity).

    """

    def __init__(self, c0, velocity, diffusivity, timestep, config=None,
                 stop_sim_time=np.inf, stop_iteration=np.inf):
        logger.debug('Beginning advection-diffusion instantiation')
        if not isinstance(c0, ScalarField):
            raise TypeError("Initial condition must be a ScalarField.")
        if not isinstance(velocity, VectorField):
            raise TypeError("Velocity must be a VectorField.")
        if velocity.grid is not c0.grid:
            raise ValueError("Initial condition and velocity must share a grid.")
        if not (np.isfinite(diffusivity) and diffusivity > 0):
            raise ValueError("Diffusivity must be positive, not %r." % (diffusivity,))
        if not (np.isfinite(timestep) and timestep > 0):
            raise ValueError("Timestep must be positive, not %r." % (timestep,))
        if config is None:
            config = SolverConfig()
        self.config = config.replace(boundary_type=BoundaryType.NEUMANN)
        self.state = c0
        self.velocity = velocity
        self.diffusivity = diffusivity
        self.dt = timestep
        self.K = 1j * np.sqrt(1 / (diffusivity * timestep))
        self.K2 = -1 / (diffusivity * timestep)
        self.sim_time = self.initial_sim_time = 0.
        self.iteration = self.initial_iteration = 0
        self.stop_sim_time = stop_sim_time
        self.stop_iteration = stop_iteration
        self.init_time = time.time()
        self._check_velocity()
        logger.debug('Finished advection-diffusion instantiation')

    def _check_velocity(self):
        scale = self.velocity.norm()
        if scale == 0:
            return
        residual = divergence(self.velocity).norm() / scale
        if residual > 1e-8:
            logger.warning("Velocity is not divergence-free (relative |div v| = %.2e); the scalar will not be conserved.", residual)

    @property
    def wall_time(self):
        """Seconds ellapsed since instantiation."""
        return time.time() - self.init_time

    @property
    def ok(self):
        """Check that current time and iteration pass stop conditions."""
        if self.sim_time >= self.stop_sim_time:
            logger.info('Simulation stop time reached.')
            return False
        elif self.iteration >= self.stop_iteration:
            logger.info('Stop iteration reached.')
            return False
        else:
            return True

    def step(self):
        """Advance the concentration by one timestep."""
        c = self.state
        rhs = self.K2 * c + dot(self.velocity, gradient(c)) / self.diffusivity
        self.state = helmholtz(rhs, self.K, 0, boundary_type=BoundaryType.NEUMANN, config=self.config)
        self.iteration += 1
        self.sim_time = self.initial_sim_time + (self.iteration - self.initial_iteration) * self.dt
        return self.state

    def evolve(self, stop_sim_time=None, callback=None, log_cadence=100, stop_iteration=None):
        """
        Advance until a stopping criterion is reached.

        Parameters
        ----------
        stop_sim_time : float, optional
            Overrides the stop time.
        callback : callable, optional
            Called as callback(self) after every step.
        log_cadence : int, optional
            Iterations between progress logs (default: 100).
        stop_iteration : int, optional
            Overrides the stop iteration.

        """
        if stop_sim_time is not None:
            self.stop_sim_time = stop_sim_time
        if stop_iteration is not None:
            self.stop_iteration = stop_iteration
        if np.isinf(self.stop_sim_time) and np.isinf(self.stop_iteration):
            raise ValueError("No stopping criterion specified.")
        try:
            logger.info("Starting main loop")
            while self.ok:
                self.step()
                if callback is not None:
                    callback(self)
                if (self.iteration - 1) % log_cadence == 0:
                    logger.info(f"Iteration={self.iteration}, Time={self.sim_time:e}, Step={self.dt:e}")
        except Exception:
            logger.error('Exception raised, triggering end of main loop.')
            raise
        finally:
            self.log_stats()
        return self.state

    def log_stats(self):
        """Log final iteration, time and norm."""
        logger.info(f"Final iteration: {self.iteration}")
        logger.info(f"Final sim time: {self.sim_time}")
        logger.info(f"Wall time: {self.wall_time:.4g} sec")
        logger.info(f"Final norm: {self.state.norm():.6e}")

