"""
ballspec script advecting and diffusing a passive scalar inside the unit ball.
It should be ran serially and takes under a minute at the default resolution.

The scalar c obeys
    dt(c) + dot(v, grad(c)) = D lap(c)
    dr(c)(r=1) = 0
with a steady swirling velocity v = curl(w), where
    w = z exp(-5 r**2) (x, y, z).
The velocity is divergence free and tangent to the boundary, so the total
scalar is conserved while gradients are sheared and diffused away.

Each step solves a Neumann Helmholtz problem for the implicit diffusion, with
the advection treated explicitly.

To run and write checkpoints:
    $ python3 advection_diffusion.py
"""

import pathlib
import numpy as np
import ballspec.public as bs
import logging
logger = logging.getLogger(__name__)


# Parameters
order = 48
diffusivity = 1 / 5000
timestep = 0.05
stop_sim_time = 15
checkpoint_cadence = 50
output_dir = pathlib.Path('checkpoints')

# Grid
grid = bs.build_grid(order)

# Velocity
envelope = lambda x, y, z: np.exp(-5*(x**2 + y**2 + z**2))
w = bs.VectorField.from_function(grid, lambda x, y, z: (x*z*envelope(x, y, z), y*z*envelope(x, y, z), z**2*envelope(x, y, z)))
velocity = bs.curl(w)
velocity.name = 'v'
logger.info('Boundary normal velocity: %.2e' %bs.dot(velocity.restrict(1.0), bs.unit_normal(grid)).norm())

# Initial condition
c0 = bs.ScalarField.from_function(grid, lambda x, y, z: -x * envelope(x, y, z), name='c')
total = c0.inner(bs.ScalarField.constant(grid, 1.0))

# Checkpoints
def checkpoint(solver):
    if solver.iteration % checkpoint_cadence == 0:
        solver.state.name = 'c'
        bs.save_field(solver.state, output_dir / f'c_{solver.iteration:05d}.h5')
        drift = abs(solver.state.inner(bs.ScalarField.constant(grid, 1.0)) - total)
        logger.info('Iteration=%i, norm=%.6e, total drift=%.2e' %(solver.iteration, solver.state.norm(), drift))

# Main loop
solver = bs.AdvectionDiffusion(c0, velocity, diffusivity, timestep, stop_sim_time=stop_sim_time)
bs.save_field(velocity, output_dir / 'velocity.h5')
solver.evolve(callback=checkpoint, log_cadence=50)
