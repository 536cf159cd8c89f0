# Copyright 2021 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Assembles the forces the immersed structure exerts on the fluid.

The forcing term of the Navier-Stokes equations is built in three layers:

1.  **Lagrangian force**: every force element kind adds its nodal
    contribution into one `(Nb,)` pair of arrays
    (`assemble_lagrangian_force`).
2.  **Poroelastic drag**: at poroelastic points a Brinkman drag
    `alpha / (1 + alpha) F` is removed from the force before spreading; the
    motion integrator turns it into a slip of those points.
3.  **Spreading and body forces**: the remaining Lagrangian force is spread
    to the grid with the discrete delta function, and the Eulerian body
    forces (uniform gravity, Boussinesq buoyancy, background-flow penalty)
    are added directly on the grid.

Force assembly only reads positions; all results are fresh arrays.
"""
import functools
from typing import Sequence, Tuple

import jax
import jax.numpy as jnp

from jax_ib2d.base import convolution_functions
from jax_ib2d.base import force_elements
from jax_ib2d.base import grids
from jax_ib2d.base import interpolation

Array = grids.Array


@functools.partial(jax.jit, static_argnames=('grid',))
def assemble_lagrangian_force(
    points,
    elements: Sequence[force_elements.ForceElement],
    grid: grids.Grid,
    dt: float,
    time: float,
) -> Tuple[Array, Array]:
  """
  Sums the nodal force of every element kind.

  Args:
    points: `LagrangianPoints` at which the forces are evaluated.
    elements: the element kinds of the structure, in a fixed order.
    grid: the Eulerian grid (provides the periodic box).
    dt: time step, used by rate-dependent models.
    time: simulation time, passed to activation and user force functions.

  Returns:
    `(fx, fy)`, the total Lagrangian force on each point.
  """
  fx = jnp.zeros_like(points.x)
  fy = jnp.zeros_like(points.y)
  for element in elements:
    if not element.nodal:
      continue
    efx, efy = element.compute_force(points, grid, dt, time)
    fx = fx + efx
    fy = fy + efy
  return fx, fy


def poroelastic_drag(
    fx: Array,
    fy: Array,
    poroelastic: force_elements.PoroelasticPoints,
) -> Tuple[Array, Array]:
  """
  Brinkman drag at the poroelastic points.

  Returns `(dx, dy)`, zero everywhere except at poroelastic points where it is
  `alpha / (1 + alpha)` times the local Lagrangian force.
  """
  ids = poroelastic.ids
  coeff = poroelastic.porosity / (1.0 + poroelastic.porosity)
  drag_x = jnp.zeros_like(fx).at[ids].add(coeff * fx[ids])
  drag_y = jnp.zeros_like(fy).at[ids].add(coeff * fy[ids])
  return drag_x, drag_y


def spread_lagrangian_force(
    fx: Array,
    fy: Array,
    x: Array,
    y: Array,
    grid: grids.Grid,
    kernel: convolution_functions.Kernel = convolution_functions.peskin_4pt,
) -> Tuple[Array, Array]:
  """Spreads the Lagrangian force to an Eulerian force density."""
  return interpolation.spread_vector(fx, fy, x, y, grid, kernel)


def gravity_force(grid: grids.Grid, density: float, strength: float, g_hat: Array) -> Tuple[Array, Array]:
  """Uniform body force `rho g g_hat`."""
  return (jnp.full(grid.shape, density * strength * g_hat[0]),
          jnp.full(grid.shape, density * strength * g_hat[1]))


def boussinesq_force(concentration: Array, density: float, expansion_coeff: float,
                     g_hat: Array) -> Tuple[Array, Array]:
  """Boussinesq buoyancy `rho beta g_hat C`."""
  scale = density * expansion_coeff * concentration
  return scale * g_hat[0], scale * g_hat[1]


def integrate_field(field: Array, grid: grids.Grid) -> Array:
  """Integrates a field over the periodic domain."""
  # On a periodic grid the trapezoidal rule reduces to the plain sum.
  dx, dy = grid.step
  return jnp.sum(field) * dx * dy
