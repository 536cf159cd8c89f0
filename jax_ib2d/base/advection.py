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
Advection terms for the momentum equation and for the passive scalar.

Two different discretizations live here:

-   `skew_symmetric_advection` is used by the fluid solver. It averages the
    advective form `(u . grad) q` and the conservative form `div(u q)`, both
    with centered differences. For a discretely divergence-free velocity the
    skew-symmetric operator conserves kinetic energy, which keeps the
    explicit advection of the projection scheme stable.
-   `advect_diffuse_concentration` is the self-contained stencil update of
    the background concentration: first-order upwind advection plus a
    centered five-point diffusion, integrated with forward Euler.
"""
from typing import Tuple

import jax.numpy as jnp

from jax_ib2d.base import finite_differences as fd
from jax_ib2d.base import grids

Array = grids.Array


def _skew_symmetric_term(q: Array, u: Array, v: Array, grid: grids.Grid) -> Array:
  dx, dy = grid.step
  advective = u * fd.central_difference(q, 0, dx) + v * fd.central_difference(q, 1, dy)
  conservative = fd.central_difference(u * q, 0, dx) + fd.central_difference(v * q, 1, dy)
  return 0.5 * (advective + conservative)


def skew_symmetric_advection(u: Array, v: Array, grid: grids.Grid) -> Tuple[Array, Array]:
  """
  Computes `S(u)u = 1/2 [(u . grad) u + div(u u)]` for both components.

  Args:
    u: x-velocity on the grid.
    v: y-velocity on the grid.
    grid: the Eulerian grid.

  Returns:
    The advective terms for the x- and y-momentum equations.
  """
  return _skew_symmetric_term(u, u, v, grid), _skew_symmetric_term(v, u, v, grid)


def upwind_advection(c: Array, u: Array, v: Array, grid: grids.Grid) -> Array:
  """First-order upwind approximation of `(u . grad) c`."""
  dx, dy = grid.step
  dcdx = jnp.where(u > 0, fd.backward_difference(c, 0, dx), fd.forward_difference(c, 0, dx))
  dcdy = jnp.where(v > 0, fd.backward_difference(c, 1, dy), fd.forward_difference(c, 1, dy))
  return u * dcdx + v * dcdy


def advect_diffuse_concentration(
    c: Array,
    u: Array,
    v: Array,
    diffusivity: float,
    dt: float,
    grid: grids.Grid,
) -> Array:
  """
  Advances the passive scalar by one explicit step.

  `c_new = c + dt * (-(u . grad) c + kappa * lap(c))`

  Args:
    c: concentration field.
    u: x-velocity used for advection.
    v: y-velocity used for advection.
    diffusivity: diffusion coefficient `kappa`.
    dt: time step.
    grid: the Eulerian grid.

  Returns:
    The concentration at the next time level.
  """
  rate = -upwind_advection(c, u, v, grid) + diffusivity * fd.laplacian(c, grid)
  return c + dt * rate
