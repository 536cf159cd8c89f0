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
Incompressible Navier-Stokes solver for a periodic 2D domain.

The fluid is advanced with Peskin's two-stage projection scheme. Given the
velocity `u^n` and a body force `f` (the spread Lagrangian force plus any
Eulerian body forces), one call performs:

1.  **Half step** (backward Euler diffusion, explicit advection at `u^n`):

        `(1 - dt/2 nu L) u^{n+1/2} + dt/(2 rho) grad p^{n+1/2}
              = u^n + dt/2 (f / rho - S(u^n) u^n)`

2.  **Full step** (Crank-Nicolson diffusion, explicit advection at the half
    step velocity):

        `(1 - dt/2 nu L) u^{n+1} + dt/rho grad p^{n+1/2}
              = u^n + dt (f / rho - S(u^{n+1/2}) u^{n+1/2}) + dt/2 nu L u^n`

    subject to `div u = 0` in both stages.

`S(u)u` is the skew-symmetric advection term and `L`, `grad`, `div` are the
periodic central-difference operators. Both linear systems are diagonal in
Fourier space and are solved exactly with FFTs.

The half-step velocity is returned alongside the new velocity because the
Lagrangian points are moved with it (midpoint rule).
"""
import functools
from typing import NamedTuple, Tuple

import jax
import jax.numpy as jnp
import tree_math

from jax_ib2d.base import advection
from jax_ib2d.base import grids
from jax_ib2d.base import pressure

Array = grids.Array


class FluidStep(NamedTuple):
  """Result of one fluid solve."""
  u_half: Array
  v_half: Array
  u: Array
  v: Array
  p: Array


def _fft(vector: tree_math.Vector) -> Tuple[Array, Array]:
  return tuple(jnp.fft.fft2(component) for component in vector.tree)


def _ifft(component_hat: Array) -> Array:
  return jnp.real(jnp.fft.ifft2(component_hat))


def _solve_fourier(rhs_hat, ops, implicit, density, tau):
  """Solves `A u_hat + (tau / rho) D p_hat = rhs_hat` with `D . u_hat = 0`."""
  rhs_u_hat, rhs_v_hat = rhs_hat
  p_hat = pressure.solve_pressure(rhs_u_hat, rhs_v_hat, ops, density, tau)
  u_hat, v_hat = pressure.subtract_pressure_gradient(
      rhs_u_hat, rhs_v_hat, p_hat, ops, density, tau)
  return u_hat / implicit, v_hat / implicit, p_hat


@functools.partial(jax.jit, static_argnames=('grid',))
def navier_stokes_half_step(
    u: Array,
    v: Array,
    fx: Array,
    fy: Array,
    viscosity: float,
    density: float,
    dt: float,
    grid: grids.Grid,
) -> FluidStep:
  """
  Advances the periodic fluid by one step of the two-stage projection scheme.

  Args:
    u: x-velocity at time level `n`.
    v: y-velocity at time level `n`.
    fx: x-component of the Eulerian force density.
    fy: y-component of the Eulerian force density.
    viscosity: dynamic viscosity `mu`.
    density: fluid density `rho`.
    dt: time step.
    grid: the periodic Eulerian grid.

  Returns:
    A `FluidStep` with the half-step velocity, the new velocity and the
    pressure. Non-finite forcing is propagated, not clamped.
  """
  ops = pressure.spectral_operators(grid)
  nu = viscosity / density
  implicit = 1.0 - 0.5 * dt * nu * ops.laplacian

  velocity = tree_math.Vector((u, v))
  forcing = tree_math.Vector((fx, fy)) / density

  # Stage 1: half step with the advection evaluated at u^n.
  advect_n = tree_math.Vector(advection.skew_symmetric_advection(u, v, grid))
  rhs = velocity + 0.5 * dt * (forcing - advect_n)
  u_half_hat, v_half_hat, _ = _solve_fourier(_fft(rhs), ops, implicit, density, 0.5 * dt)
  u_half, v_half = _ifft(u_half_hat), _ifft(v_half_hat)

  # Stage 2: full step with the advection evaluated at u^{n+1/2}.
  advect_half = tree_math.Vector(advection.skew_symmetric_advection(u_half, v_half, grid))
  rhs = velocity + dt * (forcing - advect_half)
  rhs_u_hat, rhs_v_hat = _fft(rhs)
  u_hat, v_hat = _fft(velocity)
  # Explicit half of the Crank-Nicolson diffusion.
  rhs_hat = (rhs_u_hat + 0.5 * dt * nu * ops.laplacian * u_hat,
             rhs_v_hat + 0.5 * dt * nu * ops.laplacian * v_hat)
  u_new_hat, v_new_hat, p_hat = _solve_fourier(rhs_hat, ops, implicit, density, dt)

  return FluidStep(u_half, v_half, _ifft(u_new_hat), _ifft(v_new_hat), _ifft(p_hat))
