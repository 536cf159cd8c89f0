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
Equations of motion of the Lagrangian points.

This module is the solid side of the fluid-structure coupling:

1.  **Advection of the boundary**: the points move with the fluid velocity
    interpolated at a *reference* position, `X += dt U(X_ref)`. Called once
    with the old velocity and `dt/2` (prediction) and once with the half-step
    velocity at the predicted positions (correction), this realizes the
    midpoint rule for the structure.
2.  **Porous and poroelastic slip**: porous points additionally slip along
    their normal in proportion to the local force; poroelastic points slip by
    the Brinkman drag that was removed from the spread force.
3.  **Massive points**: each mass point obeys Newton's law, driven by the
    reaction of its tether spring and by gravity. Its half-step / full-step
    bookkeeping is an explicit state machine, `MassPointCycle`.
"""
import dataclasses
import enum
from typing import Optional, Tuple

import jax.numpy as jnp
import numpy as np

from jax_ib2d.base import convolution_functions
from jax_ib2d.base import force_elements
from jax_ib2d.base import grids
from jax_ib2d.base import interpolation

Array = grids.Array


def move_lagrangian_points(
    viscosity: float,
    u: Array,
    v: Array,
    x: Array,
    y: Array,
    x_ref: Array,
    y_ref: Array,
    grid: grids.Grid,
    dt: float,
    kernel: convolution_functions.Kernel = convolution_functions.peskin_4pt,
    poroelastic: Optional[force_elements.PoroelasticPoints] = None,
    drag: Optional[Tuple[Array, Array]] = None,
    ds: Optional[float] = None,
) -> Tuple[Array, Array]:
  """
  Explicit Euler update of the points with the velocity at `X_ref`.

  Args:
    viscosity: dynamic viscosity, scales the poroelastic slip.
    u: x-velocity on the grid.
    v: y-velocity on the grid.
    x: x-coordinates being updated.
    y: y-coordinates being updated.
    x_ref: x-coordinates where the velocity is interpolated.
    y_ref: y-coordinates where the velocity is interpolated.
    grid: the Eulerian grid.
    dt: length of the update.
    kernel: discrete delta kernel.
    poroelastic: poroelastic points, if any.
    drag: Brinkman drag `(dx, dy)` from `IBM_Force.poroelastic_drag`.
    ds: Lagrangian spacing used to turn the drag into a slip velocity.

  Returns:
    The new coordinates, wrapped into the periodic box.
  """
  ux, uy = interpolation.interpolate_velocity(u, v, x_ref, y_ref, grid, kernel)
  x_new = x + dt * ux
  y_new = y + dt * uy
  if poroelastic is not None and drag is not None:
    ids = poroelastic.ids
    scale = dt / (viscosity * ds)
    x_new = x_new.at[ids].add(scale * drag[0][ids])
    y_new = y_new.at[ids].add(scale * drag[1][ids])
  return grid.wrap(x_new, y_new)


# Five-point first-derivative stencils along the porous fiber, one row per
# stencil flag -2..2, columns are the neighbour offsets -4..4.
_POROUS_STENCILS = np.array([
    [0, 0, 0, 0, -25 / 12, 4, -3, 4 / 3, -1 / 4],
    [0, 0, 0, -1 / 4, -5 / 6, 3 / 2, -1 / 2, 1 / 12, 0],
    [0, 0, 1 / 12, -2 / 3, 0, 2 / 3, -1 / 12, 0, 0],
    [0, -1 / 12, 1 / 2, -3 / 2, 5 / 6, 1 / 4, 0, 0, 0],
    [1 / 4, -4 / 3, 3, -4, 25 / 12, 0, 0, 0, 0],
])
_POROUS_OFFSETS = np.arange(-4, 5)


def porous_slip_velocity(
    x: Array,
    y: Array,
    fx: Array,
    fy: Array,
    porous: force_elements.PorousPoints,
    grid: grids.Grid,
    ds: float,
) -> Tuple[Array, Array]:
  """
  Normal slip velocity of the porous points (Darcy's law).

  `U_p = -alpha (F . n) / |X_s| n`, where `X_s` is the derivative of the
  position along the porous fiber (neighbours taken in the order the porous
  points are listed, periodically) and `n` the unit normal.

  Returns:
    `(ux, uy)`, one entry per porous point.
  """
  count = porous.ids.shape[0]
  px, py = x[porous.ids], y[porous.ids]
  neighbours = jnp.mod(jnp.arange(count)[:, None] + _POROUS_OFFSETS[None, :], count)
  dx, dy = grid.displacement(px[:, None], py[:, None], px[neighbours], py[neighbours])
  coeffs = jnp.asarray(_POROUS_STENCILS)[porous.stencil_flag + 2]
  xs = jnp.sum(coeffs * dx, axis=1) / ds
  ys = jnp.sum(coeffs * dy, axis=1) / ds
  norm = jnp.sqrt(xs**2 + ys**2)
  safe = jnp.where(norm > 0, norm, 1.0)
  nx, ny = ys / safe, -xs / safe
  normal_force = fx[porous.ids] * nx + fy[porous.ids] * ny
  speed = jnp.where(norm > 0, -porous.porosity * normal_force / safe, 0.0)
  return speed * nx, speed * ny


def apply_porous_slip(x, y, slip, porous, grid, dt):
  """Moves the porous points by `dt` times their slip velocity `(ux, uy)`."""
  ux, uy = slip
  x = x.at[porous.ids].add(dt * ux)
  y = y.at[porous.ids].add(dt * uy)
  return grid.wrap(x, y)


class MassPointPhase(enum.Enum):
  """Phases of the mass-point sub-cycle, in the order they must occur."""
  PREDICTED = 1
  VELOCITY_PREDICTED = 2
  ROLLED_BACK = 3
  ADVANCED = 4
  FINALIZED = 5


@dataclasses.dataclass(frozen=True)
class MassPointCycle:
  """
  One step of the mass-point dynamics as an explicit state machine.

  predict -> predict_velocity -> roll_back -> advance_position ->
  finalize_velocity

  1.  `predict`: save the positions and move the masses to the half step
      with the old velocity, so the tether force is evaluated at `t + dt/2`.
  2.  `predict_velocity`: `u_half = u + dt/2 a`, with `a` from the tether
      reaction at the half step and gravity.
  3.  `roll_back`: restore the saved positions.
  4.  `advance_position`: `X = X_saved + dt u_half`.
  5.  `finalize_velocity`: `u = u + dt a`.

  Calling a transition out of order raises `RuntimeError`.
  """
  masses: force_elements.MassPoints
  x_saved: Array
  y_saved: Array
  u_half: Optional[Array] = None
  v_half: Optional[Array] = None
  phase: MassPointPhase = MassPointPhase.PREDICTED

  def _require(self, phase: MassPointPhase):
    if self.phase is not phase:
      raise RuntimeError(f'mass point cycle is in phase {self.phase.name}, expected {phase.name}')

  @classmethod
  def predict(cls, masses: force_elements.MassPoints, dt: float, grid: grids.Grid) -> 'MassPointCycle':
    x_half, y_half = grid.wrap(masses.x_mass + 0.5 * dt * masses.u_mass,
                               masses.y_mass + 0.5 * dt * masses.v_mass)
    return cls(masses.replace(x_mass=x_half, y_mass=y_half), masses.x_mass, masses.y_mass)

  def _acceleration(self, fx, fy, gravity):
    mass = self.masses.mass
    return (fx + mass * gravity[0]) / mass, (fy + mass * gravity[1]) / mass

  def predict_velocity(self, fx: Array, fy: Array, dt: float, gravity: Array) -> 'MassPointCycle':
    """
    Args:
      fx: x-force on each mass (tether reaction).
      fy: y-force on each mass.
      dt: time step.
      gravity: gravity vector including its magnitude.
    """
    self._require(MassPointPhase.PREDICTED)
    ax, ay = self._acceleration(fx, fy, gravity)
    return dataclasses.replace(
        self, u_half=self.masses.u_mass + 0.5 * dt * ax, v_half=self.masses.v_mass + 0.5 * dt * ay,
        phase=MassPointPhase.VELOCITY_PREDICTED)

  def roll_back(self) -> 'MassPointCycle':
    self._require(MassPointPhase.VELOCITY_PREDICTED)
    return dataclasses.replace(
        self, masses=self.masses.replace(x_mass=self.x_saved, y_mass=self.y_saved),
        phase=MassPointPhase.ROLLED_BACK)

  def advance_position(self, dt: float, grid: grids.Grid) -> 'MassPointCycle':
    self._require(MassPointPhase.ROLLED_BACK)
    x_new, y_new = grid.wrap(self.x_saved + dt * self.u_half, self.y_saved + dt * self.v_half)
    return dataclasses.replace(
        self, masses=self.masses.replace(x_mass=x_new, y_mass=y_new),
        phase=MassPointPhase.ADVANCED)

  def finalize_velocity(self, fx: Array, fy: Array, dt: float, gravity: Array) -> 'MassPointCycle':
    self._require(MassPointPhase.ADVANCED)
    ax, ay = self._acceleration(fx, fy, gravity)
    masses = self.masses.replace(u_mass=self.masses.u_mass + dt * ax,
                                 v_mass=self.masses.v_mass + dt * ay)
    return dataclasses.replace(self, masses=masses, phase=MassPointPhase.FINALIZED)

  def result(self) -> force_elements.MassPoints:
    """The masses at the end of the step."""
    self._require(MassPointPhase.FINALIZED)
    return self.masses


def mass_point_reaction(masses: force_elements.MassPoints, points, grid: grids.Grid) -> Tuple[Array, Array]:
  """Force of the tether springs on the masses (reaction to `tether_force`)."""
  fx, fy = masses.tether_force(points, grid)
  return -fx, -fy
