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
The half-step predictor/corrector time stepper of the IB method.

`ib_predictor_corrector` is a factory: it takes the immutable run
configuration and the structure, and returns a `step_fn(state) -> state`
advancing the coupled fluid-structure system by one time step. One step is:

1.  **Predict** the Lagrangian positions at `t + dt/2` with the *old*
    velocity field (and the mass points with their old velocity).
2.  **Update parameters**: the activation series overrides spring
    stiffnesses, then every element update policy runs at the current time
    with the positions at the start of the step.
3.  **Assemble forces** at the half-step positions, including the mass-point
    tethers.
4.  **Mass points**: velocity/position sub-cycle with rollback, so the masses
    end the step synchronized with the fluid.
5.  **Spread** the Lagrangian force (minus the poroelastic drag), add the
    background-flow penalty and the Eulerian body forces, and **solve** the
    fluid for one step.
6.  **Correct** the positions to `t + dt` with the *half-step* velocity
    interpolated at the half-step positions (midpoint rule), then apply the
    porous slip, whose fiber normal comes from the corrected positions and
    whose force is the half-step Lagrangian force.
7.  **Passive fields**: tracers move with the half-step velocity; the
    concentration is advected and diffused with the new velocity.

Output, diagnostics and the terminal condition live in `simulation`.
"""
import dataclasses
import logging
from typing import Callable, Optional, Sequence, Type, TypeVar

import jax.numpy as jnp
import numpy as np

from jax_ib2d import config as config_lib
from jax_ib2d import errors
from jax_ib2d.base import advection
from jax_ib2d.base import equations
from jax_ib2d.base import force_elements as fe
from jax_ib2d.base import IBM_Force
from jax_ib2d.base import particle_class
from jax_ib2d.base import particle_motion

logger = logging.getLogger(__name__)

PyTreeState = TypeVar('PyTreeState')
TimeStepFn = Callable[[PyTreeState], PyTreeState]
ElementT = TypeVar('ElementT', bound=fe.ForceElement)


@dataclasses.dataclass(frozen=True, eq=False)
class ActivationSeries:
  """
  Precomputed electrophysiology signal driving spring stiffnesses.

  Row `n` of `potential` is consumed at step `n`; its entries govern the
  springs `start..end` (1-based, inclusive) through the fourth-power law
  `k = (8.5 V)^4`.

  Attributes:
    potential: array of shape `(num_steps, end - start + 1)`.
    start: first governed spring row, 1-based.
    end: last governed spring row, 1-based, inclusive.
  """
  potential: np.ndarray
  start: int
  end: int

  GAIN = 8.5
  POWER = 4

  def __post_init__(self):
    potential = np.atleast_2d(np.asarray(self.potential, dtype=float))
    object.__setattr__(self, 'potential', potential)
    if not 1 <= self.start <= self.end:
      raise errors.ConfigurationError(
          f'activation range must satisfy 1 <= start <= end, got [{self.start}, {self.end}]')
    if potential.shape[1] != self.end - self.start + 1:
      raise errors.ConfigurationError(
          f'activation series has {potential.shape[1]} columns but governs '
          f'{self.end - self.start + 1} springs')

  def check_compatible(self, num_steps: int, num_springs: int) -> None:
    """Raises `ConfigurationError` unless the series covers the run and the springs."""
    if self.potential.shape[0] < num_steps:
      raise errors.ConfigurationError(
          f'activation series has {self.potential.shape[0]} rows, run needs {num_steps}')
    if self.end > num_springs:
      raise errors.ConfigurationError(
          f'activation range ends at spring {self.end} but the structure has {num_springs} springs')

  def stiffness(self, step: int) -> jnp.ndarray:
    return jnp.asarray((self.GAIN * self.potential[step])**self.POWER)

  def apply(self, springs: fe.Springs, step: int) -> fe.Springs:
    stiffness = springs.stiffness.at[self.start - 1:self.end].set(self.stiffness(step))
    return springs.replace(stiffness=stiffness)


def find_element(elements: Sequence[fe.ForceElement], kind: Type[ElementT]) -> Optional[ElementT]:
  for element in elements:
    if type(element) is kind:
      return element
  return None


def _replace_element(elements, new_element):
  return tuple(new_element if type(element) is type(new_element) else element
               for element in elements)


def ib_predictor_corrector(
    config: config_lib.SimulationConfig,
    structure: particle_class.ImmersedStructure,
    background_flow: Optional[Callable] = None,
    activation: Optional[ActivationSeries] = None,
) -> TimeStepFn:
  """
  Returns a function that performs one predictor/corrector step.

  Args:
    config: immutable run configuration.
    structure: the immersed structure; decides which models are active.
    background_flow: optional `(time, grid, u, v) -> (fx, fy)` Eulerian
      penalty forcing (see `jax_ib2d.penalty.background_flow`).
    activation: optional electrophysiology series driving spring stiffness.
      Ignored when the structure has muscles.

  Returns:
    `step_fn(state) -> state`.
  """
  grid = config.grid
  dt = config.dt
  mu = config.viscosity
  rho = config.density
  kernel = config.kernel_fn
  ds = config.lagrangian_spacing
  gravity = config.gravity_vector() * config.gravity_strength
  g_hat = config.gravity_vector()

  has_muscles = structure.has(fe.Muscles, fe.Hill3Muscles)
  if activation is not None:
    springs = structure.find(fe.Springs)
    if springs is None:
      raise errors.ConfigurationError('an activation series requires springs to act on')
    activation.check_compatible(config.num_steps, len(springs))
    if has_muscles:
      logger.warning('structure has muscles; the activation series will not be applied')
  use_activation = activation is not None and not has_muscles

  def step_fn(state: particle_class.SimulationState) -> particle_class.SimulationState:
    time = state.time
    points = state.points
    u, v = state.u, state.v
    elements = state.elements

    # 1. Half-step prediction with the old velocity.
    x_half, y_half = particle_motion.move_lagrangian_points(
        mu, u, v, points.x, points.y, points.x, points.y, grid, 0.5 * dt, kernel)
    half_points = particle_class.LagrangianPoints(x_half, y_half, points.x_prev, points.y_prev)

    masses = find_element(elements, fe.MassPoints)
    cycle = None
    if masses is not None:
      cycle = particle_motion.MassPointCycle.predict(masses, dt, grid)
      elements = _replace_element(elements, cycle.masses)

    # 2. Activation-driven stiffness, then the element update policies at the current positions.
    if use_activation:
      springs = find_element(elements, fe.Springs)
      elements = _replace_element(elements, activation.apply(springs, state.step))
    elements = tuple(element.updated(time, points) for element in elements)

    # 3. Lagrangian force at the half step.
    lag_fx, lag_fy = IBM_Force.assemble_lagrangian_force(half_points, elements, grid, dt, time)

    # 4. Mass points: predict velocity, roll back, advance, finalize.
    if cycle is not None:
      reaction_x, reaction_y = particle_motion.mass_point_reaction(cycle.masses, half_points, grid)
      cycle = (cycle.predict_velocity(reaction_x, reaction_y, dt, gravity)
               .roll_back()
               .advance_position(dt, grid)
               .finalize_velocity(reaction_x, reaction_y, dt, gravity))
      elements = _replace_element(elements, cycle.result())

    # 5. Eulerian forcing and fluid solve.
    spread_fx, spread_fy = lag_fx, lag_fy
    poroelastic = find_element(elements, fe.PoroelasticPoints)
    drag = None
    if poroelastic is not None:
      drag = IBM_Force.poroelastic_drag(lag_fx, lag_fy, poroelastic)
      spread_fx, spread_fy = lag_fx - drag[0], lag_fy - drag[1]
    fx, fy = IBM_Force.spread_lagrangian_force(spread_fx, spread_fy, x_half, y_half, grid, kernel)

    if background_flow is not None:
      background_fx, background_fy = background_flow(time, grid, u, v)
      fx, fy = fx + background_fx, fy + background_fy
    if config.boussinesq:
      buoyancy_x, buoyancy_y = IBM_Force.boussinesq_force(
          state.concentration, rho, config.expansion_coeff, g_hat)
      fx, fy = fx + buoyancy_x, fy + buoyancy_y
    if config.fluid_gravity:
      gravity_x, gravity_y = IBM_Force.gravity_force(grid, rho, config.gravity_strength, g_hat)
      fx, fy = fx + gravity_x, fy + gravity_y

    fluid = equations.navier_stokes_half_step(u, v, fx, fy, mu, rho, dt, grid)

    # 6. Full-step correction with the half-step velocity at the half-step positions.
    x_new, y_new = particle_motion.move_lagrangian_points(
        mu, fluid.u_half, fluid.v_half, points.x, points.y, x_half, y_half, grid, dt, kernel,
        poroelastic=poroelastic, drag=drag, ds=ds)
    porous = find_element(elements, fe.PorousPoints)
    if porous is not None:
      slip = particle_motion.porous_slip_velocity(x_new, y_new, lag_fx, lag_fy, porous, grid, ds)
      x_new, y_new = particle_motion.apply_porous_slip(x_new, y_new, slip, porous, grid, dt)

    # 7. Passive tracers and concentration.
    tracers = state.tracers
    if tracers is not None:
      tracers = particle_motion.move_lagrangian_points(
          mu, fluid.u_half, fluid.v_half, tracers[0], tracers[1], tracers[0], tracers[1],
          grid, dt, kernel)
    concentration = state.concentration
    if concentration is not None:
      concentration = advection.advect_diffuse_concentration(
          concentration, fluid.u, fluid.v, config.concentration_diffusivity, dt, grid)

    return state.replace(
        time=time + dt,
        step=state.step + 1,
        u=fluid.u,
        v=fluid.v,
        p=fluid.p,
        points=particle_class.LagrangianPoints(x_new, y_new, x_half, y_half),
        elements=elements,
        fx=fx,
        fy=fy,
        lagrangian_fx=lag_fx,
        lagrangian_fy=lag_fy,
        tracers=tracers,
        concentration=concentration,
    )

  return step_fn
