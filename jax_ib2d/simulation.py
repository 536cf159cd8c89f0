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
Driver loop of a simulation.

`run_simulation` validates the model, builds the step function and advances
the state until `time >= t_final`. Every `output_interval` steps it logs the
time and the CFL number and hands a `Snapshot` to the output collaborator;
the initial state is also reported. After every step the fields are checked
for non-finite values and the run is aborted with
`NumericalDivergenceError` if the solve has blown up.
"""
import dataclasses
import logging
from typing import Callable, Optional, Tuple

import jax.numpy as jnp

from jax_ib2d import config as config_lib
from jax_ib2d import errors
from jax_ib2d.base import diagnostics
from jax_ib2d.base import grids
from jax_ib2d.base import particle_class
from jax_ib2d.base import time_stepping

logger = logging.getLogger(__name__)

Array = grids.Array


@dataclasses.dataclass(frozen=True)
class Snapshot:
  """Data handed to the output collaborator."""
  time: float
  step: int
  u: Array
  v: Array
  p: Array
  vorticity: Array
  velocity_magnitude: Array
  cfl: float
  x: Array
  y: Array
  fx: Array
  fy: Array
  lagrangian_fx: Array
  lagrangian_fy: Array
  force_decomposition: Optional[diagnostics.ForceDecomposition] = None
  tracers: Optional[Tuple[Array, Array]] = None
  concentration: Optional[Array] = None


def make_snapshot(state: particle_class.SimulationState, config: config_lib.SimulationConfig,
                  force_decomposition: bool = False) -> Snapshot:
  grid = config.grid
  decomposition = None
  if force_decomposition:
    decomposition = diagnostics.normal_tangential_forces(
        state.points.x, state.points.y, state.lagrangian_fx, state.lagrangian_fy, grid)
  return Snapshot(
      time=float(state.time),
      step=int(state.step),
      u=state.u,
      v=state.v,
      p=state.p,
      vorticity=diagnostics.vorticity(state.u, state.v, grid),
      velocity_magnitude=diagnostics.velocity_magnitude(state.u, state.v),
      cfl=diagnostics.cfl_number(state.u, state.v, config.dt, grid),
      x=state.points.x,
      y=state.points.y,
      fx=state.fx,
      fy=state.fy,
      lagrangian_fx=state.lagrangian_fx,
      lagrangian_fy=state.lagrangian_fy,
      force_decomposition=decomposition,
      tracers=state.tracers,
      concentration=state.concentration,
  )


def check_finite(state: particle_class.SimulationState) -> None:
  """Raises `NumericalDivergenceError` naming the first non-finite quantity."""
  quantities = (
      ('velocity u', state.u),
      ('velocity v', state.v),
      ('pressure', state.p),
      ('Lagrangian force', jnp.stack([state.lagrangian_fx, state.lagrangian_fy])),
      ('Lagrangian positions', jnp.stack([state.points.x, state.points.y])),
  )
  for name, value in quantities:
    if not bool(jnp.all(jnp.isfinite(value))):
      message = f'{name} is not finite at step {state.step} (t = {float(state.time):.6g})'
      logger.error('simulation diverged: %s', message)
      raise errors.NumericalDivergenceError(message)


def run_simulation(
    config: config_lib.SimulationConfig,
    structure: particle_class.ImmersedStructure,
    state: Optional[particle_class.SimulationState] = None,
    output_fn: Optional[Callable[[Snapshot], None]] = None,
    background_flow: Optional[Callable] = None,
    activation: Optional[time_stepping.ActivationSeries] = None,
    force_decomposition: bool = False,
) -> particle_class.SimulationState:
  """
  Runs the simulation until `t_final`.

  Args:
    config: run configuration.
    structure: immersed structure.
    state: initial state; defaults to the fluid at rest and the structure at
      its input positions.
    output_fn: called with a `Snapshot` at `t = 0` and every
      `config.output_interval` steps.
    background_flow: optional Eulerian background-flow forcing.
    activation: optional electrophysiology series.
    force_decomposition: include the normal/tangential force split in the
      snapshots.

  Returns:
    The final state.

  Raises:
    ConfigurationError: before the first step, if a prerequisite is missing.
    NumericalDivergenceError: if a field becomes non-finite.
  """
  if state is None:
    state = particle_class.initial_state(config, structure)
  if config.boussinesq and state.concentration is None:
    raise errors.ConfigurationError('Boussinesq forcing requires a background concentration field')
  if state.points.num_points != structure.num_points:
    raise errors.ConfigurationError(
        f'state has {state.points.num_points} points, structure has {structure.num_points}')

  step_fn = time_stepping.ib_predictor_corrector(config, structure, background_flow, activation)

  logger.info('fiber model includes: %s', ', '.join(structure.describe()) or 'no force elements')
  logger.info('grid %s on %s, dt = %g, t_final = %g (%d steps)',
              config.grid.shape, config.grid.domain, config.dt, config.t_final, config.num_steps)

  reporting = config.output_interval > 0
  if reporting and output_fn is not None:
    output_fn(make_snapshot(state, config, force_decomposition))

  while state.step < config.num_steps:
    state = step_fn(state)
    if config.check_finite:
      check_finite(state)
    if reporting and state.step % config.output_interval == 0:
      snapshot = make_snapshot(state, config, force_decomposition)
      logger.info('Current Time(s): %.6f, CFL: %.4f', snapshot.time, snapshot.cfl)
      if output_fn is not None:
        output_fn(snapshot)

  logger.info('simulation finished at t = %.6f after %d steps', float(state.time), state.step)
  return state
