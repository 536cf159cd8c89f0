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
import logging

import jax.numpy as jnp
import numpy as np
import pytest

from jax_ib2d import errors
from jax_ib2d import simulation
from jax_ib2d.base import force_elements as fe
from jax_ib2d.base import geometry
from jax_ib2d.base import particle_class


def _ring(num_points=24):
  x, y = geometry.closed_curve(geometry.param_ellipse, [0.2, 0.15], (0.5, 0.5), num_points)
  springs = geometry.ring_springs(x, y, 100.0)
  return particle_class.ImmersedStructure(x, y, (springs,))


def test_output_cadence(make_config, caplog):
  config = make_config(output_interval=5)
  snapshots = []
  with caplog.at_level(logging.INFO):
    state = simulation.run_simulation(config, _ring(), output_fn=snapshots.append)
  assert [s.step for s in snapshots] == [0, 5, 10]
  assert state.step == 10
  np.testing.assert_allclose(state.time, 1e-3)
  assert caplog.text.count('Current Time(s)') == 2
  assert 'springs (24)' in caplog.text


def test_no_output_when_interval_is_zero(make_config):
  snapshots = []
  simulation.run_simulation(make_config(), _ring(), output_fn=snapshots.append)
  assert snapshots == []


def test_snapshot_contents(make_config, grid):
  config = make_config(output_interval=10)
  snapshots = []
  simulation.run_simulation(config, _ring(), output_fn=snapshots.append, force_decomposition=True)
  last = snapshots[-1]
  assert last.u.shape == grid.shape
  assert last.vorticity.shape == grid.shape
  assert last.x.shape == (24,)
  assert last.force_decomposition.normal.shape == (24,)
  assert last.cfl >= 0.0
  assert snapshots[0].force_decomposition is not None


def test_tensioned_ring_holds_its_area_and_pressure(make_config):
  x, y = geometry.closed_curve(geometry.param_circle, [0.2], (0.5, 0.5), 32)
  springs = geometry.ring_springs(x, y, 50.0)
  springs = springs.replace(rest_length=0.5 * springs.rest_length)
  structure = particle_class.ImmersedStructure(x, y, (springs,))
  state = simulation.run_simulation(make_config(dt=1e-4, t_final=5e-3), structure)

  def area(px, py):
    px, py = np.asarray(px), np.asarray(py)
    return 0.5 * abs(np.sum(px * np.roll(py, -1) - np.roll(px, -1) * py))

  # The enclosed fluid is incompressible, so the tension is held by a pressure jump.
  np.testing.assert_allclose(area(state.points.x, state.points.y), area(x, y), rtol=1e-3)
  assert float(state.p[16, 16]) > float(state.p[0, 0])


def test_non_finite_velocity_aborts(make_config, grid):
  config = make_config()
  structure = _ring()
  u = jnp.zeros(grid.shape).at[3, 4].set(jnp.nan)
  state = particle_class.initial_state(config, structure, u=u)
  with pytest.raises(errors.NumericalDivergenceError):
    simulation.run_simulation(config, structure, state=state)


def test_check_finite_passes_healthy_state(make_config):
  config = make_config()
  structure = _ring()
  simulation.check_finite(particle_class.initial_state(config, structure))


def test_state_must_match_structure(make_config):
  config = make_config()
  state = particle_class.initial_state(config, _ring(12))
  with pytest.raises(errors.ConfigurationError):
    simulation.run_simulation(config, _ring(24), state=state)


def test_bad_element_fails_before_stepping(make_config):
  with pytest.raises(errors.StructureIndexError):
    particle_class.ImmersedStructure([0.1, 0.2], [0.1, 0.2],
                                     (fe.Springs.from_rows([[1, 3, 1.0, 0.1]]),))
