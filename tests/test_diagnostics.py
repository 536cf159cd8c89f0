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
import jax.numpy as jnp
import numpy as np

from jax_ib2d.base import diagnostics
from jax_ib2d.base import geometry


def test_vorticity_of_shear_flow(grid):
  _, yy = grid.mesh()
  u = jnp.sin(2 * jnp.pi * yy)
  v = jnp.zeros(grid.shape)
  dy = grid.step[1]
  # Centered difference of sin(2 pi y).
  expected = -jnp.sin(2 * jnp.pi * dy) / dy * jnp.cos(2 * jnp.pi * yy)
  np.testing.assert_allclose(diagnostics.vorticity(u, v, grid), expected, atol=1e-10)


def test_solid_body_rotation_has_no_vorticity_error_in_the_interior(grid):
  xx, yy = grid.mesh()
  u = -(yy - 0.5)
  v = xx - 0.5
  omega = diagnostics.vorticity(u, v, grid)
  np.testing.assert_allclose(omega[4:-4, 4:-4], 2.0, atol=1e-10)


def test_velocity_magnitude():
  np.testing.assert_allclose(diagnostics.velocity_magnitude(jnp.array(3.0), jnp.array(4.0)), 5.0)


def test_cfl_number(grid):
  u = jnp.full(grid.shape, 2.0)
  v = jnp.zeros(grid.shape)
  assert isinstance(diagnostics.cfl_number(u, v, 1e-3, grid), float)
  np.testing.assert_allclose(diagnostics.cfl_number(u, v, 1e-3, grid), 1e-3 * 2.0 * 32)


def test_cfl_number_bounds_each_component(grid):
  u = jnp.full(grid.shape, 3.0)
  v = jnp.full(grid.shape, -4.0)
  np.testing.assert_allclose(diagnostics.cfl_number(u, v, 1e-3, grid), 1e-3 * 4.0 * 32)
  np.testing.assert_allclose(diagnostics.cfl_number(u, -u, 1e-3, grid), 1e-3 * 3.0 * 32)


def test_radial_force_is_normal(grid):
  x, y = geometry.closed_curve(geometry.param_circle, [0.2], (0.5, 0.5), 32)
  fx, fy = 3.0 * (x - 0.5) / 0.2, 3.0 * (y - 0.5) / 0.2
  split = diagnostics.normal_tangential_forces(x, y, fx, fy, grid)
  np.testing.assert_allclose(jnp.abs(split.normal), 3.0, rtol=1e-10)
  np.testing.assert_allclose(split.tangential, 0.0, atol=1e-10)
  np.testing.assert_allclose(split.normal_x**2 + split.normal_y**2, 1.0, rtol=1e-12)
