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
import pytest

from jax_ib2d.base import equations
from jax_ib2d.base import finite_differences as fd
from jax_ib2d.base import grids
from jax_ib2d.base import pressure

MU, RHO, DT = 0.01, 1.0, 1e-3

NON_SQUARE = grids.Grid((32, 16), domain=((0.0, 2.0), (0.0, 0.5)))


def _random_fields(grid, seed):
  rng = np.random.default_rng(seed)
  return [jnp.asarray(rng.normal(size=grid.shape)) for _ in range(4)]


def test_fluid_at_rest_stays_at_rest(grid):
  zeros = jnp.zeros(grid.shape)
  step = equations.navier_stokes_half_step(zeros, zeros, zeros, zeros, MU, RHO, DT, grid)
  for field in step:
    np.testing.assert_allclose(field, 0.0, atol=1e-14)


def test_uniform_force_accelerates_uniformly(grid):
  zeros = jnp.zeros(grid.shape)
  ones = jnp.ones(grid.shape)
  step = equations.navier_stokes_half_step(zeros, zeros, ones, zeros, MU, RHO, DT, grid)
  np.testing.assert_allclose(step.u_half, 0.5 * DT, atol=1e-14)
  np.testing.assert_allclose(step.u, DT, atol=1e-14)
  np.testing.assert_allclose(step.v, 0.0, atol=1e-14)


def test_uniform_flow_is_preserved(grid):
  u = jnp.full(grid.shape, 1.3)
  v = jnp.full(grid.shape, -0.4)
  zeros = jnp.zeros(grid.shape)
  step = equations.navier_stokes_half_step(u, v, zeros, zeros, MU, RHO, DT, grid)
  np.testing.assert_allclose(step.u, 1.3, atol=1e-12)
  np.testing.assert_allclose(step.v, -0.4, atol=1e-12)


@pytest.mark.parametrize('shape', ['square', 'non_square'])
def test_velocity_is_discretely_divergence_free(grid, shape):
  grid = NON_SQUARE if shape == 'non_square' else grid
  u, v, fx, fy = _random_fields(grid, 0)
  step = equations.navier_stokes_half_step(u, v, fx, fy, MU, RHO, DT, grid)
  np.testing.assert_allclose(fd.divergence(step.u, step.v, grid), 0.0, atol=1e-9)
  np.testing.assert_allclose(fd.divergence(step.u_half, step.v_half, grid), 0.0, atol=1e-9)


@pytest.mark.parametrize('shape', ['square', 'non_square'])
def test_solver_is_shift_equivariant(grid, shape):
  grid = NON_SQUARE if shape == 'non_square' else grid
  fields = _random_fields(grid, 1)
  shift = (3, -5)
  rolled = [jnp.roll(field, shift, axis=(0, 1)) for field in fields]
  step = equations.navier_stokes_half_step(*fields, MU, RHO, DT, grid)
  step_rolled = equations.navier_stokes_half_step(*rolled, MU, RHO, DT, grid)
  for expected, actual in zip(step, step_rolled):
    np.testing.assert_allclose(actual, jnp.roll(expected, shift, axis=(0, 1)), atol=1e-10)


def test_pressure_null_space_is_zero(grid):
  ops = pressure.spectral_operators(grid)
  nx, ny = grid.shape
  rhs = jnp.ones(grid.shape, dtype=complex)
  p_hat = pressure.solve_pressure(rhs, rhs, ops, RHO, DT)
  assert p_hat[0, 0] == 0
  assert p_hat[nx // 2, ny // 2] == 0
  assert ops.ddx[nx // 2, 0] == 0


def _taylor_green(grid, amplitude):
  """One-mode vortex built on the discrete derivatives, so it is discretely divergence-free."""
  (lx, ly), (dx, dy) = grid.length, grid.step
  kx, ky = 2 * np.pi / lx, 2 * np.pi / ly
  sx, sy = np.sin(kx * dx) / dx, np.sin(ky * dy) / dy
  scale = amplitude / np.hypot(sx, sy)
  x, y = grid.mesh()
  u = scale * sy * jnp.sin(kx * x) * jnp.cos(ky * y)
  v = -scale * sx * jnp.cos(kx * x) * jnp.sin(ky * y)
  return u, v, kx**2 + ky**2


def _decay_error(grid, amplitude, num_steps):
  u0, v0, wavenumber_sq = _taylor_green(grid, amplitude)
  u, v = u0, v0
  zeros = jnp.zeros(grid.shape)
  for _ in range(num_steps):
    step = equations.navier_stokes_half_step(u, v, zeros, zeros, MU, RHO, DT, grid)
    u, v = step.u, step.v
  decay = np.exp(-wavenumber_sq * MU / RHO * num_steps * DT)
  return max(float(jnp.max(jnp.abs(u - decay * u0))), float(jnp.max(jnp.abs(v - decay * v0))))


def test_taylor_green_decay():
  # u = sin(2 pi x) cos(2 pi y) / sqrt(2) decays like exp(-2 k^2 nu t).
  coarse = _decay_error(grids.Grid((32, 32), domain=((0.0, 1.0), (0.0, 1.0))), 1.0, 100)
  fine = _decay_error(grids.Grid((64, 64), domain=((0.0, 1.0), (0.0, 1.0))), 1.0, 100)
  assert coarse < 2e-3
  assert fine < coarse / 3


def test_taylor_green_decay_on_non_square_grid():
  amplitude = 1e-3
  error = _decay_error(NON_SQUARE, amplitude, 100)
  assert error < 5e-3 * amplitude
