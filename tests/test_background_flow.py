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

from jax_ib2d import errors
from jax_ib2d.base import grids
from jax_ib2d.penalty import background_flow


def test_smoothed_band():
  coord = jnp.array([0.0, 0.3, 0.5, 0.7, 1.0])
  band = background_flow.smoothed_band(coord, 0.2, 0.8, 0.01)
  np.testing.assert_allclose(band, [0.0, 1.0, 1.0, 1.0, 0.0], atol=1e-6)


def test_mask_is_built_on_first_call(grid):
  penalty = background_flow.InflowPenalty(stiffness=10.0, band=(0.25, 0.5), width=0.01)
  assert penalty.mask is None
  zeros = jnp.zeros(grid.shape)
  fx, fy = penalty(0.0, grid, zeros, zeros)
  assert penalty.mask.shape == grid.shape
  xx, _ = grid.mesh()
  inside = (xx > 0.3) & (xx < 0.45)
  outside = (xx < 0.15) | (xx > 0.6)
  np.testing.assert_allclose(fx[inside], 10.0, rtol=1e-3)
  np.testing.assert_allclose(fx[outside], 0.0, atol=1e-3)
  np.testing.assert_allclose(fy, 0.0)


def test_force_vanishes_at_the_target_velocity(grid):
  penalty = background_flow.InflowPenalty(stiffness=10.0, band=(0.25, 0.5),
                                          target_velocity=(0.5, -0.25))
  fx, fy = penalty(0.0, grid, jnp.full(grid.shape, 0.5), jnp.full(grid.shape, -0.25))
  np.testing.assert_allclose(fx, 0.0, atol=1e-12)
  np.testing.assert_allclose(fy, 0.0, atol=1e-12)


def test_time_dependent_target_along_y(grid):
  penalty = background_flow.InflowPenalty(stiffness=1.0, band=(0.25, 0.5), axis=1, width=0.01,
                                          target_velocity=lambda t: (0.0, 2.0 * t))
  zeros = jnp.zeros(grid.shape)
  _, fy = penalty(0.5, grid, zeros, zeros)
  _, yy = grid.mesh()
  np.testing.assert_allclose(fy[yy == 0.375], 1.0, rtol=1e-3)


def test_different_grid_is_rejected(grid):
  penalty = background_flow.InflowPenalty(stiffness=1.0, band=(0.25, 0.5))
  zeros = jnp.zeros(grid.shape)
  penalty(0.0, grid, zeros, zeros)
  other = grids.Grid((16, 16), domain=((0.0, 1.0), (0.0, 1.0)))
  with pytest.raises(errors.ConfigurationError):
    penalty(0.0, other, jnp.zeros(other.shape), jnp.zeros(other.shape))


@pytest.mark.parametrize('kwargs', [
    dict(stiffness=-1.0, band=(0.0, 1.0)),
    dict(stiffness=1.0, band=(0.5, 0.5)),
    dict(stiffness=1.0, band=(0.0, 0.5), axis=2),
])
def test_invalid_penalty(kwargs):
  with pytest.raises(errors.ConfigurationError):
    background_flow.InflowPenalty(**kwargs)
