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
"""Shared fixtures; the whole suite runs in double precision."""
import jax

jax.config.update('jax_enable_x64', True)

import pytest  # noqa: E402

from jax_ib2d import config as config_lib  # noqa: E402
from jax_ib2d.base import grids  # noqa: E402


@pytest.fixture
def grid():
  return grids.Grid((32, 32), domain=((0.0, 1.0), (0.0, 1.0)))


@pytest.fixture
def make_config(grid):
  def _make(**overrides):
    params = dict(grid=grid, viscosity=0.01, density=1.0, dt=1e-4, t_final=1e-3)
    params.update(overrides)
    return config_lib.SimulationConfig(**params)
  return _make
