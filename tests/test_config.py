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

from jax_ib2d import config as config_lib
from jax_ib2d import errors
from jax_ib2d.base import convolution_functions
from jax_ib2d.base import grids
from jax_ib2d.base import particle_class


def test_defaults(make_config):
  config = make_config()
  assert config.num_steps == 10
  assert config.kernel_fn is convolution_functions.peskin_4pt
  np.testing.assert_allclose(config.lagrangian_spacing, 1.0 / 64)
  np.testing.assert_allclose(config.gravity_vector(), [0.0, 0.0])
  np.testing.assert_allclose(config.kinematic_viscosity, 0.01)


def test_step_count_is_robust_to_round_off(make_config):
  assert make_config(dt=0.1, t_final=0.3).num_steps == 3
  assert make_config(dt=0.1, t_final=0.31).num_steps == 4
  assert make_config(t_final=0.0).num_steps == 0


def test_gravity_is_normalized(make_config):
  config = make_config(gravity=(3.0, -4.0))
  np.testing.assert_allclose(config.gravity, (0.6, -0.8))
  np.testing.assert_allclose(config.gravity_vector(), [0.6, -0.8])


@pytest.mark.parametrize('overrides', [
    dict(dt=0.0),
    dict(viscosity=-1.0),
    dict(density=0.0),
    dict(t_final=-1.0),
    dict(output_interval=-1),
    dict(kernel='gaussian'),
    dict(gravity=(0.0, 0.0)),
    dict(lagrangian_spacing=0.0),
])
def test_invalid_parameters(make_config, overrides):
  with pytest.raises(errors.ConfigurationError):
    make_config(**overrides)


def test_boussinesq_requires_gravity(make_config):
  with pytest.raises(errors.ConfigurationError, match='gravity'):
    make_config(boussinesq=True)


def test_fluid_gravity_requires_gravity(make_config):
  with pytest.raises(errors.ConfigurationError):
    make_config(fluid_gravity=True)


def test_zero_expansion_coefficient_falls_back_to_one(make_config, caplog):
  with caplog.at_level(logging.WARNING):
    config = make_config(boussinesq=True, gravity=(0.0, -1.0), expansion_coeff=0.0)
  assert config.expansion_coeff == 1.0
  assert 'expansion coefficient' in caplog.text


def test_grid_must_be_two_dimensional():
  with pytest.raises(errors.ConfigurationError):
    config_lib.SimulationConfig(grids.Grid((8, 8, 8)), 0.01, 1.0, 1e-3, 1e-2)


def test_configuration_error_is_a_value_error(make_config):
  with pytest.raises(ValueError):
    make_config(dt=-1.0)


def test_boussinesq_requires_concentration(make_config):
  config = make_config(boussinesq=True, gravity=(0.0, -1.0))
  structure = particle_class.ImmersedStructure([0.5], [0.5])
  with pytest.raises(errors.ConfigurationError, match='concentration'):
    particle_class.initial_state(config, structure)


def test_initial_state_checks_field_shapes(make_config):
  structure = particle_class.ImmersedStructure([0.5], [0.5])
  with pytest.raises(errors.ConfigurationError, match='shape'):
    particle_class.initial_state(make_config(), structure, u=jnp.zeros((4, 4)))


def test_initial_state_wraps_points(make_config):
  structure = particle_class.ImmersedStructure([1.25, -0.25], [0.5, 2.5])
  state = particle_class.initial_state(make_config(), structure)
  np.testing.assert_allclose(state.points.x, [0.25, 0.75])
  np.testing.assert_allclose(state.points.y, [0.5, 0.5])
  assert state.step == 0
  np.testing.assert_allclose(state.points.x_prev, state.points.x)
