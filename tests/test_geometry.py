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

from jax_ib2d.base import geometry


def test_closed_curve_on_a_circle():
  x, y = geometry.closed_curve(geometry.param_circle, [0.25], (0.5, 0.4), 16)
  assert x.shape == (16,)
  np.testing.assert_allclose(jnp.hypot(x - 0.5, y - 0.4), 0.25, rtol=1e-12)


def test_ellipse_semi_axes():
  theta = jnp.array([0.0, jnp.pi / 2])
  np.testing.assert_allclose(geometry.param_ellipse([0.3, 0.1], theta), [0.3, 0.1], rtol=1e-12)


def test_ring_springs_close_the_curve():
  x, y = geometry.closed_curve(geometry.param_circle, [0.25], (0.5, 0.5), 8)
  springs = geometry.ring_springs(x, y, 5.0)
  np.testing.assert_array_equal(springs.master, np.arange(8))
  np.testing.assert_array_equal(springs.slave, np.roll(np.arange(8), -1))
  np.testing.assert_allclose(springs.rest_length, 2 * 0.25 * np.sin(np.pi / 8), rtol=1e-12)
  np.testing.assert_allclose(springs.stiffness, 5.0)


def test_ring_beams_curvature_is_uniform():
  x, y = geometry.closed_curve(geometry.param_circle, [0.25], (0.5, 0.5), 12)
  beams = geometry.ring_beams(x, y, 1.0)
  np.testing.assert_allclose(beams.curvature, beams.curvature[0], rtol=1e-10)
  np.testing.assert_array_equal(beams.mid, np.arange(12))
