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
"""Derived quantities reported at output time."""
from typing import NamedTuple

import jax.numpy as jnp

from jax_ib2d.base import finite_differences as fd
from jax_ib2d.base import grids

Array = grids.Array


def vorticity(u: Array, v: Array, grid: grids.Grid) -> Array:
  """`dv/dx - du/dy` with centered differences."""
  return fd.curl_2d(u, v, grid)


def velocity_magnitude(u: Array, v: Array) -> Array:
  return jnp.sqrt(u**2 + v**2)


def cfl_number(u: Array, v: Array, dt: float, grid: grids.Grid) -> float:
  """
  Advective CFL number `dt / dx * max(max|u|, max|v|)`.

  Each component is bounded separately, so a diagonal flow `u = v` reports
  `dt / dx * |u|`, not `dt / dx * sqrt(2) |u|`. On a grid with unequal
  spacing `dx` is the smaller step.
  """
  speed = jnp.maximum(jnp.max(jnp.abs(u)), jnp.max(jnp.abs(v)))
  return float(dt / min(grid.step) * speed)


class ForceDecomposition(NamedTuple):
  """Normal and tangential parts of the Lagrangian force at every point."""
  normal: Array
  tangential: Array
  normal_x: Array
  normal_y: Array


def normal_tangential_forces(x: Array, y: Array, fx: Array, fy: Array,
                             grid: grids.Grid) -> ForceDecomposition:
  """
  Splits the Lagrangian force into components normal and tangent to the fiber.

  The tangent at point `i` is the centered difference `X[i+1] - X[i-1]` along
  the point ordering, treated as a closed curve; the normal is the tangent
  rotated by -90 degrees.
  """
  tx, ty = grid.displacement(jnp.roll(x, 1), jnp.roll(y, 1), jnp.roll(x, -1), jnp.roll(y, -1))
  norm = jnp.sqrt(tx**2 + ty**2)
  safe = jnp.where(norm > 0, norm, 1.0)
  tx, ty = tx / safe, ty / safe
  nx, ny = ty, -tx
  return ForceDecomposition(fx * nx + fy * ny, fx * tx + fy * ty, nx, ny)
