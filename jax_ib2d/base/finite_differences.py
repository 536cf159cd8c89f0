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
Periodic finite difference operators on collocated grids.

Every operator shifts its input with `jnp.roll`, which is exactly the
periodic wrap-around stencil; there are no ghost cells and no boundary
branches. Derivatives along axis 0 are x-derivatives, along axis 1
y-derivatives.

The central-difference operators defined here are the real-space
counterparts of the Fourier symbols used in `pressure`, so the velocity
returned by the fluid solver has zero `divergence` to round-off.
"""
from typing import Tuple

import jax.numpy as jnp

from jax_ib2d.base import grids

Array = grids.Array


def central_difference(u: Array, axis: int, step: float) -> Array:
  """`(u[i+1] - u[i-1]) / (2 h)` along `axis`."""
  return (jnp.roll(u, -1, axis=axis) - jnp.roll(u, 1, axis=axis)) / (2 * step)


def forward_difference(u: Array, axis: int, step: float) -> Array:
  """`(u[i+1] - u[i]) / h` along `axis`."""
  return (jnp.roll(u, -1, axis=axis) - u) / step


def backward_difference(u: Array, axis: int, step: float) -> Array:
  """`(u[i] - u[i-1]) / h` along `axis`."""
  return (u - jnp.roll(u, 1, axis=axis)) / step


def gradient(u: Array, grid: grids.Grid) -> Tuple[Array, Array]:
  """Central-difference gradient `(du/dx, du/dy)`."""
  return tuple(central_difference(u, axis, step) for axis, step in enumerate(grid.step))


def laplacian(u: Array, grid: grids.Grid) -> Array:
  """Five-point Laplacian."""
  result = jnp.zeros_like(u)
  for axis, step in enumerate(grid.step):
    result += (jnp.roll(u, -1, axis=axis) - 2 * u + jnp.roll(u, 1, axis=axis)) / step**2
  return result


def divergence(u: Array, v: Array, grid: grids.Grid) -> Array:
  """Central-difference divergence `du/dx + dv/dy`."""
  dx, dy = grid.step
  return central_difference(u, 0, dx) + central_difference(v, 1, dy)


def curl_2d(u: Array, v: Array, grid: grids.Grid) -> Array:
  """Scalar curl (vorticity) `dv/dx - du/dy`."""
  dx, dy = grid.step
  return central_difference(v, 0, dx) - central_difference(u, 1, dy)
