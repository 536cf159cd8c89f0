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
Spread and interpolate operators between Lagrangian points and the grid.

These are the two halves of the IB coupling:

1.  **Spreading**: a Lagrangian quantity `F_k` carried by point `X_k` becomes
    the Eulerian density `f(x) = sum_k F_k delta_h(x - X_k)`.
2.  **Interpolation**: an Eulerian field `u` is evaluated at `X_k` as
    `U_k = sum_x u(x) delta_h(x - X_k) dx dy`.

Both operators use the same indices and the same weights, computed once by
`stencil_weights`, so interpolation is the exact discrete adjoint of
spreading. Instead of convolving every point against the whole grid, each
point only touches a fixed `4 x 4` block of nodes around it, gathered and
scattered with periodic (modulo) indices.
"""
import functools
from typing import Tuple

import jax
import jax.numpy as jnp
import numpy as np

from jax_ib2d.base import convolution_functions
from jax_ib2d.base import grids

Array = grids.Array
Kernel = convolution_functions.Kernel

# Node offsets of the stencil relative to `floor(x / dx)`.
_OFFSETS = np.arange(-1, convolution_functions.STENCIL_WIDTH - 1)


def _axis_weights(coord, lower, step, size, kernel):
  """Stencil indices and weights of a single coordinate along one axis."""
  s = (coord - lower) / step
  base = jnp.floor(s).astype(jnp.int32)
  nodes = base + _OFFSETS
  weights = kernel(s - nodes)
  return jnp.mod(nodes, size), weights


def stencil_weights(
    x: Array,
    y: Array,
    grid: grids.Grid,
    kernel: Kernel,
) -> Tuple[Array, Array, Array, Array]:
  """
  Computes the periodic stencil of every Lagrangian point.

  Args:
    x: x-coordinates of the points, shape `(Nb,)`.
    y: y-coordinates of the points, shape `(Nb,)`.
    grid: the Eulerian grid.
    kernel: 1D discrete delta kernel.

  Returns:
    `(ix, wx, iy, wy)`, each of shape `(Nb, 4)`: wrapped node indices and
    kernel weights along x and along y.
  """
  (x_lower, y_lower), (dx, dy), (nx, ny) = grid.lower, grid.step, grid.shape
  point_fn = lambda xp, yp: (
      _axis_weights(xp, x_lower, dx, nx, kernel)
      + _axis_weights(yp, y_lower, dy, ny, kernel))
  return jax.vmap(point_fn)(x, y)


@functools.partial(jax.jit, static_argnames=('grid', 'kernel'))
def spread(
    values: Array,
    x: Array,
    y: Array,
    grid: grids.Grid,
    kernel: Kernel = convolution_functions.peskin_4pt,
) -> Array:
  """
  Spreads one Lagrangian scalar per point onto the grid.

  The result is a density: `sum(result) * dx * dy == sum(values)`.

  Args:
    values: Lagrangian values, shape `(Nb,)`.
    x: x-coordinates of the points.
    y: y-coordinates of the points.
    grid: the Eulerian grid.
    kernel: 1D discrete delta kernel.

  Returns:
    Eulerian field of shape `grid.shape`.
  """
  dx, dy = grid.step
  ix, wx, iy, wy = stencil_weights(x, y, grid, kernel)
  contributions = (values[:, None, None] * wx[:, :, None] * wy[:, None, :]) / (dx * dy)
  field = jnp.zeros(grid.shape, dtype=contributions.dtype)
  # Repeated indices (several points sharing nodes) are accumulated by `.add`.
  return field.at[ix[:, :, None], iy[:, None, :]].add(contributions)


@functools.partial(jax.jit, static_argnames=('grid', 'kernel'))
def interpolate(
    field: Array,
    x: Array,
    y: Array,
    grid: grids.Grid,
    kernel: Kernel = convolution_functions.peskin_4pt,
) -> Array:
  """
  Evaluates an Eulerian field at the Lagrangian points.

  Args:
    field: Eulerian field of shape `grid.shape`.
    x: x-coordinates of the points.
    y: y-coordinates of the points.
    grid: the Eulerian grid.
    kernel: 1D discrete delta kernel.

  Returns:
    Interpolated values, shape `(Nb,)`.
  """
  ix, wx, iy, wy = stencil_weights(x, y, grid, kernel)
  block = field[ix[:, :, None], iy[:, None, :]]
  return jnp.sum(block * wx[:, :, None] * wy[:, None, :], axis=(1, 2))


def spread_vector(fx, fy, x, y, grid, kernel=convolution_functions.peskin_4pt):
  """Spreads both components of a Lagrangian vector quantity."""
  return spread(fx, x, y, grid, kernel), spread(fy, x, y, grid, kernel)


def interpolate_velocity(u, v, x, y, grid, kernel=convolution_functions.peskin_4pt):
  """Interpolates both velocity components at the Lagrangian points."""
  return interpolate(u, x, y, grid, kernel), interpolate(v, x, y, grid, kernel)
