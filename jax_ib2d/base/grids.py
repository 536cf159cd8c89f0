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
Describes the periodic Eulerian grid on which the fluid lives.

All Eulerian fields (velocity components, pressure, forcing, concentration)
are plain JAX arrays of shape `grid.shape`, indexed `[i, j]` with axis 0 along
x. Nodes sit at `x_i = x_lower + i * dx` and `y_j = y_lower + j * dy`, and the
domain is periodic in every direction: node `N` is node `0`.

The `Grid` is immutable and hashable, so it can be passed to `jax.jit` as a
static argument and shared by every operator of the solver.
"""
from __future__ import annotations

import dataclasses
import operator
from typing import Callable, Optional, Sequence, Tuple, Union

import jax
import jax.numpy as jnp
import numpy as np

Array = Union[np.ndarray, jax.Array]


@dataclasses.dataclass(init=False, frozen=True)
class Grid:
  """
  Describes the size, shape, and physical domain of the computational grid.

  The grid is defined by providing its `shape` (number of nodes) and either its
  physical `domain` or its `step` size.

  Attributes:
    shape: number of grid nodes in each dimension, `(Nx, Ny)`.
    step: grid spacing in each dimension, `(dx, dy)`.
    domain: `((x_min, x_max), (y_min, y_max))`; the upper bound is the
      periodic image of the lower one.
  """
  shape: Tuple[int, ...]
  step: Tuple[float, ...]
  domain: Tuple[Tuple[float, float], ...]

  def __init__(
      self,
      shape: Sequence[int],
      step: Optional[Union[float, Sequence[float]]] = None,
      domain: Optional[Union[float, Sequence[Tuple[float, float]]]] = None,
  ):
    shape = tuple(operator.index(s) for s in shape)
    object.__setattr__(self, 'shape', shape)

    if step is not None and domain is not None:
      raise TypeError('Cannot provide both `step` and `domain` to Grid constructor')
    elif domain is not None:
      if isinstance(domain, (int, float)):
        domain = ((0, domain),) * len(shape)
      else:
        if len(domain) != self.ndim:
          raise ValueError(f'length of domain does not match ndim: {len(domain)} vs {self.ndim}')
        for bounds in domain:
          if len(bounds) != 2:
            raise ValueError(f'domain must be a sequence of (lower, upper) pairs: {domain}')
      domain = tuple((float(lower), float(upper)) for lower, upper in domain)
    else:
      if step is None:
        step = 1.0
      if isinstance(step, (int, float)):
        step = (step,) * self.ndim
      elif len(step) != self.ndim:
        raise ValueError(f'length of step does not match ndim: {len(step)} vs {self.ndim}')
      domain = tuple(
          (0.0, float(step_ * size)) for step_, size in zip(step, shape))

    object.__setattr__(self, 'domain', domain)

    # Re-derived from the domain so that `step * shape == length` exactly.
    step = tuple(
        (upper - lower) / size for (lower, upper), size in zip(domain, shape))
    object.__setattr__(self, 'step', step)

  @property
  def ndim(self) -> int:
    """Returns the number of dimensions of this grid."""
    return len(self.shape)

  @property
  def length(self) -> Tuple[float, ...]:
    """Returns the physical period `(Lx, Ly)` of the domain."""
    return tuple(upper - lower for lower, upper in self.domain)

  @property
  def lower(self) -> Tuple[float, ...]:
    return tuple(lower for lower, _ in self.domain)

  def axes(self) -> Tuple[Array, ...]:
    """Returns the 1D node coordinates along each axis."""
    return tuple(lower + jnp.arange(size) * step
                 for (lower, _), size, step in zip(self.domain, self.shape, self.step))

  def mesh(self) -> Tuple[Array, ...]:
    """Returns N-D coordinate arrays, equivalent to `meshgrid(..., indexing='ij')`."""
    return tuple(jnp.meshgrid(*self.axes(), indexing='ij'))

  def eval_on_mesh(self, fn: Callable[..., Array]) -> Array:
    """Evaluates `fn(x, y)` at every node of the grid."""
    return fn(*self.mesh())

  def wrap(self, *coords: Array) -> Tuple[Array, ...]:
    """Maps Lagrangian coordinates back into `[lower, upper)` along each axis."""
    return tuple(lower + jnp.mod(c - lower, length)
                 for c, lower, length in zip(coords, self.lower, self.length))

  def displacement(self, x0: Array, y0: Array, x1: Array, y1: Array) -> Tuple[Array, Array]:
    """
    Returns the minimum-image displacement `(x1 - x0, y1 - y0)`.

    Lagrangian positions are wrapped into the periodic box, so two connected
    points can sit on opposite sides of the domain. The physical separation is
    the shortest periodic image of the raw difference.
    """
    lx, ly = self.length
    dx = x1 - x0
    dy = y1 - y0
    dx = dx - lx * jnp.round(dx / lx)
    dy = dy - ly * jnp.round(dy / ly)
    return dx, dy
