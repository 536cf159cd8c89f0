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
Data structures for the immersed structure and the simulation state.

-   `LagrangianPoints`: positions of the `Nb` structural points at the
    current step and at the previous step (rate-dependent models estimate
    velocities from the difference).
-   `ImmersedStructure`: the structure as supplied by a loader: initial
    positions plus one force element object per element kind.
-   `SimulationState`: everything that changes from one step to the next.

The containers are registered as JAX PyTrees, so the whole state can be
passed through `jit`-compiled functions. Element and point counts never
change during a run; each step produces a new state instead of mutating the
old one.
"""
import dataclasses
from typing import Any, Optional, Sequence, Tuple, Type

import jax.numpy as jnp
from jax.tree_util import register_pytree_node_class

from jax_ib2d import config as config_lib
from jax_ib2d import errors
from jax_ib2d.base import force_elements
from jax_ib2d.base import grids

Array = grids.Array
PyTree = Any


@register_pytree_node_class
@dataclasses.dataclass
class LagrangianPoints:
  """Current and previous-step positions of the Lagrangian points."""
  x: Array
  y: Array
  x_prev: Array
  y_prev: Array

  @classmethod
  def at_rest(cls, x, y) -> 'LagrangianPoints':
    """Points whose previous positions equal the current ones."""
    x, y = jnp.asarray(x, dtype=float), jnp.asarray(y, dtype=float)
    return cls(x, y, x, y)

  @property
  def num_points(self) -> int:
    return self.x.shape[0]

  def tree_flatten(self):
    children = (self.x, self.y, self.x_prev, self.y_prev)
    return children, None

  @classmethod
  def tree_unflatten(cls, aux_data, children):
    return cls(*children)


@dataclasses.dataclass
class ImmersedStructure:
  """
  The immersed structure: initial point positions and force elements.

  Construction validates every element against the number of points, so an
  element referencing a missing point id fails before any time stepping.

  Attributes:
    x: initial x-coordinates, shape `(Nb,)`.
    y: initial y-coordinates, shape `(Nb,)`.
    elements: force element objects, at most one per kind.
  """
  x: Array
  y: Array
  elements: Tuple[force_elements.ForceElement, ...] = ()

  def __post_init__(self):
    self.x = jnp.asarray(self.x, dtype=float)
    self.y = jnp.asarray(self.y, dtype=float)
    if self.x.shape != self.y.shape or self.x.ndim != 1:
      raise errors.ConfigurationError(
          f'x and y must be 1D arrays of equal length, got {self.x.shape} and {self.y.shape}')
    self.elements = tuple(self.elements)
    kinds = [type(element) for element in self.elements]
    duplicates = {kind.name for kind in kinds if kinds.count(kind) > 1}
    if duplicates:
      raise errors.ConfigurationError(
          f'each element kind may appear once; duplicated: {sorted(duplicates)}')
    for element in self.elements:
      element.validate(self.num_points)

  @property
  def num_points(self) -> int:
    return self.x.shape[0]

  def find(self, kind: Type[force_elements.ForceElement]) -> Optional[force_elements.ForceElement]:
    """Returns the element of exactly this kind, if the structure has one."""
    for element in self.elements:
      if type(element) is kind:
        return element
    return None

  def has(self, *kinds: Type[force_elements.ForceElement]) -> bool:
    return any(self.find(kind) is not None for kind in kinds)

  def describe(self) -> Sequence[str]:
    """Human readable list of the element kinds and their counts."""
    return [f'{element.name} ({len(element)})' for element in self.elements]


@register_pytree_node_class
@dataclasses.dataclass
class SimulationState:
  """
  The full state of a run at one time level.

  Attributes:
    time: simulation time.
    step: number of completed steps.
    u: x-velocity on the grid.
    v: y-velocity on the grid.
    p: pressure from the last fluid solve.
    points: Lagrangian points.
    elements: force elements, in the same order as the structure.
    fx: x-component of the Eulerian force of the last step.
    fy: y-component of the Eulerian force of the last step.
    lagrangian_fx: Lagrangian force of the last step, x-component.
    lagrangian_fy: Lagrangian force of the last step, y-component.
    tracers: optional `(x, y)` of passive tracer particles.
    concentration: optional background scalar field.
  """
  time: Any
  step: int
  u: Array
  v: Array
  p: Array
  points: LagrangianPoints
  elements: Tuple[force_elements.ForceElement, ...]
  fx: Array
  fy: Array
  lagrangian_fx: Array
  lagrangian_fy: Array
  tracers: Optional[Tuple[Array, Array]] = None
  concentration: Optional[Array] = None

  def tree_flatten(self):
    children = (self.time, self.step, self.u, self.v, self.p, self.points, self.elements,
                self.fx, self.fy, self.lagrangian_fx, self.lagrangian_fy,
                self.tracers, self.concentration)
    return children, None

  @classmethod
  def tree_unflatten(cls, aux_data, children):
    return cls(*children)

  def replace(self, **changes) -> 'SimulationState':
    return dataclasses.replace(self, **changes)

  def find(self, kind: Type[force_elements.ForceElement]) -> Optional[force_elements.ForceElement]:
    for element in self.elements:
      if type(element) is kind:
        return element
    return None


def initial_state(
    config: config_lib.SimulationConfig,
    structure: ImmersedStructure,
    u: Optional[Array] = None,
    v: Optional[Array] = None,
    tracers: Optional[Tuple[Array, Array]] = None,
    concentration: Optional[Array] = None,
) -> SimulationState:
  """
  Builds the state at `t = 0`.

  The fluid starts at rest unless `u`, `v` are given; Lagrangian points start
  at the structure positions (wrapped into the periodic box).

  Raises:
    ConfigurationError: if a field does not match the grid, or Boussinesq
      forcing is enabled without a background concentration.
  """
  grid = config.grid
  zeros = jnp.zeros(grid.shape)
  u = zeros if u is None else jnp.asarray(u, dtype=float)
  v = zeros if v is None else jnp.asarray(v, dtype=float)
  for name, field in (('u', u), ('v', v), ('concentration', concentration)):
    if field is not None and jnp.shape(field) != grid.shape:
      raise errors.ConfigurationError(
          f'{name} has shape {jnp.shape(field)}, expected grid shape {grid.shape}')
  if config.boussinesq and concentration is None:
    raise errors.ConfigurationError(
        'Boussinesq forcing requires a background concentration field')
  if concentration is not None:
    concentration = jnp.asarray(concentration, dtype=float)
  if tracers is not None:
    tracers = grid.wrap(jnp.asarray(tracers[0], dtype=float), jnp.asarray(tracers[1], dtype=float))

  x, y = grid.wrap(structure.x, structure.y)
  points = LagrangianPoints.at_rest(x, y)
  lagrangian_zeros = jnp.zeros_like(points.x)
  return SimulationState(
      time=0.0, step=0, u=u, v=v, p=zeros, points=points, elements=structure.elements,
      fx=zeros, fy=zeros, lagrangian_fx=lagrangian_zeros, lagrangian_fy=lagrangian_zeros,
      tracers=tracers, concentration=concentration)
