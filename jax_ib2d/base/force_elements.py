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
Library of structural force elements acting on the Lagrangian points.

Each element kind is a JAX PyTree dataclass holding the parameters of *all*
elements of that kind as parallel arrays (struct-of-arrays), so that the
force of a kind is evaluated with a handful of vectorized gathers and
scatters instead of a loop over elements.

Every kind implements the same contract:

-   `compute_force(points, grid, dt, time) -> (fx, fy)`: the nodal force
    contribution, two arrays of shape `(Nb,)`. Contributions of all kinds are
    added together by `IBM_Force.assemble_lagrangian_force`.
-   `validate(num_points)`: raises `StructureIndexError` if a referenced
    point does not exist.
-   `updated(time, points)`: applies the optional update policy
    `update_fn(element, time, points) -> element`. Without a policy the
    element parameters never change.
-   `from_rows(rows, ...)`: builds the element from the loader's row schema,
    where point ids are 1-based. Ids are stored 0-based.

Separations between two points always use the minimum periodic image, since
positions are wrapped into the domain and a fiber may straddle the boundary.
"""
import dataclasses
from typing import Any, Callable, ClassVar, Optional, Tuple

import jax
import jax.numpy as jnp
import numpy as np
from jax.tree_util import register_pytree_node_class

from jax_ib2d import errors
from jax_ib2d.base import grids

Array = grids.Array
NodalForce = Tuple[Array, Array]
UpdateFn = Callable[['ForceElement', float, Any], 'ForceElement']


def _ids(column) -> jnp.ndarray:
  """Converts a column of 1-based point ids to 0-based integer indices."""
  return jnp.asarray(np.rint(np.asarray(column, dtype=float)).astype(np.int32) - 1)


def _column(rows, j, default=None) -> jnp.ndarray:
  rows = np.atleast_2d(np.asarray(rows, dtype=float))
  if rows.shape[1] <= j:
    if default is None:
      raise errors.ConfigurationError(f'expected at least {j + 1} columns, got {rows.shape[1]}')
    return jnp.full(rows.shape[0], float(default))
  return jnp.asarray(rows[:, j])


def _rows(rows) -> np.ndarray:
  return np.atleast_2d(np.asarray(rows, dtype=float))


def _scatter(num_points: int, ids: Array, values: Array) -> Array:
  """Accumulates per-element values onto the points they act on."""
  return jnp.zeros(num_points, dtype=values.dtype).at[ids].add(values)


def _unit_separation(points, grid, master, slave):
  """Minimum-image vector master -> slave, its length and unit direction."""
  dx, dy = grid.displacement(points.x[master], points.y[master],
                             points.x[slave], points.y[slave])
  length = jnp.sqrt(dx**2 + dy**2)
  safe = jnp.where(length > 0, length, 1.0)
  return length, jnp.where(length > 0, dx / safe, 0.0), jnp.where(length > 0, dy / safe, 0.0)


def _pair_force(num_points, master, slave, magnitude, ex, ey) -> NodalForce:
  """A force of `magnitude` pulling the master towards the slave and vice versa."""
  fx = _scatter(num_points, master, magnitude * ex) + _scatter(num_points, slave, -magnitude * ex)
  fy = _scatter(num_points, master, magnitude * ey) + _scatter(num_points, slave, -magnitude * ey)
  return fx, fy


class ForceElement:
  """
  Base class of all force element kinds.

  Subclasses are dataclasses; `static_fields` are kept out of the PyTree
  leaves (callables and other hashable metadata), every other field is a
  leaf. `index_fields` name the fields holding 0-based point ids.
  """
  name: ClassVar[str] = 'force element'
  index_fields: ClassVar[Tuple[str, ...]] = ()
  static_fields: ClassVar[Tuple[str, ...]] = ('update_fn',)
  # Eulerian-only kinds contribute nothing to the nodal force.
  nodal: ClassVar[bool] = True

  def compute_force(self, points, grid: grids.Grid, dt: float, time: float) -> NodalForce:
    raise NotImplementedError

  def updated(self, time: float, points) -> 'ForceElement':
    update_fn = getattr(self, 'update_fn', None)
    if update_fn is None:
      return self
    return update_fn(self, time, points)

  def validate(self, num_points: int) -> None:
    for field in self.index_fields:
      ids = np.asarray(getattr(self, field))
      bad = ids[(ids < 0) | (ids >= num_points)]
      if bad.size:
        raise errors.StructureIndexError(
            f'{self.name}: {field} references point id(s) {sorted(set((bad + 1).tolist()))} '
            f'outside 1..{num_points}')

  def __len__(self) -> int:
    if not self.index_fields:
      return 1
    return int(np.shape(getattr(self, self.index_fields[0]))[0])

  def replace(self, **changes) -> 'ForceElement':
    return dataclasses.replace(self, **changes)

  def tree_flatten(self):
    names = [f.name for f in dataclasses.fields(self)]
    children = tuple(getattr(self, n) for n in names if n not in self.static_fields)
    aux_data = tuple(getattr(self, n) for n in names if n in self.static_fields)
    return children, aux_data

  @classmethod
  def tree_unflatten(cls, aux_data, children):
    names = [f.name for f in dataclasses.fields(cls)]
    dynamic = [n for n in names if n not in cls.static_fields]
    static = [n for n in names if n in cls.static_fields]
    return cls(**dict(zip(dynamic, children)), **dict(zip(static, aux_data)))


@register_pytree_node_class
@dataclasses.dataclass
class Springs(ForceElement):
  """
  Linear or nonlinear springs between two points.

  The force on the master is `k |L - L0|^alpha sign(L - L0) e`, `e` being the
  unit vector from master to slave; the slave gets the opposite force.
  `alpha = 1` is Hooke's law.
  """
  name: ClassVar[str] = 'springs'
  index_fields: ClassVar[Tuple[str, ...]] = ('master', 'slave')

  master: Array
  slave: Array
  stiffness: Array
  rest_length: Array
  nonlinearity: Array
  update_fn: Optional[UpdateFn] = None

  @classmethod
  def from_rows(cls, rows, update_fn=None):
    """Rows: `[master, slave, stiffness, rest_length(, alpha)]`."""
    rows = _rows(rows)
    return cls(_ids(rows[:, 0]), _ids(rows[:, 1]), _column(rows, 2),
               _column(rows, 3), _column(rows, 4, default=1.0), update_fn)

  def compute_force(self, points, grid, dt, time):
    length, ex, ey = _unit_separation(points, grid, self.master, self.slave)
    stretch = length - self.rest_length
    magnitude = self.stiffness * jnp.abs(stretch)**self.nonlinearity * jnp.sign(stretch)
    return _pair_force(points.x.shape[0], self.master, self.slave, magnitude, ex, ey)


@register_pytree_node_class
@dataclasses.dataclass
class DampedSprings(ForceElement):
  """Linear springs with a dashpot acting along the connecting line."""
  name: ClassVar[str] = 'damped springs'
  index_fields: ClassVar[Tuple[str, ...]] = ('master', 'slave')

  master: Array
  slave: Array
  stiffness: Array
  rest_length: Array
  damping: Array
  update_fn: Optional[UpdateFn] = None

  @classmethod
  def from_rows(cls, rows, update_fn=None):
    """Rows: `[master, slave, stiffness, rest_length, damping]`."""
    rows = _rows(rows)
    return cls(_ids(rows[:, 0]), _ids(rows[:, 1]), _column(rows, 2), _column(rows, 3),
               _column(rows, 4), update_fn)

  def compute_force(self, points, grid, dt, time):
    num_points = points.x.shape[0]
    length, ex, ey = _unit_separation(points, grid, self.master, self.slave)
    elastic = self.stiffness * (length - self.rest_length)

    # Nodal velocities estimated from the previous positions.
    vx, vy = grid.displacement(points.x_prev, points.y_prev, points.x, points.y)
    vx, vy = vx / dt, vy / dt
    relative = ((vx[self.slave] - vx[self.master]) * ex
                + (vy[self.slave] - vy[self.master]) * ey)
    return _pair_force(num_points, self.master, self.slave,
                       elastic + self.damping * relative, ex, ey)


def _three_point_force(points, grid, prev, mid, nxt, energy_fn) -> NodalForce:
  """
  Nodal forces `-grad E` of a three-point bending energy.

  The energy is written in coordinates local to the middle point (minimum
  image), so it is smooth across the periodic boundary.
  """
  num_points = points.x.shape[0]
  ax, ay = grid.displacement(points.x[mid], points.y[mid], points.x[prev], points.y[prev])
  bx, by = grid.displacement(points.x[mid], points.y[mid], points.x[nxt], points.y[nxt])
  origin = jnp.zeros_like(ax)
  total = lambda *coords: jnp.sum(energy_fn(*coords))
  gpx, gpy, gqx, gqy, grx, gry = jax.grad(total, argnums=(0, 1, 2, 3, 4, 5))(
      ax, ay, origin, origin, bx, by)
  fx = (_scatter(num_points, prev, -gpx) + _scatter(num_points, mid, -gqx)
        + _scatter(num_points, nxt, -grx))
  fy = (_scatter(num_points, prev, -gpy) + _scatter(num_points, mid, -gqy)
        + _scatter(num_points, nxt, -gry))
  return fx, fy


def beam_curvature(px, py, qx, qy, rx, ry):
  """Discrete curvature (cross product of the two segments) at the middle point."""
  return (rx - qx) * (qy - py) - (ry - qy) * (qx - px)


@register_pytree_node_class
@dataclasses.dataclass
class Beams(ForceElement):
  """
  Torsional beams: `E = k/2 (c - C)^2` with `c` the discrete curvature at
  the middle point and `C` its preferred value. Rotation invariant.
  """
  name: ClassVar[str] = 'beams'
  index_fields: ClassVar[Tuple[str, ...]] = ('prev', 'mid', 'next')

  prev: Array
  mid: Array
  next: Array
  stiffness: Array
  curvature: Array
  update_fn: Optional[UpdateFn] = None

  @classmethod
  def from_rows(cls, rows, update_fn=None):
    """Rows: `[prev, mid, next, stiffness, curvature]`."""
    rows = _rows(rows)
    return cls(_ids(rows[:, 0]), _ids(rows[:, 1]), _ids(rows[:, 2]),
               _column(rows, 3), _column(rows, 4), update_fn)

  def compute_force(self, points, grid, dt, time):
    energy = lambda *c: 0.5 * self.stiffness * (beam_curvature(*c) - self.curvature)**2
    return _three_point_force(points, grid, self.prev, self.mid, self.next, energy)


@register_pytree_node_class
@dataclasses.dataclass
class NonInvariantBeams(ForceElement):
  """
  Beams penalising the x and y components of the second difference
  separately: `E = k/2 [(xR - 2xQ + xP - Cx)^2 + (yR - 2yQ + yP - Cy)^2]`.
  """
  name: ClassVar[str] = 'non-invariant beams'
  index_fields: ClassVar[Tuple[str, ...]] = ('prev', 'mid', 'next')

  prev: Array
  mid: Array
  next: Array
  stiffness: Array
  curvature_x: Array
  curvature_y: Array
  update_fn: Optional[UpdateFn] = None

  @classmethod
  def from_rows(cls, rows, update_fn=None):
    """Rows: `[prev, mid, next, stiffness, curvature_x, curvature_y]`."""
    rows = _rows(rows)
    return cls(_ids(rows[:, 0]), _ids(rows[:, 1]), _ids(rows[:, 2]),
               _column(rows, 3), _column(rows, 4), _column(rows, 5), update_fn)

  def compute_force(self, points, grid, dt, time):
    def energy(px, py, qx, qy, rx, ry):
      return 0.5 * self.stiffness * ((rx - 2 * qx + px - self.curvature_x)**2
                                     + (ry - 2 * qy + py - self.curvature_y)**2)
    return _three_point_force(points, grid, self.prev, self.mid, self.next, energy)


@register_pytree_node_class
@dataclasses.dataclass
class TargetPoints(ForceElement):
  """Points tethered to fixed anchors: `F = k (X_target - X)`."""
  name: ClassVar[str] = 'target points'
  index_fields: ClassVar[Tuple[str, ...]] = ('ids',)

  ids: Array
  stiffness: Array
  x_target: Array
  y_target: Array
  update_fn: Optional[UpdateFn] = None

  @classmethod
  def from_rows(cls, rows, x, y, update_fn=None):
    """Rows: `[id, stiffness]`; anchors are the initial positions `x, y`."""
    rows = _rows(rows)
    ids = _ids(rows[:, 0])
    x, y = np.asarray(x), np.asarray(y)
    anchors = np.asarray(ids)
    if anchors.size and (anchors.min() < 0 or anchors.max() >= x.shape[0]):
      raise errors.StructureIndexError(
          f'target points reference point ids outside 1..{x.shape[0]}')
    return cls(ids, _column(rows, 1), jnp.asarray(x[anchors]), jnp.asarray(y[anchors]), update_fn)

  def compute_force(self, points, grid, dt, time):
    num_points = points.x.shape[0]
    dx, dy = grid.displacement(points.x[self.ids], points.y[self.ids], self.x_target, self.y_target)
    return (_scatter(num_points, self.ids, self.stiffness * dx),
            _scatter(num_points, self.ids, self.stiffness * dy))


def hill_contractile_force(length, speed, length_max_tension, muscle_const,
                           hill_a, hill_b, force_max, activation):
  """
  Hill-type force-length-velocity relation.

  `F = a(t) exp(-((L/LFO - 1)/SK)^2) (b Fmax - a_h v) / (v + b)`: Gaussian
  force-length curve times the Hill hyperbola, which equals `Fmax` at zero
  shortening speed.
  """
  force_length = jnp.exp(-((length / length_max_tension - 1.0) / muscle_const)**2)
  force_velocity = (hill_b * force_max - hill_a * speed) / (speed + hill_b)
  return activation * force_length * force_velocity


@register_pytree_node_class
@dataclasses.dataclass
class Muscles(ForceElement):
  """
  Two-point Hill-type muscles.

  The shortening speed `v = |L - L_prev| / dt` is estimated from the previous
  positions. `activation_fn(time)` scales the force; it defaults to 1.

  `activation_fn` is called inside `jax.jit` with a traced `time`, so it must
  be written with `jax.numpy` (e.g. `lambda t: jnp.sin(2 * jnp.pi * t)`);
  `math` functions or Python branches on `time` raise a tracer error.
  """
  name: ClassVar[str] = 'muscles'
  index_fields: ClassVar[Tuple[str, ...]] = ('master', 'slave')
  static_fields: ClassVar[Tuple[str, ...]] = ('activation_fn', 'update_fn')

  master: Array
  slave: Array
  length_max_tension: Array
  muscle_const: Array
  hill_a: Array
  hill_b: Array
  force_max: Array
  activation_fn: Optional[Callable[[float], float]] = None
  update_fn: Optional[UpdateFn] = None

  @classmethod
  def from_rows(cls, rows, activation_fn=None, update_fn=None):
    """Rows: `[master, slave, LFO, SK, a, b, Fmax]`."""
    rows = _rows(rows)
    return cls(_ids(rows[:, 0]), _ids(rows[:, 1]), *(_column(rows, j) for j in range(2, 7)),
               activation_fn=activation_fn, update_fn=update_fn)

  def _lengths(self, points, grid, dt):
    length, ex, ey = _unit_separation(points, grid, self.master, self.slave)
    px, py = grid.displacement(points.x_prev[self.master], points.y_prev[self.master],
                               points.x_prev[self.slave], points.y_prev[self.slave])
    speed = jnp.abs(length - jnp.sqrt(px**2 + py**2)) / dt
    return length, speed, ex, ey

  def _activation(self, time):
    return 1.0 if self.activation_fn is None else self.activation_fn(time)

  def contractile_magnitude(self, points, grid, dt, time):
    length, speed, ex, ey = self._lengths(points, grid, dt)
    magnitude = hill_contractile_force(
        length, speed, self.length_max_tension, self.muscle_const, self.hill_a,
        self.hill_b, self.force_max, self._activation(time))
    return length, magnitude, ex, ey

  def compute_force(self, points, grid, dt, time):
    _, magnitude, ex, ey = self.contractile_magnitude(points, grid, dt, time)
    return _pair_force(points.x.shape[0], self.master, self.slave, magnitude, ex, ey)


@register_pytree_node_class
@dataclasses.dataclass
class Hill3Muscles(Muscles):
  """
  Three-element Hill muscles: the contractile element of `Muscles` in
  combination with a nonlinear series-elastic spring
  `k_nl |L - LFO|^alpha_nl sign(L - LFO)`.
  """
  name: ClassVar[str] = '3-element Hill muscles'

  spring_stiffness_nl: Array = None
  spring_alpha_nl: Array = None

  @classmethod
  def from_rows(cls, rows, activation_fn=None, update_fn=None):
    """Rows: `[master, slave, LFO, SK, a, b, Fmax, k_nl, alpha_nl]`."""
    rows = _rows(rows)
    return cls(_ids(rows[:, 0]), _ids(rows[:, 1]), *(_column(rows, j) for j in range(2, 7)),
               activation_fn=activation_fn, update_fn=update_fn,
               spring_stiffness_nl=_column(rows, 7), spring_alpha_nl=_column(rows, 8))

  def compute_force(self, points, grid, dt, time):
    length, magnitude, ex, ey = self.contractile_magnitude(points, grid, dt, time)
    stretch = length - self.length_max_tension
    magnitude = magnitude + (self.spring_stiffness_nl * jnp.abs(stretch)**self.spring_alpha_nl
                             * jnp.sign(stretch))
    return _pair_force(points.x.shape[0], self.master, self.slave, magnitude, ex, ey)


@register_pytree_node_class
@dataclasses.dataclass
class MassPoints(ForceElement):
  """
  Massive points tethered to Lagrangian points by linear springs.

  Each mass carries its own position and velocity. The tethered point feels
  `k (X_mass - X)`; the mass feels the reaction. The mass dynamics are
  integrated in `particle_motion`.
  """
  name: ClassVar[str] = 'mass points'
  index_fields: ClassVar[Tuple[str, ...]] = ('ids',)

  ids: Array
  stiffness: Array
  mass: Array
  x_mass: Array
  y_mass: Array
  u_mass: Array
  v_mass: Array

  @classmethod
  def from_rows(cls, rows, x, y):
    """Rows: `[id, stiffness, mass]`; masses start at the tethered points, at rest."""
    rows = _rows(rows)
    ids = np.asarray(_ids(rows[:, 0]))
    x, y = np.asarray(x), np.asarray(y)
    if ids.size and (ids.min() < 0 or ids.max() >= x.shape[0]):
      raise errors.StructureIndexError(f'mass points reference point ids outside 1..{x.shape[0]}')
    zeros = jnp.zeros(ids.shape[0])
    return cls(jnp.asarray(ids), _column(rows, 1), _column(rows, 2),
               jnp.asarray(x[ids]), jnp.asarray(y[ids]), zeros, zeros)

  def tether_force(self, points, grid):
    """Force `k (X_mass - X)` on each tethered point, one entry per mass."""
    dx, dy = grid.displacement(points.x[self.ids], points.y[self.ids], self.x_mass, self.y_mass)
    return self.stiffness * dx, self.stiffness * dy

  def compute_force(self, points, grid, dt, time):
    num_points = points.x.shape[0]
    fx, fy = self.tether_force(points, grid)
    return _scatter(num_points, self.ids, fx), _scatter(num_points, self.ids, fy)


@register_pytree_node_class
@dataclasses.dataclass
class PorousPoints(ForceElement):
  """
  Porous points: no nodal force of their own; the motion integrator moves
  them with a normal slip proportional to the local force and `porosity`.
  `stencil_flag` in {-2, ..., 2} selects the derivative stencil along the
  porous fiber (see `particle_motion.porous_slip_velocity`).
  """
  name: ClassVar[str] = 'porous points'
  index_fields: ClassVar[Tuple[str, ...]] = ('ids',)
  static_fields: ClassVar[Tuple[str, ...]] = ()
  nodal: ClassVar[bool] = False

  ids: Array
  porosity: Array
  stencil_flag: Array

  @classmethod
  def from_rows(cls, rows):
    """Rows: `[id, porosity, stencil_flag]`."""
    rows = _rows(rows)
    flags = np.rint(rows[:, 2]).astype(np.int32)
    if np.any(np.abs(flags) > 2):
      raise errors.ConfigurationError(
          f'porous stencil flags must lie in -2..2, got {sorted(set(flags.tolist()))}')
    return cls(_ids(rows[:, 0]), _column(rows, 1), jnp.asarray(flags))

  def compute_force(self, points, grid, dt, time):
    zeros = jnp.zeros_like(points.x)
    return zeros, zeros


@register_pytree_node_class
@dataclasses.dataclass
class PoroelasticPoints(ForceElement):
  """
  Poroelastic points: a Brinkman drag `alpha / (1 + alpha) F` is removed
  from the force they spread and converted into a slip of the point.
  """
  name: ClassVar[str] = 'poroelastic points'
  index_fields: ClassVar[Tuple[str, ...]] = ('ids',)
  static_fields: ClassVar[Tuple[str, ...]] = ()
  nodal: ClassVar[bool] = False

  ids: Array
  porosity: Array

  @classmethod
  def from_rows(cls, rows):
    """Rows: `[id, porosity]`."""
    rows = _rows(rows)
    return cls(_ids(rows[:, 0]), _column(rows, 1))

  def compute_force(self, points, grid, dt, time):
    zeros = jnp.zeros_like(points.x)
    return zeros, zeros


@register_pytree_node_class
@dataclasses.dataclass
class GeneralForce(ForceElement):
  """
  User-defined force: `force_fn(points, grid, dt, time, params) -> (fx, fy)`.

  `params` is an arbitrary PyTree of parameters and may be changed by the
  update policy like any other element parameter.
  """
  name: ClassVar[str] = 'general force'
  static_fields: ClassVar[Tuple[str, ...]] = ('force_fn', 'update_fn')

  params: Any
  force_fn: Callable = None
  update_fn: Optional[UpdateFn] = None

  def compute_force(self, points, grid, dt, time):
    return self.force_fn(points, grid, dt, time, self.params)
