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
Brinkman-style penalty forcing that imposes a background flow.

On a periodic domain there are no inflow boundaries, so a background flow is
driven by a penalty force inside a band of the domain,

    `f = k * chi(x) * (u_target(t) - u)`,

where `chi` is a smoothed indicator of the band. A large stiffness `k` pins
the fluid velocity in the band to the target; the fluid elsewhere is free.

A background-flow collaborator is any callable
`(time, grid, u, v) -> (fx, fy)`. It may keep state between calls; the
controller treats it as opaque.
"""
import logging
from typing import Callable, Optional, Protocol, Sequence, Tuple, Union

import jax.numpy as jnp

from jax_ib2d import errors
from jax_ib2d.base import grids

logger = logging.getLogger(__name__)

Array = grids.Array
TargetVelocity = Union[Sequence[float], Callable[[float], Tuple[float, float]]]


class BackgroundFlow(Protocol):
    """Interface of an Eulerian background-flow forcing."""

    def __call__(self, time: float, grid: grids.Grid, u: Array, v: Array) -> Tuple[Array, Array]:
        ...


def smoothed_band(coord, lower, upper, width):
    """Smoothed indicator of `lower <= coord <= upper` built from two tanh steps.

    Args:
        coord: grid coordinates along the band direction.
        lower: start of the band.
        upper: end of the band.
        width: thickness of the smoothed edges.

    Returns:
        Values in `[0, 1]`, close to 1 inside the band and 0 outside.
    """
    return 0.5 * (jnp.tanh((coord - lower) / width) - jnp.tanh((coord - upper) / width))


class InflowPenalty:
    """
    Penalty forcing towards a target velocity inside a band `x_range` (or
    `y_range` when `axis=1`) spanning the whole domain in the other direction.

    The mask is built lazily on the first call, from the grid it is called with;
    later calls must use the same grid.
    """

    def __init__(
        self,
        stiffness: float,
        band: Tuple[float, float],
        target_velocity: TargetVelocity = (1.0, 0.0),
        axis: int = 0,
        width: Optional[float] = None,
    ):
        if stiffness < 0:
            raise errors.ConfigurationError(f'penalty stiffness must be non-negative, got {stiffness}')
        if band[1] <= band[0]:
            raise errors.ConfigurationError(f'band must satisfy lower < upper, got {band}')
        if axis not in (0, 1):
            raise errors.ConfigurationError(f'axis must be 0 or 1, got {axis}')
        self.stiffness = stiffness
        self.band = band
        self.target_velocity = target_velocity
        self.axis = axis
        self.width = width
        self._grid = None
        self._mask = None

    @property
    def mask(self) -> Optional[Array]:
        return self._mask

    def _build_mask(self, grid: grids.Grid) -> Array:
        # Default edge thickness of one grid cell.
        width = self.width if self.width is not None else grid.step[self.axis]
        coord = grid.mesh()[self.axis]
        return smoothed_band(coord, self.band[0], self.band[1], width)

    def _target(self, time):
        if callable(self.target_velocity):
            return self.target_velocity(time)
        return self.target_velocity

    def __call__(self, time, grid, u, v):
        if self._mask is None:
            self._mask = self._build_mask(grid)
            self._grid = grid
            logger.debug('background flow mask built on a %s grid', grid.shape)
        elif grid != self._grid:
            raise errors.ConfigurationError('background flow called with a different grid')
        target_u, target_v = self._target(time)
        scale = self.stiffness * self._mask
        return scale * (target_u - u), scale * (target_v - v)
