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
Immutable run configuration.

A `SimulationConfig` is built once, validated on construction and then passed
by reference to the time-stepping controller. Which structural models are
active is decided by the structure itself (see `particle_class`), not by
flags stored here.
"""
import dataclasses
import logging
import math
from typing import Optional, Tuple

import jax.numpy as jnp

from jax_ib2d import errors
from jax_ib2d.base import convolution_functions
from jax_ib2d.base import grids

logger = logging.getLogger(__name__)

# Standard gravity, m/s^2.
STANDARD_GRAVITY = 9.80665


@dataclasses.dataclass(frozen=True)
class SimulationConfig:
  """
  Physical and numerical parameters of one simulation.

  Attributes:
    grid: periodic Eulerian grid.
    viscosity: dynamic viscosity `mu`.
    density: fluid density `rho`.
    dt: time step.
    t_final: simulated end time; the run stops once `time >= t_final`.
    kernel: name of the discrete delta kernel (see `convolution_functions`).
    gravity: direction of gravity; normalised to unit length on construction.
      `None` disables every gravity-dependent term.
    gravity_strength: magnitude used for mass points and fluid gravity.
    fluid_gravity: add the uniform body force `rho * g * g_hat` to the fluid.
    boussinesq: add the buoyancy force `rho * beta * g_hat * C` to the fluid.
    expansion_coeff: Boussinesq expansion coefficient `beta`.
    concentration_diffusivity: diffusion coefficient of the passive scalar.
    output_interval: steps between two outputs; 0 disables output.
    lagrangian_spacing: reference Lagrangian spacing `ds` used by the porous
      and poroelastic models; defaults to `min(Lx/(2Nx), Ly/(2Ny))`.
    check_finite: abort with `NumericalDivergenceError` on non-finite fields.
  """
  grid: grids.Grid
  viscosity: float
  density: float
  dt: float
  t_final: float
  kernel: str = 'peskin_4pt'
  gravity: Optional[Tuple[float, float]] = None
  gravity_strength: float = STANDARD_GRAVITY
  fluid_gravity: bool = False
  boussinesq: bool = False
  expansion_coeff: float = 1.0
  concentration_diffusivity: float = 0.0
  output_interval: int = 0
  lagrangian_spacing: Optional[float] = None
  check_finite: bool = True

  def __post_init__(self):
    if self.grid.ndim != 2:
      raise errors.ConfigurationError(f'grid must be two-dimensional, got ndim={self.grid.ndim}')
    for name in ('viscosity', 'density', 'dt'):
      if not getattr(self, name) > 0:
        raise errors.ConfigurationError(f'{name} must be positive, got {getattr(self, name)}')
    if self.t_final < 0:
      raise errors.ConfigurationError(f't_final must be non-negative, got {self.t_final}')
    if self.output_interval < 0:
      raise errors.ConfigurationError(
          f'output_interval must be non-negative, got {self.output_interval}')
    if self.concentration_diffusivity < 0:
      raise errors.ConfigurationError('concentration_diffusivity must be non-negative')
    convolution_functions.get_kernel(self.kernel)

    if self.gravity is not None:
      gx, gy = (float(g) for g in self.gravity)
      norm = math.hypot(gx, gy)
      if norm == 0.0:
        raise errors.ConfigurationError('gravity direction must be a non-zero vector')
      # Use object.__setattr__ because the dataclass is frozen.
      object.__setattr__(self, 'gravity', (gx / norm, gy / norm))

    if self.boussinesq and self.gravity is None:
      raise errors.ConfigurationError(
          'Boussinesq forcing requires gravity; set `gravity` to a direction vector')
    if self.fluid_gravity and self.gravity is None:
      raise errors.ConfigurationError('fluid_gravity requires `gravity` to be set')
    if self.boussinesq and self.expansion_coeff == 0:
      logger.warning('Boussinesq expansion coefficient is 0; using 1.0 instead')
      object.__setattr__(self, 'expansion_coeff', 1.0)

    if self.lagrangian_spacing is None:
      (lx, ly), (nx, ny) = self.grid.length, self.grid.shape
      object.__setattr__(self, 'lagrangian_spacing', min(lx / (2 * nx), ly / (2 * ny)))
    elif not self.lagrangian_spacing > 0:
      raise errors.ConfigurationError('lagrangian_spacing must be positive')

  @property
  def num_steps(self) -> int:
    """Number of steps needed to reach `t_final`."""
    # The tolerance keeps t_final = n * dt from gaining an extra step to round-off.
    return max(int(math.ceil(self.t_final / self.dt - 1e-9)), 0)

  @property
  def kernel_fn(self) -> convolution_functions.Kernel:
    return convolution_functions.get_kernel(self.kernel)

  @property
  def kinematic_viscosity(self) -> float:
    return self.viscosity / self.density

  def gravity_vector(self) -> jnp.ndarray:
    """Unit gravity direction, or zeros when gravity is disabled."""
    if self.gravity is None:
      return jnp.zeros(2)
    return jnp.asarray(self.gravity)
