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
Spectral pressure projection for fully periodic domains.

In an incompressible fluid the velocity field must be divergence-free. After
the momentum equation has been advanced without the pressure gradient, the
provisional field `r` is projected by solving

    `(tau / rho) lap(p) = div(r)`,    `u = r - (tau / rho) grad(p)`

where `tau` is the length of the (sub)step. On a periodic grid every linear
constant-coefficient operator is diagonal in Fourier space, so the Poisson
solve is a pointwise division.

The Fourier symbols used here are those of the discrete central-difference
operators (`i sin(2 pi k / N) / h` for the first derivative and
`-4 sin^2(pi k / N) / h^2` for the second), not the continuous `i k` and
`-k^2`. With these symbols the projected velocity has zero central-difference
divergence to machine precision.

The pressure null space is removed by setting `p_hat = 0` wherever the
discrete divergence symbol vanishes: at the zero wavenumber and, for even `N`,
at the Nyquist modes where `sin(2 pi k / N) = 0`.
"""
from typing import NamedTuple, Tuple

import jax.numpy as jnp

from jax_ib2d.base import grids

Array = grids.Array


class SpectralOperators(NamedTuple):
  """Fourier symbols of the discrete operators on a grid, shape `grid.shape`."""
  ddx: Array
  ddy: Array
  laplacian: Array


def _exact_sin(angle):
  # sin(-pi) is 1e-16 in floating point; the Nyquist symbol must be exactly 0.
  s = jnp.sin(angle)
  return jnp.where(jnp.abs(s) < 1e-12, 0.0, s)


def spectral_operators(grid: grids.Grid) -> SpectralOperators:
  """Builds the symbols of the centered first derivatives and 5-point Laplacian."""
  (dx, dy), (nx, ny) = grid.step, grid.shape
  # `fftfreq(n)` returns k / N in the FFT ordering.
  kx, ky = jnp.meshgrid(jnp.fft.fftfreq(nx), jnp.fft.fftfreq(ny), indexing='ij')
  ddx = 1j * _exact_sin(2 * jnp.pi * kx) / dx
  ddy = 1j * _exact_sin(2 * jnp.pi * ky) / dy
  laplacian = (-4.0 / dx**2 * jnp.sin(jnp.pi * kx)**2
               - 4.0 / dy**2 * jnp.sin(jnp.pi * ky)**2)
  return SpectralOperators(ddx, ddy, laplacian)


def solve_pressure(
    rhs_u_hat: Array,
    rhs_v_hat: Array,
    ops: SpectralOperators,
    density: float,
    tau: float,
) -> Array:
  """
  Solves the pressure Poisson equation in Fourier space.

  Args:
    rhs_u_hat: FFT of the x-component of the provisional velocity.
    rhs_v_hat: FFT of the y-component of the provisional velocity.
    ops: spectral operators of the grid.
    density: fluid density.
    tau: length of the substep being projected.

  Returns:
    The FFT of the pressure, with the null-space modes set to zero.
  """
  div_hat = ops.ddx * rhs_u_hat + ops.ddy * rhs_v_hat
  # `D . D` is real and non-positive; it vanishes exactly on the null space.
  denominator = ops.ddx**2 + ops.ddy**2
  null_space = jnp.abs(denominator) == 0
  safe = jnp.where(null_space, 1.0, denominator)
  return jnp.where(null_space, 0.0, (density / tau) * div_hat / safe)


def subtract_pressure_gradient(
    rhs_u_hat: Array,
    rhs_v_hat: Array,
    p_hat: Array,
    ops: SpectralOperators,
    density: float,
    tau: float,
) -> Tuple[Array, Array]:
  """Returns `r_hat - (tau / rho) D p_hat` for both components."""
  scale = tau / density
  return rhs_u_hat - scale * ops.ddx * p_hat, rhs_v_hat - scale * ops.ddy * p_hat
