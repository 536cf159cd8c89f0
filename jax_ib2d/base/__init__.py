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
The numerical core of `jax_ib2d`.

Importing the modules here allows `from jax_ib2d.base import grids` and
friends. They are listed from the foundations up.
"""

# --- Foundational utilities and numerical methods ---

# The periodic Eulerian grid.
import jax_ib2d.base.grids

# Discrete delta kernels.
import jax_ib2d.base.convolution_functions

# Spread / interpolate operators built on the kernels.
import jax_ib2d.base.interpolation

# Periodic finite difference operators.
import jax_ib2d.base.finite_differences


# --- Fluid solver ---

# Skew-symmetric momentum advection and the passive scalar update.
import jax_ib2d.base.advection

# Spectral pressure projection.
import jax_ib2d.base.pressure

# The two-stage Navier-Stokes step.
import jax_ib2d.base.equations


# --- Immersed boundary components ---

# Force element library.
import jax_ib2d.base.force_elements

# Force assembly, poroelastic drag, body forces and spreading.
import jax_ib2d.base.IBM_Force

# State containers (`LagrangianPoints`, `ImmersedStructure`, `SimulationState`).
import jax_ib2d.base.particle_class

# Equations of motion of the Lagrangian and mass points.
import jax_ib2d.base.particle_motion

# The predictor/corrector step.
import jax_ib2d.base.time_stepping

# Vorticity, velocity magnitude, CFL and force decomposition.
import jax_ib2d.base.diagnostics

# Parametric shapes and ring builders.
import jax_ib2d.base.geometry
