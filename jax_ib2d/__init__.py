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
`jax_ib2d` is a JAX implementation of the two-dimensional immersed boundary
(IB) method for fully coupled fluid-structure interaction.

An elastic, fiber-based structure (a cloud of Lagrangian points joined by
springs, beams, muscles, tethers and similar force elements) is immersed in a
viscous incompressible fluid on a periodic rectangular grid. The fluid is
advanced with an FFT projection method, and the two frames exchange forces
and velocities through a discrete delta function.

The package is organized as:
-   `base`: the numerical core (grid, delta kernels, spread/interpolate,
    force elements, fluid solver, Lagrangian motion, time stepping).
-   `penalty`: Eulerian penalty forcing, such as a prescribed background flow.
-   `config`, `errors`, `logging_config`, `simulation`: the run configuration,
    the exception taxonomy, logging setup and the driver loop.
"""

# The numerical core. Imported first: `config` depends on it.
import jax_ib2d.base

# Brinkman-style penalty forcing on the Eulerian grid.
import jax_ib2d.penalty

import jax_ib2d.config
import jax_ib2d.errors
import jax_ib2d.logging_config
import jax_ib2d.simulation

__version__ = '0.1.0'
