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
Exception types raised by the immersed boundary engine.

Every error raised here is terminal for a run: there are no retryable
conditions in the numerical core. The classes also derive from the closest
built-in exception so that callers catching `ValueError` or `IndexError`
keep working.
"""


class IBError(Exception):
  """Base class for all errors raised by `jax_ib2d`."""


class ConfigurationError(IBError, ValueError):
  """Raised when the run configuration or a model prerequisite is invalid.

  Detected before the first time step (e.g. Boussinesq forcing requested
  without gravity or without a background concentration).
  """


class StructureIndexError(IBError, IndexError):
  """Raised when a force element references a Lagrangian point id outside 1..Nb."""


class NumericalDivergenceError(IBError, FloatingPointError):
  """Raised when the velocity, pressure or force fields stop being finite."""
