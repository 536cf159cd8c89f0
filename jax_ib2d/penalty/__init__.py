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
Penalty methods on the Eulerian grid.

A penalty force proportional to the difference between the fluid velocity and
a prescribed velocity drives the fluid towards that velocity inside a region.
"""

# Background flow imposed through a smoothed penalty band.
import jax_ib2d.penalty.background_flow
