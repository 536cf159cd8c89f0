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
Parametric shapes and builders for closed fibers.

Shapes are given in polar form, `r = f(geometry_param, theta)`, and sampled
at equally spaced angles to produce Lagrangian points. The builders turn a
closed sequence of points into spring and beam element rows in the 1-based
schema expected by `force_elements.*.from_rows`, with rest lengths and
curvatures taken from the sampled configuration so the fiber starts at
equilibrium.
"""
import jax.numpy as jnp
import numpy as np

from jax_ib2d.base import force_elements


def param_circle(geometry_param, theta):
    """A circle centered at the origin; `geometry_param = [R]`."""
    A = geometry_param[0]
    return A * jnp.ones_like(theta)


def param_ellipse(geometry_param, theta):
    """An ellipse centered at the origin; `geometry_param = [A, B]` are the semi-axes."""
    A = geometry_param[0]
    B = geometry_param[1]
    return A * B / jnp.sqrt((B * jnp.cos(theta))**2 + (A * jnp.sin(theta))**2)


def closed_curve(shape_fn, geometry_param, center, num_points):
    """Samples a polar shape at `num_points` equally spaced angles.

    Args:
        shape_fn: polar shape, e.g. `param_circle`.
        geometry_param: parameters of the shape.
        center: `(xc, yc)` of the shape.
        num_points: number of Lagrangian points.

    Returns:
        `(x, y)` arrays of shape `(num_points,)`, counter-clockwise.
    """
    theta = jnp.linspace(0.0, 2 * jnp.pi, num_points, endpoint=False)
    r = shape_fn(geometry_param, theta)
    return center[0] + r * jnp.cos(theta), center[1] + r * jnp.sin(theta)


def ring_springs(x, y, stiffness, nonlinearity=1.0):
    """Springs joining consecutive points of a closed curve, at rest length."""
    x, y = np.asarray(x), np.asarray(y)
    n = x.shape[0]
    ids = np.arange(n)
    nxt = np.roll(ids, -1)
    rest = np.hypot(x[nxt] - x, y[nxt] - y)
    rows = np.column_stack([ids + 1, nxt + 1, np.full(n, stiffness), rest, np.full(n, nonlinearity)])
    return force_elements.Springs.from_rows(rows)


def ring_beams(x, y, stiffness):
    """Beams on every consecutive triple of a closed curve, at their initial curvature."""
    x, y = np.asarray(x), np.asarray(y)
    n = x.shape[0]
    mid = np.arange(n)
    prev, nxt = np.roll(mid, 1), np.roll(mid, -1)
    curvature = np.asarray(force_elements.beam_curvature(
        x[prev], y[prev], x[mid], y[mid], x[nxt], y[nxt]))
    rows = np.column_stack([prev + 1, mid + 1, nxt + 1, np.full(n, stiffness), curvature])
    return force_elements.Beams.from_rows(rows)
