"""
Volumetric Raymarcher

Marches a batch of rays through the density and lightning fields,
compositing front to back:

    sum += color * (1 - sum.alpha)

Per ray and step:
- step size grows with distance (fine near the camera, coarse far away)
- the octave budget drops in distance bands when LOD is on
- inside cloud, one extra low-detail density sample toward the sun gives
  the diffuse term
- lightning glow lights the cloud, lightning core is added as emission
- exponential fog pulls the sample toward the background colour

A ray retires once it passes the draw distance or is nearly opaque.
"""

import numpy as np

from .params import MAX_RENDER_STEPS


MIN_STEP = 0.1
STEP_GROWTH = 0.08

FULL_DETAIL_OCTAVES = 5
# (distance beyond which, octave budget)
LOD_BANDS = ((5.0, 4), (15.0, 3), (30.0, 2), (60.0, 1))

SHADOW_OCTAVES = 1
SHADOW_OFFSET = 0.6

DENSITY_EPSILON = 0.01
OPAQUE_ALPHA = 0.96
DITHER_SCALE = 0.1


def octave_budget(t, use_lod):
    """Octave budget per ray for traveled distances t."""
    budget = np.full(np.shape(t), FULL_DETAIL_OCTAVES, dtype=np.int64)
    if use_lod:
        for threshold, octaves in LOD_BANDS:
            budget[t > threshold] = octaves
    return budget


class RayBatch:
    """Marching state for a batch of rays sharing one origin.

    accum holds premultiplied RGBA; distance and steps are per ray.
    """

    def __init__(self, origin, direction, distance):
        n = direction.shape[0]
        self.origin = np.asarray(origin, dtype=np.float64)
        self.direction = np.asarray(direction, dtype=np.float64)
        self.distance = np.asarray(distance, dtype=np.float64).copy()
        self.accum = np.zeros((n, 4), dtype=np.float64)
        self.steps = np.zeros(n, dtype=np.int64)
        self.active = np.ones(n, dtype=bool)

    def positions(self, idx):
        return self.origin + self.distance[idx, None] * self.direction[idx]

    def color(self):
        """Clamped RGBA result."""
        return np.clip(self.accum, 0.0, 1.0)


class Raymarcher:

    def __init__(self, params, density, lightning, dither_lattice, time=0.0):
        self.params = params
        self.density = density
        self.lightning = lightning
        self.dither = dither_lattice
        self.time = float(time)

    def march(self, origin, directions, background, px, py, sun_dir):
        """March rays (N, 3) from `origin`; returns the finished RayBatch.

        background is the per-ray (N, 3) colour fog blends toward,
        px/py the integer pixel coordinates seeding the dither.
        """
        start = DITHER_SCALE * self.dither.fetch(px, py)
        batch = RayBatch(origin, directions, start)
        background = np.asarray(background, dtype=np.float64)
        sun_dir = np.asarray(sun_dir, dtype=np.float64)

        for _ in range(min(MAX_RENDER_STEPS, self.params.render_steps)):
            idx = np.nonzero(batch.active)[0]
            if idx.size == 0:
                break
            self._step(batch, idx, background, sun_dir)
        return batch

    def _step(self, batch, idx, background, sun_dir):
        p = self.params
        t = batch.distance[idx]
        dt = np.maximum(MIN_STEP, STEP_GROWTH * t)

        pos = batch.positions(idx)
        den = self.density.density(
            pos[:, 0], pos[:, 1], pos[:, 2], octave_budget(t, p.use_lod))

        inside = np.nonzero(den > DENSITY_EPSILON)[0]
        if inside.size:
            rows = idx[inside]
            rgba = self._shade(pos[inside], den[inside], t[inside], dt[inside],
                               background[rows], sun_dir)
            batch.accum[rows] += rgba * (1.0 - batch.accum[rows, 3:4])

        batch.distance[idx] = t + dt
        batch.steps[idx] += 1
        done = (batch.distance[idx] > p.draw_distance) | (batch.accum[idx, 3] > OPAQUE_ALPHA)
        batch.active[idx[done]] = False

    def _shade(self, pos, den, t, dt, background, sun_dir):
        """Premultiplied RGBA contribution of in-cloud samples."""
        p = self.params

        # Shadows never need full detail
        probe = pos + SHADOW_OFFSET * sun_dir
        shadow = self.density.density(probe[:, 0], probe[:, 1], probe[:, 2], SHADOW_OCTAVES)
        diffuse = np.clip((den - shadow) / 0.5, 0.0, 1.0)

        light = (np.asarray(p.light_color_1) * 1.1
                 + 0.8 * np.asarray(p.light_color_2) * diffuse[:, None])

        core, glow = self.lightning.strike(pos[:, 0], pos[:, 1], pos[:, 2], self.time)
        bolt = np.asarray(p.lightning_color) * p.lightning_intensity
        light = light + bolt * (glow[:, None] * 5.0)

        base = np.asarray(p.cloud_base_color)
        shade = np.asarray(p.cloud_shadow_color)
        color = (base + (shade - base) * den[:, None]) * light
        color = color + bolt * (core[:, None] * 10.0)

        fog = 1.0 - np.exp2(-p.fog_density * t)
        color = color + (background - color) * fog[:, None]

        alpha = np.minimum(den * 8.0 * dt, 1.0)
        return np.concatenate([color * alpha[:, None], alpha[:, None]], axis=1)
