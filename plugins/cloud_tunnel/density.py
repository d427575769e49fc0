"""
Cloud Density Field

Turns the blended noise field into a tube of cloud around the tunnel path.

Sampling coordinates are twisted around the path by the integrated vortex
phase plus a per-depth twist measured from the camera, and every noise
phase is anchored to the integrated camera depth rather than to elapsed
time. Both anchors are what keep the picture continuous while speed and
twist are edited live.

Density is the signed distance past the tunnel wall plus eroded noise,
clamped to [0, 1]. Points that base noise already marks as clearly empty
skip the detail octaves entirely; that early-out is where most of the
frame's time is saved.
"""

import numpy as np

from .params import DensityVariant
from .path import path


# Octave budget that disables the empty-space early-out
UNLIMITED_OCTAVES = 10

# Oscillating depth parallax (bounded, never accumulates)
DEPTH_PARALLAX_STRENGTH = 0.015

# Reference scales the camera-depth phase is measured in
REF_SCALE_BASE = 0.3
REF_SCALE_DETAIL = 0.7

# (frequency multiplier, weight) per detail octave
DETAIL_OCTAVES = (
    (1.0, 0.5),
    (2.25, 0.25),
    (5.0, 0.125),
    (10.0, 0.0625),
)

# Scrolling variant: detail phase drift and per-octave xy slide
SCROLL_RATE = 0.5
OCTAVE_SCROLL = 0.05

# Base-only density below this means "clearly empty"
_EMPTY_THRESHOLD = -0.5


class DensityField:
    """Scalar cloud density at points, for one frame's camera state."""

    def __init__(self, params, noise, cam_z=0.0, vortex_phase=0.0, time=0.0):
        self.params = params
        self.noise = noise
        self.cam_z = float(cam_z)
        self.vortex_phase = float(vortex_phase)
        self.time = float(time)
        self.scrolling = params.density_variant == DensityVariant.SCROLLING

    @classmethod
    def for_frame(cls, params, noise, camera, time):
        return cls(params, noise, camera.z, camera.vortex_phase, time)

    def twisted(self, x, y, z):
        """Path-relative, vortex-rotated coordinates.

        Returns (twisted_x, twisted_y, tunnel_dist, depth) where depth is
        measured from the camera.
        """
        cx, cy, _ = path(z, self.params)
        rx = x - cx
        ry = y - cy
        tunnel = np.hypot(rx, ry)

        depth = z - self.cam_z
        parallax = np.sin(self.vortex_phase) * depth * DEPTH_PARALLAX_STRENGTH
        angle = -self.vortex_phase + parallax + depth * self.params.vortex_twist

        s = np.sin(angle)
        c = np.cos(angle)
        return c * rx + s * ry, -s * rx + c * ry, tunnel, depth

    def density(self, x, y, z, octaves):
        """Density in [0, 1] at (x, y, z) with the given octave budget(s)."""
        x, y, z, octaves = np.broadcast_arrays(
            np.asarray(x, dtype=np.float64),
            np.asarray(y, dtype=np.float64),
            np.asarray(z, dtype=np.float64),
            np.asarray(octaves, dtype=np.int64),
        )
        shape = x.shape
        x, y, z, octaves = (a.ravel() for a in (x, y, z, octaves))

        p = self.params
        tx, ty, tunnel, depth = self.twisted(x, y, z)

        sb = p.noise_scale_base
        zb = self.cam_z * REF_SCALE_BASE + depth * sb
        g = 0.5 + 0.5 * self.noise.evaluate(tx * sb, ty * sb, zb, self.time)

        wall = tunnel - p.tunnel_radius
        out = np.clip(wall, 0.0, 1.0)

        approx = wall + g * 0.5 * p.cloud_density
        empty = (approx < _EMPTY_THRESHOLD) & (octaves < UNLIMITED_OCTAVES)
        idx = np.nonzero(~empty)[0]
        if idx.size:
            out[idx] = self._detail_density(
                tx[idx], ty[idx], depth[idx], octaves[idx], g[idx], wall[idx])
        return out.reshape(shape)

    def _detail_density(self, tx, ty, depth, octaves, g, wall):
        p = self.params
        sd = p.noise_scale_detail
        if self.scrolling:
            phase = (self.cam_z - self.time * SCROLL_RATE) * REF_SCALE_DETAIL
        else:
            phase = self.cam_z * REF_SCALE_DETAIL
        zd = phase + depth * sd

        f = np.zeros_like(g)
        for k, (scale, weight) in enumerate(DETAIL_OCTAVES, start=1):
            if k == 1:
                sel = slice(None)
            else:
                if not p.use_lod:
                    break
                sel = np.nonzero(octaves >= k)[0]
                if sel.size == 0:
                    break
            shift = OCTAVE_SCROLL * k * self.time if self.scrolling else 0.0
            f[sel] += weight * self.noise.evaluate(
                tx[sel] * sd * scale + shift,
                ty[sel] * sd * scale + shift,
                zd[sel] * scale,
                self.time,
            )

        # Sparse base regions erode toward empty even under strong detail
        eroded = f * 0.1 - 0.5
        f = eroded + (f - eroded) * (g * g)
        return np.clip(wall + f * p.cloud_density, 0.0, 1.0)
