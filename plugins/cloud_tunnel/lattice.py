"""
Noise Lattices

Two tileable float RGBA grids back every noise lookup in the renderer:

- a white-noise lattice, bilinearly sampled by the noise kernels
- a blue-noise lattice, texel-fetched per pixel to dither ray start depth

Blue noise is approximated by high-pass filtering white noise: subtract a
3x3 wrap-around box blur, shift back into range and clamp.

Both are read-only once built. LatticeSet.generate() builds a new pair
and the caller swaps it in under its render lock.
"""

import numpy as np
from scipy.ndimage import uniform_filter


class NoiseLattice:
    """Tileable (size, size, 4) float32 grid with wrap-around sampling.

    Sampling coordinates are in texel units: integer (u, v) lands exactly
    on texel (u, v), fractions interpolate toward u+1 / v+1.
    """

    def __init__(self, data):
        data = np.asarray(data, dtype=np.float32)
        if data.ndim != 3 or data.shape[0] != data.shape[1] or data.shape[2] != 4:
            raise ValueError(f"lattice must be (N, N, 4), got {data.shape}")
        self.data = data
        self.size = data.shape[0]

    @classmethod
    def white(cls, size=256, rng=None):
        rng = rng if rng is not None else np.random.default_rng()
        return cls(rng.random((size, size, 4), dtype=np.float32))

    @classmethod
    def blue(cls, size=1024, rng=None):
        rng = rng if rng is not None else np.random.default_rng()
        white = rng.random((size, size, 4), dtype=np.float32)
        # Local average per channel, wrapping at the borders
        blurred = uniform_filter(white, size=(3, 3, 1), mode="wrap")
        return cls(np.clip(white - blurred + 0.5, 0.0, 1.0))

    def bilinear(self, u, v, channel=0):
        """Bilinear sample of one channel at texel coordinates (u, v)."""
        u = np.asarray(u, dtype=np.float64)
        v = np.asarray(v, dtype=np.float64)
        u0 = np.floor(u)
        v0 = np.floor(v)
        fu = u - u0
        fv = v - v0
        n = self.size
        x0 = u0.astype(np.int64) % n
        y0 = v0.astype(np.int64) % n
        x1 = (x0 + 1) % n
        y1 = (y0 + 1) % n
        tex = self.data[:, :, channel]
        top = tex[y0, x0] + (tex[y0, x1] - tex[y0, x0]) * fu
        bottom = tex[y1, x0] + (tex[y1, x1] - tex[y1, x0]) * fu
        return top + (bottom - top) * fv

    def fetch(self, ix, iy, channel=0):
        """Unfiltered texel fetch with wrapped integer coordinates."""
        n = self.size
        ix = np.asarray(ix, dtype=np.int64) % n
        iy = np.asarray(iy, dtype=np.int64) % n
        return self.data[iy, ix, channel]


class LatticeSet:
    """The white/blue lattice pair supplied to a render session."""

    def __init__(self, white, blue):
        self.white = white
        self.blue = blue

    @classmethod
    def generate(cls, white_size=256, blue_size=1024, seed=None):
        rng = np.random.default_rng(seed)
        return cls(NoiseLattice.white(white_size, rng),
                   NoiseLattice.blue(blue_size, rng))
