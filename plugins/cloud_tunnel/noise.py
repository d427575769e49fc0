"""
Noise Kernels and the Blended Noise Field

Four lattice-backed noise kernels share one interface so the density field
and the lightning field never care which one is active:

    kernel.evaluate(x, y, z, time) -> ndarray in [-1, 1]

- soft:   smoothed value noise with a slow domain drift
- billow: the same sample rectified (1 - 2|n|) for puffy, creased shapes
- ink:    coarse, drifting domain thresholded into high-contrast blobs,
          masked away near the tunnel axis
- liquid: two-stage domain warp for swirling, non-periodic structure

NoiseField blends kernel A and kernel B by a mix factor and only evaluates
the kernels the mix actually needs.
"""

from abc import ABC, abstractmethod

import numpy as np

from .params import NoiseKernel


# z-slice offset in texel units between consecutive integer z layers
_SLICE_OFFSET = (37.0, 239.0)


def smoothstep(edge0, edge1, x):
    t = np.clip((x - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)


def value_noise(lattice, x, y, z):
    """Smoothed value noise in [0, 1] from two lattice lookups."""
    px = np.floor(x)
    py = np.floor(y)
    pz = np.floor(z)
    fx = x - px
    fy = y - py
    fz = z - pz
    fx = fx * fx * (3.0 - 2.0 * fx)
    fy = fy * fy * (3.0 - 2.0 * fy)
    fz = fz * fz * (3.0 - 2.0 * fz)
    u = px + _SLICE_OFFSET[0] * pz + fx
    v = py + _SLICE_OFFSET[1] * pz + fy
    lower = lattice.bilinear(u, v)
    upper = lattice.bilinear(u + _SLICE_OFFSET[0], v + _SLICE_OFFSET[1])
    return lower + (upper - lower) * fz


class Kernel(ABC):
    """Base class for noise kernels."""

    kernel_name = ""

    def __init__(self, lattice):
        self.lattice = lattice

    @abstractmethod
    def evaluate(self, x, y, z, time):
        """Noise value in [-1, 1] at (x, y, z)."""


class SoftKernel(Kernel):

    kernel_name = "soft"

    def evaluate(self, x, y, z, time):
        n = value_noise(self.lattice, x + time * 0.05, y + time * 0.02, z)
        return n * 2.0 - 1.0


class BillowKernel(Kernel):

    kernel_name = "billow"

    def evaluate(self, x, y, z, time):
        n = value_noise(self.lattice, x, y, z + time * 0.1) * 2.0 - 1.0
        return 1.0 - 2.0 * np.abs(n)


class InkKernel(Kernel):
    """Thresholded blobs that squish and drift like a lava lamp."""

    kernel_name = "ink"

    def __init__(self, lattice, drift=True):
        super().__init__(lattice)
        self.drift = drift

    def evaluate(self, x, y, z, time):
        # Keep the tunnel axis clear
        mask = smoothstep(0.2, 0.8, np.hypot(x, y))

        if self.drift:
            dx = np.sin(z * 0.5 + time * 0.2) * 0.3
            dy = np.cos(z * 0.3 + time * 0.15) * 0.3
            dz = time * 0.15
        else:
            dx = dy = dz = 0.0

        n = value_noise(self.lattice, x * 0.6 + dx, y * 0.6 + dy, z * 0.6 + dz)
        blob = smoothstep(0.35, 0.65, n)
        return (blob * 2.0 - 1.0) * mask - (1.0 - mask)


class LiquidKernel(Kernel):

    kernel_name = "liquid"

    def evaluate(self, x, y, z, time):
        warp = value_noise(
            self.lattice,
            x * 0.5 + time * 0.1,
            y * 0.5 - time * 0.1,
            z * 0.5 + time * 0.2,
        ) * 2.0 - 1.0
        n = value_noise(self.lattice, x + warp * 4.0, y + warp * 2.0, z)
        return n * 2.0 - 1.0


KERNEL_CLASSES = {
    NoiseKernel.SOFT: SoftKernel,
    NoiseKernel.BILLOW: BillowKernel,
    NoiseKernel.INK: InkKernel,
    NoiseKernel.LIQUID: LiquidKernel,
}


def create_kernel(kind, lattice, ink_drift=True):
    kind = NoiseKernel(kind)
    if kind == NoiseKernel.INK:
        return InkKernel(lattice, drift=ink_drift)
    return KERNEL_CLASSES[kind](lattice)


class NoiseField:
    """Blend of two kernels by `mix`.

    mix <= 0.01 evaluates kernel A only, mix >= 0.99 kernel B only;
    anything in between evaluates both and interpolates.
    """

    MIX_LOW = 0.01
    MIX_HIGH = 0.99

    def __init__(self, kernel_a, kernel_b, mix=0.0):
        self.kernel_a = kernel_a
        self.kernel_b = kernel_b
        self.mix = float(mix)

    @classmethod
    def from_params(cls, lattice, params):
        kernel_a = create_kernel(params.noise_kernel_a, lattice, params.ink_drift)
        if params.noise_kernel_b == params.noise_kernel_a:
            kernel_b = kernel_a
        else:
            kernel_b = create_kernel(params.noise_kernel_b, lattice, params.ink_drift)
        return cls(kernel_a, kernel_b, params.noise_mix)

    def evaluate(self, x, y, z, time):
        if self.mix <= self.MIX_LOW:
            return self.kernel_a.evaluate(x, y, z, time)
        if self.mix >= self.MIX_HIGH:
            return self.kernel_b.evaluate(x, y, z, time)
        a = self.kernel_a.evaluate(x, y, z, time)
        b = self.kernel_b.evaluate(x, y, z, time)
        return a + (b - a) * self.mix
