#!/usr/bin/env python3
"""
Test script for noise lattices and noise kernels.

Verifies:
1. Lattice generation (shape, range, determinism) and wrap-around sampling
2. Value noise continuity across integer z slices
3. Every kernel stays in [-1, 1]
4. NoiseField blend rule and lazy evaluation of unused kernels
"""

import numpy as np

from cloud_tunnel.lattice import LatticeSet, NoiseLattice
from cloud_tunnel.noise import (
    KERNEL_CLASSES, InkKernel, NoiseField, SoftKernel, create_kernel, value_noise,
)
from cloud_tunnel.params import NoiseKernel, SceneParameters


LATTICES = LatticeSet.generate(64, 64, seed=0)


class CountingKernel:
    """Stub kernel: constant value, counts evaluations."""

    def __init__(self, value):
        self.value = value
        self.calls = 0

    def evaluate(self, x, y, z, time):
        self.calls += 1
        return np.full(np.shape(x), self.value)


def _points(n=2000, spread=20.0, seed=1):
    rng = np.random.default_rng(seed)
    return rng.uniform(-spread, spread, size=(3, n))


def test_lattice_generation():
    """Lattices are (N, N, 4) in [0, 1] and seeded deterministically."""
    print("Testing lattice generation...")
    assert LATTICES.white.data.shape == (64, 64, 4)
    assert LATTICES.blue.data.shape == (64, 64, 4)
    for lat in (LATTICES.white, LATTICES.blue):
        assert lat.data.min() >= 0.0 and lat.data.max() <= 1.0

    again = LatticeSet.generate(64, 64, seed=0)
    assert np.array_equal(again.white.data, LATTICES.white.data)
    assert np.array_equal(again.blue.data, LATTICES.blue.data)

    # High-passed noise is centred on 0.5
    assert abs(float(LATTICES.blue.data.mean()) - 0.5) < 0.05
    print("  ✓ Lattices generated")


def test_lattice_sampling_wraps():
    """Bilinear and texel fetch wrap at the borders."""
    print("Testing lattice wrap-around...")
    lat = LATTICES.white
    n = lat.size
    u = np.array([0.0, 3.0, 10.25, 63.9])
    v = np.array([0.0, 5.0, 7.75, 0.1])
    assert np.allclose(lat.bilinear(u + n, v - 2 * n), lat.bilinear(u, v))
    assert np.allclose(lat.bilinear(3.0, 5.0), lat.data[5, 3, 0])
    assert lat.fetch(-1, n) == lat.data[0, n - 1, 0]

    try:
        NoiseLattice(np.zeros((8, 4, 4)))
        assert False, "non-square lattice should be rejected"
    except ValueError:
        pass
    print("  ✓ Sampling wraps")


def test_value_noise_continuous_in_z():
    """No seam between integer z slices."""
    print("Testing value noise z continuity...")
    lat = LATTICES.white
    x = np.linspace(-5, 5, 50)
    y = np.linspace(3, -2, 50)
    for z0 in (1.0, 2.0, -3.0):
        below = value_noise(lat, x, y, np.full_like(x, z0 - 1e-7))
        at = value_noise(lat, x, y, np.full_like(x, z0))
        assert np.max(np.abs(below - at)) < 1e-4
    print("  ✓ Value noise continuous across slices")


def test_kernels_in_range():
    """Every kernel returns values in [-1, 1]."""
    print("Testing kernel ranges...")
    x, y, z = _points()
    for kind in NoiseKernel:
        kernel = create_kernel(kind, LATTICES.white)
        assert isinstance(kernel, KERNEL_CLASSES[kind])
        for t in (0.0, 3.7, 120.0):
            n = kernel.evaluate(x, y, z, t)
            assert n.shape == x.shape
            assert np.all(n >= -1.0 - 1e-9) and np.all(n <= 1.0 + 1e-9), kind
    print("  ✓ All kernels in [-1, 1]")


def test_ink_clears_axis():
    """Ink kernel is fully suppressed on the tunnel axis."""
    print("Testing ink axis mask...")
    ink = InkKernel(LATTICES.white)
    z = np.linspace(0, 30, 100)
    n = ink.evaluate(np.zeros_like(z), np.zeros_like(z), z, 1.0)
    assert np.allclose(n, -1.0)

    still = InkKernel(LATTICES.white, drift=False)
    x, y, z = _points(200)
    assert np.array_equal(still.evaluate(x, y, z, 0.0), still.evaluate(x, y, z, 9.0))

    # The flag reaches the kernel through the parameter record
    params = SceneParameters(noise_kernel_a=NoiseKernel.INK, ink_drift=False)
    field = NoiseField.from_params(LATTICES.white, params)
    assert field.kernel_a.drift is False
    assert np.array_equal(field.evaluate(x, y, z, 0.0), field.evaluate(x, y, z, 9.0))
    assert create_kernel(NoiseKernel.INK, LATTICES.white).drift is True
    print("  ✓ Ink axis clear, drift optional")


def test_blend_endpoints_and_midpoint():
    """m=0 is kernel A, m=1 is kernel B, m=0.5 their mean."""
    print("Testing NoiseField blend...")
    lat = LATTICES.white
    x, y, z = _points(500)
    a = create_kernel(NoiseKernel.SOFT, lat)
    b = create_kernel(NoiseKernel.LIQUID, lat)
    na = a.evaluate(x, y, z, 1.5)
    nb = b.evaluate(x, y, z, 1.5)

    assert np.array_equal(NoiseField(a, b, 0.0).evaluate(x, y, z, 1.5), na)
    assert np.array_equal(NoiseField(a, b, 1.0).evaluate(x, y, z, 1.5), nb)
    mid = NoiseField(a, b, 0.5).evaluate(x, y, z, 1.5)
    assert np.allclose(mid, 0.5 * (na + nb))
    print("  ✓ Blend rule holds")


def test_blend_is_lazy():
    """Kernels outside the mix are never evaluated."""
    print("Testing lazy blend evaluation...")
    x, y, z = _points(10)

    a, b = CountingKernel(-1.0), CountingKernel(1.0)
    NoiseField(a, b, 0.005).evaluate(x, y, z, 0.0)
    assert (a.calls, b.calls) == (1, 0)

    a, b = CountingKernel(-1.0), CountingKernel(1.0)
    NoiseField(a, b, 0.995).evaluate(x, y, z, 0.0)
    assert (a.calls, b.calls) == (0, 1)

    a, b = CountingKernel(-1.0), CountingKernel(1.0)
    n = NoiseField(a, b, 0.25).evaluate(x, y, z, 0.0)
    assert (a.calls, b.calls) == (1, 1)
    assert np.allclose(n, -0.5)
    print("  ✓ Unused kernels skipped")


def test_field_from_params_shares_kernel():
    """Identical A/B selections reuse one kernel instance."""
    print("Testing NoiseField.from_params...")
    field = NoiseField.from_params(LATTICES.white, SceneParameters())
    assert field.kernel_a is field.kernel_b
    assert isinstance(field.kernel_a, SoftKernel)

    p = SceneParameters(noise_kernel_b=NoiseKernel.INK, noise_mix=0.4)
    field = NoiseField.from_params(LATTICES.white, p)
    assert isinstance(field.kernel_b, InkKernel)
    assert field.mix == 0.4
    print("  ✓ from_params working")


if __name__ == "__main__":
    print("\n=== Testing Noise ===\n")

    test_lattice_generation()
    test_lattice_sampling_wraps()
    test_value_noise_continuous_in_z()
    test_kernels_in_range()
    test_ink_clears_axis()
    test_blend_endpoints_and_midpoint()
    test_blend_is_lazy()
    test_field_from_params_shares_kernel()

    print("\n=== All tests passed ===\n")
