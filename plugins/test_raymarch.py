#!/usr/bin/env python3
"""
Test script for the raymarcher and the frame renderer.

Verifies:
1. Octave budget bands (full detail near, one octave far, LOD flag)
2. Empty space: transparent, retired at most one step past draw distance
3. render_steps caps the loop
4. Opaque clouds exit early
5. Scenarios: unobstructed sun at the centre pixel, zero cloud density
6. Sun anchor close to the camera stays finite, empty viewports are rejected
7. Banded multi-threaded rendering matches single-threaded output
"""

import numpy as np
import pytest

from cloud_tunnel.camera import CameraState
from cloud_tunnel.density import DensityField
from cloud_tunnel.lattice import LatticeSet
from cloud_tunnel.lightning import LightningField
from cloud_tunnel.noise import NoiseField
from cloud_tunnel.params import NoiseKernel, SceneParameters
from cloud_tunnel.raymarch import (
    FULL_DETAIL_OCTAVES, OPAQUE_ALPHA, Raymarcher, octave_budget,
)
from cloud_tunnel.renderer import Renderer, tonemap


LATTICES = LatticeSet.generate(64, 64, seed=11)


class ConstantDensity:
    """Stub density field: the same value everywhere."""

    def __init__(self, value):
        self.value = value

    def density(self, x, y, z, octaves):
        return np.full(np.shape(x), self.value)


def _marcher(params, density):
    noise = NoiseField.from_params(LATTICES.white, params)
    return Raymarcher(params, density, LightningField(params, noise), LATTICES.blue, 0.0)


def _rays(n=64, seed=4):
    rng = np.random.default_rng(seed)
    d = rng.normal(size=(n, 3))
    d[:, 2] = np.abs(d[:, 2]) + 1.0
    d /= np.linalg.norm(d, axis=1, keepdims=True)
    px = rng.integers(0, 1000, n)
    py = rng.integers(0, 1000, n)
    return d, px, py


def test_octave_budget_bands():
    print("Testing octave budget bands...")
    t = np.array([0.0, 4.9, 5.1, 14.0, 16.0, 29.0, 31.0, 59.0, 61.0, 200.0])
    assert list(octave_budget(t, True)) == [5, 5, 4, 4, 3, 3, 2, 2, 1, 1]
    assert np.all(octave_budget(t, False) == FULL_DETAIL_OCTAVES)
    print("  ✓ LOD bands applied only with LOD on")


def test_empty_space_is_transparent():
    """Empty rays end fully transparent just past the draw distance."""
    print("Testing empty-space termination...")
    params = SceneParameters(draw_distance=10.0, render_steps=300)
    d, px, py = _rays()
    batch = _marcher(params, ConstantDensity(0.0)).march(
        np.zeros(3), d, np.full((len(d), 3), 0.5), px, py, np.array([0.0, 0.0, 1.0]))

    assert np.all(batch.color() == 0.0)
    assert not batch.active.any()
    assert np.all(batch.distance > params.draw_distance)
    # One step back from the final distance was still inside the draw distance
    previous = np.minimum(batch.distance / 1.08, batch.distance - 0.1)
    assert np.all(previous <= params.draw_distance + 1e-9)
    print("  ✓ Transparent, retired right after draw distance")


def test_render_steps_cap():
    print("Testing render_steps cap...")
    params = SceneParameters(draw_distance=150.0, render_steps=7)
    d, px, py = _rays(16)
    batch = _marcher(params, ConstantDensity(0.0)).march(
        np.zeros(3), d, np.zeros((16, 3)), px, py, np.array([0.0, 0.0, 1.0]))
    assert np.all(batch.steps == 7)
    assert np.all(batch.distance < params.draw_distance)
    print("  ✓ Loop stops at render_steps")


def test_dense_cloud_exits_early():
    print("Testing opacity early exit...")
    params = SceneParameters(render_steps=300, fog_density=0.0)
    d, px, py = _rays(32)
    batch = _marcher(params, ConstantDensity(1.0)).march(
        np.zeros(3), d, np.zeros((32, 3)), px, py, np.array([0.0, 0.0, 1.0]))
    assert np.all(batch.accum[:, 3] > OPAQUE_ALPHA)
    assert np.all(batch.steps < 10), batch.steps.max()
    assert np.all(batch.distance < params.draw_distance)
    rgba = batch.color()
    assert np.all(rgba >= 0.0) and np.all(rgba <= 1.0)
    print("  ✓ Opaque rays retire early")


def test_center_pixel_sees_sun():
    """Straight tunnel, camera at the origin: centre ray hits the sun unobstructed."""
    print("Testing centre-pixel sun scenario...")
    params = SceneParameters(
        path_amp_x=0.0, path_amp_y=0.0,
        bg_color=(0.1, 0.2, 0.3),
        sun_glow_color=(0.2, 0.2, 0.2),
        sun_core_color=(0.3, 0.1, 0.05),
        sun_glare_color=(0.1, 0.0, 0.1),
    )
    frame = Renderer(LATTICES).render(9, 9, 0.0, params, CameraState())
    assert frame.shape == (9, 9, 4) and frame.dtype == np.float32
    assert np.all(frame[:, :, 3] == 1.0)

    expected = tonemap(np.array(params.bg_color)
                       + 0.4 * np.array(params.sun_glow_color)
                       + np.array(params.sun_core_color)
                       + 0.2 * np.array(params.sun_glare_color))
    assert np.allclose(frame[4, 4, :3], expected, atol=1e-5), (frame[4, 4], expected)
    print("  ✓ Sun core visible at the centre pixel")


def test_zero_cloud_density_shows_background():
    """No cloud inside the tunnel: alpha 0 for every ray, whatever the noise."""
    print("Testing cloudDensity=0 scenario...")
    params = SceneParameters(cloud_density=0.0, path_amp_x=0.0, path_amp_y=0.0,
                             tunnel_radius=500.0, sun_glow_pow=1e4, sun_core_pow=1e4,
                             sun_glare_pow=1e4, bg_color=(0.2, 0.3, 0.4))
    camera = CameraState(z=5.0, vortex_phase=1.0)
    for kind in NoiseKernel:
        p = params.replace(noise_kernel_a=kind, noise_kernel_b=kind)
        noise = NoiseField.from_params(LATTICES.white, p)
        density = DensityField.for_frame(p, noise, camera, 2.0)
        d, px, py = _rays(128)
        batch = Raymarcher(p, density, LightningField(p, noise), LATTICES.blue, 2.0).march(
            np.array([0.0, 0.0, 5.0]), d, np.zeros((128, 3)), px, py,
            np.array([0.0, 0.0, 1.0]))
        assert np.all(batch.accum == 0.0), kind

    frame = Renderer(LATTICES).render(16, 9, 2.0, params, camera)
    bg = tonemap(np.array(params.bg_color))
    corner = frame[0, 0, :3]
    assert np.allclose(corner, bg, atol=1e-5), (corner, bg)
    print("  ✓ Background untouched without cloud")


def test_frame_finite_and_viewport_checked():
    """Sun right in front of the camera still gives a finite frame; empty viewports fail."""
    print("Testing sun anchor near the camera...")
    params = SceneParameters(sun_path_offset=0.01, render_steps=30)
    frame = Renderer(LATTICES).render(4, 3, 0.0, params, CameraState())
    assert np.all(np.isfinite(frame))
    assert np.all(frame >= 0.0) and np.all(frame <= 1.0)

    for width, height in ((4, 0), (0, 3)):
        with pytest.raises(ValueError):
            Renderer(LATTICES, workers=2).render(width, height, 0.0, params, CameraState())
    print("  ✓ Finite output, degenerate viewport rejected")


def test_banded_render_matches():
    print("Testing threaded row bands...")
    params = SceneParameters(render_steps=40)
    camera = CameraState(z=6.0, vortex_phase=0.4)
    single = Renderer(LATTICES, workers=1).render(12, 7, 1.5, params, camera)
    banded = Renderer(LATTICES, workers=3).render(12, 7, 1.5, params, camera)
    assert np.allclose(single, banded, atol=1e-4)
    assert np.all(single >= 0.0) and np.all(single <= 1.0)
    print("  ✓ Banded output identical")


if __name__ == "__main__":
    print("\n=== Testing Raymarcher ===\n")

    test_octave_budget_bands()
    test_empty_space_is_transparent()
    test_render_steps_cap()
    test_dense_cloud_exits_early()
    test_center_pixel_sees_sun()
    test_zero_cloud_density_shows_background()
    test_frame_finite_and_viewport_checked()
    test_banded_render_matches()

    print("\n=== All tests passed ===\n")
