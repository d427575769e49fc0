"""
Frame Renderer

Builds the camera from the integrated state, lays the sun glow and core
over the background, marches every pixel's ray through the clouds,
composites, adds glare and tonemaps to display gamma.

Rows can be split into bands and marched on a thread pool: no pixel reads
another pixel's state, and numpy drops the GIL inside the heavy array ops.
"""

from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .camera import camera_rig, pixel_grid, ray_directions
from .density import DensityField
from .lightning import LightningField
from .noise import NoiseField
from .path import sun_anchor
from .raymarch import Raymarcher


DISPLAY_GAMMA = 0.4545


def tonemap(color):
    """Smooth compression into [0, 1], then display gamma."""
    c = np.clip(color, 0.0, 1.0)
    c = c * c * (3.0 - 2.0 * c)
    return np.power(c, DISPLAY_GAMMA)


class Renderer:
    """Renders RGBA frames from SceneParameters + CameraState."""

    def __init__(self, lattices, workers=1):
        self.lattices = lattices
        self.workers = max(1, int(workers))

    def render(self, width, height, time, params, camera, audio=None):
        """Render one frame; returns (height, width, 4) float32 in [0, 1]."""
        if width < 1 or height < 1:
            raise ValueError(f"viewport must be at least 1x1, got {width}x{height}")
        origin, basis = camera_rig(camera, params)
        sun_dir = sun_anchor(camera.z, params) - origin
        sun_dir = sun_dir / np.linalg.norm(sun_dir)

        lattices = self.lattices
        noise = NoiseField.from_params(lattices.white, params)
        density = DensityField.for_frame(params, noise, camera, time)
        lightning = LightningField(params, noise, audio)
        marcher = Raymarcher(params, density, lightning, lattices.blue, time)

        def render_band(rows):
            return self._render_rows(rows, width, height, params, origin, basis,
                                     sun_dir, marcher)

        bands = np.array_split(np.arange(height), min(self.workers, height))
        if len(bands) > 1:
            with ThreadPoolExecutor(max_workers=len(bands)) as pool:
                parts = list(pool.map(render_band, bands))
        else:
            parts = [render_band(bands[0])]
        return np.concatenate(parts, axis=0).astype(np.float32)

    def _render_rows(self, rows, width, height, params, origin, basis, sun_dir, marcher):
        sx, sy, px, py = pixel_grid(width, height, rows)
        rd = ray_directions(basis, sx, sy, params.cam_fov).reshape(-1, 3)

        sun = np.clip(rd @ sun_dir, 0.0, 1.0)[:, None]

        # Light at the end of the tunnel
        col = np.asarray(params.bg_color) + np.zeros_like(rd)
        col += 0.4 * np.asarray(params.sun_glow_color) * sun ** params.sun_glow_pow
        col += np.asarray(params.sun_core_color) * sun ** params.sun_core_pow

        batch = marcher.march(origin, rd, col, px.ravel(), py.ravel(), sun_dir)
        clouds = batch.color()
        col = col * (1.0 - clouds[:, 3:4]) + clouds[:, :3]

        col += 0.2 * np.asarray(params.sun_glare_color) * sun ** params.sun_glare_pow

        rgba = np.concatenate([tonemap(col), np.ones((col.shape[0], 1))], axis=1)
        return rgba.reshape(len(rows), width, 4)
