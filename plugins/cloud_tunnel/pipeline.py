"""
Cloud Tunnel Pipeline

Text-only video-source pipeline: the cloud tunnel flythrough is the video.
No video input is needed.

The renderer runs in a background thread, continuously producing frames.
When the host requests a frame, it grabs the latest one from the
background thread, so the host never waits on a raymarch.
"""

import enum
import threading
import time

import numpy as np
import torch

from .params import NoiseKernel
from .presets import DEFAULT_PRESET, PRESET_ORDER
from .simulator import TunnelSimulator


class PresetEnum(str, enum.Enum):
    """Cloud tunnel presets. Hosts render enum fields as dropdowns."""
    dreamy = "dreamy"
    sunset = "sunset"
    storm = "storm"
    moonlight = "moonlight"


# ── Background Render Thread ─────────────────────────────────────────────

class _TunnelBackgroundRender(threading.Thread):
    """Background thread that continuously renders the tunnel.

    Keeps the latest frame available for the pipeline's __call__ to grab
    instantly. This thread is the only caller of simulator.render_float,
    so camera integration never runs concurrently.
    """

    def __init__(self, simulator, target_fps=20):
        super().__init__(daemon=True)
        self.simulator = simulator
        self._frame_lock = threading.Lock()
        self._latest_frame = None   # (H,W,3) float32 [0,1]
        self._running = True
        self._last_time = None
        self._target_fps = target_fps
        self.frames_rendered = 0

    def run(self):
        print("[CloudTunnel] Background render thread started")
        while self._running:
            now = time.perf_counter()
            if self._last_time is None:
                dt = 1.0 / self._target_fps
            else:
                dt = now - self._last_time
            # Slow frames advance the camera by at most 0.1s
            dt = max(0.001, min(dt, 0.1))
            self._last_time = now

            try:
                frame = self.simulator.render_float(dt)
                with self._frame_lock:
                    self._latest_frame = frame
                self.frames_rendered += 1
            except Exception as e:
                print(f"[CloudTunnel] Background render error: {e}")

            elapsed = time.perf_counter() - now
            sleep_time = max(0, (1.0 / self._target_fps) - elapsed)
            if sleep_time > 0:
                time.sleep(sleep_time)

    def get_latest_frame(self):
        """Return the most recent frame (H,W,3) float32 [0,1] or None."""
        with self._frame_lock:
            return self._latest_frame

    def stop(self):
        self._running = False


class CloudTunnelPipeline:
    """Video-source pipeline wrapping a TunnelSimulator.

    Args:
        width, height: Render resolution (load-time).
        preset: Initial preset key.
        target_fps: Background render rate.
        start: Start the background thread immediately.
    """

    def __init__(self, width=320, height=180, preset=DEFAULT_PRESET,
                 target_fps=20, start=True, **kwargs):
        preset = getattr(preset, "value", preset)
        self.simulator = TunnelSimulator(
            preset_key=preset, width=width, height=height,
            workers=kwargs.pop("workers", 1),
        )
        # Remaining load-time kwargs are initial runtime params
        self.simulator.set_runtime_params(**kwargs)
        self._bg_render = _TunnelBackgroundRender(self.simulator, target_fps)
        if start:
            self._bg_render.start()

    def __call__(self, prompt: str = "", **kwargs) -> dict:
        """Apply runtime params, return the newest frame.

        Args:
            prompt: Ignored (text-only pipeline, no prompt needed).
            **kwargs: Runtime parameters from the host UI: preset, any
                SceneParameters field, audio levels (bass, mid, high, beat),
                noise (kernel to cross-fade to), energy (raw level for
                beat detection), restart.

        Returns:
            {"video": tensor} where tensor is (1, H, W, 3) float32 [0,1]
        """
        noise = kwargs.pop("noise", None)
        self.simulator.set_runtime_params(**kwargs)
        # After the preset, which cancels any running cross-fade
        if noise is not None:
            self.simulator.transition_noise(_parse_kernel(noise))

        frame_np = self._bg_render.get_latest_frame()
        if frame_np is None:
            # Background thread hasn't produced a frame yet, return black
            frame_np = np.zeros((self.simulator.height, self.simulator.width, 3),
                                dtype=np.float32)

        tensor = torch.from_numpy(frame_np.copy()).unsqueeze(0)
        return {"video": tensor}

    def stop(self):
        self._bg_render.stop()

    @staticmethod
    def ui_field_config():
        """Configure how parameters appear in the host UI.

        Returns:
            dict: UI configuration for each parameter.
                  Load-time params go in 'settings' panel.
                  Runtime params go in 'controls' panel.
        """
        return {
            # --- Load-time (Settings panel, requires pipeline reload) ---
            "width": {
                "order": 1, "panel": "settings", "label": "Width",
                "choices": [160, 320, 480, 640], "is_load_param": True,
            },
            "height": {
                "order": 2, "panel": "settings", "label": "Height",
                "choices": [90, 180, 270, 360], "is_load_param": True,
            },
            # --- Runtime (Controls panel, updates live per-frame) ---
            "preset": {
                "order": 1, "panel": "controls", "label": "Preset",
                "choices": list(PRESET_ORDER),
            },
            "noise": {
                "order": 2, "panel": "controls", "label": "Noise",
                "choices": [k.name.lower() for k in NoiseKernel],
            },
            "cam_speed": {
                "order": 3, "panel": "controls", "label": "Speed",
                "min": 0.0, "max": 10.0, "step": 0.1,
            },
            "vortex_speed": {
                "order": 4, "panel": "controls", "label": "Vortex Speed",
                "min": -2.0, "max": 2.0, "step": 0.05,
            },
            "vortex_twist": {
                "order": 5, "panel": "controls", "label": "Vortex Twist",
                "min": -0.5, "max": 0.5, "step": 0.01,
            },
            "cloud_density": {
                "order": 6, "panel": "controls", "label": "Cloud Density",
                "min": 0.0, "max": 6.0, "step": 0.1,
            },
            "tunnel_radius": {
                "order": 7, "panel": "controls", "label": "Tunnel Radius",
                "min": 0.5, "max": 4.0, "step": 0.05,
            },
            "fog_density": {
                "order": 8, "panel": "controls", "label": "Fog",
                "min": 0.0, "max": 0.2, "step": 0.005,
            },
            "render_steps": {
                "order": 10, "panel": "controls", "label": "Render Steps",
                "min": 10, "max": 300, "step": 10,
            },
            "draw_distance": {
                "order": 11, "panel": "controls", "label": "Draw Distance",
                "min": 10.0, "max": 150.0, "step": 5.0,
            },
            "use_lod": {
                "order": 12, "panel": "controls", "label": "LOD", "type": "toggle",
            },
            "ink_drift": {
                "order": 13, "panel": "controls", "label": "Ink Drift", "type": "toggle",
            },
            "lightning_enabled": {
                "order": 20, "panel": "controls", "label": "Lightning", "type": "toggle",
            },
            "lightning_chance": {
                "order": 21, "panel": "controls", "label": "Strike Chance",
                "min": 0.0, "max": 1.0, "step": 0.05,
            },
            "lightning_intensity": {
                "order": 22, "panel": "controls", "label": "Strike Intensity",
                "min": 0.0, "max": 3.0, "step": 0.1,
            },
            "lightning_audio_sync": {
                "order": 23, "panel": "controls", "label": "Audio Sync", "type": "toggle",
            },
            "beat_threshold": {
                "order": 24, "panel": "controls", "label": "Beat Threshold",
                "min": 1.0, "max": 3.0, "step": 0.1,
            },
            "restart": {
                "order": 30, "panel": "controls", "label": "Restart", "type": "toggle",
            },
        }


def _parse_kernel(value):
    if isinstance(value, str):
        return NoiseKernel[value.upper()]
    return NoiseKernel(value)
