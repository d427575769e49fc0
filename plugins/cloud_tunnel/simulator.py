"""
TunnelSimulator - Headless host for the cloud tunnel renderer

Owns everything that persists across frames: the live (morphing) scene
parameters, the camera state and its integrator, the audio feed and the
noise lattices. Each frame it integrates the camera once, takes one audio
snapshot and renders.

Used by the pipeline's background thread and by the pygame viewer.

Usage:
    from cloud_tunnel.simulator import TunnelSimulator
    sim = TunnelSimulator('dreamy', 320, 180)
    frame = sim.render_float(0.016)  # (H, W, 3) float32 [0, 1]
"""

import threading
import time

import numpy as np

from .audio import AudioFeed, BeatDetector
from .camera import CameraIntegrator, CameraState
from .lattice import LatticeSet
from .params import NoiseKernel, SceneParameters
from .presets import DEFAULT_PRESET, PRESETS, preset_params
from .renderer import Renderer
from .smoothing import ParameterMorph


AUDIO_KEYS = ("bass", "mid", "high", "beat", "beat_detected")


class NoiseTransition:
    """Cross-fade from one noise kernel to another over `duration` seconds."""

    def __init__(self, source, target, duration=2.0):
        self.source = NoiseKernel(source)
        self.target = NoiseKernel(target)
        self.duration = max(1e-3, float(duration))
        self.elapsed = 0.0

    def update(self, dt):
        if dt > 0:
            self.elapsed += dt

    @property
    def mix(self):
        return min(1.0, self.elapsed / self.duration)

    @property
    def done(self):
        return self.elapsed >= self.duration


class TunnelSimulator:
    """Headless render core - zero pygame dependency.

    Args:
        preset_key: Initial preset name (e.g. 'dreamy', 'storm')
        width, height: Output resolution in pixels
        seed: Seed for the noise lattices (None = random)
        white_size: White-noise lattice size
        blue_size: Blue-noise dither lattice size
        workers: Row bands rendered in parallel
    """

    def __init__(self, preset_key=DEFAULT_PRESET, width=320, height=180, seed=None,
                 white_size=256, blue_size=1024, workers=1):
        self.width = int(width)
        self.height = int(height)
        self._white_size = white_size
        self._blue_size = blue_size

        if preset_key not in PRESETS:
            print(f"[CloudTunnel] Unknown preset: {preset_key}, using {DEFAULT_PRESET}")
            preset_key = DEFAULT_PRESET
        self.preset_key = preset_key
        self.morph = ParameterMorph(preset_params(preset_key))
        self.noise_transition = None

        self.camera = CameraState()
        self.integrator = CameraIntegrator()
        self.audio = AudioFeed()
        self.beat_detector = BeatDetector()
        self._last_energy_time = None
        self.elapsed = 0.0

        # Held for a whole frame; lattice swaps wait for it
        self._render_lock = threading.Lock()
        # Guards the morph and noise transition against host-thread edits
        self._param_lock = threading.RLock()
        self.renderer = Renderer(LatticeSet.generate(white_size, blue_size, seed), workers=workers)
        self.last_params = self.morph.params

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    @property
    def params(self):
        """Live parameters (mid-morph values while a preset change settles)."""
        return self.morph.params

    @property
    def target_params(self):
        return self.morph.target

    def apply_preset(self, key, smooth=True):
        """Switch preset; continuous fields drift unless smooth=False."""
        if key not in PRESETS:
            print(f"[CloudTunnel] Unknown preset: {key}")
            return False
        target = preset_params(key)
        with self._param_lock:
            self.preset_key = key
            self.noise_transition = None
            if smooth:
                self.morph.set_target(target)
            else:
                self.morph.snap(target)
        return True

    def set_runtime_params(self, **kwargs):
        """Set runtime parameters from host kwargs.

        Supported keys:
            preset: Switch to named preset (applied before other edits)
            restart: Any truthy value restarts the camera
            bass, mid, high, beat, beat_detected: Audio feature levels
            energy: Raw audio energy, beat-detected against beat_threshold
            any SceneParameters field: merged into the target parameters

        Raises pydantic.ValidationError for out-of-range values.
        """
        preset = kwargs.pop("preset", None)
        if preset is not None:
            preset = getattr(preset, "value", preset)
            if preset != self.preset_key:
                self.apply_preset(preset)

        changes = {}
        levels = {}
        for key, val in kwargs.items():
            if key == "restart":
                if val:
                    self.restart()
            elif key in AUDIO_KEYS:
                levels[key] = val
            elif key == "energy":
                now = time.perf_counter()
                last, self._last_energy_time = self._last_energy_time, now
                self.feed_energy(val, 0.0 if last is None else now - last)
            elif key in SceneParameters.model_fields:
                changes[key] = val

        if levels:
            self.audio.update(**levels)
        if changes:
            with self._param_lock:
                target = self.morph.target.replace(**changes)
                if target != self.morph.target:
                    self.morph.set_target(target)

    def feed_energy(self, energy, dt):
        """Run beat detection on one energy reading; returns True on a beat."""
        beat, detected = self.beat_detector.update(
            energy, dt, self.target_params.beat_threshold)
        self.audio.update(beat=beat, beat_detected=detected)
        return detected

    def publish_audio(self, signal):
        """Hand over a new AudioSignal snapshot (any thread)."""
        self.audio.publish(signal)

    def transition_noise(self, kernel, duration=2.0):
        """Cross-fade the active noise kernel to `kernel`."""
        kernel = NoiseKernel(kernel)
        with self._param_lock:
            current = self.morph.target.noise_kernel_a
            if self.noise_transition is not None:
                current = self.noise_transition.target
            if kernel != current:
                self.noise_transition = NoiseTransition(current, kernel, duration)

    def restart(self):
        """Camera back to the path origin, clock back to zero."""
        with self._render_lock:
            self.integrator.restart(self.camera)
            self.elapsed = 0.0

    def resize(self, width, height):
        """Change output size; lattices are regenerated for the new session."""
        self.width = int(width)
        self.height = int(height)
        self.reseed()

    def reseed(self, seed=None):
        """Regenerate both lattices and swap them in between frames."""
        lattices = LatticeSet.generate(self._white_size, self._blue_size, seed)
        with self._render_lock:
            self.renderer.lattices = lattices
        print(f"[CloudTunnel] Lattices regenerated "
              f"({self._white_size}/{self._blue_size}) for {self.width}x{self.height}")

    def step(self, dt) -> np.ndarray:
        """Advance one frame and return (H, W, 3) uint8 array in [0, 255]."""
        rgba = self.render_rgba(dt)
        return (np.clip(rgba[:, :, :3], 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)

    def render_float(self, dt) -> np.ndarray:
        """Advance one frame and return (H, W, 3) float32 in [0, 1]."""
        return np.ascontiguousarray(self.render_rgba(dt)[:, :, :3])

    def render_rgba(self, dt) -> np.ndarray:
        """Advance one frame and return (H, W, 4) float32 in [0, 1].

        Args:
            dt: Time elapsed in seconds since last call (e.g. 0.016 for 60fps)
        """
        params = self._frame_params(dt)
        audio = self.audio.snapshot()
        with self._render_lock:
            self.integrator.advance(self.camera, params, dt)
            if dt > 0:
                self.elapsed += dt
            frame = self.renderer.render(self.width, self.height, self.elapsed,
                                         params, self.camera, audio)
        self.last_params = params
        return frame

    @property
    def stats(self):
        return {
            "preset": self.preset_key,
            "cam_z": self.camera.z,
            "vortex_phase": self.camera.vortex_phase,
            "elapsed": self.elapsed,
            "noise_a": self.last_params.noise_kernel_a.name.lower(),
            "noise_b": self.last_params.noise_kernel_b.name.lower(),
            "noise_mix": self.last_params.noise_mix,
        }

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def _frame_params(self, dt):
        with self._param_lock:
            return self._advance_params(dt)

    def _advance_params(self, dt):
        params = self.morph.update(dt)
        transition = self.noise_transition
        if transition is None:
            return params

        transition.update(dt)
        if transition.done:
            self.noise_transition = None
            target = self.morph.target.replace(
                noise_kernel_a=transition.target,
                noise_kernel_b=transition.target,
                noise_mix=0.0,
            )
            self.morph.set_target(target)
            self.morph.smoothed["noise_mix"].snap(0.0)
            return self.morph.update(0.0)

        return params.replace(
            noise_kernel_a=transition.source,
            noise_kernel_b=transition.target,
            noise_mix=transition.mix,
        )
