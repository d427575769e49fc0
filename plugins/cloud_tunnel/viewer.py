"""
Interactive Pygame Viewer for the Cloud Tunnel

Renders at a low internal resolution and scales the frame up to the
window. Every parameter edit drifts in over a second or two.

Controls:
  1-4         Presets (dreamy, sunset, storm, moonlight)
  L           Toggle lightning
  A           Toggle audio-synced lightning
  B           Tap a beat (drives audio-synced strikes)
  N           Cross-fade to the next noise kernel
  V           Toggle density variant (anchored / scrolling)
  + / -       More / fewer raymarch steps
  D           Toggle distance LOD
  R           Restart camera at the path origin
  SPACE       Pause / Resume
  H           Toggle HUD overlay
  Q / ESC     Quit
"""

import time

import numpy as np
import pygame

from .params import MAX_RENDER_STEPS, DensityVariant, NoiseKernel
from .presets import DEFAULT_PRESET, PRESET_ORDER, get_preset
from .simulator import TunnelSimulator


STEP_INCREMENT = 10
BEAT_DECAY = 4.0  # beat level falls by this much per second


class Viewer:
    def __init__(self, width=960, height=540, render_size=(240, 135),
                 start_preset=DEFAULT_PRESET, workers=1):
        self.win_w = width
        self.win_h = height
        self.render_w, self.render_h = render_size
        self.simulator = TunnelSimulator(start_preset, self.render_w, self.render_h,
                                         workers=workers)

        self.running = True
        self.paused = False
        self.show_hud = True
        self.fps_history = []
        self.beat_level = 0.0
        self.hud_font = None

    # -----------------------------------------------------------------------
    # Frame
    # -----------------------------------------------------------------------

    def _render_frame(self, dt):
        rgb = self.simulator.step(dt)
        return pygame.surfarray.make_surface(rgb.swapaxes(0, 1))

    def _decay_beat(self, dt):
        if self.beat_level <= 0.0:
            return
        self.beat_level = max(0.0, self.beat_level - BEAT_DECAY * dt)
        self.simulator.set_runtime_params(beat=self.beat_level, beat_detected=False)

    def _draw_hud(self, screen, fps):
        if not self.show_hud:
            return

        font = self.hud_font
        stats = self.simulator.stats
        params = self.simulator.target_params
        preset = get_preset(stats["preset"])

        noise = stats["noise_a"]
        if stats["noise_a"] != stats["noise_b"] and stats["noise_mix"] > 0.0:
            noise = f"{stats['noise_a']}>{stats['noise_b']} {stats['noise_mix']:.2f}"

        flags = []
        if params.lightning_enabled:
            flags.append("LIGHTNING" + (" (audio)" if params.lightning_audio_sync else ""))
        if not params.use_lod:
            flags.append("NO LOD")

        line = (f"{preset['name']}  |  z: {stats['cam_z']:.1f}  |  noise: {noise}  |  "
                f"{params.density_variant.value}  |  steps: {params.render_steps}  |  "
                f"{self.render_w}x{self.render_h}  |  FPS: {fps:.0f}")
        if flags:
            line += "  |  " + " ".join(flags)
        if self.paused:
            line = "[PAUSED]  " + line

        padding = 6
        bg_height = 24
        bg_surface = pygame.Surface((self.win_w, bg_height), pygame.SRCALPHA)
        bg_surface.fill((0, 0, 0, 140))
        screen.blit(bg_surface, (0, 0))

        text_surface = font.render(line, True, (210, 215, 225))
        screen.blit(text_surface, (padding + 4, padding))

    # -----------------------------------------------------------------------
    # Main loop
    # -----------------------------------------------------------------------

    def run(self):
        """Main viewer loop."""
        pygame.init()

        screen = pygame.display.set_mode((self.win_w, self.win_h), pygame.RESIZABLE)
        pygame.display.set_caption("Cloud Tunnel")
        clock = pygame.time.Clock()

        self.hud_font = pygame.font.SysFont("menlo", 13)

        last_time = time.time()
        frame = None

        while self.running:
            now = time.time()
            dt = min(now - last_time, 0.1)  # cap dt to avoid jumps
            last_time = now
            frame_start = now

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    self.running = False
                elif event.type == pygame.VIDEORESIZE:
                    self.win_w, self.win_h = event.w, event.h
                    screen = pygame.display.set_mode((self.win_w, self.win_h), pygame.RESIZABLE)
                elif event.type == pygame.KEYDOWN:
                    self._handle_keydown(event)

            if not self.paused or frame is None:
                self._decay_beat(dt)
                frame = self._render_frame(0.0 if self.paused else dt)

            scaled = pygame.transform.smoothscale(frame, (self.win_w, self.win_h))
            screen.blit(scaled, (0, 0))

            frame_time = time.time() - frame_start
            self.fps_history.append(frame_time)
            if len(self.fps_history) > 30:
                self.fps_history.pop(0)
            avg_fps = 1.0 / max(np.mean(self.fps_history), 0.001)

            self._draw_hud(screen, avg_fps)

            pygame.display.flip()
            clock.tick(60)

        pygame.quit()

    def _handle_keydown(self, event):
        key = event.key
        sim = self.simulator
        params = sim.target_params

        if key in (pygame.K_q, pygame.K_ESCAPE):
            self.running = False

        elif key == pygame.K_SPACE:
            self.paused = not self.paused

        elif key == pygame.K_r:
            sim.restart()

        elif key == pygame.K_h:
            self.show_hud = not self.show_hud

        elif key == pygame.K_l:
            sim.set_runtime_params(lightning_enabled=not params.lightning_enabled)

        elif key == pygame.K_a:
            sim.set_runtime_params(lightning_audio_sync=not params.lightning_audio_sync)

        elif key == pygame.K_b:
            self.beat_level = 1.0
            sim.set_runtime_params(beat=1.0, beat_detected=True)

        elif key == pygame.K_n:
            kinds = list(NoiseKernel)
            current = params.noise_kernel_a
            if sim.noise_transition is not None:
                current = sim.noise_transition.target
            sim.transition_noise(kinds[(kinds.index(current) + 1) % len(kinds)])

        elif key == pygame.K_v:
            if params.density_variant == DensityVariant.ANCHORED:
                variant = DensityVariant.SCROLLING
            else:
                variant = DensityVariant.ANCHORED
            sim.set_runtime_params(density_variant=variant)

        elif key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
            steps = min(MAX_RENDER_STEPS, params.render_steps + STEP_INCREMENT)
            sim.set_runtime_params(render_steps=steps)

        elif key in (pygame.K_MINUS, pygame.K_KP_MINUS):
            steps = max(STEP_INCREMENT, params.render_steps - STEP_INCREMENT)
            sim.set_runtime_params(render_steps=steps)

        elif key == pygame.K_d:
            sim.set_runtime_params(use_lod=not params.use_lod)

        # Preset selection (1-4)
        elif pygame.K_1 <= key <= pygame.K_9:
            idx = key - pygame.K_1
            if idx < len(PRESET_ORDER):
                sim.apply_preset(PRESET_ORDER[idx])

