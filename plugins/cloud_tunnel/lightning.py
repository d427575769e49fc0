"""
Procedural Lightning

A glowing vein of light crawling along the tunnel wall. Time is cut into
slots of 1/8 s; each slot either fires or not, from a hashed dice roll
against the configured chance, or, in audio-sync mode, whenever the beat
signal is above a small floor. The slot id also seeds where the bolt
lands, so every strike sits somewhere new.

strike() returns (core, glow): core is the thin plasma channel, added as
emission; glow is the broad light it throws onto nearby cloud.
"""

import math

import numpy as np

from .noise import smoothstep
from .path import path


SLOTS_PER_SECOND = 8.0
BEAT_FLOOR = 0.1

# Falloff constants for glow = 1/(d^2 + wide), core = tiny/(d^2 + narrow)
GLOW_EPSILON = 0.1
CORE_SCALE = 0.002
CORE_EPSILON = 0.0001


def slot_hash(n):
    """Deterministic pseudo-random value in [0, 1) for slot id n."""
    v = math.sin(n) * 43758.5453123
    return v - math.floor(v)


class LightningField:
    """Lightning for one frame: timing is resolved once per frame."""

    def __init__(self, params, noise, audio=None):
        self.params = params
        self.noise = noise
        self.beat = audio.beat if audio is not None else 0.0

    def flash(self, time):
        """Return (slot_id, envelope) for `time`; envelope 0 = no strike."""
        p = self.params
        if not p.lightning_enabled:
            return 0.0, 0.0

        t = time * SLOTS_PER_SECOND
        slot = math.floor(t)
        local = t - slot

        if p.lightning_audio_sync:
            if self.beat <= BEAT_FLOOR:
                return slot, 0.0
            # Squared for a sharper attack
            return slot, self.beat ** 2

        if slot_hash(slot) >= p.lightning_chance:
            return slot, 0.0
        envelope = float(smoothstep(0.0, 0.1, local) * smoothstep(1.0, 0.3, local))
        return slot, envelope ** 3

    def strike(self, x, y, z, time):
        """(core, glow) intensity arrays at points (x, y, z)."""
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        z = np.asarray(z, dtype=np.float64)

        slot, envelope = self.flash(time)
        if envelope < 0.001:
            zeros = np.zeros(np.broadcast(x, y, z).shape)
            return zeros, zeros.copy()

        strike_angle = slot_hash(slot + 13.0) * 6.28
        cx, cy, _ = path(z, self.params)
        rx = x - cx
        ry = y - cy

        # Coarse vein wiggle plus finer detail along z
        zero = np.zeros_like(z)
        wiggle = self.noise.evaluate(zero, zero, z * 0.15 + slot * 10.0, time) * 2.0
        wiggle = wiggle + self.noise.evaluate(zero, zero, z * 0.8, time) * 0.5

        target = strike_angle + wiggle
        diff = np.abs(np.mod(np.arctan2(ry, rx) - target + math.pi, 2.0 * math.pi) - math.pi)

        r = np.hypot(rx, ry)
        from_wall = np.abs(r - self.params.tunnel_radius)
        d2 = (diff * r) ** 2 + from_wall ** 2

        glow = envelope / (d2 + GLOW_EPSILON)
        core = envelope * CORE_SCALE / (d2 + CORE_EPSILON)
        return core, glow
