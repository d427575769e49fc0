"""
Audio Signal Snapshot

The renderer only consumes audio features, never audio: three smoothed
band levels, a decaying beat scalar and a one-tick "beat happened" edge.
Whatever does the analysis publishes into an AudioFeed at its own pace;
each frame takes one snapshot and renders with it, however stale.
BeatDetector covers hosts that only have a raw energy reading.
"""

import math
import threading


def _unit(value):
    return min(1.0, max(0.0, float(value)))


class AudioSignal:
    """Immutable snapshot of band levels and beat state (all in [0, 1])."""

    __slots__ = ("bass", "mid", "high", "beat", "beat_detected")

    def __init__(self, bass=0.0, mid=0.0, high=0.0, beat=0.0, beat_detected=False):
        object.__setattr__(self, "bass", _unit(bass))
        object.__setattr__(self, "mid", _unit(mid))
        object.__setattr__(self, "high", _unit(high))
        object.__setattr__(self, "beat", _unit(beat))
        object.__setattr__(self, "beat_detected", bool(beat_detected))

    def __setattr__(self, name, value):
        raise AttributeError("AudioSignal is immutable")

    def __repr__(self):
        return (f"AudioSignal(bass={self.bass:.3f}, mid={self.mid:.3f}, "
                f"high={self.high:.3f}, beat={self.beat:.3f}, "
                f"beat_detected={self.beat_detected})")


SILENCE = AudioSignal()


class AudioFeed:
    """Latest-value holder between an audio producer and the render loop."""

    def __init__(self):
        self._lock = threading.Lock()
        self._signal = SILENCE

    def publish(self, signal):
        with self._lock:
            self._signal = signal

    def update(self, **levels):
        """Publish a new snapshot from keyword levels, keeping the rest."""
        with self._lock:
            current = self._signal
            values = {name: getattr(current, name) for name in AudioSignal.__slots__}
            values.update(levels)
            self._signal = AudioSignal(**values)

    def snapshot(self):
        with self._lock:
            return self._signal


class BeatDetector:
    """Turns a raw energy reading into beat level and beat edge.

    A beat is an energy reading above `threshold` times the running
    average. The average follows an EMA with `time_constant` seconds;
    the beat level jumps to 1 on a beat and falls by `decay` per second.
    """

    def __init__(self, time_constant=1.0, decay=4.0):
        self.tau = time_constant
        self.decay = decay
        self.average = None
        self.level = 0.0

    def update(self, energy, dt, threshold):
        """Feed one reading; returns (beat, beat_detected)."""
        energy = max(0.0, float(energy))
        if self.average is None:
            self.average = energy

        detected = self.average > 1e-6 and energy > threshold * self.average
        if detected:
            self.level = 1.0
        elif dt > 0:
            self.level = max(0.0, self.level - self.decay * dt)

        if dt > 0:
            alpha = 1.0 - math.exp(-dt / self.tau)
            self.average += alpha * (energy - self.average)
        return self.level, detected

    def reset(self):
        self.average = None
        self.level = 0.0
