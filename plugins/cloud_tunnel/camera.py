"""
Camera State and Integration

The camera's depth along the path and the vortex phase are integrated
state, advanced once per frame tick by the current rates:

    z            += cam_speed    * dt
    vortex_phase += vortex_speed * dt

Nothing downstream reads absolute elapsed time for these phases, so a
speed or twist edit changes the slope of the motion, never its position.
"""

import threading

import numpy as np

from .path import path_point


class CameraState:
    """Integrated depth position and vortex phase."""

    def __init__(self, z=0.0, vortex_phase=0.0):
        self.z = float(z)
        self.vortex_phase = float(vortex_phase)

    def copy(self):
        return CameraState(self.z, self.vortex_phase)

    def __repr__(self):
        return f"CameraState(z={self.z:.4f}, vortex_phase={self.vortex_phase:.4f})"


class CameraIntegrator:
    """Single owner of CameraState updates.

    Integration is a read-modify-write and is not re-entrant: a second
    advance() while one is in flight raises RuntimeError.
    """

    def __init__(self):
        self._lock = threading.Lock()

    def advance(self, state, params, dt):
        """Advance `state` in place by dt seconds at the current rates."""
        if dt <= 0:
            return state
        if not self._lock.acquire(blocking=False):
            raise RuntimeError("camera integration is not re-entrant")
        try:
            state.z += params.cam_speed * dt
            state.vortex_phase += params.vortex_speed * dt
        finally:
            self._lock.release()
        return state

    def restart(self, state):
        """Explicit restart: back to the path origin."""
        with self._lock:
            state.z = 0.0
            state.vortex_phase = 0.0
        return state


def _normalize(v):
    return v / np.linalg.norm(v, axis=-1, keepdims=True)


def camera_basis(origin, target, roll):
    """Orthonormal (right, up, forward) looking from origin to target."""
    forward = _normalize(target - origin)
    up_hint = np.array([np.sin(roll), np.cos(roll), 0.0])
    right = _normalize(np.cross(forward, up_hint))
    up = _normalize(np.cross(right, forward))
    return right, up, forward


def camera_rig(state, params):
    """Camera origin and basis for the integrated depth."""
    origin = path_point(state.z, params)
    target = path_point(state.z + params.cam_look_ahead, params)
    roll = params.cam_roll_amp * np.sin(state.z * params.cam_roll_freq)
    return origin, camera_basis(origin, target, roll)


def pixel_grid(width, height, rows=None):
    """Screen coordinates for image rows (top row first).

    Returns (sx, sy, px, py): sx/sy are aspect-corrected coordinates in
    [-aspect, aspect] x [-1, 1], px/py are integer pixel indices with
    y counted from the bottom edge.
    """
    rows = np.arange(height) if rows is None else np.asarray(rows)
    cols = np.arange(width)
    py = (height - 1 - rows)[:, None] + np.zeros((1, width), dtype=np.int64)
    px = cols[None, :] + np.zeros((rows.size, 1), dtype=np.int64)
    sx = (2.0 * (px + 0.5) - width) / height
    sy = (2.0 * (py + 0.5) - height) / height
    return sx, sy, px, py


def ray_directions(basis, sx, sy, fov):
    """Unit ray directions (..., 3) for screen coordinates."""
    right, up, forward = basis
    d = (sx[..., None] * right + sy[..., None] * up + fov * forward)
    return _normalize(d)
