"""
Tunnel Path

The tunnel centreline as a function of depth. The camera rides it, the
look-ahead target sits further along it, and the sun is anchored on it
at a fixed depth offset ahead of the camera.
"""

import numpy as np


def path(z, params):
    """Centreline point(s) at depth z. Returns (x, y, z) arrays."""
    z = np.asarray(z, dtype=np.float64)
    x = np.sin(z * params.path_freq_x) * params.path_amp_x
    y = np.cos(z * params.path_freq_y) * params.path_amp_y
    return x, y, z


def path_point(z, params):
    """Single centreline point as a (3,) vector."""
    x, y, z = path(float(z), params)
    return np.array([x, y, z], dtype=np.float64)


def sun_anchor(cam_z, params):
    """Point the sun hangs from: the path, sun_path_offset ahead of camZ."""
    return path_point(cam_z + params.sun_path_offset, params)
