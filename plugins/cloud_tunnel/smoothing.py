"""
EMA-Smoothed Parameter Infrastructure

1. SmoothedParameter - EMA wrapper for any numeric parameter with time-constant drift
2. ParameterMorph - drifts a whole SceneParameters record toward a target
   (preset switches, live edits) while discrete fields switch at once

All smoothing is frame-rate independent via delta-time integration.
"""

import math
import typing

from .params import SceneParameters


class SmoothedParameter:
    """EMA wrapper for a single numeric parameter.

    Provides frame-rate-independent exponential moving average smoothing
    with configurable time constant. Edits drift over a second or two
    instead of snapping instantly.
    """

    def __init__(self, initial_value, time_constant=1.5):
        """Initialize smoothed parameter.

        Args:
            initial_value: Starting value (both current and target)
            time_constant: Time in seconds to reach ~63% of target (tau)
        """
        self.target = initial_value
        self.current = initial_value
        self.tau = time_constant

    def set_target(self, new_target):
        self.target = new_target

    def update(self, dt):
        """Advance EMA by delta-time (called each frame).

        alpha = 1 - exp(-dt / tau)
        current += alpha * (target - current)
        """
        if dt <= 0:
            return
        alpha = 1.0 - math.exp(-dt / self.tau)
        self.current += alpha * (self.target - self.current)

    def get_value(self):
        return self.current

    def snap(self, value):
        """Immediately set both target and current (for reset)."""
        self.target = value
        self.current = value

    @property
    def settled(self):
        return abs(self.target - self.current) < 1e-6


def _field_kinds():
    scalars, colors, discrete = [], [], []
    for name, info in SceneParameters.model_fields.items():
        if info.annotation is float:
            scalars.append(name)
        elif typing.get_origin(info.annotation) is tuple:
            colors.append(name)
        else:
            discrete.append(name)
    return scalars, colors, discrete


SCALAR_FIELDS, COLOR_FIELDS, DISCRETE_FIELDS = _field_kinds()


class ParameterMorph:
    """Smoothly morphs the live SceneParameters toward a target record.

    Float fields and colour channels follow an EMA; flags, step counts and
    kernel selections take the target value immediately.
    """

    def __init__(self, params, time_constant=1.5):
        self.time_constant = time_constant
        self.smoothed = {}
        self.snap(params)

    def snap(self, params):
        """Jump straight to `params` (no drift)."""
        self.params = params
        self.target = params
        self.smoothed = {}
        for name in SCALAR_FIELDS:
            self.smoothed[name] = SmoothedParameter(getattr(params, name), self.time_constant)
        for name in COLOR_FIELDS:
            self.smoothed[name] = [SmoothedParameter(c, self.time_constant)
                                   for c in getattr(params, name)]

    def set_target(self, params):
        self.target = params
        for name in SCALAR_FIELDS:
            self.smoothed[name].set_target(getattr(params, name))
        for name in COLOR_FIELDS:
            for sp, c in zip(self.smoothed[name], getattr(params, name)):
                sp.set_target(c)

    def update(self, dt):
        """Advance all smoothed fields; returns the live SceneParameters."""
        if self.settled:
            self.params = self.target
            return self.params

        values = {name: getattr(self.target, name) for name in DISCRETE_FIELDS}
        for name in SCALAR_FIELDS:
            sp = self.smoothed[name]
            sp.update(dt)
            values[name] = sp.get_value()
        for name in COLOR_FIELDS:
            channels = self.smoothed[name]
            for sp in channels:
                sp.update(dt)
            values[name] = tuple(sp.get_value() for sp in channels)

        self.params = SceneParameters(**values)
        return self.params

    @property
    def settled(self):
        for name in SCALAR_FIELDS:
            if not self.smoothed[name].settled:
                return False
        for name in COLOR_FIELDS:
            if not all(sp.settled for sp in self.smoothed[name]):
                return False
        return True
