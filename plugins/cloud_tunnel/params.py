"""
Scene Parameters for the Cloud Tunnel Renderer

A flat, immutable record of every knob the renderer reads in a frame.
Validation happens here, at the boundary: non-finite numbers, non-positive
scales and unknown fields are rejected, colour channels are clamped into
[0, 1]. Everything past this module assumes validated, finite input.

Colours may be given as linear-light triples or as sRGB hex strings
("#A8BAC9"); hex strings are decoded with the sRGB transfer function so
preset authors can pick colours the way a colour picker shows them.
"""

import enum
import math
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


Color = Tuple[float, float, float]

# Hard loop cap of the raymarcher; render_steps can never exceed it
MAX_RENDER_STEPS = 300


class NoiseKernel(enum.IntEnum):
    """Noise kernel tags (values match the numeric tags used by presets)."""
    SOFT = 1
    BILLOW = 2
    INK = 3
    LIQUID = 4


class DensityVariant(str, enum.Enum):
    """Density field revisions.

    anchored:  every noise phase is anchored to the integrated camera depth
    scrolling: detail octaves also scroll against elapsed time
    """
    ANCHORED = "anchored"
    SCROLLING = "scrolling"


def _srgb_to_linear(c):
    if c <= 0.04045:
        return c / 12.92
    return ((c + 0.055) / 1.055) ** 2.4


def hex_to_linear(value):
    """Decode '#RRGGBB' (or 'RRGGBB') into a linear-light RGB triple."""
    text = value.strip().lstrip("#")
    if len(text) != 6:
        raise ValueError(f"expected #RRGGBB colour, got {value!r}")
    channels = [int(text[i:i + 2], 16) / 255.0 for i in (0, 2, 4)]
    return tuple(_srgb_to_linear(c) for c in channels)


_COLOR_FIELDS = (
    "bg_color", "light_color_1", "light_color_2",
    "cloud_base_color", "cloud_shadow_color",
    "sun_glow_color", "sun_core_color", "sun_glare_color",
    "lightning_color",
)


class SceneParameters(BaseModel):
    """Per-frame parameter snapshot (frozen; use replace() for edits)."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False, extra="forbid")

    # Camera
    cam_speed: float = 2.5
    cam_fov: float = Field(default=1.8, gt=0)
    cam_roll_amp: float = 0.2
    cam_roll_freq: float = 0.1
    cam_look_ahead: float = Field(default=1.0, gt=0)

    # Tunnel path
    tunnel_radius: float = Field(default=1.7, gt=0)
    path_amp_x: float = 2.5
    path_freq_x: float = 0.2
    path_amp_y: float = 2.5
    path_freq_y: float = 0.15

    # Vortex
    vortex_speed: float = 0.3
    vortex_twist: float = 0.1

    # Clouds
    noise_scale_base: float = Field(default=0.3, gt=0)
    noise_scale_detail: float = Field(default=0.7, gt=0)
    cloud_density: float = Field(default=3.0, ge=0)
    fog_density: float = Field(default=0.03, ge=0)
    noise_kernel_a: NoiseKernel = NoiseKernel.SOFT
    noise_kernel_b: NoiseKernel = NoiseKernel.SOFT
    noise_mix: float = Field(default=0.0, ge=0.0, le=1.0)
    ink_drift: bool = True
    density_variant: DensityVariant = DensityVariant.ANCHORED

    # Performance
    use_lod: bool = True
    render_steps: int = Field(default=150, ge=1, le=MAX_RENDER_STEPS)
    draw_distance: float = Field(default=80.0, gt=0)

    # Sun
    sun_path_offset: float = 15.0
    sun_glow_pow: float = Field(default=100.0, gt=0)
    sun_core_pow: float = Field(default=80.0, gt=0)
    sun_glare_pow: float = Field(default=8.0, gt=0)

    # Colours (linear light)
    bg_color: Color = (0.4, 0.5, 0.6)
    light_color_1: Color = (0.65, 0.65, 0.75)
    light_color_2: Color = (1.0, 1.0, 0.95)
    cloud_base_color: Color = (0.9, 0.9, 1.0)
    cloud_shadow_color: Color = (0.1, 0.1, 0.2)
    sun_glow_color: Color = (1.0, 1.0, 1.0)
    sun_core_color: Color = (1.0, 1.0, 1.0)
    sun_glare_color: Color = (1.0, 0.8, 0.7)

    # Lightning
    lightning_enabled: bool = False
    lightning_chance: float = Field(default=0.5, ge=0.0, le=1.0)
    lightning_color: Color = (1.0, 1.0, 1.0)
    lightning_intensity: float = Field(default=1.0, ge=0)
    lightning_audio_sync: bool = False
    # Energy over its running average that counts as a beat
    beat_threshold: float = Field(default=1.5, gt=0)

    @field_validator("sun_path_offset")
    @classmethod
    def _sun_off_camera(cls, value):
        # The sun direction is normalised from camZ to the anchor
        if abs(value) < 1e-6:
            raise ValueError("sun_path_offset must be non-zero")
        return value

    @field_validator(*_COLOR_FIELDS, mode="before")
    @classmethod
    def _decode_hex(cls, value):
        if isinstance(value, str):
            return hex_to_linear(value)
        return value

    @field_validator(*_COLOR_FIELDS)
    @classmethod
    def _clamp_color(cls, value):
        if not all(math.isfinite(c) for c in value):
            raise ValueError("colour channels must be finite")
        return tuple(min(1.0, max(0.0, float(c))) for c in value)

    @classmethod
    def from_overrides(cls, overrides=None, base=None):
        """Merge a partial record over `base` (defaults if omitted)."""
        values = (base or DEFAULT_PARAMS).model_dump()
        values.update(overrides or {})
        return cls(**values)

    def replace(self, **changes):
        """Return a validated copy with `changes` applied."""
        return SceneParameters.from_overrides(changes, base=self)


DEFAULT_PARAMS = SceneParameters()
