"""
Cloud Tunnel Presets

Each preset is a partial parameter record merged over the defaults.
Colours are sRGB hex strings, as picked in a colour picker; they are
decoded to linear light when the SceneParameters are built.
"""

from .params import NoiseKernel, SceneParameters


PRESETS = {
    "dreamy": {
        "name": "Dreamy",
        "description": "Soft pastel clouds drifting toward a white sun",
        "params": {
            "bg_color": "#A8BAC9",
            "light_color_1": "#D1D1E0",
            "light_color_2": "#FFF0F2",
            "cloud_base_color": "#F2F2FF",
            "cloud_shadow_color": "#59597A",
            "sun_glow_color": "#FFFFFF",
            "sun_core_color": "#FFFFFF",
            "sun_glare_color": "#FFD9CC",
            "vortex_speed": 0.3,
            "vortex_twist": 0.1,
        },
    },
    "sunset": {
        "name": "Sunset",
        "description": "Warm amber light through dense, slowly counter-rotating cloud",
        "params": {
            "bg_color": "#DABCCA",
            "light_color_1": "#FF9900",
            "light_color_2": "#E7D4CB",
            "cloud_base_color": "#FFDAB9",
            "cloud_shadow_color": "#04052F",
            "sun_glow_color": "#FFAA00",
            "sun_core_color": "#FFFFCC",
            "sun_glare_color": "#E2C5A7",
            "cloud_density": 3.8,
            "sun_core_pow": 36.0,
            "sun_glare_pow": 16.0,
            "vortex_speed": -0.6,
            "vortex_twist": 0.2,
        },
    },
    "storm": {
        "name": "Storm",
        "description": "Dark fast vortex with lightning veins along the wall",
        "params": {
            "bg_color": "#05186B",
            "light_color_1": "#B4BFCB",
            "light_color_2": "#A6BACE",
            "cloud_base_color": "#4B5C74",
            "cloud_shadow_color": "#000000",
            "sun_glow_color": "#DFE3EC",
            "sun_core_color": "#AADDFF",
            "sun_glare_color": "#0F2D61",
            "vortex_speed": 0.9,
            "vortex_twist": -0.15,
            "noise_scale_detail": 0.9,
            "noise_kernel_a": NoiseKernel.BILLOW,
            "noise_kernel_b": NoiseKernel.BILLOW,
            "sun_core_pow": 11.0,
            "sun_glare_pow": 16.0,
            "lightning_enabled": True,
            "lightning_chance": 0.15,
        },
    },
    "moonlight": {
        "name": "Moonlight",
        "description": "Night clouds lit by a pale moon",
        "params": {
            "bg_color": "#080C15",
            "light_color_1": "#6B6D70",
            "light_color_2": "#BABEC5",
            "cloud_base_color": "#989655",
            "cloud_shadow_color": "#050810",
            "sun_glow_color": "#F4FFA3",
            "sun_core_color": "#FFFCE5",
            "sun_glare_color": "#10337A",
            "sun_core_pow": 67.0,
            "sun_glare_pow": 16.0,
            "vortex_speed": -0.6,
            "vortex_twist": 0.2,
        },
    },
}

PRESET_ORDER = ["dreamy", "sunset", "storm", "moonlight"]

DEFAULT_PRESET = "dreamy"


def get_preset(name):
    """Get a preset by name. Returns None if not found."""
    return PRESETS.get(name)


def preset_params(name, base=None):
    """SceneParameters for preset `name` merged over `base` (or defaults)."""
    return SceneParameters.from_overrides(PRESETS[name]["params"], base=base)


def list_presets():
    """Return list of (key, name, description) in display order."""
    return [(k, PRESETS[k]["name"], PRESETS[k]["description"])
            for k in PRESET_ORDER if k in PRESETS]
