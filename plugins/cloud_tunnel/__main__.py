"""
Cloud Tunnel Viewer - Entry Point

Usage:
    python -m cloud_tunnel [preset] [--size WxH] [--window WxH] [--workers N]
    python -m cloud_tunnel [preset] --headless N

Examples:
    python -m cloud_tunnel
    python -m cloud_tunnel storm
    python -m cloud_tunnel sunset --size 320x180 --window 1280x720
    python -m cloud_tunnel moonlight --headless 30

Presets:
    dreamy      - Soft pastel clouds (default)
    sunset      - Warm amber light, dense cloud
    storm       - Fast vortex with lightning
    moonlight   - Night clouds under a pale moon

Use --list to see all available presets.
"""

import sys
import time

import numpy as np

from .presets import DEFAULT_PRESET, PRESET_ORDER, list_presets


def headless(preset, size, frames, workers=1, fps=30.0):
    """Headless mode: render N frames at a fixed dt, print timing, exit."""
    from .simulator import TunnelSimulator

    width, height = size
    sim = TunnelSimulator(preset, width, height, seed=0, workers=workers)
    dt = 1.0 / fps

    timings = []
    frame = None
    for i in range(frames):
        start = time.perf_counter()
        frame = sim.render_float(dt)
        timings.append(time.perf_counter() - start)
        print(f"  frame {i + 1}/{frames}: {timings[-1] * 1000:.0f} ms", end="\r", flush=True)
    print()

    stats = sim.stats
    mean_ms = float(np.mean(timings)) * 1000.0
    print(f"[CloudTunnel] {preset}: {frames} frames @ {width}x{height}")
    print(f"  mean {mean_ms:.1f} ms  ({1000.0 / max(mean_ms, 1e-3):.1f} fps)  "
          f"max {max(timings) * 1000:.1f} ms")
    print(f"  camera z {stats['cam_z']:.2f}  vortex {stats['vortex_phase']:.2f}  "
          f"t {stats['elapsed']:.2f}s")
    if frame is not None:
        lum = frame.mean(axis=2)
        print(f"  luminance mean {lum.mean():.3f}  min {lum.min():.3f}  max {lum.max():.3f}")


def _parse_size(text):
    parts = text.lower().split("x")
    return int(parts[0]), int(parts[1])


def main():
    preset = DEFAULT_PRESET
    size = (240, 135)
    win_w, win_h = 960, 540
    workers = 1
    headless_frames = 0

    args = sys.argv[1:]
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--size" and i + 1 < len(args):
            size = _parse_size(args[i + 1])
            i += 2
        elif arg == "--window" and i + 1 < len(args):
            win_w, win_h = _parse_size(args[i + 1])
            i += 2
        elif arg == "--workers" and i + 1 < len(args):
            workers = max(1, int(args[i + 1]))
            i += 2
        elif arg == "--headless" and i + 1 < len(args):
            headless_frames = int(args[i + 1])
            i += 2
        elif arg == "--list":
            print("\nAvailable presets:")
            for key, name, desc in list_presets():
                print(f"    {key:12s} {name:12s} {desc}")
            print()
            return
        elif arg in ("--help", "-h"):
            print(__doc__)
            return
        elif arg in PRESET_ORDER:
            preset = arg
            i += 1
        else:
            print(f"Unknown argument: {arg}")
            print("Use --list to see available presets")
            return

    if headless_frames > 0:
        print(f"Headless mode: {preset} @ {size[0]}x{size[1]}, {headless_frames} frames")
        headless(preset, size, headless_frames, workers=workers)
        return

    from .viewer import Viewer

    print("Starting Cloud Tunnel Viewer")
    print(f"  Preset: {preset}")
    print(f"  Render size: {size[0]}x{size[1]}")
    print(f"  Window: {win_w}x{win_h}")
    print()

    viewer = Viewer(
        width=win_w,
        height=win_h,
        render_size=size,
        start_preset=preset,
        workers=workers,
    )
    viewer.run()


if __name__ == "__main__":
    main()
