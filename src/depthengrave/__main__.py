"""CLI entry point: ``python -m depthengrave image.png -o passes.json``"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config.defaults import build_default_registry
from .config.logging import configure_logging
from .config.settings import AppSettings
from .core.depthmap import DepthMapSettings
from .core.image import load_image
from .core.operation import Direction, OptimizationLevel, Strategy, ToolpathSettings
from .core.planner import ToolpathPlanner, estimate_duration
from .core.power import MaterialOptics
from .core.session import EngravingSession
from .core.validate import validate_passes
from .errors import EngravingError


def _build_parser(prefs: AppSettings) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="depthengrave",
        description="Plan multi-pass laser depth-engraving passes from an image.",
    )
    p.add_argument("input", type=Path, nargs="?", default=None,
                   help="Input image (any format Pillow can read)")
    p.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Output JSON file (default: <input>.passes.json)",
    )
    p.add_argument("--laser", default=prefs.default_laser,
                   help=f"Laser profile name (default: {prefs.default_laser})")
    p.add_argument("--profile-file", type=Path, action="append", default=[],
                   help="Import a laser/material profile JSON envelope (repeatable)")
    p.add_argument("--list-lasers", action="store_true",
                   help="List registered laser profiles and exit")
    p.add_argument("--material", default=None,
                   help="Material profile name; its refractive index, if any, "
                        "adds focus compensation")

    # Depth map
    p.add_argument("--max-depth", type=float, default=2.0,
                   help="Maximum engraving depth in mm (default: 2.0)")
    p.add_argument("--gamma", type=float, default=1.0)
    p.add_argument("--contrast", type=float, default=0.0)
    p.add_argument("--brightness", type=float, default=0.0)
    p.add_argument("--depth-curve", default="linear",
                   choices=["linear", "exponential", "logarithmic"])
    p.add_argument("--invert", action="store_true",
                   help="Engrave dark areas deepest")

    # Toolpath
    p.add_argument("--strategy", choices=[s.value for s in Strategy],
                   default=Strategy.CONTOUR.value,
                   help="Fill strategy (default: contour)")
    p.add_argument("--direction", choices=[d.value for d in Direction],
                   default=Direction.BIDIRECTIONAL.value)
    p.add_argument("--optimization", choices=[o.value for o in OptimizationLevel],
                   default=OptimizationLevel.BALANCED.value)
    p.add_argument("--passes", type=int, default=20,
                   help="Number of depth layers (default: 20)")
    p.add_argument("--depth-per-pass", type=float, default=0.1,
                   help="Depth removed per pass in mm (default: 0.1)")
    p.add_argument("--line-spacing", type=float, default=0.1)
    p.add_argument("--stepover", type=float, default=0.1)
    p.add_argument("--angle", type=float, default=0.0)
    p.add_argument("--pixel-size", type=float, default=0.1,
                   help="mm per image pixel (default: 0.1)")
    p.add_argument("--crosshatch", action="store_true",
                   help="Repeat every pass at --crosshatch-angle")
    p.add_argument("--crosshatch-angle", type=float, default=45.0)

    # Logging and validation
    p.add_argument("--log-level", default=prefs.log_level,
                   choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    p.add_argument("--json-logs", action="store_true",
                   help="Emit log records as JSON")
    p.add_argument("--skip-validate", action="store_true",
                   help="Skip pass validation")

    return p


def main(argv: list[str] | None = None) -> int:
    prefs = AppSettings.load()
    args = _build_parser(prefs).parse_args(argv)
    configure_logging(args.log_level, json_format=args.json_logs)

    registry = build_default_registry()
    try:
        for path in args.profile_file:
            profile = registry.import_profile(path.read_text())
            print(f"Imported profile {profile.name}")
    except (OSError, EngravingError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.list_lasers:
        for laser in registry.list_profiles():
            print(f"{laser.name:<28} {laser.type.value:<6} {laser.power:>6.0f} W")
        return 0

    if args.input is None:
        print("Error: an input image is required", file=sys.stderr)
        return 1
    output: Path = args.output or args.input.with_suffix(".passes.json")

    optics = None
    if args.material:
        material = registry.get_material(args.material)
        if material is None:
            print(f"Error: material {args.material!r} not found", file=sys.stderr)
            return 1
        if material.refractive_index is not None:
            optics = MaterialOptics(material.refractive_index, material.thickness)

    try:
        depth_settings = DepthMapSettings.from_dict({
            "maxDepth": args.max_depth,
            "gamma": args.gamma,
            "contrast": args.contrast,
            "brightness": args.brightness,
            "depthCurve": args.depth_curve,
            "invert": args.invert,
        })
        toolpath_settings = ToolpathSettings.from_dict({
            "strategy": args.strategy,
            "direction": args.direction,
            "optimizationLevel": args.optimization,
            "passLayers": args.passes,
            "maxPasses": args.passes,
            "depthPerPass": args.depth_per_pass,
            "lineSpacing": args.line_spacing,
            "stepover": args.stepover,
            "angle": args.angle,
            "pixelSize": args.pixel_size,
            "crosshatch": args.crosshatch,
            "crosshatchAngle": args.crosshatch_angle,
        })

        print(f"Loading {args.input} ...")
        image = load_image(args.input)
        print(f"  {image.width} x {image.height} px "
              f"({image.width * args.pixel_size:.1f} x "
              f"{image.height * args.pixel_size:.1f} mm)")

        planner = ToolpathPlanner(max_workers=prefs.max_workers or None)
        print(f"Planning {toolpath_settings.pass_count} {args.strategy} passes "
              f"with {args.laser} ...")
        with EngravingSession(registry, planner=planner) as session:
            result = session.submit(image, args.laser, depth_settings,
                                    toolpath_settings, optics=optics).result()
    except (OSError, EngravingError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    passes = result.passes
    total_points = sum(ps.total_points for ps in passes)
    print(f"  Generated {len(passes)} passes, {total_points} total points")

    if not args.skip_validate:
        check = validate_passes(passes, result.laser, toolpath_settings,
                                max_depth=depth_settings.max_depth)
        if check.has_errors:
            print("VALIDATION ERRORS:", file=sys.stderr)
            for issue in check.issues:
                if issue.severity == "error":
                    print(f"  ERROR: {issue.message}", file=sys.stderr)
            return 1
        if check.has_warnings:
            for issue in check.issues:
                if issue.severity == "warning":
                    print(f"  Warning: {issue.message}")

    seconds = estimate_duration(passes)
    output.write_text(json.dumps({
        "laser": result.laser.name,
        "passes": [ps.to_dict() for ps in passes],
        "estimatedSeconds": seconds,
    }))
    print(f"Wrote {output} (estimated {seconds:.1f} s)")

    prefs.last_image_dir = str(args.input.resolve().parent)
    prefs.last_output_dir = str(output.resolve().parent)
    prefs.save()
    return 0


if __name__ == "__main__":
    sys.exit(main())
