"""
Command-line interface for rasterpaths.

Compiles an image into stroke paths for a target screen region, or writes
a default configuration file.
"""

import argparse
import sys

from rasterpaths.config import load_config, save_default_config
from rasterpaths.io.load_image import DecodeFailure
from rasterpaths.models import DrawingAccuracy, LineOrder, ScalingMode, ThresholdMethod
from rasterpaths.tracer import configure_tracer, get_tracer


def build_parser():
    """Argument parser for all subcommands."""
    parser = argparse.ArgumentParser(
        description="rasterpaths: compile raster images into drawable stroke paths",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Compile an image into paths")
    run_parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input image file",
    )
    run_parser.add_argument(
        "--out", "-o",
        required=True,
        help="Output directory",
    )
    run_parser.add_argument(
        "--region",
        nargs=4,
        type=int,
        required=True,
        metavar=("X1", "Y1", "X2", "Y2"),
        help="Two opposite corners of the target region",
    )
    run_parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to YAML configuration file",
    )
    run_parser.add_argument(
        "--method",
        default=None,
        choices=[m.value for m in ThresholdMethod],
        help="Threshold method (overrides config)",
    )
    run_parser.add_argument(
        "--scaling",
        default=None,
        choices=[m.value for m in ScalingMode],
        help="Scaling mode (overrides config)",
    )
    run_parser.add_argument(
        "--accuracy",
        default=None,
        choices=[m.value for m in DrawingAccuracy],
        help="Sampling accuracy (overrides config)",
    )
    run_parser.add_argument(
        "--line-order",
        default=None,
        choices=[m.value for m in LineOrder],
        help="Stroke order in replay.json (overrides config)",
    )
    run_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug artifact generation",
    )
    run_parser.add_argument(
        "--trace",
        action="store_true",
        help="Enable runtime tracing (overrides config)",
    )
    run_parser.add_argument(
        "--trace-level",
        default=None,
        choices=["ERROR", "WARN", "INFO", "DEBUG"],
        help="Trace log level (overrides config)",
    )
    run_parser.add_argument(
        "--trace-file",
        default=None,
        help="Path to write trace logs",
    )
    run_parser.add_argument(
        "--trace-json",
        action="store_true",
        help="Enable JSON trace output",
    )

    init_parser = subparsers.add_parser("init-config", help="Create default config file")
    init_parser.add_argument(
        "--out", "-o",
        default="rasterpaths_config.yaml",
        help="Output path for config file",
    )

    return parser


def main(argv=None):
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "run":
        return handle_run(args)
    elif args.command == "init-config":
        return handle_init_config(args)

    return 0


def handle_run(args):
    """Handle the run command."""
    tracer = get_tracer()

    try:
        from rasterpaths.pipeline import run_pipeline

        config = load_config(args.config)
        configure_tracer(
            enabled=args.trace or config.tracing.enabled,
            level=args.trace_level or config.tracing.level,
            file_path=args.trace_file or config.tracing.file_path,
            json_output=args.trace_json or config.tracing.json_output,
        )

        if args.method:
            config.threshold.method = args.method
        if args.scaling:
            config.scaling.mode = args.scaling
        if args.accuracy:
            config.sampling.accuracy = args.accuracy
            config.sampling.step = None
        if args.line_order:
            config.replay.line_order = args.line_order

        x1, y1, x2, y2 = args.region

        with tracer.span("cli_run", module="cli"):
            plan = run_pipeline(
                input_path=args.input,
                out_dir=args.out,
                corner_a=(x1, y1),
                corner_b=(x2, y2),
                config=config,
                debug=args.debug,
            )

        print("\nCompilation completed successfully.")
        print(f"  Threshold: {plan.threshold_method.value} (cutoff {plan.threshold_value:.1f})")
        print(f"  Region: {plan.region.width}x{plan.region.height} at {tuple(plan.region.origin)}")
        print(f"  Ink points sampled: {plan.point_count}")
        print(f"  Paths: {len(plan.strokes)} ({plan.total_points} points)")
        print(f"\nOutputs saved to: {args.out}/")
        print("  - paths.json")
        print("  - replay.json")

        if not plan.strokes:
            print("\n[!] No drawable paths found in the image.")

        return 0

    except (DecodeFailure, ValueError) as e:
        tracer.event(f"Pipeline failed: {str(e)}", level="ERROR")
        print(f"\nError: {str(e)}", file=sys.stderr)
        return 1
    finally:
        tracer.config.close()


def handle_init_config(args):
    """Handle the init-config command."""
    save_default_config(args.out)
    print(f"Default configuration saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
