"""
Command-line interface for quiltsim.

Runs simulations and reuse estimates on training images stored as .npy files.
"""

import argparse
import os
import sys

import numpy as np

from quiltsim.config import load_config, save_default_config
from quiltsim.errors import QuiltingError
from quiltsim.tracer import configure_tracer, get_tracer


def _shape(text):
    """Parse a shape such as '30,30,1'."""
    try:
        return tuple(int(s) for s in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid shape: {text!r}")


def _add_trace_args(parser):
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Enable runtime tracing",
    )
    parser.add_argument(
        "--trace-level",
        default="INFO",
        choices=["ERROR", "WARN", "INFO", "DEBUG"],
        help="Trace log level",
    )
    parser.add_argument(
        "--trace-file",
        default=None,
        help="Path to write trace logs",
    )
    parser.add_argument(
        "--trace-json",
        action="store_true",
        help="Enable JSON trace output",
    )


def build_parser():
    parser = argparse.ArgumentParser(
        description="quiltsim: multiple-point simulation by image quilting",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Simulate command
    sim_parser = subparsers.add_parser("simulate", help="Simulate realizations")
    sim_parser.add_argument(
        "--training-image", "-t",
        required=True,
        help="Training image (.npy)",
    )
    sim_parser.add_argument(
        "--tile",
        type=_shape,
        required=True,
        help="Tile shape, comma separated",
    )
    sim_parser.add_argument(
        "--grid",
        type=_shape,
        default=None,
        help="Simulation grid shape (default: training image shape)",
    )
    sim_parser.add_argument(
        "--out", "-o",
        required=True,
        help="Output directory",
    )
    sim_parser.add_argument("--nreal", type=int, default=None, help="Number of realizations")
    sim_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    sim_parser.add_argument(
        "--path",
        default=None,
        choices=["raster", "dilation", "random", "data"],
        help="Tile visiting order",
    )
    sim_parser.add_argument("--workers", type=int, default=None, help="Realization threads")
    sim_parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to YAML configuration file",
    )
    sim_parser.add_argument(
        "--debug",
        action="store_true",
        help="Write seam maps and tile reports",
    )
    _add_trace_args(sim_parser)

    # Reuse command
    reuse_parser = subparsers.add_parser("reuse", help="Estimate voxel reuse")
    reuse_parser.add_argument("--training-image", "-t", required=True, help="Training image (.npy)")
    reuse_parser.add_argument("--tile", type=_shape, required=True, help="Tile shape, comma separated")
    reuse_parser.add_argument("--nreal", type=int, default=None, help="Number of realizations")
    reuse_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    reuse_parser.add_argument("--config", "-c", default=None, help="Path to YAML configuration file")
    _add_trace_args(reuse_parser)

    # Init config command
    init_parser = subparsers.add_parser("init-config", help="Create default config file")
    init_parser.add_argument(
        "--out", "-o",
        default="quiltsim_config.yaml",
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

    if args.command == "simulate":
        return handle_simulate(args)
    elif args.command == "reuse":
        return handle_reuse(args)
    elif args.command == "init-config":
        return handle_init_config(args)

    return 0


def _configure(args):
    configure_tracer(
        enabled=args.trace,
        level=args.trace_level,
        file_path=args.trace_file,
        json_output=args.trace_json,
    )
    return load_config(args.config)


def handle_simulate(args):
    """Handle the simulate command."""
    config = _configure(args)
    tracer = get_tracer()

    if args.debug:
        config.debug.artifacts_dir = args.out

    try:
        from quiltsim.pipeline import simulate

        training_image = np.load(args.training_image)
        with tracer.span("cli_simulate", module="cli"):
            reals = simulate(
                training_image, args.tile, args.grid,
                nreal=args.nreal, seed=args.seed, path=args.path,
                workers=args.workers, debug=False, config=config,
            )

        os.makedirs(args.out, exist_ok=True)
        for i, real in enumerate(reals):
            np.save(os.path.join(args.out, f"real_{i:03d}.npy"), real)

        print(f"\nSimulation completed successfully.")
        print(f"  Realizations: {len(reals)}")
        print(f"  Grid shape: {reals[0].shape}")
        print(f"\nOutputs saved to: {args.out}/")
        return 0

    except (QuiltingError, OSError) as e:
        tracer.event(f"Simulation failed: {e}", level="ERROR")
        print(f"\nError: {e}", file=sys.stderr)
        return 1


def handle_reuse(args):
    """Handle the reuse command."""
    config = _configure(args)
    tracer = get_tracer()

    try:
        from quiltsim.reuse.voxel_reuse import voxel_reuse

        training_image = np.load(args.training_image)
        with tracer.span("cli_reuse", module="cli"):
            mean, std = voxel_reuse(
                training_image, args.tile, nreal=args.nreal, seed=args.seed, config=config,
            )

        print(f"Voxel reuse: mean={mean:.4f} std={std:.4f}")
        return 0

    except (QuiltingError, OSError) as e:
        tracer.event(f"Reuse estimate failed: {e}", level="ERROR")
        print(f"\nError: {e}", file=sys.stderr)
        return 1


def handle_init_config(args):
    """Handle the init-config command."""
    save_default_config(args.out)
    print(f"Default configuration saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
