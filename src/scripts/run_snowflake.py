#!/usr/bin/env python3
"""
Snowflake Simulation Runner

Grows a single Gravner-Griffeath crystal on a lattice of the given odd size
and writes it as SVG (to stdout unless --out is given). Progress goes to
stderr. Exits 1 if the iteration cap was reached before the crystal grew
into the outer third of the lattice.
"""

import argparse
import sys
import time

from snowflake_sim import (
    ConfigurationError,
    GravnerParams,
    GravnerSimulator,
    analysis,
    render,
    utils,
)
from snowflake_sim.lattice import parse_size

PHYSICAL_PARAMS = ("rho", "kappa", "beta", "alpha", "theta", "mu", "gamma", "sigma")


def lattice_size(text: str) -> int:
    try:
        return parse_size(text)
    except ConfigurationError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Grow a Gravner-Griffeath snow crystal and render it as SVG",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "size",
        type=lattice_size,
        help="Lattice side length (positive odd integer)",
    )
    parser.add_argument(
        "--params",
        type=str,
        default=None,
        help="JSON or TOML file of parameters (command-line values win)",
    )
    for name in PHYSICAL_PARAMS:
        parser.add_argument(f"--{name}", type=float, default=None)
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Iteration cap (default: 100000)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for the noise pass",
    )
    parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output .svg file path (stdout if not provided)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser


def build_params(args: argparse.Namespace) -> GravnerParams:
    base = {}
    if args.params is not None:
        try:
            base = utils.load_params(args.params)
        except (OSError, ValueError) as exc:
            raise ConfigurationError(f"cannot read parameter file {args.params}: {exc}") from exc
        if not isinstance(base, dict):
            raise ConfigurationError(f"parameter file {args.params} must hold a table of values")
    overrides = {
        name: getattr(args, name)
        for name in PHYSICAL_PARAMS
        if getattr(args, name) is not None
    }
    if args.max_iterations is not None:
        overrides["max_iterations"] = args.max_iterations
    if args.seed is not None:
        overrides["seed"] = args.seed
    return GravnerParams.from_dict({**base, **overrides})


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        params = build_params(args)
    except ConfigurationError as exc:
        parser.error(str(exc))

    start_time = time.time()
    sim = GravnerSimulator(args.size, params, verbose=not args.quiet)
    status = sim.run()
    elapsed_time = time.time() - start_time

    result = sim.result()
    if args.out is None:
        render.render_svg(result, sys.stdout.buffer)
        sys.stdout.flush()
    else:
        render.render_svg(result, args.out)

    if not args.quiet:
        stats = analysis.crystal_stats(result)
        print(
            f"{status}: {sim.iterations} iterations in {elapsed_time:.2f}s, "
            f"{stats['num_attached']} cells attached, "
            f"radius {stats['max_radius']}",
            file=sys.stderr,
        )
        if args.out is not None:
            print(f"Output saved to: {args.out}", file=sys.stderr)

    return 0 if sim.converged else 1


if __name__ == "__main__":
    sys.exit(main())
