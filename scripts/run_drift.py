#!/usr/bin/env python3
"""Simulate Wright-Fisher drift and plot how allele-frequency variance grows.

Runs an ensemble of independent drift paths from a YAML config, then writes
the spaghetti plot, the variance-vs-theory plot, the loss / fixation plot
and a JSON summary.

Usage:
    python scripts/run_drift.py
    python scripts/run_drift.py --config configs/default.yaml --seed 7
    python scripts/run_drift.py -N 1000 -g 500 -p 0.2 --replicates 200
"""

import argparse
import json
import sys
from pathlib import Path

# ── Project imports ──────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from drift_fst.analysis import drift_summary, run_drift_analysis, save_drift_figures
from drift_fst.config import default_config, load_config


def build_overrides(args: argparse.Namespace) -> dict:
    """Command-line values that override the YAML simulation section."""
    sim = {}
    if args.population_size is not None:
        sim['population_size'] = args.population_size
    if args.generations is not None:
        sim['generations'] = args.generations
    if args.start_frequency is not None:
        sim['start_frequency'] = args.start_frequency
    if args.replicates is not None:
        sim['n_replicates'] = args.replicates
    if args.seed is not None:
        sim['seed'] = args.seed
    overrides = {'simulation': sim} if sim else {}
    if args.output_dir is not None:
        overrides['output'] = {'directory': args.output_dir}
    return overrides


def main():
    parser = argparse.ArgumentParser(
        description="Simulate Wright-Fisher genetic drift and plot variance growth.",
        epilog="Example: python scripts/run_drift.py -N 100 -g 200 -p 0.5",
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Base config YAML (default: built-in defaults)",
    )
    parser.add_argument("-N", "--population-size", type=int, default=None,
                        help="Number of gene copies per generation")
    parser.add_argument("-g", "--generations", type=int, default=None,
                        help="Generations to simulate")
    parser.add_argument("-p", "--start-frequency", type=float, default=None,
                        help="Starting allele frequency in [0, 1]")
    parser.add_argument("--replicates", type=int, default=None,
                        help="Number of replicate paths (>= 2)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Master RNG seed")
    parser.add_argument("--output-dir", type=str, default=None,
                        help="Override output directory (default: from config)")
    parser.add_argument("--no-figures", action="store_true",
                        help="Write the JSON summary only")
    parser.add_argument("--quiet", action="store_true",
                        help="Suppress progress output")
    args = parser.parse_args()

    overrides = build_overrides(args)
    if args.config is not None:
        config = load_config(args.config, overrides=overrides)
    else:
        config = default_config(overrides)
    verbose = not args.quiet

    sim = config.simulation
    if verbose:
        print("=" * 60)
        print("Wright-Fisher drift")
        print("=" * 60)
        print(f"  N = {sim.population_size}, generations = {sim.generations}, "
              f"p0 = {sim.start_frequency}, replicates = {sim.n_replicates}, "
              f"seed = {sim.seed}")

    result = run_drift_analysis(config)
    summary = drift_summary(result)

    out_dir = Path(config.output.directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    with open(out_dir / "drift_summary.json", "w") as f:
        json.dump(summary, f, indent=2, allow_nan=False)

    if verbose:
        print(f"  Final variance: {summary['final_variance']:.4f} "
              f"(expected {summary['final_expected_variance']:.4f}, "
              f"plateau {summary['plateau']:.4f})")
        print(f"  Lost: {summary['final_fraction_lost']:.1%}  "
              f"Fixed: {summary['final_fraction_fixed']:.1%}")

    if config.output.save_figures and not args.no_figures:
        written = save_drift_figures(
            result, out_dir, dpi=config.output.dpi,
            n_paths=config.output.n_paths_plotted,
        )
        if verbose:
            for path in written:
                print(f"  Saved {path}")

    if verbose:
        print("\n✅ Done.")


if __name__ == "__main__":
    main()
