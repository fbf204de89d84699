#!/usr/bin/env python3
"""Summarise, pivot and cluster a pairwise FST / F2 table.

The table is the tab-separated output of an external f-statistics tool
(columns Statistic, a, b, Estimate_Total, ...). For each requested
statistic this writes a histogram, a population × population heatmap, a
dendrogram (when every pair is present in at least one direction) and a
JSON summary.

Usage:
    python scripts/analyze_stats_table.py data/example_fstats.tsv
    python scripts/analyze_stats_table.py fstats.tsv --statistic FST --statistic F2
    python scripts/analyze_stats_table.py fstats.tsv --method average --clusters 4
"""

import argparse
import json
import sys
from pathlib import Path

# ── Project imports ──────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from drift_fst.analysis import analyze_table, save_table_figures, table_summary
from drift_fst.config import default_config, load_config
from drift_fst.stats_table import load_stats_table, statistics_present


def main():
    parser = argparse.ArgumentParser(
        description="Summarise and cluster a pairwise FST/F2 statistics table.",
        epilog="Example: python scripts/analyze_stats_table.py data/example_fstats.tsv",
    )
    parser.add_argument(
        "table", nargs="?", default=None,
        help="Tab-separated statistics table (default: table.path from config)",
    )
    parser.add_argument("--config", type=str, default=None,
                        help="Base config YAML (default: built-in defaults)")
    parser.add_argument("--statistic", action="append", default=None,
                        help="Statistic to analyse; repeatable (default: from config)")
    parser.add_argument("--all", action="store_true",
                        help="Analyse every statistic present in the table")
    parser.add_argument("--method", type=str, default=None,
                        help="Linkage method (default: from config, usually ward)")
    parser.add_argument("--clusters", type=int, default=None,
                        help="Number of flat clusters to report")
    parser.add_argument("--bins", type=int, default=None,
                        help="Histogram bins")
    parser.add_argument("--output-dir", type=str, default=None,
                        help="Override output directory (default: from config)")
    parser.add_argument("--no-figures", action="store_true",
                        help="Write the JSON summary only")
    parser.add_argument("--quiet", action="store_true",
                        help="Suppress progress output")
    args = parser.parse_args()

    overrides = {'table': {}}
    if args.table is not None:
        overrides['table']['path'] = args.table
    if args.method is not None:
        overrides['table']['cluster_method'] = args.method
    if args.clusters is not None:
        overrides['table']['n_clusters'] = args.clusters
    if args.bins is not None:
        overrides['table']['histogram_bins'] = args.bins
    if args.output_dir is not None:
        overrides['output'] = {'directory': args.output_dir}

    if args.config is not None:
        config = load_config(args.config, overrides=overrides)
    else:
        config = default_config(overrides)
    verbose = not args.quiet

    if config.table.path is None:
        parser.error("no table given and table.path is not set in the config")

    table = load_stats_table(config.table.path)
    if args.all:
        statistics = statistics_present(table)
    else:
        statistics = args.statistic or [config.table.statistic]

    out_dir = Path(config.output.directory)
    out_dir.mkdir(parents=True, exist_ok=True)

    if verbose:
        print("=" * 60)
        print(f"Pairwise statistics: {config.table.path}")
        print("=" * 60)
        print(f"  {len(table)} rows; statistics present: "
              f"{', '.join(statistics_present(table))}")

    summaries = {}
    for statistic in statistics:
        result = analyze_table(
            table,
            statistic=statistic,
            bins=config.table.histogram_bins,
            cluster_method=config.table.cluster_method,
            n_clusters=config.table.n_clusters,
        )
        summaries[statistic] = table_summary(result)

        if verbose:
            s = result.summary
            print(f"\n  {statistic}: {s.count} rows, "
                  f"{len(result.matrix)} populations")
            print(f"    mean = {s.mean:.4f}  median = {s.median:.4f}  "
                  f"range = [{s.min:.4f}, {s.max:.4f}]")
            if result.missing:
                print(f"    {len(result.missing)} ordered pair(s) absent")
            if result.clusters is not None:
                print(f"    leaf order: {' '.join(result.clusters.leaf_order)}")

        if config.output.save_figures and not args.no_figures:
            written = save_table_figures(result, out_dir, dpi=config.output.dpi)
            if verbose:
                for path in written:
                    print(f"    Saved {path}")

    with open(out_dir / "table_summary.json", "w") as f:
        json.dump(summaries, f, indent=2, allow_nan=False)

    if verbose:
        print("\n✅ Done.")


if __name__ == "__main__":
    main()
