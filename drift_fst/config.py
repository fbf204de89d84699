"""Configuration system for drift-fst.

Hierarchical YAML configuration with deep-merge support:
  base.yaml → scenario override → command-line overrides

Sections map 1:1 to YAML top-level keys; unknown keys are ignored.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from drift_fst.stats_table import CLUSTER_METHODS


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class SimulationSection:
    """Wright-Fisher drift ensemble."""
    population_size: int = 100      # gene copies N
    generations: int = 200
    start_frequency: float = 0.5
    n_replicates: int = 500
    seed: int = 42


@dataclass
class TableSection:
    """Pairwise statistics table produced by the external f-statistics tool."""
    path: Optional[str] = None
    statistic: str = "FST"
    histogram_bins: int = 20
    cluster_method: str = "ward"
    n_clusters: int = 3


@dataclass
class OutputSection:
    """Output control."""
    directory: str = "results/"
    dpi: int = 150
    save_figures: bool = True
    n_paths_plotted: int = 50       # replicate paths drawn in the spaghetti plot


@dataclass
class AnalysisConfig:
    """Complete configuration.

    Load from YAML via `load_config()`.
    """
    simulation: SimulationSection = field(default_factory=SimulationSection)
    table: TableSection = field(default_factory=TableSection)
    output: OutputSection = field(default_factory=OutputSection)


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _dict_to_section(section_cls, data: Dict) -> Any:
    """Convert a dict to a dataclass, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(section_cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}
    return section_cls(**filtered)


def _yaml_to_config(data: Dict) -> AnalysisConfig:
    """Convert a merged YAML dict to an AnalysisConfig."""
    sections = {}
    section_map = {
        'simulation': SimulationSection,
        'table': TableSection,
        'output': OutputSection,
    }
    for key, cls in section_map.items():
        if key in data and isinstance(data[key], dict):
            sections[key] = _dict_to_section(cls, data[key])
        else:
            sections[key] = cls()
    return AnalysisConfig(**sections)


def config_to_dict(config: AnalysisConfig) -> Dict[str, Any]:
    """Plain-dict view of a config (for JSON / YAML dumps)."""
    return dataclasses.asdict(config)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_config(config: AnalysisConfig) -> None:
    """Validate configuration constraints. Raises ValueError on failure."""
    sim = config.simulation
    if not _is_int(sim.population_size) or sim.population_size < 1:
        raise ValueError(
            f"simulation.population_size must be an integer >= 1, "
            f"got {sim.population_size!r}"
        )
    if not _is_int(sim.generations) or sim.generations < 0:
        raise ValueError(
            f"simulation.generations must be an integer >= 0, "
            f"got {sim.generations!r}"
        )
    if (not isinstance(sim.start_frequency, (int, float))
            or isinstance(sim.start_frequency, bool)
            or not math.isfinite(sim.start_frequency)
            or not (0.0 <= sim.start_frequency <= 1.0)):
        raise ValueError(
            f"simulation.start_frequency must be in [0, 1], "
            f"got {sim.start_frequency!r}"
        )
    if not _is_int(sim.n_replicates) or sim.n_replicates < 2:
        raise ValueError(
            f"simulation.n_replicates must be >= 2 (variance needs two paths), "
            f"got {sim.n_replicates!r}"
        )
    if not _is_int(sim.seed) or sim.seed < 0:
        raise ValueError("simulation.seed must be a non-negative integer")

    tbl = config.table
    if not tbl.statistic:
        raise ValueError("table.statistic must be a non-empty string")
    if tbl.histogram_bins < 1:
        raise ValueError(
            f"table.histogram_bins must be >= 1, got {tbl.histogram_bins}"
        )
    if tbl.cluster_method not in CLUSTER_METHODS:
        raise ValueError(
            f"table.cluster_method must be one of {sorted(CLUSTER_METHODS)}, "
            f"got '{tbl.cluster_method}'"
        )
    if tbl.n_clusters < 1:
        raise ValueError(f"table.n_clusters must be >= 1, got {tbl.n_clusters}")

    out = config.output
    if out.dpi < 1:
        raise ValueError(f"output.dpi must be positive, got {out.dpi}")
    if out.n_paths_plotted < 0:
        raise ValueError(
            f"output.n_paths_plotted must be >= 0, got {out.n_paths_plotted}"
        )


def load_config(
    base_path: Union[str, Path],
    scenario_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict] = None,
) -> AnalysisConfig:
    """Load and merge hierarchical YAML configuration.

    Merge order: base → scenario → overrides.
    Each layer overrides only the fields it specifies.

    Raises:
        FileNotFoundError: If base_path doesn't exist.
        ValueError: If validation fails.
    """
    base_path = Path(base_path)
    if not base_path.exists():
        raise FileNotFoundError(f"Config file not found: {base_path}")

    with open(base_path) as f:
        config_dict = yaml.safe_load(f) or {}

    if scenario_path is not None:
        scenario_path = Path(scenario_path)
        if scenario_path.exists():
            with open(scenario_path) as f:
                scenario = yaml.safe_load(f) or {}
            deep_merge(config_dict, scenario)

    if overrides is not None:
        deep_merge(config_dict, overrides)

    config = _yaml_to_config(config_dict)
    validate_config(config)
    return config


def default_config(overrides: Optional[Dict] = None) -> AnalysisConfig:
    """Return an AnalysisConfig with default values, plus optional overrides."""
    if overrides:
        data = deep_merge(config_to_dict(AnalysisConfig()), overrides)
        config = _yaml_to_config(data)
    else:
        config = AnalysisConfig()
    validate_config(config)
    return config
