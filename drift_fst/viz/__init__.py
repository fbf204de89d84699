"""drift-fst visualization library.

Modules:
  - style: Dark theme colours and helpers
  - drift: Sample paths, variance growth, loss / fixation
  - tables: Pairwise FST / F2 histogram, heatmap and dendrogram
"""

from drift_fst.viz.style import (  # noqa: F401
    ACCENT_COLORS,
    DARK_BG,
    DARK_PANEL,
    FATE_COLORS,
    GRID_COLOR,
    TEXT_COLOR,
    apply_dark_theme,
    dark_figure,
    save_figure,
)

from drift_fst.viz.drift import (  # noqa: F401
    plot_drift_paths,
    plot_fixation_fractions,
    plot_variance_over_time,
)

from drift_fst.viz.tables import (  # noqa: F401
    plot_dendrogram,
    plot_estimate_histogram,
    plot_pairwise_heatmap,
)
