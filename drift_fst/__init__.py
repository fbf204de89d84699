"""drift-fst: genetic drift and F_ST, simulated and measured.

A small companion library for a population-genetics tutorial:
  - Wright-Fisher allele-frequency drift (single paths and ensembles)
  - Variance growth, heterozygosity decay and the fixation plateau
  - Formal F_ST / F2 definitions on allele frequencies
  - Loading, pivoting and clustering pairwise FST/F2 tables produced by an
    external statistics tool
"""

__version__ = "0.1.0"
