"""
CTH Engine — Tetrasociohistorical Context completion and scoring.

Scores the five temporal phases of a historical event (before, prelude,
during, transition, after) from nine socio-economic indicators, filling
missing indicators from epoch reference data and score-trend inference.
"""

__version__ = "1.0.0"
