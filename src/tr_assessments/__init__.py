"""Transformation OS assessment results service.

Computes the analytical results of multi-rater (180°/360°) competency
assessments: rater-type aggregates, self-vs-others gap analysis, Johari
window, confidence index, current ceiling, trend against the previous
assessment, and agency benchmarks.
"""

__version__ = "0.1.0"
